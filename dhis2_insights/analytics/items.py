from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dhis2_insights.analytics.errors import InvalidSelectionError

_FALLBACK_ID_FIELDS = ("id", "value", "dataElementId")
_NAME_FIELDS = ("displayName", "label", "name")


@dataclass(frozen=True)
class ItemSelection:
    """Validated data item selection.

    ``ids`` is always a non-empty list of bare identifiers; the name and
    value type maps hold whatever the upstream widget attached to its items.
    """

    ids: List[str]
    display_names: Dict[str, str] = field(default_factory=dict)
    value_types: Dict[str, str] = field(default_factory=dict)


def normalize_item_selector(items: Any) -> List[str]:
    return parse_item_selection(items).ids


def parse_item_selection(items: Any) -> ItemSelection:
    if isinstance(items, ItemSelection):
        return items
    if items is None or isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise InvalidSelectionError("Data items must be a non-empty list", dimension="dx")
    if len(items) == 0:
        raise InvalidSelectionError("At least one data item is required", dimension="dx")

    ids: List[str] = []
    display_names: Dict[str, str] = {}
    value_types: Dict[str, str] = {}

    for position, element in enumerate(items):
        item_id = _extract_id(element)
        if item_id is None:
            raise InvalidSelectionError(
                f"Could not find a data item identifier at position {position}: {element!r}",
                dimension="dx",
            )
        if item_id not in ids:
            ids.append(item_id)

        name = _first_text(element, _NAME_FIELDS)
        if name and item_id not in display_names:
            display_names[item_id] = name
        value_type = _first_text(element, ("valueType",))
        if value_type and item_id not in value_types:
            value_types[item_id] = value_type

    return ItemSelection(ids=ids, display_names=display_names, value_types=value_types)


def _extract_id(element: Any) -> str | None:
    if isinstance(element, str):
        return _clean(element)
    if isinstance(element, bool) or element is None:
        return None
    if isinstance(element, (int, float)):
        return _clean(str(element))

    # id first, then the transfer-list "value", then enriched metadata objects.
    for field_name in _FALLBACK_ID_FIELDS:
        candidate = _clean(_get(element, field_name))
        if candidate:
            return candidate
    return None


def _first_text(element: Any, fields: Sequence[str]) -> str | None:
    if isinstance(element, (str, int, float)) or element is None:
        return None
    for field_name in fields:
        value = _clean(_get(element, field_name))
        if value:
            return value
    return None


def _get(element: Any, field_name: str) -> Any:
    if isinstance(element, Mapping):
        return element.get(field_name)
    return getattr(element, field_name, None)


def _clean(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value == ";":
        return None
    return value
