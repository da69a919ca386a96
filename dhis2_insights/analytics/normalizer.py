from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from dhis2_insights.analytics.errors import MalformedResponseError, UnresolvedMetadataWarning
from dhis2_insights.analytics.items import ItemSelection, parse_item_selection
from dhis2_insights.analytics.periods import format_period_id

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("dx", "pe", "ou", "value")


@dataclass(frozen=True)
class ObservationRecord:
    item_id: str
    item_name: str
    period_id: str
    period_name: str
    org_unit_id: str
    org_unit_name: str
    value: Optional[float]
    raw_value: Any = None
    value_type: Optional[str] = None

    @property
    def is_missing(self) -> bool:
        return self.value is None


def normalize_response(
    response: Mapping[str, Any],
    items: ItemSelection | Sequence[Any],
    multi_org_unit_mode: bool = False,
    org_unit_names: Optional[Dict[str, str]] = None,
    selected_org_unit_name: Optional[str] = None,
    unresolved: Optional[List[UnresolvedMetadataWarning]] = None,
) -> List[ObservationRecord]:
    """Turn a headers + rows analytics response into observation records.

    Display names come from ``metaData.items`` first, then from the names
    known locally (selected items, child org units), then from the period
    formatter, and finally the raw id. Every id that missed the metadata and
    had no local name is reported once through ``unresolved`` and the log.
    Rows whose value is not a finite number are kept with ``value=None``.
    """
    if not isinstance(response, Mapping):
        raise MalformedResponseError("Analytics response must be an object")

    selection = parse_item_selection(items)
    headers = response.get("headers")
    if not isinstance(headers, list):
        raise MalformedResponseError("Analytics response has no headers", missing_columns=REQUIRED_COLUMNS)

    header_names = [h.get("name") if isinstance(h, Mapping) else None for h in headers]
    missing = [c for c in REQUIRED_COLUMNS if c not in header_names]
    if missing:
        raise MalformedResponseError(
            f"Analytics response is missing required columns: {', '.join(missing)}",
            missing_columns=missing,
        )
    index = {name: header_names.index(name) for name in REQUIRED_COLUMNS}
    header_value_type = headers[index["value"]].get("valueType")

    rows = response.get("rows")
    if rows is None:
        rows = []
    if not isinstance(rows, list):
        raise MalformedResponseError("Analytics response rows must be a list")

    meta_items = _metadata_items(response)
    local_ou_names = dict(org_unit_names or {})
    reported: set[tuple[str, str]] = set()

    def report(dimension: str, identifier: str, fallback: str) -> None:
        if (dimension, identifier) in reported:
            return
        reported.add((dimension, identifier))
        warning = UnresolvedMetadataWarning(dimension, identifier, fallback)
        logger.warning(str(warning))
        if unresolved is not None:
            unresolved.append(warning)

    def item_name(item_id: str) -> str:
        name = _meta_name(meta_items, item_id)
        if name:
            return name
        if item_id in selection.display_names:
            return selection.display_names[item_id]
        report("dx", item_id, item_id)
        return item_id

    def period_name(period_id: str) -> str:
        name = _meta_name(meta_items, period_id)
        if name:
            return name
        fallback = format_period_id(period_id)
        report("pe", period_id, fallback)
        return fallback

    def org_unit_name(org_unit_id: str) -> str:
        name = _meta_name(meta_items, org_unit_id) or local_ou_names.get(org_unit_id)
        if name:
            return name
        if not multi_org_unit_mode and selected_org_unit_name:
            return selected_org_unit_name
        report("ou", org_unit_id, org_unit_id)
        return org_unit_id

    width = max(index.values()) + 1
    records: List[ObservationRecord] = []
    for position, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) < width:
            raise MalformedResponseError(f"Analytics row {position} does not match the response headers")

        item_id = str(row[index["dx"]])
        period_id = str(row[index["pe"]])
        org_unit_id = str(row[index["ou"]])
        raw_value = row[index["value"]]

        records.append(
            ObservationRecord(
                item_id=item_id,
                item_name=item_name(item_id),
                period_id=period_id,
                period_name=period_name(period_id),
                org_unit_id=org_unit_id,
                org_unit_name=org_unit_name(org_unit_id),
                value=parse_numeric(raw_value),
                raw_value=raw_value,
                value_type=selection.value_types.get(item_id) or header_value_type,
            )
        )

    logger.debug("Normalized %d analytics rows", len(records))
    return records


def parse_numeric(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
    elif isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def lookup_metadata_name(response: Mapping[str, Any], identifier: str) -> str | None:
    return _meta_name(_metadata_items(response), identifier)


def _metadata_items(response: Mapping[str, Any]) -> Mapping[str, Any]:
    meta = response.get("metaData") or {}
    if not isinstance(meta, Mapping):
        return {}
    items = meta.get("items") or {}
    return items if isinstance(items, Mapping) else {}


def _meta_name(meta_items: Mapping[str, Any], identifier: str) -> str | None:
    entry = meta_items.get(identifier)
    if isinstance(entry, Mapping):
        name = entry.get("name") or entry.get("displayName")
        if name:
            return str(name)
    return None
