from __future__ import annotations

import locale
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from dhis2_insights.analytics.errors import InvalidSelectionError
from dhis2_insights.analytics.formatters import MISSING, format_value
from dhis2_insights.analytics.normalizer import ObservationRecord
from dhis2_insights.analytics.periods import PeriodToken, parse_period_token, period_sort_key
from dhis2_insights.analytics.summary import Summary

ASCENDING = "ascending"
DESCENDING = "descending"

TABLE_COLUMNS = ("period", "item", "org_unit", "value")


@dataclass(frozen=True)
class ChartDataset:
    key: str
    label: str
    data: List[float]


@dataclass(frozen=True)
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    period_ids: List[str] = field(default_factory=list)
    datasets: List[ChartDataset] = field(default_factory=list)


@dataclass(frozen=True)
class TableRow:
    period: str
    period_id: str
    item: str
    item_id: str
    org_unit: str
    org_unit_id: str
    value: str
    numeric_value: Optional[float]


def build_chart(records: Sequence[ObservationRecord], multi_org_unit_mode: bool = False) -> ChartSeries:
    if not records:
        return ChartSeries()

    period_names: Dict[str, str] = {}
    for r in records:
        period_names.setdefault(r.period_id, r.period_name)
    period_ids = sorted(period_names, key=period_sort_key)
    position = {p: i for i, p in enumerate(period_ids)}

    org_units = _distinct(records, "org_unit_id", "org_unit_name")
    if multi_org_unit_mode and len(org_units) > 1:
        series_keys = org_units
        key_attr = "org_unit_id"
    else:
        series_keys = _distinct(records, "item_id", "item_name")
        key_attr = "item_id"

    datasets = []
    for key, label in series_keys.items():
        data = [0.0] * len(period_ids)
        for r in records:
            if getattr(r, key_attr) == key and r.value is not None:
                data[position[r.period_id]] += r.value
        datasets.append(ChartDataset(key=key, label=label, data=data))

    return ChartSeries(
        labels=[period_names[p] for p in period_ids],
        period_ids=period_ids,
        datasets=datasets,
    )


def build_table(
    records: Sequence[ObservationRecord],
    summary: Optional[Summary] = None,
    sort_key: Optional[str] = None,
    direction: str = ASCENDING,
    period_token: Optional[str] = None,
) -> List[TableRow]:
    """Flatten records into table rows.

    Without an explicit ``sort_key`` rows keep response order, grouped by org
    unit, item and period in comparative mode, or chronologically when the
    selection is the rolling twelve month window.
    """
    rows = [
        TableRow(
            period=r.period_name,
            period_id=r.period_id,
            item=r.item_name,
            item_id=r.item_id,
            org_unit=r.org_unit_name,
            org_unit_id=r.org_unit_id,
            value=MISSING if r.value is None else format_value(r.raw_value, r.value_type),
            numeric_value=r.value,
        )
        for r in records
    ]

    if sort_key:
        return sort_table(rows, sort_key, direction)

    if summary is not None and summary.multi_org_unit_mode:
        rows.sort(key=lambda row: (_text_key(row.org_unit), _text_key(row.item), period_sort_key(row.period_id)))

    if parse_period_token(period_token or "") is PeriodToken.LAST_12_MONTHS:
        rows.sort(key=lambda row: period_sort_key(row.period_id))

    return rows


def sort_table(rows: Sequence[TableRow], sort_key: str, direction: str = ASCENDING) -> List[TableRow]:
    if sort_key not in TABLE_COLUMNS:
        raise InvalidSelectionError(f"Unknown table sort column: {sort_key!r}", dimension="sort", identifier=sort_key)
    if direction not in (ASCENDING, DESCENDING):
        raise InvalidSelectionError(f"Unknown sort direction: {direction!r}", dimension="sort", identifier=direction)
    reverse = direction == DESCENDING

    if sort_key == "period":
        return sorted(rows, key=lambda row: period_sort_key(row.period_id), reverse=reverse)

    if sort_key == "value":
        present = [row for row in rows if row.numeric_value is not None]
        missing = [row for row in rows if row.numeric_value is None]
        return sorted(present, key=lambda row: row.numeric_value, reverse=reverse) + missing

    return sorted(rows, key=lambda row: _text_key(getattr(row, sort_key)), reverse=reverse)


def _text_key(value: str) -> str:
    # Collates with the process locale (LC_COLLATE); plain code point order under "C".
    return locale.strxfrm(value.casefold())


def _distinct(records: Sequence[ObservationRecord], id_attr: str, name_attr: str) -> Dict[str, str]:
    seen: Dict[str, str] = {}
    for r in records:
        seen.setdefault(getattr(r, id_attr), getattr(r, name_attr))
    return seen
