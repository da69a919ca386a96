from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from statistics import fmean, median
from typing import Dict, Iterable, List, Optional, Tuple

from dhis2_insights.analytics.normalizer import ObservationRecord
from dhis2_insights.analytics.periods import period_sort_key


@dataclass(frozen=True)
class SummaryStatistic:
    count: int
    min: float
    max: float
    mean: float
    median: float
    sum: float

    @classmethod
    def from_values(cls, values: Iterable[float]) -> Optional["SummaryStatistic"]:
        ordered = sorted(values)
        if not ordered:
            return None
        return cls(
            count=len(ordered),
            min=ordered[0],
            max=ordered[-1],
            mean=fmean(ordered),
            median=median(ordered),
            sum=sum(ordered),
        )


@dataclass(frozen=True)
class TimeSeriesPoint:
    period_id: str
    period_name: str
    value: float


@dataclass
class Summary:
    multi_org_unit_mode: bool
    by_item: Dict[str, SummaryStatistic] = field(default_factory=dict)
    by_period: Dict[str, Dict[str, SummaryStatistic]] = field(default_factory=dict)
    by_org_unit: Dict[str, Dict[str, SummaryStatistic]] = field(default_factory=dict)
    time_series: Dict[str, List[TimeSeriesPoint]] = field(default_factory=dict)
    item_names: Dict[str, str] = field(default_factory=dict)
    period_names: Dict[str, str] = field(default_factory=dict)
    org_unit_names: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.by_item

    def highest_period(self, item_id: str) -> Optional[Tuple[str, SummaryStatistic]]:
        candidates = self._period_stats(item_id)
        if not candidates:
            return None
        return max(candidates, key=lambda pair: pair[1].mean)

    def lowest_period(self, item_id: str) -> Optional[Tuple[str, SummaryStatistic]]:
        candidates = self._period_stats(item_id)
        if not candidates:
            return None
        return min(candidates, key=lambda pair: pair[1].mean)

    def rank_org_units(self, item_id: str) -> List[Tuple[str, SummaryStatistic]]:
        ranked = [(ou, stats[item_id]) for ou, stats in self.by_org_unit.items() if item_id in stats]
        ranked.sort(key=lambda pair: (-pair[1].mean, self.org_unit_names.get(pair[0], pair[0])))
        return ranked

    def _period_stats(self, item_id: str) -> List[Tuple[str, SummaryStatistic]]:
        # Chronological so ties resolve to the earliest period.
        ordered = sorted(self.by_period, key=period_sort_key)
        return [(p, self.by_period[p][item_id]) for p in ordered if item_id in self.by_period[p]]


def summarize(records: Iterable[ObservationRecord], multi_org_unit_mode: bool = False) -> Summary:
    item_values: Dict[str, List[float]] = defaultdict(list)
    period_values: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
    org_unit_values: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))

    summary = Summary(multi_org_unit_mode=multi_org_unit_mode)
    for record in records:
        summary.item_names.setdefault(record.item_id, record.item_name)
        summary.period_names.setdefault(record.period_id, record.period_name)
        summary.org_unit_names.setdefault(record.org_unit_id, record.org_unit_name)
        if record.value is None:
            continue
        item_values[record.item_id].append(record.value)
        period_values[record.period_id][record.item_id].append(record.value)
        if multi_org_unit_mode:
            org_unit_values[record.org_unit_id][record.item_id].append(record.value)

    for item_id, values in item_values.items():
        summary.by_item[item_id] = SummaryStatistic.from_values(values)

    summary.by_period = _nested_stats(period_values)
    if multi_org_unit_mode:
        summary.by_org_unit = _nested_stats(org_unit_values)

    for item_id in item_values:
        points = []
        for period_id in sorted(period_values, key=period_sort_key):
            stats = summary.by_period[period_id].get(item_id)
            if stats is None:
                continue
            # Mean collapses any org unit breakdown into one point per period.
            points.append(TimeSeriesPoint(period_id, summary.period_names[period_id], stats.mean))
        summary.time_series[item_id] = points

    return summary


def _nested_stats(grouped: Dict[str, Dict[str, List[float]]]) -> Dict[str, Dict[str, SummaryStatistic]]:
    result: Dict[str, Dict[str, SummaryStatistic]] = {}
    for outer, inner in grouped.items():
        result[outer] = {key: SummaryStatistic.from_values(values) for key, values in inner.items()}
    return result
