from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from dhis2_insights.analytics.formatters import MISSING, format_number
from dhis2_insights.analytics.normalizer import ObservationRecord
from dhis2_insights.analytics.periods import describe_period, format_period_id, period_sort_key
from dhis2_insights.analytics.summary import Summary, SummaryStatistic


@dataclass(frozen=True)
class ExcerptContext:
    period_label: str
    org_unit_name: str
    item_names: List[str] = field(default_factory=list)


def build_data_excerpt(
    records: Sequence[ObservationRecord],
    summary: Summary,
    context: ExcerptContext,
    sample_size: int = 5,
) -> str:
    """Plain-text rendering of the data handed to the chat assistant."""
    if not records:
        return _no_data_excerpt(context)

    lines: List[str] = ["Data Sample:", "Data Element,Period,Organisation Unit,Value"]
    for r in records[:sample_size]:
        value = MISSING if r.value is None else format_number(r.value)
        lines.append(f"{r.item_name},{_period_text(r.period_id, r.period_name)},{r.org_unit_name},{value}")
    if len(records) > sample_size:
        lines.append(f"... (and {len(records) - sample_size} more rows)")

    lines.append("")
    lines.append("Summary Statistics:")
    for item_id, stats in summary.by_item.items():
        lines.append(
            f"{summary.item_names.get(item_id, item_id)}: {_stats_text(stats)}, "
            f"Median={format_number(stats.median)}, Sum={format_number(stats.sum)}"
        )

    if summary.multi_org_unit_mode and summary.by_org_unit:
        lines.append("")
        lines.append("Organization Unit Breakdown:")
        for org_unit_id in sorted(summary.by_org_unit, key=lambda ou: summary.org_unit_names.get(ou, ou).casefold()):
            lines.append(f"{summary.org_unit_names.get(org_unit_id, org_unit_id)}:")
            for item_id, stats in summary.by_org_unit[org_unit_id].items():
                lines.append(f"  {summary.item_names.get(item_id, item_id)}: {_stats_text(stats)}")
        for item_id in summary.by_item:
            ranking = summary.rank_org_units(item_id)
            if len(ranking) > 1:
                best, worst = ranking[0], ranking[-1]
                lines.append(
                    f"{summary.item_names.get(item_id, item_id)}: highest mean at "
                    f"{summary.org_unit_names.get(best[0], best[0])} ({format_number(best[1].mean)}), lowest at "
                    f"{summary.org_unit_names.get(worst[0], worst[0])} ({format_number(worst[1].mean)})"
                )

    if len(summary.by_period) > 1:
        lines.append("")
        lines.append("Period-by-Period Breakdown:")
        for period_id in sorted(summary.by_period, key=period_sort_key):
            lines.append(f"{_period_text(period_id, summary.period_names.get(period_id, period_id))}:")
            for item_id, stats in summary.by_period[period_id].items():
                lines.append(f"  {summary.item_names.get(item_id, item_id)}: {_stats_text(stats)}")

    if any(len(points) > 1 for points in summary.time_series.values()):
        lines.append("")
        lines.append("Time Series Data (Chronological Order):")
        for item_id, points in summary.time_series.items():
            lines.append(f"{summary.item_names.get(item_id, item_id)} over time:")
            for point in points:
                lines.append(f"  {_period_text(point.period_id, point.period_name)}: {format_number(point.value)}")
            highest = summary.highest_period(item_id)
            lowest = summary.lowest_period(item_id)
            if highest and lowest and highest[0] != lowest[0]:
                lines.append(
                    f"  Highest: {describe_period(highest[0])}, lowest: {describe_period(lowest[0])}"
                )

    return "\n".join(lines) + "\n"


def _no_data_excerpt(context: ExcerptContext) -> str:
    items = ", ".join(context.item_names) if context.item_names else "Unknown"
    return (
        "No data available for the selected data elements in the specified period and location.\n\n"
        f"Selected data elements: {items}\n"
        f"Period: {context.period_label}\n"
        f"Organization Unit: {context.org_unit_name}\n\n"
        "Note: This is likely because:\n"
        "- The specific combination of elements, period, and location has no records\n"
        "- The data elements may be new or not yet populated\n"
    )


def _stats_text(stats: SummaryStatistic) -> str:
    return (
        f"Mean={format_number(stats.mean)}, Min={format_number(stats.min)}, "
        f"Max={format_number(stats.max)}, Count={stats.count}"
    )


def _period_text(period_id: str, period_name: str) -> str:
    # Metadata names win; bare ids get the long form ("June 2024").
    if period_name and period_name not in (period_id, format_period_id(period_id)):
        return period_name
    return describe_period(period_id)
