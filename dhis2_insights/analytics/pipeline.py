from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from dhis2_insights.analytics.errors import NoDataCondition, UnresolvedMetadataWarning
from dhis2_insights.analytics.excerpt import ExcerptContext, build_data_excerpt
from dhis2_insights.analytics.items import parse_item_selection
from dhis2_insights.analytics.normalizer import ObservationRecord, lookup_metadata_name, normalize_response
from dhis2_insights.analytics.org_units import (
    SPECIAL_ORG_UNIT_NAMES,
    OrgUnitMetadataSource,
    OrgUnitResolution,
    OrgUnitResolver,
    OrgUnitSelection,
)
from dhis2_insights.analytics.periods import period_label, resolve_period
from dhis2_insights.analytics.projections import ASCENDING, ChartSeries, TableRow, build_chart, build_table
from dhis2_insights.analytics.query import AnalyticsQuery, build_analytics_query
from dhis2_insights.analytics.summary import Summary, summarize

logger = logging.getLogger(__name__)


class AnalyticsFetcher(Protocol):
    def fetch_analytics(self, query: AnalyticsQuery) -> Mapping[str, Any]:
        ...


@dataclass
class AnalysisResult:
    query: AnalyticsQuery
    period: str
    org_units: OrgUnitResolution
    records: List[ObservationRecord]
    summary: Summary
    chart: ChartSeries
    table: List[TableRow]
    excerpt: str
    no_data: Optional[NoDataCondition] = None
    warnings: List[UnresolvedMetadataWarning] = field(default_factory=list)

    @property
    def multi_org_unit_mode(self) -> bool:
        return self.org_units.multi_org_unit_mode


@dataclass
class AnalyticsPipeline:
    fetcher: AnalyticsFetcher
    org_unit_source: OrgUnitMetadataSource
    allow_period_passthrough: bool = False
    excerpt_sample_rows: int = 5

    def run(
        self,
        items: Sequence[Any],
        period: str,
        org_unit: OrgUnitSelection,
        sort_key: Optional[str] = None,
        direction: str = ASCENDING,
        now: Optional[date] = None,
    ) -> AnalysisResult:
        selection = parse_item_selection(items)
        periods = resolve_period(period, now=now, allow_passthrough=self.allow_period_passthrough)
        org_units = OrgUnitResolver(self.org_unit_source).resolve(org_unit)
        query = build_analytics_query(selection.ids, periods, org_units)
        logger.debug("Fetching analytics with dimensions %s", query.dimension_params())

        response = self.fetcher.fetch_analytics(query)

        org_unit_names: Dict[str, str] = org_units.known_names()
        if org_unit.display_name and not org_unit.is_special:
            org_unit_names.setdefault(org_unit.id, org_unit.display_name)

        unresolved: List[UnresolvedMetadataWarning] = []
        records = normalize_response(
            response,
            selection,
            multi_org_unit_mode=org_units.multi_org_unit_mode,
            org_unit_names=org_unit_names,
            selected_org_unit_name=org_unit.display_name or None,
            unresolved=unresolved,
        )
        logger.info("Analytics returned %d rows for %d data items", len(records), len(selection.ids))

        if records and org_units.multi_org_unit_mode and len({r.org_unit_id for r in records}) < 2:
            logger.warning(
                "Comparative mode was requested for %s but the response holds a single organisation unit",
                org_units.dimension,
            )

        summary = summarize(records, org_units.multi_org_unit_mode)
        context = ExcerptContext(
            period_label=period_label(period),
            org_unit_name=self._org_unit_label(org_unit),
            item_names=[
                lookup_metadata_name(response, i) or selection.display_names.get(i, i) for i in selection.ids
            ],
        )

        no_data = None
        if not records:
            no_data = NoDataCondition(
                message="No data for this selection",
                item_ids=tuple(selection.ids),
                period=period,
                org_unit=org_unit.id,
            )

        return AnalysisResult(
            query=query,
            period=period,
            org_units=org_units,
            records=records,
            summary=summary,
            chart=build_chart(records, org_units.multi_org_unit_mode),
            table=build_table(records, summary, sort_key=sort_key, direction=direction, period_token=period),
            excerpt=build_data_excerpt(records, summary, context, sample_size=self.excerpt_sample_rows),
            no_data=no_data,
            warnings=unresolved,
        )

    def _org_unit_label(self, org_unit: OrgUnitSelection) -> str:
        if org_unit.display_name:
            return org_unit.display_name
        return SPECIAL_ORG_UNIT_NAMES.get(org_unit.id, org_unit.id)
