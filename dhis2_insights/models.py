from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dhis2_insights.analytics.org_units import OrgUnitSelection


class OrgUnitPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    display_name: str = Field(default="", alias="displayName")
    path: str = ""
    include_children: bool = Field(default=False, alias="includeChildOrgUnits")

    def to_selection(self) -> OrgUnitSelection:
        return OrgUnitSelection(
            id=self.id,
            display_name=self.display_name,
            path=self.path,
            include_children=self.include_children,
        )


class AnalyzeRequest(BaseModel):
    items: List[Any] = Field(description="Data item ids, {id} objects or {value} transfer-list entries")
    period: str
    org_unit: OrgUnitPayload
    sort_key: Optional[str] = None
    direction: str = "ascending"


class PeriodOption(BaseModel):
    token: str
    label: str
    periods: List[str]
    start_date: str
    end_date: str


class StatisticResponse(BaseModel):
    count: int
    min: float
    max: float
    mean: float
    median: float
    sum: float


class ChartDatasetResponse(BaseModel):
    key: str
    label: str
    data: List[float]


class ChartResponse(BaseModel):
    labels: List[str]
    period_ids: List[str]
    datasets: List[ChartDatasetResponse]


class TableRowResponse(BaseModel):
    period: str
    period_id: str
    item: str
    item_id: str
    org_unit: str
    org_unit_id: str
    value: str
    numeric_value: Optional[float] = None


class TimeSeriesPointResponse(BaseModel):
    period_id: str
    period_name: str
    value: float


class SummaryResponse(BaseModel):
    by_item: Dict[str, StatisticResponse]
    by_period: Dict[str, Dict[str, StatisticResponse]]
    by_org_unit: Dict[str, Dict[str, StatisticResponse]]
    time_series: Dict[str, List[TimeSeriesPointResponse]]
    item_names: Dict[str, str]
    period_names: Dict[str, str]
    org_unit_names: Dict[str, str]


class AnalyzeResponse(BaseModel):
    query: Dict[str, Any]
    multi_org_unit_mode: bool
    child_units: List[Dict[str, Any]]
    row_count: int
    no_data: Optional[str] = None
    summary: SummaryResponse
    chart: ChartResponse
    table: List[TableRowResponse]
    excerpt: str
    warnings: List[str]
