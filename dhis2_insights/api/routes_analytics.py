from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from dhis2_insights.analytics.errors import AnalyticsFetchError, InvalidSelectionError, MalformedResponseError
from dhis2_insights.analytics.periods import PeriodToken, period_date_range, period_label, resolve_period
from dhis2_insights.analytics.pipeline import AnalysisResult
from dhis2_insights.api.deps import analytics_pipeline
from dhis2_insights.models import AnalyzeRequest, AnalyzeResponse, PeriodOption

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/periods")
def list_periods() -> list[PeriodOption]:
    options = []
    for token in PeriodToken:
        resolved = resolve_period(token)
        start, end = period_date_range(token)
        options.append(
            PeriodOption(
                token=token.value,
                label=period_label(token),
                periods=resolved if isinstance(resolved, list) else [resolved],
                start_date=start,
                end_date=end,
            )
        )
    return options


@router.post("/analyze")
def analyze(payload: AnalyzeRequest) -> AnalyzeResponse:
    try:
        result = analytics_pipeline.run(
            items=payload.items,
            period=payload.period,
            org_unit=payload.org_unit.to_selection(),
            sort_key=payload.sort_key,
            direction=payload.direction,
        )
    except InvalidSelectionError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {exc.dimension} selection: {exc}") from exc
    except MalformedResponseError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except AnalyticsFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return serialize_result(result)


def serialize_result(result: AnalysisResult) -> AnalyzeResponse:
    summary = result.summary
    return AnalyzeResponse(
        query=result.query.to_request(),
        multi_org_unit_mode=result.multi_org_unit_mode,
        child_units=[asdict(unit) for unit in result.org_units.child_units],
        row_count=len(result.records),
        no_data=result.no_data.message if result.no_data else None,
        summary={
            "by_item": {k: asdict(v) for k, v in summary.by_item.items()},
            "by_period": {p: {k: asdict(v) for k, v in stats.items()} for p, stats in summary.by_period.items()},
            "by_org_unit": {o: {k: asdict(v) for k, v in stats.items()} for o, stats in summary.by_org_unit.items()},
            "time_series": {k: [asdict(p) for p in points] for k, points in summary.time_series.items()},
            "item_names": summary.item_names,
            "period_names": summary.period_names,
            "org_unit_names": summary.org_unit_names,
        },
        chart=asdict(result.chart),
        table=[asdict(row) for row in result.table],
        excerpt=result.excerpt,
        warnings=[str(w) for w in result.warnings],
    )
