from __future__ import annotations

from dhis2_insights.analytics.pipeline import AnalyticsPipeline
from dhis2_insights.config import settings
from dhis2_insights.dhis2.client import Dhis2Client

dhis2_client = Dhis2Client()
analytics_pipeline = AnalyticsPipeline(
    fetcher=dhis2_client,
    org_unit_source=dhis2_client,
    allow_period_passthrough=settings.allow_period_passthrough,
    excerpt_sample_rows=settings.excerpt_sample_rows,
)
