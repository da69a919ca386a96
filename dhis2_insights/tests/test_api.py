from datetime import date

from fastapi.testclient import TestClient

from dhis2_insights.analytics.errors import AnalyticsFetchError
from dhis2_insights.analytics.org_units import OrgUnitDescriptor
from dhis2_insights.analytics.pipeline import AnalyticsPipeline
from dhis2_insights.api import routes_analytics
from dhis2_insights.main import app


class FakeDhis2:
    def __init__(self, response=None, error=None, children=None):
        self.response = response
        self.error = error
        self.children = children or []
        self.children_requested = []

    def fetch_analytics(self, query):
        if self.error:
            raise self.error
        return self.response

    def fetch_children(self, unit_id):
        self.children_requested.append(unit_id)
        return self.children


def _install(monkeypatch, fake):
    monkeypatch.setattr(routes_analytics, "analytics_pipeline", AnalyticsPipeline(fetcher=fake, org_unit_source=fake))
    return TestClient(app)


def test_health():
    assert TestClient(app).get("/health").json() == {"status": "ok"}


def test_list_periods():
    response = TestClient(app).get("/analytics/periods")
    assert response.status_code == 200
    options = {o["token"]: o for o in response.json()}
    assert len(options["LAST_12_MONTHS"]["periods"]) == 12
    assert options["THIS_YEAR"]["periods"] == [str(date.today().year)]
    assert options["LAST_MONTH"]["label"] == "Last Month"


def test_analyze_returns_projections(monkeypatch, two_items_three_periods):
    client = _install(monkeypatch, FakeDhis2(response=two_items_three_periods))
    response = client.post(
        "/analytics/analyze",
        json={
            "items": [{"value": "ANC1"}, {"value": "ANC4"}],
            "period": "THIS_QUARTER",
            "org_unit": {"id": "X", "display_name": "District X"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["row_count"] == 6
    assert body["no_data"] is None
    assert body["multi_org_unit_mode"] is False
    assert body["query"]["dx"] == ["ANC1", "ANC4"]
    assert body["summary"]["by_item"]["ANC1"]["median"] == 20
    assert len(body["chart"]["datasets"]) == 2
    assert body["table"][0]["value"] == "10"
    assert body["excerpt"].startswith("Data Sample:")


def test_analyze_no_data(monkeypatch, make_response):
    client = _install(monkeypatch, FakeDhis2(response=make_response([])))
    response = client.post(
        "/analytics/analyze",
        json={"items": ["ANC1"], "period": "THIS_MONTH", "org_unit": {"id": "USER_ORGUNIT"}},
    )
    assert response.status_code == 200
    assert response.json()["no_data"] == "No data for this selection"


def test_analyze_rejects_bad_selection(monkeypatch, make_response):
    client = _install(monkeypatch, FakeDhis2(response=make_response([])))
    response = client.post(
        "/analytics/analyze",
        json={"items": [], "period": "THIS_MONTH", "org_unit": {"id": "X"}},
    )
    assert response.status_code == 400
    assert "dx" in response.json()["detail"]


def test_analyze_malformed_response(monkeypatch, make_response):
    headers = [{"name": "dx"}, {"name": "pe"}, {"name": "value"}]
    client = _install(monkeypatch, FakeDhis2(response=make_response([], headers=headers)))
    response = client.post(
        "/analytics/analyze",
        json={"items": ["a"], "period": "THIS_MONTH", "org_unit": {"id": "X"}},
    )
    assert response.status_code == 502
    assert "ou" in response.json()["detail"]


def test_analyze_fetch_failure(monkeypatch):
    client = _install(monkeypatch, FakeDhis2(error=AnalyticsFetchError("Failed to fetch data: timeout")))
    response = client.post(
        "/analytics/analyze",
        json={"items": ["a"], "period": "THIS_MONTH", "org_unit": {"id": "X"}},
    )
    assert response.status_code == 502


def test_analyze_accepts_camel_case_org_unit_fields(monkeypatch, make_response):
    children = [
        OrgUnitDescriptor(id="c1", display_name="Clinic One", parent="D"),
        OrgUnitDescriptor(id="c2", display_name="Clinic Two", parent="D"),
    ]
    rows = [("ANC1", "202401", "c1", "10"), ("ANC1", "202401", "c2", "30")]
    fake = FakeDhis2(response=make_response(rows), children=children)
    client = _install(monkeypatch, fake)
    response = client.post(
        "/analytics/analyze",
        json={
            "items": ["ANC1"],
            "period": "THIS_MONTH",
            "org_unit": {"id": "D", "displayName": "District", "includeChildOrgUnits": True},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert fake.children_requested == ["D"]
    assert body["multi_org_unit_mode"] is True
    assert body["query"]["ou"] == "c1;c2"
    assert sorted(body["summary"]["org_unit_names"].values()) == ["Clinic One", "Clinic Two"]
