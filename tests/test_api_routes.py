"""
tests/test_api_routes.py -- Integration tests for the dashboard API routes.

Covers:
  - GET /api/v1/assets cards for every registered asset
  - GET /api/v1/assets/{id}/dashboard/header and /controlpanel, including 404s
  - GET /api/v1/admindashboard/summary
  - GET /api/v1/pmdashboard/header, /indices and the ministry rankings
  - GET /api/v1/ministries/{id}/summary and /report
  - Structured ErrorResponse envelopes for 404 and 422
"""

from __future__ import annotations


def _kpi(panel: dict, kpi_id: int) -> dict:
    for category in panel["kpi_categories"]:
        for item in category["kpis"]:
            if item["kpi_id"] == kpi_id:
                return item
    raise AssertionError(f"KPI {kpi_id} missing from control panel")


class TestAssetList:
    def test_one_card_per_asset(self, api_client):
        client, ids = api_client
        resp = client.get("/api/v1/assets")
        assert resp.status_code == 200
        cards = resp.json()
        assert [c["id"] for c in cards] == [ids["portal"], ids["clinic"], ids["schools"]]

    def test_card_fields(self, api_client):
        client, ids = api_client
        cards = {c["id"]: c for c in client.get("/api/v1/assets").json()}
        portal = cards[ids["portal"]]
        assert portal["ministry_department"] == "Ministry of Health"
        assert portal["health_status"] == "HEALTHY"
        assert portal["risk_exposure_index"] == "LOW RISK"
        assert portal["open_incidents"] == 2
        assert portal["high_severity_incidents"] == 1

        clinic = cards[ids["clinic"]]
        assert clinic["current_status"] == "DOWN"
        assert clinic["last_outage"] == "5 minutes ago"


class TestDashboardHeader:
    def test_header(self, api_client):
        client, ids = api_client
        resp = client.get(f"/api/v1/assets/{ids['portal']}/dashboard/header")
        assert resp.status_code == 200
        data = resp.json()
        assert data["asset_url"] == "health.gov.example"
        assert data["ministry"] == "Ministry of Health"
        assert data["current_health"] == "HIGH"
        assert data["risk_exposure_index"] == "HIGH"
        assert data["availability_reliability_status"] == "HIGH"
        assert data["owner_name"] == "Amina Diallo"
        assert data["technical_owner_name"] == "Not Assigned"
        assert data["citizen_happiness_metric"] == 74.5

    def test_unknown_asset_returns_structured_404(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/assets/9999/dashboard/header")
        assert resp.status_code == 404
        error = resp.json()["error"]
        assert error["code"] == "not_found"
        assert "9999" in error["message"]

    def test_non_integer_id_returns_422(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/assets/abc/dashboard/header")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestControlPanel:
    def test_health_kpi_end_to_end(self, api_client):
        client, ids = api_client
        resp = client.get(f"/api/v1/assets/{ids['portal']}/controlpanel")
        assert resp.status_code == 200
        item = _kpi(resp.json(), 1)
        assert item["target"] == "99.50%"
        assert item["current_value"] == "97.89%"
        assert item["sla_status"] == "NON-COMPLIANT"
        assert item["data_source"] == "Auto"

    def test_timed_kpi(self, api_client):
        client, ids = api_client
        item = _kpi(client.get(f"/api/v1/assets/{ids['portal']}/controlpanel").json(), 6)
        assert item["target"] == "5 sec"
        assert item["current_value"] == "3.5 sec"
        assert item["sla_status"] == "COMPLIANT"

    def test_every_seeded_kpi_is_listed(self, api_client):
        client, ids = api_client
        panel = client.get(f"/api/v1/assets/{ids['schools']}/controlpanel").json()
        assert panel["header"]["asset_name"] == "School Admissions"
        assert sum(len(c["kpis"]) for c in panel["kpi_categories"]) == 33
        assert _kpi(panel, 1)["current_value"] == "N/A"
        assert _kpi(panel, 1)["sla_status"] == "UNKNOWN"

    def test_unknown_asset(self, api_client):
        client, _ = api_client
        assert client.get("/api/v1/assets/9999/controlpanel").status_code == 404


class TestAdminDashboard:
    def test_summary(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/admindashboard/summary")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_digital_assets_monitored"] == 3
        # Portal's latest row is skipped (not a miss), clinic is down, schools has no data.
        assert data["assets_online"] == 1
        assert data["assets_online_percentage"] == 33.33
        assert data["health_index"] == 65.0
        assert data["health_status"] == "FAIR"
        assert data["compliance_index"] == 73.33
        assert data["compliance_status"] == "HIGH"
        assert data["high_risk_assets"] == 1
        assert data["high_risk_assets_status"] == "MEDIUM"
        assert data["open_incidents"] == 2
        assert data["critical_severity_open_incidents"] == 1
        assert data["critical_severity_open_incidents_percentage"] == 50.0


class TestPMDashboard:
    def test_header(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/pmdashboard/header")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_assets_being_monitored"] == 3
        assert data["total_ministries"] == 3
        assert data["digital_assets_offline"] == 2
        assert data["active_incidents"] == 2
        assert data["resolved_incidents_last_30_days"] == 1
        assert data["assets_are_vulnerable"] == 1
        assert data["compliance_threshold"] == 70.0
        assert data["last_checked"] is not None

    def test_indices(self, api_client):
        client, _ = api_client
        data = client.get("/api/v1/pmdashboard/indices").json()
        assert data["overall_compliance_index"] == 77.33
        assert data["availability_index"] == 97.0
        assert data["security_index"] == 73.33

    def test_top_compliance(self, api_client):
        client, _ = api_client
        resp = client.get("/api/v1/pmdashboard/ministries/top-compliance", params={"count": 5})
        assert resp.status_code == 200
        rows = resp.json()
        assert [(r["ministry_name"], r["compliance_index"]) for r in rows] == [
            ("Ministry of Education", 90.0),
            ("Ministry of Health", 71.0),
        ]

    def test_bottom_citizen_impact(self, api_client):
        client, _ = api_client
        rows = client.get("/api/v1/pmdashboard/ministries/bottom-citizen-impact", params={"count": 1}).json()
        assert len(rows) == 1
        assert rows[0]["ministry_name"] == "Ministry of Health"
        assert rows[0]["citizen_happiness_index"] == 57.75
        assert rows[0]["assets"] == 2

    def test_count_is_validated(self, api_client):
        client, _ = api_client
        for count in (0, 51):
            resp = client.get("/api/v1/pmdashboard/ministries/top-compliance", params={"count": count})
            assert resp.status_code == 422
            assert resp.json()["error"]["code"] == "validation_error"


class TestMinistries:
    def test_summary(self, api_client):
        client, ids = api_client
        resp = client.get(f"/api/v1/ministries/{ids['ministry_health']}/summary")
        assert resp.status_code == 200
        data = resp.json()
        assert data["ministry_name"] == "Ministry of Health"
        assert data["total_assets"] == 2
        assert data["total_incidents"] == 3
        assert data["open_incidents"] == 2
        # Only P2 counts as high severity at ministry level.
        assert data["high_severity_open_incidents"] == 0

    def test_summary_without_incidents(self, api_client):
        client, ids = api_client
        data = client.get(f"/api/v1/ministries/{ids['ministry_education']}/summary").json()
        assert data["total_assets"] == 1
        assert data["total_incidents"] == 0
        assert data["open_incidents"] == 0

    def test_report(self, api_client):
        client, ids = api_client
        resp = client.get(f"/api/v1/ministries/{ids['ministry_health']}/report")
        assert resp.status_code == 200
        data = resp.json()
        assert data["assets_monitored"] == 2
        assert data["total_incidents"] == 3
        assert data["active_incidents"] == 2
        assert data["resolution_performance"] == 33.3

        clinic, portal = data["assets"]
        assert clinic["asset_name"] == "Clinic Finder"
        assert clinic["compliance_score"] == 60.0
        assert clinic["open_incidents"] == 0
        assert clinic["incident_details"] == []

        assert portal["asset_name"] == "Health Portal"
        assert portal["compliance_score"] == 82.0
        assert [(r["kpi_id"], r["value_target_display"]) for r in portal["incident_details"]] == [
            (1, "false (99.90%)"),
            (6, "4 (3)"),
        ]
        assert portal["incident_details"][1]["kpi_name"] == "Slow page load"

    def test_unknown_ministry_returns_404(self, api_client):
        client, _ = api_client
        for path in ("summary", "report"):
            resp = client.get(f"/api/v1/ministries/9999/{path}")
            assert resp.status_code == 404
            assert resp.json()["error"]["code"] == "not_found"
