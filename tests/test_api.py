"""
End-to-end tests through the HTTP surface.

Each test gets a fresh in-memory database wired into the app.
"""

from tests.conftest import utc

REPORT = {
    "issue_title": "Payment gateway outage",
    "categories": ["SEND MONEY", "CASH OUT"],
    "affected_channel": "APP,USSD",
    "impact_type": "FULL",
    "modality": "UNPLANNED",
    "start_time": "2024-01-08T06:00:00+06:00",
    "end_time": "2024-01-08T07:30:00+06:00",
    "reason": "Upstream bank timeout",
    "tracked_by": "NOC",
}

MONDAY = {"timeRange": "custom", "startDate": "2024-01-08", "endDate": "2024-01-08"}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.json()["message"]


def test_requests_carry_process_time(client):
    response = client.get("/downtime_chart/reliability_impact")
    assert "x-process-time" in response.headers


class TestDowntimeLog:
    def test_report_downtime_writes_one_row_per_category(self, client):
        response = client.post("/downtime_log/", json=REPORT)
        assert response.status_code == 201
        body = response.json()
        assert body == {
            "success": True,
            "downtime_id": "DT000001SOCP",
            "reliability_impacted": "YES",
            "records": 2,
        }

        rows = client.get("/downtime_log/DT000001SOCP").json()
        assert len(rows) == 2
        assert {row["category"] for row in rows} == {"SEND MONEY", "CASH OUT"}
        for row in rows:
            assert row["duration"] == "01:30:00"
            assert row["issue_date"] == "2024-01-08"
            assert row["modality"] == "UNPLANNED"

    def test_ids_increment(self, client):
        client.post("/downtime_log/", json=REPORT)
        second = client.post("/downtime_log/", json={**REPORT, "modality": "planned"})
        assert second.json()["downtime_id"] == "DT000002SOCP"
        assert second.json()["reliability_impacted"] == "NO"

    def test_naive_times_are_dhaka_local(self, client):
        payload = {**REPORT, "categories": ["SEND MONEY"],
                   "start_time": "2024-01-08T06:00:00", "end_time": "2024-01-08T07:00:00"}
        client.post("/downtime_log/", json=payload)
        row = client.get("/downtime_log/DT000001SOCP").json()[0]
        assert row["start_date_time"].startswith("2024-01-08T00:00:00")

    def test_category_time_override(self, client):
        payload = {
            **REPORT,
            "category_times": [{"category": "CASH OUT", "end_time": "2024-01-08T08:00:00+06:00"}],
        }
        client.post("/downtime_log/", json=payload)
        rows = {row["category"]: row for row in client.get("/downtime_log/DT000001SOCP").json()}
        assert rows["SEND MONEY"]["duration"] == "01:30:00"
        assert rows["CASH OUT"]["duration"] == "02:00:00"

    def test_invalid_reports_are_rejected(self, client):
        for payload in (
            {**REPORT, "modality": "SCHEDULED"},
            {**REPORT, "impact_type": "HALF"},
            {**REPORT, "categories": []},
            {**REPORT, "end_time": "2024-01-08T05:00:00+06:00"},
        ):
            response = client.post("/downtime_log/", json=payload)
            assert response.status_code == 400
            assert response.json()["success"] is False

    def test_unknown_downtime_id(self, client):
        response = client.get("/downtime_log/DT999999SOCP")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Downtime DT999999SOCP not found"}


class TestDowntimeLogListing:
    def _seed(self, add_downtime):
        add_downtime("DT000001SOCP", "APP", utc(2024, 1, 8, 1), utc(2024, 1, 8, 2), category="SEND MONEY")
        add_downtime("DT000001SOCP", "APP", utc(2024, 1, 8, 1), utc(2024, 1, 8, 2), category="CASH OUT")
        add_downtime("DT000002SOCP", "WEB", utc(2024, 1, 9, 3), utc(2024, 1, 9, 4),
                     modality="PLANNED", impact_type="PARTIAL", issue_title="Gateway maintenance")

    def test_filters(self, client, add_downtime):
        self._seed(add_downtime)

        def total(**params):
            return client.get("/downtime_log/", params=params).json()["total"]

        assert total() == 3
        assert total(modality="planned") == 1
        assert total(reliability="YES") == 2
        assert total(impactType="FULL") == 2
        assert total(search="gateway") == 1
        assert total(search="dt000001") == 2
        assert total(channel="app") == 2
        assert total(category="CASH OUT") == 1

    def test_sorting_and_pagination(self, client, add_downtime):
        self._seed(add_downtime)

        first_page = client.get("/downtime_log/", params={"limit": 2, "sortOrder": "ASC"}).json()
        assert first_page["total"] == 3
        assert first_page["total_pages"] == 2
        assert [row["downtime_id"] for row in first_page["downtimes"]] == ["DT000001SOCP", "DT000001SOCP"]

        second_page = client.get("/downtime_log/", params={"limit": 2, "page": 2, "sortOrder": "ASC"}).json()
        assert [row["downtime_id"] for row in second_page["downtimes"]] == ["DT000002SOCP"]

        newest_first = client.get("/downtime_log/").json()
        assert newest_first["downtimes"][0]["downtime_id"] == "DT000002SOCP"

    def test_date_range_and_mno_filters(self, client, add_downtime):
        self._seed(add_downtime)
        add_downtime("DT000003SOCP", "USSD", utc(2024, 1, 2, 1), utc(2024, 1, 2, 2), affected_mno="GP,ROBI")

        def total(**params):
            response = client.get("/downtime_log/", params=params)
            assert response.status_code == 200
            return response.json()["total"]

        assert total(startDate="2023-06-01", endDate="2023-06-02") == 0
        assert total(startDate="2024-01-08", endDate="2024-01-08") == 2
        assert total(timeRange="custom", startDate="2024-01-02", endDate="2024-01-02") == 1
        assert total(affectedMNO="robi") == 1

        response = client.get("/downtime_log/", params={"startDate": "2024-01-01"})
        assert response.status_code == 400

    def test_listing_carries_summary(self, client, add_downtime):
        self._seed(add_downtime)

        summary = client.get("/downtime_log/", params={"limit": 1}).json()["summary"]
        assert summary["total_downtimes"] == 2
        assert summary["total_records"] == 3
        assert summary["total_duration_minutes"] == 120
        assert summary["top_channels"][0] == {"channel": "APP", "count": 1}
        assert {"this_week_count", "current_week_range", "current_month_duration"} <= set(summary)

    def test_bad_time_range(self, client):
        response = client.get("/downtime_log/", params={"timeRange": "fortnight"})
        assert response.status_code == 400


class TestDowntimeChart:
    def test_reliability_impact_for_reported_incident(self, client):
        client.post("/downtime_log/", json=REPORT)

        response = client.get("/downtime_chart/reliability_impact", params=MONDAY)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True

        data = body["data"]
        minutes = {c["channel"]: c["minutes"] for c in data["channels"]}
        assert minutes["APP"] == 90
        assert minutes["USSD"] == 90
        assert minutes["WEB"] == 0
        assert data["totalAvailableMinutes"] == 1440
        assert data["totalReliabilityImpactMinutes"] == 180
        assert data["reliabilityPercentage"] == 87.5
        assert data["summary"]["reliabilityStatus"] == "Poor"
        assert data["summary"]["sla"] == "99.9%"
        assert data["calculation"]["matchesExpected"] is True
        assert "incidentCount" in data["channels"][0]

    def test_default_range_on_empty_database(self, client):
        data = client.get("/downtime_chart/reliability_impact").json()["data"]
        assert data["totalAvailableMinutes"] == 10080
        assert data["reliabilityPercentage"] == 100.0
        assert data["summary"]["reliabilityStatus"] == "Excellent"
        assert data["summary"]["meetsSla"] is True

    def test_summary_and_breakdown(self, client):
        client.post("/downtime_log/", json=REPORT)

        summary = client.get("/downtime_chart/summary", params=MONDAY).json()["data"]
        assert summary["chartData"][0]["type"] == "Service Up"
        assert summary["totalDowntimeMinutes"] == 90
        assert summary["uptimeMinutes"] == 1350

        breakdown = client.get(
            "/downtime_chart/breakdown",
            params={**MONDAY, "modality": "UNPLANNED", "impactType": "FULL"},
        ).json()["data"]
        assert [c["channel"] for c in breakdown["channels"]] == ["APP", "USSD"]
        assert [c["percentage"] for c in breakdown["channels"]] == [50, 50]
        assert breakdown["impactType"] == "FULL"

    def test_trend(self, client):
        response = client.get("/downtime_chart/trend", params={"trendType": "monthly", "view": "comparison"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["trendType"] == "monthly"
        assert len(data["comparison"]["current"]) == 6
        assert data["trend"] is None

    def test_parameter_errors(self, client):
        cases = [
            ("/downtime_chart/reliability_impact", {"timeRange": "custom"}),
            ("/downtime_chart/reliability_impact", {"timeRange": "yesterday"}),
            ("/downtime_chart/summary", {**MONDAY, "startDate": "2024-01-09"}),
            ("/downtime_chart/breakdown", {"modality": "PLANNED", "impactType": "HALF"}),
            ("/downtime_chart/breakdown", {"modality": "SOMETIMES", "impactType": "FULL"}),
            ("/downtime_chart/trend", {"trendType": "daily"}),
            ("/downtime_chart/trend", {"view": "table"}),
        ]
        for path, params in cases:
            response = client.get(path, params=params)
            assert response.status_code == 400, (path, params)
            body = response.json()
            assert body["success"] is False
            assert body["message"]

    def test_breakdown_requires_its_bucket(self, client):
        response = client.get("/downtime_chart/breakdown", params={"modality": "PLANNED"})
        assert response.status_code == 422
