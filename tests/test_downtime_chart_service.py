"""Service-level tests for the downtime chart reports against an in-memory database."""

import pytest

from soc_portal.exceptions import ValidationError
from soc_portal.services.downtime_chart_service import (
    get_downtime_breakdown,
    get_downtime_summary,
    get_downtime_trend,
    get_reliability_impact,
)
from tests.conftest import utc

NOW = utc(2024, 1, 10, 12)
DAY = "2024-01-08"


@pytest.fixture
def monday_incidents(add_downtime):
    # Reported under two categories; must count once
    add_downtime("DT000001SOCP", "ALL", utc(2024, 1, 8, 0), utc(2024, 1, 8, 1),
                 modality="PLANNED", impact_type="FULL", category="SEND MONEY")
    add_downtime("DT000001SOCP", "ALL", utc(2024, 1, 8, 0), utc(2024, 1, 8, 1),
                 modality="PLANNED", impact_type="FULL", category="CASH OUT")
    add_downtime("DT000002SOCP", "APP", utc(2024, 1, 8, 2), utc(2024, 1, 8, 2, 30),
                 modality="UNPLANNED", impact_type="PARTIAL")
    # Starts before local midnight (18:00 UTC); 20 minutes fall inside the day
    add_downtime("DT000003SOCP", "WEB", utc(2024, 1, 7, 17), utc(2024, 1, 7, 18, 20),
                 modality="UNPLANNED", impact_type="FULL")
    add_downtime("DT000004SOCP", "SMS", utc(2024, 1, 9, 2), utc(2024, 1, 9, 3),
                 modality="PLANNED", impact_type="PARTIAL")


class TestReliabilityImpact:
    def test_only_reliability_impacting_rows_count(self, db_session, monday_incidents):
        report = get_reliability_impact(db_session, "custom", DAY, DAY, now=NOW)

        minutes = {c.channel: c.minutes for c in report.channels}
        assert minutes == {"APP": 0, "USSD": 0, "WEB": 20, "SMS": 0, "MIDDLEWARE": 0, "INWARD SERVICE": 0}
        assert report.total_available_minutes == 1440
        assert report.total_reliability_impact_minutes == 20
        assert report.total_incidents == 1
        assert report.reliability_impact_percentage == 1.39
        assert report.reliability_percentage == 98.61
        assert report.summary.reliability_status == "Fair"
        assert report.summary.meets_sla is False
        assert report.summary.most_reliable_channel == "APP"
        assert report.summary.least_reliable_channel == "WEB"
        assert report.calculation.matches_expected is True

    def test_empty_week_is_fully_reliable(self, db_session):
        report = get_reliability_impact(db_session, now=NOW)
        assert report.total_available_minutes == 10080
        assert report.reliability_percentage == 100.0
        assert report.summary.reliability_status == "Excellent"
        assert report.summary.meets_sla is True

    def test_ongoing_incident_counts_until_now(self, db_session, add_downtime):
        add_downtime("DT000009SOCP", "USSD", utc(2024, 1, 10, 11), None)
        report = get_reliability_impact(db_session, "thisWeek", now=NOW)
        ussd = next(c for c in report.channels if c.channel == "USSD")
        assert ussd.minutes == 60
        assert ussd.incident_count == 1

    def test_unknown_time_range_is_rejected(self, db_session):
        with pytest.raises(ValidationError):
            get_reliability_impact(db_session, "fortnight", now=NOW)


class TestDowntimeSummary:
    def test_buckets_and_uptime(self, db_session, monday_incidents):
        report = get_downtime_summary(db_session, "custom", DAY, DAY, now=NOW)

        slices = {s.type: s for s in report.chart_data}
        assert [s.type for s in report.chart_data] == [
            "Service Up", "Planned Full", "Planned Partial", "Unplanned Full", "Unplanned Partial",
        ]
        assert slices["Planned Full"].minutes == 60
        assert slices["Planned Full"].incident_count == 1
        assert slices["Planned Full"].percentage == 4.17
        assert slices["Planned Partial"].minutes == 0
        assert slices["Unplanned Full"].minutes == 20
        assert slices["Unplanned Partial"].minutes == 30

        assert report.total_downtime_minutes == 110
        assert report.uptime_minutes == 1330
        assert report.uptime_percentage == 92.36
        assert report.downtime_percentage == 7.64
        assert slices["Service Up"].minutes == 1330
        assert report.summary.availability_status == "Fair"
        assert report.summary.meets_sla is False


class TestDowntimeBreakdown:
    def test_all_channel_incident_spreads_evenly(self, db_session, monday_incidents):
        report = get_downtime_breakdown(db_session, "planned", "full", "custom", DAY, DAY, now=NOW)

        assert report.modality == "PLANNED"
        assert report.impact_type == "FULL"
        assert [c.channel for c in report.channels] == [
            "APP", "USSD", "WEB", "SMS", "MIDDLEWARE", "INWARD SERVICE",
        ]
        assert all(c.minutes == 60 for c in report.channels)
        assert all(c.percentage == 17 for c in report.channels)
        assert report.total_minutes == 360
        assert report.total_duration == "6h 0m"
        assert report.summary.event_count == 6
        assert report.summary.avg_downtime == 60

    def test_untouched_channels_are_left_out(self, db_session, monday_incidents):
        report = get_downtime_breakdown(db_session, "UNPLANNED", "PARTIAL", "custom", DAY, DAY, now=NOW)
        assert [c.channel for c in report.channels] == ["APP"]
        assert report.channels[0].percentage == 100

    def test_empty_bucket(self, db_session, monday_incidents):
        report = get_downtime_breakdown(db_session, "PLANNED", "PARTIAL", "custom", DAY, DAY, now=NOW)
        assert report.channels == []
        assert report.total_minutes == 0
        assert report.summary.min_downtime == 0

    def test_invalid_bucket_is_rejected(self, db_session):
        with pytest.raises(ValidationError, match="modality"):
            get_downtime_breakdown(db_session, "SCHEDULED", "FULL", now=NOW)
        with pytest.raises(ValidationError, match="impactType"):
            get_downtime_breakdown(db_session, "PLANNED", "", now=NOW)


@pytest.fixture
def two_weeks_of_incidents(add_downtime):
    add_downtime("DT000011SOCP", "APP", utc(2024, 1, 8, 4), utc(2024, 1, 8, 5))
    add_downtime("DT000012SOCP", "APP", utc(2024, 1, 2, 4), utc(2024, 1, 2, 6))
    add_downtime("DT000013SOCP", "SMS", utc(2024, 1, 3, 4), utc(2024, 1, 3, 4, 30),
                 modality="PLANNED", impact_type="PARTIAL")


class TestDowntimeTrend:
    def test_weekly_comparison(self, db_session, two_weeks_of_incidents):
        report = get_downtime_trend(db_session, "weekly", "comparison", now=NOW)

        assert report.trend is None
        assert report.comparison.current == [60, 0, 0, 0, 0, 0]
        assert report.comparison.previous == [120, 0, 0, 30, 0, 0]
        assert report.comparison.total_change == -90
        assert report.comparison.improvement_rate == 60
        assert report.comparison.current_period == "Current (Jan 7 - Jan 13)"
        assert report.summary.improving_channels == 2
        assert report.summary.avg_per_channel == 10
        assert report.summary.most_impacted.channel == "APP"
        assert report.summary.has_data is True

    def test_weekly_trend(self, db_session, two_weeks_of_incidents):
        report = get_downtime_trend(db_session, "weekly", "trend", now=NOW)

        assert len(report.trend.labels) == 4
        series = {s.channel: s for s in report.trend.data}
        assert series["APP"].data == [0, 0, 120, 60]
        assert series["APP"].total == 180
        assert series["APP"].trend == "deteriorating"
        assert series["SMS"].data == [0, 0, 30, 0]
        assert series["SMS"].trend == "stable"
        assert report.summary.total_downtime == 210
        assert report.summary.most_impacted.channel == "APP"
        assert report.summary.period_count == 4

    def test_monthly_trend_labels(self, db_session):
        report = get_downtime_trend(db_session, "monthly", "trend", now=NOW)
        assert report.trend.labels == ["Aug", "Sep", "Oct", "Nov", "Dec", "Jan"]
        assert report.summary.has_data is False
        assert report.comparison.improvement_rate == 0

    def test_invalid_trend_parameters(self, db_session):
        with pytest.raises(ValidationError, match="trendType"):
            get_downtime_trend(db_session, "daily", now=NOW)
        with pytest.raises(ValidationError, match="view"):
            get_downtime_trend(db_session, "weekly", "table", now=NOW)
