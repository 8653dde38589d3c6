from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from soc_portal.database import Database
from soc_portal.main import create_app
from soc_portal.models.downtime_report import DowntimeReport
from soc_portal.services.downtime_log_service import compute_reliability_impacted


def utc(year, month, day, hour=0, minute=0, second=0):
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def database():
    """In-memory SQLite database with the schema created."""
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    with database.session() as session:
        yield session


@pytest.fixture
def client(database):
    """HTTP client for an app wired to the in-memory database."""
    return TestClient(create_app(database=database))


@pytest.fixture
def add_downtime(db_session):
    """Insert a downtime_report_v2 row; reliability flag follows the UNPLANNED + FULL rule."""

    def _add(
        downtime_id,
        affected_channel,
        start,
        end,
        modality="UNPLANNED",
        impact_type="FULL",
        reliability_impacted=None,
        category="SEND MONEY",
        issue_title="Service outage",
        affected_mno=None,
    ):
        row = DowntimeReport(
            downtime_id=downtime_id,
            issue_title=issue_title,
            category=category,
            affected_channel=affected_channel,
            affected_mno=affected_mno,
            impact_type=impact_type,
            modality=modality,
            reliability_impacted=reliability_impacted or compute_reliability_impacted(modality, impact_type),
            start_date_time=start,
            end_date_time=end,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add
