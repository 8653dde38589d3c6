from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime, date, timezone
from typing import List, Optional


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DowntimeRecord(BaseModel):
    """The subset of a downtime_report_v2 row the aggregator works on."""

    model_config = ConfigDict(from_attributes=True)

    downtime_id: str
    affected_channel: str
    start_date_time: datetime
    end_date_time: Optional[datetime] = None  # ongoing incident
    modality: str
    impact_type: str
    reliability_impacted: str = "NO"

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def normalize_timezone(cls, value):
        return _as_utc(value)

    @field_validator("downtime_id", "affected_channel")
    @classmethod
    def not_blank(cls, value: str):
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class CategoryTime(BaseModel):
    """Per-category override of the incident's start/end."""

    category: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class DowntimeReportCreate(BaseModel):
    issue_title: str
    categories: List[str]
    category_times: List[CategoryTime] = []
    affected_channel: str
    affected_persona: Optional[str] = None
    affected_mno: Optional[str] = None
    affected_portal: Optional[str] = None
    affected_type: Optional[str] = None
    affected_service: Optional[str] = None
    impact_type: str
    modality: str
    start_time: datetime
    end_time: Optional[datetime] = None
    concern: Optional[str] = None
    reason: Optional[str] = None
    resolution: Optional[str] = None
    service_desk_ticket_id: Optional[str] = None
    service_desk_ticket_link: Optional[str] = None
    system_unavailability: Optional[str] = None
    tracked_by: Optional[str] = None
    remark: Optional[str] = None


class DowntimeReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial: int
    downtime_id: str
    issue_date: Optional[date] = None
    issue_title: str
    category: Optional[str] = None
    affected_channel: str
    affected_persona: Optional[str] = None
    affected_mno: Optional[str] = None
    affected_portal: Optional[str] = None
    affected_type: Optional[str] = None
    affected_service: Optional[str] = None
    impact_type: str
    modality: str
    reliability_impacted: str
    start_date_time: datetime
    end_date_time: Optional[datetime] = None
    duration: Optional[str] = None
    concern: Optional[str] = None
    reason: Optional[str] = None
    resolution: Optional[str] = None
    service_desk_ticket_id: Optional[str] = None
    service_desk_ticket_link: Optional[str] = None
    system_unavailability: Optional[str] = None
    tracked_by: Optional[str] = None
    remark: Optional[str] = None

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def normalize_timezone(cls, value):
        return _as_utc(value)


class DowntimeReportCreated(BaseModel):
    success: bool = True
    downtime_id: str
    reliability_impacted: str
    records: int


class ChannelIncidentCount(BaseModel):
    channel: str
    count: int


class DowntimeLogSummary(BaseModel):
    """Headline figures for everything matching the log filters, not just one page."""

    total_downtimes: int
    this_week_count: int
    last_week_count: int
    this_month_count: int
    total_records: int
    total_duration: str
    total_duration_minutes: int
    current_week_duration: str
    current_week_minutes: int
    current_week_range: str
    previous_week_duration: str
    previous_week_minutes: int
    previous_week_range: str
    current_month_duration: str
    current_month_minutes: int
    current_month_range: str
    top_channels: List[ChannelIncidentCount]


class DowntimeLogPage(BaseModel):
    success: bool = True
    downtimes: List[DowntimeReportOut]
    total: int
    page: int
    limit: int
    total_pages: int
    summary: DowntimeLogSummary
