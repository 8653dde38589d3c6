from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging
import re
import threading
from collections import defaultdict

from ..exceptions import NotFoundError, ValidationError
from ..models.downtime_report import DowntimeReport
from ..schemas.downtime import ChannelIncidentCount, DowntimeLogSummary, DowntimeReportCreate
from .aggregation import coerce_records, incident_spans
from .channels import expand_channels
from .time_window import DHAKA_TZ, Period, month_periods, resolve_time_window, week_periods

logger = logging.getLogger(__name__)

DOWNTIME_ID_PATTERN = re.compile(r"^DT(\d+)SOCP$")

# Serializes id allocation within one process. Separate workers can still collide;
# a database sequence would be needed to close that gap.
_ID_LOCK = threading.Lock()

SORTABLE_COLUMNS = {
    "start_date_time": DowntimeReport.start_date_time,
    "end_date_time": DowntimeReport.end_date_time,
    "issue_date": DowntimeReport.issue_date,
    "downtime_id": DowntimeReport.downtime_id,
    "issue_title": DowntimeReport.issue_title,
    "category": DowntimeReport.category,
    "created_at": DowntimeReport.created_at,
}


def compute_reliability_impacted(modality: str, impact_type: str) -> str:
    """Only unplanned, full outages count against reliability."""
    if modality.strip().upper() == "UNPLANNED" and impact_type.strip().upper() == "FULL":
        return "YES"
    return "NO"


def format_duration(seconds: Optional[float]) -> Optional[str]:
    """HH:MM:SS, or None for an ongoing incident."""
    if seconds is None:
        return None
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def next_downtime_id(db: Session) -> str:
    highest = 0
    for (downtime_id,) in db.query(DowntimeReport.downtime_id).distinct():
        match = DOWNTIME_ID_PATTERN.match(downtime_id or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"DT{highest + 1:06d}SOCP"


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Form input without an offset is Dhaka local time
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=DHAKA_TZ)
    return value.astimezone(timezone.utc)


def create_downtime_report(db: Session, payload: DowntimeReportCreate) -> Tuple[str, str, int]:
    """
    Store one row per reported category under a freshly generated incident id.

    Returns (downtime_id, reliability_impacted, rows_written).
    """
    modality = payload.modality.strip().upper()
    impact_type = payload.impact_type.strip().upper()
    if modality not in ("PLANNED", "UNPLANNED"):
        raise ValidationError(f"Invalid modality: {payload.modality}")
    if impact_type not in ("FULL", "PARTIAL"):
        raise ValidationError(f"Invalid impact type: {payload.impact_type}")

    categories = [c.strip() for c in payload.categories if c and c.strip()]
    if not categories:
        raise ValidationError("At least one category is required")
    if not payload.affected_channel.strip():
        raise ValidationError("Affected channel is required")

    start_time = _to_utc(payload.start_time)
    end_time = _to_utc(payload.end_time)
    if end_time is not None and end_time < start_time:
        raise ValidationError("End time cannot be before start time")

    overrides = {item.category.strip(): item for item in payload.category_times}
    reliability_impacted = compute_reliability_impacted(modality, impact_type)
    rows = []
    for category in categories:
        override = overrides.get(category)
        category_start = _to_utc(override.start_time) if override and override.start_time else start_time
        category_end = _to_utc(override.end_time) if override and override.end_time else end_time
        if category_end is not None and category_end < category_start:
            raise ValidationError(f"End time cannot be before start time for category {category}")

        duration_seconds = (category_end - category_start).total_seconds() if category_end else None

        rows.append(
            DowntimeReport(
                issue_date=category_start.astimezone(DHAKA_TZ).date(),
                issue_title=payload.issue_title,
                category=category,
                affected_channel=payload.affected_channel.strip(),
                affected_persona=payload.affected_persona,
                affected_mno=payload.affected_mno,
                affected_portal=payload.affected_portal,
                affected_type=payload.affected_type,
                affected_service=payload.affected_service,
                impact_type=impact_type,
                modality=modality,
                reliability_impacted=reliability_impacted,
                start_date_time=category_start,
                end_date_time=category_end,
                duration=format_duration(duration_seconds),
                concern=payload.concern,
                reason=payload.reason,
                resolution=payload.resolution,
                service_desk_ticket_id=payload.service_desk_ticket_id,
                service_desk_ticket_link=payload.service_desk_ticket_link,
                system_unavailability=payload.system_unavailability,
                tracked_by=payload.tracked_by,
                remark=payload.remark,
            )
        )

    # Ids are read-then-incremented; allocation and commit must not interleave
    with _ID_LOCK:
        downtime_id = next_downtime_id(db)
        for row in rows:
            row.downtime_id = downtime_id
        db.add_all(rows)
        db.commit()

    logger.info(
        f"📝 Downtime {downtime_id} recorded: {len(categories)} categories, "
        f"{modality}/{impact_type}, reliability impacted={reliability_impacted}"
    )
    return downtime_id, reliability_impacted, len(categories)


def get_downtime_by_id(db: Session, downtime_id: str) -> List[DowntimeReport]:
    rows = db.query(DowntimeReport)\
        .filter(DowntimeReport.downtime_id == downtime_id)\
        .order_by(DowntimeReport.start_date_time.desc())\
        .all()
    if not rows:
        raise NotFoundError(f"Downtime {downtime_id} not found")
    return rows


def _filtered_query(
    db: Session,
    search: str = "",
    category: str = "",
    impact_type: str = "",
    modality: str = "",
    reliability: str = "",
    channel: str = "",
    affected_mno: str = "",
    time_range: str = "",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
):
    query = db.query(DowntimeReport)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(DowntimeReport.issue_title).like(pattern),
                func.lower(DowntimeReport.category).like(pattern),
                func.lower(DowntimeReport.downtime_id).like(pattern),
            )
        )
    if category:
        query = query.filter(DowntimeReport.category == category)
    if impact_type:
        query = query.filter(func.upper(DowntimeReport.impact_type) == impact_type.upper())
    if modality:
        query = query.filter(func.upper(DowntimeReport.modality) == modality.upper())
    if reliability:
        query = query.filter(func.upper(DowntimeReport.reliability_impacted) == reliability.upper())
    if channel:
        query = query.filter(func.upper(DowntimeReport.affected_channel).like(f"%{channel.upper()}%"))
    if affected_mno:
        query = query.filter(func.upper(DowntimeReport.affected_mno).like(f"%{affected_mno.upper()}%"))

    # A preset token and an explicit date range both narrow the start time
    windows = []
    if time_range and time_range != "custom":
        windows.append(resolve_time_window(time_range, now=now))
    if time_range == "custom" or start_date or end_date:
        windows.append(resolve_time_window("custom", start_date, end_date, now=now))
    for window in windows:
        query = query.filter(
            DowntimeReport.start_date_time >= window.start,
            DowntimeReport.start_date_time <= window.end,
        )

    return query


def _hours_minutes(seconds: float) -> Tuple[str, int]:
    minutes = int(seconds // 60)
    return f"{minutes // 60}h {minutes % 60}m", minutes


def _period_range(period: Period) -> str:
    first = period.start.astimezone(DHAKA_TZ)
    last = period.end.astimezone(DHAKA_TZ)
    return f"{first:%d %b} - {last:%d %b}"


def summarize_downtime_logs(rows, now: Optional[datetime] = None) -> DowntimeLogSummary:
    """
    Incident counts, durations and busiest channels over the filtered rows.

    Counts are distinct incidents whose rows start inside the period. Durations
    take the longest row of each incident, placed by the incident's first start.
    """
    records = coerce_records(rows)
    spans = incident_spans(records, now=now)

    previous_week, current_week = week_periods(2, now)
    (current_month,) = month_periods(1, now)

    def count_in(period: Period) -> int:
        return len({
            r.downtime_id for r in records
            if period.start <= r.start_date_time <= period.end
        })

    def seconds_in(period: Period) -> float:
        return sum(
            seconds for first_start, seconds in spans.values()
            if period.start <= first_start <= period.end
        )

    incidents_by_channel = defaultdict(set)
    for record in records:
        for tag in expand_channels(record.affected_channel):
            incidents_by_channel[tag].add(record.downtime_id)
    top_channels = sorted(incidents_by_channel.items(), key=lambda item: (-len(item[1]), item[0]))[:3]

    total_duration, total_minutes = _hours_minutes(sum(seconds for _, seconds in spans.values()))
    week_duration, week_minutes = _hours_minutes(seconds_in(current_week))
    last_week_duration, last_week_minutes = _hours_minutes(seconds_in(previous_week))
    month_duration, month_minutes = _hours_minutes(seconds_in(current_month))

    return DowntimeLogSummary(
        total_downtimes=len(spans),
        this_week_count=count_in(current_week),
        last_week_count=count_in(previous_week),
        this_month_count=count_in(current_month),
        total_records=len(records),
        total_duration=total_duration,
        total_duration_minutes=total_minutes,
        current_week_duration=week_duration,
        current_week_minutes=week_minutes,
        current_week_range=_period_range(current_week),
        previous_week_duration=last_week_duration,
        previous_week_minutes=last_week_minutes,
        previous_week_range=_period_range(previous_week),
        current_month_duration=month_duration,
        current_month_minutes=month_minutes,
        current_month_range=_period_range(current_month),
        top_channels=[
            ChannelIncidentCount(channel=tag, count=len(incidents)) for tag, incidents in top_channels
        ],
    )


def list_downtime_logs(
    db: Session,
    search: str = "",
    category: str = "",
    impact_type: str = "",
    modality: str = "",
    reliability: str = "",
    channel: str = "",
    affected_mno: str = "",
    time_range: str = "",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort_by: str = "start_date_time",
    sort_order: str = "DESC",
    page: int = 1,
    limit: int = 12,
    now: Optional[datetime] = None,
) -> Tuple[List[DowntimeReport], int, DowntimeLogSummary]:
    """Filtered, sorted page of downtime rows, the total match count and the summary block."""
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")

    query = _filtered_query(
        db,
        search=search,
        category=category,
        impact_type=impact_type,
        modality=modality,
        reliability=reliability,
        channel=channel,
        affected_mno=affected_mno,
        time_range=time_range,
        start_date=start_date,
        end_date=end_date,
        now=now,
    )

    total = query.count()

    column = SORTABLE_COLUMNS.get(sort_by, DowntimeReport.start_date_time)
    ordering = column.asc() if sort_order.upper() == "ASC" else column.desc()
    rows = query.order_by(ordering, DowntimeReport.serial.asc())\
        .offset((page - 1) * limit)\
        .limit(limit)\
        .all()

    summary = summarize_downtime_logs(query.all(), now=now)

    logger.info(
        f"Downtime log page {page}: {len(rows)} of {total} rows, "
        f"{summary.total_downtimes} incidents"
    )
    return rows, total, summary
