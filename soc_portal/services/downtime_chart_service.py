from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from ..exceptions import ValidationError
from ..models.downtime_report import DowntimeReport
from ..schemas.downtime import DowntimeRecord
from ..schemas.downtime_chart import (
    AvailabilitySummary,
    BreakdownSummary,
    CalculationCheck,
    ChannelShare,
    ChannelTrend,
    DowntimeBreakdownReport,
    DowntimeSummaryReport,
    DowntimeTrendReport,
    DowntimeTypeSlice,
    MostImpacted,
    PeriodComparison,
    ReliabilityImpactReport,
    TimeRangeOut,
    TrendSeries,
    TrendSummary,
)
from .aggregation import (
    aggregate_channel_downtime,
    coerce_records,
    max_duration_by_incident,
    round_half_up,
    to_minutes,
)
from .channels import ALL_CHANNELS
from .reliability import SLA_LABEL, SLA_THRESHOLD, build_reliability_report, format_duration
from .time_window import Period, comparison_periods, month_periods, resolve_time_window, week_periods

logger = logging.getLogger(__name__)

MODALITIES = ("PLANNED", "UNPLANNED")
IMPACT_TYPES = ("FULL", "PARTIAL")

# Pie chart buckets, in display order
DOWNTIME_TYPES = [
    ("Planned Full", "PLANNED", "FULL"),
    ("Planned Partial", "PLANNED", "PARTIAL"),
    ("Unplanned Full", "UNPLANNED", "FULL"),
    ("Unplanned Partial", "UNPLANNED", "PARTIAL"),
]

TREND_TYPES = ("weekly", "monthly")
TREND_VIEWS = ("comparison", "trend")


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def fetch_downtime_records(
    db: Session,
    window_start: datetime,
    window_end: datetime,
    reliability_only: bool = False,
    modality: Optional[str] = None,
    impact_type: Optional[str] = None,
) -> List[DowntimeRecord]:
    """Rows overlapping the window (ongoing incidents included), as aggregator records."""
    query = db.query(DowntimeReport).filter(
        DowntimeReport.start_date_time < window_end,
        or_(DowntimeReport.end_date_time > window_start, DowntimeReport.end_date_time.is_(None)),
    )
    if reliability_only:
        query = query.filter(func.upper(DowntimeReport.reliability_impacted) == "YES")
    if modality:
        query = query.filter(func.upper(DowntimeReport.modality) == modality.upper())
    if impact_type:
        query = query.filter(func.upper(DowntimeReport.impact_type) == impact_type.upper())

    rows = query.order_by(DowntimeReport.start_date_time.asc()).all()
    logger.debug(f"Fetched {len(rows)} downtime rows for {window_start.isoformat()} - {window_end.isoformat()}")
    return coerce_records(rows)


def classify_downtime(record: DowntimeRecord) -> Optional[str]:
    """Pie chart bucket for a record; None when modality/impact are outside the four combinations."""
    modality = (record.modality or "").strip().upper()
    impact_type = (record.impact_type or "").strip().upper()
    for label, bucket_modality, bucket_impact in DOWNTIME_TYPES:
        if modality == bucket_modality and impact_type == bucket_impact:
            return label
    return None


def get_reliability_impact(
    db: Session,
    time_range: str = "thisWeek",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReliabilityImpactReport:
    now = _utc_now(now)
    window = resolve_time_window(time_range, start_date, end_date, now=now)

    records = fetch_downtime_records(db, window.start, window.end, reliability_only=True)
    totals = aggregate_channel_downtime(records, window.start, window.end, now=now)
    report = build_reliability_report(totals, window.available_minutes, window=window)

    logger.info(
        f"📊 Reliability impact for {time_range}: {report.total_reliability_impact_minutes} min "
        f"of {report.total_available_minutes}, reliability {report.reliability_percentage}%"
    )
    return report


def get_downtime_summary(
    db: Session,
    time_range: str = "thisWeek",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DowntimeSummaryReport:
    """
    Split the window's downtime into the four modality/impact buckets plus "Service Up".

    Each bucket is clipped and deduplicated on its own; an incident counts once per
    bucket with its longest clipped span.
    """
    now = _utc_now(now)
    window = resolve_time_window(time_range, start_date, end_date, now=now)
    available = window.available_minutes

    buckets: Dict[str, List[DowntimeRecord]] = {label: [] for label, _, _ in DOWNTIME_TYPES}
    for record in fetch_downtime_records(db, window.start, window.end):
        label = classify_downtime(record)
        if label is not None:
            buckets[label].append(record)

    slices = []
    for label, _, _ in DOWNTIME_TYPES:
        durations = max_duration_by_incident(buckets[label], window.start, window.end, now=now)
        minutes = to_minutes(sum(durations.values()))
        slices.append(
            DowntimeTypeSlice(
                type=label,
                minutes=minutes,
                incident_count=len(durations),
                percentage=round_half_up(minutes / available * 100, 2) if available > 0 else 0.0,
            )
        )

    total_downtime = sum(s.minutes for s in slices)
    uptime_minutes = max(0, available - total_downtime)
    uptime_percentage = round_half_up(uptime_minutes / available * 100, 2) if available > 0 else 0.0
    downtime_percentage = round_half_up(total_downtime / available * 100, 2) if available > 0 else 0.0

    if uptime_percentage >= 99:
        availability_status = "Excellent"
    elif uptime_percentage >= 95:
        availability_status = "Good"
    elif uptime_percentage >= 90:
        availability_status = "Fair"
    else:
        availability_status = "Poor"

    chart_data = [
        DowntimeTypeSlice(type="Service Up", minutes=uptime_minutes, percentage=uptime_percentage)
    ] + slices

    logger.info(f"📊 Downtime summary for {time_range}: {total_downtime} min down of {available}")

    return DowntimeSummaryReport(
        chart_data=chart_data,
        total_available_minutes=available,
        total_available_duration=format_duration(available),
        total_downtime_minutes=total_downtime,
        total_downtime_duration=format_duration(total_downtime),
        uptime_minutes=uptime_minutes,
        uptime_duration=format_duration(uptime_minutes),
        uptime_percentage=uptime_percentage,
        downtime_percentage=downtime_percentage,
        time_range=TimeRangeOut(start=window.start, end=window.end),
        calculation=CalculationCheck(
            expected_minutes=window.expected_minutes,
            actual_minutes=available,
            matches_expected=available == window.expected_minutes,
        ),
        summary=AvailabilitySummary(
            availability_status=availability_status,
            sla=SLA_LABEL,
            meets_sla=uptime_percentage >= SLA_THRESHOLD,
        ),
    )


def get_downtime_breakdown(
    db: Session,
    modality: str,
    impact_type: str,
    time_range: str = "thisWeek",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DowntimeBreakdownReport:
    """Per-channel minutes for one modality/impact bucket, largest first."""
    modality = (modality or "").strip().upper()
    impact_type = (impact_type or "").strip().upper()
    if modality not in MODALITIES:
        raise ValidationError(f"Invalid modality: {modality or None}. Must be PLANNED or UNPLANNED")
    if impact_type not in IMPACT_TYPES:
        raise ValidationError(f"Invalid impactType: {impact_type or None}. Must be FULL or PARTIAL")

    now = _utc_now(now)
    window = resolve_time_window(time_range, start_date, end_date, now=now)

    records = fetch_downtime_records(db, window.start, window.end, modality=modality, impact_type=impact_type)
    totals = aggregate_channel_downtime(records, window.start, window.end, now=now)

    touched = [t for t in totals.values() if t.incident_count > 0]
    touched.sort(key=lambda t: t.minutes, reverse=True)
    total_minutes = sum(t.minutes for t in touched)

    channels = [
        ChannelShare(
            channel=t.channel,
            minutes=t.minutes,
            incident_count=t.incident_count,
            percentage=int(round_half_up(t.minutes / total_minutes * 100)) if total_minutes > 0 else 0,
        )
        for t in touched
    ]
    minutes = [c.minutes for c in channels]

    return DowntimeBreakdownReport(
        modality=modality,
        impact_type=impact_type,
        channels=channels,
        total_minutes=total_minutes,
        total_duration=format_duration(total_minutes),
        time_range=TimeRangeOut(start=window.start, end=window.end),
        summary=BreakdownSummary(
            event_count=len(channels),
            min_downtime=min(minutes) if minutes else 0,
            max_downtime=max(minutes) if minutes else 0,
            avg_downtime=int(round_half_up(total_minutes / (len(channels) or 1))),
        ),
    )


def _channel_minutes(records: List[DowntimeRecord], period: Period, now: datetime) -> List[int]:
    totals = aggregate_channel_downtime(records, period.start, period.end, now=now)
    return [totals[channel].minutes for channel in ALL_CHANNELS]


def _trend_label(series: List[int]) -> str:
    if series[0] > series[-1]:
        return "improving"
    if series[0] < series[-1]:
        return "deteriorating"
    return "stable"


def _improvement_rate(previous: int, current: int) -> int:
    if previous <= 0:
        return 0
    return int(round_half_up((previous - current) / previous * 100))


def _comparison(previous: List[int], current: List[int], periods: List[Period], has_data: bool) -> PeriodComparison:
    total_previous = sum(previous)
    total_current = sum(current)
    return PeriodComparison(
        current=current,
        previous=previous,
        changes=[c - p for c, p in zip(current, previous)],
        total_current=total_current,
        total_previous=total_previous,
        total_change=total_current - total_previous,
        improvement_rate=_improvement_rate(total_previous, total_current),
        current_period=periods[-1].label,
        previous_period=periods[0].label,
        has_data=has_data,
    )


def get_downtime_trend(
    db: Session,
    trend_type: str = "weekly",
    view: str = "trend",
    now: Optional[datetime] = None,
) -> DowntimeTrendReport:
    """
    Channel downtime across consecutive weeks or months.

    ``comparison`` puts the current period next to the previous one; ``trend``
    covers the last 4 weeks or 6 months.
    """
    if trend_type not in TREND_TYPES:
        raise ValidationError('Invalid trendType. Must be "weekly" or "monthly"')
    if view not in TREND_VIEWS:
        raise ValidationError('Invalid view. Must be "comparison" or "trend"')

    now = _utc_now(now)
    if view == "comparison":
        periods = comparison_periods(trend_type, now)
    elif trend_type == "weekly":
        periods = week_periods(4, now)
    else:
        periods = month_periods(6, now)

    # One fetch for the whole span, then aggregate per period in memory
    records = fetch_downtime_records(db, periods[0].start, periods[-1].end)
    per_period = [_channel_minutes(records, period, now) for period in periods]
    has_data = any(sum(minutes) > 0 for minutes in per_period)

    channel_count = len(ALL_CHANNELS)

    if view == "comparison":
        previous, current = per_period
        comparison = _comparison(previous, current, periods, has_data)

        most_index = 0
        for index, minutes in enumerate(current):
            if minutes > current[most_index]:
                most_index = index

        summary = TrendSummary(
            total_downtime=comparison.total_current,
            avg_per_channel=int(round_half_up(comparison.total_current / channel_count)),
            improving_channels=len([change for change in comparison.changes if change < 0]),
            most_impacted=MostImpacted(channel=ALL_CHANNELS[most_index], total=current[most_index]),
            current_period=comparison.current_period,
            previous_period=comparison.previous_period,
            has_data=has_data,
        )
        logger.info(
            f"📈 {trend_type} comparison: {comparison.total_previous} -> {comparison.total_current} min "
            f"({comparison.improvement_rate}% improvement)"
        )
        return DowntimeTrendReport(
            trend_type=trend_type,
            view=view,
            channels=list(ALL_CHANNELS),
            summary=summary,
            comparison=comparison,
        )

    series = []
    for index, channel in enumerate(ALL_CHANNELS):
        data = [minutes[index] for minutes in per_period]
        total = sum(data)
        series.append(
            ChannelTrend(
                channel=channel,
                data=data,
                total=total,
                avg=int(round_half_up(total / len(data))),
                trend=_trend_label(data),
            )
        )

    most_impacted = series[0]
    for channel_trend in series[1:]:
        if channel_trend.total > most_impacted.total:
            most_impacted = channel_trend

    total_downtime = sum(s.total for s in series)
    summary = TrendSummary(
        total_downtime=total_downtime,
        avg_per_channel=int(round_half_up(total_downtime / channel_count)),
        improving_channels=len([s for s in series if s.trend == "improving"]),
        most_impacted=MostImpacted(channel=most_impacted.channel, total=most_impacted.total),
        period_count=len(periods),
        has_data=has_data,
    )

    logger.info(f"📈 {trend_type} trend over {len(periods)} periods: {total_downtime} min total")

    return DowntimeTrendReport(
        trend_type=trend_type,
        view=view,
        channels=list(ALL_CHANNELS),
        summary=summary,
        trend=TrendSeries(labels=[p.label for p in periods], data=series),
        comparison=_comparison(per_period[0], per_period[-1], periods, has_data),
    )
