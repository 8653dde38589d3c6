"""
Interval clipping and per-incident deduplication of downtime rows.

Every row overlapping the query window is clipped to it; the clipped span is
credited to each channel the row affects. Rows of the same incident that hit
the same channel are collapsed to their longest span before channel totals are
summed, so an incident reported under several categories is counted once.
"""
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaError

from ..exceptions import DataError, ValidationError
from ..schemas.downtime import DowntimeRecord
from .channels import ALL_CHANNELS, expand_channels

logger = logging.getLogger(__name__)


class ChannelDowntime(NamedTuple):
    channel: str
    minutes: int
    seconds: float
    incident_count: int


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upward like JS Math.round (2.5 -> 3, -2.5 -> -2)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def to_minutes(seconds: float) -> int:
    return int(round_half_up(seconds / 60))


def coerce_record(row) -> DowntimeRecord:
    if isinstance(row, DowntimeRecord):
        return row
    try:
        return DowntimeRecord.model_validate(row)
    except SchemaError as e:
        row_id = row.get("downtime_id") if isinstance(row, dict) else getattr(row, "downtime_id", None)
        raise DataError(f"Malformed downtime row {row_id!r}", details={"errors": e.errors()})


def coerce_records(rows: Iterable) -> List[DowntimeRecord]:
    """Convert fetched rows (ORM objects or mappings); rows that do not fit are logged and skipped."""
    records = []
    for row in rows:
        try:
            records.append(coerce_record(row))
        except DataError as e:
            logger.warning(f"⚠️ Skipping downtime row: {e.message} {e.details.get('errors')}")
    return records


def _check_window(window_start: datetime, window_end: datetime):
    if window_end < window_start:
        raise ValidationError("Window end cannot be before window start")


def clip_seconds(
    record: DowntimeRecord,
    window_start: datetime,
    window_end: datetime,
    now: Optional[datetime] = None,
) -> Optional[float]:
    """
    Seconds of ``record`` inside the window, or None when it does not overlap.

    An ongoing incident (no end time) runs until ``now``.
    """
    end_time = record.end_date_time or now or datetime.now(timezone.utc)

    if not (record.start_date_time < window_end and end_time > window_start):
        return None

    clipped_start = max(record.start_date_time, window_start)
    clipped_end = min(end_time, window_end)
    return max(0.0, (clipped_end - clipped_start).total_seconds())


def max_duration_by_incident_channel(
    rows: Iterable,
    window_start: datetime,
    window_end: datetime,
    now: Optional[datetime] = None,
) -> Dict[Tuple[str, str], float]:
    """Longest clipped span per (incident, channel) pair."""
    _check_window(window_start, window_end)

    durations: Dict[Tuple[str, str], float] = {}
    for record in coerce_records(rows):
        seconds = clip_seconds(record, window_start, window_end, now)
        if seconds is None:
            continue
        for channel in expand_channels(record.affected_channel):
            key = (record.downtime_id, channel)
            if key not in durations or seconds > durations[key]:
                durations[key] = seconds
    return durations


def max_duration_by_incident(
    rows: Iterable,
    window_start: datetime,
    window_end: datetime,
    now: Optional[datetime] = None,
) -> Dict[str, float]:
    """Longest clipped span per incident, regardless of channel."""
    _check_window(window_start, window_end)

    durations: Dict[str, float] = {}
    for record in coerce_records(rows):
        seconds = clip_seconds(record, window_start, window_end, now)
        if seconds is None:
            continue
        if record.downtime_id not in durations or seconds > durations[record.downtime_id]:
            durations[record.downtime_id] = seconds
    return durations


def incident_spans(rows: Iterable, now: Optional[datetime] = None) -> Dict[str, Tuple[datetime, float]]:
    """
    First start and longest unclipped span per incident.

    Used where an incident is placed by when it began rather than clipped to a
    window; an ongoing incident runs until ``now``.
    """
    now = now or datetime.now(timezone.utc)
    spans: Dict[str, Tuple[datetime, float]] = {}
    for record in coerce_records(rows):
        end_time = record.end_date_time or now
        seconds = max(0.0, (end_time - record.start_date_time).total_seconds())
        if record.downtime_id in spans:
            first_start, longest = spans[record.downtime_id]
            spans[record.downtime_id] = (min(first_start, record.start_date_time), max(longest, seconds))
        else:
            spans[record.downtime_id] = (record.start_date_time, seconds)
    return spans


def aggregate_channel_downtime(
    rows: Iterable,
    window_start: datetime,
    window_end: datetime,
    now: Optional[datetime] = None,
    channels: Sequence[str] = ALL_CHANNELS,
) -> Dict[str, ChannelDowntime]:
    """
    Total downtime per channel inside the window.

    The result lists ``channels`` first, in order (zero when untouched), followed
    by any other tag found in the rows, alphabetically.
    """
    durations = max_duration_by_incident_channel(rows, window_start, window_end, now)

    seconds_by_channel = defaultdict(float)
    incidents_by_channel = defaultdict(set)
    for (incident_id, channel), seconds in durations.items():
        seconds_by_channel[channel] += seconds
        incidents_by_channel[channel].add(incident_id)

    ordered = list(channels) + sorted(set(incidents_by_channel) - set(channels))

    totals = {}
    for channel in ordered:
        seconds = seconds_by_channel.get(channel, 0.0)
        totals[channel] = ChannelDowntime(
            channel=channel,
            minutes=to_minutes(seconds),
            seconds=seconds,
            incident_count=len(incidents_by_channel.get(channel, ())),
        )
    return totals
