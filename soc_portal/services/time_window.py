"""
Resolve dashboard range tokens (``today``, ``thisWeek``, ``custom`` ...) into
concrete windows.

Day boundaries are taken in Asia/Dhaka (UTC+6, no DST): a window starts at local
00:00:00.000 and ends at local 23:59:59.999. Weeks run Sunday to Saturday.
The returned instants are UTC.
"""
import calendar
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import List, NamedTuple, Optional

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

DHAKA_TZ = timezone(timedelta(hours=6), "Asia/Dhaka")

MINUTES_PER_DAY = 24 * 60

RANGE_TOKENS = (
    "today",
    "thisWeek",
    "lastWeek",
    "last7days",
    "last30days",
    "thisMonth",
    "lastMonth",
    "thisYear",
    "custom",
)

END_OF_DAY = time(23, 59, 59, 999000)


class TimeWindow(NamedTuple):
    start: datetime
    end: datetime
    token: str
    available_minutes: int  # reliability denominator
    expected_minutes: int


class Period(NamedTuple):
    label: str
    start: datetime
    end: datetime


def local_now(now: Optional[datetime] = None) -> datetime:
    """Current time (or ``now``) as an aware Dhaka-local datetime."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(DHAKA_TZ)


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=DHAKA_TZ)


def day_end(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=DHAKA_TZ)


def week_start(day: date) -> date:
    # date.weekday() is Monday=0; the portal's weeks start on Sunday
    return day - timedelta(days=(day.weekday() + 1) % 7)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two instants, rounded so a 23:59:59.999 end counts as a full day."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(math.floor(seconds / 60 + 0.5))


def get_time_range(time_range: str, now: Optional[datetime] = None):
    """Local (start, end) for a preset token. ``custom`` is handled by resolve_time_window."""
    today = local_now(now).date()

    if time_range == "today":
        first, last = today, today
    elif time_range == "thisWeek":
        first = week_start(today)
        last = first + timedelta(days=6)
    elif time_range == "lastWeek":
        first = week_start(today) - timedelta(days=7)
        last = first + timedelta(days=6)
    elif time_range == "last7days":
        first, last = today - timedelta(days=6), today
    elif time_range == "last30days":
        first, last = today - timedelta(days=29), today
    elif time_range == "thisMonth":
        first = today.replace(day=1)
        last = last_day_of_month(today.year, today.month)
    elif time_range == "lastMonth":
        last = today.replace(day=1) - timedelta(days=1)
        first = last.replace(day=1)
    elif time_range == "thisYear":
        first, last = date(today.year, 1, 1), date(today.year, 12, 31)
    else:
        raise ValidationError(f"Invalid time range: {time_range}")

    return day_start(first), day_end(last)


def expected_minutes_for_range(
    time_range: str,
    now: Optional[datetime] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> int:
    """Minutes of service a preset window should contain."""
    today = local_now(now).date()

    if time_range == "today":
        return MINUTES_PER_DAY
    if time_range in ("thisWeek", "lastWeek", "last7days"):
        return 7 * MINUTES_PER_DAY
    if time_range == "last30days":
        return 30 * MINUTES_PER_DAY
    if time_range == "thisMonth":
        return calendar.monthrange(today.year, today.month)[1] * MINUTES_PER_DAY
    if time_range == "lastMonth":
        previous = today.replace(day=1) - timedelta(days=1)
        return calendar.monthrange(previous.year, previous.month)[1] * MINUTES_PER_DAY
    if time_range == "thisYear":
        return (366 if calendar.isleap(today.year) else 365) * MINUTES_PER_DAY
    if time_range == "custom" and start is not None and end is not None:
        return elapsed_minutes(start, end)
    return 0


def parse_custom_date(value: str, field: str) -> date:
    """Accept ``YYYY-MM-DD`` or a full ISO-8601 timestamp (taken as its Dhaka calendar day)."""
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid date format: {field}={value}")
    if parsed.tzinfo is not None:
        return parsed.astimezone(DHAKA_TZ).date()
    return parsed.date()


def resolve_time_window(
    time_range: str = "thisWeek",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """
    Translate a range token into a UTC ``TimeWindow``.

    Raises ValidationError for an unknown token, a custom range missing either
    date, an unparseable date or an end before the start.
    """
    if time_range == "custom":
        if not start_date or not end_date:
            raise ValidationError("Custom date range requires both startDate and endDate")

        start = day_start(parse_custom_date(start_date, "startDate"))
        end = day_end(parse_custom_date(end_date, "endDate"))
        if end < start:
            raise ValidationError("End date cannot be before start date")

        available = elapsed_minutes(start, end)
        expected = available
    else:
        start, end = get_time_range(time_range, now)
        expected = expected_minutes_for_range(time_range, now)
        available = expected

    window = TimeWindow(
        start=start.astimezone(timezone.utc),
        end=end.astimezone(timezone.utc),
        token=time_range,
        available_minutes=available,
        expected_minutes=expected,
    )
    logger.debug(
        f"Resolved {time_range} to {window.start.isoformat()} - {window.end.isoformat()} "
        f"({window.available_minutes} min)"
    )
    return window


def _short_date(day: date) -> str:
    return f"{day:%b} {day.day}"


def week_periods(count: int, now: Optional[datetime] = None) -> List[Period]:
    """The last ``count`` Sunday-Saturday weeks, oldest first, the current week last."""
    current = week_start(local_now(now).date())
    periods = []
    for offset in range(count - 1, -1, -1):
        first = current - timedelta(days=7 * offset)
        last = first + timedelta(days=6)
        periods.append(
            Period(
                label=f"Week {count - offset} ({_short_date(first)}-{_short_date(last)})",
                start=day_start(first).astimezone(timezone.utc),
                end=day_end(last).astimezone(timezone.utc),
            )
        )
    return periods


def month_periods(count: int, now: Optional[datetime] = None) -> List[Period]:
    """The last ``count`` calendar months, oldest first, the current month last."""
    today = local_now(now).date()
    periods = []
    for offset in range(count - 1, -1, -1):
        index = today.year * 12 + (today.month - 1) - offset
        year, month = divmod(index, 12)
        month += 1
        periods.append(
            Period(
                label=calendar.month_abbr[month],
                start=day_start(date(year, month, 1)).astimezone(timezone.utc),
                end=day_end(last_day_of_month(year, month)).astimezone(timezone.utc),
            )
        )
    return periods


def comparison_periods(trend_type: str, now: Optional[datetime] = None) -> List[Period]:
    """[previous, current] week or month, labelled for the comparison chart."""
    if trend_type == "weekly":
        previous, current = week_periods(2, now)
        labels = []
        for prefix, period in (("Previous", previous), ("Current", current)):
            first = period.start.astimezone(DHAKA_TZ).date()
            last = period.end.astimezone(DHAKA_TZ).date()
            labels.append(f"{prefix} ({_short_date(first)} - {_short_date(last)})")
        return [previous._replace(label=labels[0]), current._replace(label=labels[1])]

    previous, current = month_periods(2, now)
    return [
        previous._replace(label=f"{previous.label} (Full Month)"),
        current._replace(label=f"{current.label} (Full Month)"),
    ]
