import logging
from typing import Dict, Optional

from ..schemas.downtime_chart import (
    CalculationCheck,
    ChannelReliability,
    ReliabilityImpactReport,
    ReliabilitySummary,
    TimeRangeOut,
)
from .aggregation import ChannelDowntime, round_half_up
from .channels import ALL_CHANNELS, is_known_channel
from .time_window import TimeWindow

logger = logging.getLogger(__name__)

SLA_THRESHOLD = 99.9
SLA_LABEL = "99.9%"


def impact_percentage(impact_minutes: float, total_available_minutes: float) -> float:
    """Share of the window lost to downtime; an empty window has no impact."""
    if total_available_minutes <= 0:
        return 0.0
    return (impact_minutes / total_available_minutes) * 100


def reliability_percentage(impact_minutes: float, total_available_minutes: float) -> float:
    return max(0.0, 100 - impact_percentage(impact_minutes, total_available_minutes))


def reliability_status(percentage: float) -> str:
    if percentage >= SLA_THRESHOLD:
        return "Excellent"
    if percentage >= 99:
        return "Good"
    if percentage >= 95:
        return "Fair"
    return "Poor"


def format_duration(minutes: float) -> str:
    hours = int(minutes // 60)
    mins = int(round_half_up(minutes % 60))
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


def build_reliability_report(
    channel_totals: Dict[str, ChannelDowntime],
    total_available_minutes: int,
    window: Optional[TimeWindow] = None,
) -> ReliabilityImpactReport:
    """
    Score reliability-impacting downtime against the minutes available in the window.

    Only the tracked channels are reported. The overall figure sums the channel
    minutes, so an incident hitting APP and WEB counts against the total twice.
    """
    untracked = [channel for channel in channel_totals if not is_known_channel(channel)]
    if untracked:
        logger.info(f"Untracked channel tags left out of reliability report: {untracked}")

    channels = []
    for name in ALL_CHANNELS:
        total = channel_totals.get(name)
        minutes = total.minutes if total else 0
        channels.append(
            ChannelReliability(
                channel=name,
                minutes=minutes,
                incident_count=total.incident_count if total else 0,
                percentage=impact_percentage(minutes, total_available_minutes),
                reliability_percentage=reliability_percentage(minutes, total_available_minutes),
            )
        )

    total_impact_minutes = sum(c.minutes for c in channels)
    total_incidents = sum(c.incident_count for c in channels)
    overall_impact = impact_percentage(total_impact_minutes, total_available_minutes)
    overall_reliability = max(0.0, 100 - overall_impact)

    # First channel wins ties, in display order
    most_reliable = channels[0]
    least_reliable = channels[0]
    for channel in channels[1:]:
        if channel.reliability_percentage > most_reliable.reliability_percentage:
            most_reliable = channel
        if channel.reliability_percentage < least_reliable.reliability_percentage:
            least_reliable = channel

    report = ReliabilityImpactReport(
        channels=channels,
        total_available_minutes=total_available_minutes,
        total_available_duration=format_duration(total_available_minutes),
        total_reliability_impact_minutes=total_impact_minutes,
        total_reliability_impact_duration=format_duration(total_impact_minutes),
        total_incidents=total_incidents,
        reliability_impact_percentage=round_half_up(overall_impact, 2),
        reliability_percentage=round_half_up(overall_reliability, 2),
        summary=ReliabilitySummary(
            reliability_status=reliability_status(overall_reliability),
            sla=SLA_LABEL,
            meets_sla=overall_reliability >= SLA_THRESHOLD,
            most_reliable_channel=most_reliable.channel,
            least_reliable_channel=least_reliable.channel,
            total_channels=len(channels),
        ),
    )

    if window is not None:
        report.time_range = TimeRangeOut(start=window.start, end=window.end)
        report.calculation = CalculationCheck(
            expected_minutes=window.expected_minutes,
            actual_minutes=total_available_minutes,
            matches_expected=total_available_minutes == window.expected_minutes,
        )

    return report
