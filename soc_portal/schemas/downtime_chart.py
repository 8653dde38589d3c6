from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Optional


class CamelModel(BaseModel):
    # Chart payloads are consumed by the dashboard in camelCase
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeRangeOut(CamelModel):
    start: datetime
    end: datetime


class ChannelReliability(CamelModel):
    channel: str
    minutes: int
    incident_count: int
    percentage: float
    reliability_percentage: float


class ReliabilitySummary(CamelModel):
    reliability_status: str
    sla: str = "99.9%"
    meets_sla: bool
    most_reliable_channel: str
    least_reliable_channel: str
    total_channels: int


class CalculationCheck(CamelModel):
    expected_minutes: int
    actual_minutes: int
    matches_expected: bool


class ReliabilityImpactReport(CamelModel):
    channels: List[ChannelReliability]
    total_available_minutes: int
    total_available_duration: str
    total_reliability_impact_minutes: int
    total_reliability_impact_duration: str
    total_incidents: int
    reliability_impact_percentage: float
    reliability_percentage: float
    time_range: Optional[TimeRangeOut] = None
    calculation: Optional[CalculationCheck] = None
    summary: ReliabilitySummary


class DowntimeTypeSlice(CamelModel):
    type: str
    minutes: int
    incident_count: int = 0
    percentage: float


class AvailabilitySummary(CamelModel):
    availability_status: str
    sla: str = "99.9%"
    meets_sla: bool


class DowntimeSummaryReport(CamelModel):
    chart_data: List[DowntimeTypeSlice]
    total_available_minutes: int
    total_available_duration: str
    total_downtime_minutes: int
    total_downtime_duration: str
    uptime_minutes: int
    uptime_duration: str
    uptime_percentage: float
    downtime_percentage: float
    time_range: TimeRangeOut
    calculation: CalculationCheck
    summary: AvailabilitySummary


class ChannelShare(CamelModel):
    channel: str
    minutes: int
    incident_count: int
    percentage: int


class BreakdownSummary(CamelModel):
    event_count: int
    min_downtime: int
    max_downtime: int
    avg_downtime: int


class DowntimeBreakdownReport(CamelModel):
    modality: str
    impact_type: str
    channels: List[ChannelShare]
    total_minutes: int
    total_duration: str
    time_range: TimeRangeOut
    summary: BreakdownSummary


class MostImpacted(CamelModel):
    channel: str
    total: int


class TrendSummary(CamelModel):
    total_downtime: int
    avg_per_channel: int
    improving_channels: int
    most_impacted: MostImpacted
    current_period: Optional[str] = None
    previous_period: Optional[str] = None
    period_count: Optional[int] = None
    has_data: bool


class PeriodComparison(CamelModel):
    current: List[int]
    previous: List[int]
    changes: List[int]
    total_current: int
    total_previous: int
    total_change: int
    improvement_rate: int
    current_period: str
    previous_period: str
    has_data: bool


class ChannelTrend(CamelModel):
    channel: str
    data: List[int]
    total: int
    avg: int
    trend: str


class TrendSeries(CamelModel):
    labels: List[str]
    data: List[ChannelTrend]


class DowntimeTrendReport(CamelModel):
    trend_type: str
    view: str
    channels: List[str]
    summary: TrendSummary
    comparison: PeriodComparison
    trend: Optional[TrendSeries] = None


class ReliabilityImpactResponse(CamelModel):
    success: bool = True
    data: ReliabilityImpactReport


class DowntimeSummaryResponse(CamelModel):
    success: bool = True
    data: DowntimeSummaryReport


class DowntimeBreakdownResponse(CamelModel):
    success: bool = True
    data: DowntimeBreakdownReport


class DowntimeTrendResponse(CamelModel):
    success: bool = True
    data: DowntimeTrendReport
