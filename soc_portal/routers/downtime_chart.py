from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from ..dependencies import get_db
from ..schemas.downtime_chart import (
    DowntimeBreakdownResponse,
    DowntimeSummaryResponse,
    DowntimeTrendResponse,
    ReliabilityImpactResponse,
)
from ..services.downtime_chart_service import (
    get_downtime_breakdown,
    get_downtime_summary,
    get_downtime_trend,
    get_reliability_impact,
)

router = APIRouter()


@router.get("/reliability_impact", response_model=ReliabilityImpactResponse)
def reliability_impact(
    time_range: str = Query("thisWeek", alias="timeRange"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """Per-channel reliability for reliability-impacting downtime (UNPLANNED + FULL)."""
    return {"success": True, "data": get_reliability_impact(db, time_range, start_date, end_date)}


@router.get("/summary", response_model=DowntimeSummaryResponse)
def downtime_summary(
    time_range: str = Query("thisWeek", alias="timeRange"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": get_downtime_summary(db, time_range, start_date, end_date)}


@router.get("/breakdown", response_model=DowntimeBreakdownResponse)
def downtime_breakdown(
    modality: str = Query(...),
    impact_type: str = Query(..., alias="impactType"),
    time_range: str = Query("thisWeek", alias="timeRange"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """
    Channel breakdown for one downtime type, e.g. modality=PLANNED&impactType=FULL
    """
    return {
        "success": True,
        "data": get_downtime_breakdown(db, modality, impact_type, time_range, start_date, end_date),
    }


@router.get("/trend", response_model=DowntimeTrendResponse)
def downtime_trend(
    trend_type: str = Query("weekly", alias="trendType"),
    view: str = Query("trend"),
    db: Session = Depends(get_db),
):
    """
    trendType: weekly (Sunday-Saturday weeks) or monthly
    view: comparison (current vs previous) or trend (4 weeks / 6 months)
    """
    return {"success": True, "data": get_downtime_trend(db, trend_type, view)}
