from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from ..dependencies import get_db
from ..schemas.downtime import (
    DowntimeLogPage,
    DowntimeReportCreate,
    DowntimeReportCreated,
    DowntimeReportOut,
)
from ..services.downtime_log_service import (
    create_downtime_report,
    get_downtime_by_id,
    list_downtime_logs,
)
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=DowntimeReportCreated, status_code=status.HTTP_201_CREATED)
def report_downtime(payload: DowntimeReportCreate, db: Session = Depends(get_db)):
    """
    Record a downtime incident.
    One row is stored per category; all rows share the generated downtime id.
    """
    downtime_id, reliability_impacted, records = create_downtime_report(db, payload)
    return {
        "success": True,
        "downtime_id": downtime_id,
        "reliability_impacted": reliability_impacted,
        "records": records,
    }


@router.get("/", response_model=DowntimeLogPage)
def downtime_log(
    search: str = "",
    category: str = "",
    impact_type: str = Query("", alias="impactType"),
    modality: str = "",
    reliability: str = "",
    channel: str = "",
    affected_mno: str = Query("", alias="affectedMNO"),
    time_range: str = Query("", alias="timeRange"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort_by: str = Query("start_date_time", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder"),
    page: int = 1,
    limit: int = 12,
    db: Session = Depends(get_db),
):
    rows, total, summary = list_downtime_logs(
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
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "downtimes": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
        "summary": summary,
    }


# All rows of one incident
@router.get("/{downtime_id}", response_model=list[DowntimeReportOut])
def downtime_detail(downtime_id: str, db: Session = Depends(get_db)):
    return get_downtime_by_id(db, downtime_id)
