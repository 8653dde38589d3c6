from sqlalchemy import Column, Integer, String, Text, Date, DateTime
from sqlalchemy.sql import func
from ..database import Base


class DowntimeReport(Base):
    """One row per incident per reported category; rows of an incident share downtime_id."""

    __tablename__ = "downtime_report_v2"

    serial = Column(Integer, primary_key=True, index=True)
    downtime_id = Column(String(32), index=True, nullable=False)
    issue_date = Column(Date, nullable=True)
    issue_title = Column(String, nullable=False)
    category = Column(String, nullable=True)

    affected_channel = Column(String, nullable=False)  # "ALL" or comma separated tags
    affected_persona = Column(String, nullable=True)
    affected_mno = Column(String, nullable=True)
    affected_portal = Column(String, nullable=True)
    affected_type = Column(String, nullable=True)
    affected_service = Column(String, nullable=True)

    impact_type = Column(String(16), nullable=False)  # FULL / PARTIAL
    modality = Column(String(16), nullable=False)  # PLANNED / UNPLANNED
    reliability_impacted = Column(String(8), nullable=False, default="NO")  # YES / NO

    start_date_time = Column(DateTime(timezone=True), index=True, nullable=False)
    end_date_time = Column(DateTime(timezone=True), nullable=True)  # null while ongoing
    duration = Column(String(16), nullable=True)  # HH:MM:SS

    concern = Column(Text, nullable=True)
    reason = Column(Text, nullable=True)
    resolution = Column(Text, nullable=True)
    service_desk_ticket_id = Column(String, nullable=True)
    service_desk_ticket_link = Column(String, nullable=True)
    system_unavailability = Column(String, nullable=True)
    tracked_by = Column(String, nullable=True)
    remark = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
