"""AttendanceEvent ORM model: one clock-in or clock-out punch."""
import enum
from sqlalchemy import (
    Column, Integer, String, Text, Date, Time, Boolean, DateTime, ForeignKey,
    UniqueConstraint, Index, Enum as SAEnum,
)
from sqlalchemy.sql import func
from timeledger.database import Base


class EventKind(str, enum.Enum):
    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"


class EventOrigin(str, enum.Enum):
    OFFICIAL_DEVICE = "OFFICIAL_DEVICE"
    IMPORTED = "IMPORTED"
    ADJUSTMENT = "ADJUSTMENT"


class TreatmentStatus(str, enum.Enum):
    VALID = "VALID"
    INVALIDATED = "INVALIDATED"


# Columns that may still change on an official row
TREATMENT_FIELDS = frozenset({
    "treatment_status",
    "treatment_justification",
    "treatment_actor_id",
    "treatment_at",
    "updated_at",
})


class AttendanceEvent(Base):
    __tablename__ = "attendance_events"
    __table_args__ = (
        UniqueConstraint(
            "company_id", "employee_id", "date", "shift_sequence",
            "event_kind", "time_of_day", "origin",
            name="uq_attendance_event_key",
        ),
        Index("ix_attendance_events_company_date", "company_id", "date"),
    )

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    shift_sequence = Column(Integer, nullable=False, default=1)
    event_kind = Column(SAEnum(EventKind), nullable=False)
    time_of_day = Column(Time, nullable=False)
    origin = Column(SAEnum(EventOrigin), nullable=False)
    treatment_status = Column(SAEnum(TreatmentStatus), nullable=False, default=TreatmentStatus.VALID)
    is_official = Column(Boolean, nullable=False, default=False)

    # Forensic metadata, opaque and preserved verbatim (official rows only)
    sequential_record_number = Column(String(64), nullable=True)
    integrity_hash = Column(String(255), nullable=True)
    device_id = Column(String(100), nullable=True)
    timezone = Column(String(50), nullable=True)
    captured_at = Column(DateTime(timezone=True), nullable=True)

    adjustment_source_event_id = Column(Integer, ForeignKey("attendance_events.event_id"), nullable=True)
    treatment_justification = Column(Text, nullable=True)
    treatment_actor_id = Column(String(36), nullable=True)
    treatment_at = Column(DateTime(timezone=True), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
