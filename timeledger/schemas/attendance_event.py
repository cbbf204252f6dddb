"""Pydantic schemas for attendance events and imports."""
import datetime as dt
from typing import Annotated, Any, Optional
from pydantic import BaseModel, Field, PlainSerializer

from timeledger.models.attendance_event import EventKind, EventOrigin, TreatmentStatus

# Punches are minute-resolution; render them as HH:MM
TimeOfDay = Annotated[dt.time, PlainSerializer(lambda t: t.strftime("%H:%M"), return_type=str)]


class EventCreate(BaseModel):
    employee_id: int
    date: dt.date
    shift_sequence: int = 1
    event_kind: EventKind
    time_of_day: dt.time
    origin: EventOrigin
    note: Optional[str] = None
    justification: Optional[str] = None


class EventUpdate(BaseModel):
    employee_id: Optional[int] = None
    date: Optional[dt.date] = None
    shift_sequence: Optional[int] = None
    event_kind: Optional[EventKind] = None
    time_of_day: Optional[dt.time] = None
    note: Optional[str] = None


class EventOut(BaseModel):
    event_id: int
    company_id: int
    employee_id: int
    date: dt.date
    shift_sequence: int
    event_kind: EventKind
    time_of_day: TimeOfDay
    origin: EventOrigin
    treatment_status: TreatmentStatus
    is_official: bool
    sequential_record_number: Optional[str] = None
    integrity_hash: Optional[str] = None
    device_id: Optional[str] = None
    timezone: Optional[str] = None
    captured_at: Optional[dt.datetime] = None
    adjustment_source_event_id: Optional[int] = None
    treatment_justification: Optional[str] = None
    treatment_actor_id: Optional[str] = None
    treatment_at: Optional[dt.datetime] = None
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class ImportRequest(BaseModel):
    # Rows stay loosely typed so one malformed row is reported, not fatal
    rows: list[Any] = Field(default_factory=list)


class ImportRowErrorOut(BaseModel):
    index: int
    reason: str

    model_config = {"from_attributes": True}


class ImportSummaryOut(BaseModel):
    inserted: int
    duplicated: int
    invalid: list[ImportRowErrorOut] = []

    model_config = {"from_attributes": True}
