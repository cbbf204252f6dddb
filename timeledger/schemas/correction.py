"""Pydantic schemas for PTRP corrections."""
import datetime as dt
from typing import Optional
from pydantic import BaseModel

from timeledger.models.attendance_event import EventKind


class CorrectionCreate(BaseModel):
    source_event_id: int
    destination_employee_id: int
    date: dt.date
    event_kind: EventKind
    time_of_day: dt.time
    justification: str
    invalidate_source: bool = True
    shift_sequence: Optional[int] = None
    note: Optional[str] = None


class CorrectionOut(BaseModel):
    adjustment_id: int
    source_id: int
    invalidated: bool

    model_config = {"from_attributes": True}
