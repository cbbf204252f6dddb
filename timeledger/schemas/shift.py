"""Pydantic schemas for consolidated shifts."""
import datetime as dt
from typing import Optional
from pydantic import BaseModel

from timeledger.models.attendance_event import EventOrigin
from timeledger.schemas.attendance_event import TimeOfDay


class ConsolidatedShiftOut(BaseModel):
    date: dt.date
    employee_id: int
    shift_sequence: int
    company_id: int
    clock_in: Optional[TimeOfDay] = None
    clock_out: Optional[TimeOfDay] = None
    origin: EventOrigin
    is_complete: bool
    crosses_midnight: bool
    duration_minutes: Optional[int] = None

    model_config = {"from_attributes": True}


class ConsolidatedShiftList(BaseModel):
    date_from: dt.date
    date_to: dt.date
    company_ids: list[int]
    shifts: list[ConsolidatedShiftOut]
