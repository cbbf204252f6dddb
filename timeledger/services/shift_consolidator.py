"""Shift consolidation: read-time pairing of independent punches.

A shift is one clock-in plus one clock-out, but the ledger stores them as
separate, possibly partial, possibly out-of-order events. ``consolidate`` is a
pure function over an event snapshot:

- INVALIDATED events are ignored
- events group by (date, employee, shift sequence, company)
- clock_in is the earliest CLOCK_IN, clock_out the latest CLOCK_OUT
- every group with at least one side is emitted, partial shifts included
- a clock_out earlier than clock_in is one shift crossing midnight

Plausibility limits are enforced on write by the ledger, never here.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from timeledger.models.attendance_event import AttendanceEvent, EventKind, EventOrigin, TreatmentStatus
from timeledger.services import ledger_service
from timeledger.time_utils import shift_duration_minutes, validate_date_range

logger = logging.getLogger(__name__)

# Which origin a consolidated shift reports when its punches are mixed
ORIGIN_PRIORITY = {
    EventOrigin.ADJUSTMENT: 3,
    EventOrigin.IMPORTED: 2,
    EventOrigin.OFFICIAL_DEVICE: 1,
}


@dataclass(frozen=True)
class ConsolidatedShift:
    date: date
    employee_id: int
    shift_sequence: int
    company_id: int
    clock_in: Optional[time]
    clock_out: Optional[time]
    origin: EventOrigin

    @property
    def is_complete(self) -> bool:
        return self.clock_in is not None and self.clock_out is not None

    @property
    def crosses_midnight(self) -> bool:
        return self.is_complete and self.clock_out < self.clock_in

    @property
    def duration_minutes(self) -> Optional[int]:
        if not self.is_complete:
            return None
        return shift_duration_minutes(self.clock_in, self.clock_out)


def consolidate(events: Iterable[AttendanceEvent]) -> list[ConsolidatedShift]:
    """Pair punches into shifts. No side effects; same input, same output."""
    groups: dict[tuple[date, int, int, int], dict] = {}

    for ev in events:
        if ev.treatment_status != TreatmentStatus.VALID:
            continue
        key = (ev.date, ev.employee_id, ev.shift_sequence, ev.company_id)
        group = groups.setdefault(key, {"in": None, "out": None, "origin": None})

        if ev.event_kind == EventKind.CLOCK_IN:
            if group["in"] is None or ev.time_of_day < group["in"]:
                group["in"] = ev.time_of_day
        elif ev.event_kind == EventKind.CLOCK_OUT:
            if group["out"] is None or ev.time_of_day > group["out"]:
                group["out"] = ev.time_of_day

        if group["origin"] is None or ORIGIN_PRIORITY[ev.origin] > ORIGIN_PRIORITY[group["origin"]]:
            group["origin"] = ev.origin

    return [
        ConsolidatedShift(
            date=key[0],
            employee_id=key[1],
            shift_sequence=key[2],
            company_id=key[3],
            clock_in=group["in"],
            clock_out=group["out"],
            origin=group["origin"],
        )
        for key, group in sorted(groups.items(), key=lambda item: item[0])
    ]


def list_consolidated_shifts(
    db: Session,
    company_ids: Iterable[int],
    date_from: date,
    date_to: date,
    active_only: bool = False,
) -> list[ConsolidatedShift]:
    """Consolidated shifts for a company set and inclusive date range."""
    validate_date_range(date_from, date_to)
    company_ids = sorted(set(company_ids))
    events = ledger_service.list_scope_events(db, company_ids, date_from, date_to, active_only=active_only)
    shifts = consolidate(events)
    logger.info(
        "Consolidated %d events into %d shifts for companies %s (%s to %s)",
        len(events), len(shifts), company_ids, date_from, date_to,
    )
    return shifts
