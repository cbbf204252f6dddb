"""Correction workflow (PTRP): invalidate an official punch and replace it.

One database transaction:

1. lock the source event (SELECT ... FOR UPDATE); it must exist and be VALID
2. resolve the source company from the row and the destination company
   from the destination employee
3. the actor must be authorized in both companies
4. refuse an identical existing adjustment
5. optionally invalidate the source (treatment fields only)
6. insert the ADJUSTMENT event referencing the source
7. append the audit entry
8. commit; any failure rolls back every step

The row lock serializes competing corrections of the same source; corrections
of different sources do not contend.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeledger.exceptions import (
    AlreadyInvalidated,
    DestinationEmployeeNotFound,
    DuplicateAdjustment,
    EmployeeNotFound,
    EventNotFound,
    ForbiddenError,
    TimeLedgerError,
    ValidationError,
)
from timeledger.models.attendance_event import AttendanceEvent, EventKind, EventOrigin, TreatmentStatus
from timeledger.models.audit_log import AuditEntryType
from timeledger.services import audit_log, ledger_service
from timeledger.services.access_scope import Actor, resolve_company_of_employee
from timeledger.time_utils import format_time_of_day, now_utc, parse_iso_date, parse_time_of_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectionRequest:
    source_event_id: int
    destination_employee_id: int
    date: date
    event_kind: EventKind
    time_of_day: time
    justification: str
    invalidate_source: bool = True
    shift_sequence: Optional[int] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class CorrectionResult:
    adjustment_id: int
    source_id: int
    invalidated: bool


def _validate(request: CorrectionRequest) -> CorrectionRequest:
    """Reject malformed input before any transaction opens."""
    if not request.source_event_id or not request.destination_employee_id:
        raise ValidationError("Source event and destination employee are required.")
    justification = (request.justification or "").strip()
    if not justification:
        raise ValidationError("A justification is required.")
    event_kind = ledger_service.coerce_enum(EventKind, request.event_kind, "event kind")
    shift_sequence = request.shift_sequence
    if shift_sequence is not None:
        shift_sequence = ledger_service.clamp_shift_sequence(shift_sequence)
    return CorrectionRequest(
        source_event_id=request.source_event_id,
        destination_employee_id=request.destination_employee_id,
        date=parse_iso_date(request.date),
        event_kind=event_kind,
        time_of_day=parse_time_of_day(request.time_of_day),
        justification=justification,
        invalidate_source=request.invalidate_source,
        shift_sequence=shift_sequence,
        note=request.note,
    )


def apply_correction(db: Session, actor: Actor, request: CorrectionRequest) -> CorrectionResult:
    """Run the whole correction as one atomic unit."""
    request = _validate(request)

    try:
        result = _run(db, actor, request)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Correction of event %s hit a unique key race; rolled back", request.source_event_id)
        raise DuplicateAdjustment()
    except TimeLedgerError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Correction of event %s failed; rolled back", request.source_event_id)
        raise

    logger.info(
        "Correction applied by %s: source %s -> adjustment %s (invalidated=%s)",
        actor.user_id, result.source_id, result.adjustment_id, result.invalidated,
    )
    return result


def _run(db: Session, actor: Actor, request: CorrectionRequest) -> CorrectionResult:
    # 1) lock and load the source
    source = ledger_service.lock_event(db, request.source_event_id)
    if not source:
        raise EventNotFound("Source event not found.")
    if source.treatment_status == TreatmentStatus.INVALIDATED:
        raise AlreadyInvalidated()

    # 2) resolve both tenants
    company_of_source = source.company_id
    try:
        company_of_destination = resolve_company_of_employee(db, request.destination_employee_id)
    except EmployeeNotFound:
        raise DestinationEmployeeNotFound()

    # 3) dual-company authorization
    if not (actor.can_access(company_of_source) and actor.can_access(company_of_destination)):
        logger.warning(
            "User %s refused correction across companies %s -> %s",
            actor.user_id, company_of_source, company_of_destination,
        )
        raise ForbiddenError("Not authorized to correct events across these companies.")

    shift_sequence = request.shift_sequence or source.shift_sequence or 1

    # 4) idempotency guard
    if ledger_service.find_event_by_key(
        db,
        company_of_destination,
        request.destination_employee_id,
        request.date,
        shift_sequence,
        request.event_kind,
        request.time_of_day,
        EventOrigin.ADJUSTMENT,
    ):
        raise DuplicateAdjustment()

    # 5) invalidate the source, content untouched
    if request.invalidate_source:
        ledger_service.invalidate_event(db, source, request.justification, actor.user_id)

    # 6) the replacement
    adjustment = AttendanceEvent(
        company_id=company_of_destination,
        employee_id=request.destination_employee_id,
        date=request.date,
        shift_sequence=shift_sequence,
        event_kind=request.event_kind,
        time_of_day=request.time_of_day,
        origin=EventOrigin.ADJUSTMENT,
        treatment_status=TreatmentStatus.VALID,
        is_official=False,
        adjustment_source_event_id=source.event_id,
        treatment_justification=request.justification,
        treatment_actor_id=actor.user_id,
        treatment_at=now_utc(),
        note=request.note or f"Adjustment created via PTRP; source #{source.event_id}.",
    )
    db.add(adjustment)
    db.flush()

    # 7) audit trail
    audit_log.append(
        db,
        AuditEntryType.PTRP_ADJUSTMENT,
        {
            "source_event_id": source.event_id,
            "adjustment_event_id": adjustment.event_id,
            "destination_employee_id": request.destination_employee_id,
            "source_company_id": company_of_source,
            "destination_company_id": company_of_destination,
            "invalidated_source": bool(request.invalidate_source),
            "event_kind": request.event_kind.value,
            "time_of_day": format_time_of_day(request.time_of_day),
            "date": request.date.isoformat(),
            "shift_sequence": shift_sequence,
        },
        actor.user_id,
    )

    return CorrectionResult(
        adjustment_id=adjustment.event_id,
        source_id=source.event_id,
        invalidated=bool(request.invalidate_source),
    )
