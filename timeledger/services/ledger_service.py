"""Attendance ledger service: the write path for punch events.

Responsibilities:
- Tenant check: the employee must belong to the operating company
- Minute-resolution date/time validation and shift-sequence clamping
- Uniqueness of the logical punch key (pre-check plus constraint net)
- Write-time plausibility of clock-in/clock-out pairs
- Immutability: only manual ADJUSTMENT rows are edited or deleted; official
  rows change only through ``invalidate_event`` and correction adjustments
  only through another correction
- Per-row isolation for bulk imports
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timeledger.config import settings
from timeledger.exceptions import (
    AlreadyInvalidated,
    DuplicateEvent,
    EmployeeNotInCompany,
    EventNotFound,
    EventReferenced,
    ImmutableRecord,
    NotFoundError,
    ValidationError,
)
from timeledger.models.attendance_event import AttendanceEvent, EventKind, EventOrigin, TreatmentStatus
from timeledger.models.audit_log import AuditEntryType
from timeledger.models.employee import Employee
from timeledger.services import audit_log
from timeledger.time_utils import (
    format_time_of_day,
    now_utc,
    parse_iso_date,
    parse_time_of_day,
    shift_duration_minutes,
    validate_date_range,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("employee_id", "date", "shift_sequence", "event_kind", "time_of_day")


@dataclass(frozen=True)
class ForensicMetadata:
    """Device-supplied evidence attached to official punches. Never interpreted here."""

    sequential_record_number: str
    integrity_hash: str
    device_id: str
    timezone: str
    captured_at: datetime

    def validate(self) -> None:
        missing = [
            name for name in ("sequential_record_number", "integrity_hash", "device_id", "timezone")
            if not getattr(self, name)
        ]
        if self.captured_at is None:
            missing.append("captured_at")
        if missing:
            raise ValidationError(f"Official events require forensic metadata: missing {', '.join(missing)}.")


@dataclass
class ImportRowError:
    index: int
    reason: str


@dataclass
class ImportSummary:
    inserted: int = 0
    duplicated: int = 0
    invalid: list[ImportRowError] = field(default_factory=list)


def event_snapshot(event: AttendanceEvent) -> dict[str, Any]:
    """Serialize an event to a JSON-safe dict for the audit log."""
    return {
        "event_id": event.event_id,
        "company_id": event.company_id,
        "employee_id": event.employee_id,
        "date": event.date.isoformat() if event.date else None,
        "shift_sequence": event.shift_sequence,
        "event_kind": event.event_kind.value if event.event_kind else None,
        "time_of_day": format_time_of_day(event.time_of_day),
        "origin": event.origin.value if event.origin else None,
        "treatment_status": event.treatment_status.value if event.treatment_status else None,
        "note": event.note,
    }


def clamp_shift_sequence(value: Any) -> int:
    """Shift ordinals start at 1; anything unusable becomes 1."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 1
    return number if number >= 1 else 1


def coerce_enum(enum_cls: type[enum.Enum], value: Any, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {label}: expected one of {allowed}.")


def _ensure_employee_in_company(db: Session, employee_id: Any, company_id: int) -> int:
    try:
        employee_id = int(employee_id)
    except (TypeError, ValueError):
        raise ValidationError("Employee id is required.")
    employee = db.query(Employee).filter(Employee.employee_id == employee_id).first()
    if not employee or employee.company_id != company_id:
        raise EmployeeNotInCompany()
    return employee_id


def find_event_by_key(
    db: Session,
    company_id: int,
    employee_id: int,
    event_date: date,
    shift_sequence: int,
    event_kind: EventKind,
    time_of_day: time,
    origin: EventOrigin,
    exclude_event_id: Optional[int] = None,
) -> Optional[AttendanceEvent]:
    query = db.query(AttendanceEvent).filter(
        AttendanceEvent.company_id == company_id,
        AttendanceEvent.employee_id == employee_id,
        AttendanceEvent.date == event_date,
        AttendanceEvent.shift_sequence == shift_sequence,
        AttendanceEvent.event_kind == event_kind,
        AttendanceEvent.time_of_day == time_of_day,
        AttendanceEvent.origin == origin,
    )
    if exclude_event_id is not None:
        query = query.filter(AttendanceEvent.event_id != exclude_event_id)
    return query.first()


def _check_shift_plausibility(
    db: Session,
    company_id: int,
    employee_id: int,
    event_date: date,
    shift_sequence: int,
    event_kind: EventKind,
    time_of_day: time,
    exclude_event_id: Optional[int] = None,
) -> None:
    """Reject a punch that would leave its shift with an implausible duration.

    The pair checked is the one consolidation reports once the punch is
    stored: earliest clock-in and latest clock-out of the group, so the
    outcome does not depend on arrival order.
    """
    query = db.query(AttendanceEvent.event_kind, AttendanceEvent.time_of_day).filter(
        AttendanceEvent.company_id == company_id,
        AttendanceEvent.employee_id == employee_id,
        AttendanceEvent.date == event_date,
        AttendanceEvent.shift_sequence == shift_sequence,
        AttendanceEvent.treatment_status == TreatmentStatus.VALID,
    )
    if exclude_event_id is not None:
        query = query.filter(AttendanceEvent.event_id != exclude_event_id)

    ins = [time_of_day] if event_kind == EventKind.CLOCK_IN else []
    outs = [time_of_day] if event_kind == EventKind.CLOCK_OUT else []
    for row in query.all():
        (ins if row.event_kind == EventKind.CLOCK_IN else outs).append(row.time_of_day)
    if not ins or not outs:
        return

    duration = shift_duration_minutes(min(ins), max(outs))

    if duration < settings.MIN_SHIFT_MINUTES or duration > settings.MAX_SHIFT_MINUTES:
        raise ValidationError(
            f"Implausible shift duration of {duration} minutes "
            f"(allowed {settings.MIN_SHIFT_MINUTES}-{settings.MAX_SHIFT_MINUTES})."
        )


def _prepare_fields(
    db: Session,
    company_id: int,
    employee_id: Any,
    event_date: Any,
    shift_sequence: Any,
    event_kind: Any,
    time_of_day: Any,
    origin: Any,
    exclude_event_id: Optional[int] = None,
    check_plausibility: bool = True,
) -> dict[str, Any]:
    """Validate and normalize the key fields of an event about to be written."""
    # Pure validation first so malformed input never reaches storage
    event_date = parse_iso_date(event_date)
    time_of_day = parse_time_of_day(time_of_day)
    shift_sequence = clamp_shift_sequence(shift_sequence)
    event_kind = coerce_enum(EventKind, event_kind, "event kind")
    origin = coerce_enum(EventOrigin, origin, "origin")

    employee_id = _ensure_employee_in_company(db, employee_id, company_id)

    if find_event_by_key(
        db, company_id, employee_id, event_date, shift_sequence, event_kind, time_of_day, origin,
        exclude_event_id=exclude_event_id,
    ):
        raise DuplicateEvent()

    if check_plausibility:
        _check_shift_plausibility(
            db, company_id, employee_id, event_date, shift_sequence, event_kind, time_of_day,
            exclude_event_id=exclude_event_id,
        )

    return {
        "company_id": company_id,
        "employee_id": employee_id,
        "date": event_date,
        "shift_sequence": shift_sequence,
        "event_kind": event_kind,
        "time_of_day": time_of_day,
        "origin": origin,
    }


def _commit_or_duplicate(db: Session, flush_only: bool = False) -> None:
    """Commit (or just flush); a unique-key race surfaces as ``DuplicateEvent``."""
    try:
        if flush_only:
            db.flush()
        else:
            db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Unique key violation on attendance event write; rolled back")
        raise DuplicateEvent()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_events(
    db: Session,
    company_id: int,
    date_from: Any,
    date_to: Any,
    employee_id: Optional[int] = None,
    origin: Optional[Any] = None,
    event_kind: Optional[Any] = None,
    treatment_status: Optional[Any] = None,
) -> list[AttendanceEvent]:
    """Events of one company in an inclusive date range, deterministically ordered."""
    date_from, date_to = parse_iso_date(date_from), parse_iso_date(date_to)
    validate_date_range(date_from, date_to)

    query = db.query(AttendanceEvent).filter(
        AttendanceEvent.company_id == company_id,
        AttendanceEvent.date >= date_from,
        AttendanceEvent.date <= date_to,
    )
    if employee_id is not None:
        query = query.filter(AttendanceEvent.employee_id == employee_id)
    if origin is not None:
        query = query.filter(AttendanceEvent.origin == coerce_enum(EventOrigin, origin, "origin"))
    if event_kind is not None:
        query = query.filter(AttendanceEvent.event_kind == coerce_enum(EventKind, event_kind, "event kind"))
    if treatment_status is not None:
        query = query.filter(
            AttendanceEvent.treatment_status == coerce_enum(TreatmentStatus, treatment_status, "treatment status")
        )
    return query.order_by(
        AttendanceEvent.date,
        AttendanceEvent.employee_id,
        AttendanceEvent.shift_sequence,
        AttendanceEvent.time_of_day,
        AttendanceEvent.event_id,
    ).all()


def list_scope_events(
    db: Session,
    company_ids: Iterable[int],
    date_from: date,
    date_to: date,
    active_only: bool = False,
) -> list[AttendanceEvent]:
    """VALID events across a set of companies, for read-side projections."""
    company_ids = list(company_ids)
    if not company_ids:
        return []
    query = db.query(AttendanceEvent).filter(
        AttendanceEvent.company_id.in_(company_ids),
        AttendanceEvent.date >= date_from,
        AttendanceEvent.date <= date_to,
        AttendanceEvent.treatment_status == TreatmentStatus.VALID,
    )
    if active_only:
        query = query.join(Employee, Employee.employee_id == AttendanceEvent.employee_id).filter(
            Employee.active.is_(True)
        )
    return query.order_by(AttendanceEvent.event_id).all()


def get_event(db: Session, company_id: int, event_id: int) -> AttendanceEvent:
    event = db.query(AttendanceEvent).filter(AttendanceEvent.event_id == event_id).first()
    if not event or event.company_id != company_id:
        raise EventNotFound()
    return event


def lock_event(db: Session, event_id: int) -> Optional[AttendanceEvent]:
    """Load an event under an exclusive row lock (SELECT ... FOR UPDATE)."""
    return (
        db.query(AttendanceEvent)
        .filter(AttendanceEvent.event_id == event_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def record_event(
    db: Session,
    company_id: int,
    employee_id: Any,
    event_date: Any,
    shift_sequence: Any,
    event_kind: Any,
    time_of_day: Any,
    origin: Any,
    note: Optional[str] = None,
    justification: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> AttendanceEvent:
    """Create a non-official event. Official punches enter through ``ingest_official_event``."""
    if coerce_enum(EventOrigin, origin, "origin") == EventOrigin.OFFICIAL_DEVICE:
        raise ValidationError("Official device events are created by device ingestion only.")

    fields = _prepare_fields(db, company_id, employee_id, event_date, shift_sequence, event_kind, time_of_day, origin)
    event = AttendanceEvent(**fields, treatment_status=TreatmentStatus.VALID, note=note or None)
    if justification:
        event.treatment_justification = justification
        event.treatment_actor_id = actor_id
        event.treatment_at = now_utc()
    db.add(event)
    _commit_or_duplicate(db)
    db.refresh(event)
    logger.info(
        "Recorded %s %s event %s for employee %s on %s (company %s)",
        event.origin.value, event.event_kind.value, event.event_id, event.employee_id, event.date, company_id,
    )
    return event


def ingest_official_event(
    db: Session,
    company_id: int,
    employee_id: Any,
    event_date: Any,
    shift_sequence: Any,
    event_kind: Any,
    time_of_day: Any,
    forensic: ForensicMetadata,
) -> AttendanceEvent:
    """Store a device punch. Device payloads arrive already validated, so no plausibility check."""
    forensic.validate()
    fields = _prepare_fields(
        db, company_id, employee_id, event_date, shift_sequence, event_kind, time_of_day,
        EventOrigin.OFFICIAL_DEVICE, check_plausibility=False,
    )
    event = AttendanceEvent(
        **fields,
        treatment_status=TreatmentStatus.VALID,
        is_official=True,
        sequential_record_number=forensic.sequential_record_number,
        integrity_hash=forensic.integrity_hash,
        device_id=forensic.device_id,
        timezone=forensic.timezone,
        captured_at=forensic.captured_at,
    )
    db.add(event)
    _commit_or_duplicate(db)
    db.refresh(event)
    logger.info("Ingested official event %s (NSR %s) from device %s",
                event.event_id, event.sequential_record_number, event.device_id)
    return event


def _ensure_mutable(event: AttendanceEvent) -> None:
    if event.origin != EventOrigin.ADJUSTMENT:
        logger.warning("Refused direct change of %s event %s", event.origin.value, event.event_id)
        raise ImmutableRecord()
    if event.treatment_status == TreatmentStatus.INVALIDATED:
        raise ImmutableRecord("Invalidated events cannot be changed.")
    if event.adjustment_source_event_id is not None:
        logger.warning("Refused direct change of correction adjustment %s", event.event_id)
        raise ImmutableRecord(
            "Adjustments created by a correction cannot be changed; apply a new correction instead."
        )


def edit_event(
    db: Session,
    company_id: int,
    event_id: int,
    patch: dict[str, Any],
    actor_id: Optional[str] = None,
) -> AttendanceEvent:
    """Edit an ADJUSTMENT event in place, re-validating it as a new write."""
    event = get_event(db, company_id, event_id)
    _ensure_mutable(event)
    before = event_snapshot(event)
    # An explicit null leaves the stored value in place
    patch = {key: value for key, value in patch.items() if value is not None or key == "note"}

    fields = _prepare_fields(
        db,
        company_id,
        patch.get("employee_id", event.employee_id),
        patch.get("date", event.date),
        patch.get("shift_sequence", event.shift_sequence),
        patch.get("event_kind", event.event_kind),
        patch.get("time_of_day", event.time_of_day),
        event.origin,
        exclude_event_id=event.event_id,
    )
    for name in EDITABLE_FIELDS:
        if getattr(event, name) != fields[name]:
            setattr(event, name, fields[name])
    if "note" in patch:
        event.note = patch["note"] or None
    _commit_or_duplicate(db, flush_only=True)

    audit_log.append(
        db,
        AuditEntryType.ADJUSTMENT_EDITED,
        {"event_id": event.event_id, "company_id": company_id, "before": before, "after": event_snapshot(event)},
        actor_id,
    )
    _commit_or_duplicate(db)
    db.refresh(event)
    logger.info("Edited adjustment event %s by %s", event_id, actor_id)
    return event


def delete_event(db: Session, company_id: int, event_id: int, actor_id: Optional[str] = None) -> None:
    """Delete an ADJUSTMENT event that no other adjustment references."""
    event = get_event(db, company_id, event_id)
    _ensure_mutable(event)

    referenced = (
        db.query(AttendanceEvent.event_id)
        .filter(AttendanceEvent.adjustment_source_event_id == event.event_id)
        .first()
    )
    if referenced:
        raise EventReferenced()

    audit_log.append(
        db,
        AuditEntryType.ADJUSTMENT_DELETED,
        {"event_id": event.event_id, "company_id": company_id, "before": event_snapshot(event)},
        actor_id,
    )
    db.delete(event)
    db.commit()
    logger.info("Deleted adjustment event %s by %s", event_id, actor_id)


def invalidate_event(db: Session, event: AttendanceEvent, justification: str, actor_id: Optional[str]) -> None:
    """Flip VALID→INVALIDATED and stamp the treatment. Caller owns the transaction."""
    if event.treatment_status == TreatmentStatus.INVALIDATED:
        raise AlreadyInvalidated()
    event.treatment_status = TreatmentStatus.INVALIDATED
    event.treatment_justification = justification
    event.treatment_actor_id = actor_id
    event.treatment_at = now_utc()
    db.flush()
    logger.info("Invalidated event %s by %s", event.event_id, actor_id)


def import_events(
    db: Session,
    company_id: int,
    rows: list[Any],
    actor_id: Optional[str] = None,
) -> ImportSummary:
    """Import a batch; each row is validated and committed on its own."""
    if not rows:
        raise ValidationError("No rows to import.")
    if len(rows) > settings.IMPORT_BATCH_LIMIT:
        raise ValidationError(f"Import is limited to {settings.IMPORT_BATCH_LIMIT} rows per batch.")

    summary = ImportSummary()
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            summary.invalid.append(ImportRowError(index, "row must be an object"))
            continue

        origin = row.get("origin") or EventOrigin.IMPORTED
        try:
            if coerce_enum(EventOrigin, origin, "origin") == EventOrigin.OFFICIAL_DEVICE:
                raise ValidationError("official device events cannot be imported")
            fields = _prepare_fields(
                db,
                company_id,
                row.get("employee_id"),
                row.get("date"),
                row.get("shift_sequence", 1),
                row.get("event_kind"),
                row.get("time_of_day"),
                origin,
            )
        except DuplicateEvent:
            summary.duplicated += 1
            continue
        except (ValidationError, NotFoundError) as exc:
            summary.invalid.append(ImportRowError(index, exc.message))
            continue

        db.add(AttendanceEvent(**fields, treatment_status=TreatmentStatus.VALID, note=row.get("note") or None))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            summary.duplicated += 1
            continue
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Unexpected failure importing row %d for company %s", index, company_id)
            summary.invalid.append(ImportRowError(index, "unexpected error"))
            continue
        summary.inserted += 1

    logger.info(
        "Import for company %s by %s: %d inserted, %d duplicated, %d invalid",
        company_id, actor_id, summary.inserted, summary.duplicated, len(summary.invalid),
    )
    return summary
