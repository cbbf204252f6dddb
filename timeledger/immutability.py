"""ORM-level enforcement of ledger immutability.

Service functions refuse forbidden writes with typed errors before touching
the session. These mapper listeners are the second line: they fire during
flush and reject any change that slipped through another code path.

Entity            | Rule
------------------|-----------------------------------------------------------
AttendanceEvent   | official rows: only treatment fields may change; no delete
AttendanceEvent   | all rows: origin, is_official, adjustment source are frozen
AttendanceEvent   | all rows: INVALIDATED never goes back to VALID
AuditLogEntry     | no update, no delete

Bulk ``Query.update()``/``delete()`` bypass mapper events; the services never
use them on these tables.
"""
import logging

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import get_history

from timeledger.exceptions import ImmutableRecord
from timeledger.models.attendance_event import (
    AttendanceEvent, EventOrigin, TreatmentStatus, TREATMENT_FIELDS,
)
from timeledger.models.audit_log import AuditLogEntry

logger = logging.getLogger(__name__)

FROZEN_FIELDS = ("origin", "is_official", "adjustment_source_event_id")


def _previous(target, key):
    hist = get_history(target, key)
    if hist.deleted:
        return hist.deleted[0]
    return getattr(target, key)


def _stored_status(connection, target):
    # History is empty when the instance was expired before the change
    table = AttendanceEvent.__table__
    return connection.execute(
        select(table.c.treatment_status).where(table.c.event_id == target.event_id)
    ).scalar()


def _derive_official_flag(mapper, connection, target):
    target.is_official = target.origin == EventOrigin.OFFICIAL_DEVICE


def _check_attendance_event_update(mapper, connection, target):
    insp = inspect(target)

    for key in FROZEN_FIELDS:
        if insp.attrs[key].history.has_changes():
            logger.error("Blocked change of frozen field '%s' on event %s", key, target.event_id)
            raise ImmutableRecord(f"Field '{key}' cannot change after creation.")

    status_changed = insp.attrs.treatment_status.history.has_changes()
    if status_changed and _stored_status(connection, target) == TreatmentStatus.INVALIDATED:
        logger.error("Blocked re-validation of event %s", target.event_id)
        raise ImmutableRecord("An invalidated event cannot be restored.")

    if not _previous(target, "is_official"):
        return

    for attr in insp.attrs:
        if attr.key in TREATMENT_FIELDS:
            continue
        if attr.history.has_changes():
            logger.error("Blocked change of '%s' on official event %s", attr.key, target.event_id)
            raise ImmutableRecord("Official events are immutable.")


def _check_attendance_event_delete(mapper, connection, target):
    if _previous(target, "is_official"):
        logger.error("Blocked deletion of official event %s", target.event_id)
        raise ImmutableRecord("Official events cannot be deleted.")


def _check_audit_entry_update(mapper, connection, target):
    logger.error("Blocked update of audit entry %s", target.entry_id)
    raise ImmutableRecord("Audit entries are append-only.")


def _check_audit_entry_delete(mapper, connection, target):
    logger.error("Blocked deletion of audit entry %s", target.entry_id)
    raise ImmutableRecord("Audit entries are append-only.")


_LISTENERS = (
    (AttendanceEvent, "before_insert", _derive_official_flag),
    (AttendanceEvent, "before_update", _check_attendance_event_update),
    (AttendanceEvent, "before_delete", _check_attendance_event_delete),
    (AuditLogEntry, "before_update", _check_audit_entry_update),
    (AuditLogEntry, "before_delete", _check_audit_entry_delete),
)


def register_immutability_listeners() -> None:
    """Install the listeners once; safe to call repeatedly."""
    for target, identifier, fn in _LISTENERS:
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)
