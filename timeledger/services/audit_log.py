"""Append-only audit log for corrections and adjustment maintenance."""
import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from timeledger.config import settings
from timeledger.models.audit_log import AuditLogEntry, AuditEntryType

logger = logging.getLogger(__name__)

# Payload keys naming the companies an entry touches
COMPANY_KEYS = ("company_id", "source_company_id", "destination_company_id")


def append(
    db: Session,
    entry_type: AuditEntryType,
    payload: dict[str, Any],
    actor_id: Optional[str],
) -> AuditLogEntry:
    """Stage a new entry in the caller's transaction (flush, no commit)."""
    entry = AuditLogEntry(entry_type=entry_type, payload=payload, actor_id=actor_id)
    db.add(entry)
    db.flush()
    logger.info("Audit %s entry %s staged by %s", entry_type.value, entry.entry_id, actor_id)
    return entry


def _payload_int(key: str):
    return AuditLogEntry.payload[key].as_integer()


def query(
    db: Session,
    entry_type: Optional[AuditEntryType] = None,
    actor_id: Optional[str] = None,
    source_event_id: Optional[int] = None,
    company_ids: Optional[Iterable[int]] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[AuditLogEntry]:
    """Read-only projection, newest first.

    Payload filters use the portable JSON accessors so every filter and the
    limit run in the database.
    """
    q = db.query(AuditLogEntry)
    if entry_type:
        q = q.filter(AuditLogEntry.entry_type == entry_type)
    if actor_id:
        q = q.filter(AuditLogEntry.actor_id == actor_id)
    if created_from:
        q = q.filter(AuditLogEntry.created_at >= created_from)
    if created_to:
        q = q.filter(AuditLogEntry.created_at <= created_to)
    if source_event_id is not None:
        q = q.filter(or_(
            _payload_int("source_event_id") == source_event_id,
            _payload_int("event_id") == source_event_id,
        ))
    if company_ids is not None:
        allowed = sorted(set(company_ids))
        if not allowed:
            return []
        q = q.filter(or_(*(_payload_int(key).in_(allowed) for key in COMPANY_KEYS)))

    return q.order_by(AuditLogEntry.entry_id.desc()).limit(limit or settings.AUDIT_QUERY_LIMIT).all()
