"""Audit log API routes: read-only."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from timeledger.database import get_db
from timeledger.dependencies import get_actor
from timeledger.exceptions import NoCompanyMembership
from timeledger.models.audit_log import AuditEntryType
from timeledger.schemas.audit_log import AuditLogEntryOut
from timeledger.services import audit_log
from timeledger.services.access_scope import Actor, resolve_company_context

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[AuditLogEntryOut])
def list_audit_entries(
    entry_type: Optional[AuditEntryType] = Query(None),
    source_event_id: Optional[int] = Query(None),
    company_id: Optional[int] = Query(None),
    created_from: Optional[datetime] = Query(None),
    created_to: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Audit entries touching the actor's companies, newest first."""
    if company_id is not None:
        company_ids = [resolve_company_context(db, actor, company_id)]
    elif actor.company_ids:
        company_ids = list(actor.company_ids)
    else:
        raise NoCompanyMembership()

    return audit_log.query(
        db,
        entry_type=entry_type,
        source_event_id=source_event_id,
        company_ids=company_ids,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
    )
