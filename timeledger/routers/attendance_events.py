"""Attendance event API routes: delegates to ledger_service for invariant enforcement."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timeledger.database import get_db
from timeledger.dependencies import get_actor
from timeledger.models.attendance_event import EventKind, EventOrigin, TreatmentStatus
from timeledger.schemas.attendance_event import (
    EventCreate, EventUpdate, EventOut, ImportRequest, ImportSummaryOut,
)
from timeledger.services import ledger_service
from timeledger.services.access_scope import Actor, resolve_company_context

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[EventOut])
def list_events(
    date_from: date = Query(...),
    date_to: date = Query(...),
    company_id: Optional[int] = Query(None),
    employee_id: Optional[int] = Query(None),
    origin: Optional[EventOrigin] = Query(None),
    event_kind: Optional[EventKind] = Query(None),
    treatment_status: Optional[TreatmentStatus] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """List events of the resolved company in an inclusive date range."""
    context = resolve_company_context(db, actor, company_id)
    return ledger_service.list_events(
        db,
        company_id=context,
        date_from=date_from,
        date_to=date_to,
        employee_id=employee_id,
        origin=origin,
        event_kind=event_kind,
        treatment_status=treatment_status,
    )


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def record_event(
    payload: EventCreate,
    company_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Record a non-official punch (imported or adjustment)."""
    context = resolve_company_context(db, actor, company_id)
    return ledger_service.record_event(
        db,
        company_id=context,
        employee_id=payload.employee_id,
        event_date=payload.date,
        shift_sequence=payload.shift_sequence,
        event_kind=payload.event_kind,
        time_of_day=payload.time_of_day,
        origin=payload.origin,
        note=payload.note,
        justification=payload.justification,
        actor_id=actor.user_id,
    )


@router.post("/import", response_model=ImportSummaryOut)
def import_events(
    payload: ImportRequest,
    company_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Import a batch of rows; failures are reported per row."""
    context = resolve_company_context(db, actor, company_id)
    summary = ledger_service.import_events(db, context, payload.rows, actor_id=actor.user_id)
    return ImportSummaryOut.model_validate(summary, from_attributes=True)


@router.get("/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    company_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Fetch a single event of the resolved company."""
    context = resolve_company_context(db, actor, company_id)
    return ledger_service.get_event(db, context, event_id)


@router.put("/{event_id}", response_model=EventOut)
def edit_event(
    event_id: int,
    payload: EventUpdate,
    company_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Edit an adjustment event (partial update; official rows are immutable)."""
    context = resolve_company_context(db, actor, company_id)
    return ledger_service.edit_event(
        db,
        company_id=context,
        event_id=event_id,
        patch=payload.model_dump(exclude_unset=True),
        actor_id=actor.user_id,
    )


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    company_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Delete an adjustment event."""
    context = resolve_company_context(db, actor, company_id)
    ledger_service.delete_event(db, context, event_id, actor_id=actor.user_id)
