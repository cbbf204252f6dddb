"""Consolidated shift API routes."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from timeledger.config import settings
from timeledger.database import get_db
from timeledger.dependencies import get_actor
from timeledger.exceptions import NoCompanyMembership
from timeledger.schemas.shift import ConsolidatedShiftList, ConsolidatedShiftOut
from timeledger.services import shift_consolidator
from timeledger.services.access_scope import Actor, resolve_company_context
from timeledger.time_utils import current_week_range

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/consolidated", response_model=ConsolidatedShiftList)
def list_consolidated_shifts(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    company_id: Optional[int] = Query(None),
    active_only: bool = Query(False),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Pair punches into shifts for one company, or every company the actor may see.

    Without a range, the current week in the business timezone is used.
    """
    if company_id is not None:
        company_ids = [resolve_company_context(db, actor, company_id)]
    elif actor.company_ids:
        company_ids = sorted(actor.company_ids)
    else:
        raise NoCompanyMembership()

    if date_from is None or date_to is None:
        week_start, week_end = current_week_range(settings.LOCAL_TIMEZONE)
        date_from = date_from or week_start
        date_to = date_to or week_end

    shifts = shift_consolidator.list_consolidated_shifts(
        db, company_ids, date_from, date_to, active_only=active_only,
    )
    return ConsolidatedShiftList(
        date_from=date_from,
        date_to=date_to,
        company_ids=company_ids,
        shifts=[ConsolidatedShiftOut.model_validate(s, from_attributes=True) for s in shifts],
    )
