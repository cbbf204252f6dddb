"""Correction (PTRP) API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from timeledger.database import get_db
from timeledger.dependencies import get_actor
from timeledger.schemas.correction import CorrectionCreate, CorrectionOut
from timeledger.services import correction_workflow
from timeledger.services.access_scope import Actor

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=CorrectionOut, status_code=status.HTTP_201_CREATED)
def apply_correction(
    payload: CorrectionCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Invalidate a punch (optionally) and create its audited ADJUSTMENT replacement."""
    result = correction_workflow.apply_correction(
        db,
        actor,
        correction_workflow.CorrectionRequest(**payload.model_dump()),
    )
    return CorrectionOut.model_validate(result, from_attributes=True)
