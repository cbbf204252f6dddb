"""Pydantic schemas for audit log entries."""
import datetime as dt
from typing import Any, Optional
from pydantic import BaseModel

from timeledger.models.audit_log import AuditEntryType


class AuditLogEntryOut(BaseModel):
    entry_id: int
    entry_type: AuditEntryType
    payload: dict[str, Any]
    actor_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}
