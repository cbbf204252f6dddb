"""AuditLogEntry ORM model: append-only record of corrections."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum as SAEnum
from sqlalchemy.sql import func
from timeledger.database import Base


class AuditEntryType(str, enum.Enum):
    PTRP_ADJUSTMENT = "PTRP_ADJUSTMENT"
    ADJUSTMENT_EDITED = "ADJUSTMENT_EDITED"
    ADJUSTMENT_DELETED = "ADJUSTMENT_DELETED"


class AuditLogEntry(Base):
    __tablename__ = "audit_log_entries"

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    entry_type = Column(SAEnum(AuditEntryType), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    actor_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
