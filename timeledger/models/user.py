"""User ORM model: platform account acting on the ledger."""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from timeledger.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
