"""Company, CompanyMembership and UserRole ORM models.

These tables belong to the platform's company registry; the ledger only
reads them to resolve an actor's scope.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from timeledger.database import Base


class Company(Base):
    __tablename__ = "companies"

    company_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    memberships = relationship("CompanyMembership", back_populates="company", cascade="all, delete-orphan")


class CompanyMembership(Base):
    __tablename__ = "company_memberships"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), primary_key=True)
    active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship("Company", back_populates="memberships")


class UserRole(Base):
    """Role grant. A NULL ``company_id`` is a platform-wide grant."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "company_id", "role_name", name="uq_user_role"),)

    user_role_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.company_id"), nullable=True)
    role_name = Column(String(50), nullable=False)
