"""Access scope resolution: which companies an actor may operate in.

One authority replaces per-handler membership lookups. An actor is either a
``GlobalActor`` (platform-wide privileged grant, every active company) or a
``ScopedActor`` (its active memberships only). Callers ask ``can_access``
instead of comparing role strings.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session

from timeledger.config import settings
from timeledger.exceptions import EmployeeNotFound, NoCompanyMembership, UnauthorizedCompany
from timeledger.models.company import Company, CompanyMembership, UserRole
from timeledger.models.employee import Employee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopedActor:
    user_id: str
    company_ids: frozenset

    is_privileged = False

    def can_access(self, company_id: int) -> bool:
        return company_id in self.company_ids


@dataclass(frozen=True)
class GlobalActor:
    user_id: str
    company_ids: frozenset

    is_privileged = True

    def can_access(self, company_id: int) -> bool:
        return company_id in self.company_ids


Actor = Union[GlobalActor, ScopedActor]


def _has_platform_grant(db: Session, user_id: str) -> bool:
    names = [
        row.role_name.strip().lower()
        for row in db.query(UserRole).filter(UserRole.user_id == user_id, UserRole.company_id.is_(None)).all()
    ]
    return any(name in settings.privileged_roles for name in names)


def resolve_actor(db: Session, user_id: str) -> Actor:
    """Load the actor's authorized company set."""
    if _has_platform_grant(db, user_id):
        rows = db.query(Company.company_id).filter(Company.active.is_(True)).all()
        return GlobalActor(user_id=user_id, company_ids=frozenset(r.company_id for r in rows))

    rows = (
        db.query(CompanyMembership.company_id)
        .join(Company, Company.company_id == CompanyMembership.company_id)
        .filter(
            CompanyMembership.user_id == user_id,
            CompanyMembership.active.is_(True),
            Company.active.is_(True),
        )
        .all()
    )
    return ScopedActor(user_id=user_id, company_ids=frozenset(r.company_id for r in rows))


def resolve_company_context(db: Session, actor: Actor, requested_company_id: Optional[int] = None) -> int:
    """Pick the company a request operates in.

    Without an explicit request the lowest authorized id is used so the
    default never depends on row order.
    """
    if not actor.company_ids:
        raise NoCompanyMembership()

    if requested_company_id is not None:
        if actor.can_access(requested_company_id):
            return requested_company_id
        logger.warning("User %s requested unauthorized company %s", actor.user_id, requested_company_id)
        raise UnauthorizedCompany()

    return min(actor.company_ids)


def resolve_company_of_employee(db: Session, employee_id: int) -> int:
    employee = db.query(Employee).filter(Employee.employee_id == employee_id).first()
    if not employee:
        raise EmployeeNotFound()
    return employee.company_id


def roles_of(db: Session, actor: Actor, company_id: int) -> set[str]:
    """Role names granted in ``company_id`` plus platform-wide grants."""
    rows = (
        db.query(UserRole)
        .filter(
            UserRole.user_id == actor.user_id,
            or_(UserRole.company_id == company_id, UserRole.company_id.is_(None)),
        )
        .all()
    )
    return {row.role_name.strip().lower() for row in rows}
