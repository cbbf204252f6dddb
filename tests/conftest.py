"""Pytest fixtures: file-backed SQLite database, rebuilt for every test."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from timeledger.database import Base, get_db
from timeledger.main import app

# Import all models so they register with Base.metadata
from timeledger.models.user import User                                      # noqa: F401
from timeledger.models.company import Company, CompanyMembership, UserRole   # noqa: F401
from timeledger.models.employee import Employee                              # noqa: F401
from timeledger.models.attendance_event import AttendanceEvent               # noqa: F401
from timeledger.models.audit_log import AuditLogEntry                        # noqa: F401
from timeledger.services import ledger_service

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding helpers: the company registry is read-only to the ledger, so tests
# write it straight through the session.
# ---------------------------------------------------------------------------
def create_test_company(db, name: str = "Acme", active: bool = True) -> Company:
    company = Company(name=name, active=active)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def create_test_user(db, companies=(), name: str = "Test User") -> User:
    """Create a user with an active membership in each of ``companies``."""
    user = User(display_name=name)
    db.add(user)
    db.flush()
    for company in companies:
        db.add(CompanyMembership(user_id=user.user_id, company_id=company.company_id))
    db.commit()
    db.refresh(user)
    return user


def grant_role(db, user: User, role: str, company: Company = None) -> None:
    """Grant a role in ``company``, or platform-wide when no company is given."""
    db.add(UserRole(
        user_id=user.user_id,
        company_id=company.company_id if company else None,
        role_name=role,
    ))
    db.commit()


def create_test_employee(db, company: Company, name: str = "Employee", active: bool = True) -> Employee:
    employee = Employee(company_id=company.company_id, name=name, active=active)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def create_official_event(
    db,
    employee: Employee,
    event_date: str = "2024-03-04",
    kind: str = "CLOCK_IN",
    time_of_day: str = "08:00",
    shift_sequence: int = 1,
    nsr: str = "000000001",
) -> AttendanceEvent:
    """Ingest a device punch with complete forensic metadata."""
    forensic = ledger_service.ForensicMetadata(
        sequential_record_number=nsr,
        integrity_hash="sha256:" + nsr,
        device_id="REP-001",
        timezone="America/Sao_Paulo",
        captured_at=datetime(2024, 3, 4, 11, 0, tzinfo=timezone.utc),
    )
    return ledger_service.ingest_official_event(
        db,
        company_id=employee.company_id,
        employee_id=employee.employee_id,
        event_date=event_date,
        shift_sequence=shift_sequence,
        event_kind=kind,
        time_of_day=time_of_day,
        forensic=forensic,
    )


def record(client: TestClient, user: User, payload: dict, company: Company = None):
    """POST /api/attendance-events/ as ``user`` and return the raw response."""
    params = {"actor_user_id": user.user_id}
    if company is not None:
        params["company_id"] = company.company_id
    return client.post("/api/attendance-events/", params=params, json=payload)
