"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timeledger.config import settings
from timeledger.database import Base, engine
from timeledger.exceptions import TimeLedgerError
from timeledger.immutability import register_immutability_listeners

# Import routers
from timeledger.routers import attendance_events, shifts, corrections, audit_log

# Import all models so Base.metadata knows about them
from timeledger.models.user import User                                          # noqa: F401
from timeledger.models.company import Company, CompanyMembership, UserRole       # noqa: F401
from timeledger.models.employee import Employee                                  # noqa: F401
from timeledger.models.attendance_event import AttendanceEvent                   # noqa: F401
from timeledger.models.audit_log import AuditLogEntry                            # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

register_immutability_listeners()

app = FastAPI(
    title="TimeLedger",
    description="Attendance-event ledger, shift consolidation and PTRP corrections for multi-company time tracking",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(attendance_events.router, prefix="/api/attendance-events", tags=["AttendanceEvents"])
app.include_router(shifts.router, prefix="/api/shifts", tags=["Shifts"])
app.include_router(corrections.router, prefix="/api/corrections", tags=["Corrections"])
app.include_router(audit_log.router, prefix="/api/audit-log", tags=["AuditLog"])


@app.exception_handler(TimeLedgerError)
async def handle_ledger_error(request: Request, exc: TimeLedgerError):
    """Render typed domain errors with their status and machine code."""
    if exc.status_code >= 500:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.context)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 validation failure."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request.", "code": "VALIDATION_ERROR", "errors": errors},
    )


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
