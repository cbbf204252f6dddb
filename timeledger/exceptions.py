"""Typed error hierarchy for the attendance ledger.

Every error carries an HTTP ``status_code`` and a machine-readable ``code`` so
routers never inspect message text. Messages are safe to show to clients;
anything more detailed goes to the server log.

    TimeLedgerError
    +-- ValidationError                  400
    +-- NotFoundError                    404
    |   +-- EventNotFound
    |   +-- EmployeeNotFound
    |   +-- EmployeeNotInCompany
    |   +-- DestinationEmployeeNotFound
    +-- ForbiddenError                   403
    |   +-- NoCompanyMembership
    |   +-- UnauthorizedCompany
    |   +-- ImmutableRecord
    +-- ConflictError                    409
        +-- DuplicateEvent
        +-- AlreadyInvalidated
        +-- DuplicateAdjustment
        +-- EventReferenced
"""
from typing import Any, Optional


class TimeLedgerError(Exception):
    status_code = 500
    code = "INTERNAL"
    default_message = "Internal error."

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class ValidationError(TimeLedgerError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class NotFoundError(TimeLedgerError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class EventNotFound(NotFoundError):
    code = "EVENT_NOT_FOUND"
    default_message = "Attendance event not found."


class EmployeeNotFound(NotFoundError):
    code = "EMPLOYEE_NOT_FOUND"
    default_message = "Employee not found."


class EmployeeNotInCompany(NotFoundError):
    code = "EMPLOYEE_NOT_IN_COMPANY"
    default_message = "Employee does not belong to the selected company."


class DestinationEmployeeNotFound(NotFoundError):
    code = "DESTINATION_EMPLOYEE_NOT_FOUND"
    default_message = "Destination employee not found."


class ForbiddenError(TimeLedgerError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Operation not permitted."


class NoCompanyMembership(ForbiddenError):
    code = "NO_COMPANY_MEMBERSHIP"
    default_message = "User has no linked company."


class UnauthorizedCompany(ForbiddenError):
    code = "UNAUTHORIZED_COMPANY"
    default_message = "Company not authorized."


class ImmutableRecord(ForbiddenError):
    code = "IMMUTABLE_RECORD"
    default_message = "Only adjustment events may be changed; use a correction instead."


class ConflictError(TimeLedgerError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflicting state."


class DuplicateEvent(ConflictError):
    code = "DUPLICATE_EVENT"
    default_message = "An event with the same key already exists."


class AlreadyInvalidated(ConflictError):
    code = "ALREADY_INVALIDATED"
    default_message = "Event was already invalidated by a correction."


class DuplicateAdjustment(ConflictError):
    code = "DUPLICATE_ADJUSTMENT"
    default_message = "An identical adjustment already exists."


class EventReferenced(ConflictError):
    code = "EVENT_REFERENCED"
    default_message = "Event is referenced by another adjustment."
