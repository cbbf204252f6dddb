"""Tests for ORM-level immutability: official punches and audit entries."""
from datetime import date, time

import pytest

from timeledger.exceptions import ImmutableRecord, ValidationError
from timeledger.models.attendance_event import AttendanceEvent, EventKind, EventOrigin, TreatmentStatus
from timeledger.models.audit_log import AuditEntryType, AuditLogEntry
from timeledger.services import audit_log, ledger_service
from tests.conftest import create_official_event, create_test_company, create_test_employee


def _employee(db):
    return create_test_employee(db, create_test_company(db))


class TestOfficialEventImmutability:
    """Direct session writes cannot bypass the ledger rules."""

    def test_content_change_blocked(self, db):
        official = create_official_event(db, _employee(db))

        official.time_of_day = time(9, 0)
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

        assert db.get(AttendanceEvent, official.event_id).time_of_day == time(8, 0)

    def test_forensic_metadata_change_blocked(self, db):
        official = create_official_event(db, _employee(db))

        official.integrity_hash = "tampered"
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

    def test_delete_blocked(self, db):
        official = create_official_event(db, _employee(db))

        db.delete(official)
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

        assert db.query(AttendanceEvent).count() == 1

    def test_treatment_fields_may_change(self, db):
        official = create_official_event(db, _employee(db))

        ledger_service.invalidate_event(db, official, "wrong device", actor_id="auditor")
        db.commit()

        db.expire_all()
        stored = db.get(AttendanceEvent, official.event_id)
        assert stored.treatment_status == TreatmentStatus.INVALIDATED
        assert stored.treatment_justification == "wrong device"
        assert stored.time_of_day == time(8, 0)

    def test_invalidation_cannot_be_undone(self, db):
        official = create_official_event(db, _employee(db))
        ledger_service.invalidate_event(db, official, "wrong device", actor_id="auditor")
        db.commit()

        official.treatment_status = TreatmentStatus.VALID
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()


class TestEventFlags:
    """Origin and the official flag are fixed at creation."""

    def test_official_flag_follows_origin(self, db):
        employee = _employee(db)
        event = AttendanceEvent(
            company_id=employee.company_id,
            employee_id=employee.employee_id,
            date=date(2024, 3, 4),
            shift_sequence=1,
            event_kind=EventKind.CLOCK_OUT,
            time_of_day=time(17, 0),
            origin=EventOrigin.IMPORTED,
            treatment_status=TreatmentStatus.VALID,
            is_official=True,
        )
        db.add(event)
        db.commit()

        assert db.get(AttendanceEvent, event.event_id).is_official is False

    def test_origin_change_blocked(self, db):
        employee = _employee(db)
        adjustment = ledger_service.record_event(
            db, employee.company_id, employee.employee_id, "2024-03-04", 1,
            "CLOCK_IN", "08:00", "ADJUSTMENT",
        )

        adjustment.origin = EventOrigin.OFFICIAL_DEVICE
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

    def test_ingest_requires_forensic_metadata(self, db):
        employee = _employee(db)
        forensic = ledger_service.ForensicMetadata(
            sequential_record_number="",
            integrity_hash="sha256:x",
            device_id="REP-001",
            timezone="America/Sao_Paulo",
            captured_at=None,
        )

        with pytest.raises(ValidationError) as excinfo:
            ledger_service.ingest_official_event(
                db, employee.company_id, employee.employee_id, "2024-03-04", 1, "CLOCK_IN", "08:00", forensic,
            )
        assert "sequential_record_number" in excinfo.value.message
        assert "captured_at" in excinfo.value.message


class TestAuditLogAppendOnly:
    """Audit entries are never rewritten."""

    def _entry(self, db):
        entry = audit_log.append(db, AuditEntryType.PTRP_ADJUSTMENT, {"source_event_id": 1}, "auditor")
        db.commit()
        return entry

    def test_update_blocked(self, db):
        entry = self._entry(db)

        entry.payload = {"source_event_id": 2}
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

    def test_delete_blocked(self, db):
        entry = self._entry(db)

        db.delete(entry)
        with pytest.raises(ImmutableRecord):
            db.commit()
        db.rollback()

        assert db.query(AuditLogEntry).count() == 1
