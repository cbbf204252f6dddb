"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the ledger tables (attendance_events, audit_log_entries) and the
read-only collaborator tables they reference: users, companies,
company_memberships, user_roles, employees.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

event_kind = sa.Enum("CLOCK_IN", "CLOCK_OUT", name="eventkind")
event_origin = sa.Enum("OFFICIAL_DEVICE", "IMPORTED", "ADJUSTMENT", name="eventorigin")
treatment_status = sa.Enum("VALID", "INVALIDATED", name="treatmentstatus")
audit_entry_type = sa.Enum("PTRP_ADJUSTMENT", "ADJUSTMENT_EDITED", "ADJUSTMENT_DELETED", name="auditentrytype")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- companies ---
    op.create_table(
        "companies",
        sa.Column("company_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- company_memberships ---
    op.create_table(
        "company_memberships",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.company_id"), primary_key=True),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- user_roles ---
    op.create_table(
        "user_roles",
        sa.Column("user_role_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.company_id"), nullable=True),
        sa.Column("role_name", sa.String(50), nullable=False),
        sa.UniqueConstraint("user_id", "company_id", "role_name", name="uq_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])

    # --- employees ---
    op.create_table(
        "employees",
        sa.Column("employee_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.company_id"), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_employees_company_id", "employees", ["company_id"])

    # --- attendance_events ---
    op.create_table(
        "attendance_events",
        sa.Column("event_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.company_id"), nullable=False),
        sa.Column("employee_id", sa.Integer, sa.ForeignKey("employees.employee_id"), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("shift_sequence", sa.Integer, nullable=False, server_default="1"),
        sa.Column("event_kind", event_kind, nullable=False),
        sa.Column("time_of_day", sa.Time, nullable=False),
        sa.Column("origin", event_origin, nullable=False),
        sa.Column("treatment_status", treatment_status, nullable=False, server_default="VALID"),
        sa.Column("is_official", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("sequential_record_number", sa.String(64), nullable=True),
        sa.Column("integrity_hash", sa.String(255), nullable=True),
        sa.Column("device_id", sa.String(100), nullable=True),
        sa.Column("timezone", sa.String(50), nullable=True),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "adjustment_source_event_id", sa.Integer,
            sa.ForeignKey("attendance_events.event_id"), nullable=True,
        ),
        sa.Column("treatment_justification", sa.Text, nullable=True),
        sa.Column("treatment_actor_id", sa.String(36), nullable=True),
        sa.Column("treatment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "company_id", "employee_id", "date", "shift_sequence",
            "event_kind", "time_of_day", "origin",
            name="uq_attendance_event_key",
        ),
    )
    op.create_index("ix_attendance_events_company_date", "attendance_events", ["company_id", "date"])
    op.create_index("ix_attendance_events_employee_id", "attendance_events", ["employee_id"])

    # --- audit_log_entries ---
    op.create_table(
        "audit_log_entries",
        sa.Column("entry_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("entry_type", audit_entry_type, nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_entries_entry_type", "audit_log_entries", ["entry_type"])
    op.create_index("ix_audit_log_entries_actor_id", "audit_log_entries", ["actor_id"])


def downgrade() -> None:
    op.drop_table("audit_log_entries")
    op.drop_table("attendance_events")
    op.drop_table("employees")
    op.drop_table("user_roles")
    op.drop_table("company_memberships")
    op.drop_table("companies")
    op.drop_table("users")
    bind = op.get_bind()
    for enum_type in (audit_entry_type, treatment_status, event_origin, event_kind):
        enum_type.drop(bind, checkfirst=True)
