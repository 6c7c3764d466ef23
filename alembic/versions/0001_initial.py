"""Initial overtime schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, *, nullable: bool = True, server_default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if server_default else None,
    )


def upgrade() -> None:
    op.create_table(
        "overtime_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        _timestamp("created_at", nullable=False, server_default=True),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("internal_id", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("payment", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("supervisor", sa.String(length=255), nullable=False),
        sa.Column("requested_by", sa.String(length=255), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("employee_identifier", sa.String(length=50), nullable=True),
        sa.Column("employee_email", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("work_date", sa.Date(), nullable=True),
        sa.Column("scheduled_day_off", sa.Date(), nullable=True),
        _timestamp("work_start_time"),
        _timestamp("work_end_time"),
        _timestamp("submitted_at"),
        _timestamp("edited_at"),
        sa.Column("edited_by", sa.String(length=255), nullable=True),
        _timestamp("approved_at"),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("quota_approval", sa.Boolean(), server_default=sa.false(), nullable=False),
        _timestamp("rejected_at"),
        sa.Column("rejected_by", sa.String(length=255), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        _timestamp("cancelled_at"),
        sa.Column("cancelled_by", sa.String(length=255), nullable=True),
        sa.Column("cancellation_reason", sa.String(), nullable=True),
        _timestamp("accounted_at"),
        sa.Column("accounted_by", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kind", "internal_id", name="uq_overtime_request_kind_internal_id"),
    )
    op.create_index("ix_overtime_request_status_kind", "overtime_request", ["status", "kind"])
    op.create_index("ix_overtime_request_status", "overtime_request", ["status"])
    op.create_index("ix_overtime_request_supervisor", "overtime_request", ["supervisor"])
    op.create_index("ix_overtime_request_requested_by", "overtime_request", ["requested_by"])

    op.create_table(
        "sequence_counter",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "supervisor_quota",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("supervisor", sa.String(length=255), nullable=False),
        sa.Column("monthly_limit", sa.Float(), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=False),
        _timestamp("updated_at", nullable=False, server_default=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("supervisor"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("note", sa.String(), nullable=True),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        _timestamp("created_at", nullable=False, server_default=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_actor", "audit_log", ["actor"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_index("ix_audit_log_actor", table_name="audit_log")
    op.drop_index("ix_audit_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("supervisor_quota")
    op.drop_table("sequence_counter")
    op.drop_index("ix_overtime_request_requested_by", table_name="overtime_request")
    op.drop_index("ix_overtime_request_supervisor", table_name="overtime_request")
    op.drop_index("ix_overtime_request_status", table_name="overtime_request")
    op.drop_index("ix_overtime_request_status_kind", table_name="overtime_request")
    op.drop_table("overtime_request")
