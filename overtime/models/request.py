# ruff: noqa: TC003
from __future__ import annotations

from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from overtime.models.base import TimestampMixin, UUIDBase
from overtime.models.enums import RequestStatus


class OvertimeRequest(UUIDBase, TimestampMixin, table=True):
    """One overtime order or submission with its approval workflow state.

    Identities (supervisor, requester, deciders) are e-mail addresses issued
    by the external auth provider.
    """

    __tablename__ = "overtime_request"
    __table_args__ = (
        sa.Index("ix_overtime_request_status_kind", "status", "kind"),
        # Orders and submissions are numbered by separate counters.
        sa.UniqueConstraint("kind", "internal_id", name="uq_overtime_request_kind_internal_id"),
    )

    kind: str = Field(max_length=20)
    internal_id: str = Field(max_length=20)
    status: str = Field(
        default=RequestStatus.PENDING, max_length=20, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    hours: float
    payment: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})
    reason: str | None = None

    supervisor: str = Field(max_length=255, index=True)
    requested_by: str = Field(max_length=255, index=True)
    created_by: str = Field(max_length=255)
    employee_identifier: str | None = Field(default=None, max_length=50)
    employee_email: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=100)

    work_date: date | None = None
    scheduled_day_off: date | None = None
    work_start_time: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    work_end_time: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    edited_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    edited_by: str | None = Field(default=None, max_length=255)

    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    approved_by: str | None = Field(default=None, max_length=255)
    quota_approval: bool = Field(default=False, sa_column_kwargs={"server_default": sa.false()})

    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejected_by: str | None = Field(default=None, max_length=255)
    rejection_reason: str | None = None

    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    cancelled_by: str | None = Field(default=None, max_length=255)
    cancellation_reason: str | None = None

    accounted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    accounted_by: str | None = Field(default=None, max_length=255)

    @property
    def notify_address(self) -> str | None:
        """Address of the employee the request is about."""
        if self.employee_email:
            return self.employee_email
        if self.employee_identifier:
            return None
        return self.requested_by
