# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta
from typing import Literal, Self
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, model_validator

from overtime.config import get_settings
from overtime.models.enums import RequestKind, RequestStatus


# Creation bounds, re-applied when a request is corrected.
SUBMISSION_HOURS_MIN = -8
SUBMISSION_HOURS_MAX = 16
ORDER_HOURS_MAX = 16


def plant_today() -> date:
    """Calendar date at the plant, which bounds the reporting windows."""
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


def _check_half_hour_step(hours: float) -> None:
    if (hours * 2) % 1 != 0:
        msg = "hours must be a multiple of 0.5"
        raise ValueError(msg)


def _check_half_hour_clock(value: datetime, field: str) -> None:
    if value.minute not in (0, 30) or value.second or value.microsecond:
        msg = f"{field} must fall on :00 or :30"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateSubmissionPayload(BaseModel):
    """Overtime entry filed by the employee.

    Positive hours are overtime worked and must be reported within the last
    seven days. Negative hours are time off taken against the balance and may
    be planned up to thirty days ahead.
    """

    supervisor: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    work_date: date
    hours: float = Field(ge=SUBMISSION_HOURS_MIN, le=SUBMISSION_HOURS_MAX)
    reason: str | None = Field(default=None, max_length=2000)
    department: str | None = Field(default=None, max_length=100)
    draft: bool = False

    @model_validator(mode="after")
    def _validate_entry(self) -> Self:
        _check_half_hour_step(self.hours)
        if self.hours == 0:
            msg = "hours must not be zero"
            raise ValueError(msg)
        if self.hours > 0 and not (self.reason and self.reason.strip()):
            msg = "reason is required for overtime worked"
            raise ValueError(msg)

        today = plant_today()
        earliest = today - timedelta(days=7)
        latest = today if self.hours > 0 else today + timedelta(days=30)
        if not earliest <= self.work_date <= latest:
            msg = f"work_date must be between {earliest.isoformat()} and {latest.isoformat()}"
            raise ValueError(msg)
        return self


class CreatePayoutPayload(BaseModel):
    """Request to pay out accumulated overtime hours."""

    supervisor: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    hours: float = Field(gt=0)
    reason: str = Field(min_length=1, max_length=2000)
    department: str | None = Field(default=None, max_length=100)

    @model_validator(mode="after")
    def _validate_hours(self) -> Self:
        _check_half_hour_step(self.hours)
        return self


class CreateOrderPayload(BaseModel):
    """Individual overtime order a manager issues to an employee."""

    employee_identifier: str = Field(min_length=1, max_length=50)
    employee_email: str | None = Field(default=None, max_length=255)
    hours: float = Field(ge=0, le=ORDER_HOURS_MAX)
    reason: str | None = Field(default=None, max_length=2000)
    department: str | None = Field(default=None, max_length=100)
    payment: bool = False
    scheduled_day_off: date | None = None
    work_start_time: datetime
    work_end_time: datetime

    @model_validator(mode="after")
    def _validate_order(self) -> Self:
        _check_half_hour_step(self.hours)
        _check_half_hour_clock(self.work_start_time, "work_start_time")
        _check_half_hour_clock(self.work_end_time, "work_end_time")
        if self.work_end_time <= self.work_start_time:
            msg = "work_end_time must be after work_start_time"
            raise ValueError(msg)
        if self.work_end_time - self.work_start_time > timedelta(hours=24):
            msg = "work period must not exceed 24 hours"
            raise ValueError(msg)
        if self.payment and self.scheduled_day_off is not None:
            msg = "payout orders take no scheduled day off"
            raise ValueError(msg)
        if not self.payment and self.scheduled_day_off is None:
            msg = "scheduled_day_off is required for time-off orders"
            raise ValueError(msg)
        return self


class DecisionPayload(BaseModel):
    """Optional reason attached to reject and cancel actions."""

    reason: str | None = Field(default=None, max_length=1000)


class CorrectionPayload(BaseModel):
    """Field-level correction. Omitted fields keep their current value."""

    correction_reason: str = Field(min_length=1, max_length=1000)
    mark_cancelled: bool = False
    supervisor: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    hours: float | None = None
    reason: str | None = Field(default=None, max_length=2000)
    department: str | None = Field(default=None, max_length=100)
    work_date: date | None = None
    payment: bool | None = None
    scheduled_day_off: date | None = None
    work_start_time: datetime | None = None
    work_end_time: datetime | None = None

    @model_validator(mode="after")
    def _validate_fields(self) -> Self:
        if self.hours is not None:
            _check_half_hour_step(self.hours)
        if self.work_start_time is not None and self.work_end_time is not None:
            if self.work_end_time <= self.work_start_time:
                msg = "work_end_time must be after work_start_time"
                raise ValueError(msg)
        return self

    def field_updates(self) -> dict[str, object]:
        """Record fields explicitly set by the caller."""
        return self.model_dump(
            exclude_unset=True,
            exclude={"correction_reason", "mark_cancelled"},
        )


class BulkActionPayload(BaseModel):
    """IDs to process with the same action."""

    ids: list[uuid.UUID] = Field(min_length=1, max_length=200)
    reason: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RequestResponse(BaseModel):
    """Response schema for a single overtime request."""

    id: uuid.UUID
    internal_id: str
    kind: RequestKind
    status: RequestStatus
    hours: float
    payment: bool
    reason: str | None
    supervisor: str
    requested_by: str
    created_by: str
    employee_identifier: str | None
    employee_email: str | None
    department: str | None
    work_date: date | None
    scheduled_day_off: date | None
    work_start_time: datetime | None
    work_end_time: datetime | None
    submitted_at: datetime | None
    edited_at: datetime | None
    edited_by: str | None
    approved_at: datetime | None
    approved_by: str | None
    quota_approval: bool
    rejected_at: datetime | None
    rejected_by: str | None
    rejection_reason: str | None
    cancelled_at: datetime | None
    cancelled_by: str | None
    cancellation_reason: str | None
    accounted_at: datetime | None
    accounted_by: str | None
    created_at: datetime


class RequestListResponse(BaseModel):
    """Paginated list of overtime requests."""

    items: list[RequestResponse]
    total: int


class BulkItemResult(BaseModel):
    id: uuid.UUID
    outcome: Literal["ok", "error"]
    code: str | None = None
    detail: str | None = None


class BulkActionResponse(BaseModel):
    """Per-ID outcome of a bulk action."""

    succeeded: int
    failed: int
    items: list[BulkItemResult]


class HistoryEntry(BaseModel):
    id: uuid.UUID
    actor: str
    action: str
    note: str | None
    changes: dict[str, dict[str, object]]
    created_at: datetime


class HistoryResponse(BaseModel):
    items: list[HistoryEntry]
