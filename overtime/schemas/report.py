# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class EmployeeBalance(BaseModel):
    """Overtime balance of one employee, summed over their submissions."""

    email: str
    name: str
    total_hours: float
    entry_count: int
    pending_count: int
    approved_count: int
    latest_supervisor: str
    latest_supervisor_name: str


class BalanceListResponse(BaseModel):
    items: list[EmployeeBalance]
    total: int


class ReminderPayload(BaseModel):
    note: str | None = Field(default=None, max_length=1000)


class ReminderResponse(BaseModel):
    recipient: str
    total_hours: float


class AuditLogEntryResponse(BaseModel):
    """Single audit log entry."""

    id: uuid.UUID
    actor: str
    entity_type: str
    entity_id: uuid.UUID
    action: str
    note: str | None
    before_json: dict[str, Any] | None
    after_json: dict[str, Any] | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int
