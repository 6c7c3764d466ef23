# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class QuotaResponse(BaseModel):
    """Caller's monthly payout-approval quota, optionally evaluated against one request."""

    quota_bound: bool
    monthly_limit: float
    used_hours: float
    remaining_hours: float
    request_id: uuid.UUID | None = None
    request_hours: float | None = None
    can_approve: bool | None = None


class SetQuotaPayload(BaseModel):
    monthly_limit: float = Field(ge=0, le=1000)


class SupervisorQuotaResponse(BaseModel):
    supervisor: str
    monthly_limit: float
    updated_by: str
    updated_at: datetime


class SupervisorQuotaListResponse(BaseModel):
    items: list[SupervisorQuotaResponse]
    default_monthly_limit: float
