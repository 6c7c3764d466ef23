from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from overtime.models.base import UUIDBase, now_utc


class SupervisorQuota(UUIDBase, table=True):
    """Per-supervisor override of the monthly payout-approval ceiling."""

    __tablename__ = "supervisor_quota"

    supervisor: str = Field(max_length=255, unique=True)
    monthly_limit: float
    updated_by: str = Field(max_length=255)
    updated_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
