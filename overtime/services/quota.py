# ruff: noqa: TC003
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlmodel import col

from overtime.config import get_settings
from overtime.exceptions import Unauthorized
from overtime.models.base import now_utc
from overtime.models.enums import AuditAction, AuditEntityType, Capability, RequestStatus
from overtime.models.quota import SupervisorQuota
from overtime.models.request import OvertimeRequest
from overtime.schemas.quota import (
    QuotaResponse,
    SupervisorQuotaListResponse,
    SupervisorQuotaResponse,
)
from overtime.services.audit import model_to_audit_dict, write_audit_log
from overtime.services.request import get_visible_request

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from overtime.config import Settings
    from overtime.schemas.auth import AuthContext
    from overtime.schemas.quota import SetQuotaPayload

# Approvals in these states keep counting against the month they were granted in.
QUOTA_COUNTED_STATUSES = (RequestStatus.APPROVED.value, RequestStatus.ACCOUNTED.value)


@dataclass(frozen=True)
class QuotaStatus:
    """Snapshot of one supervisor's monthly payout-approval quota."""

    monthly_limit: float
    used_hours: float

    @property
    def remaining_hours(self) -> float:
        return max(0.0, self.monthly_limit - self.used_hours)

    def can_approve(self, hours: float) -> bool:
        return self.used_hours + abs(hours) <= self.monthly_limit


def month_bounds(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """Return the UTC start (inclusive) and end (exclusive) of ``now``'s local calendar month."""
    tz = ZoneInfo(tz_name)
    local = now.astimezone(tz)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start.astimezone(UTC), end.astimezone(UTC)


async def monthly_limit(session: AsyncSession, supervisor: str, settings: Settings | None = None) -> float:
    """Per-supervisor override if one exists, else the global default."""
    settings = settings or get_settings()
    result = await session.execute(
        select(SupervisorQuota.monthly_limit).where(col(SupervisorQuota.supervisor) == supervisor)
    )
    override = result.scalar_one_or_none()
    return settings.supervisor_monthly_limit if override is None else float(override)


async def used_hours(
    session: AsyncSession,
    supervisor: str,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> float:
    """Sum payout hours the supervisor approved against their quota this month.

    Always read from the store; nothing is cached between decisions.
    """
    settings = settings or get_settings()
    start, end = month_bounds(now or now_utc(), settings.timezone)
    result = await session.execute(
        select(func.coalesce(func.sum(func.abs(col(OvertimeRequest.hours))), 0)).where(
            col(OvertimeRequest.payment).is_(True),
            col(OvertimeRequest.quota_approval).is_(True),
            col(OvertimeRequest.approved_by) == supervisor,
            col(OvertimeRequest.status).in_(QUOTA_COUNTED_STATUSES),
            col(OvertimeRequest.approved_at) >= start,
            col(OvertimeRequest.approved_at) < end,
        )
    )
    return float(result.scalar_one())


async def quota_status(
    session: AsyncSession,
    supervisor: str,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> QuotaStatus:
    settings = settings or get_settings()
    return QuotaStatus(
        monthly_limit=await monthly_limit(session, supervisor, settings),
        used_hours=await used_hours(session, supervisor, now, settings),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def get_my_quota(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID | None = None,
) -> QuotaResponse:
    """Return the caller's quota, optionally evaluated against one request."""
    request_hours: float | None = None
    if request_id is not None:
        record = await get_visible_request(session, auth, request_id)
        request_hours = abs(record.hours)

    if not auth.is_quota_bound:
        return QuotaResponse(
            quota_bound=False,
            monthly_limit=0,
            used_hours=0,
            remaining_hours=0,
            request_id=request_id,
            request_hours=request_hours,
            can_approve=None,
        )

    quota = await quota_status(session, auth.email)
    return QuotaResponse(
        quota_bound=True,
        monthly_limit=quota.monthly_limit,
        used_hours=quota.used_hours,
        remaining_hours=quota.remaining_hours,
        request_id=request_id,
        request_hours=request_hours,
        can_approve=None if request_hours is None else quota.can_approve(request_hours),
    )


def _build_quota_response(quota: SupervisorQuota) -> SupervisorQuotaResponse:
    return SupervisorQuotaResponse(
        supervisor=quota.supervisor,
        monthly_limit=quota.monthly_limit,
        updated_by=quota.updated_by,
        updated_at=quota.updated_at,
    )


async def list_supervisor_quotas(session: AsyncSession, auth: AuthContext) -> SupervisorQuotaListResponse:
    if not auth.can(Capability.MANAGE_QUOTA):
        raise Unauthorized("Managing quotas requires administrator access")
    result = await session.execute(select(SupervisorQuota).order_by(col(SupervisorQuota.supervisor)))
    return SupervisorQuotaListResponse(
        items=[_build_quota_response(q) for q in result.scalars().all()],
        default_monthly_limit=get_settings().supervisor_monthly_limit,
    )


async def set_supervisor_quota(
    session: AsyncSession,
    auth: AuthContext,
    supervisor: str,
    payload: SetQuotaPayload,
) -> SupervisorQuotaResponse:
    """Create or replace a supervisor's monthly limit override."""
    if not auth.can(Capability.MANAGE_QUOTA):
        raise Unauthorized("Managing quotas requires administrator access")

    supervisor = supervisor.strip().lower()
    result = await session.execute(select(SupervisorQuota).where(col(SupervisorQuota.supervisor) == supervisor))
    quota = result.scalar_one_or_none()
    before = model_to_audit_dict(quota) if quota is not None else None

    if quota is None:
        quota = SupervisorQuota(supervisor=supervisor, monthly_limit=payload.monthly_limit, updated_by=auth.email)
        session.add(quota)
    else:
        quota.monthly_limit = payload.monthly_limit
        quota.updated_by = auth.email
        quota.updated_at = now_utc()
    await session.flush()

    await write_audit_log(
        session,
        actor=auth.email,
        entity_type=AuditEntityType.QUOTA,
        entity_id=quota.id,
        action=AuditAction.SET_QUOTA,
        before_json=before,
        after_json=model_to_audit_dict(quota),
    )
    await session.commit()
    return _build_quota_response(quota)
