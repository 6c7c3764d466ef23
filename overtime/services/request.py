# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from sqlalchemy import and_, func, or_, select
from sqlmodel import col

from overtime.config import get_settings
from overtime.exceptions import NotFound, Unauthorized, ValidationFailed
from overtime.models.audit import AuditLog
from overtime.models.base import now_utc
from overtime.models.enums import (
    AuditAction,
    AuditEntityType,
    Capability,
    NotificationKind,
    RequestKind,
    RequestStatus,
)
from overtime.models.request import OvertimeRequest
from overtime.schemas.request import (
    HistoryEntry,
    HistoryResponse,
    RequestListResponse,
    RequestResponse,
    plant_today,
)
from overtime.services.audit import diff_audit_dicts, model_to_audit_dict, write_audit_log
from overtime.services.notification import request_context
from overtime.services.sequence import ORDER_SEQUENCE, SUBMISSION_SEQUENCE, next_internal_id

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from overtime.schemas.auth import AuthContext
    from overtime.schemas.request import CreateOrderPayload, CreatePayoutPayload, CreateSubmissionPayload
    from overtime.services.notification import NotificationDispatcher

logger = logging.getLogger(__name__)

# Submissions in these states no longer contribute to an employee's balance.
BALANCE_EXCLUDED_STATUSES = (RequestStatus.CANCELLED.value, RequestStatus.REJECTED.value)


@dataclass
class RequestFilters:
    """Query filters shared by the list and export endpoints."""

    kind: RequestKind | None = None
    statuses: list[RequestStatus] | None = None
    requested_by: str | None = None
    supervisor: str | None = None
    department: str | None = None
    date_from: date | None = None
    date_to: date | None = None


def parse_status_filter(raw: str | None) -> list[RequestStatus] | None:
    """Parse a comma-separated status list such as ``pending,approved``."""
    if raw is None or not raw.strip():
        return None
    statuses: list[RequestStatus] = []
    for value in raw.split(","):
        value = value.strip().lower()
        if not value:
            continue
        try:
            statuses.append(RequestStatus(value))
        except ValueError:
            raise ValidationFailed(f"Unknown status: {value}", code="invalid_status") from None
    return statuses or None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(record: OvertimeRequest) -> RequestResponse:
    """Map a request model to its response schema."""
    return RequestResponse(
        id=record.id,
        internal_id=record.internal_id,
        kind=RequestKind(record.kind),
        status=RequestStatus(record.status),
        hours=record.hours,
        payment=record.payment,
        reason=record.reason,
        supervisor=record.supervisor,
        requested_by=record.requested_by,
        created_by=record.created_by,
        employee_identifier=record.employee_identifier,
        employee_email=record.employee_email,
        department=record.department,
        work_date=record.work_date,
        scheduled_day_off=record.scheduled_day_off,
        work_start_time=record.work_start_time,
        work_end_time=record.work_end_time,
        submitted_at=record.submitted_at,
        edited_at=record.edited_at,
        edited_by=record.edited_by,
        approved_at=record.approved_at,
        approved_by=record.approved_by,
        quota_approval=record.quota_approval,
        rejected_at=record.rejected_at,
        rejected_by=record.rejected_by,
        rejection_reason=record.rejection_reason,
        cancelled_at=record.cancelled_at,
        cancelled_by=record.cancelled_by,
        cancellation_reason=record.cancellation_reason,
        accounted_at=record.accounted_at,
        accounted_by=record.accounted_by,
        created_at=record.created_at,
    )


async def _get_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> OvertimeRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    result = await session.execute(select(OvertimeRequest).where(col(OvertimeRequest.id) == request_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFound()
    return record


def _plant_now() -> datetime:
    return now_utc().astimezone(ZoneInfo(get_settings().timezone))


def can_view(auth: AuthContext, record: OvertimeRequest) -> bool:
    if auth.can(Capability.VIEW_ALL):
        return True
    return auth.email in (record.requested_by, record.supervisor)


async def get_visible_request(session: AsyncSession, auth: AuthContext, request_id: uuid.UUID) -> OvertimeRequest:
    """Fetch a request the caller may see. Raises 404 or 403."""
    record = await _get_request_or_404(session, request_id)
    if not can_view(auth, record):
        raise Unauthorized("You cannot view this request")
    return record


async def latest_supervisor(session: AsyncSession, requester: str) -> str | None:
    """Supervisor named on the requester's most recent record."""
    result = await session.execute(
        select(OvertimeRequest.supervisor)
        .where(col(OvertimeRequest.requested_by) == requester)
        .order_by(col(OvertimeRequest.submitted_at).desc(), col(OvertimeRequest.created_at).desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def latest_supervisors(session: AsyncSession, requesters: Iterable[str]) -> dict[str, str]:
    """``latest_supervisor`` for many requesters in one query."""
    requesters = list(requesters)
    if not requesters:
        return {}
    result = await session.execute(
        select(OvertimeRequest.requested_by, OvertimeRequest.supervisor)
        .where(col(OvertimeRequest.requested_by).in_(requesters))
        .order_by(col(OvertimeRequest.submitted_at).desc(), col(OvertimeRequest.created_at).desc())
    )
    latest: dict[str, str] = {}
    for requester, supervisor in result.all():
        latest.setdefault(requester, supervisor)
    return latest



async def requester_balance(session: AsyncSession, requester: str) -> float:
    """Sum of the requester's submission hours that still count."""
    result = await session.execute(
        select(func.coalesce(func.sum(col(OvertimeRequest.hours)), 0)).where(
            col(OvertimeRequest.requested_by) == requester,
            col(OvertimeRequest.kind) == RequestKind.SUBMISSION.value,
            col(OvertimeRequest.status).not_in(BALANCE_EXCLUDED_STATUSES),
        )
    )
    return float(result.scalar_one())


def build_request_filters(auth: AuthContext, filters: RequestFilters) -> list[Any]:
    """Translate filters plus the caller's visibility into WHERE clauses."""
    clauses: list[Any] = []
    if not auth.can(Capability.VIEW_ALL):
        clauses.append(
            or_(
                col(OvertimeRequest.requested_by) == auth.email,
                col(OvertimeRequest.supervisor) == auth.email,
            )
        )

    if filters.kind is not None:
        clauses.append(col(OvertimeRequest.kind) == filters.kind.value)
    if filters.statuses:
        clauses.append(col(OvertimeRequest.status).in_([s.value for s in filters.statuses]))
    if filters.requested_by:
        clauses.append(col(OvertimeRequest.requested_by) == filters.requested_by.strip().lower())
    if filters.supervisor:
        clauses.append(col(OvertimeRequest.supervisor) == filters.supervisor.strip().lower())
    if filters.department:
        clauses.append(col(OvertimeRequest.department) == filters.department)

    # Submissions are dated by work_date, orders by their start time; anything
    # else falls back to the submission timestamp.
    if filters.date_from is not None:
        start = datetime.combine(filters.date_from, time.min, tzinfo=UTC)
        clauses.append(
            or_(
                col(OvertimeRequest.work_date) >= filters.date_from,
                and_(col(OvertimeRequest.work_date).is_(None), col(OvertimeRequest.work_start_time) >= start),
                and_(
                    col(OvertimeRequest.work_date).is_(None),
                    col(OvertimeRequest.work_start_time).is_(None),
                    col(OvertimeRequest.submitted_at) >= start,
                ),
            )
        )
    if filters.date_to is not None:
        end = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=UTC)
        clauses.append(
            or_(
                col(OvertimeRequest.work_date) <= filters.date_to,
                and_(col(OvertimeRequest.work_date).is_(None), col(OvertimeRequest.work_start_time) < end),
                and_(
                    col(OvertimeRequest.work_date).is_(None),
                    col(OvertimeRequest.work_start_time).is_(None),
                    col(OvertimeRequest.submitted_at) < end,
                ),
            )
        )
    return clauses


async def _insert_request(
    session: AsyncSession,
    auth: AuthContext,
    record: OvertimeRequest,
    sequence_name: str,
) -> OvertimeRequest:
    """Assign an internal ID, persist the record and its CREATE audit entry, commit."""
    record.internal_id = await next_internal_id(session, sequence_name, _plant_now())
    session.add(record)
    await session.flush()

    await write_audit_log(
        session,
        actor=auth.email,
        entity_type=AuditEntityType.REQUEST,
        entity_id=record.id,
        action=AuditAction.CREATE,
        after_json=model_to_audit_dict(record),
    )
    await session.commit()
    await session.refresh(record)
    logger.info("Created request %s by %s", record.internal_id, auth.email)
    return record


def _require_submit(auth: AuthContext) -> None:
    if not auth.can(Capability.SUBMIT):
        raise Unauthorized("You cannot submit overtime")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def create_submission(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateSubmissionPayload,
) -> RequestResponse:
    """File an overtime entry, either as a draft or straight into review."""
    _require_submit(auth)
    record = OvertimeRequest(
        kind=RequestKind.SUBMISSION.value,
        internal_id="",
        status=(RequestStatus.DRAFT if payload.draft else RequestStatus.PENDING).value,
        hours=payload.hours,
        payment=False,
        reason=payload.reason,
        supervisor=payload.supervisor.strip().lower(),
        requested_by=auth.email,
        created_by=auth.email,
        department=payload.department,
        work_date=payload.work_date,
        submitted_at=now_utc(),
    )
    record = await _insert_request(session, auth, record, SUBMISSION_SEQUENCE)
    return _build_request_response(record)


async def create_payout(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreatePayoutPayload,
) -> RequestResponse:
    """Request payment for accumulated hours.

    The hours are stored negated so the payout draws the balance down, and the
    request bears payment, so approving it consumes the approver's quota.
    """
    _require_submit(auth)
    balance = await requester_balance(session, auth.email)
    if balance <= 0:
        raise ValidationFailed("No overtime balance available for payout", code="no_balance")
    if payload.hours > balance:
        raise ValidationFailed(
            f"Requested {payload.hours:g}h exceeds the available balance of {balance:g}h",
            code="exceeds_balance",
        )

    record = OvertimeRequest(
        kind=RequestKind.SUBMISSION.value,
        internal_id="",
        status=RequestStatus.PENDING.value,
        hours=-payload.hours,
        payment=True,
        reason=payload.reason,
        supervisor=payload.supervisor.strip().lower(),
        requested_by=auth.email,
        created_by=auth.email,
        department=payload.department,
        work_date=plant_today(),
        submitted_at=now_utc(),
    )
    record = await _insert_request(session, auth, record, SUBMISSION_SEQUENCE)
    return _build_request_response(record)


async def create_order(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateOrderPayload,
    notifications: NotificationDispatcher | None = None,
) -> RequestResponse:
    """Issue an individual overtime order; the creator supervises it."""
    if not auth.can(Capability.CREATE_ORDER):
        raise Unauthorized("Creating overtime orders requires a leader or manager role")

    employee_email = payload.employee_email.strip().lower() if payload.employee_email else None
    record = OvertimeRequest(
        kind=RequestKind.ORDER.value,
        internal_id="",
        status=RequestStatus.PENDING.value,
        hours=payload.hours,
        payment=payload.payment,
        reason=payload.reason,
        supervisor=auth.email,
        requested_by=auth.email,
        created_by=auth.email,
        employee_identifier=payload.employee_identifier,
        employee_email=employee_email,
        department=payload.department,
        scheduled_day_off=payload.scheduled_day_off,
        work_start_time=payload.work_start_time,
        work_end_time=payload.work_end_time,
        submitted_at=now_utc(),
    )
    record = await _insert_request(session, auth, record, ORDER_SEQUENCE)

    if notifications is not None:
        await notifications.notify(
            NotificationKind.ORDER_CREATED,
            record.notify_address,
            request_context(record, created_by=auth.email),
        )
    return _build_request_response(record)


async def get_request(session: AsyncSession, auth: AuthContext, request_id: uuid.UUID) -> RequestResponse:
    """Get a single request the caller may see."""
    record = await get_visible_request(session, auth, request_id)
    return _build_request_response(record)


async def list_requests(
    session: AsyncSession,
    auth: AuthContext,
    filters: RequestFilters,
    offset: int = 0,
    limit: int = 50,
) -> RequestListResponse:
    """List visible requests, newest submission first."""
    base_filters = build_request_filters(auth, filters)

    count_result = await session.execute(select(func.count()).select_from(OvertimeRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(OvertimeRequest)
        .where(*base_filters)
        .order_by(col(OvertimeRequest.submitted_at).desc(), col(OvertimeRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    return RequestListResponse(
        items=[_build_request_response(r) for r in result.scalars().all()],
        total=total,
    )


async def get_request_history(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> HistoryResponse:
    """Audit trail of a request, oldest first, with field-level changes."""
    await get_visible_request(session, auth, request_id)
    result = await session.execute(
        select(AuditLog)
        .where(
            col(AuditLog.entity_type) == AuditEntityType.REQUEST.value,
            col(AuditLog.entity_id) == request_id,
        )
        .order_by(col(AuditLog.created_at).asc())
    )
    return HistoryResponse(
        items=[
            HistoryEntry(
                id=entry.id,
                actor=entry.actor,
                action=entry.action,
                note=entry.note,
                changes=diff_audit_dicts(entry.before_json, entry.after_json) if entry.before_json else {},
                created_at=entry.created_at,
            )
            for entry in result.scalars().all()
        ]
    )
