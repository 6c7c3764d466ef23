"""Approval workflow: status transitions and corrections of overtime requests.

Every transition is a conditional update that names the status the decision
was made against. If another actor moved the record first, the update matches
no row and the caller gets ``Conflict``; nothing is retried.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import delete, update
from sqlmodel import col

from overtime.exceptions import AppError, Conflict, InvalidTransition, Unauthorized, ValidationFailed
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
    ORDER_HOURS_MAX,
    SUBMISSION_HOURS_MAX,
    SUBMISSION_HOURS_MIN,
    BulkActionResponse,
    BulkItemResult,
    RequestResponse,
)
from overtime.services.audit import model_to_audit_dict, write_audit_log
from overtime.services.notification import request_context
from overtime.services.quota import quota_status
from overtime.services.request import (
    BALANCE_EXCLUDED_STATUSES,
    _build_request_response,
    _get_request_or_404,
    latest_supervisor,
    requester_balance,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from overtime.schemas.auth import AuthContext
    from overtime.schemas.request import BulkActionPayload, CorrectionPayload
    from overtime.services.notification import NotificationDispatcher

logger = logging.getLogger(__name__)

BulkAction = Literal["approve", "reject", "cancel", "account"]

_AUTHOR_CANCELLABLE = (RequestStatus.DRAFT, RequestStatus.PENDING)
_AUTHOR_CORRECTABLE = (RequestStatus.DRAFT, RequestStatus.PENDING)
_HR_CORRECTABLE = (RequestStatus.PENDING, RequestStatus.APPROVED)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_not_accounted(record: OvertimeRequest) -> None:
    if record.status == RequestStatus.ACCOUNTED:
        raise InvalidTransition("Accounted requests cannot be changed", code="record_accounted")


def _ensure_status(record: OvertimeRequest, allowed: Iterable[RequestStatus], action: str) -> None:
    _ensure_not_accounted(record)
    if record.status not in allowed:
        raise InvalidTransition(f"Cannot {action} a request in status '{record.status}'")


async def _is_responsible_approver(session: AsyncSession, auth: AuthContext, record: OvertimeRequest) -> bool:
    """Whether the actor may decide on this record.

    Besides the supervisor named on the record, the supervisor on the
    requester's most recent record counts, so a manager change does not
    strand requests filed with the previous manager.
    """
    if auth.can(Capability.DECIDE_ANY):
        return True
    if not auth.can(Capability.DECIDE_ASSIGNED):
        return False
    if record.supervisor == auth.email:
        return True
    return await latest_supervisor(session, record.requested_by) == auth.email


async def _transition(
    session: AsyncSession,
    auth: AuthContext,
    record: OvertimeRequest,
    expected: Iterable[RequestStatus | str],
    values: dict[str, Any],
    action: AuditAction,
    note: str | None = None,
) -> OvertimeRequest:
    """Apply ``values`` only if the record still has one of the ``expected`` statuses.

    The update, the refreshed record and the audit entry commit together.
    """
    before = model_to_audit_dict(record)
    result = await session.execute(
        update(OvertimeRequest)
        .where(
            col(OvertimeRequest.id) == record.id,
            col(OvertimeRequest.status).in_([str(s) for s in expected]),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:  # type: ignore[attr-defined]
        logger.info("Lost race to %s request %s (actor %s)", action.value.lower(), record.internal_id, auth.email)
        await session.rollback()
        raise Conflict()

    await session.refresh(record)
    await write_audit_log(
        session,
        actor=auth.email,
        entity_type=AuditEntityType.REQUEST,
        entity_id=record.id,
        action=action,
        note=note,
        before_json=before,
        after_json=model_to_audit_dict(record),
    )
    await session.commit()
    logger.info("%s request %s by %s", action.value.capitalize(), record.internal_id, auth.email)
    return record


# ---------------------------------------------------------------------------
# Single-record transitions (no notification, raise on failure)
# ---------------------------------------------------------------------------


async def _approve(session: AsyncSession, auth: AuthContext, record: OvertimeRequest) -> OvertimeRequest:
    _ensure_status(record, (RequestStatus.PENDING,), "approve")

    unlimited = auth.can(Capability.APPROVE_UNLIMITED)
    if not unlimited and not await _is_responsible_approver(session, auth, record):
        raise Unauthorized("You are not an approver for this request")

    quota_approval = False
    if record.payment and not unlimited:
        if not auth.is_quota_bound:
            raise Unauthorized(
                "Payout requests must be approved by a plant manager",
                code="plant_manager_approval_required",
            )
        # Re-derived from the store at decision time; a concurrent approval by
        # the same supervisor can still slip past this read.
        quota = await quota_status(session, auth.email)
        if not quota.can_approve(record.hours):
            raise InvalidTransition(
                f"Monthly quota exceeded: {abs(record.hours):g}h requested, {quota.remaining_hours:g}h remaining",
                code="quota_exceeded",
            )
        quota_approval = True

    return await _transition(
        session,
        auth,
        record,
        (RequestStatus.PENDING,),
        {
            "status": RequestStatus.APPROVED.value,
            "approved_at": now_utc(),
            "approved_by": auth.email,
            "quota_approval": quota_approval,
        },
        AuditAction.APPROVE,
    )


async def _reject(
    session: AsyncSession,
    auth: AuthContext,
    record: OvertimeRequest,
    reason: str | None,
) -> OvertimeRequest:
    _ensure_status(record, (RequestStatus.PENDING,), "reject")
    if not auth.can(Capability.APPROVE_UNLIMITED) and not await _is_responsible_approver(session, auth, record):
        raise Unauthorized("You are not an approver for this request")

    return await _transition(
        session,
        auth,
        record,
        (RequestStatus.PENDING,),
        {
            "status": RequestStatus.REJECTED.value,
            "rejected_at": now_utc(),
            "rejected_by": auth.email,
            "rejection_reason": reason,
        },
        AuditAction.REJECT,
        note=reason,
    )


async def _cancel(
    session: AsyncSession,
    auth: AuthContext,
    record: OvertimeRequest,
    reason: str | None,
) -> OvertimeRequest:
    _ensure_not_accounted(record)
    if auth.can(Capability.CANCEL_ANY):
        if record.status == RequestStatus.CANCELLED:
            raise InvalidTransition("Request is already cancelled")
    elif record.requested_by == auth.email:
        if record.status not in _AUTHOR_CANCELLABLE:
            raise InvalidTransition(
                f"Authors can cancel only draft or pending requests, not '{record.status}'",
                code="not_cancellable",
            )
    else:
        raise Unauthorized("Only the author or an administrator can cancel this request")

    return await _transition(
        session,
        auth,
        record,
        (record.status,),
        {
            "status": RequestStatus.CANCELLED.value,
            "cancelled_at": now_utc(),
            "cancelled_by": auth.email,
            "cancellation_reason": reason,
        },
        AuditAction.CANCEL,
        note=reason,
    )


async def _mark_accounted(session: AsyncSession, auth: AuthContext, record: OvertimeRequest) -> OvertimeRequest:
    if not auth.can(Capability.MARK_ACCOUNTED):
        raise Unauthorized("Only HR can mark requests as accounted")
    _ensure_status(record, (RequestStatus.APPROVED,), "account")

    return await _transition(
        session,
        auth,
        record,
        (RequestStatus.APPROVED,),
        {
            "status": RequestStatus.ACCOUNTED.value,
            "accounted_at": now_utc(),
            "accounted_by": auth.email,
        },
        AuditAction.ACCOUNT,
    )


def _check_correction_rights(auth: AuthContext, record: OvertimeRequest, mark_cancelled: bool) -> None:
    _ensure_not_accounted(record)
    is_author = record.requested_by == auth.email

    if mark_cancelled and not (auth.can(Capability.CORRECT_ANY) or is_author):
        raise Unauthorized("Only the author or an administrator can cancel through a correction")

    if auth.can(Capability.CORRECT_ANY):
        return
    if auth.can(Capability.CORRECT_APPROVED) and record.status in _HR_CORRECTABLE:
        return
    if is_author and record.status in _AUTHOR_CORRECTABLE:
        return
    if is_author or auth.can(Capability.CORRECT_APPROVED):
        raise InvalidTransition(f"Cannot correct a request in status '{record.status}'")
    raise Unauthorized("You cannot correct this request")


def _merged_time(record: OvertimeRequest, updates: dict[str, Any], field: str) -> datetime | None:
    value = updates[field] if field in updates else getattr(record, field)
    if value is not None and value.tzinfo is None:
        # SQLite hands back naive values; everything is stored as UTC.
        value = value.replace(tzinfo=UTC)
    return value


async def _check_corrected_record(
    session: AsyncSession,
    record: OvertimeRequest,
    updates: dict[str, Any],
    *,
    restores_balance: bool,
) -> None:
    """Hold the corrected record to the rules it was created under.

    ``restores_balance`` is set when the correction puts a cancelled record
    back into review, so a payout must again be covered by the balance.
    """
    hours = updates.get("hours", record.hours)
    payment = updates.get("payment", record.payment)
    day_off = updates["scheduled_day_off"] if "scheduled_day_off" in updates else record.scheduled_day_off

    start = _merged_time(record, updates, "work_start_time")
    end = _merged_time(record, updates, "work_end_time")
    if start is not None and end is not None and end <= start:
        raise ValidationFailed("work_end_time must be after work_start_time")

    if record.kind == RequestKind.ORDER:
        if not 0 <= hours <= ORDER_HOURS_MAX:
            raise ValidationFailed(f"Order hours must be between 0 and {ORDER_HOURS_MAX:g}", code="invalid_hours")
        if payment and day_off is not None:
            raise ValidationFailed("Payout orders take no scheduled day off", code="day_off_mismatch")
        if not payment and day_off is None:
            raise ValidationFailed("Time-off orders require a scheduled day off", code="day_off_mismatch")
        return

    if payment != record.payment:
        raise ValidationFailed(
            "Entries and payouts cannot be converted into each other; file a new request",
            code="payment_immutable",
        )
    if not payment:
        if hours == 0 or not SUBMISSION_HOURS_MIN <= hours <= SUBMISSION_HOURS_MAX:
            raise ValidationFailed(
                f"Hours must be non-zero and between {SUBMISSION_HOURS_MIN:g} and {SUBMISSION_HOURS_MAX:g}",
                code="invalid_hours",
            )
        return

    # Payouts are stored negated and must stay covered by the remaining balance.
    if hours >= 0:
        raise ValidationFailed("Payout hours are stored negated and must stay below zero", code="invalid_hours")
    if "hours" not in updates and not restores_balance:
        return
    balance = await requester_balance(session, record.requested_by)
    if record.status not in BALANCE_EXCLUDED_STATUSES:
        balance -= record.hours
    if abs(hours) > balance:
        raise ValidationFailed(
            f"Requested {abs(hours):g}h exceeds the available balance of {max(balance, 0):g}h",
            code="exceeds_balance",
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def approve_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    notifications: NotificationDispatcher | None = None,
) -> RequestResponse:
    """Approve a pending request, drawing on the approver's quota for payouts."""
    record = await _get_request_or_404(session, request_id)
    record = await _approve(session, auth, record)
    if notifications is not None:
        await notifications.notify(NotificationKind.APPROVED, record.notify_address, request_context(record))
    return _build_request_response(record)


async def reject_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    reason: str | None = None,
    notifications: NotificationDispatcher | None = None,
) -> RequestResponse:
    record = await _get_request_or_404(session, request_id)
    record = await _reject(session, auth, record, reason)
    if notifications is not None:
        await notifications.notify(
            NotificationKind.REJECTED,
            record.notify_address,
            request_context(record, rejection_reason=reason),
        )
    return _build_request_response(record)


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    reason: str | None = None,
    notifications: NotificationDispatcher | None = None,
) -> RequestResponse:
    """Cancel a request; authors while it is undecided, administrators at any point before accounting."""
    record = await _get_request_or_404(session, request_id)
    record = await _cancel(session, auth, record, reason)
    if notifications is not None and record.notify_address != auth.email:
        await notifications.notify(
            NotificationKind.CANCELLED,
            record.notify_address,
            request_context(record, cancellation_reason=reason),
        )
    return _build_request_response(record)


async def mark_accounted(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Mark an approved request as settled in payroll. Irreversible."""
    record = await _get_request_or_404(session, request_id)
    record = await _mark_accounted(session, auth, record)
    return _build_request_response(record)


async def submit_draft(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> RequestResponse:
    """Send the author's draft into review."""
    record = await _get_request_or_404(session, request_id)
    if record.requested_by != auth.email:
        raise Unauthorized("Only the author can submit a draft")
    _ensure_status(record, (RequestStatus.DRAFT,), "submit")

    record = await _transition(
        session,
        auth,
        record,
        (RequestStatus.DRAFT,),
        {"status": RequestStatus.PENDING.value, "submitted_at": now_utc()},
        AuditAction.SUBMIT,
    )
    return _build_request_response(record)


async def correct_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: CorrectionPayload,
    notifications: NotificationDispatcher | None = None,
) -> RequestResponse:
    """Apply a field-level correction; the status normally stays as it is.

    ``mark_cancelled`` turns the correction into a cancellation. An
    administrator correcting a cancelled request without it reopens the
    request as pending.
    """
    record = await _get_request_or_404(session, request_id)
    _check_correction_rights(auth, record, payload.mark_cancelled)

    updates = payload.field_updates()
    if "supervisor" in updates and updates["supervisor"]:
        updates["supervisor"] = updates["supervisor"].strip().lower()
    for required in ("supervisor", "hours", "payment"):
        if required in updates and updates[required] is None:
            raise ValidationFailed(f"{required} cannot be cleared")

    reopening = not payload.mark_cancelled and record.status == RequestStatus.CANCELLED
    await _check_corrected_record(session, record, updates, restores_balance=reopening)

    now = now_utc()
    values: dict[str, Any] = {**updates, "edited_at": now, "edited_by": auth.email}
    if payload.mark_cancelled:
        values.update(
            status=RequestStatus.CANCELLED.value,
            cancelled_at=now,
            cancelled_by=auth.email,
            cancellation_reason=payload.correction_reason,
        )
    elif reopening:
        values.update(
            status=RequestStatus.PENDING.value,
            cancelled_at=None,
            cancelled_by=None,
            cancellation_reason=None,
        )

    record = await _transition(
        session,
        auth,
        record,
        (record.status,),
        values,
        AuditAction.CORRECT,
        note=payload.correction_reason,
    )

    if notifications is not None and record.requested_by != auth.email:
        await notifications.notify(
            NotificationKind.CORRECTED,
            record.requested_by,
            request_context(record, corrected_by=auth.email, correction_reason=payload.correction_reason),
        )
    return _build_request_response(record)


async def delete_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> None:
    """Hard-delete a request. Accounted requests are kept."""
    if not auth.can(Capability.DELETE):
        raise Unauthorized("Only administrators can delete requests")
    record = await _get_request_or_404(session, request_id)
    _ensure_not_accounted(record)

    before = model_to_audit_dict(record)
    result = await session.execute(
        delete(OvertimeRequest)
        .where(
            col(OvertimeRequest.id) == record.id,
            col(OvertimeRequest.status) != RequestStatus.ACCOUNTED.value,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:  # type: ignore[attr-defined]
        await session.rollback()
        raise Conflict()

    session.expunge(record)
    await write_audit_log(
        session,
        actor=auth.email,
        entity_type=AuditEntityType.REQUEST,
        entity_id=record.id,
        action=AuditAction.DELETE,
        before_json=before,
    )
    await session.commit()
    logger.info("Deleted request %s by %s", record.internal_id, auth.email)


async def bulk_action(
    session: AsyncSession,
    auth: AuthContext,
    action: BulkAction,
    payload: BulkActionPayload,
    notifications: NotificationDispatcher | None = None,
) -> BulkActionResponse:
    """Run one action over many requests; each ID succeeds or fails on its own."""
    items: list[BulkItemResult] = []
    for request_id in payload.ids:
        try:
            if action == "approve":
                await approve_request(session, auth, request_id, notifications)
            elif action == "reject":
                await reject_request(session, auth, request_id, payload.reason, notifications)
            elif action == "cancel":
                await cancel_request(session, auth, request_id, payload.reason, notifications)
            else:
                await mark_accounted(session, auth, request_id)
        except AppError as exc:
            await session.rollback()
            items.append(BulkItemResult(id=request_id, outcome="error", code=exc.code, detail=exc.message))
        else:
            items.append(BulkItemResult(id=request_id, outcome="ok"))

    succeeded = sum(1 for item in items if item.outcome == "ok")
    return BulkActionResponse(succeeded=succeeded, failed=len(items) - succeeded, items=items)
