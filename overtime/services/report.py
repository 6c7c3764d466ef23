"""Reporting service: employee balances, request exports, reminders and audit log queries."""

from __future__ import annotations

import csv
import io
import re
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from openpyxl import Workbook
from sqlalchemy import func, select
from sqlmodel import col

from overtime.config import get_settings
from overtime.exceptions import NotFound, Unauthorized, ValidationFailed
from overtime.models.audit import AuditLog
from overtime.models.enums import Capability, NotificationKind, RequestKind, RequestStatus
from overtime.models.request import OvertimeRequest
from overtime.schemas.report import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    BalanceListResponse,
    EmployeeBalance,
    ReminderResponse,
)
from overtime.services.directory import display_name
from overtime.services.request import (
    build_request_filters,
    latest_supervisor,
    latest_supervisors,
    requester_balance,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from overtime.schemas.auth import AuthContext
    from overtime.schemas.report import ReminderPayload
    from overtime.services.directory import Directory
    from overtime.services.notification import NotificationDispatcher
    from overtime.services.request import RequestFilters

EXPORT_COLUMNS: tuple[str, ...] = (
    "internal_id",
    "kind",
    "status",
    "requested_by",
    "employee_identifier",
    "supervisor",
    "department",
    "work_date",
    "hours",
    "payment",
    "scheduled_day_off",
    "work_start_time",
    "work_end_time",
    "reason",
    "submitted_at",
    "approved_by",
    "approved_at",
    "edited_at",
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


def _period_bounds(year: int | None, month: str | None) -> tuple[date, date] | None:
    """Inclusive work-date range for a ``YYYY-MM`` month or a whole year."""
    if month is not None:
        match = _MONTH_RE.match(month)
        if match is None or not 1 <= int(match.group(2)) <= 12:
            raise ValidationFailed("month must use the YYYY-MM format", code="invalid_month")
        y, m = int(match.group(1)), int(match.group(2))
        start = date(y, m, 1)
        end = date(y + 1, 1, 1) if m == 12 else date(y, m + 1, 1)
        return start, end - timedelta(days=1)
    if year is not None:
        return date(year, 1, 1), date(year, 12, 31)
    return None


async def list_balances(
    session: AsyncSession,
    auth: AuthContext,
    directory: Directory,
    *,
    statuses: list[RequestStatus] | None = None,
    year: int | None = None,
    month: str | None = None,
    employee: str | None = None,
    supervisor: str | None = None,
) -> BalanceListResponse:
    """Per-employee submission totals, largest balance first.

    Cancelled entries are left out unless statuses are given explicitly, and
    employees whose entries cancel out to zero are dropped. Team views only
    include employees whose most recent record, whatever its status or date,
    names the caller as supervisor.
    """
    view_all = auth.can(Capability.VIEW_ALL)
    if not view_all and not auth.can(Capability.VIEW_TEAM):
        raise Unauthorized("Viewing balances requires a manager, HR or administrator role")

    filters: list[Any] = [col(OvertimeRequest.kind) == RequestKind.SUBMISSION.value]
    if statuses:
        filters.append(col(OvertimeRequest.status).in_([s.value for s in statuses]))
    else:
        filters.append(col(OvertimeRequest.status) != RequestStatus.CANCELLED.value)
    period = _period_bounds(year, month)
    if period is not None:
        filters.append(col(OvertimeRequest.work_date) >= period[0])
        filters.append(col(OvertimeRequest.work_date) <= period[1])

    result = await session.execute(
        select(OvertimeRequest.requested_by, OvertimeRequest.hours, OvertimeRequest.status).where(*filters)
    )

    totals: dict[str, dict[str, Any]] = {}
    for requested_by, hours, status in result.all():
        entry = totals.setdefault(requested_by, {"total": 0.0, "count": 0, "pending": 0, "approved": 0})
        entry["total"] += hours
        entry["count"] += 1
        if status == RequestStatus.PENDING:
            entry["pending"] += 1
        elif status == RequestStatus.APPROVED:
            entry["approved"] += 1

    # Team membership follows the same lookup as approval rights, over every record.
    supervisors = await latest_supervisors(session, totals)

    items: list[EmployeeBalance] = []
    for email, entry in totals.items():
        latest = supervisors[email]
        if entry["total"] == 0:
            continue
        if not view_all and latest != auth.email:
            continue
        if employee and email != employee.strip().lower():
            continue
        if supervisor and view_all and latest != supervisor.strip().lower():
            continue
        items.append(
            EmployeeBalance(
                email=email,
                name=await display_name(directory, email),
                total_hours=entry["total"],
                entry_count=entry["count"],
                pending_count=entry["pending"],
                approved_count=entry["approved"],
                latest_supervisor=latest,
                latest_supervisor_name=await display_name(directory, latest),
            )
        )

    items.sort(key=lambda item: item.total_hours, reverse=True)
    return BalanceListResponse(items=items, total=len(items))


async def send_balance_reminder(
    session: AsyncSession,
    auth: AuthContext,
    employee: str,
    payload: ReminderPayload,
    notifications: NotificationDispatcher,
) -> ReminderResponse:
    """Remind an employee to settle their overtime balance."""
    if not auth.can(Capability.REMIND):
        raise Unauthorized("Sending reminders requires a leader, manager or HR role")

    employee = employee.strip().lower()
    if not auth.can(Capability.VIEW_ALL) and await latest_supervisor(session, employee) != auth.email:
        raise Unauthorized("You can only remind employees you supervise")

    total = await requester_balance(session, employee)
    if total <= 0:
        raise ValidationFailed("Employee has no overtime balance", code="no_balance")

    await notifications.notify(
        NotificationKind.BALANCE_REMINDER,
        employee,
        {
            "total_hours": total,
            "note": payload.note,
            "url": f"{get_settings().base_url.rstrip('/')}/overtime-submissions",
        },
    )
    return ReminderResponse(recipient=employee, total_hours=total)


async def notify_supervisor_of_balance(
    session: AsyncSession,
    auth: AuthContext,
    directory: Directory,
    employee: str,
    payload: ReminderPayload,
    notifications: NotificationDispatcher,
) -> ReminderResponse:
    """Tell an employee's latest supervisor about the employee's unsettled balance.

    The message always goes out in English.
    """
    if not auth.can(Capability.NOTIFY_SUPERVISOR):
        raise Unauthorized("Notifying supervisors requires HR, plant manager or administrator access")

    employee = employee.strip().lower()
    supervisor = await latest_supervisor(session, employee)
    if supervisor is None:
        raise NotFound("No overtime records for this employee")
    total = await requester_balance(session, employee)
    if total <= 0:
        raise ValidationFailed("Employee has no overtime balance", code="no_balance")

    base_url = get_settings().base_url.rstrip("/")
    await notifications.notify(
        NotificationKind.SUPERVISOR_BALANCE,
        supervisor,
        {
            "employee": employee,
            "employee_name": await display_name(directory, employee),
            "total_hours": total,
            "sent_by": auth.email,
            "note": payload.note,
            "url": f"{base_url}/overtime-submissions/balances?employee={quote(employee)}",
        },
        lang="en",
    )
    return ReminderResponse(recipient=supervisor, total_hours=total)



# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


async def _export_rows(session: AsyncSession, auth: AuthContext, filters: RequestFilters) -> list[OvertimeRequest]:
    if not auth.can(Capability.EXPORT):
        raise Unauthorized("Exporting requires HR, plant manager or administrator access")
    result = await session.execute(
        select(OvertimeRequest)
        .where(*build_request_filters(auth, filters))
        .order_by(col(OvertimeRequest.submitted_at).desc(), col(OvertimeRequest.created_at).desc())
    )
    return list(result.scalars().all())


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _xlsx_value(value: Any) -> Any:
    # Excel cells cannot hold timezone-aware datetimes.
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def render_csv(records: list[OvertimeRequest]) -> str:
    """Render records with a fixed header; fields holding a comma, quote or newline are quoted."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(EXPORT_COLUMNS)
    for record in records:
        writer.writerow([_csv_value(getattr(record, column)) for column in EXPORT_COLUMNS])
    return output.getvalue()


def render_xlsx(records: list[OvertimeRequest]) -> bytes:
    output = io.BytesIO()
    wb = Workbook()
    ws = wb.active
    ws.title = "Overtime"
    ws.append(list(EXPORT_COLUMNS))
    for record in records:
        ws.append([_xlsx_value(getattr(record, column)) for column in EXPORT_COLUMNS])
    wb.save(output)
    return output.getvalue()


async def export_requests_csv(session: AsyncSession, auth: AuthContext, filters: RequestFilters) -> str:
    return render_csv(await _export_rows(session, auth, filters))


async def export_requests_xlsx(session: AsyncSession, auth: AuthContext, filters: RequestFilters) -> bytes:
    return render_xlsx(await _export_rows(session, auth, filters))


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


async def query_audit_log(
    session: AsyncSession,
    auth: AuthContext,
    *,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    action: str | None = None,
    actor: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query audit log entries with optional filters."""
    if not auth.can(Capability.VIEW_AUDIT):
        raise Unauthorized("Audit log access requires administrator access")

    filters: list[Any] = []
    if entity_type is not None:
        filters.append(col(AuditLog.entity_type) == entity_type)
    if entity_id is not None:
        filters.append(col(AuditLog.entity_id) == entity_id)
    if action is not None:
        filters.append(col(AuditLog.action) == action)
    if actor is not None:
        filters.append(col(AuditLog.actor) == actor.strip().lower())
    if start_date is not None:
        filters.append(col(AuditLog.created_at) >= datetime.combine(start_date, datetime.min.time(), tzinfo=UTC))
    if end_date is not None:
        filters.append(col(AuditLog.created_at) <= datetime.combine(end_date, datetime.max.time(), tzinfo=UTC))

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditLogListResponse(
        items=[
            AuditLogEntryResponse(
                id=e.id,
                actor=e.actor,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                action=e.action,
                note=e.note,
                before_json=e.before_json,
                after_json=e.after_json,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
    )
