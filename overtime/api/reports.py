# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query

from overtime.api.deps import AuthDep, DirectoryDep, NotificationsDep
from overtime.db import SessionDep
from overtime.schemas.report import AuditLogListResponse, BalanceListResponse, ReminderPayload, ReminderResponse
from overtime.services import report as report_service
from overtime.services.request import parse_status_filter

balances_router = APIRouter(prefix="/balances", tags=["balances"])
audit_router = APIRouter(tags=["reports"])


@balances_router.get("", response_model=BalanceListResponse)
async def list_balances(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    status_filter: str | None = Query(default=None, alias="status"),
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: str | None = Query(default=None, description="YYYY-MM"),
    employee: str | None = Query(default=None),
    supervisor: str | None = Query(default=None),
) -> BalanceListResponse:
    """Overtime balance per employee."""
    return await report_service.list_balances(
        session,
        auth,
        directory,
        statuses=parse_status_filter(status_filter),
        year=year,
        month=month,
        employee=employee,
        supervisor=supervisor,
    )


@balances_router.post("/{email}/remind", response_model=ReminderResponse)
async def send_balance_reminder(
    email: str,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
    payload: ReminderPayload | None = None,
) -> ReminderResponse:
    """E-mail an employee a reminder about their overtime balance."""
    return await report_service.send_balance_reminder(
        session, auth, email, payload or ReminderPayload(), notifications
    )


@balances_router.post("/{email}/notify-supervisor", response_model=ReminderResponse)
async def notify_supervisor_of_balance(
    email: str,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    notifications: NotificationsDep,
    payload: ReminderPayload | None = None,
) -> ReminderResponse:
    """E-mail the employee's latest supervisor about the employee's overtime balance."""
    return await report_service.notify_supervisor_of_balance(
        session, auth, directory, email, payload or ReminderPayload(), notifications
    )



@audit_router.get("/audit-log", response_model=AuditLogListResponse)
async def query_audit_log(
    session: SessionDep,
    auth: AuthDep,
    entity_type: str | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None),
    actor: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    return await report_service.query_audit_log(
        session,
        auth,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor=actor,
        start_date=start_date,
        end_date=end_date,
        offset=offset,
        limit=limit,
    )
