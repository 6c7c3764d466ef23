# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status

from overtime.api.deps import AuthDep, NotificationsDep
from overtime.db import SessionDep
from overtime.models.enums import RequestKind
from overtime.schemas.request import (
    BulkActionPayload,
    BulkActionResponse,
    CorrectionPayload,
    DecisionPayload,
    HistoryResponse,
    RequestListResponse,
    RequestResponse,
)
from overtime.services import report as report_service
from overtime.services import request as request_service
from overtime.services import workflow as workflow_service
from overtime.services.request import RequestFilters, parse_status_filter

requests_router = APIRouter(prefix="/requests", tags=["requests"])


async def get_request_filters(
    kind: RequestKind | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    requested_by: str | None = Query(default=None),
    supervisor: str | None = Query(default=None),
    department: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
) -> RequestFilters:
    """Shared query filters for listing and exporting requests."""
    return RequestFilters(
        kind=kind,
        statuses=parse_status_filter(status_filter),
        requested_by=requested_by,
        supervisor=supervisor,
        department=department,
        date_from=date_from,
        date_to=date_to,
    )


@requests_router.get("", response_model=RequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    filters: RequestFilters = Depends(get_request_filters),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> RequestListResponse:
    """List overtime requests visible to the caller."""
    return await request_service.list_requests(session, auth, filters, offset, limit)


@requests_router.get("/export.csv")
async def export_requests_csv(
    session: SessionDep,
    auth: AuthDep,
    filters: RequestFilters = Depends(get_request_filters),
) -> Response:
    """Export matching requests as CSV."""
    content = await report_service.export_requests_csv(session, auth, filters)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="overtime.csv"'},
    )


@requests_router.get("/export.xlsx")
async def export_requests_xlsx(
    session: SessionDep,
    auth: AuthDep,
    filters: RequestFilters = Depends(get_request_filters),
) -> Response:
    """Export matching requests as an Excel workbook."""
    content = await report_service.export_requests_xlsx(session, auth, filters)
    return Response(
        content=content,
        media_type=report_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="overtime.xlsx"'},
    )


@requests_router.post("/bulk/{action}", response_model=BulkActionResponse)
async def bulk_action(
    action: Literal["approve", "reject", "cancel", "account"],
    payload: BulkActionPayload,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
) -> BulkActionResponse:
    """Apply one action to many requests, reporting the outcome per ID."""
    return await workflow_service.bulk_action(session, auth, action, payload, notifications)


@requests_router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Get a single overtime request."""
    return await request_service.get_request(session, auth, request_id)


@requests_router.get("/{request_id}/history", response_model=HistoryResponse)
async def get_request_history(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> HistoryResponse:
    """Audit trail of a request, including corrections."""
    return await request_service.get_request_history(session, auth, request_id)


@requests_router.post("/{request_id}/submit", response_model=RequestResponse)
async def submit_draft(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Send a draft into review."""
    return await workflow_service.submit_draft(session, auth, request_id)


@requests_router.post("/{request_id}/approve", response_model=RequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
) -> RequestResponse:
    """Approve a pending request."""
    return await workflow_service.approve_request(session, auth, request_id, notifications)


@requests_router.post("/{request_id}/reject", response_model=RequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
    payload: DecisionPayload | None = None,
) -> RequestResponse:
    """Reject a pending request."""
    reason = payload.reason if payload else None
    return await workflow_service.reject_request(session, auth, request_id, reason, notifications)


@requests_router.post("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
    payload: DecisionPayload | None = None,
) -> RequestResponse:
    """Cancel a request."""
    reason = payload.reason if payload else None
    return await workflow_service.cancel_request(session, auth, request_id, reason, notifications)


@requests_router.post("/{request_id}/correct", response_model=RequestResponse)
async def correct_request(
    request_id: uuid.UUID,
    payload: CorrectionPayload,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
) -> RequestResponse:
    """Correct fields of a request."""
    return await workflow_service.correct_request(session, auth, request_id, payload, notifications)


@requests_router.post("/{request_id}/account", response_model=RequestResponse)
async def mark_accounted(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Mark an approved request as accounted in payroll."""
    return await workflow_service.mark_accounted(session, auth, request_id)


@requests_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> None:
    """Delete a request (admin only)."""
    await workflow_service.delete_request(session, auth, request_id)
