# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from overtime.api.deps import AuthDep
from overtime.db import SessionDep
from overtime.schemas.quota import (
    QuotaResponse,
    SetQuotaPayload,
    SupervisorQuotaListResponse,
    SupervisorQuotaResponse,
)
from overtime.services import quota as quota_service

quota_router = APIRouter(prefix="/quota", tags=["quota"])


@quota_router.get("/me", response_model=QuotaResponse)
async def get_my_quota(
    session: SessionDep,
    auth: AuthDep,
    request_id: uuid.UUID | None = Query(default=None),
) -> QuotaResponse:
    """Caller's monthly payout-approval quota, optionally checked against a request."""
    return await quota_service.get_my_quota(session, auth, request_id)


@quota_router.get("/supervisors", response_model=SupervisorQuotaListResponse)
async def list_supervisor_quotas(
    session: SessionDep,
    auth: AuthDep,
) -> SupervisorQuotaListResponse:
    """List per-supervisor quota overrides."""
    return await quota_service.list_supervisor_quotas(session, auth)


@quota_router.put("/supervisors/{email}", response_model=SupervisorQuotaResponse)
async def set_supervisor_quota(
    email: str,
    payload: SetQuotaPayload,
    session: SessionDep,
    auth: AuthDep,
) -> SupervisorQuotaResponse:
    """Set a supervisor's monthly limit (admin only)."""
    return await quota_service.set_supervisor_quota(session, auth, email, payload)
