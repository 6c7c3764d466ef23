# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from fastapi import APIRouter, status

from overtime.api.deps import AuthDep, NotificationsDep
from overtime.db import SessionDep
from overtime.schemas.request import (
    CreateOrderPayload,
    CreatePayoutPayload,
    CreateSubmissionPayload,
    RequestResponse,
)
from overtime.services import request as request_service

submissions_router = APIRouter(prefix="/submissions", tags=["submissions"])
orders_router = APIRouter(prefix="/orders", tags=["orders"])


@submissions_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    payload: CreateSubmissionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """File an overtime entry."""
    return await request_service.create_submission(session, auth, payload)


@submissions_router.post("/payout", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_payout(
    payload: CreatePayoutPayload,
    session: SessionDep,
    auth: AuthDep,
) -> RequestResponse:
    """Request payout of accumulated overtime."""
    return await request_service.create_payout(session, auth, payload)


@orders_router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderPayload,
    session: SessionDep,
    auth: AuthDep,
    notifications: NotificationsDep,
) -> RequestResponse:
    """Issue an individual overtime order for an employee."""
    return await request_service.create_order(session, auth, payload, notifications)
