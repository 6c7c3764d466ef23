from fastapi import APIRouter

from overtime.api.quota import quota_router
from overtime.api.reports import audit_router, balances_router
from overtime.api.requests import requests_router
from overtime.api.submissions import orders_router, submissions_router

api_router = APIRouter()
api_router.include_router(submissions_router)
api_router.include_router(orders_router)
api_router.include_router(requests_router)
api_router.include_router(quota_router)
api_router.include_router(balances_router)
api_router.include_router(audit_router)
