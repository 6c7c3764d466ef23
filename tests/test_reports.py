"""Tests for balances, reminders, CSV/XLSX exports and the audit log."""

from __future__ import annotations

import csv
import io
from datetime import date, timedelta
from typing import TYPE_CHECKING

from openpyxl import load_workbook

from conftest import (
    ADMIN_HEADERS,
    EMPLOYEE,
    EMPLOYEE_HEADERS,
    HR_HEADERS,
    LEADER,
    LEADER_HEADERS,
    OTHER_EMPLOYEE,
    OTHER_LEADER,
    OTHER_LEADER_HEADERS,
    PLANT_MANAGER_HEADERS,
)
from overtime.models.base import now_utc
from overtime.models.enums import NotificationKind, RequestKind, RequestStatus, Role
from overtime.services.directory import UserInfo
from overtime.services.report import EXPORT_COLUMNS, render_csv

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from httpx import AsyncClient

    from overtime.models.request import OvertimeRequest
    from overtime.services.directory import InMemoryDirectory
    from overtime.services.notification import InMemoryNotifier

    MakeRequest = Callable[..., Awaitable[OvertimeRequest]]

TRICKY_REASON = 'Stayed late, "urgent" delivery\nsecond line'


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


async def test_balances_for_hr(
    async_client: AsyncClient, make_request: MakeRequest, directory: InMemoryDirectory
) -> None:
    directory.seed(UserInfo(email=EMPLOYEE, name="Jan Kowalski-Nowy"))
    await make_request(hours=6, status=RequestStatus.APPROVED.value)
    await make_request(hours=2)
    await make_request(hours=5, status=RequestStatus.CANCELLED.value)
    await make_request(requested_by=OTHER_EMPLOYEE, supervisor=OTHER_LEADER, hours=10)
    # Balanced out to zero, so left out.
    await make_request(requested_by="zero.hours@bruss-group.com", hours=4)
    await make_request(requested_by="zero.hours@bruss-group.com", hours=-4, payment=True)
    # Orders do not feed balances.
    await make_request(kind=RequestKind.ORDER.value, hours=16)

    resp = await async_client.get("/balances", headers=HR_HEADERS)
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [i["email"] for i in items] == [OTHER_EMPLOYEE, EMPLOYEE]

    mine = items[1]
    assert mine["name"] == "Jan Kowalski-Nowy"
    assert mine["total_hours"] == 8
    assert mine["entry_count"] == 2
    assert mine["pending_count"] == 1
    assert mine["approved_count"] == 1
    assert mine["latest_supervisor"] == LEADER
    assert mine["latest_supervisor_name"] == "Anna Nowak"


async def test_balances_team_view(async_client: AsyncClient, make_request: MakeRequest) -> None:
    await make_request(hours=3)
    await make_request(requested_by=OTHER_EMPLOYEE, supervisor=OTHER_LEADER, hours=10)

    resp = await async_client.get("/balances", headers=LEADER_HEADERS)
    assert [i["email"] for i in resp.json()["items"]] == [EMPLOYEE]

    resp = await async_client.get("/balances", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_balances_team_follows_latest_record(async_client: AsyncClient, make_request: MakeRequest) -> None:
    await make_request(hours=6, status=RequestStatus.APPROVED.value, submitted_at=now_utc() - timedelta(days=3))
    # The newest record moved the employee to another leader, even though it was withdrawn.
    await make_request(hours=2, supervisor=OTHER_LEADER, status=RequestStatus.CANCELLED.value)

    resp = await async_client.get("/balances", headers=LEADER_HEADERS)
    assert resp.json()["items"] == []

    resp = await async_client.get("/balances", headers=OTHER_LEADER_HEADERS)
    [item] = resp.json()["items"]
    assert item["email"] == EMPLOYEE
    assert item["total_hours"] == 6
    assert item["latest_supervisor"] == OTHER_LEADER

    resp = await async_client.get("/balances", params={"supervisor": LEADER}, headers=HR_HEADERS)
    assert resp.json()["items"] == []



async def test_balances_period_filters(async_client: AsyncClient, make_request: MakeRequest) -> None:
    await make_request(hours=3, work_date=date(2025, 3, 10))
    await make_request(hours=5, work_date=date(2025, 4, 2))
    await make_request(hours=7, work_date=date(2024, 12, 31))

    resp = await async_client.get("/balances", params={"month": "2025-03"}, headers=HR_HEADERS)
    assert resp.json()["items"][0]["total_hours"] == 3

    resp = await async_client.get("/balances", params={"year": 2025}, headers=HR_HEADERS)
    assert resp.json()["items"][0]["total_hours"] == 8

    resp = await async_client.get("/balances", params={"month": "2025-13"}, headers=HR_HEADERS)
    assert resp.status_code == 400


async def test_remind_employee(
    async_client: AsyncClient, make_request: MakeRequest, notifier: InMemoryNotifier
) -> None:
    await make_request(hours=6, status=RequestStatus.APPROVED.value)

    resp = await async_client.post(
        f"/balances/{EMPLOYEE}/remind", json={"note": "Please plan time off"}, headers=LEADER_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json() == {"recipient": EMPLOYEE, "total_hours": 6}

    [message] = notifier.sent_to(EMPLOYEE)
    assert message.kind == NotificationKind.BALANCE_REMINDER
    assert "Please plan time off" in message.html

    resp = await async_client.post(f"/balances/{EMPLOYEE}/remind", headers=OTHER_LEADER_HEADERS)
    assert resp.status_code == 403

    resp = await async_client.post(f"/balances/{OTHER_EMPLOYEE}/remind", headers=HR_HEADERS)
    assert resp.status_code == 400


async def test_notify_supervisor_of_balance(
    async_client: AsyncClient, make_request: MakeRequest, notifier: InMemoryNotifier, directory: InMemoryDirectory
) -> None:
    directory.seed(UserInfo(email=LEADER, roles=frozenset({Role.TEAM_LEADER})))
    await make_request(hours=6, status=RequestStatus.APPROVED.value)
    await make_request(hours=1.5)

    resp = await async_client.post(
        f"/balances/{EMPLOYEE}/notify-supervisor", json={"note": "Please plan time off"}, headers=HR_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json() == {"recipient": LEADER, "total_hours": 7.5}

    [message] = notifier.sent_to(LEADER)
    assert message.kind == NotificationKind.SUPERVISOR_BALANCE
    # English regardless of the supervisor's role tier.
    assert message.subject == "Overtime balance of Jan Kowalski"
    assert "<strong>Overtime balance:</strong> 7.5" in message.html
    assert "<strong>Sent by:</strong> kasia.mazur@bruss-group.com" in message.html
    assert "Please plan time off" in message.html
    assert notifier.sent_to(EMPLOYEE) == []


async def test_notify_supervisor_requires_hr_or_plant_management(
    async_client: AsyncClient, make_request: MakeRequest
) -> None:
    await make_request(hours=6, status=RequestStatus.APPROVED.value)
    for headers in (LEADER_HEADERS, EMPLOYEE_HEADERS):
        resp = await async_client.post(f"/balances/{EMPLOYEE}/notify-supervisor", headers=headers)
        assert resp.status_code == 403

    for headers in (PLANT_MANAGER_HEADERS, ADMIN_HEADERS):
        resp = await async_client.post(f"/balances/{EMPLOYEE}/notify-supervisor", headers=headers)
        assert resp.status_code == 200


async def test_notify_supervisor_needs_records_and_balance(
    async_client: AsyncClient, make_request: MakeRequest
) -> None:
    resp = await async_client.post(f"/balances/{OTHER_EMPLOYEE}/notify-supervisor", headers=HR_HEADERS)
    assert resp.status_code == 404

    await make_request(hours=4)
    await make_request(hours=-4, payment=True)
    resp = await async_client.post(f"/balances/{EMPLOYEE}/notify-supervisor", headers=HR_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["code"] == "no_balance"

    assert resp.json()["code"] == "no_balance"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


async def test_csv_export_round_trips_tricky_text(async_client: AsyncClient, make_request: MakeRequest) -> None:
    record = await make_request(reason=TRICKY_REASON, work_date=date(2025, 5, 6))

    resp = await async_client.get("/requests/export.csv", headers=HR_HEADERS)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert '"Stayed late, ""urgent"" delivery\nsecond line"' in resp.text

    rows = list(csv.reader(io.StringIO(resp.text, newline="")))
    assert rows[0] == list(EXPORT_COLUMNS)
    assert len(rows) == 2
    row = dict(zip(rows[0], rows[1], strict=True))
    assert row["reason"] == TRICKY_REASON
    assert row["internal_id"] == record.internal_id
    assert row["work_date"] == "2025-05-06"
    assert row["payment"] == "false"
    assert row["hours"] == "2"
    assert row["approved_by"] == ""


async def test_csv_export_applies_filters(async_client: AsyncClient, make_request: MakeRequest) -> None:
    await make_request(status=RequestStatus.APPROVED.value)
    await make_request(status=RequestStatus.PENDING.value)
    resp = await async_client.get("/requests/export.csv", params={"status": "approved"}, headers=ADMIN_HEADERS)
    rows = list(csv.reader(io.StringIO(resp.text, newline="")))
    assert len(rows) == 2
    assert rows[1][EXPORT_COLUMNS.index("status")] == "approved"


async def test_export_requires_capability(async_client: AsyncClient) -> None:
    resp = await async_client.get("/requests/export.csv", headers=LEADER_HEADERS)
    assert resp.status_code == 403
    resp = await async_client.get("/requests/export.xlsx", headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403


async def test_xlsx_export(async_client: AsyncClient, make_request: MakeRequest) -> None:
    await make_request(reason=TRICKY_REASON, status=RequestStatus.APPROVED.value)
    resp = await async_client.get("/requests/export.xlsx", headers=HR_HEADERS)
    assert resp.status_code == 200

    wb = load_workbook(io.BytesIO(resp.content))
    ws = wb.active
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == list(EXPORT_COLUMNS)
    assert rows[1][EXPORT_COLUMNS.index("reason")] == TRICKY_REASON
    assert rows[1][EXPORT_COLUMNS.index("status")] == "approved"


def test_render_csv_empty_has_header_only() -> None:
    assert render_csv([]) == ",".join(EXPORT_COLUMNS) + "\r\n"


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


async def test_audit_log_admin_only(async_client: AsyncClient, make_request: MakeRequest) -> None:
    record = await make_request()
    await async_client.post(f"/requests/{record.id}/approve", headers=LEADER_HEADERS)

    resp = await async_client.get("/audit-log", headers=HR_HEADERS)
    assert resp.status_code == 403

    resp = await async_client.get("/audit-log", params={"action": "APPROVE"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    [entry] = resp.json()["items"]
    assert entry["actor"] == LEADER
    assert entry["entity_id"] == str(record.id)
    assert entry["before_json"]["status"] == "pending"
    assert entry["after_json"]["status"] == "approved"
