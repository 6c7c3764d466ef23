from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from overtime.db import Database, get_session
from overtime.main import app
from overtime.models.base import now_utc
from overtime.models.enums import RequestKind, RequestStatus
from overtime.models.request import OvertimeRequest
from overtime.services.directory import InMemoryDirectory, set_directory
from overtime.services.notification import InMemoryNotifier, LoggingNotifier, set_notifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

EMPLOYEE = "jan.kowalski@bruss-group.com"
OTHER_EMPLOYEE = "ewa.lis@bruss-group.com"
LEADER = "anna.nowak@bruss-group.com"
OTHER_LEADER = "piotr.zielinski@bruss-group.com"
PLANT_MANAGER = "marek.wojcik@bruss-group.com"
HR = "kasia.mazur@bruss-group.com"
ADMIN = "admin@bruss-group.com"


def auth_headers(email: str, *roles: str) -> dict[str, str]:
    return {"X-User-Email": email, "X-Roles": ",".join(roles)}


EMPLOYEE_HEADERS = auth_headers(EMPLOYEE, "employee")
OTHER_EMPLOYEE_HEADERS = auth_headers(OTHER_EMPLOYEE, "employee")
LEADER_HEADERS = auth_headers(LEADER, "team-leader")
OTHER_LEADER_HEADERS = auth_headers(OTHER_LEADER, "group-leader")
PLANT_MANAGER_HEADERS = auth_headers(PLANT_MANAGER, "plant-manager")
HR_HEADERS = auth_headers(HR, "hr")
ADMIN_HEADERS = auth_headers(ADMIN, "admin")


@pytest.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    """A fresh SQLite file database per test with all tables created."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'overtime.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
async def db_session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> Iterator[InMemoryNotifier]:
    """Capture outgoing e-mails for the duration of a test."""
    outbox = InMemoryNotifier()
    set_notifier(outbox)
    yield outbox
    set_notifier(LoggingNotifier())


@pytest.fixture
def directory() -> Iterator[InMemoryDirectory]:
    users = InMemoryDirectory()
    set_directory(users)
    yield users
    set_directory(InMemoryDirectory())


@pytest.fixture
async def async_client(
    database: Database,
    notifier: InMemoryNotifier,
    directory: InMemoryDirectory,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the per-test database."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with database.session_factory() as session:
            yield session

    app.state.db = database
    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    del app.state.db


@pytest.fixture
def make_request(db_session: AsyncSession) -> Callable[..., Awaitable[OvertimeRequest]]:
    """Insert an overtime request directly, bypassing creation rules."""

    async def _make(**fields: Any) -> OvertimeRequest:
        values: dict[str, Any] = {
            "kind": RequestKind.SUBMISSION.value,
            "internal_id": f"T-{uuid.uuid4().hex[:8]}",
            "status": RequestStatus.PENDING.value,
            "hours": 2.0,
            "payment": False,
            "reason": "Line changeover",
            "supervisor": LEADER,
            "requested_by": EMPLOYEE,
            "submitted_at": now_utc(),
        }
        values.update(fields)
        values.setdefault("created_by", values["requested_by"])
        record = OvertimeRequest(**values)
        db_session.add(record)
        await db_session.commit()
        return record

    return _make
