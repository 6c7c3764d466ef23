"""Tests for e-mail rendering, language selection, the directory stub and the dispatcher."""

from __future__ import annotations

from fastapi import BackgroundTasks

from overtime.models.enums import NotificationKind, Role
from overtime.services.directory import InMemoryDirectory, UserInfo, display_name, extract_name_from_email
from overtime.services.email_templates import language_for_roles, render_email
from overtime.services.notification import InMemoryNotifier, NotificationDispatcher, OutgoingMessage

# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def test_render_every_kind_in_both_languages() -> None:
    context = {
        "internal_id": "7/25",
        "hours": 2.5,
        "url": "http://localhost:3000/x",
        "total_hours": 12,
        "employee_name": "Jan Kowalski",
    }
    for kind in NotificationKind:
        for lang in ("pl", "en"):
            email = render_email(kind, lang, context)
            assert email.subject
            assert email.lang == lang
            assert "http://localhost:3000/x" in email.html


def test_render_polish_approval() -> None:
    email = render_email(NotificationKind.APPROVED, "pl", {"internal_id": "7/25", "hours": 2.5})
    assert email.subject == "Zatwierdzone nadgodziny (7/25)"
    assert "zostało zatwierdzone" in email.html
    assert "<strong>Liczba godzin:</strong> 2.5" in email.html


def test_render_english_rejection_with_reason() -> None:
    email = render_email(NotificationKind.REJECTED, "en", {"internal_id": "3/25", "rejection_reason": "Duplicate"})
    assert email.subject == "Rejected overtime (3/25)"
    assert "<strong>Rejection reason:</strong> Duplicate" in email.html


def test_render_escapes_context() -> None:
    email = render_email(NotificationKind.REJECTED, "en", {"rejection_reason": "<script>alert(1)</script>"})
    assert "<script>" not in email.html
    assert "&lt;script&gt;" in email.html


def test_render_without_internal_id_drops_parentheses() -> None:
    email = render_email(NotificationKind.CANCELLED, "en", {})
    assert email.subject == "Cancelled overtime"


def test_render_skips_empty_detail_rows() -> None:
    email = render_email(NotificationKind.REJECTED, "pl", {"internal_id": "1/25", "rejection_reason": None})
    assert "Powód odrzucenia" not in email.html


# ---------------------------------------------------------------------------
# Language and names
# ---------------------------------------------------------------------------


def test_language_by_role_tier() -> None:
    assert language_for_roles([]) == "pl"
    assert language_for_roles([Role.EMPLOYEE]) == "pl"
    assert language_for_roles([Role.TEAM_LEADER, Role.GROUP_LEADER]) == "pl"
    assert language_for_roles([Role.EXTERNAL_OVERTIME_USER]) == "pl"
    assert language_for_roles([Role.PRODUCTION_MANAGER]) == "en"
    assert language_for_roles([Role.EMPLOYEE, Role.HR]) == "en"
    assert language_for_roles([Role.PLANT_MANAGER]) == "en"
    assert language_for_roles([Role.ADMIN]) == "en"


def test_extract_name_from_email() -> None:
    assert extract_name_from_email("jan.kowalski@bruss-group.com") == "Jan Kowalski"
    assert extract_name_from_email("ANNA@bruss-group.com") == "Anna"
    assert extract_name_from_email("@bruss-group.com") == "@bruss-group.com"


async def test_display_name_prefers_directory() -> None:
    directory = InMemoryDirectory()
    directory.seed(UserInfo(email="jan.kowalski@bruss-group.com", name="Jan K."))
    assert await display_name(directory, "JAN.KOWALSKI@bruss-group.com") == "Jan K."
    assert await display_name(directory, "ewa.lis@bruss-group.com") == "Ewa Lis"


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


async def test_dispatcher_delivers_in_background_in_recipient_language() -> None:
    directory = InMemoryDirectory()
    directory.seed(UserInfo(email="boss@bruss-group.com", roles=frozenset({Role.PLANT_MANAGER})))
    notifier = InMemoryNotifier()
    tasks = BackgroundTasks()
    dispatcher = NotificationDispatcher(tasks, notifier, directory)

    await dispatcher.notify(NotificationKind.APPROVED, "boss@bruss-group.com", {"internal_id": "1/25"})
    await dispatcher.notify(NotificationKind.APPROVED, "jan.kowalski@bruss-group.com", {"internal_id": "2/25"})
    await dispatcher.notify(NotificationKind.APPROVED, None, {"internal_id": "3/25"})
    assert notifier.outbox == []

    await tasks()
    assert [m.subject for m in notifier.outbox] == ["Approved overtime (1/25)", "Zatwierdzone nadgodziny (2/25)"]
    assert all(m.sender == "no.reply@bruss-group.com" for m in notifier.outbox)


async def test_dispatcher_swallows_delivery_errors() -> None:
    class _FailingNotifier:
        def __init__(self) -> None:
            self.attempts = 0

        async def send(self, message: OutgoingMessage) -> None:
            self.attempts += 1
            raise TimeoutError("mail relay timeout")

    notifier = _FailingNotifier()
    tasks = BackgroundTasks()
    dispatcher = NotificationDispatcher(tasks, notifier, InMemoryDirectory())
    await dispatcher.notify(NotificationKind.CANCELLED, "jan.kowalski@bruss-group.com", {})
    await tasks()
    assert notifier.attempts == 1


async def test_dispatcher_language_override() -> None:
    notifier = InMemoryNotifier()
    tasks = BackgroundTasks()
    dispatcher = NotificationDispatcher(tasks, notifier, InMemoryDirectory())
    await dispatcher.notify(
        NotificationKind.APPROVED, "jan.kowalski@bruss-group.com", {"internal_id": "4/25"}, lang="en"
    )
    await tasks()
    [message] = notifier.outbox
    assert message.subject == "Approved overtime (4/25)"
