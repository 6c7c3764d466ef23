from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel

from overtime.config import get_settings
from overtime.models.enums import NotificationKind, RequestKind
from overtime.services.directory import Directory, display_name
from overtime.services.email_templates import language_for_roles, render_email

if TYPE_CHECKING:
    from fastapi import BackgroundTasks

    from overtime.config import Settings
    from overtime.models.request import OvertimeRequest
    from overtime.services.email_templates import EmailLang

logger = logging.getLogger(__name__)


class OutgoingMessage(BaseModel):
    """Rendered e-mail ready for delivery."""

    kind: NotificationKind
    sender: str
    recipient: str
    subject: str
    html: str


@runtime_checkable
class Notifier(Protocol):
    """Interface for e-mail delivery."""

    async def send(self, message: OutgoingMessage) -> None:
        """Deliver one message. May raise; callers log and drop failures."""
        ...


class LoggingNotifier:
    """Default notifier: writes each message to the log instead of sending it."""

    async def send(self, message: OutgoingMessage) -> None:
        logger.info("Notification %s to %s: %s", message.kind, message.recipient, message.subject)


class InMemoryNotifier:
    """In-memory stub implementation that keeps an outbox."""

    def __init__(self) -> None:
        self.outbox: list[OutgoingMessage] = []

    async def send(self, message: OutgoingMessage) -> None:
        self.outbox.append(message)

    def sent_to(self, recipient: str) -> list[OutgoingMessage]:
        return [m for m in self.outbox if m.recipient == recipient]


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency for the notifier."""
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Override the notifier (for testing or production wiring)."""
    global _notifier
    _notifier = notifier


def request_url(record: OvertimeRequest, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    section = "individual-overtime-orders" if record.kind == RequestKind.ORDER else "overtime-submissions"
    return f"{settings.base_url.rstrip('/')}/{section}/{record.id}"


def request_context(record: OvertimeRequest, **extra: Any) -> dict[str, Any]:
    """Template context shared by every notification about a request."""
    context: dict[str, Any] = {
        "internal_id": record.internal_id,
        "hours": abs(record.hours),
        "work_date": record.work_date.isoformat() if record.work_date else None,
        "reason": record.reason,
        "url": request_url(record),
    }
    context.update(extra)
    return context


class NotificationDispatcher:
    """Request-scoped dispatcher that renders e-mails and delivers them in the background.

    Services call ``notify`` only after their transaction has committed.
    Delivery runs as a FastAPI background task once the response is sent;
    failures at any stage are logged and never reach the caller.
    """

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        notifier: Notifier,
        directory: Directory,
        settings: Settings | None = None,
    ) -> None:
        self._background_tasks = background_tasks
        self._notifier = notifier
        self._directory = directory
        self._settings = settings or get_settings()

    async def notify(
        self,
        kind: NotificationKind,
        recipient: str | None,
        context: dict[str, Any],
        lang: EmailLang | None = None,
    ) -> None:
        """Render and schedule one e-mail; ``lang`` overrides the language picked from the recipient's roles."""
        if not recipient:
            logger.debug("Skipping %s notification: no recipient address", kind)
            return
        try:
            if lang is None:
                user = await self._directory.get_user(recipient)
                lang = language_for_roles(user.roles if user is not None else ())
            rendered = render_email(kind, lang, {"name": await display_name(self._directory, recipient), **context})
        except Exception:
            logger.exception("Failed to render %s notification for %s", kind, recipient)
            return

        message = OutgoingMessage(
            kind=kind,
            sender=self._settings.mail_from,
            recipient=recipient,
            subject=rendered.subject,
            html=rendered.html,
        )
        self._background_tasks.add_task(self._deliver, message)

    async def _deliver(self, message: OutgoingMessage) -> None:
        try:
            await self._notifier.send(message)
        except Exception:
            logger.exception("Failed to deliver %s notification to %s", message.kind, message.recipient)
