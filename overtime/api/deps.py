# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import BackgroundTasks, Depends, Header

from overtime.exceptions import Unauthenticated
from overtime.schemas.auth import AuthContext
from overtime.services.authz import build_auth_context
from overtime.services.directory import Directory, get_directory
from overtime.services.notification import NotificationDispatcher, Notifier, get_notifier


async def get_auth_context(
    x_user_email: str | None = Header(default=None),
    x_roles: str = Header(default=""),
) -> AuthContext:
    """Extract dev auth context from request headers.

    The identity always comes from the authenticated session (here, headers set
    by the auth proxy), never from a request body.
    """
    if not x_user_email or not x_user_email.strip():
        raise Unauthenticated()
    return build_auth_context(x_user_email, x_roles.split(","))


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]

DirectoryDep = Annotated[Directory, Depends(get_directory)]


async def get_notification_dispatcher(
    background_tasks: BackgroundTasks,
    notifier: Notifier = Depends(get_notifier),
    directory: Directory = Depends(get_directory),
) -> NotificationDispatcher:
    """Request-scoped dispatcher delivering e-mails after the response is sent."""
    return NotificationDispatcher(background_tasks, notifier, directory)


NotificationsDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
