from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from overtime.models.enums import Role


class UserInfo(BaseModel):
    """Directory entry for a person known to the auth provider."""

    email: str
    name: str | None = None
    roles: frozenset[Role] = frozenset()


@runtime_checkable
class Directory(Protocol):
    """Interface for the user directory."""

    async def get_user(self, email: str) -> UserInfo | None:
        """Fetch a user by e-mail. Returns None if not found."""
        ...


class InMemoryDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[str, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Seed a user for testing."""
        self._users[user.email.lower()] = user

    async def get_user(self, email: str) -> UserInfo | None:
        return self._users.get(email.lower())


def extract_name_from_email(email: str) -> str:
    """Derive a display name from ``first.last@domain`` addresses."""
    local = email.split("@", 1)[0]
    parts = [p for p in local.replace("_", ".").split(".") if p]
    if not parts:
        return email
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts)


async def display_name(directory: Directory, email: str) -> str:
    user = await directory.get_user(email)
    if user is not None and user.name:
        return user.name
    return extract_name_from_email(email)


_directory: Directory = InMemoryDirectory()


def get_directory() -> Directory:
    """FastAPI dependency for the user directory."""
    return _directory


def set_directory(directory: Directory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _directory
    _directory = directory
