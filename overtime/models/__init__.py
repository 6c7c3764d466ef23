from sqlmodel import SQLModel

from overtime.models.audit import AuditLog
from overtime.models.base import TimestampMixin, UUIDBase
from overtime.models.counter import SequenceCounter
from overtime.models.enums import (
    AuditAction,
    AuditEntityType,
    Capability,
    NotificationKind,
    RequestKind,
    RequestStatus,
    Role,
)
from overtime.models.quota import SupervisorQuota
from overtime.models.request import OvertimeRequest

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "Capability",
    "NotificationKind",
    "OvertimeRequest",
    "RequestKind",
    "RequestStatus",
    "Role",
    "SQLModel",
    "SequenceCounter",
    "SupervisorQuota",
    "TimestampMixin",
    "UUIDBase",
]
