from __future__ import annotations

import enum


class RequestKind(enum.StrEnum):
    """Which flow created an overtime request."""

    ORDER = "ORDER"  # individual overtime order, created by a manager for an employee
    SUBMISSION = "SUBMISSION"  # entry or payout request filed by the employee


class RequestStatus(enum.StrEnum):
    """State machine for overtime requests."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ACCOUNTED = "accounted"


class Role(enum.StrEnum):
    """Closed set of roles carried by an authenticated identity."""

    EMPLOYEE = "employee"
    EXTERNAL_OVERTIME_USER = "external-overtime-user"
    TEAM_LEADER = "team-leader"
    GROUP_LEADER = "group-leader"
    PRODUCTION_MANAGER = "production-manager"
    QUALITY_MANAGER = "quality-manager"
    LOGISTICS_MANAGER = "logistics-manager"
    MAINTENANCE_MANAGER = "maintenance-manager"
    TECHNOLOGY_MANAGER = "technology-manager"
    PLANT_MANAGER = "plant-manager"
    HR = "hr"
    ADMIN = "admin"


class Capability(enum.StrEnum):
    """Action-level permissions granted through roles."""

    SUBMIT = "SUBMIT"
    DECIDE_ASSIGNED = "DECIDE_ASSIGNED"
    DECIDE_ANY = "DECIDE_ANY"
    APPROVE_WITHIN_QUOTA = "APPROVE_WITHIN_QUOTA"
    APPROVE_UNLIMITED = "APPROVE_UNLIMITED"
    CREATE_ORDER = "CREATE_ORDER"
    CORRECT_APPROVED = "CORRECT_APPROVED"
    CORRECT_ANY = "CORRECT_ANY"
    CANCEL_ANY = "CANCEL_ANY"
    MARK_ACCOUNTED = "MARK_ACCOUNTED"
    DELETE = "DELETE"
    VIEW_ALL = "VIEW_ALL"
    VIEW_TEAM = "VIEW_TEAM"
    EXPORT = "EXPORT"
    REMIND = "REMIND"
    MANAGE_QUOTA = "MANAGE_QUOTA"
    VIEW_AUDIT = "VIEW_AUDIT"
    NOTIFY_SUPERVISOR = "NOTIFY_SUPERVISOR"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    REQUEST = "REQUEST"
    QUOTA = "QUOTA"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    CORRECT = "CORRECT"
    ACCOUNT = "ACCOUNT"
    DELETE = "DELETE"
    SET_QUOTA = "SET_QUOTA"


class NotificationKind(enum.StrEnum):
    """Templated e-mails sent to employees and their supervisors."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    CORRECTED = "CORRECTED"
    ORDER_CREATED = "ORDER_CREATED"
    BALANCE_REMINDER = "BALANCE_REMINDER"
    SUPERVISOR_BALANCE = "SUPERVISOR_BALANCE"
