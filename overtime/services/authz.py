"""Role to capability resolution.

Roles arrive as free-form strings from the auth provider. They are parsed once
into the closed ``Role`` enum and expanded through ``ROLE_CAPABILITIES``; every
authorization decision afterwards checks capabilities, never role names.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from overtime.models.enums import Capability, Role
from overtime.schemas.auth import AuthContext

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_EMPLOYEE = frozenset({Capability.SUBMIT, Capability.DECIDE_ASSIGNED})

_LEADER = _EMPLOYEE | {
    Capability.APPROVE_WITHIN_QUOTA,
    Capability.CREATE_ORDER,
    Capability.VIEW_TEAM,
    Capability.REMIND,
}

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.EMPLOYEE: _EMPLOYEE,
    Role.EXTERNAL_OVERTIME_USER: frozenset({Capability.SUBMIT}),
    Role.TEAM_LEADER: _LEADER,
    Role.GROUP_LEADER: _LEADER,
    Role.PRODUCTION_MANAGER: _LEADER,
    Role.QUALITY_MANAGER: _LEADER,
    Role.LOGISTICS_MANAGER: _LEADER,
    Role.MAINTENANCE_MANAGER: _LEADER,
    Role.TECHNOLOGY_MANAGER: _LEADER,
    Role.PLANT_MANAGER: _EMPLOYEE
    | {
        Capability.DECIDE_ANY,
        Capability.APPROVE_UNLIMITED,
        Capability.CREATE_ORDER,
        Capability.VIEW_ALL,
        Capability.VIEW_TEAM,
        Capability.EXPORT,
        Capability.REMIND,
        Capability.NOTIFY_SUPERVISOR,
    },
    Role.HR: _EMPLOYEE
    | {
        Capability.DECIDE_ANY,
        Capability.CORRECT_APPROVED,
        Capability.MARK_ACCOUNTED,
        Capability.VIEW_ALL,
        Capability.VIEW_TEAM,
        Capability.EXPORT,
        Capability.REMIND,
        Capability.NOTIFY_SUPERVISOR,
    },
    Role.ADMIN: frozenset(Capability),
}

# Recipients holding one of these roles read notifications in English.
MANAGERIAL_ROLES: frozenset[Role] = frozenset(
    {
        Role.PRODUCTION_MANAGER,
        Role.QUALITY_MANAGER,
        Role.LOGISTICS_MANAGER,
        Role.MAINTENANCE_MANAGER,
        Role.TECHNOLOGY_MANAGER,
        Role.PLANT_MANAGER,
        Role.HR,
        Role.ADMIN,
    }
)


def parse_roles(raw: Iterable[str]) -> frozenset[Role]:
    """Map raw role strings to known roles, dropping anything unrecognised."""
    roles: set[Role] = set()
    for value in raw:
        name = value.strip().lower().replace("_", "-")
        if not name:
            continue
        try:
            roles.add(Role(name))
        except ValueError:
            logger.debug("Ignoring unknown role %r", value)
    return frozenset(roles)


def resolve_capabilities(roles: Iterable[Role]) -> frozenset[Capability]:
    capabilities: set[Capability] = set()
    for role in roles:
        capabilities |= ROLE_CAPABILITIES[role]
    return frozenset(capabilities)


def build_auth_context(email: str, raw_roles: Iterable[str]) -> AuthContext:
    """Resolve an identity's roles and capabilities once per request."""
    roles = parse_roles(raw_roles)
    return AuthContext(email=email.strip().lower(), roles=roles, capabilities=resolve_capabilities(roles))
