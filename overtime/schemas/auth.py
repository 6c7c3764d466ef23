from __future__ import annotations

from pydantic import BaseModel

from overtime.models.enums import Capability, Role


class AuthContext(BaseModel):
    """Caller identity with roles and the capabilities they resolve to."""

    email: str
    roles: frozenset[Role] = frozenset()
    capabilities: frozenset[Capability] = frozenset()

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def is_quota_bound(self) -> bool:
        """Leaders and managers approve payouts against a monthly quota; plant managers and admins do not."""
        return self.can(Capability.APPROVE_WITHIN_QUOTA) and not self.can(Capability.APPROVE_UNLIMITED)
