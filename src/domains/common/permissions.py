# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability-tagged field permissions.

Each writable field is tagged with one capability and each role is granted
a set of capabilities. A write is allowed when every field it touches
carries a capability the role holds. Fields without a tag are never
writable.
"""

from enum import Enum
from typing import Iterable, Mapping

from src.domains.common.actor import Role
from src.domains.common.errors import AuthorizationError


class Capability(str, Enum):
    CONTACT = "contact"
    PREFERENCE = "preference"
    ACADEMIC = "academic"
    STATUS = "status"
    FINANCIAL = "financial"
    ADMINISTRATIVE = "administrative"


ALL_CAPABILITIES = frozenset(Capability)

DEFAULT_ROLE_CAPABILITIES: Mapping[Role, frozenset[Capability]] = {
    Role.STUDENT: frozenset({Capability.CONTACT, Capability.PREFERENCE}),
    Role.TEACHER: frozenset({Capability.ACADEMIC}),
    Role.BRANCH_MANAGER: ALL_CAPABILITIES,
    Role.COACH: ALL_CAPABILITIES,
    Role.ADMIN: ALL_CAPABILITIES,
}


class FieldPermissions:
    """Decides which fields a role may write.

    Attributes:
        field_capabilities: Capability required to write each field.
        role_capabilities: Capabilities granted to each role.
    """

    def __init__(
        self,
        field_capabilities: Mapping[str, Capability],
        role_capabilities: Mapping[Role, frozenset[Capability]] = DEFAULT_ROLE_CAPABILITIES,
    ) -> None:
        self.field_capabilities = dict(field_capabilities)
        self.role_capabilities = dict(role_capabilities)

    def allowed_fields(self, role: Role) -> frozenset[str]:
        granted = self.role_capabilities.get(role, frozenset())
        return frozenset(
            name for name, capability in self.field_capabilities.items()
            if capability in granted
        )

    def denied_fields(self, role: Role, fields: Iterable[str]) -> list[str]:
        allowed = self.allowed_fields(role)
        return sorted(name for name in fields if name not in allowed)

    def require(self, role: Role, fields: Iterable[str]) -> None:
        """Raise AuthorizationError if any field is outside the role's set."""
        denied = self.denied_fields(role, fields)
        if denied:
            raise AuthorizationError(
                f"Role '{role.value}' cannot update: {', '.join(denied)}",
                denied_fields=denied,
            )
