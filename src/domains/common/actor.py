# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authenticated user performing an operation."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Platform roles, lowest privilege first."""

    STUDENT = "student"
    TEACHER = "teacher"
    BRANCH_MANAGER = "branch_manager"
    COACH = "coach"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.TEACHER, Role.BRANCH_MANAGER, Role.COACH, Role.ADMIN})
MANAGER_ROLES = frozenset({Role.BRANCH_MANAGER, Role.COACH, Role.ADMIN})


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a service call runs.

    Attributes:
        user_id: Authenticated user id.
        role: Role used for authorization checks.
    """

    user_id: UUID
    role: Role

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def is_user(self, user_id: object) -> bool:
        """Check whether an id (UUID or string) refers to this actor."""
        return str(self.user_id) == str(user_id)
