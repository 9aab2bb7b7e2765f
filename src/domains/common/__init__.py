# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Building blocks shared by every domain.

- errors: ServiceError hierarchy and ErrorCode
- result: OperationResult envelope
- state_machine: table-driven status transitions
- permissions: capability-tagged field permissions
- actor: authenticated user and roles
- base: BaseService with read retry and write rollback
- store: BaseStore, cached reads and invalidating writes
"""

from src.domains.common.actor import MANAGER_ROLES, STAFF_ROLES, Actor, Role
from src.domains.common.base import BaseService, column_values
from src.domains.common.errors import (
    AuthorizationError,
    BusinessRuleError,
    ErrorCode,
    InvalidTransition,
    NotFoundError,
    ServiceError,
    StorageError,
    ValidationFailedError,
)
from src.domains.common.permissions import Capability, FieldPermissions
from src.domains.common.result import OperationResult
from src.domains.common.state_machine import StateMachine
from src.domains.common.store import BaseStore

__all__ = [
    "Actor",
    "Role",
    "STAFF_ROLES",
    "MANAGER_ROLES",
    "BaseService",
    "column_values",
    "ServiceError",
    "BusinessRuleError",
    "ValidationFailedError",
    "InvalidTransition",
    "NotFoundError",
    "AuthorizationError",
    "StorageError",
    "ErrorCode",
    "Capability",
    "FieldPermissions",
    "OperationResult",
    "StateMachine",
    "BaseStore",
]
