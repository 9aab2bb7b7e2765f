# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base class for envelope-returning domain services.

Subclasses implement private coroutines that raise ServiceError subclasses
the way any service would. Public methods hand those coroutines to
_run_read() or _run_write(), which turn the outcome into an
OperationResult and keep storage details out of it.

Reads are retried once after a storage failure. Writes are rolled back
and never retried; the caller decides whether to invoke them again.

An AsyncSession runs one statement at a time, so services sharing a
session also share a lock and each operation holds it from first query
to commit or rollback.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.common.actor import Actor, Role
from src.domains.common.errors import (
    AuthorizationError,
    ServiceError,
    StorageError,
    ValidationFailedError,
)
from src.domains.common.result import OperationResult
from src.models.common import validate_payload
from src.utils.datetime import Clock, SystemClock

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class BaseService:
    """Shared plumbing for domain services.

    Attributes:
        db: Async database session.
        clock: Time source for every "now" and "today" decision.
        read_retry_attempts: Extra attempts for reads after a storage error.
        session_lock: Serializes operations on the session.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        read_retry_attempts: int = 1,
        session_lock: Optional[asyncio.Lock] = None,
    ) -> None:
        """Initialize the service.

        Args:
            db: Async database session.
            clock: Time source; defaults to the system clock.
            read_retry_attempts: Extra attempts for idempotent reads (0 or 1).
            session_lock: Lock shared by every service using the same
                session; a private one is created when omitted.
        """
        self.db = db
        self.clock = clock or SystemClock()
        self.read_retry_attempts = max(0, min(read_retry_attempts, 1))
        self.session_lock = session_lock or asyncio.Lock()

    # =========================================================================
    # Envelope handling
    # =========================================================================

    async def _run_read(
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
    ) -> OperationResult[T]:
        """Run an idempotent read and wrap its outcome."""
        async with self.session_lock:
            attempt = 0
            while True:
                attempt += 1
                try:
                    return OperationResult.ok(await func())
                except ServiceError as e:
                    return OperationResult.failure(e)
                except SQLAlchemyError as e:
                    await self.db.rollback()
                    if attempt <= self.read_retry_attempts:
                        logger.warning(
                            "%s failed on attempt %d, retrying: %s", operation, attempt, e
                        )
                        continue
                    logger.error("%s failed after %d attempts: %s", operation, attempt, e)
                    return OperationResult.failure(
                        StorageError(f"Failed to {_describe(operation)}", e)
                    )

    async def _run_write(
        self,
        operation: str,
        func: Callable[[], Awaitable[T]],
    ) -> OperationResult[T]:
        """Run a mutation once, rolling back on any failure."""
        async with self.session_lock:
            try:
                data = await func()
            except ServiceError as e:
                await self.db.rollback()
                logger.info("%s rejected: %s", operation, e.message)
                return OperationResult.failure(e)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error("%s failed: %s", operation, e)
                return OperationResult.failure(
                    StorageError(f"Failed to {_describe(operation)}", e)
                )
            return OperationResult.ok(data)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate(self, schema: type[M], payload: Any) -> M:
        """Validate a payload with this service's clock.

        Raises:
            ValidationFailedError: If the payload is invalid.
        """
        result = validate_payload(schema, payload, clock=self.clock)
        if not result.success:
            raise ValidationFailedError(result.errors)
        return result.value

    @staticmethod
    def _require_role(actor: Actor, roles: Iterable[Role], action: str) -> None:
        if actor.role not in set(roles):
            raise AuthorizationError(f"Role '{actor.role.value}' cannot {action}")

    @staticmethod
    def _require_self_or_staff(actor: Actor, student_id: Any, action: str) -> None:
        if actor.role == Role.STUDENT and not actor.is_user(student_id):
            raise AuthorizationError(f"Students can only {action} for themselves")

    @classmethod
    def _require_student(cls, actor: Actor, student_id: Any, action: str) -> None:
        """Allow only the student the record belongs to."""
        if actor.role != Role.STUDENT:
            raise AuthorizationError(f"Only students can {action}")
        cls._require_self_or_staff(actor, student_id, action)

    @staticmethod
    def _offset(page: int, limit: int) -> int:
        return (page - 1) * limit


def _describe(operation: str) -> str:
    return operation.replace("_", " ")


def column_values(data: dict[str, Any]) -> dict[str, Any]:
    """Convert validated request values into what ORM columns store.

    Enums become their values, UUIDs become strings and nested models
    become JSON-compatible dicts.
    """
    return {key: _column_value(value) for key, value in data.items()}


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_column_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _column_value(item) for key, item in value.items()}
    return value
