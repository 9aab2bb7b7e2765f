# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy shared by every domain service.

Domain code raises these exceptions; BaseService converts them into an
OperationResult at the public boundary, so callers never see them thrown.
"""

from enum import Enum
from typing import Any, Iterable, Optional

from src.models.common import FieldError


class ErrorCode(str, Enum):
    """Machine-readable failure category carried by the result envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NOT_FOUND = "NOT_FOUND"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    BUSINESS_RULE = "BUSINESS_RULE"
    STORAGE_ERROR = "STORAGE_ERROR"


class ServiceError(Exception):
    """Base exception for service errors.

    Attributes:
        message: Human-readable error description, safe to show to users.
        code: Failure category.
    """

    code: ErrorCode = ErrorCode.BUSINESS_RULE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> Optional[dict[str, Any]]:
        """Structured context surfaced alongside the message."""
        return None


class BusinessRuleError(ServiceError):
    """Raised when an operation breaks a domain rule (e.g. attempts exhausted)."""

    pass


class ValidationFailedError(ServiceError):
    """Raised when input fails schema or cross-field validation."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, errors: list[FieldError], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = errors


class InvalidTransition(ServiceError):
    """Raised when a status change is not allowed from the current state."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(
        self,
        entity: str,
        current: Enum,
        requested: Enum,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message
            or f"Cannot change {entity} status from {current.value} to {requested.value}"
        )
        self.entity = entity
        self.current = current
        self.requested = requested

    @property
    def details(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "current": self.current.value,
            "requested": self.requested.value,
        }


class NotFoundError(ServiceError):
    """Raised when a referenced entity id does not resolve."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = str(entity_id)

    @property
    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": self.entity_id}


class AuthorizationError(ServiceError):
    """Raised when the acting user may not perform the operation or write a field."""

    code = ErrorCode.AUTHORIZATION_ERROR

    def __init__(self, message: str, denied_fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.denied_fields = sorted(denied_fields)

    @property
    def details(self) -> Optional[dict[str, Any]]:
        if not self.denied_fields:
            return None
        return {"denied_fields": self.denied_fields}


class StorageError(ServiceError):
    """Opaque persistence failure.

    Attributes:
        message: Generic description shown to callers.
        original_error: The underlying SQLAlchemy or driver error, logged only.
    """

    code = ErrorCode.STORAGE_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message
