# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Uniform result envelope returned by every service operation."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from src.domains.common.errors import ErrorCode, ServiceError, ValidationFailedError
from src.models.common import FieldError

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Success/failure envelope.

    Successful results carry ``data``. Failed results carry a
    user-presentable ``error``, an ``error_code`` and, for validation
    failures, the list of field errors.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    validation_errors: Optional[list[FieldError]] = None
    details: Optional[dict[str, Any]] = None

    @classmethod
    def ok(cls, data: Any) -> "OperationResult[Any]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: ServiceError) -> "OperationResult[Any]":
        """Build a failed envelope from a service error."""
        validation_errors = exc.errors if isinstance(exc, ValidationFailedError) else None
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.code,
            validation_errors=validation_errors,
            details=exc.details,
        )
