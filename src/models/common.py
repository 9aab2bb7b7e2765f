# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared validation primitives for request schemas.

Every request schema derives from RequestModel. Field shape is checked by
pydantic; cross-field business rules are declared with the @rule decorator
and evaluated by validate_payload(), which collects every failure instead
of stopping at the first one.

Example:
    >>> result = validate_payload(CreateAssignmentRequest, payload, clock=clock)
    >>> if not result.success:
    ...     for error in result.errors:
    ...         print(error.field, error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
)

from src.utils.datetime import Clock, SystemClock, ensure_utc

M = TypeVar("M", bound=BaseModel)

MIN_YEAR = 2000
MAX_YEARS_AHEAD = 10
AMOUNT_TOLERANCE = Decimal("0.01")
SCORE_TOLERANCE = 0.01


# =============================================================================
# Field errors and results
# =============================================================================


class FieldError(BaseModel):
    """A single field-level validation failure.

    Attributes:
        field: Dotted path to the offending field ("grading_rubric.0.criteria").
        message: Human-readable explanation.
    """

    field: str
    message: str


@dataclass
class ValidationResult(Generic[M]):
    """Outcome of validate_payload(): either a typed value or field errors."""

    value: M | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ValidationContext:
    """Ambient inputs available to cross-field rules."""

    clock: Clock

    @property
    def now(self) -> datetime:
        return self.clock.now()

    @property
    def today(self) -> date:
        return self.clock.today()


# =============================================================================
# Rule declaration
# =============================================================================

RuleCheck = Callable[[Any, ValidationContext], bool]


def rule(field_path: str, message: str) -> Callable[[RuleCheck], RuleCheck]:
    """Declare a cross-field rule on a RequestModel.

    The decorated method receives the ValidationContext and returns True
    when the model satisfies the rule. Rules that do not apply (for
    example because an optional field is absent) return True.

    Args:
        field_path: Dotted path reported when the rule fails.
        message: Message reported when the rule fails.
    """

    def decorator(func: RuleCheck) -> RuleCheck:
        func.__rule__ = (field_path, message)  # type: ignore[attr-defined]
        return func

    return decorator


@lru_cache(maxsize=None)
def _collect_rules(model_cls: type) -> tuple[tuple[str, str, str], ...]:
    collected: dict[str, tuple[str, str]] = {}
    for klass in reversed(model_cls.__mro__):
        for name, attr in vars(klass).items():
            declared = getattr(attr, "__rule__", None)
            if declared is not None:
                collected[name] = declared
    return tuple((name, path, message) for name, (path, message) in collected.items())


class RequestModel(BaseModel):
    """Base class for inbound payloads.

    Unknown keys are ignored so that older and newer clients can share the
    same wire contract.

    Partial updates declare not_null_fields: optional fields that may be
    left out but, once sent, must not be null because the stored column
    cannot hold it.
    """

    model_config = ConfigDict(extra="ignore")

    not_null_fields: ClassVar[tuple[str, ...]] = ()

    def check_rules(self, context: ValidationContext) -> list[FieldError]:
        """Evaluate every declared rule and return the failures in order."""
        errors = [
            FieldError(field=name, message="Field cannot be null")
            for name in self.not_null_fields
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        for name, path, message in _collect_rules(type(self)):
            if not getattr(self, name)(context):
                errors.append(FieldError(field=path, message=message))
        return errors

    def provided_fields(self) -> set[str]:
        """Names of the fields the caller actually sent."""
        return set(self.model_fields_set)


# =============================================================================
# Validation entry point
# =============================================================================


def field_errors_from(exc: ValidationError) -> list[FieldError]:
    """Convert a pydantic ValidationError into dotted-path field errors."""
    errors: list[FieldError] = []
    for item in exc.errors():
        path = ".".join(str(part) for part in item["loc"])
        message = item["msg"]
        if item["type"] == "value_error" and "error" in item.get("ctx", {}):
            message = str(item["ctx"]["error"])
        errors.append(FieldError(field=path, message=message))
    return errors


def validate_payload(
    schema: type[M],
    data: Any,
    *,
    clock: Clock | None = None,
) -> ValidationResult[M]:
    """Validate untyped input against a schema and its cross-field rules.

    Never raises for invalid input.

    Args:
        schema: RequestModel subclass describing the payload.
        data: Mapping (or model instance) to validate.
        clock: Time source for rules comparing against now or today.

    Returns:
        ValidationResult holding either the parsed model or the field errors.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)

    try:
        model = schema.model_validate(data)
    except ValidationError as exc:
        return ValidationResult(errors=field_errors_from(exc))

    if isinstance(model, RequestModel):
        context = ValidationContext(clock=clock or SystemClock())
        errors = model.check_rules(context)
        if errors:
            return ValidationResult(errors=errors)

    return ValidationResult(value=model)


# =============================================================================
# Shared enums and field types
# =============================================================================


class CleanupFrequency(str, Enum):
    """Retention period after which stored artefacts are purged."""

    DAYS_30 = "30_DAYS"
    DAYS_60 = "60_DAYS"
    DAYS_90 = "90_DAYS"
    SEMESTER_END = "SEMESTER_END"
    NEVER = "NEVER"

    @property
    def days(self) -> int | None:
        """Retention in days, None when not a fixed number of days."""
        return {
            CleanupFrequency.DAYS_30: 30,
            CleanupFrequency.DAYS_60: 60,
            CleanupFrequency.DAYS_90: 90,
        }.get(self)


def _require_min_year(value: date) -> date:
    if value.year < MIN_YEAR:
        raise ValueError(f"Date must be in or after {MIN_YEAR}")
    return value


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
RecordDate = Annotated[date, AfterValidator(_require_min_year)]
TrimmedText = Annotated[str, StringConstraints(strip_whitespace=True)]

Amount = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Percentage = Annotated[Decimal, Field(ge=0, le=100, max_digits=5, decimal_places=2)]

ClockTime = Annotated[
    str,
    Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$", description="24-hour HH:MM"),
]
PhoneNumber = Annotated[
    str,
    Field(pattern=r"^\+?[1-9]\d{9,14}$", description="E.164, 10-15 digits"),
]
ContactName = Annotated[
    str,
    Field(min_length=2, max_length=200, pattern=r"^[A-Za-z\s.'-]+$"),
]

FileExtension = Annotated[str, Field(pattern=r"^[A-Za-z0-9]{1,10}$")]


def within_tolerance(left: float | Decimal, right: float | Decimal, tolerance: float | Decimal) -> bool:
    """Compare two numbers allowing a small absolute difference."""
    return abs(left - right) < tolerance


# =============================================================================
# Paging
# =============================================================================

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a filtered list.

    Attributes:
        items: Entities on this page.
        total: Number of matching entities across all pages.
        page: 1-based page number.
        limit: Page size.
    """

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.total > self.page * self.limit
