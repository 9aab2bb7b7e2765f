# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class and branch enrollment request/response models.

Two enrollment variants share one lifecycle:
- Branch enrollment (BranchStudent): a student's membership of a branch,
  carrying contact details and the fee summary.
- Class enrollment: a student's seat in a specific class, carrying
  academic progress.

Updates use a single UpdateEnrollmentRequest; which of its fields a caller
may write is decided by role capabilities in the enrollment domain, not by
separate per-role schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.models.common import (
    MAX_YEARS_AHEAD,
    ContactName,
    FieldError,
    Percentage,
    PhoneNumber,
    RecordDate,
    RequestModel,
    ValidationContext,
    rule,
)
from src.utils.datetime import add_years

FeesAmount = Annotated[Decimal, Field(ge=0, le=Decimal("9999999.99"), max_digits=9, decimal_places=2)]


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle state."""

    PENDING = "PENDING"
    ENROLLED = "ENROLLED"
    SUSPENDED = "SUSPENDED"
    DROPPED = "DROPPED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    """Fee standing of a branch enrollment."""

    PAID = "PAID"
    PARTIAL = "PARTIAL"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"


INITIAL_STATUSES = frozenset({EnrollmentStatus.PENDING, EnrollmentStatus.ENROLLED})


class _EnrollmentDates(RequestModel):
    """Date fields and the rules shared by every enrollment payload."""

    date_fields: ClassVar[tuple[str, ...]] = (
        "enrollment_date",
        "expected_completion_date",
        "actual_completion_date",
        "last_payment_date",
        "next_payment_due",
    )

    def check_rules(self, context: ValidationContext) -> list[FieldError]:
        errors = super().check_rules(context)
        horizon = add_years(context.today, MAX_YEARS_AHEAD)
        for name in self.date_fields:
            value = getattr(self, name, None)
            if value is not None and value > horizon:
                errors.append(
                    FieldError(
                        field=name,
                        message=f"Date cannot be more than {MAX_YEARS_AHEAD} years in the future",
                    )
                )
        return errors


class _ContactDetails(RequestModel):
    emergency_contact_name: ContactName | None = None
    emergency_contact_phone: PhoneNumber | None = None
    parent_guardian_name: ContactName | None = None
    parent_guardian_phone: PhoneNumber | None = None

    @rule("emergency_contact_phone", "Emergency contact phone is required when emergency contact name is provided")
    def emergency_contact_has_phone(self, context: ValidationContext) -> bool:
        return not (self.emergency_contact_name and not self.emergency_contact_phone)

    @rule("parent_guardian_phone", "Parent/guardian phone is required when parent/guardian name is provided")
    def guardian_has_phone(self, context: ValidationContext) -> bool:
        return not (self.parent_guardian_name and not self.parent_guardian_phone)


class _NewEnrollment(_EnrollmentDates):
    student_id: UUID
    branch_id: UUID
    enrollment_date: RecordDate | None = None
    expected_completion_date: RecordDate | None = None
    preferred_batch: str | None = Field(default=None, max_length=100)
    special_requirements: str | None = Field(default=None, max_length=2000)
    metadata: dict[str, Any] | None = None

    @rule("enrollment_date", "Enrollment date cannot be in the future")
    def enrollment_not_in_future(self, context: ValidationContext) -> bool:
        return self.enrollment_date is None or self.enrollment_date <= context.today

    @rule("expected_completion_date", "Expected completion date must be after enrollment date")
    def expected_after_enrollment(self, context: ValidationContext) -> bool:
        if self.expected_completion_date is None:
            return True
        start = self.enrollment_date or context.today
        return self.expected_completion_date > start


class CreateClassEnrollmentRequest(_NewEnrollment):
    """Seat a student in a class."""

    class_id: UUID
    branch_student_id: UUID | None = None
    enrollment_status: EnrollmentStatus = EnrollmentStatus.ENROLLED

    @rule("enrollment_status", "New enrollments must start as PENDING or ENROLLED")
    def starts_in_initial_status(self, context: ValidationContext) -> bool:
        return self.enrollment_status in INITIAL_STATUSES


class CreateBranchStudentRequest(_NewEnrollment, _ContactDetails):
    """Enroll a student in a branch."""

    class_id: UUID | None = None
    student_notes: str | None = Field(default=None, max_length=5000)
    total_fees_due: FeesAmount = Decimal("0")


class UpdateEnrollmentRequest(_EnrollmentDates, _ContactDetails):
    """Partial update of either enrollment variant.

    Each field is tagged with a capability in the enrollment domain; the
    service rejects fields the acting role may not write.
    """

    not_null_fields: ClassVar[tuple[str, ...]] = (
        "enrollment_status",
        "payment_status",
        "attendance_percentage",
        "total_fees_due",
        "total_fees_paid",
    )

    class_id: UUID | None = None
    enrollment_status: EnrollmentStatus | None = None
    payment_status: PaymentStatus | None = None
    expected_completion_date: RecordDate | None = None
    actual_completion_date: RecordDate | None = None
    attendance_percentage: Percentage | None = None
    current_grade: str | None = Field(default=None, max_length=50)
    performance_notes: str | None = Field(default=None, max_length=5000)
    total_fees_due: FeesAmount | None = None
    total_fees_paid: FeesAmount | None = None
    last_payment_date: RecordDate | None = None
    next_payment_due: RecordDate | None = None
    preferred_batch: str | None = Field(default=None, max_length=100)
    special_requirements: str | None = Field(default=None, max_length=2000)
    student_notes: str | None = Field(default=None, max_length=5000)
    metadata: dict[str, Any] | None = None

    @rule("", "At least one field must be provided for update")
    def has_changes(self, context: ValidationContext) -> bool:
        return bool(self.model_fields_set)

    @rule("total_fees_paid", "Total fees paid cannot exceed total fees due")
    def paid_within_due(self, context: ValidationContext) -> bool:
        if self.total_fees_paid is None or self.total_fees_due is None:
            return True
        return self.total_fees_paid <= self.total_fees_due

    @rule("actual_completion_date", "Actual completion date should be on or after expected completion date")
    def actual_after_expected(self, context: ValidationContext) -> bool:
        if self.actual_completion_date is None or self.expected_completion_date is None:
            return True
        return self.actual_completion_date >= self.expected_completion_date

    @rule("actual_completion_date", "Actual completion date is required when marking enrollment as COMPLETED")
    def completion_has_date(self, context: ValidationContext) -> bool:
        if self.enrollment_status != EnrollmentStatus.COMPLETED:
            return True
        return self.actual_completion_date is not None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class EnrollmentFilters(RequestModel):
    student_id: UUID | None = None
    branch_id: UUID | None = None
    class_id: UUID | None = None
    enrollment_status: list[EnrollmentStatus] | None = None
    payment_status: PaymentStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


# =============================================================================
# Responses
# =============================================================================


class ClassEnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    branch_id: UUID
    class_id: UUID
    branch_student_id: UUID | None = None
    enrollment_status: EnrollmentStatus
    enrollment_date: date
    expected_completion_date: date | None = None
    actual_completion_date: date | None = None
    attendance_percentage: Decimal
    current_grade: str | None = None
    performance_notes: str | None = None
    preferred_batch: str | None = None
    special_requirements: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("extra_data", "metadata"))
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BranchStudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    branch_id: UUID
    class_id: UUID | None = None
    enrollment_status: EnrollmentStatus
    payment_status: PaymentStatus
    enrollment_date: date
    expected_completion_date: date | None = None
    actual_completion_date: date | None = None
    attendance_percentage: Decimal
    current_grade: str | None = None
    performance_notes: str | None = None
    total_fees_due: Decimal
    total_fees_paid: Decimal
    last_payment_date: date | None = None
    next_payment_due: date | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    parent_guardian_name: str | None = None
    parent_guardian_phone: str | None = None
    preferred_batch: str | None = None
    special_requirements: str | None = None
    student_notes: str | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("extra_data", "metadata"))
    created_at: datetime | None = None
    updated_at: datetime | None = None
