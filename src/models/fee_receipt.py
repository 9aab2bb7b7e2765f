# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fee receipt request/response models.

Amounts are Decimal with at most two decimal places. A receipt's total is
base + late fee + tax - discount; when a caller states a total it must
reconcile with the breakdown.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.common import (
    AMOUNT_TOLERANCE,
    Amount,
    RequestModel,
    TrimmedText,
    ValidationContext,
    rule,
    within_tolerance,
)

PositiveAmount = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]
FeeMonth = Annotated[int, Field(ge=1, le=12)]
FeeYear = Annotated[int, Field(ge=1900, le=2100)]
Description = Annotated[TrimmedText, Field(min_length=1, max_length=1000)]
PaymentReference = Annotated[TrimmedText, Field(min_length=1, max_length=100)]


class PaymentMethod(str, Enum):
    MANUAL = "MANUAL"
    UPI = "UPI"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


REFERENCE_REQUIRED_METHODS = frozenset(
    {PaymentMethod.UPI, PaymentMethod.CARD, PaymentMethod.BANK_TRANSFER}
)


class ReceiptStatus(str, Enum):
    """Receipt lifecycle state."""

    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


def fee_total(
    base: Decimal,
    late_fee: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
    tax: Decimal = Decimal("0"),
) -> Decimal:
    """Total payable for a fee breakdown, never below zero."""
    total = (base + late_fee - discount + tax).quantize(Decimal("0.01"))
    return max(Decimal("0.00"), total)


class _FeePeriod(RequestModel):
    base_fee_amount: PositiveAmount | None = None
    discount_amount: Amount | None = None
    fee_period_start: date | None = None
    fee_period_end: date | None = None

    @rule("discount_amount", "Discount amount cannot exceed base fee amount")
    def discount_within_base(self, context: ValidationContext) -> bool:
        if self.discount_amount is None or self.base_fee_amount is None:
            return True
        return self.discount_amount <= self.base_fee_amount

    @rule("fee_period_end", "Fee period start must be before or equal to end")
    def period_ordered(self, context: ValidationContext) -> bool:
        if self.fee_period_start is None or self.fee_period_end is None:
            return True
        return self.fee_period_start <= self.fee_period_end

    @rule("due_date", "Date cannot be in the past")
    def due_not_in_past(self, context: ValidationContext) -> bool:
        due_date = getattr(self, "due_date", None)
        return due_date is None or due_date >= context.today


class CreateFeeReceiptRequest(_FeePeriod):
    """Issue a receipt against a branch enrollment."""

    student_id: UUID
    branch_id: UUID
    enrollment_id: UUID
    class_id: UUID | None = None
    receipt_date: date | None = None
    due_date: date
    base_fee_amount: PositiveAmount
    late_fee_amount: Amount = Decimal("0")
    discount_amount: Amount = Decimal("0")
    tax_amount: Amount = Decimal("0")
    total_amount: Amount | None = None
    fee_month: FeeMonth | None = None
    fee_year: FeeYear | None = None
    description: Description | None = None
    internal_notes: str | None = Field(default=None, max_length=2000)
    is_auto_generated: bool = False

    @rule("due_date", "Due date must be on or after receipt date")
    def due_after_receipt(self, context: ValidationContext) -> bool:
        return self.receipt_date is None or self.due_date >= self.receipt_date

    @rule("fee_period_end", "Both fee_period_start and fee_period_end must be provided together")
    def period_complete(self, context: ValidationContext) -> bool:
        return (self.fee_period_start is None) == (self.fee_period_end is None)

    @rule("fee_year", "Both fee_month and fee_year must be provided together")
    def month_with_year(self, context: ValidationContext) -> bool:
        return (self.fee_month is None) == (self.fee_year is None)

    @rule("total_amount", "Total amount must equal base + late fee + tax - discount")
    def total_reconciles(self, context: ValidationContext) -> bool:
        if self.total_amount is None:
            return True
        return within_tolerance(self.total_amount, self.computed_total(), AMOUNT_TOLERANCE)

    def computed_total(self) -> Decimal:
        return fee_total(
            self.base_fee_amount,
            self.late_fee_amount,
            self.discount_amount,
            self.tax_amount,
        )


class RecordPaymentRequest(RequestModel):
    """A payment applied to a receipt."""

    receipt_id: UUID
    amount_paid: PositiveAmount
    payment_method: PaymentMethod
    payment_reference: PaymentReference | None = None
    payment_date: date | None = None
    internal_notes: str | None = Field(default=None, max_length=2000)

    @rule("payment_reference", "Payment reference is required for UPI, Card, and Bank Transfer payments")
    def reference_when_required(self, context: ValidationContext) -> bool:
        if self.payment_method not in REFERENCE_REQUIRED_METHODS:
            return True
        return bool(self.payment_reference)

    @rule("payment_date", "Date cannot be in the future")
    def payment_not_in_future(self, context: ValidationContext) -> bool:
        return self.payment_date is None or self.payment_date <= context.today


class UpdateFeeReceiptRequest(_FeePeriod):
    """Edit an unpaid receipt."""

    not_null_fields: ClassVar[tuple[str, ...]] = (
        "base_fee_amount",
        "discount_amount",
        "due_date",
        "late_fee_amount",
        "tax_amount",
    )

    id: UUID
    due_date: date | None = None
    late_fee_amount: Amount | None = None
    tax_amount: Amount | None = None
    description: Description | None = None
    internal_notes: str | None = Field(default=None, max_length=2000)
    fee_month: FeeMonth | None = None
    fee_year: FeeYear | None = None

    @rule("id", "At least one field must be provided for update")
    def has_changes(self, context: ValidationContext) -> bool:
        return bool(self.model_fields_set - {"id"})

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class CancelReceiptRequest(RequestModel):
    receipt_id: UUID
    reason: TrimmedText = Field(..., min_length=10, max_length=500)
    refund_amount: Amount | None = None


class FeeReceiptFilters(RequestModel):
    student_id: UUID | None = None
    branch_id: UUID | None = None
    class_id: UUID | None = None
    enrollment_id: UUID | None = None
    receipt_status: ReceiptStatus | None = None
    payment_method: PaymentMethod | None = None
    due_date_from: date | None = None
    due_date_to: date | None = None
    fee_month: FeeMonth | None = None
    fee_year: FeeYear | None = None
    has_balance: bool | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_order: Literal["asc", "desc"] = "desc"

    @rule("due_date_to", "From date must be before or equal to To date")
    def due_range_ordered(self, context: ValidationContext) -> bool:
        if self.due_date_from is None or self.due_date_to is None:
            return True
        return self.due_date_from <= self.due_date_to


# =============================================================================
# Responses
# =============================================================================


class FeeReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    receipt_number: str
    student_id: UUID
    branch_id: UUID
    enrollment_id: UUID
    class_id: UUID | None = None
    receipt_date: date
    due_date: date
    fee_month: int | None = None
    fee_year: int | None = None
    fee_period_start: date | None = None
    fee_period_end: date | None = None
    base_fee_amount: Decimal
    late_fee_amount: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    balance_amount: Decimal
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    payment_date: date | None = None
    receipt_status: ReceiptStatus
    description: str | None = None
    internal_notes: str | None = None
    cancellation_reason: str | None = None
    refund_amount: Decimal | None = None
    is_auto_generated: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PaymentRecordingResult(BaseModel):
    receipt: FeeReceiptResponse
    payment_applied: Decimal
    new_balance: Decimal
    is_fully_paid: bool


class StudentPaymentSummary(BaseModel):
    student_id: UUID
    total_receipts: int
    total_amount_due: Decimal
    total_amount_paid: Decimal
    total_outstanding: Decimal
    paid_receipts: int
    pending_receipts: int
    overdue_receipts: int
    next_due_date: date | None = None
