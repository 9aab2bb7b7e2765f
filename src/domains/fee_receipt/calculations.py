# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fee receipt arithmetic, status resolution and summaries.

All amounts are Decimal rounded half-up to two places. A receipt's status
follows from its balances and due date until it is cancelled or refunded;
those two states are final.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional, Sequence

from src.domains.common import BusinessRuleError, StateMachine
from src.models.enrollment import PaymentStatus
from src.models.fee_receipt import ReceiptStatus, StudentPaymentSummary

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Late fee accrued per day past due, as a percentage of the base fee.
DAILY_LATE_FEE_PERCENT = Decimal("0.5")

RECEIPT_NUMBER_PREFIX = "RCP"

RECEIPT_LIFECYCLE: StateMachine[ReceiptStatus] = StateMachine(
    "fee receipt",
    {
        ReceiptStatus.PENDING: {
            ReceiptStatus.PARTIAL,
            ReceiptStatus.PAID,
            ReceiptStatus.OVERDUE,
            ReceiptStatus.CANCELLED,
        },
        ReceiptStatus.OVERDUE: {
            ReceiptStatus.PENDING,
            ReceiptStatus.PARTIAL,
            ReceiptStatus.PAID,
            ReceiptStatus.CANCELLED,
        },
        ReceiptStatus.PARTIAL: {ReceiptStatus.PAID, ReceiptStatus.REFUNDED},
        ReceiptStatus.PAID: {ReceiptStatus.REFUNDED},
        ReceiptStatus.CANCELLED: set(),
        ReceiptStatus.REFUNDED: set(),
    },
)

CLOSED_STATUSES = frozenset({ReceiptStatus.CANCELLED, ReceiptStatus.REFUNDED})


def money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_balance(total_amount: Any, amount_paid: Any = ZERO) -> Decimal:
    """Outstanding amount, never negative."""
    return max(ZERO, money(Decimal(str(total_amount)) - Decimal(str(amount_paid))))


def calculate_late_fee(base_amount: Any, days_late: int, daily_percent: Decimal = DAILY_LATE_FEE_PERCENT) -> Decimal:
    """Late fee for a number of days past due.

    Example:
        >>> calculate_late_fee(Decimal("1000"), 3)
        Decimal('15.00')
    """
    if days_late <= 0:
        return ZERO
    return money(Decimal(str(base_amount)) * daily_percent * days_late / 100)


def days_overdue(due_date: date, today: date) -> int:
    return max(0, (today - due_date).days)


def resolve_status(total_amount: Any, amount_paid: Any, due_date: date, today: date) -> ReceiptStatus:
    """Status implied by a receipt's balances on a given day."""
    paid = money(amount_paid)
    if calculate_balance(total_amount, paid) == ZERO:
        return ReceiptStatus.PAID
    if paid > ZERO:
        return ReceiptStatus.PARTIAL
    if due_date < today:
        return ReceiptStatus.OVERDUE
    return ReceiptStatus.PENDING


def is_closed(receipt: Any) -> bool:
    return ReceiptStatus(receipt.receipt_status) in CLOSED_STATUSES


def check_editable(receipt: Any) -> None:
    """Raise unless the receipt is open and nothing has been paid on it."""
    if is_closed(receipt):
        raise BusinessRuleError(f"Cannot modify a {receipt.receipt_status.lower()} receipt")
    if money(receipt.amount_paid) > ZERO:
        raise BusinessRuleError("Cannot edit a receipt after a payment has been recorded")


def check_payment(receipt: Any, amount: Any) -> None:
    """Raise unless the payment fits the receipt's outstanding balance."""
    if is_closed(receipt):
        raise BusinessRuleError(f"Cannot record payment on a {receipt.receipt_status.lower()} receipt")
    balance = money(receipt.balance_amount)
    if balance == ZERO:
        raise BusinessRuleError("Receipt is already fully paid")
    if money(amount) > balance:
        raise BusinessRuleError(f"Payment amount ({money(amount)}) exceeds balance ({balance})")


def cancellation_status(amount_paid: Any) -> ReceiptStatus:
    """REFUNDED when money was received, CANCELLED otherwise."""
    return ReceiptStatus.REFUNDED if money(amount_paid) > ZERO else ReceiptStatus.CANCELLED


def format_receipt_number(issued_on: date, sequence: int) -> str:
    """Receipt number such as RCP-202601-0007."""
    return f"{RECEIPT_NUMBER_PREFIX}-{issued_on:%Y%m}-{sequence:04d}"


def receipt_number_prefix(issued_on: date) -> str:
    return f"{RECEIPT_NUMBER_PREFIX}-{issued_on:%Y%m}-"


def next_sequence(latest_number: Optional[str]) -> int:
    """Sequence following the latest receipt number of the month."""
    if not latest_number:
        return 1
    return int(latest_number.rsplit("-", 1)[-1]) + 1


def append_note(existing: Optional[str], stamp: str, note: str) -> str:
    entry = f"[{stamp}] {note}"
    return f"{existing}\n\n{entry}" if existing else entry


# =============================================================================
# Summaries
# =============================================================================


def summarize_student(student_id: Any, receipts: Sequence[Any], today: date) -> StudentPaymentSummary:
    """Totals over a student's receipts; closed receipts are left out."""
    active = [r for r in receipts if not is_closed(r)]
    statuses = [resolve_status(r.total_amount, r.amount_paid, r.due_date, today) for r in active]

    upcoming = [
        r.due_date
        for r, status in zip(active, statuses)
        if status == ReceiptStatus.PENDING
    ]

    return StudentPaymentSummary(
        student_id=student_id,
        total_receipts=len(active),
        total_amount_due=_sum(r.total_amount for r in active),
        total_amount_paid=_sum(r.amount_paid for r in active),
        total_outstanding=_sum(r.balance_amount for r in active),
        paid_receipts=statuses.count(ReceiptStatus.PAID),
        pending_receipts=statuses.count(ReceiptStatus.PENDING),
        overdue_receipts=sum(
            1 for r in active if r.due_date < today and money(r.balance_amount) > ZERO
        ),
        next_due_date=min(upcoming) if upcoming else None,
    )


def enrollment_payment_status(summary: StudentPaymentSummary) -> PaymentStatus:
    """Fee standing of a branch enrollment given its receipt summary."""
    if summary.overdue_receipts:
        return PaymentStatus.OVERDUE
    if summary.total_receipts and summary.total_outstanding == ZERO:
        return PaymentStatus.PAID
    if summary.total_amount_paid > ZERO:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def _sum(values: Iterable[Any]) -> Decimal:
    return money(sum((Decimal(str(v)) for v in values), ZERO))
