# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for fee receipt calculations and FeeReceiptService."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.domains.common import BusinessRuleError, ErrorCode
from src.domains.fee_receipt.calculations import (
    calculate_balance,
    calculate_late_fee,
    cancellation_status,
    check_payment,
    enrollment_payment_status,
    format_receipt_number,
    next_sequence,
    resolve_status,
    summarize_student,
)
from src.domains.fee_receipt.service import FeeReceiptService
from src.infrastructure.database.models.enrollment import BranchStudent
from src.infrastructure.database.models.fee_receipt import FeeReceipt
from src.models.enrollment import PaymentStatus
from src.models.fee_receipt import ReceiptStatus
from tests.conftest import BRANCH_ID, STUDENT_ID, count_result, rows_result, scalar_result

TODAY = date(2026, 3, 15)


def make_enrollment(**overrides) -> BranchStudent:
    values = {
        "id": str(uuid4()),
        "student_id": str(STUDENT_ID),
        "branch_id": str(BRANCH_ID),
        "enrollment_status": "ENROLLED",
        "payment_status": "PENDING",
        "enrollment_date": date(2026, 1, 5),
        "attendance_percentage": Decimal("0"),
        "total_fees_due": Decimal("0"),
        "total_fees_paid": Decimal("0"),
    }
    values.update(overrides)
    return BranchStudent(**values)


def make_receipt(enrollment: BranchStudent, **overrides) -> FeeReceipt:
    values = {
        "id": str(uuid4()),
        "receipt_number": "RCP-202603-0001",
        "student_id": enrollment.student_id,
        "branch_id": enrollment.branch_id,
        "enrollment_id": enrollment.id,
        "receipt_date": date(2026, 3, 1),
        "due_date": date(2026, 3, 20),
        "base_fee_amount": Decimal("1000.00"),
        "late_fee_amount": Decimal("0.00"),
        "discount_amount": Decimal("0.00"),
        "tax_amount": Decimal("0.00"),
        "total_amount": Decimal("1000.00"),
        "amount_paid": Decimal("0.00"),
        "balance_amount": Decimal("1000.00"),
        "receipt_status": ReceiptStatus.PENDING.value,
        "is_auto_generated": False,
    }
    values.update(overrides)
    return FeeReceipt(**values)


# =============================================================================
# Calculations
# =============================================================================


class TestCalculations:
    """Tests for receipt arithmetic."""

    def test_late_fee_is_half_percent_per_day(self):
        assert calculate_late_fee(Decimal("1000"), 3) == Decimal("15.00")

    def test_no_late_fee_when_not_late(self):
        assert calculate_late_fee(Decimal("1000"), 0) == Decimal("0.00")

    def test_balance_never_negative(self):
        assert calculate_balance(Decimal("100"), Decimal("120")) == Decimal("0.00")

    def test_receipt_number_format(self):
        assert format_receipt_number(date(2026, 1, 9), 7) == "RCP-202601-0007"

    def test_sequence_restarts_each_month(self):
        assert next_sequence(None) == 1
        assert next_sequence("RCP-202603-0041") == 42

    @pytest.mark.parametrize(
        "paid,due,expected",
        [
            ("1000", date(2026, 3, 20), ReceiptStatus.PAID),
            ("400", date(2026, 3, 1), ReceiptStatus.PARTIAL),
            ("0", date(2026, 3, 14), ReceiptStatus.OVERDUE),
            ("0", TODAY, ReceiptStatus.PENDING),
        ],
    )
    def test_resolve_status(self, paid, due, expected):
        assert resolve_status(Decimal("1000"), Decimal(paid), due, TODAY) == expected

    def test_cancellation_becomes_refund_after_payment(self):
        assert cancellation_status(Decimal("0")) == ReceiptStatus.CANCELLED
        assert cancellation_status(Decimal("10")) == ReceiptStatus.REFUNDED

    def test_overpayment_rejected(self):
        receipt = SimpleNamespace(receipt_status="PARTIAL", balance_amount=Decimal("250.00"))

        with pytest.raises(BusinessRuleError, match=r"exceeds balance \(250.00\)"):
            check_payment(receipt, Decimal("300"))

    def test_student_summary_skips_closed_receipts(self):
        receipts = [
            SimpleNamespace(
                receipt_status="PAID",
                total_amount=Decimal("1000"),
                amount_paid=Decimal("1000"),
                balance_amount=Decimal("0"),
                due_date=date(2026, 2, 20),
            ),
            SimpleNamespace(
                receipt_status="PENDING",
                total_amount=Decimal("1000"),
                amount_paid=Decimal("0"),
                balance_amount=Decimal("1000"),
                due_date=date(2026, 3, 20),
            ),
            SimpleNamespace(
                receipt_status="CANCELLED",
                total_amount=Decimal("500"),
                amount_paid=Decimal("0"),
                balance_amount=Decimal("500"),
                due_date=date(2026, 1, 20),
            ),
        ]

        summary = summarize_student(STUDENT_ID, receipts, TODAY)

        assert summary.total_receipts == 2
        assert summary.total_amount_due == Decimal("2000.00")
        assert summary.total_outstanding == Decimal("1000.00")
        assert summary.paid_receipts == 1
        assert summary.pending_receipts == 1
        assert summary.overdue_receipts == 0
        assert summary.next_due_date == date(2026, 3, 20)
        assert enrollment_payment_status(summary) == PaymentStatus.PARTIAL


# =============================================================================
# Service
# =============================================================================


@pytest.fixture
def service(mock_db, fixed_clock):
    """Create fee receipt service with mock database."""
    return FeeReceiptService(db=mock_db, clock=fixed_clock)


class TestCreateReceipt:
    """Tests for issuing receipts."""

    def payload(self, enrollment: BranchStudent, **overrides) -> dict:
        data = {
            "student_id": str(STUDENT_ID),
            "branch_id": str(BRANCH_ID),
            "enrollment_id": enrollment.id,
            "due_date": "2026-03-31",
            "base_fee_amount": "1000.00",
            "tax_amount": "50.00",
            "fee_month": 3,
            "fee_year": 2026,
        }
        data.update(overrides)
        return data

    @pytest.mark.asyncio
    async def test_create_numbers_receipt_and_syncs_enrollment(self, service, mock_db, manager):
        enrollment = make_enrollment()
        created = []
        mock_db.add.side_effect = created.append
        # The session autoflushes the new receipt before the sync query.
        synced = MagicMock()
        synced.scalars.return_value.all.side_effect = lambda: list(created)
        mock_db.execute.side_effect = [
            scalar_result(enrollment),
            scalar_result("RCP-202603-0007"),
            synced,
        ]

        result = await service.create_receipt(self.payload(enrollment, total_amount="1050.00"), manager)

        assert result.data.receipt_number == "RCP-202603-0008"
        assert result.data.receipt_date == TODAY
        assert result.data.total_amount == Decimal("1050.00")
        assert result.data.balance_amount == Decimal("1050.00")
        assert result.data.receipt_status == ReceiptStatus.PENDING
        assert enrollment.total_fees_due == Decimal("1050.00")
        assert enrollment.payment_status == PaymentStatus.PENDING.value
        assert enrollment.next_payment_due == date(2026, 3, 31)

    @pytest.mark.asyncio
    async def test_first_receipt_of_month(self, service, mock_db, manager):
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [scalar_result(enrollment), scalar_result(None), rows_result([])]

        result = await service.create_receipt(self.payload(enrollment), manager)

        assert result.data.receipt_number == "RCP-202603-0001"

    @pytest.mark.asyncio
    async def test_total_must_reconcile(self, service, mock_db, manager):
        result = await service.create_receipt(self.payload(make_enrollment(), total_amount="1000.00"), manager)

        assert [e.field for e in result.validation_errors] == ["total_amount"]
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enrollment_must_belong_to_student(self, service, mock_db, manager):
        enrollment = make_enrollment(student_id=str(uuid4()))
        mock_db.execute.side_effect = [scalar_result(enrollment)]

        result = await service.create_receipt(self.payload(enrollment), manager)

        assert [e.field for e in result.validation_errors] == ["enrollment_id"]

    @pytest.mark.asyncio
    async def test_teachers_cannot_issue_receipts(self, service, teacher):
        result = await service.create_receipt({}, teacher)

        assert result.error_code == ErrorCode.AUTHORIZATION_ERROR


class TestPayments:
    """Tests for payments, edits and cancellations."""

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self, service, mock_db, manager):
        enrollment = make_enrollment()
        receipt = make_receipt(enrollment)
        mock_db.execute.side_effect = [
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([receipt]),
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([receipt]),
        ]

        first = await service.record_payment(
            {"receipt_id": receipt.id, "amount_paid": "400", "payment_method": "MANUAL"},
            manager,
        )

        assert first.data.new_balance == Decimal("600.00")
        assert first.data.is_fully_paid is False
        assert first.data.receipt.receipt_status == ReceiptStatus.PARTIAL
        assert enrollment.payment_status == PaymentStatus.PARTIAL.value

        second = await service.record_payment(
            {
                "receipt_id": receipt.id,
                "amount_paid": "600",
                "payment_method": "UPI",
                "payment_reference": "UPI-77812",
            },
            manager,
        )

        assert second.data.is_fully_paid is True
        assert second.data.receipt.receipt_status == ReceiptStatus.PAID
        assert enrollment.payment_status == PaymentStatus.PAID.value
        assert enrollment.total_fees_paid == Decimal("1000.00")
        assert enrollment.last_payment_date == TODAY

    @pytest.mark.asyncio
    async def test_overpayment_refused(self, service, mock_db, manager):
        receipt = make_receipt(make_enrollment())
        mock_db.execute.side_effect = [scalar_result(receipt)]

        result = await service.record_payment(
            {"receipt_id": receipt.id, "amount_paid": "1500", "payment_method": "CHEQUE"},
            manager,
        )

        assert result.error_code == ErrorCode.BUSINESS_RULE
        assert receipt.amount_paid == Decimal("0.00")
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_card_payment_needs_reference(self, service, manager):
        result = await service.record_payment(
            {"receipt_id": str(uuid4()), "amount_paid": "100", "payment_method": "CARD"},
            manager,
        )

        assert [e.field for e in result.validation_errors] == ["payment_reference"]

    @pytest.mark.asyncio
    async def test_update_recomputes_total(self, service, mock_db, manager):
        enrollment = make_enrollment()
        receipt = make_receipt(enrollment)
        mock_db.execute.side_effect = [
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([receipt]),
        ]

        result = await service.update_receipt({"id": receipt.id, "discount_amount": "100.00"}, manager)

        assert result.data.total_amount == Decimal("900.00")
        assert result.data.balance_amount == Decimal("900.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["due_date", "discount_amount", "base_fee_amount", "tax_amount"])
    async def test_update_rejects_null_amounts_and_dates(self, service, mock_db, manager, field):
        result = await service.update_receipt({"id": str(uuid4()), field: None}, manager)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert [e.field for e in result.validation_errors] == [field]
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_created_receipt_accepts_its_own_values(self, service, mock_db, manager):
        enrollment = make_enrollment()
        created = []
        mock_db.add.side_effect = created.append
        mock_db.execute.side_effect = [scalar_result(enrollment), scalar_result(None), rows_result([])]

        issued = await service.create_receipt(TestCreateReceipt().payload(enrollment), manager)
        assert issued.success

        receipt = created[0]
        mock_db.execute.side_effect = [
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([receipt]),
        ]

        result = await service.update_receipt(issued.data.model_dump(mode="json"), manager)

        assert result.success
        assert result.data.total_amount == issued.data.total_amount
        assert result.data.due_date == issued.data.due_date
        assert result.data.receipt_status == ReceiptStatus.PENDING

    @pytest.mark.asyncio
    async def test_paid_receipt_cannot_be_edited(self, service, mock_db, manager):
        receipt = make_receipt(make_enrollment(), amount_paid=Decimal("100.00"), receipt_status="PARTIAL")
        mock_db.execute.side_effect = [scalar_result(receipt)]

        result = await service.update_receipt({"id": receipt.id, "tax_amount": "10"}, manager)

        assert result.error == "Cannot edit a receipt after a payment has been recorded"

    @pytest.mark.asyncio
    async def test_cancel_unpaid_receipt(self, service, mock_db, manager):
        enrollment = make_enrollment()
        receipt = make_receipt(enrollment)
        mock_db.execute.side_effect = [
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([]),
        ]

        result = await service.cancel_receipt(
            {"receipt_id": receipt.id, "reason": "Student moved to another city"},
            manager,
        )

        assert result.data.receipt_status == ReceiptStatus.CANCELLED
        assert result.data.cancellation_reason == "Student moved to another city"
        assert "CANCELLED: Student moved to another city" in result.data.internal_notes
        assert enrollment.total_fees_due == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_cancel_paid_receipt_is_refund(self, service, mock_db, manager):
        enrollment = make_enrollment()
        receipt = make_receipt(
            enrollment,
            amount_paid=Decimal("1000.00"),
            balance_amount=Decimal("0.00"),
            receipt_status="PAID",
        )
        mock_db.execute.side_effect = [
            scalar_result(receipt),
            scalar_result(enrollment),
            rows_result([]),
        ]

        result = await service.cancel_receipt(
            {"receipt_id": receipt.id, "reason": "Course withdrawn by branch", "refund_amount": "1000.00"},
            manager,
        )

        assert result.data.receipt_status == ReceiptStatus.REFUNDED
        assert result.data.refund_amount == Decimal("1000.00")
        assert result.data.amount_paid == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_cancelled_receipt_is_final(self, service, mock_db, manager):
        receipt = make_receipt(make_enrollment(), receipt_status="CANCELLED")
        mock_db.execute.side_effect = [scalar_result(receipt)]

        result = await service.cancel_receipt(
            {"receipt_id": receipt.id, "reason": "Cancelling a second time"},
            manager,
        )

        assert result.error_code == ErrorCode.INVALID_TRANSITION


class TestOverdueSweep:
    """Tests for mark_overdue."""

    @pytest.mark.asyncio
    async def test_sweep_applies_late_fee(self, service, mock_db, manager):
        enrollment = make_enrollment()
        receipt = make_receipt(enrollment, due_date=date(2026, 3, 12))
        mock_db.execute.side_effect = [
            rows_result([receipt]),
            scalar_result(enrollment),
            rows_result([receipt]),
        ]

        result = await service.mark_overdue(manager, apply_late_fee=True)

        assert result.data == {"updated": 1}
        assert receipt.receipt_status == ReceiptStatus.OVERDUE.value
        assert receipt.late_fee_amount == Decimal("15.00")
        assert receipt.total_amount == Decimal("1015.00")
        assert enrollment.payment_status == PaymentStatus.OVERDUE.value
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_due(self, service, mock_db, manager):
        mock_db.execute.side_effect = [rows_result([])]

        result = await service.mark_overdue(manager)

        assert result.data == {"updated": 0}


class TestReceiptReads:
    """Tests for lists and summaries."""

    @pytest.mark.asyncio
    async def test_teachers_cannot_list_receipts(self, service, teacher):
        result = await service.list_receipts({}, teacher)

        assert result.error_code == ErrorCode.AUTHORIZATION_ERROR

    @pytest.mark.asyncio
    async def test_student_lists_own_receipts(self, service, mock_db, student):
        receipt = make_receipt(make_enrollment())
        mock_db.execute.side_effect = [count_result(1), rows_result([receipt])]

        result = await service.list_receipts({"has_balance": True}, student)

        assert result.data.items[0].receipt_number == "RCP-202603-0001"

    @pytest.mark.asyncio
    async def test_get_receipt(self, service, mock_db, manager):
        receipt = make_receipt(make_enrollment())
        mock_db.execute.return_value = scalar_result(receipt)

        result = await service.get_receipt(receipt.id, manager)

        assert result.data.receipt_number == "RCP-202603-0001"

    @pytest.mark.asyncio
    async def test_other_students_receipt_is_not_found(self, service, mock_db, other_student):
        receipt = make_receipt(make_enrollment())
        mock_db.execute.return_value = scalar_result(receipt)

        result = await service.get_receipt(receipt.id, other_student)

        assert result.error_code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_student_summary(self, service, mock_db, student):
        receipt = make_receipt(make_enrollment(), due_date=date(2026, 3, 10))
        mock_db.execute.return_value = rows_result([receipt])

        result = await service.get_student_summary(STUDENT_ID, student)

        assert result.data.overdue_receipts == 1
        assert result.data.total_outstanding == Decimal("1000.00")
