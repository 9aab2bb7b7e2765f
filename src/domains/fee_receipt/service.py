# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fee receipt service.

This module provides the FeeReceiptService class for:
- Issuing receipts against branch enrollments
- Recording payments, edits and cancellations
- Sweeping past-due receipts to OVERDUE
- Receipt lookups and per-student payment summaries

After every write the branch enrollment's fee summary (fees due, fees
paid, payment status) is recomputed from its open receipts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.common import (
    MANAGER_ROLES,
    Actor,
    AuthorizationError,
    BaseService,
    NotFoundError,
    OperationResult,
    Role,
    ValidationFailedError,
    column_values,
)
from src.domains.fee_receipt.calculations import (
    RECEIPT_LIFECYCLE,
    ZERO,
    append_note,
    calculate_balance,
    calculate_late_fee,
    cancellation_status,
    check_editable,
    check_payment,
    days_overdue,
    enrollment_payment_status,
    format_receipt_number,
    money,
    next_sequence,
    receipt_number_prefix,
    resolve_status,
    summarize_student,
)
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.enrollment import BranchStudent
from src.infrastructure.database.models.fee_receipt import FeeReceipt
from src.models.common import FieldError, Page
from src.models.fee_receipt import (
    CancelReceiptRequest,
    CreateFeeReceiptRequest,
    FeeReceiptFilters,
    FeeReceiptResponse,
    PaymentRecordingResult,
    ReceiptStatus,
    RecordPaymentRequest,
    StudentPaymentSummary,
    UpdateFeeReceiptRequest,
    fee_total,
)
from src.utils.datetime import Clock

logger = logging.getLogger(__name__)

_SWEEP_STATUSES = (ReceiptStatus.PENDING.value, ReceiptStatus.OVERDUE.value)
_CLOSED_STATUSES = (ReceiptStatus.CANCELLED.value, ReceiptStatus.REFUNDED.value)


class FeeReceiptService(BaseService):
    """Service for fee receipts and payments.

    Attributes:
        db: Async database session.
        clock: Time source for receipt dates, due dates and overdue checks.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        read_retry_attempts: int = 1,
        session_lock: Optional[asyncio.Lock] = None,
    ) -> None:
        super().__init__(db, clock, read_retry_attempts, session_lock)

    # =========================================================================
    # Public operations
    # =========================================================================

    async def create_receipt(self, payload: Any, actor: Actor) -> OperationResult[FeeReceiptResponse]:
        """Issue a receipt with the next RCP-YYYYMM-NNNN number."""
        return await self._run_write("create_receipt", lambda: self._create_receipt(payload, actor))

    async def record_payment(self, payload: Any, actor: Actor) -> OperationResult[PaymentRecordingResult]:
        """Apply a payment no larger than the outstanding balance."""
        return await self._run_write("record_payment", lambda: self._record_payment(payload, actor))

    async def update_receipt(self, payload: Any, actor: Actor) -> OperationResult[FeeReceiptResponse]:
        """Edit a receipt that has no payments yet."""
        return await self._run_write("update_receipt", lambda: self._update_receipt(payload, actor))

    async def cancel_receipt(self, payload: Any, actor: Actor) -> OperationResult[FeeReceiptResponse]:
        """Cancel a receipt, or refund it when money was received."""
        return await self._run_write("cancel_receipt", lambda: self._cancel_receipt(payload, actor))

    async def mark_overdue(
        self,
        actor: Actor,
        apply_late_fee: bool = False,
    ) -> OperationResult[dict[str, int]]:
        """Move unpaid past-due receipts to OVERDUE, optionally charging a late fee."""
        return await self._run_write("mark_overdue", lambda: self._mark_overdue(actor, apply_late_fee))

    async def get_receipt(self, receipt_id: Any, actor: Actor) -> OperationResult[FeeReceiptResponse]:
        return await self._run_read("get_receipt", lambda: self._get_receipt_response(receipt_id, actor))

    async def list_receipts(self, filters: Any, actor: Actor) -> OperationResult[Page[FeeReceiptResponse]]:
        return await self._run_read("list_receipts", lambda: self._list_receipts(filters, actor))

    async def get_student_summary(self, student_id: Any, actor: Actor) -> OperationResult[StudentPaymentSummary]:
        return await self._run_read(
            "get_student_summary", lambda: self._get_student_summary(student_id, actor)
        )

    # =========================================================================
    # Writes
    # =========================================================================

    async def _create_receipt(self, payload: Any, actor: Actor) -> FeeReceiptResponse:
        self._require_role(actor, MANAGER_ROLES, "issue fee receipts")
        request = self._validate(CreateFeeReceiptRequest, payload)

        enrollment = await self._get_enrollment(request.enrollment_id)
        if str(enrollment.student_id) != str(request.student_id):
            raise ValidationFailedError(
                [FieldError(field="enrollment_id", message="Enrollment does not belong to this student")]
            )

        today = self.clock.today()
        receipt_date = request.receipt_date or today
        total = request.computed_total()

        data = column_values(request.model_dump(exclude={"total_amount"}))
        receipt = FeeReceipt(id=new_id(), **data)
        receipt.receipt_number = await self._next_receipt_number(receipt_date)
        receipt.receipt_date = receipt_date
        receipt.total_amount = total
        receipt.amount_paid = ZERO
        receipt.balance_amount = total
        receipt.receipt_status = resolve_status(total, ZERO, request.due_date, today).value
        receipt.processed_by = str(actor.user_id)

        self.db.add(receipt)
        await self._sync_enrollment_fees(enrollment)
        await self.db.commit()
        await self.db.refresh(receipt)

        logger.info("Issued receipt %s for student %s: %s", receipt.receipt_number, receipt.student_id, total)
        return FeeReceiptResponse.model_validate(receipt)

    async def _record_payment(self, payload: Any, actor: Actor) -> PaymentRecordingResult:
        self._require_role(actor, MANAGER_ROLES, "record payments")
        request = self._validate(RecordPaymentRequest, payload)
        receipt = await self._get_receipt(request.receipt_id)

        check_payment(receipt, request.amount_paid)

        today = self.clock.today()
        amount_paid = money(receipt.amount_paid) + request.amount_paid
        balance = calculate_balance(receipt.total_amount, amount_paid)
        status = resolve_status(receipt.total_amount, amount_paid, receipt.due_date, today)
        self._move_to(receipt, status)

        receipt.amount_paid = amount_paid
        receipt.balance_amount = balance
        receipt.payment_method = request.payment_method.value
        receipt.payment_reference = request.payment_reference
        receipt.payment_date = request.payment_date or today
        receipt.processed_by = str(actor.user_id)
        if request.internal_notes:
            receipt.internal_notes = append_note(
                receipt.internal_notes,
                self.clock.now().isoformat(),
                f"Payment recorded: {request.internal_notes}",
            )

        await self._sync_enrollment_fees(await self._get_enrollment(receipt.enrollment_id))
        await self.db.commit()
        await self.db.refresh(receipt)

        logger.info(
            "Recorded payment of %s on receipt %s, balance %s",
            request.amount_paid,
            receipt.receipt_number,
            balance,
        )
        return PaymentRecordingResult(
            receipt=FeeReceiptResponse.model_validate(receipt),
            payment_applied=request.amount_paid,
            new_balance=balance,
            is_fully_paid=balance == ZERO,
        )

    async def _update_receipt(self, payload: Any, actor: Actor) -> FeeReceiptResponse:
        self._require_role(actor, MANAGER_ROLES, "edit fee receipts")
        request = self._validate(UpdateFeeReceiptRequest, payload)
        receipt = await self._get_receipt(request.id)

        check_editable(receipt)

        changes = {
            field: value
            for field, value in column_values(request.changes()).items()
            if getattr(receipt, field) != value
        }
        self._check_merged_fields(receipt, changes)

        for field, value in changes.items():
            setattr(receipt, field, value)

        total = fee_total(
            money(receipt.base_fee_amount),
            money(receipt.late_fee_amount),
            money(receipt.discount_amount),
            money(receipt.tax_amount),
        )
        receipt.total_amount = total
        receipt.balance_amount = calculate_balance(total, receipt.amount_paid)
        self._move_to(receipt, resolve_status(total, receipt.amount_paid, receipt.due_date, self.clock.today()))

        await self._sync_enrollment_fees(await self._get_enrollment(receipt.enrollment_id))
        await self.db.commit()
        await self.db.refresh(receipt)

        logger.info("Updated receipt %s: %s", receipt.receipt_number, sorted(changes))
        return FeeReceiptResponse.model_validate(receipt)

    async def _cancel_receipt(self, payload: Any, actor: Actor) -> FeeReceiptResponse:
        self._require_role(actor, MANAGER_ROLES, "cancel fee receipts")
        request = self._validate(CancelReceiptRequest, payload)
        receipt = await self._get_receipt(request.receipt_id)

        status = RECEIPT_LIFECYCLE.require(
            ReceiptStatus(receipt.receipt_status), cancellation_status(receipt.amount_paid)
        )
        receipt.receipt_status = status.value

        refund = request.refund_amount
        if refund:
            if refund > money(receipt.amount_paid):
                raise ValidationFailedError(
                    [FieldError(field="refund_amount", message="Refund amount cannot exceed amount paid")]
                )
            receipt.amount_paid = money(receipt.amount_paid) - refund
            receipt.balance_amount = calculate_balance(receipt.total_amount, receipt.amount_paid)
            receipt.refund_amount = refund

        now = self.clock.now()
        receipt.cancellation_reason = request.reason
        receipt.cancelled_at = now
        receipt.cancelled_by = str(actor.user_id)
        receipt.internal_notes = append_note(receipt.internal_notes, now.isoformat(), f"{status.value}: {request.reason}")

        await self._sync_enrollment_fees(await self._get_enrollment(receipt.enrollment_id))
        await self.db.commit()
        await self.db.refresh(receipt)

        logger.info("Receipt %s %s", receipt.receipt_number, status.value.lower())
        return FeeReceiptResponse.model_validate(receipt)

    async def _mark_overdue(self, actor: Actor, apply_late_fee: bool) -> dict[str, int]:
        self._require_role(actor, MANAGER_ROLES, "sweep overdue receipts")
        today = self.clock.today()

        result = await self.db.execute(
            select(FeeReceipt).where(
                FeeReceipt.receipt_status.in_(_SWEEP_STATUSES),
                FeeReceipt.due_date < today,
                FeeReceipt.amount_paid == 0,
            )
        )
        receipts = list(result.scalars().all())

        for receipt in receipts:
            if apply_late_fee:
                receipt.late_fee_amount = calculate_late_fee(
                    receipt.base_fee_amount, days_overdue(receipt.due_date, today)
                )
                receipt.total_amount = fee_total(
                    money(receipt.base_fee_amount),
                    money(receipt.late_fee_amount),
                    money(receipt.discount_amount),
                    money(receipt.tax_amount),
                )
                receipt.balance_amount = calculate_balance(receipt.total_amount, receipt.amount_paid)
            self._move_to(receipt, ReceiptStatus.OVERDUE)

        for enrollment_id in sorted({r.enrollment_id for r in receipts}):
            await self._sync_enrollment_fees(await self._get_enrollment(enrollment_id))

        await self.db.commit()

        logger.info("Marked %d receipts overdue", len(receipts))
        return {"updated": len(receipts)}

    # =========================================================================
    # Reads
    # =========================================================================

    async def _get_receipt_response(self, receipt_id: Any, actor: Actor) -> FeeReceiptResponse:
        receipt = await self._get_receipt(receipt_id)
        if actor.role == Role.STUDENT and not actor.is_user(receipt.student_id):
            raise NotFoundError("Fee receipt", receipt_id)
        return FeeReceiptResponse.model_validate(receipt)

    async def _list_receipts(self, filters: Any, actor: Actor) -> Page[FeeReceiptResponse]:
        request = self._validate(FeeReceiptFilters, filters or {})

        student_id = request.student_id
        if actor.role == Role.STUDENT:
            if student_id is not None and not actor.is_user(student_id):
                raise AuthorizationError("Students can only view receipts for themselves")
            student_id = actor.user_id
        elif not actor.is_manager:
            raise AuthorizationError(f"Role '{actor.role.value}' cannot view fee receipts")

        stmt = select(FeeReceipt)
        if student_id:
            stmt = stmt.where(FeeReceipt.student_id == str(student_id))
        if request.branch_id:
            stmt = stmt.where(FeeReceipt.branch_id == str(request.branch_id))
        if request.class_id:
            stmt = stmt.where(FeeReceipt.class_id == str(request.class_id))
        if request.enrollment_id:
            stmt = stmt.where(FeeReceipt.enrollment_id == str(request.enrollment_id))
        if request.receipt_status:
            stmt = stmt.where(FeeReceipt.receipt_status == request.receipt_status.value)
        if request.payment_method:
            stmt = stmt.where(FeeReceipt.payment_method == request.payment_method.value)
        if request.due_date_from:
            stmt = stmt.where(FeeReceipt.due_date >= request.due_date_from)
        if request.due_date_to:
            stmt = stmt.where(FeeReceipt.due_date <= request.due_date_to)
        if request.fee_month:
            stmt = stmt.where(FeeReceipt.fee_month == request.fee_month)
        if request.fee_year:
            stmt = stmt.where(FeeReceipt.fee_year == request.fee_year)
        if request.has_balance is True:
            stmt = stmt.where(FeeReceipt.balance_amount > 0)
        elif request.has_balance is False:
            stmt = stmt.where(FeeReceipt.balance_amount == 0)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        order = FeeReceipt.due_date.asc() if request.sort_order == "asc" else FeeReceipt.due_date.desc()
        stmt = stmt.order_by(order).limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[FeeReceiptResponse.model_validate(r) for r in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    async def _get_student_summary(self, student_id: Any, actor: Actor) -> StudentPaymentSummary:
        if actor.role != Role.STUDENT and not actor.is_manager:
            raise AuthorizationError(f"Role '{actor.role.value}' cannot view fee summaries")
        self._require_self_or_staff(actor, student_id, "view fee summaries")

        result = await self.db.execute(select(FeeReceipt).where(FeeReceipt.student_id == str(student_id)))
        return summarize_student(student_id, list(result.scalars().all()), self.clock.today())

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_receipt(self, receipt_id: Any) -> FeeReceipt:
        result = await self.db.execute(select(FeeReceipt).where(FeeReceipt.id == str(receipt_id)))
        receipt = result.scalar_one_or_none()
        if not receipt:
            raise NotFoundError("Fee receipt", receipt_id)
        return receipt

    async def _get_enrollment(self, enrollment_id: Any) -> BranchStudent:
        result = await self.db.execute(select(BranchStudent).where(BranchStudent.id == str(enrollment_id)))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    async def _next_receipt_number(self, issued_on: Any) -> str:
        prefix = receipt_number_prefix(issued_on)
        result = await self.db.execute(
            select(FeeReceipt.receipt_number)
            .where(FeeReceipt.receipt_number.like(f"{prefix}%"))
            .order_by(FeeReceipt.receipt_number.desc())
            .limit(1)
        )
        return format_receipt_number(issued_on, next_sequence(result.scalar_one_or_none()))

    async def _sync_enrollment_fees(self, enrollment: BranchStudent) -> None:
        """Recompute the enrollment's fee summary from its open receipts."""
        result = await self.db.execute(
            select(FeeReceipt).where(
                FeeReceipt.enrollment_id == str(enrollment.id),
                FeeReceipt.receipt_status.not_in(_CLOSED_STATUSES),
            )
        )
        receipts = list(result.scalars().all())
        summary = summarize_student(enrollment.student_id, receipts, self.clock.today())

        enrollment.total_fees_due = summary.total_amount_due
        enrollment.total_fees_paid = summary.total_amount_paid
        enrollment.payment_status = enrollment_payment_status(summary).value
        enrollment.next_payment_due = summary.next_due_date
        payment_dates = [r.payment_date for r in receipts if r.payment_date is not None]
        enrollment.last_payment_date = max(payment_dates) if payment_dates else enrollment.last_payment_date

    @staticmethod
    def _move_to(receipt: FeeReceipt, status: ReceiptStatus) -> None:
        current = ReceiptStatus(receipt.receipt_status)
        if current != status:
            RECEIPT_LIFECYCLE.require(current, status)
            receipt.receipt_status = status.value

    @staticmethod
    def _check_merged_fields(receipt: FeeReceipt, changes: dict[str, Any]) -> None:
        def merged(name: str) -> Any:
            return changes[name] if name in changes else getattr(receipt, name)

        errors = []
        if money(merged("discount_amount")) > money(merged("base_fee_amount")):
            errors.append(FieldError(field="discount_amount", message="Discount amount cannot exceed base fee amount"))
        start, end = merged("fee_period_start"), merged("fee_period_end")
        if start is not None and end is not None and start > end:
            errors.append(FieldError(field="fee_period_end", message="Fee period start must be before or equal to end"))
        if merged("due_date") < receipt.receipt_date:
            errors.append(FieldError(field="due_date", message="Due date must be on or after receipt date"))
        if (merged("fee_month") is None) != (merged("fee_year") is None):
            errors.append(FieldError(field="fee_year", message="Both fee_month and fee_year must be provided together"))
        if errors:
            raise ValidationFailedError(errors)
