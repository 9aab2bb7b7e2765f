# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cached access to fee receipts for one session."""

from typing import Any, Awaitable, TypeVar

from src.domains.common import Actor, BaseStore, OperationResult
from src.domains.enrollment.lifecycle import EnrollmentScope
from src.domains.enrollment.store import BUCKETS as ENROLLMENT_BUCKETS
from src.domains.fee_receipt.service import FeeReceiptService
from src.infrastructure.cache import CacheCategory, EntityCache, cache_key
from src.models.common import Page
from src.models.fee_receipt import FeeReceiptResponse, PaymentRecordingResult, StudentPaymentSummary

RECEIPTS = "fee_receipts"
SUMMARIES = "fee_summaries"
# Receipt writes recompute the enrollment's fee summary.
BRANCH_STUDENTS = ENROLLMENT_BUCKETS[EnrollmentScope.BRANCH]

T = TypeVar("T")


class FeeReceiptStore(BaseStore):
    """Fee receipt reads served from the session cache.

    Every write clears receipts, student summaries and branch enrollments.
    """

    def __init__(self, service: FeeReceiptService, cache: EntityCache, actor: Actor) -> None:
        super().__init__(cache, actor)
        self.service = service

    async def get_receipt(self, receipt_id: Any, *, force_refresh: bool = False) -> OperationResult[FeeReceiptResponse]:
        return await self._cached(
            RECEIPTS,
            f"id:{receipt_id}",
            CacheCategory.SINGLE,
            lambda: self.service.get_receipt(receipt_id, self.actor),
            force_refresh,
        )

    async def list_receipts(self, filters: Any = None, *, force_refresh: bool = False) -> OperationResult[Page[FeeReceiptResponse]]:
        return await self._cached(
            RECEIPTS,
            f"list:{cache_key(filters)}",
            CacheCategory.LIST,
            lambda: self.service.list_receipts(filters, self.actor),
            force_refresh,
        )

    async def get_student_summary(self, student_id: Any, *, force_refresh: bool = False) -> OperationResult[StudentPaymentSummary]:
        return await self._cached(
            SUMMARIES,
            f"student:{student_id}",
            CacheCategory.STATISTICS,
            lambda: self.service.get_student_summary(student_id, self.actor),
            force_refresh,
        )

    async def create_receipt(self, payload: Any) -> OperationResult[FeeReceiptResponse]:
        return await self._write(self.service.create_receipt(payload, self.actor))

    async def record_payment(self, payload: Any) -> OperationResult[PaymentRecordingResult]:
        return await self._write(self.service.record_payment(payload, self.actor))

    async def update_receipt(self, payload: Any) -> OperationResult[FeeReceiptResponse]:
        return await self._write(self.service.update_receipt(payload, self.actor))

    async def cancel_receipt(self, payload: Any) -> OperationResult[FeeReceiptResponse]:
        return await self._write(self.service.cancel_receipt(payload, self.actor))

    async def mark_overdue(self, apply_late_fee: bool = False) -> OperationResult[dict[str, int]]:
        return await self._write(self.service.mark_overdue(self.actor, apply_late_fee))

    async def _write(self, write: Awaitable[OperationResult[T]]) -> OperationResult[T]:
        return await self._mutate(write, RECEIPTS, SUMMARIES, BRANCH_STUDENTS)
