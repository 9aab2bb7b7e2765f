# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fee receipt domain package.

This package provides fee management functionality including:
- Receipt issue with fee breakdown reconciliation
- Payments, refunds and cancellations
- Overdue sweeps and per-student payment summaries
"""

from src.domains.fee_receipt.calculations import (
    RECEIPT_LIFECYCLE,
    calculate_balance,
    calculate_late_fee,
    format_receipt_number,
    resolve_status,
    summarize_student,
)
from src.domains.fee_receipt.service import FeeReceiptService
from src.domains.fee_receipt.store import FeeReceiptStore

__all__ = [
    "RECEIPT_LIFECYCLE",
    "calculate_balance",
    "calculate_late_fee",
    "format_receipt_number",
    "resolve_status",
    "summarize_student",
    "FeeReceiptService",
    "FeeReceiptStore",
]
