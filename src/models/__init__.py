# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for CoachLMS.

Each module holds the wire contract of one entity:
- assignment: assignments, submissions, grading
- quiz: quizzes, questions, attempts
- enrollment: class and branch enrollments
- fee_receipt: receipts and payments
- attendance: attendance records and summaries

validate_payload() is the single entry point that turns untyped input into
a typed model or a list of field errors.
"""

from src.models.common import (
    CleanupFrequency,
    FieldError,
    Page,
    RequestModel,
    ValidationContext,
    ValidationResult,
    rule,
    validate_payload,
)

__all__ = [
    "CleanupFrequency",
    "FieldError",
    "Page",
    "RequestModel",
    "ValidationContext",
    "ValidationResult",
    "rule",
    "validate_payload",
]
