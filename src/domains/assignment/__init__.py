# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment domain package.

This package provides assignment management functionality including:
- Assignment lifecycle (draft, published, closed)
- Student submissions, drafts and lateness
- Grading with late penalties and regrade requests
"""

from src.domains.assignment.lifecycle import (
    ASSIGNMENT_LIFECYCLE,
    GRADING_LIFECYCLE,
    SUBMISSION_LIFECYCLE,
    LatePenalty,
    apply_late_penalty,
    calculate_late_minutes,
    check_can_submit,
    determine_student_status,
)
from src.domains.assignment.service import AssignmentService
from src.domains.assignment.store import AssignmentStore

__all__ = [
    "ASSIGNMENT_LIFECYCLE",
    "GRADING_LIFECYCLE",
    "SUBMISSION_LIFECYCLE",
    "LatePenalty",
    "apply_late_penalty",
    "calculate_late_minutes",
    "check_can_submit",
    "determine_student_status",
    "AssignmentService",
    "AssignmentStore",
]
