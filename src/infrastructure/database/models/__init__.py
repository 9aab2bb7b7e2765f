# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for CoachLMS."""

from src.infrastructure.database.models.assignment import Assignment, AssignmentSubmission
from src.infrastructure.database.models.attendance import StudentAttendance
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.enrollment import BranchStudent, ClassEnrollment
from src.infrastructure.database.models.fee_receipt import FeeReceipt
from src.infrastructure.database.models.quiz import (
    Quiz,
    QuizAttempt,
    QuizAttemptAnswer,
    QuizQuestion,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Assignment",
    "AssignmentSubmission",
    "Quiz",
    "QuizQuestion",
    "QuizAttempt",
    "QuizAttemptAnswer",
    "BranchStudent",
    "ClassEnrollment",
    "FeeReceipt",
    "StudentAttendance",
]
