# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests table definitions and the constraints that back domain invariants.
"""

from sqlalchemy import CheckConstraint, UniqueConstraint

from src.infrastructure.database.models import (
    Assignment,
    AssignmentSubmission,
    Base,
    BranchStudent,
    ClassEnrollment,
    FeeReceipt,
    Quiz,
    QuizAttempt,
    QuizAttemptAnswer,
    QuizQuestion,
    StudentAttendance,
    TimestampMixin,
)


def constraint_names(model, kind) -> set[str]:
    return {c.name for c in model.__table__.constraints if isinstance(c, kind)}


def unique_columns(model) -> list[set[str]]:
    return [
        {col.name for col in c.columns}
        for c in model.__table__.constraints
        if isinstance(c, UniqueConstraint)
    ]


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_timestamps(self):
        """Verify TimestampMixin has created_at and updated_at fields."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_all_tables_registered(self):
        """Verify every model is part of the shared metadata."""
        assert set(Base.metadata.tables) == {
            "assignments",
            "assignment_submissions",
            "quizzes",
            "quiz_questions",
            "quiz_attempts",
            "quiz_responses",
            "branch_students",
            "class_enrollments",
            "fee_receipts",
            "student_attendance",
        }

    def test_ids_generated_on_insert(self):
        """Verify primary keys default to a generated UUID."""
        column = FeeReceipt.__table__.c.id

        assert column.primary_key
        assert column.default is not None


class TestAssignmentModels:
    """Test assignment and submission tables."""

    def test_assignment_constraints(self):
        assert Assignment.__tablename__ == "assignments"
        assert constraint_names(Assignment, CheckConstraint) >= {
            "valid_dates",
            "valid_max_score",
            "valid_late_penalty",
            "valid_file_size",
        }

    def test_submission_cascades_with_assignment(self):
        fk = next(iter(AssignmentSubmission.__table__.c.assignment_id.foreign_keys))

        assert fk.column.table.name == "assignments"
        assert fk.ondelete == "CASCADE"


class TestQuizModels:
    """Test quiz tables."""

    def test_questions_belong_to_quiz(self):
        fk = next(iter(QuizQuestion.__table__.c.quiz_id.foreign_keys))

        assert Quiz.__tablename__ == "quizzes"
        assert fk.column.table.name == "quizzes"

    def test_attempt_numbers_unique_per_student(self):
        assert {"quiz_id", "student_id", "attempt_number"} in unique_columns(QuizAttempt)

    def test_one_response_per_question(self):
        assert QuizAttemptAnswer.__tablename__ == "quiz_responses"
        assert {"attempt_id", "question_id"} in unique_columns(QuizAttemptAnswer)


class TestEnrollmentModels:
    """Test branch and class enrollment tables."""

    def test_one_branch_enrollment_per_student(self):
        assert {"student_id", "branch_id"} in unique_columns(BranchStudent)
        assert "valid_fees" in constraint_names(BranchStudent, CheckConstraint)

    def test_one_class_enrollment_per_student(self):
        assert {"student_id", "class_id"} in unique_columns(ClassEnrollment)

    def test_phone_columns_fit_e164(self):
        assert BranchStudent.__table__.c.emergency_contact_phone.type.length == 16


class TestFeeReceiptModel:
    """Test the fee receipt table."""

    def test_receipt_number_unique(self):
        assert FeeReceipt.__table__.c.receipt_number.unique

    def test_amount_constraints(self):
        assert constraint_names(FeeReceipt, CheckConstraint) >= {
            "valid_base_fee",
            "valid_discount",
            "valid_amount_paid",
            "valid_due_date",
        }

    def test_enrollment_cannot_be_deleted_under_receipts(self):
        fk = next(iter(FeeReceipt.__table__.c.enrollment_id.foreign_keys))

        assert fk.column.table.name == "branch_students"
        assert fk.ondelete == "RESTRICT"

    def test_money_columns_are_numeric(self):
        column = FeeReceipt.__table__.c.total_amount

        assert column.type.precision == 12
        assert column.type.scale == 2


class TestAttendanceModel:
    """Test the attendance table."""

    def test_one_mark_per_day(self):
        assert {"student_id", "class_id", "attendance_date"} in unique_columns(StudentAttendance)

    def test_excused_requires_reason(self):
        assert constraint_names(StudentAttendance, CheckConstraint) >= {
            "valid_check_times",
            "excused_has_reason",
        }
