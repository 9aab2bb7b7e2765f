# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial CoachLMS schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-06-02
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=False)


def _id() -> sa.Column:
    return sa.Column("id", UUID, server_default=sa.text("gen_random_uuid()"), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    """Create CoachLMS tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    op.create_table(
        "assignments",
        _id(),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("teacher_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("instructions", sa.Text, nullable=True),
        sa.Column("submission_type", sa.String(10), nullable=False, server_default="FILE"),
        sa.Column("max_file_size", sa.Integer, nullable=False),
        sa.Column("allowed_extensions", postgresql.ARRAY(sa.String(10)), nullable=True),
        sa.Column("max_submissions", sa.Integer, nullable=False, server_default="1"),
        sa.Column("allow_late_submission", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("late_penalty_percentage", sa.Float, nullable=False, server_default="0"),
        sa.Column("max_score", sa.Float, nullable=False),
        sa.Column("grading_rubric", postgresql.JSONB, nullable=True),
        sa.Column("show_rubric_to_students", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("publish_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("closed_reason", sa.String(500), nullable=True),
        sa.Column("clean_submissions_after", sa.String(20), nullable=False),
        sa.Column("clean_instructions_after", sa.String(20), nullable=False),
        sa.Column("total_submissions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("graded_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_score", sa.Float, nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(publish_at IS NULL OR publish_at <= due_date) "
            "AND (close_date IS NULL OR due_date <= close_date)",
            name="valid_dates",
        ),
        sa.CheckConstraint("max_score > 0", name="valid_max_score"),
        sa.CheckConstraint(
            "late_penalty_percentage >= 0 AND late_penalty_percentage <= 100",
            name="valid_late_penalty",
        ),
        sa.CheckConstraint("max_file_size > 0", name="valid_file_size"),
    )
    op.create_index("ix_assignments_class_status", "assignments", ["class_id", "status"])

    op.create_table(
        "assignment_submissions",
        _id(),
        sa.Column(
            "assignment_id",
            UUID,
            sa.ForeignKey("assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("submission_text", sa.Text, nullable=True),
        sa.Column("submission_file_id", UUID, nullable=True),
        sa.Column("is_final", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("attempt_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_late", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("late_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("grading_status", sa.String(20), nullable=False, server_default="NOT_GRADED"),
        sa.Column("score", sa.Float, nullable=True),
        sa.Column("adjusted_score", sa.Float, nullable=True),
        sa.Column("late_penalty_applied", sa.Float, nullable=True),
        sa.Column("feedback", sa.Text, nullable=True),
        sa.Column("private_notes", sa.Text, nullable=True),
        sa.Column("graded_by", UUID, nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rubric_scores", postgresql.JSONB, nullable=True),
        sa.Column("regrade_requested", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("regrade_reason", sa.Text, nullable=True),
        sa.Column("auto_delete_after", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "NOT (submission_text IS NOT NULL AND submission_file_id IS NOT NULL)",
            name="text_or_file",
        ),
        sa.CheckConstraint("attempt_number >= 1", name="valid_attempt_number"),
    )
    op.create_index(
        "ix_submissions_assignment_student",
        "assignment_submissions",
        ["assignment_id", "student_id"],
    )

    # =========================================================================
    # QUIZZES
    # =========================================================================

    op.create_table(
        "quizzes",
        _id(),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("teacher_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("instructions", sa.Text, nullable=True),
        sa.Column("available_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("available_to", sa.DateTime(timezone=True), nullable=False),
        sa.Column("time_limit_minutes", sa.Integer, nullable=True),
        sa.Column("submission_window_minutes", sa.Integer, nullable=False, server_default="5"),
        sa.Column("shuffle_questions", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("shuffle_options", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("show_correct_answers", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("show_score_immediately", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("allow_multiple_attempts", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("max_attempts", sa.Integer, nullable=False, server_default="1"),
        sa.Column("require_webcam", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("max_score", sa.Float, nullable=False),
        sa.Column("passing_score", sa.Float, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("total_questions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("clean_attempts_after", sa.String(20), nullable=False),
        sa.Column("clean_questions_after", sa.String(20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("available_from < available_to", name="valid_window"),
        sa.CheckConstraint("max_score > 0", name="valid_quiz_max_score"),
        sa.CheckConstraint(
            "passing_score IS NULL OR passing_score <= max_score",
            name="valid_passing_score",
        ),
    )

    op.create_table(
        "quiz_questions",
        _id(),
        sa.Column("quiz_id", UUID, sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_text", sa.Text, nullable=False),
        sa.Column("question_type", sa.String(20), nullable=False),
        sa.Column("options", postgresql.JSONB, nullable=False),
        sa.Column("correct_answers", postgresql.ARRAY(sa.String(5)), nullable=False),
        sa.Column("points", sa.Float, nullable=False, server_default="1"),
        sa.Column("negative_points", sa.Float, nullable=False, server_default="0"),
        sa.Column("explanation", sa.Text, nullable=True),
        sa.Column("question_order", sa.Integer, nullable=False),
        sa.Column("topic", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_quiz_questions_quiz_id", "quiz_questions", ["quiz_id"])

    op.create_table(
        "quiz_attempts",
        _id(),
        sa.Column("quiz_id", UUID, sa.ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("attempt_number", sa.Integer, nullable=False),
        sa.Column("attempt_status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_taken_seconds", sa.Integer, nullable=True),
        sa.Column("score", sa.Float, nullable=True),
        sa.Column("max_score", sa.Float, nullable=False),
        sa.Column("percentage", sa.Float, nullable=True),
        sa.Column("passed", sa.Boolean, nullable=True),
        sa.Column("grading_status", sa.String(20), nullable=False, server_default="NOT_GRADED"),
        sa.Column("auto_delete_after", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("quiz_id", "student_id", "attempt_number", name="uq_quiz_attempt"),
    )

    op.create_table(
        "quiz_responses",
        _id(),
        sa.Column(
            "attempt_id",
            UUID,
            sa.ForeignKey("quiz_attempts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "question_id",
            UUID,
            sa.ForeignKey("quiz_questions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("selected_answers", postgresql.ARRAY(sa.String(5)), nullable=False),
        sa.Column("is_correct", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("points_earned", sa.Float, nullable=False, server_default="0"),
        sa.Column("points_deducted", sa.Float, nullable=False, server_default="0"),
        sa.Column("time_spent_seconds", sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    # =========================================================================
    # ENROLLMENTS
    # =========================================================================

    op.create_table(
        "branch_students",
        _id(),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column("class_id", UUID, nullable=True),
        sa.Column("enrollment_status", sa.String(20), nullable=False, server_default="ENROLLED"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("enrollment_date", sa.Date, nullable=False),
        sa.Column("expected_completion_date", sa.Date, nullable=True),
        sa.Column("actual_completion_date", sa.Date, nullable=True),
        sa.Column("attendance_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("current_grade", sa.String(50), nullable=True),
        sa.Column("performance_notes", sa.Text, nullable=True),
        sa.Column("total_fees_due", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_fees_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("last_payment_date", sa.Date, nullable=True),
        sa.Column("next_payment_due", sa.Date, nullable=True),
        sa.Column("emergency_contact_name", sa.String(200), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(16), nullable=True),
        sa.Column("parent_guardian_name", sa.String(200), nullable=True),
        sa.Column("parent_guardian_phone", sa.String(16), nullable=True),
        sa.Column("preferred_batch", sa.String(100), nullable=True),
        sa.Column("special_requirements", sa.Text, nullable=True),
        sa.Column("student_notes", sa.Text, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "branch_id", name="uq_branch_student"),
        sa.CheckConstraint("total_fees_paid <= total_fees_due", name="valid_fees"),
        sa.CheckConstraint(
            "attendance_percentage >= 0 AND attendance_percentage <= 100",
            name="valid_branch_attendance",
        ),
        sa.CheckConstraint(
            "expected_completion_date IS NULL OR expected_completion_date > enrollment_date",
            name="valid_branch_completion",
        ),
    )

    op.create_table(
        "class_enrollments",
        _id(),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column(
            "branch_student_id",
            UUID,
            sa.ForeignKey("branch_students.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("enrollment_status", sa.String(20), nullable=False, server_default="ENROLLED"),
        sa.Column("enrollment_date", sa.Date, nullable=False),
        sa.Column("expected_completion_date", sa.Date, nullable=True),
        sa.Column("actual_completion_date", sa.Date, nullable=True),
        sa.Column("attendance_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("current_grade", sa.String(50), nullable=True),
        sa.Column("performance_notes", sa.Text, nullable=True),
        sa.Column("preferred_batch", sa.String(100), nullable=True),
        sa.Column("special_requirements", sa.Text, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "class_id", name="uq_class_enrollment"),
        sa.CheckConstraint(
            "attendance_percentage >= 0 AND attendance_percentage <= 100",
            name="valid_class_attendance",
        ),
    )

    # =========================================================================
    # FEES AND ATTENDANCE
    # =========================================================================

    op.create_table(
        "fee_receipts",
        _id(),
        sa.Column("receipt_number", sa.String(30), nullable=False, unique=True),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column(
            "enrollment_id",
            UUID,
            sa.ForeignKey("branch_students.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("class_id", UUID, nullable=True),
        sa.Column("receipt_date", sa.Date, nullable=False),
        sa.Column("due_date", sa.Date, nullable=False),
        sa.Column("fee_month", sa.Integer, nullable=True),
        sa.Column("fee_year", sa.Integer, nullable=True),
        sa.Column("fee_period_start", sa.Date, nullable=True),
        sa.Column("fee_period_end", sa.Date, nullable=True),
        sa.Column("base_fee_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("late_fee_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("balance_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=True),
        sa.Column("payment_reference", sa.String(100), nullable=True),
        sa.Column("payment_date", sa.Date, nullable=True),
        sa.Column("receipt_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("is_auto_generated", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("processed_by", UUID, nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", UUID, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("base_fee_amount > 0", name="valid_base_fee"),
        sa.CheckConstraint("discount_amount <= base_fee_amount", name="valid_discount"),
        sa.CheckConstraint("amount_paid <= total_amount", name="valid_amount_paid"),
        sa.CheckConstraint("due_date >= receipt_date", name="valid_due_date"),
    )
    op.create_index("ix_fee_receipts_student_status", "fee_receipts", ["student_id", "receipt_status"])

    op.create_table(
        "student_attendance",
        _id(),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("teacher_id", UUID, nullable=False),
        sa.Column("branch_id", UUID, nullable=False),
        sa.Column("attendance_date", sa.Date, nullable=False),
        sa.Column("attendance_status", sa.String(10), nullable=False),
        sa.Column("check_in_time", sa.String(5), nullable=True),
        sa.Column("check_out_time", sa.String(5), nullable=True),
        sa.Column("late_by_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("early_leave_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("teacher_remarks", sa.String(500), nullable=True),
        sa.Column("excuse_reason", sa.String(500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", "class_id", "attendance_date", name="uq_daily_attendance"),
        sa.CheckConstraint(
            "check_in_time IS NULL OR check_out_time IS NULL OR check_in_time <= check_out_time",
            name="valid_check_times",
        ),
        sa.CheckConstraint(
            "attendance_status <> 'EXCUSED' OR excuse_reason IS NOT NULL",
            name="excused_has_reason",
        ),
    )


def downgrade() -> None:
    """Drop CoachLMS tables."""
    # Drop in reverse order to handle foreign keys
    op.drop_table("student_attendance")
    op.drop_index("ix_fee_receipts_student_status", table_name="fee_receipts")
    op.drop_table("fee_receipts")
    op.drop_table("class_enrollments")
    op.drop_table("branch_students")
    op.drop_table("quiz_responses")
    op.drop_table("quiz_attempts")
    op.drop_index("ix_quiz_questions_quiz_id", table_name="quiz_questions")
    op.drop_table("quiz_questions")
    op.drop_table("quizzes")
    op.drop_index("ix_submissions_assignment_student", table_name="assignment_submissions")
    op.drop_table("assignment_submissions")
    op.drop_index("ix_assignments_class_status", table_name="assignments")
    op.drop_table("assignments")
