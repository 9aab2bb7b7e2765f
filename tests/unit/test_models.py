# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for request schemas and their cross-field rules."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from src.models.assignment import (
    AssignmentResponse,
    CreateAssignmentRequest,
    SaveDraftRequest,
    SubmitAssignmentRequest,
    UpdateAssignmentRequest,
)
from src.models.attendance import BulkMarkAttendanceRequest, MarkAttendanceRequest
from src.models.common import CleanupFrequency, Page, validate_payload
from src.models.enrollment import (
    ClassEnrollmentResponse,
    CreateBranchStudentRequest,
    CreateClassEnrollmentRequest,
    UpdateEnrollmentRequest,
)
from src.models.fee_receipt import CreateFeeReceiptRequest, RecordPaymentRequest, UpdateFeeReceiptRequest, fee_total
from src.models.quiz import CreateQuestionRequest, CreateQuizRequest
from src.utils.datetime import FixedClock
from tests.conftest import NOW


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


def rubric(*points: float) -> list[dict]:
    return [
        {"id": str(uuid4()), "criteria": f"Criterion {i}", "max_points": p}
        for i, p in enumerate(points, start=1)
    ]


def assignment_payload(**overrides) -> dict:
    payload = {
        "class_id": str(uuid4()),
        "teacher_id": str(uuid4()),
        "branch_id": str(uuid4()),
        "title": "Algebra worksheet",
        "max_score": 100,
        "due_date": "2026-03-20T17:00:00Z",
    }
    payload.update(overrides)
    return payload


def errors_for(result) -> dict[str, str]:
    return {error.field: error.message for error in result.errors}


class TestValidatePayload:
    """Tests for the validation entry point."""

    def test_valid_payload_returns_typed_value(self, clock):
        result = validate_payload(CreateAssignmentRequest, assignment_payload(), clock=clock)

        assert result.success
        assert result.value.title == "Algebra worksheet"
        assert result.value.due_date.tzinfo is not None

    def test_unknown_keys_are_ignored(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(legacy_flag=True),
            clock=clock,
        )

        assert result.success
        assert not hasattr(result.value, "legacy_flag")

    def test_shape_errors_use_dotted_paths(self, clock):
        payload = assignment_payload(grading_rubric=[{"id": str(uuid4()), "criteria": "", "max_points": 100}])

        result = validate_payload(CreateAssignmentRequest, payload, clock=clock)

        assert not result.success
        assert "grading_rubric.0.criteria" in errors_for(result)

    def test_missing_required_field_is_reported(self, clock):
        payload = assignment_payload()
        del payload["title"]

        result = validate_payload(CreateAssignmentRequest, payload, clock=clock)

        assert "title" in errors_for(result)

    def test_every_failing_rule_is_collected(self, clock):
        payload = assignment_payload(
            publish_at="2026-03-25T00:00:00Z",
            close_date="2026-03-19T00:00:00Z",
        )

        result = validate_payload(CreateAssignmentRequest, payload, clock=clock)

        assert set(errors_for(result)) == {"publish_at", "close_date"}

    def test_explicit_null_on_required_update_field(self, clock):
        payload = {"id": str(uuid4()), "due_date": None, "description": None}

        result = validate_payload(UpdateFeeReceiptRequest, payload, clock=clock)

        assert errors_for(result) == {"due_date": "Field cannot be null"}

    def test_omitted_required_update_field_is_fine(self, clock):
        result = validate_payload(UpdateFeeReceiptRequest, {"id": str(uuid4()), "description": None}, clock=clock)

        assert result.success
        assert result.value.changes() == {"description": None}


class TestAssignmentRules:
    """Tests for assignment date ordering and rubric totals."""

    def test_publish_after_due_rejected(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(publish_at="2026-03-21T00:00:00Z"),
            clock=clock,
        )

        assert errors_for(result) == {"publish_at": "Publish date must be before or equal to due date"}

    def test_close_before_due_rejected(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(close_date="2026-03-19T00:00:00Z"),
            clock=clock,
        )

        assert errors_for(result) == {"close_date": "Due date must be before or equal to close date"}

    def test_ordered_dates_accepted(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(
                publish_at="2026-03-16T00:00:00Z",
                close_date="2026-03-20T17:00:00Z",
            ),
            clock=clock,
        )

        assert result.success

    def test_rubric_matching_max_score_accepted(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(grading_rubric=rubric(40, 30, 30)),
            clock=clock,
        )

        assert result.success

    def test_rubric_short_of_max_score_rejected(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(grading_rubric=rubric(40, 30, 20)),
            clock=clock,
        )

        assert errors_for(result) == {"grading_rubric": "Rubric total points must equal max score"}

    def test_rubric_within_tolerance_accepted(self, clock):
        result = validate_payload(
            CreateAssignmentRequest,
            assignment_payload(max_score=10, grading_rubric=rubric(3.333, 3.333, 3.333)),
            clock=clock,
        )

        assert result.success

    def test_update_rubric_checked_only_with_max_score(self, clock):
        payload = {"id": str(uuid4()), "grading_rubric": rubric(40, 30, 20)}

        result = validate_payload(UpdateAssignmentRequest, payload, clock=clock)

        assert result.success

    def test_created_assignment_round_trips_through_update(self, clock):
        created = AssignmentResponse(
            id=uuid4(),
            class_id=uuid4(),
            teacher_id=uuid4(),
            branch_id=uuid4(),
            title="Essay",
            submission_type="TEXT",
            max_file_size=10485760,
            max_submissions=2,
            allow_late_submission=True,
            late_penalty_percentage=10,
            max_score=100,
            grading_rubric=rubric(50, 50),
            show_rubric_to_students=False,
            publish_at=NOW,
            due_date=NOW + timedelta(days=5),
            close_date=NOW + timedelta(days=7),
            status="DRAFT",
            is_visible=False,
            clean_submissions_after="90_DAYS",
            clean_instructions_after="30_DAYS",
        )

        result = validate_payload(UpdateAssignmentRequest, created.model_dump(mode="json"), clock=clock)

        assert result.success
        assert result.value.max_score == created.max_score


class TestSubmissionRules:
    """Tests for text-or-file submission content."""

    def base(self, **overrides) -> dict:
        payload = {
            "assignment_id": str(uuid4()),
            "student_id": str(uuid4()),
            "class_id": str(uuid4()),
        }
        payload.update(overrides)
        return payload

    def test_text_and_file_together_rejected(self, clock):
        result = validate_payload(
            SubmitAssignmentRequest,
            self.base(submission_text="My answer", submission_file_id=str(uuid4())),
            clock=clock,
        )

        assert errors_for(result)["submission_text"] == "Cannot submit both text and file - choose one"

    def test_text_and_file_rejected_for_drafts_too(self, clock):
        result = validate_payload(
            SaveDraftRequest,
            self.base(submission_text="Notes", submission_file_id=str(uuid4())),
            clock=clock,
        )

        assert not result.success

    def test_final_submission_needs_content(self, clock):
        result = validate_payload(SubmitAssignmentRequest, self.base(submission_text="   "), clock=clock)

        assert errors_for(result) == {"submission_text": "Final submission must include either text or file"}

    def test_empty_draft_allowed(self, clock):
        result = validate_payload(SubmitAssignmentRequest, self.base(is_final=False), clock=clock)

        assert result.success


class TestFeeReceiptRules:
    """Tests for fee breakdown reconciliation and payment references."""

    def base(self, **overrides) -> dict:
        payload = {
            "student_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "enrollment_id": str(uuid4()),
            "due_date": "2026-03-31",
            "base_fee_amount": "1000",
        }
        payload.update(overrides)
        return payload

    def test_total_matching_breakdown_accepted(self, clock):
        result = validate_payload(
            CreateFeeReceiptRequest,
            self.base(late_fee_amount="50", total_amount="1050"),
            clock=clock,
        )

        assert result.success
        assert result.value.computed_total() == Decimal("1050.00")

    def test_total_not_matching_breakdown_rejected(self, clock):
        result = validate_payload(
            CreateFeeReceiptRequest,
            self.base(late_fee_amount="50", total_amount="1000"),
            clock=clock,
        )

        assert "total_amount" in errors_for(result)

    def test_discount_above_base_rejected(self, clock):
        result = validate_payload(CreateFeeReceiptRequest, self.base(discount_amount="1200"), clock=clock)

        assert errors_for(result)["discount_amount"] == "Discount amount cannot exceed base fee amount"

    def test_due_date_in_past_rejected(self, clock):
        result = validate_payload(CreateFeeReceiptRequest, self.base(due_date="2026-03-14"), clock=clock)

        assert errors_for(result)["due_date"] == "Date cannot be in the past"

    def test_month_without_year_rejected(self, clock):
        result = validate_payload(CreateFeeReceiptRequest, self.base(fee_month=3), clock=clock)

        assert "fee_year" in errors_for(result)

    def test_fee_total_never_negative(self):
        assert fee_total(Decimal("100"), discount=Decimal("150")) == Decimal("0.00")

    @pytest.mark.parametrize("method", ["UPI", "CARD", "BANK_TRANSFER"])
    def test_electronic_payment_requires_reference(self, clock, method):
        payload = {"receipt_id": str(uuid4()), "amount_paid": "500", "payment_method": method}

        result = validate_payload(RecordPaymentRequest, payload, clock=clock)

        assert "payment_reference" in errors_for(result)

    def test_manual_payment_needs_no_reference(self, clock):
        payload = {"receipt_id": str(uuid4()), "amount_paid": "500", "payment_method": "MANUAL"}

        assert validate_payload(RecordPaymentRequest, payload, clock=clock).success

    def test_future_payment_date_rejected(self, clock):
        payload = {
            "receipt_id": str(uuid4()),
            "amount_paid": "500",
            "payment_method": "MANUAL",
            "payment_date": "2026-03-16",
        }

        result = validate_payload(RecordPaymentRequest, payload, clock=clock)

        assert errors_for(result) == {"payment_date": "Date cannot be in the future"}


class TestEnrollmentRules:
    """Tests for enrollment dates, contacts and completion."""

    def test_completed_without_actual_date_rejected(self, clock):
        result = validate_payload(
            UpdateEnrollmentRequest,
            {"enrollment_status": "COMPLETED", "expected_completion_date": "2026-03-01"},
            clock=clock,
        )

        assert errors_for(result) == {
            "actual_completion_date": "Actual completion date is required when marking enrollment as COMPLETED"
        }

    def test_completed_with_actual_date_after_expected_accepted(self, clock):
        result = validate_payload(
            UpdateEnrollmentRequest,
            {
                "enrollment_status": "COMPLETED",
                "expected_completion_date": "2026-03-01",
                "actual_completion_date": "2026-03-10",
            },
            clock=clock,
        )

        assert result.success

    def test_actual_before_expected_rejected(self, clock):
        result = validate_payload(
            UpdateEnrollmentRequest,
            {"expected_completion_date": "2026-03-10", "actual_completion_date": "2026-03-01"},
            clock=clock,
        )

        assert "actual_completion_date" in errors_for(result)

    def test_empty_update_rejected(self, clock):
        result = validate_payload(UpdateEnrollmentRequest, {}, clock=clock)

        assert errors_for(result) == {"": "At least one field must be provided for update"}

    def test_enrollment_date_in_future_uses_injected_clock(self, clock):
        payload = {
            "student_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "class_id": str(uuid4()),
            "enrollment_date": "2026-03-16",
        }

        assert not validate_payload(CreateClassEnrollmentRequest, payload, clock=clock).success

        clock.advance(days=1)
        assert validate_payload(CreateClassEnrollmentRequest, payload, clock=clock).success

    def test_new_class_enrollment_must_start_pending_or_enrolled(self, clock):
        payload = {
            "student_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "class_id": str(uuid4()),
            "enrollment_status": "SUSPENDED",
        }

        result = validate_payload(CreateClassEnrollmentRequest, payload, clock=clock)

        assert "enrollment_status" in errors_for(result)

    def test_date_beyond_horizon_rejected(self, clock):
        result = validate_payload(
            UpdateEnrollmentRequest,
            {"next_payment_due": "2037-01-01"},
            clock=clock,
        )

        assert errors_for(result) == {"next_payment_due": "Date cannot be more than 10 years in the future"}

    def test_contact_name_requires_phone(self, clock):
        payload = {
            "student_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "emergency_contact_name": "Asha Rao",
        }

        result = validate_payload(CreateBranchStudentRequest, payload, clock=clock)

        assert "emergency_contact_phone" in errors_for(result)

    def test_created_enrollment_round_trips_through_update(self, clock):
        created = ClassEnrollmentResponse(
            id=uuid4(),
            student_id=uuid4(),
            branch_id=uuid4(),
            class_id=uuid4(),
            enrollment_status="ENROLLED",
            enrollment_date=date(2026, 1, 10),
            expected_completion_date=date(2026, 6, 30),
            attendance_percentage=Decimal("0"),
            preferred_batch="Morning",
            metadata={"source": "walk-in"},
        )

        result = validate_payload(UpdateEnrollmentRequest, created.model_dump(mode="json"), clock=clock)

        assert result.success


class TestQuizRules:
    """Tests for quiz windows and question answers."""

    def quiz(self, **overrides) -> dict:
        payload = {
            "class_id": str(uuid4()),
            "teacher_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "title": "Weekly quiz",
            "available_from": "2026-03-16T09:00:00Z",
            "available_to": "2026-03-16T10:00:00Z",
            "max_score": 10,
        }
        payload.update(overrides)
        return payload

    def test_window_must_be_ordered(self, clock):
        result = validate_payload(
            CreateQuizRequest,
            self.quiz(available_to="2026-03-16T09:00:00Z"),
            clock=clock,
        )

        assert "available_from" in errors_for(result)

    def test_passing_score_within_max(self, clock):
        result = validate_payload(CreateQuizRequest, self.quiz(passing_score=11), clock=clock)

        assert "passing_score" in errors_for(result)

    def test_multiple_attempts_need_flag(self, clock):
        result = validate_payload(CreateQuizRequest, self.quiz(max_attempts=3), clock=clock)

        assert "max_attempts" in errors_for(result)

    def test_single_choice_needs_exactly_one_answer(self, clock):
        payload = {
            "quiz_id": str(uuid4()),
            "question_text": "2 + 2?",
            "options": {"a": "3", "b": "4"},
            "correct_answers": ["a", "b"],
            "question_order": 1,
        }

        result = validate_payload(CreateQuestionRequest, payload, clock=clock)

        assert errors_for(result)["correct_answers"] == "Single choice question must have exactly one correct answer"

    def test_answers_must_be_option_keys(self, clock):
        payload = {
            "quiz_id": str(uuid4()),
            "question_text": "Pick primes",
            "question_type": "MCQ_MULTI",
            "options": {"a": "2", "b": "4"},
            "correct_answers": ["a", "z"],
            "question_order": 1,
        }

        result = validate_payload(CreateQuestionRequest, payload, clock=clock)

        assert errors_for(result) == {"correct_answers": "All correct answers must be valid option keys"}


class TestAttendanceRules:
    """Tests for attendance times and excuses."""

    def base(self, **overrides) -> dict:
        payload = {
            "student_id": str(uuid4()),
            "class_id": str(uuid4()),
            "teacher_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "attendance_date": "2026-03-15",
            "attendance_status": "PRESENT",
        }
        payload.update(overrides)
        return payload

    def test_check_in_after_check_out_rejected(self, clock):
        result = validate_payload(
            MarkAttendanceRequest,
            self.base(check_in_time="10:30", check_out_time="09:00"),
            clock=clock,
        )

        assert "check_out_time" in errors_for(result)

    def test_malformed_time_rejected(self, clock):
        result = validate_payload(MarkAttendanceRequest, self.base(check_in_time="25:00"), clock=clock)

        assert "check_in_time" in errors_for(result)

    def test_excused_needs_reason(self, clock):
        result = validate_payload(MarkAttendanceRequest, self.base(attendance_status="EXCUSED"), clock=clock)

        assert errors_for(result) == {"excuse_reason": "Excuse reason is required for excused absences"}

    def test_bulk_record_errors_are_prefixed(self, clock):
        payload = {
            "class_id": str(uuid4()),
            "teacher_id": str(uuid4()),
            "branch_id": str(uuid4()),
            "attendance_date": "2026-03-15",
            "attendance_records": [
                {"student_id": str(uuid4()), "attendance_status": "PRESENT"},
                {"student_id": str(uuid4()), "attendance_status": "EXCUSED"},
            ],
        }

        result = validate_payload(BulkMarkAttendanceRequest, payload, clock=clock)

        assert "attendance_records.1.excuse_reason" in errors_for(result)


class TestSharedTypes:
    """Tests for shared enums and paging."""

    def test_cleanup_frequency_days(self):
        assert CleanupFrequency.DAYS_30.days == 30
        assert CleanupFrequency.DAYS_90.days == 90
        assert CleanupFrequency.SEMESTER_END.days is None
        assert CleanupFrequency.NEVER.days is None

    def test_page_has_more(self):
        assert Page[int](items=[1, 2], total=5, page=1, limit=2).has_more
        assert not Page[int](items=[5], total=5, page=3, limit=2).has_more
