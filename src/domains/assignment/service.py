# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment service.

This module provides the AssignmentService class for:
- Assignment authoring (create, update, publish, close, delete)
- Student submissions (final and draft)
- Grading, grade updates and regrade requests
- Submission lists and per-assignment statistics

Every public method returns an OperationResult.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.assignment.lifecycle import (
    ASSIGNMENT_LIFECYCLE,
    GRADING_LIFECYCLE,
    SUBMISSION_LIFECYCLE,
    apply_late_penalty,
    calculate_auto_delete_after,
    calculate_late_minutes,
    calculate_statistics,
    check_assignment_edit,
    check_can_delete,
    check_can_submit,
    check_score,
    grading_summary,
    working_copy_state,
)
from src.domains.common import (
    STAFF_ROLES,
    Actor,
    AuthorizationError,
    BaseService,
    BusinessRuleError,
    InvalidTransition,
    NotFoundError,
    OperationResult,
    Role,
    ValidationFailedError,
    column_values,
)
from src.infrastructure.database.models.assignment import Assignment, AssignmentSubmission
from src.infrastructure.database.models.base import new_id
from src.models.assignment import (
    AssignmentResponse,
    AssignmentStatistics,
    AssignmentStatus,
    CloseAssignmentRequest,
    CreateAssignmentRequest,
    GradeSubmissionRequest,
    GradingStatus,
    ListAssignmentsParams,
    PublishAssignmentRequest,
    RegradeRequest,
    SaveDraftRequest,
    StudentSubmissionStatus,
    SubmissionFilters,
    SubmissionResponse,
    SubmitAssignmentRequest,
    UpdateAssignmentRequest,
    UpdateGradeRequest,
    rubric_total,
)
from src.models.common import SCORE_TOLERANCE, FieldError, Page, within_tolerance
from src.utils.datetime import Clock, ensure_utc

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "due_date": Assignment.due_date,
    "created_at": Assignment.created_at,
    "title": Assignment.title,
}


class AssignmentService(BaseService):
    """Service for assignments, submissions and grading.

    Attributes:
        db: Async database session.
        clock: Time source for lateness and eligibility decisions.
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
    # Assignment authoring
    # =========================================================================

    async def create(self, payload: Any, actor: Actor) -> OperationResult[AssignmentResponse]:
        """Create a draft assignment."""
        return await self._run_write("create_assignment", lambda: self._create(payload, actor))

    async def update(self, payload: Any, actor: Actor) -> OperationResult[AssignmentResponse]:
        """Apply a partial update to a draft or published assignment."""
        return await self._run_write("update_assignment", lambda: self._update(payload, actor))

    async def publish(self, payload: Any, actor: Actor) -> OperationResult[AssignmentResponse]:
        """Move a draft assignment to PUBLISHED and make it visible."""
        return await self._run_write("publish_assignment", lambda: self._publish(payload, actor))

    async def close(self, payload: Any, actor: Actor) -> OperationResult[AssignmentResponse]:
        """Close a published assignment to further submissions."""
        return await self._run_write("close_assignment", lambda: self._close(payload, actor))

    async def delete(self, assignment_id: Any, actor: Actor) -> OperationResult[dict[str, str]]:
        """Hard-delete a draft assignment that has no submissions."""
        return await self._run_write("delete_assignment", lambda: self._delete(assignment_id, actor))

    async def get(self, assignment_id: Any, actor: Actor) -> OperationResult[AssignmentResponse]:
        return await self._run_read("get_assignment", lambda: self._get(assignment_id, actor))

    async def list(self, params: Any, actor: Actor) -> OperationResult[Page[AssignmentResponse]]:
        return await self._run_read("list_assignments", lambda: self._list(params, actor))

    async def _create(self, payload: Any, actor: Actor) -> AssignmentResponse:
        self._require_role(actor, STAFF_ROLES, "create assignments")
        request = self._validate(CreateAssignmentRequest, payload)

        assignment = Assignment(id=new_id(), **column_values(request.model_dump()))
        assignment.status = AssignmentStatus.DRAFT.value
        assignment.is_visible = False
        assignment.total_submissions = 0
        assignment.graded_count = 0
        assignment.average_score = None

        self.db.add(assignment)
        await self.db.commit()
        await self.db.refresh(assignment)

        logger.info("Created assignment %s for class %s", assignment.id, assignment.class_id)
        return AssignmentResponse.model_validate(assignment)

    async def _update(self, payload: Any, actor: Actor) -> AssignmentResponse:
        self._require_role(actor, STAFF_ROLES, "edit assignments")
        request = self._validate(UpdateAssignmentRequest, payload)
        assignment = await self._get_assignment(request.id)

        changes = {
            field: value
            for field, value in column_values(request.changes()).items()
            if getattr(assignment, field) != value
        }
        check_assignment_edit(
            AssignmentStatus(assignment.status),
            assignment.total_submissions > 0,
            changes,
        )
        self._check_merged_fields(assignment, request)

        for field, value in changes.items():
            setattr(assignment, field, value)

        await self.db.commit()
        await self.db.refresh(assignment)

        logger.info("Updated assignment %s: %s", assignment.id, sorted(changes))
        return AssignmentResponse.model_validate(assignment)

    async def _publish(self, payload: Any, actor: Actor) -> AssignmentResponse:
        self._require_role(actor, STAFF_ROLES, "publish assignments")
        request = self._validate(PublishAssignmentRequest, payload)
        assignment = await self._get_assignment(request.id)

        current = AssignmentStatus(assignment.status)
        if not ASSIGNMENT_LIFECYCLE.can_transition(current, AssignmentStatus.PUBLISHED):
            raise InvalidTransition(
                "assignment",
                current,
                AssignmentStatus.PUBLISHED,
                "Only draft assignments can be published",
            )
        assignment.status = AssignmentStatus.PUBLISHED.value
        assignment.is_visible = True

        await self.db.commit()
        await self.db.refresh(assignment)

        logger.info("Published assignment %s", assignment.id)
        return AssignmentResponse.model_validate(assignment)

    async def _close(self, payload: Any, actor: Actor) -> AssignmentResponse:
        self._require_role(actor, STAFF_ROLES, "close assignments")
        request = self._validate(CloseAssignmentRequest, payload)
        assignment = await self._get_assignment(request.id)

        current = AssignmentStatus(assignment.status)
        assignment.status = ASSIGNMENT_LIFECYCLE.require(current, AssignmentStatus.CLOSED).value
        # close_date may not precede due_date, even when closing early
        assignment.close_date = max(self.clock.now(), ensure_utc(assignment.due_date))
        assignment.closed_reason = request.reason

        await self.db.commit()
        await self.db.refresh(assignment)

        logger.info("Closed assignment %s", assignment.id)
        return AssignmentResponse.model_validate(assignment)

    async def _delete(self, assignment_id: Any, actor: Actor) -> dict[str, str]:
        self._require_role(actor, STAFF_ROLES, "delete assignments")
        assignment = await self._get_assignment(assignment_id)
        check_can_delete(AssignmentStatus(assignment.status), assignment.total_submissions)

        await self.db.delete(assignment)
        await self.db.commit()

        logger.info("Deleted assignment %s", assignment_id)
        return {"id": str(assignment_id)}

    async def _get(self, assignment_id: Any, actor: Actor) -> AssignmentResponse:
        assignment = await self._get_assignment(assignment_id)
        if actor.role == Role.STUDENT and assignment.status == AssignmentStatus.DRAFT.value:
            raise NotFoundError("Assignment", assignment_id)
        return AssignmentResponse.model_validate(assignment)

    async def _list(self, params: Any, actor: Actor) -> Page[AssignmentResponse]:
        request = self._validate(ListAssignmentsParams, params or {})

        stmt = select(Assignment)
        if request.class_id:
            stmt = stmt.where(Assignment.class_id == str(request.class_id))
        if request.teacher_id:
            stmt = stmt.where(Assignment.teacher_id == str(request.teacher_id))
        if request.branch_id:
            stmt = stmt.where(Assignment.branch_id == str(request.branch_id))
        if request.status:
            stmt = stmt.where(Assignment.status == request.status.value)
        if request.submission_type:
            stmt = stmt.where(Assignment.submission_type == request.submission_type.value)
        if request.due_date_from:
            stmt = stmt.where(Assignment.due_date >= request.due_date_from)
        if request.due_date_to:
            stmt = stmt.where(Assignment.due_date <= request.due_date_to)
        if request.search:
            stmt = stmt.where(Assignment.title.ilike(f"%{request.search}%"))
        if actor.role == Role.STUDENT:
            stmt = stmt.where(Assignment.status != AssignmentStatus.DRAFT.value)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        column = _SORT_COLUMNS[request.sort_by]
        stmt = stmt.order_by(column.asc() if request.sort_order == "asc" else column.desc())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[AssignmentResponse.model_validate(a) for a in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    # =========================================================================
    # Submissions
    # =========================================================================

    async def submit(self, payload: Any, actor: Actor) -> OperationResult[SubmissionResponse]:
        """Hand in work; a final submission promotes an existing draft."""
        return await self._run_write("submit_assignment", lambda: self._submit(payload, actor))

    async def save_draft(self, payload: Any, actor: Actor) -> OperationResult[SubmissionResponse]:
        """Create or overwrite the student's single draft."""
        return await self._run_write("save_draft", lambda: self._save_draft(payload, actor))

    async def get_student_submission(
        self,
        assignment_id: Any,
        student_id: Any,
        actor: Actor,
    ) -> OperationResult[Optional[SubmissionResponse]]:
        """Latest submission of a student, or None if they have not started."""
        return await self._run_read(
            "get_student_submission",
            lambda: self._get_student_submission(assignment_id, student_id, actor),
        )

    async def list_submissions(
        self,
        filters: Any,
        actor: Actor,
    ) -> OperationResult[Page[SubmissionResponse]]:
        return await self._run_read("list_submissions", lambda: self._list_submissions(filters, actor))

    async def _submit(self, payload: Any, actor: Actor) -> SubmissionResponse:
        request = self._validate(SubmitAssignmentRequest, payload)
        self._require_student(actor, request.student_id, "submit assignments")

        if not request.is_final:
            return await self._store_draft(request)

        assignment = await self._get_assignment(request.assignment_id)
        submissions = await self._get_student_submissions(request.assignment_id, request.student_id)
        draft = next((s for s in submissions if not s.is_final), None)
        latest_final = next((s for s in submissions if s.is_final), None)
        latest_attempt = latest_final.attempt_number if latest_final else 0

        now = self.clock.now()
        is_late = check_can_submit(
            assignment, now, is_final=True, latest_final_attempt=latest_attempt
        )
        SUBMISSION_LIFECYCLE.require(
            working_copy_state(draft, latest_final, assignment.max_submissions),
            StudentSubmissionStatus.SUBMITTED,
        )

        if draft is not None:
            submission = draft
        else:
            submission = AssignmentSubmission(
                id=new_id(),
                assignment_id=str(request.assignment_id),
                student_id=str(request.student_id),
                class_id=str(request.class_id),
                attempt_number=latest_attempt + 1,
                grading_status=GradingStatus.NOT_GRADED.value,
                regrade_requested=False,
            )
            self.db.add(submission)

        submission.submission_text = request.submission_text if request.has_text else None
        submission.submission_file_id = _str_or_none(request.submission_file_id)
        submission.is_final = True
        submission.submitted_at = now
        submission.is_late = is_late
        submission.late_minutes = calculate_late_minutes(assignment.due_date, now)
        submission.auto_delete_after = calculate_auto_delete_after(
            assignment.due_date, assignment.clean_submissions_after
        )
        assignment.total_submissions = (assignment.total_submissions or 0) + 1

        await self.db.commit()
        await self.db.refresh(submission)

        logger.info(
            "Student %s submitted assignment %s (attempt %d, late=%s)",
            submission.student_id,
            submission.assignment_id,
            submission.attempt_number,
            is_late,
        )
        return SubmissionResponse.model_validate(submission)

    async def _save_draft(self, payload: Any, actor: Actor) -> SubmissionResponse:
        request = self._validate(SaveDraftRequest, payload)
        self._require_student(actor, request.student_id, "save drafts")
        return await self._store_draft(request)

    async def _store_draft(self, request: SaveDraftRequest | SubmitAssignmentRequest) -> SubmissionResponse:
        assignment = await self._get_assignment(request.assignment_id)
        check_can_submit(assignment, self.clock.now(), is_final=False)

        submissions = await self._get_student_submissions(request.assignment_id, request.student_id)
        draft = next((s for s in submissions if not s.is_final), None)
        latest_final = next((s for s in submissions if s.is_final), None)
        SUBMISSION_LIFECYCLE.require(
            working_copy_state(draft, latest_final, assignment.max_submissions),
            StudentSubmissionStatus.DRAFT_SAVED,
        )

        if draft is None:
            draft = AssignmentSubmission(
                id=new_id(),
                assignment_id=str(request.assignment_id),
                student_id=str(request.student_id),
                class_id=str(request.class_id),
                is_final=False,
                is_late=False,
                late_minutes=0,
                attempt_number=(latest_final.attempt_number + 1) if latest_final else 1,
                grading_status=GradingStatus.NOT_GRADED.value,
                regrade_requested=False,
                auto_delete_after=calculate_auto_delete_after(
                    assignment.due_date, assignment.clean_submissions_after
                ),
            )
            self.db.add(draft)

        draft.submission_text = request.submission_text
        draft.submission_file_id = _str_or_none(request.submission_file_id)

        await self.db.commit()
        await self.db.refresh(draft)

        logger.debug("Saved draft %s for assignment %s", draft.id, draft.assignment_id)
        return SubmissionResponse.model_validate(draft)

    async def _get_student_submission(
        self,
        assignment_id: Any,
        student_id: Any,
        actor: Actor,
    ) -> Optional[SubmissionResponse]:
        self._require_self_or_staff(actor, student_id, "view submissions")
        submissions = await self._get_student_submissions(assignment_id, student_id)
        if not submissions:
            return None
        return SubmissionResponse.model_validate(submissions[0])

    async def _list_submissions(self, filters: Any, actor: Actor) -> Page[SubmissionResponse]:
        request = self._validate(SubmissionFilters, filters or {})
        if actor.role == Role.STUDENT:
            if request.student_id is not None and not actor.is_user(request.student_id):
                raise AuthorizationError("Students can only view submissions for themselves")
            request = request.model_copy(update={"student_id": actor.user_id})

        stmt = select(AssignmentSubmission)
        if request.assignment_id:
            stmt = stmt.where(AssignmentSubmission.assignment_id == str(request.assignment_id))
        if request.student_id:
            stmt = stmt.where(AssignmentSubmission.student_id == str(request.student_id))
        if request.class_id:
            stmt = stmt.where(AssignmentSubmission.class_id == str(request.class_id))
        if request.grading_status:
            stmt = stmt.where(AssignmentSubmission.grading_status == request.grading_status.value)
        if request.is_late is not None:
            stmt = stmt.where(AssignmentSubmission.is_late == request.is_late)
        if request.is_final is not None:
            stmt = stmt.where(AssignmentSubmission.is_final == request.is_final)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        stmt = stmt.order_by(AssignmentSubmission.submitted_at.desc().nulls_last())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        return Page(
            items=[SubmissionResponse.model_validate(s) for s in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    # =========================================================================
    # Grading
    # =========================================================================

    async def grade_submission(self, payload: Any, actor: Actor) -> OperationResult[SubmissionResponse]:
        """Grade a final submission, applying the late penalty."""
        return await self._run_write("grade_submission", lambda: self._grade(payload, actor))

    async def update_grade(self, payload: Any, actor: Actor) -> OperationResult[SubmissionResponse]:
        """Change the score or feedback of an already graded submission."""
        return await self._run_write("update_grade", lambda: self._update_grade(payload, actor))

    async def request_regrade(self, payload: Any, actor: Actor) -> OperationResult[SubmissionResponse]:
        """Student asks for a graded submission to be graded again."""
        return await self._run_write("request_regrade", lambda: self._request_regrade(payload, actor))

    async def get_statistics(self, assignment_id: Any, actor: Actor) -> OperationResult[AssignmentStatistics]:
        return await self._run_read("get_assignment_statistics", lambda: self._statistics(assignment_id, actor))

    async def _grade(self, payload: Any, actor: Actor) -> SubmissionResponse:
        self._require_role(actor, STAFF_ROLES, "grade submissions")
        request = self._validate(GradeSubmissionRequest, payload)
        submission = await self._get_submission(request.submission_id)
        assignment = await self._get_assignment(submission.assignment_id)

        if not submission.is_final:
            raise BusinessRuleError("Only final submissions can be graded")
        check_score(request.score, assignment.max_score)
        GRADING_LIFECYCLE.require(
            GradingStatus(submission.grading_status), GradingStatus.MANUAL_GRADED
        )

        self._apply_score(submission, assignment, request.score)
        submission.grading_status = GradingStatus.MANUAL_GRADED.value
        submission.graded_by = str(request.graded_by)
        submission.graded_at = self.clock.now()
        submission.feedback = request.feedback
        submission.private_notes = request.private_notes
        submission.rubric_scores = _dump_list(request.rubric_scores)
        submission.regrade_requested = False

        await self._refresh_grading_summary(assignment)
        await self.db.commit()
        await self.db.refresh(submission)

        logger.info("Graded submission %s: %s/%s", submission.id, submission.adjusted_score, assignment.max_score)
        return SubmissionResponse.model_validate(submission)

    async def _update_grade(self, payload: Any, actor: Actor) -> SubmissionResponse:
        self._require_role(actor, STAFF_ROLES, "update grades")
        request = self._validate(UpdateGradeRequest, payload)
        submission = await self._get_submission(request.submission_id)
        assignment = await self._get_assignment(submission.assignment_id)

        current = GradingStatus(submission.grading_status)
        if current == GradingStatus.NOT_GRADED and request.score is None:
            raise BusinessRuleError("Submission has not been graded yet")
        GRADING_LIFECYCLE.require(current, GradingStatus.MANUAL_GRADED)

        changes = request.model_dump(exclude_unset=True, exclude={"submission_id", "graded_by"})
        if "score" in changes and request.score is not None:
            check_score(request.score, assignment.max_score)
            self._apply_score(submission, assignment, request.score)
        if "feedback" in changes:
            submission.feedback = request.feedback
        if "private_notes" in changes:
            submission.private_notes = request.private_notes
        submission.grading_status = GradingStatus.MANUAL_GRADED.value
        submission.graded_by = str(request.graded_by)
        submission.graded_at = self.clock.now()

        await self._refresh_grading_summary(assignment)
        await self.db.commit()
        await self.db.refresh(submission)

        logger.info("Updated grade of submission %s", submission.id)
        return SubmissionResponse.model_validate(submission)

    async def _request_regrade(self, payload: Any, actor: Actor) -> SubmissionResponse:
        request = self._validate(RegradeRequest, payload)
        self._require_student(actor, request.student_id, "request regrades")
        submission = await self._get_submission(request.submission_id)
        if str(submission.student_id) != str(request.student_id):
            raise NotFoundError("Submission", request.submission_id)

        current = GradingStatus(submission.grading_status)
        if current != GradingStatus.MANUAL_GRADED:
            raise BusinessRuleError("Only graded submissions can request regrade")
        submission.grading_status = GRADING_LIFECYCLE.require(current, GradingStatus.NOT_GRADED).value
        submission.regrade_requested = True
        submission.regrade_reason = request.reason

        assignment = await self._get_assignment(submission.assignment_id)
        await self._refresh_grading_summary(assignment)
        await self.db.commit()
        await self.db.refresh(submission)

        logger.info("Regrade requested for submission %s", submission.id)
        return SubmissionResponse.model_validate(submission)

    async def _statistics(self, assignment_id: Any, actor: Actor) -> AssignmentStatistics:
        self._require_role(actor, STAFF_ROLES, "view assignment statistics")
        assignment = await self._get_assignment(assignment_id)
        result = await self.db.execute(
            select(AssignmentSubmission).where(AssignmentSubmission.assignment_id == str(assignment.id))
        )
        return calculate_statistics(assignment.id, list(result.scalars().all()))

    def _apply_score(self, submission: AssignmentSubmission, assignment: Assignment, score: float) -> None:
        penalty = apply_late_penalty(
            score,
            assignment.late_penalty_percentage if submission.is_late else 0,
            submission.late_minutes,
        )
        submission.score = penalty.raw_score
        submission.late_penalty_applied = penalty.penalty
        submission.adjusted_score = penalty.effective_score

    async def _refresh_grading_summary(self, assignment: Assignment) -> None:
        """Recompute graded_count and average_score from stored submissions."""
        result = await self.db.execute(
            select(AssignmentSubmission).where(
                AssignmentSubmission.assignment_id == str(assignment.id),
                AssignmentSubmission.is_final.is_(True),
            )
        )
        assignment.graded_count, assignment.average_score = grading_summary(result.scalars().all())

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _check_merged_fields(assignment: Assignment, request: UpdateAssignmentRequest) -> None:
        """Re-check cross-field rules against the stored values a partial update keeps."""
        changes = request.model_fields_set
        publish_at = request.publish_at if "publish_at" in changes else assignment.publish_at
        due_date = request.due_date if "due_date" in changes else assignment.due_date
        close_date = request.close_date if "close_date" in changes else assignment.close_date
        max_score = request.max_score if "max_score" in changes else assignment.max_score

        errors: list[FieldError] = []
        if publish_at and due_date and ensure_utc(publish_at) > ensure_utc(due_date):
            errors.append(FieldError(field="publish_at", message="Publish date must be before or equal to due date"))
        if due_date and close_date and ensure_utc(due_date) > ensure_utc(close_date):
            errors.append(FieldError(field="close_date", message="Due date must be before or equal to close date"))
        if "grading_rubric" in changes or "max_score" in changes:
            if "grading_rubric" in changes:
                rubric_points = rubric_total(request.grading_rubric or [])
                has_rubric = bool(request.grading_rubric)
            else:
                rubric_points = sum(item["max_points"] for item in assignment.grading_rubric or [])
                has_rubric = bool(assignment.grading_rubric)
            if has_rubric and max_score and not within_tolerance(rubric_points, max_score, SCORE_TOLERANCE):
                errors.append(FieldError(field="grading_rubric", message="Rubric total points must equal max score"))
        if errors:
            raise ValidationFailedError(errors)

    async def _get_assignment(self, assignment_id: Any) -> Assignment:
        result = await self.db.execute(select(Assignment).where(Assignment.id == str(assignment_id)))
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    async def _get_submission(self, submission_id: Any) -> AssignmentSubmission:
        result = await self.db.execute(
            select(AssignmentSubmission).where(AssignmentSubmission.id == str(submission_id))
        )
        submission = result.scalar_one_or_none()
        if not submission:
            raise NotFoundError("Submission", submission_id)
        return submission

    async def _get_student_submissions(self, assignment_id: Any, student_id: Any) -> list[AssignmentSubmission]:
        """A student's submissions for one assignment, latest attempt first."""
        result = await self.db.execute(
            select(AssignmentSubmission)
            .where(
                AssignmentSubmission.assignment_id == str(assignment_id),
                AssignmentSubmission.student_id == str(student_id),
            )
            .order_by(AssignmentSubmission.attempt_number.desc())
        )
        return list(result.scalars().all())


def _dump_list(items: Optional[list[Any]]) -> Optional[list[dict[str, Any]]]:
    if items is None:
        return None
    return [item.model_dump(mode="json") for item in items]


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
