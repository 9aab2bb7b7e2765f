# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for class seats and branch memberships.

This module provides the EnrollmentService class for:
- Enrolling students in classes and branches
- Role-scoped partial updates with status transition checks
- Enrollment lookups and filtered lists

Every public method returns an OperationResult.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.common import (
    MANAGER_ROLES,
    Actor,
    AuthorizationError,
    BaseService,
    BusinessRuleError,
    NotFoundError,
    OperationResult,
    Role,
    ValidationFailedError,
    column_values,
)
from src.domains.enrollment.lifecycle import (
    ENROLLMENT_FIELD_PERMISSIONS,
    ENROLLMENT_LIFECYCLE,
    EnrollmentScope,
    fields_outside_scope,
    requested_transition,
)
from src.infrastructure.database.models.base import new_id
from src.infrastructure.database.models.enrollment import BranchStudent, ClassEnrollment
from src.models.common import FieldError, Page
from src.models.enrollment import (
    BranchStudentResponse,
    ClassEnrollmentResponse,
    CreateBranchStudentRequest,
    CreateClassEnrollmentRequest,
    EnrollmentFilters,
    EnrollmentStatus,
    PaymentStatus,
    UpdateEnrollmentRequest,
)
from src.utils.datetime import Clock

logger = logging.getLogger(__name__)

EnrollmentRow = Union[ClassEnrollment, BranchStudent]
EnrollmentResponse = Union[ClassEnrollmentResponse, BranchStudentResponse]

# Request field names that map to a differently named column.
_COLUMN_NAMES = {"metadata": "extra_data"}

_MODELS = {
    EnrollmentScope.CLASS: ClassEnrollment,
    EnrollmentScope.BRANCH: BranchStudent,
}
_RESPONSES = {
    EnrollmentScope.CLASS: ClassEnrollmentResponse,
    EnrollmentScope.BRANCH: BranchStudentResponse,
}


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {_COLUMN_NAMES.get(k, k): v for k, v in column_values(data).items()}


class EnrollmentService(BaseService):
    """Service for class and branch enrollments.

    Attributes:
        db: Async database session.
        clock: Time source for default enrollment dates.
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

    async def enroll_in_class(self, payload: Any, actor: Actor) -> OperationResult[ClassEnrollmentResponse]:
        """Seat a student in a class."""
        return await self._run_write("enroll_in_class", lambda: self._enroll_in_class(payload, actor))

    async def enroll_in_branch(self, payload: Any, actor: Actor) -> OperationResult[BranchStudentResponse]:
        """Register a student with a branch."""
        return await self._run_write("enroll_in_branch", lambda: self._enroll_in_branch(payload, actor))

    async def update_enrollment(
        self,
        enrollment_id: Any,
        payload: Any,
        actor: Actor,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
    ) -> OperationResult[EnrollmentResponse]:
        """Apply a partial update limited to the fields the actor's role may write.

        A changed enrollment_status must be a legal transition; repeating
        the current status is a no-op.
        """
        return await self._run_write(
            "update_enrollment",
            lambda: self._update_enrollment(enrollment_id, payload, actor, EnrollmentScope(scope)),
        )

    async def get(
        self,
        enrollment_id: Any,
        actor: Actor,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
    ) -> OperationResult[EnrollmentResponse]:
        return await self._run_read(
            "get_enrollment",
            lambda: self._get(enrollment_id, actor, EnrollmentScope(scope)),
        )

    async def list(
        self,
        filters: Any,
        actor: Actor,
        scope: EnrollmentScope = EnrollmentScope.CLASS,
    ) -> OperationResult[Page[EnrollmentResponse]]:
        return await self._run_read(
            "list_enrollments",
            lambda: self._list(filters, actor, EnrollmentScope(scope)),
        )

    # =========================================================================
    # Implementation
    # =========================================================================

    async def _enroll_in_class(self, payload: Any, actor: Actor) -> ClassEnrollmentResponse:
        self._require_role(actor, MANAGER_ROLES, "enroll students")
        request = self._validate(CreateClassEnrollmentRequest, payload)

        existing = await self.db.execute(
            select(ClassEnrollment).where(
                ClassEnrollment.student_id == str(request.student_id),
                ClassEnrollment.class_id == str(request.class_id),
            )
        )
        if existing.scalar_one_or_none():
            raise BusinessRuleError("Student is already enrolled in this class")

        enrollment = ClassEnrollment(id=new_id(), **_to_columns(request.model_dump()))
        enrollment.enrollment_date = request.enrollment_date or self.clock.today()
        enrollment.attendance_percentage = 0

        self.db.add(enrollment)
        await self.db.commit()
        await self.db.refresh(enrollment)

        logger.info("Enrolled student %s in class %s", enrollment.student_id, enrollment.class_id)
        return ClassEnrollmentResponse.model_validate(enrollment)

    async def _enroll_in_branch(self, payload: Any, actor: Actor) -> BranchStudentResponse:
        self._require_role(actor, MANAGER_ROLES, "enroll students")
        request = self._validate(CreateBranchStudentRequest, payload)

        existing = await self.db.execute(
            select(BranchStudent).where(
                BranchStudent.student_id == str(request.student_id),
                BranchStudent.branch_id == str(request.branch_id),
            )
        )
        if existing.scalar_one_or_none():
            raise BusinessRuleError("Student is already enrolled in this branch")

        student = BranchStudent(id=new_id(), **_to_columns(request.model_dump()))
        student.enrollment_date = request.enrollment_date or self.clock.today()
        student.enrollment_status = EnrollmentStatus.ENROLLED.value
        student.payment_status = PaymentStatus.PENDING.value
        student.total_fees_paid = 0
        student.attendance_percentage = 0

        self.db.add(student)
        await self.db.commit()
        await self.db.refresh(student)

        logger.info("Enrolled student %s in branch %s", student.student_id, student.branch_id)
        return BranchStudentResponse.model_validate(student)

    async def _update_enrollment(
        self,
        enrollment_id: Any,
        payload: Any,
        actor: Actor,
        scope: EnrollmentScope,
    ) -> EnrollmentResponse:
        request = self._validate(UpdateEnrollmentRequest, payload)
        requested = request.changes()

        outside = fields_outside_scope(scope, requested)
        if outside:
            raise ValidationFailedError(
                [FieldError(field=name, message=f"Field does not apply to {scope.value} enrollments") for name in outside]
            )
        ENROLLMENT_FIELD_PERMISSIONS.require(actor.role, requested)

        enrollment = await self._get_enrollment(enrollment_id, scope)
        self._require_self_or_staff(actor, enrollment.student_id, "update enrollments")

        changes = {
            column: value
            for column, value in _to_columns(requested).items()
            if getattr(enrollment, column) != value
        }

        transition = requested_transition(enrollment.enrollment_status, changes)
        if transition is not None:
            ENROLLMENT_LIFECYCLE.require(*transition)
        else:
            changes.pop("enrollment_status", None)

        self._check_merged_fields(enrollment, changes)

        for column, value in changes.items():
            setattr(enrollment, column, value)

        if changes:
            await self.db.commit()
            await self.db.refresh(enrollment)
            logger.info("Updated %s enrollment %s: %s", scope.value, enrollment.id, sorted(changes))

        return _RESPONSES[scope].model_validate(enrollment)

    async def _get(self, enrollment_id: Any, actor: Actor, scope: EnrollmentScope) -> EnrollmentResponse:
        enrollment = await self._get_enrollment(enrollment_id, scope)
        if actor.role == Role.STUDENT and not actor.is_user(enrollment.student_id):
            raise NotFoundError("Enrollment", enrollment_id)
        return _RESPONSES[scope].model_validate(enrollment)

    async def _list(self, filters: Any, actor: Actor, scope: EnrollmentScope) -> Page[EnrollmentResponse]:
        request = self._validate(EnrollmentFilters, filters or {})
        model = _MODELS[scope]

        student_id = request.student_id
        if actor.role == Role.STUDENT:
            if student_id is not None and not actor.is_user(student_id):
                raise AuthorizationError("Students can only view enrollments for themselves")
            student_id = actor.user_id

        stmt = select(model)
        if student_id:
            stmt = stmt.where(model.student_id == str(student_id))
        if request.branch_id:
            stmt = stmt.where(model.branch_id == str(request.branch_id))
        if request.class_id:
            stmt = stmt.where(model.class_id == str(request.class_id))
        if request.enrollment_status:
            stmt = stmt.where(model.enrollment_status.in_([s.value for s in request.enrollment_status]))
        if request.payment_status:
            if scope != EnrollmentScope.BRANCH:
                raise ValidationFailedError(
                    [FieldError(field="payment_status", message="Field does not apply to class enrollments")]
                )
            stmt = stmt.where(BranchStudent.payment_status == request.payment_status.value)

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar() or 0

        stmt = stmt.order_by(model.enrollment_date.desc())
        stmt = stmt.limit(request.limit).offset(self._offset(request.page, request.limit))
        result = await self.db.execute(stmt)

        response = _RESPONSES[scope]
        return Page(
            items=[response.model_validate(e) for e in result.scalars().all()],
            total=total,
            page=request.page,
            limit=request.limit,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_enrollment(self, enrollment_id: Any, scope: EnrollmentScope) -> EnrollmentRow:
        model = _MODELS[scope]
        result = await self.db.execute(select(model).where(model.id == str(enrollment_id)))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    @staticmethod
    def _check_merged_fields(enrollment: EnrollmentRow, changes: dict[str, Any]) -> None:
        """Re-check cross-field rules against stored values the update keeps."""

        def merged(name: str) -> Any:
            return changes[name] if name in changes else getattr(enrollment, name, None)

        errors = []
        if isinstance(enrollment, ClassEnrollment) and merged("class_id") is None:
            errors.append(FieldError(field="class_id", message="Field cannot be null"))
        expected = merged("expected_completion_date")
        actual = merged("actual_completion_date")
        if expected is not None and expected <= enrollment.enrollment_date:
            errors.append(
                FieldError(
                    field="expected_completion_date",
                    message="Expected completion date must be after enrollment date",
                )
            )
        if expected is not None and actual is not None and actual < expected:
            errors.append(
                FieldError(
                    field="actual_completion_date",
                    message="Actual completion date should be on or after expected completion date",
                )
            )
        if merged("enrollment_status") == EnrollmentStatus.COMPLETED.value and actual is None:
            errors.append(
                FieldError(
                    field="actual_completion_date",
                    message="Actual completion date is required when marking enrollment as COMPLETED",
                )
            )
        if isinstance(enrollment, BranchStudent) and merged("total_fees_paid") > merged("total_fees_due"):
            errors.append(
                FieldError(field="total_fees_paid", message="Total fees paid cannot exceed total fees due")
            )
        if errors:
            raise ValidationFailedError(errors)
