# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for capability-tagged field permissions."""

import pytest

from src.domains.common import AuthorizationError, Capability, ErrorCode, FieldPermissions, Role
from src.domains.enrollment.lifecycle import (
    ENROLLMENT_FIELD_PERMISSIONS,
    EnrollmentScope,
    fields_outside_scope,
    requested_transition,
)
from src.models.enrollment import EnrollmentStatus


class TestFieldPermissions:
    """Tests for the generic permission check."""

    def test_untagged_fields_are_never_writable(self):
        permissions = FieldPermissions({"notes": Capability.PREFERENCE})

        assert permissions.denied_fields(Role.ADMIN, ["notes", "secret"]) == ["secret"]

    def test_require_lists_every_denied_field(self):
        with pytest.raises(AuthorizationError) as exc_info:
            ENROLLMENT_FIELD_PERMISSIONS.require(
                Role.STUDENT,
                ["preferred_batch", "total_fees_paid", "enrollment_status"],
            )

        error = exc_info.value
        assert error.code == ErrorCode.AUTHORIZATION_ERROR
        assert error.denied_fields == ["enrollment_status", "total_fees_paid"]
        assert error.details == {"denied_fields": ["enrollment_status", "total_fees_paid"]}


class TestEnrollmentFieldPermissions:
    """Tests for the role to field mapping of enrollments."""

    def test_student_may_edit_contacts_and_preferences(self):
        allowed = ENROLLMENT_FIELD_PERMISSIONS.allowed_fields(Role.STUDENT)

        assert {"emergency_contact_phone", "preferred_batch", "student_notes"} <= allowed
        assert "current_grade" not in allowed
        assert "payment_status" not in allowed

    def test_teacher_may_edit_academic_fields_only(self):
        assert ENROLLMENT_FIELD_PERMISSIONS.allowed_fields(Role.TEACHER) == frozenset(
            {"attendance_percentage", "current_grade", "performance_notes"}
        )

    @pytest.mark.parametrize("role", [Role.BRANCH_MANAGER, Role.COACH, Role.ADMIN])
    def test_managers_may_edit_everything(self, role):
        everything = set(ENROLLMENT_FIELD_PERMISSIONS.field_capabilities)

        assert ENROLLMENT_FIELD_PERMISSIONS.allowed_fields(role) == everything

    def test_branch_only_fields_outside_class_scope(self):
        fields = ["payment_status", "current_grade", "emergency_contact_name"]

        assert fields_outside_scope(EnrollmentScope.CLASS, fields) == ["emergency_contact_name", "payment_status"]
        assert fields_outside_scope(EnrollmentScope.BRANCH, fields) == []


class TestRequestedTransition:
    """Tests for detecting status changes in an update."""

    def test_no_status_in_changes(self):
        assert requested_transition("ENROLLED", {"current_grade": "A"}) is None

    def test_same_status_is_not_a_transition(self):
        assert requested_transition("ENROLLED", {"enrollment_status": "ENROLLED"}) is None

    def test_changed_status(self):
        assert requested_transition("ENROLLED", {"enrollment_status": "DROPPED"}) == (
            EnrollmentStatus.ENROLLED,
            EnrollmentStatus.DROPPED,
        )
