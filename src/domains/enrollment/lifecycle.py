# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment status transitions and role-scoped field permissions."""

from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from src.domains.common import Capability, FieldPermissions, StateMachine
from src.models.enrollment import EnrollmentStatus

ENROLLMENT_LIFECYCLE: StateMachine[EnrollmentStatus] = StateMachine(
    "enrollment",
    {
        EnrollmentStatus.PENDING: {EnrollmentStatus.ENROLLED},
        EnrollmentStatus.ENROLLED: {
            EnrollmentStatus.PENDING,
            EnrollmentStatus.SUSPENDED,
            EnrollmentStatus.DROPPED,
            EnrollmentStatus.COMPLETED,
        },
        EnrollmentStatus.SUSPENDED: {EnrollmentStatus.ENROLLED},
        EnrollmentStatus.DROPPED: set(),
        EnrollmentStatus.COMPLETED: set(),
    },
)


class EnrollmentScope(str, Enum):
    """Which enrollment variant an operation targets."""

    CLASS = "class"
    BRANCH = "branch"


ENROLLMENT_FIELD_CAPABILITIES: Mapping[str, Capability] = {
    "emergency_contact_name": Capability.CONTACT,
    "emergency_contact_phone": Capability.CONTACT,
    "parent_guardian_name": Capability.CONTACT,
    "parent_guardian_phone": Capability.CONTACT,
    "preferred_batch": Capability.PREFERENCE,
    "special_requirements": Capability.PREFERENCE,
    "student_notes": Capability.PREFERENCE,
    "attendance_percentage": Capability.ACADEMIC,
    "current_grade": Capability.ACADEMIC,
    "performance_notes": Capability.ACADEMIC,
    "enrollment_status": Capability.STATUS,
    "expected_completion_date": Capability.STATUS,
    "actual_completion_date": Capability.STATUS,
    "payment_status": Capability.FINANCIAL,
    "total_fees_due": Capability.FINANCIAL,
    "total_fees_paid": Capability.FINANCIAL,
    "last_payment_date": Capability.FINANCIAL,
    "next_payment_due": Capability.FINANCIAL,
    "class_id": Capability.ADMINISTRATIVE,
    "metadata": Capability.ADMINISTRATIVE,
}

ENROLLMENT_FIELD_PERMISSIONS = FieldPermissions(ENROLLMENT_FIELD_CAPABILITIES)

# Columns only a branch enrollment has.
BRANCH_ONLY_FIELDS = frozenset(
    {
        "emergency_contact_name",
        "emergency_contact_phone",
        "parent_guardian_name",
        "parent_guardian_phone",
        "student_notes",
        "payment_status",
        "total_fees_due",
        "total_fees_paid",
        "last_payment_date",
        "next_payment_due",
    }
)


def fields_outside_scope(scope: EnrollmentScope, fields: Iterable[str]) -> list[str]:
    """Fields a class enrollment does not carry."""
    if scope == EnrollmentScope.BRANCH:
        return []
    return sorted(f for f in fields if f in BRANCH_ONLY_FIELDS)


def requested_transition(current: Any, changes: Mapping[str, Any]) -> Optional[tuple[EnrollmentStatus, EnrollmentStatus]]:
    """The (current, requested) pair when an update changes the status.

    Same-status updates are not transitions and yield None.
    """
    requested = changes.get("enrollment_status")
    if requested is None:
        return None
    current = EnrollmentStatus(current)
    requested = EnrollmentStatus(requested)
    if requested == current:
        return None
    return current, requested
