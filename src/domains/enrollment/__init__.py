# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides enrollment management functionality including:
- Class seats and branch memberships
- Status transitions (pending, enrolled, suspended, dropped, completed)
- Capability-based field permissions for updates
"""

from src.domains.enrollment.lifecycle import (
    ENROLLMENT_FIELD_CAPABILITIES,
    ENROLLMENT_FIELD_PERMISSIONS,
    ENROLLMENT_LIFECYCLE,
    EnrollmentScope,
)
from src.domains.enrollment.service import EnrollmentService
from src.domains.enrollment.store import EnrollmentStore

__all__ = [
    "ENROLLMENT_FIELD_CAPABILITIES",
    "ENROLLMENT_FIELD_PERMISSIONS",
    "ENROLLMENT_LIFECYCLE",
    "EnrollmentScope",
    "EnrollmentService",
    "EnrollmentStore",
]
