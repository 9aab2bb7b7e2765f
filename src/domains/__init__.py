# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for CoachLMS.

Each domain pairs a service, which validates input, applies lifecycle
rules and returns an OperationResult, with a store that serves the
service's reads from the session cache.

Domains:
    common: Errors, result envelope, state machines, permissions, base classes.
    assignment: Assignment authoring, submissions and grading.
    quiz: Quiz authoring, attempts and scoring.
    enrollment: Class and branch enrollments.
    fee_receipt: Fee receipts, payments and overdue sweeps.
    attendance: Daily attendance and attendance summaries.
"""
