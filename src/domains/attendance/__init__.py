# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance domain package.

This package provides attendance functionality including:
- Single and bulk marking with per-day upserts
- Attendance summaries and the enrollment attendance percentage
"""

from src.domains.attendance.service import AttendanceService
from src.domains.attendance.store import AttendanceStore
from src.domains.attendance.summary import attendance_percentage, summarize

__all__ = [
    "AttendanceService",
    "AttendanceStore",
    "attendance_percentage",
    "summarize",
]
