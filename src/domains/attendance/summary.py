# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance totals and the derived attendance percentage.

PRESENT and LATE count as attended. Every record, holidays included,
counts towards the total, so a student with no records has 0%.
"""

from __future__ import annotations

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from src.models.attendance import PRESENT_STATUSES, AttendanceStatus, AttendanceSummary

_TWO_PLACES = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def attendance_percentage(records: Sequence[Any]) -> Decimal:
    """Share of records marked PRESENT or LATE, 0-100 to two places."""
    if not records:
        return Decimal("0.00")
    attended = sum(1 for r in records if AttendanceStatus(r.attendance_status) in PRESENT_STATUSES)
    return _round(Decimal(attended) * 100 / len(records))


def summarize(student_id: Any, records: Sequence[Any], class_id: Optional[Any] = None) -> AttendanceSummary:
    counts = Counter(AttendanceStatus(r.attendance_status) for r in records)
    late = [r.late_by_minutes or 0 for r in records if AttendanceStatus(r.attendance_status) == AttendanceStatus.LATE]
    average_late = _round(Decimal(sum(late)) / len(late)) if late else Decimal("0.00")

    return AttendanceSummary(
        student_id=student_id,
        class_id=class_id,
        total_days=len(records),
        present_days=counts[AttendanceStatus.PRESENT],
        absent_days=counts[AttendanceStatus.ABSENT],
        late_days=counts[AttendanceStatus.LATE],
        excused_days=counts[AttendanceStatus.EXCUSED],
        holiday_days=counts[AttendanceStatus.HOLIDAY],
        attendance_percentage=attendance_percentage(records),
        average_late_minutes=average_late,
    )
