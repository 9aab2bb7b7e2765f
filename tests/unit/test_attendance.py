# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for attendance summaries and AttendanceService."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from src.domains.attendance.service import AttendanceService
from src.domains.attendance.summary import attendance_percentage, summarize
from src.domains.common import ErrorCode
from src.infrastructure.database.models.attendance import StudentAttendance
from src.infrastructure.database.models.enrollment import ClassEnrollment
from src.models.attendance import AttendanceStatus
from tests.conftest import (
    BRANCH_ID,
    CLASS_ID,
    OTHER_STUDENT_ID,
    STUDENT_ID,
    TEACHER_ID,
    count_result,
    rows_result,
    scalar_result,
)


def marks(*statuses: str, late_by: int = 0) -> list[SimpleNamespace]:
    return [SimpleNamespace(attendance_status=s, late_by_minutes=late_by) for s in statuses]


def make_record(**overrides) -> StudentAttendance:
    values = {
        "id": str(uuid4()),
        "student_id": str(STUDENT_ID),
        "class_id": str(CLASS_ID),
        "teacher_id": str(TEACHER_ID),
        "branch_id": str(BRANCH_ID),
        "attendance_date": date(2026, 3, 13),
        "attendance_status": AttendanceStatus.PRESENT.value,
        "late_by_minutes": 0,
        "early_leave_minutes": 0,
    }
    values.update(overrides)
    return StudentAttendance(**values)


def make_enrollment(student_id=STUDENT_ID) -> ClassEnrollment:
    return ClassEnrollment(
        id=str(uuid4()),
        student_id=str(student_id),
        branch_id=str(BRANCH_ID),
        class_id=str(CLASS_ID),
        enrollment_status="ENROLLED",
        enrollment_date=date(2026, 1, 10),
        attendance_percentage=Decimal("0"),
    )


class TestAttendancePercentage:
    """Tests for the derived percentage."""

    def test_no_records_is_zero(self):
        assert attendance_percentage([]) == Decimal("0.00")

    def test_late_counts_as_attended(self):
        assert attendance_percentage(marks("PRESENT", "LATE")) == Decimal("100.00")

    def test_holidays_count_towards_total(self):
        assert attendance_percentage(marks("PRESENT", "HOLIDAY", "ABSENT")) == Decimal("33.33")

    def test_summary_counts(self):
        records = marks("PRESENT", "ABSENT", "EXCUSED") + marks("LATE", "LATE", late_by=15)

        summary = summarize(STUDENT_ID, records, CLASS_ID)

        assert summary.total_days == 5
        assert summary.present_days == 1
        assert summary.late_days == 2
        assert summary.excused_days == 1
        assert summary.attendance_percentage == Decimal("60.00")
        assert summary.average_late_minutes == Decimal("15.00")


@pytest.fixture
def service(mock_db, fixed_clock):
    """Create attendance service with mock database."""
    return AttendanceService(db=mock_db, clock=fixed_clock)


def mark_payload(**overrides) -> dict:
    data = {
        "student_id": str(STUDENT_ID),
        "class_id": str(CLASS_ID),
        "teacher_id": str(TEACHER_ID),
        "branch_id": str(BRANCH_ID),
        "attendance_date": "2026-03-13",
        "attendance_status": "PRESENT",
        "check_in_time": "09:05",
    }
    data.update(overrides)
    return data


class TestMarkAttendance:
    """Tests for marking attendance."""

    @pytest.mark.asyncio
    async def test_mark_updates_enrollment_percentage(self, service, mock_db, teacher):
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [
            scalar_result(None),
            rows_result(marks("PRESENT", "HOLIDAY", "ABSENT", "LATE")),
            scalar_result(enrollment),
        ]

        result = await service.mark_attendance(mark_payload(), teacher)

        assert result.data.attendance_status == AttendanceStatus.PRESENT
        assert result.data.check_in_time == "09:05"
        assert enrollment.attendance_percentage == Decimal("50.00")
        mock_db.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_mark_replaces_existing_record(self, service, mock_db, teacher):
        existing = make_record(attendance_status="ABSENT")
        mock_db.execute.side_effect = [
            scalar_result(existing),
            rows_result([existing]),
            scalar_result(make_enrollment()),
        ]

        result = await service.mark_attendance(mark_payload(attendance_status="LATE", late_by_minutes=10), teacher)

        assert str(result.data.id) == existing.id
        assert existing.attendance_status == "LATE"
        assert existing.late_by_minutes == 10
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_future_date_refused(self, service, mock_db, teacher):
        result = await service.mark_attendance(mark_payload(attendance_date="2026-03-16"), teacher)

        assert result.error == "Cannot mark attendance for a future date"
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_excused_needs_reason(self, service, teacher):
        result = await service.mark_attendance(mark_payload(attendance_status="EXCUSED"), teacher)

        assert [e.field for e in result.validation_errors] == ["excuse_reason"]

    @pytest.mark.asyncio
    async def test_missing_enrollment_does_not_fail(self, service, mock_db, teacher):
        mock_db.execute.side_effect = [scalar_result(None), rows_result([]), scalar_result(None)]

        result = await service.mark_attendance(mark_payload(), teacher)

        assert result.success

    @pytest.mark.asyncio
    async def test_students_cannot_mark(self, service, student):
        result = await service.mark_attendance(mark_payload(), student)

        assert result.error_code == ErrorCode.AUTHORIZATION_ERROR

    @pytest.mark.asyncio
    async def test_bulk_mark(self, service, mock_db, teacher):
        first, second = make_enrollment(), make_enrollment(OTHER_STUDENT_ID)
        mock_db.execute.side_effect = [
            scalar_result(None),
            scalar_result(None),
            rows_result(marks("PRESENT")),
            scalar_result(first),
            rows_result(marks("ABSENT")),
            scalar_result(second),
        ]
        payload = {
            "class_id": str(CLASS_ID),
            "teacher_id": str(TEACHER_ID),
            "branch_id": str(BRANCH_ID),
            "attendance_date": "2026-03-13",
            "attendance_records": [
                {"student_id": str(STUDENT_ID), "attendance_status": "PRESENT"},
                {"student_id": str(OTHER_STUDENT_ID), "attendance_status": "ABSENT"},
            ],
        }

        result = await service.bulk_mark(payload, teacher)

        assert [r.attendance_status for r in result.data] == [AttendanceStatus.PRESENT, AttendanceStatus.ABSENT]
        assert first.attendance_percentage == Decimal("100.00")
        assert second.attendance_percentage == Decimal("0.00")
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bulk_mark_rejects_duplicate_students(self, service, mock_db, teacher):
        payload = {
            "class_id": str(CLASS_ID),
            "teacher_id": str(TEACHER_ID),
            "branch_id": str(BRANCH_ID),
            "attendance_date": "2026-03-13",
            "attendance_records": [
                {"student_id": str(STUDENT_ID), "attendance_status": "PRESENT"},
                {"student_id": str(STUDENT_ID), "attendance_status": "ABSENT"},
            ],
        }

        result = await service.bulk_mark(payload, teacher)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.validation_errors[0].message == f"Duplicate student: {STUDENT_ID}"
        mock_db.execute.assert_not_awaited()


class TestUpdateAttendance:
    """Tests for correcting attendance."""

    @pytest.mark.asyncio
    async def test_status_change_resyncs_enrollment(self, service, mock_db, teacher):
        record = make_record(attendance_status="ABSENT")
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [
            scalar_result(record),
            rows_result([record]),
            scalar_result(enrollment),
        ]

        result = await service.update_attendance({"id": record.id, "attendance_status": "PRESENT"}, teacher)

        assert result.data.attendance_status == AttendanceStatus.PRESENT
        assert enrollment.attendance_percentage == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_null_status_rejected(self, service, mock_db, teacher):
        result = await service.update_attendance({"id": str(uuid4()), "attendance_status": None}, teacher)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert [e.field for e in result.validation_errors] == ["attendance_status"]
        mock_db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remarks_only_skips_resync(self, service, mock_db, teacher):
        record = make_record()
        mock_db.execute.side_effect = [scalar_result(record)]

        result = await service.update_attendance({"id": record.id, "teacher_remarks": "Left early"}, teacher)

        assert result.data.teacher_remarks == "Left early"
        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_excused_checked_against_stored_reason(self, service, mock_db, teacher):
        record = make_record(attendance_status="ABSENT")
        mock_db.execute.side_effect = [scalar_result(record)]

        result = await service.update_attendance({"id": record.id, "attendance_status": "EXCUSED"}, teacher)

        assert [e.field for e in result.validation_errors] == ["excuse_reason"]
        assert record.attendance_status == "ABSENT"


class TestAttendanceReads:
    """Tests for lists and summaries."""

    @pytest.mark.asyncio
    async def test_student_summary(self, service, mock_db, student):
        mock_db.execute.return_value = rows_result(marks("PRESENT", "HOLIDAY"))

        result = await service.get_student_summary(STUDENT_ID, student)

        assert result.data.total_days == 2
        assert result.data.holiday_days == 1
        assert result.data.attendance_percentage == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_student_cannot_view_other_summary(self, service, student):
        result = await service.get_student_summary(OTHER_STUDENT_ID, student)

        assert result.error_code == ErrorCode.AUTHORIZATION_ERROR

    @pytest.mark.asyncio
    async def test_list_attendance(self, service, mock_db, teacher):
        mock_db.execute.side_effect = [count_result(1), rows_result([make_record()])]

        result = await service.list_attendance({"class_id": str(CLASS_ID), "date_from": "2026-03-01"}, teacher)

        assert result.data.total == 1
        assert result.data.items[0].attendance_date == date(2026, 3, 13)
