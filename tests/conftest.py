# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Services are exercised against an AsyncMock session. Each db.execute()
call consumes the next prepared result, so tests list results in the
order the service issues its queries.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from src.domains.common import Actor, Role
from src.utils.datetime import FixedClock

# 2026-03-15 10:00 UTC, a Sunday in the middle of a month.
NOW = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)

STUDENT_ID = UUID("550e8400-e29b-41d4-a716-446655440001")
OTHER_STUDENT_ID = UUID("550e8400-e29b-41d4-a716-446655440002")
TEACHER_ID = UUID("550e8400-e29b-41d4-a716-446655440010")
MANAGER_ID = UUID("550e8400-e29b-41d4-a716-446655440020")
CLASS_ID = UUID("550e8400-e29b-41d4-a716-446655440100")
BRANCH_ID = UUID("550e8400-e29b-41d4-a716-446655440200")


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )


# =============================================================================
# Query result helpers
# =============================================================================


def scalar_result(value: Any) -> MagicMock:
    """Result of a query read with scalar_one_or_none()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def rows_result(rows: Iterable[Any]) -> MagicMock:
    """Result of a query read with scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(rows)
    return result


def count_result(total: int) -> MagicMock:
    """Result of a count query read with scalar()."""
    result = MagicMock()
    result.scalar.return_value = total
    return result


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock frozen at NOW."""
    return FixedClock(NOW)


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.delete = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.rollback = AsyncMock()
    return db


def make_actor(role: Role, user_id: Optional[UUID] = None) -> Actor:
    defaults = {
        Role.STUDENT: STUDENT_ID,
        Role.TEACHER: TEACHER_ID,
    }
    return Actor(user_id=user_id or defaults.get(role, MANAGER_ID), role=role)


@pytest.fixture
def student() -> Actor:
    return make_actor(Role.STUDENT)


@pytest.fixture
def other_student() -> Actor:
    return make_actor(Role.STUDENT, OTHER_STUDENT_ID)


@pytest.fixture
def teacher() -> Actor:
    return make_actor(Role.TEACHER)


@pytest.fixture
def manager() -> Actor:
    return make_actor(Role.BRANCH_MANAGER)
