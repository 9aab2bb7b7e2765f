# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Time helpers and injectable clocks.

Timestamps are stored as TIMESTAMPTZ and handled as aware UTC datetimes.
Calendar dates ("today", due dates, attendance dates) are taken in the
clock's zone, which comes from SERVICE_TIMEZONE.

Every rule that compares against the current time receives a Clock, so
tests freeze time with FixedClock instead of patching datetime.

Usage:
    clock = SystemClock("Asia/Kolkata")
    clock.now()      # aware UTC datetime
    clock.today()    # calendar date in Asia/Kolkata

    frozen = FixedClock(datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc))
"""

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values are taken to be UTC already."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def whole_minutes_between(start: datetime, end: datetime) -> int:
    """Count whole minutes from start to end, rounding down.

    Args:
        start: Earlier instant.
        end: Later instant.

    Returns:
        Floor of the elapsed minutes (negative when end precedes start).
    """
    elapsed = ensure_utc(end) - ensure_utc(start)
    return math.floor(elapsed.total_seconds() / 60)


def add_years(value: date, years: int) -> date:
    """Shift a date by whole years, clamping 29 February to the 28th."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


class Clock(Protocol):
    """Source of the current instant.

    Every rule that depends on "now" or "today" takes a Clock instead of
    reading the system time itself.
    """

    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""
        ...

    def today(self) -> date:
        """Current calendar date in the clock's zone."""
        ...


class SystemClock:
    """Clock backed by the system time.

    Attributes:
        tz: Zone used to decide the calendar date.
    """

    def __init__(self, tz: tzinfo | str = timezone.utc) -> None:
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        return utc_now()

    def today(self) -> date:
        return utc_now().astimezone(self.tz).date()


class FixedClock:
    """Clock frozen at a given instant, advanced manually.

    Example:
        >>> clock = FixedClock(datetime(2025, 3, 1, tzinfo=timezone.utc))
        >>> clock.advance(minutes=90)
        >>> clock.now().hour
        1
    """

    def __init__(self, instant: datetime, tz: tzinfo = timezone.utc) -> None:
        self._instant = ensure_utc(instant)
        self.tz = tz

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.astimezone(self.tz).date()

    def set(self, instant: datetime) -> None:
        """Move the clock to an absolute instant."""
        self._instant = ensure_utc(instant)

    def advance(self, **delta: float) -> None:
        """Move the clock forward by a timedelta expressed as keywords."""
        self._instant = self._instant + timedelta(**delta)
