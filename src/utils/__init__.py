# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cross-cutting utilities for CoachLMS.

- logging: structlog configuration shared by structlog and stdlib loggers
- datetime: UTC helpers and the injectable Clock
"""

from src.utils.datetime import (
    Clock,
    FixedClock,
    SystemClock,
    add_years,
    ensure_utc,
    utc_now,
    whole_minutes_between,
)
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "Clock",
    "SystemClock",
    "FixedClock",
    "utc_now",
    "ensure_utc",
    "whole_minutes_between",
    "add_years",
]
