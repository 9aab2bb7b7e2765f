"""CoachLMS Backend.

Business core of a multi-tenant coaching-center platform: assignments,
quizzes, enrollments, fee receipts and attendance, with validated inputs,
explicit lifecycle rules and a session-scoped read cache.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
