# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Quiz domain package.

This package provides quiz functionality including:
- Quiz authoring and questions
- Timed attempts with resume and shuffling
- Auto-scoring with negative marking
"""

from src.domains.quiz.scoring import (
    ATTEMPT_LIFECYCLE,
    AttemptScore,
    ResponsePoints,
    calculate_response_points,
    check_can_attempt,
    completion_status,
    prepare_questions,
    total_score,
)
from src.domains.quiz.service import QuizService
from src.domains.quiz.store import QuizStore

__all__ = [
    "ATTEMPT_LIFECYCLE",
    "AttemptScore",
    "ResponsePoints",
    "calculate_response_points",
    "check_can_attempt",
    "completion_status",
    "prepare_questions",
    "total_score",
    "QuizService",
    "QuizStore",
]
