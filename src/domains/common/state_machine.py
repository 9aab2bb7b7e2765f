# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Table-driven status transitions.

Example:
    >>> machine = StateMachine("assignment", {
    ...     AssignmentStatus.DRAFT: {AssignmentStatus.PUBLISHED},
    ...     AssignmentStatus.PUBLISHED: {AssignmentStatus.CLOSED},
    ...     AssignmentStatus.CLOSED: set(),
    ... })
    >>> machine.can_transition(AssignmentStatus.DRAFT, AssignmentStatus.CLOSED)
    False
"""

from enum import Enum
from typing import Generic, Iterable, Mapping, Optional, TypeVar

from src.domains.common.errors import InvalidTransition

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """Allowed transitions for one entity's status field.

    States with no outgoing transitions are terminal.

    Attributes:
        entity: Entity name used in error messages.
    """

    def __init__(self, entity: str, transitions: Mapping[S, Iterable[S]]) -> None:
        self.entity = entity
        self._transitions: dict[S, frozenset[S]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    @property
    def states(self) -> frozenset[S]:
        return frozenset(self._transitions)

    def allowed_targets(self, current: S) -> frozenset[S]:
        return self._transitions.get(current, frozenset())

    def is_terminal(self, state: S) -> bool:
        return not self.allowed_targets(state)

    def can_transition(self, current: S, requested: S) -> bool:
        return requested in self.allowed_targets(current)

    def check(self, current: S, requested: S) -> Optional[InvalidTransition]:
        """Return the error for an illegal transition, or None when allowed."""
        if self.can_transition(current, requested):
            return None
        return InvalidTransition(self.entity, current, requested)

    def require(self, current: S, requested: S) -> S:
        """Return the requested state, raising InvalidTransition when illegal."""
        error = self.check(current, requested)
        if error is not None:
            raise error
        return requested
