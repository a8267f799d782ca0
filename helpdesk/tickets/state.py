from __future__ import annotations

from enum import Enum
from typing import Mapping, Set

from helpdesk.core.errors import ConflictError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    PENDING = "pending"
    ESCALATED = "escalated"


class TicketPriority(str, Enum):
    """Urgency levels a ticket may carry."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class InvalidTicketTransitionError(ConflictError):
    """Raised when a status change is not allowed by the configured transitions."""


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Without an explicit transition map every status may follow every other one.
    Passing ``transitions`` restricts each status to the listed targets.
    """

    def __init__(self, transitions: Mapping[TicketStatus, Set[TicketStatus]] | None = None) -> None:
        self._transitions = transitions

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    def can_transition(self, current: TicketStatus, new: TicketStatus) -> bool:
        if self._transitions is None or current == new:
            return True
        return new in self._transitions.get(current, set())

    def assert_transition(self, current: TicketStatus, new: TicketStatus) -> None:
        if not self.can_transition(current, new):
            raise InvalidTicketTransitionError(
                f"Invalid ticket status transition: {current.value} -> {new.value}"
            )
