from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from .state import TicketPriority, TicketStatus


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket."""

    id: str
    user_id: str
    message: str
    status: TicketStatus
    priority: TicketPriority
    created_at: datetime
    updated_at: datetime
    category: str | None = None
    assigned_to: str | None = None
    source: str | None = None
    escalation_level: str | None = None
    resolution_notes: str | None = None
    resolved_at: datetime | None = None


@dataclass(slots=True)
class TicketFilters:
    """Optional equality filters combined with AND when listing tickets."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    category: str | None = None
    assigned_to: str | None = None
    user_id: str | None = None


@dataclass(slots=True)
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass(slots=True)
class TicketPage:
    tickets: Sequence[Ticket]
    pagination: Pagination


@dataclass(slots=True)
class HistoryEntry:
    """Immutable record of a ticket's status at a point in time."""

    id: str
    ticket_id: str
    status: TicketStatus
    changed_by: str
    changed_at: datetime
    notes: str | None = None


@dataclass(slots=True)
class ActivityReport:
    """Summary derived from the full history of a single ticket."""

    total_changes: int
    first_change: HistoryEntry | None
    last_change: HistoryEntry | None
    status_changes: Sequence[HistoryEntry] = field(default_factory=list)
    unique_users: Sequence[str] = field(default_factory=list)
