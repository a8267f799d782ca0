from __future__ import annotations

from datetime import datetime

from helpdesk.core.errors import InvalidInputError, NotFoundError, require
from helpdesk.db.session import ensure_utc

from .history import TicketHistoryRepository
from .models import HistoryEntry
from .recorder import parse_status
from .state import TicketStatus


class HistoryEntryNotFoundError(NotFoundError):
    """Raised when a history entry could not be located."""


def parse_instant(value: datetime | str | None, name: str) -> datetime:
    """Parse an ISO-8601 timestamp or date; naive values are taken as UTC."""

    if isinstance(value, datetime):
        return ensure_utc(value)
    require(value, f"{name} is required")
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise InvalidInputError(f"{name} is not a valid timestamp: {value}") from exc
    return ensure_utc(parsed)


class HistoryQueryService:
    """Read side of the ticket history."""

    def __init__(self, repository: TicketHistoryRepository) -> None:
        self._repository = repository

    async def by_ticket(self, ticket_id: str) -> list[HistoryEntry]:
        """Entries of one ticket, oldest first."""

        require(ticket_id, "Ticket id is required")
        return await self._repository.list_by_ticket(ticket_id)

    async def by_actor(self, user_id: str) -> list[HistoryEntry]:
        require(user_id, "User id is required")
        return await self._repository.list_by_actor(user_id)

    async def by_status(self, status: TicketStatus | str) -> list[HistoryEntry]:
        return await self._repository.list_by_status(parse_status(status))

    async def by_date_range(self, start: datetime | str, end: datetime | str) -> list[HistoryEntry]:
        """Entries whose ``changed_at`` falls within ``[start, end]``, newest first."""

        start_at = parse_instant(start, "Start date")
        end_at = parse_instant(end, "End date")
        if start_at > end_at:
            raise InvalidInputError("Start date must not be after end date")
        return await self._repository.list_by_date_range(start_at, end_at)

    async def by_id(self, entry_id: str) -> HistoryEntry:
        require(entry_id, "History entry id is required")
        entry = await self._repository.get(entry_id)
        if entry is None:
            raise HistoryEntryNotFoundError("History entry not found")
        return entry

    async def latest_by_ticket(self, ticket_id: str) -> HistoryEntry | None:
        entries = await self.by_ticket(ticket_id)
        return entries[-1] if entries else None

    async def count_by_ticket(self, ticket_id: str) -> int:
        return len(await self.by_ticket(ticket_id))
