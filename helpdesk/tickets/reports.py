from __future__ import annotations

from .models import ActivityReport
from .queries import HistoryQueryService


class ActivityReportGenerator:
    """Summarise the full history of a ticket."""

    def __init__(self, queries: HistoryQueryService) -> None:
        self._queries = queries

    async def generate(self, ticket_id: str) -> ActivityReport:
        history = await self._queries.by_ticket(ticket_id)
        return ActivityReport(
            total_changes=len(history),
            first_change=history[0] if history else None,
            last_change=history[-1] if history else None,
            status_changes=list(history),
            unique_users=list(dict.fromkeys(entry.changed_by for entry in history)),
        )
