from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from helpdesk.core.errors import InvalidInputError, ServiceError, require
from helpdesk.db.session import ensure_utc
from helpdesk.metrics import MetricsRegistry, metrics_registry

from .history import TicketHistoryRepository
from .models import HistoryEntry
from .state import TicketStatus

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TEMPLATE = "Status alterado para: {status}"


def parse_status(value: TicketStatus | str | None) -> TicketStatus:
    """Coerce ``value`` into a :class:`TicketStatus` or raise :class:`InvalidInputError`."""

    require(value, "Status is required")
    try:
        return TicketStatus(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown ticket status: {value}") from exc


@dataclass(slots=True)
class HistoryChange:
    """Caller supplied description of one change to append to the history."""

    ticket_id: str | None
    status: TicketStatus | str | None
    changed_by: str | None
    notes: str | None = None
    changed_at: datetime | None = None


class BatchStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(slots=True)
class BatchFailure:
    index: int
    error: ServiceError


@dataclass(slots=True)
class BatchRecordResult:
    """Outcome of a sequential batch write.

    ``recorded`` holds every entry persisted before processing stopped. Entries after
    ``failure.index`` were not attempted.
    """

    recorded: list[HistoryEntry] = field(default_factory=list)
    failure: BatchFailure | None = None

    @property
    def status(self) -> BatchStatus:
        if self.failure is None:
            return BatchStatus.COMPLETE
        return BatchStatus.PARTIAL if self.recorded else BatchStatus.FAILED


class HistoryRecorder:
    """Validate and append entries to the ticket history."""

    def __init__(
        self,
        repository: TicketHistoryRepository,
        *,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._entries_counter = (metrics or metrics_registry).counter("helpdesk_history_entries_total")

    async def record_change(
        self,
        ticket_id: str | None,
        status: TicketStatus | str | None,
        changed_by: str | None,
        *,
        notes: str | None = None,
        changed_at: datetime | None = None,
    ) -> HistoryEntry:
        require(ticket_id, "Ticket id is required to record a change")
        require(changed_by, "Actor id is required to record a change")
        parsed_status = parse_status(status)

        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            ticket_id=str(ticket_id),
            status=parsed_status,
            changed_by=str(changed_by),
            changed_at=ensure_utc(changed_at) if changed_at else datetime.now(timezone.utc),
            notes=notes or DEFAULT_NOTE_TEMPLATE.format(status=parsed_status.value),
        )
        stored = await self._repository.insert(entry)
        self._entries_counter.inc()
        logger.info(
            "Recorded history entry %s for ticket %s (%s by %s)",
            stored.id,
            stored.ticket_id,
            stored.status.value,
            stored.changed_by,
        )
        return stored

    async def record_multiple_changes(self, changes: Sequence[HistoryChange]) -> BatchRecordResult:
        """Record ``changes`` in order, stopping at the first one that fails."""

        if not changes:
            raise InvalidInputError("At least one change is required")

        result = BatchRecordResult()
        for index, change in enumerate(changes):
            try:
                entry = await self.record_change(
                    change.ticket_id,
                    change.status,
                    change.changed_by,
                    notes=change.notes,
                    changed_at=change.changed_at,
                )
            except ServiceError as exc:
                logger.warning(
                    "Batch history write stopped at item %d of %d: %s", index, len(changes), exc
                )
                result.failure = BatchFailure(index=index, error=exc)
                break
            result.recorded.append(entry)
        return result
