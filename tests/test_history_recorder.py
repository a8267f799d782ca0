from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from helpdesk.core.errors import InvalidInputError
from helpdesk.metrics import MetricsRegistry
from helpdesk.tickets.history import TicketHistoryRepository
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import BatchStatus, HistoryChange, HistoryRecorder
from helpdesk.tickets.state import TicketStatus


@pytest.fixture
def repository(session_factory: async_sessionmaker) -> TicketHistoryRepository:
    return TicketHistoryRepository(session_factory)


@pytest.fixture
def recorder(repository: TicketHistoryRepository, registry: MetricsRegistry) -> HistoryRecorder:
    return HistoryRecorder(repository, metrics=registry)


@pytest.mark.asyncio
async def test_record_change_fills_defaults(recorder: HistoryRecorder, registry: MetricsRegistry):
    before = datetime.now(timezone.utc)

    entry = await recorder.record_change("ticket-1", "in_progress", "agent-1")

    assert entry.status is TicketStatus.IN_PROGRESS
    assert entry.notes == "Status alterado para: in_progress"
    assert entry.changed_at >= before.replace(microsecond=0)
    assert registry.counter("helpdesk_history_entries_total").value() == 1


@pytest.mark.asyncio
async def test_record_change_keeps_explicit_note_and_timestamp(recorder: HistoryRecorder):
    changed_at = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    entry = await recorder.record_change(
        "ticket-1", TicketStatus.RESOLVED, "agent-1", notes="Replaced toner", changed_at=changed_at
    )

    assert entry.notes == "Replaced toner"
    assert entry.changed_at == changed_at


@pytest.mark.asyncio
async def test_record_change_reads_naive_timestamps_as_utc(recorder: HistoryRecorder):
    entry = await recorder.record_change(
        "ticket-1", "open", "agent-1", changed_at=datetime(2024, 3, 1, 12, 30)
    )

    assert entry.changed_at == datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "ticket_id,status,changed_by",
    [
        (None, "open", "agent-1"),
        ("ticket-1", None, "agent-1"),
        ("ticket-1", "open", None),
        ("ticket-1", "open", "  "),
        ("ticket-1", "archived", "agent-1"),
    ],
)
async def test_record_change_rejects_invalid_input(recorder: HistoryRecorder, ticket_id, status, changed_by):
    with pytest.raises(InvalidInputError):
        await recorder.record_change(ticket_id, status, changed_by)


@pytest.mark.asyncio
async def test_batch_stops_at_first_invalid_change(recorder: HistoryRecorder, repository: TicketHistoryRepository):
    changes = [
        HistoryChange(ticket_id="ticket-1", status="in_progress", changed_by="agent-1"),
        HistoryChange(ticket_id="ticket-1", status="resolved", changed_by=None),
        HistoryChange(ticket_id="ticket-1", status="closed", changed_by="agent-1"),
    ]

    result = await recorder.record_multiple_changes(changes)

    assert result.status is BatchStatus.PARTIAL
    assert len(result.recorded) == 1
    assert result.failure is not None
    assert result.failure.index == 1
    assert isinstance(result.failure.error, InvalidInputError)

    stored = await HistoryQueryService(repository).by_ticket("ticket-1")
    assert [entry.status for entry in stored] == [TicketStatus.IN_PROGRESS]


@pytest.mark.asyncio
async def test_batch_reports_complete_and_failed(recorder: HistoryRecorder):
    complete = await recorder.record_multiple_changes(
        [
            HistoryChange(ticket_id="ticket-1", status="open", changed_by="agent-1"),
            HistoryChange(ticket_id="ticket-1", status="closed", changed_by="agent-2"),
        ]
    )
    failed = await recorder.record_multiple_changes(
        [HistoryChange(ticket_id="ticket-1", status="bogus", changed_by="agent-1")]
    )

    assert complete.status is BatchStatus.COMPLETE
    assert len(complete.recorded) == 2
    assert failed.status is BatchStatus.FAILED
    assert failed.recorded == []


@pytest.mark.asyncio
async def test_empty_batch_is_invalid(recorder: HistoryRecorder):
    with pytest.raises(InvalidInputError):
        await recorder.record_multiple_changes([])
