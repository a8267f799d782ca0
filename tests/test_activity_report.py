from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from helpdesk.metrics import MetricsRegistry
from helpdesk.tickets.history import TicketHistoryRepository
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import HistoryRecorder
from helpdesk.tickets.reports import ActivityReportGenerator


@pytest.mark.asyncio
async def test_report_summarises_ticket_history(session_factory: async_sessionmaker):
    repository = TicketHistoryRepository(session_factory)
    recorder = HistoryRecorder(repository, metrics=MetricsRegistry())
    queries = HistoryQueryService(repository)
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)
    for offset, (status, actor) in enumerate(
        [("open", "agent-1"), ("in_progress", "agent-2"), ("resolved", "agent-1")]
    ):
        await recorder.record_change("ticket-1", status, actor, changed_at=base + timedelta(minutes=offset))

    report = await ActivityReportGenerator(queries).generate("ticket-1")
    history = await queries.by_ticket("ticket-1")

    assert report.total_changes == len(history) == 3
    assert report.first_change == history[0]
    assert report.last_change == history[-1]
    assert list(report.status_changes) == history
    assert list(report.unique_users) == ["agent-1", "agent-2"]


@pytest.mark.asyncio
async def test_report_for_ticket_without_history_is_empty(session_factory: async_sessionmaker):
    queries = HistoryQueryService(TicketHistoryRepository(session_factory))

    report = await ActivityReportGenerator(queries).generate("ticket-without-history")

    assert report.total_changes == 0
    assert report.first_change is None
    assert report.last_change is None
    assert list(report.status_changes) == []
    assert list(report.unique_users) == []
