from __future__ import annotations

import threading
import time
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from helpdesk.db.models import TicketHistoryTable
from helpdesk.db.session import ensure_datetime, ensure_utc, storage_errors

from .models import HistoryEntry
from .state import TicketStatus


class _SequenceClock:
    """Strictly increasing nanosecond stamps, even when the wall clock stalls."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._last = max(time.time_ns(), self._last + 1)
            return self._last


_sequence = _SequenceClock()


class TicketHistoryRepository:
    """Append-only access to the `ticket_history` table.

    Per-ticket reads are oldest first so callers can take the first and last
    element as the opening and current state. Every other listing is newest first.
    Entries sharing a timestamp keep the order they were recorded in.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, entry: HistoryEntry) -> HistoryEntry:
        row = TicketHistoryTable(
            id=entry.id,
            ticket_id=entry.ticket_id,
            status=entry.status.value,
            changed_by=entry.changed_by,
            changed_at=ensure_utc(entry.changed_at),
            notes=entry.notes,
            sequence=_sequence.next(),
        )
        with storage_errors("record ticket history"):
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                await session.refresh(row)
                return self._table_to_entry(row)

    async def get(self, entry_id: str) -> HistoryEntry | None:
        with storage_errors("load history entry"):
            async with self._session_factory() as session:
                row = await session.get(TicketHistoryTable, entry_id)
                return None if row is None else self._table_to_entry(row)

    async def list_by_ticket(self, ticket_id: str) -> list[HistoryEntry]:
        return await self._fetch(
            "list ticket history",
            TicketHistoryTable.ticket_id == ticket_id,
            ascending=True,
        )

    async def list_by_actor(self, user_id: str) -> list[HistoryEntry]:
        return await self._fetch("list history by user", TicketHistoryTable.changed_by == user_id)

    async def list_by_status(self, status: TicketStatus) -> list[HistoryEntry]:
        return await self._fetch("list history by status", TicketHistoryTable.status == status.value)

    async def list_by_date_range(self, start: datetime, end: datetime) -> list[HistoryEntry]:
        return await self._fetch(
            "list history by date range",
            TicketHistoryTable.changed_at >= ensure_utc(start),
            TicketHistoryTable.changed_at <= ensure_utc(end),
        )

    async def _fetch(self, action: str, *conditions: Any, ascending: bool = False) -> list[HistoryEntry]:
        if ascending:
            ordering = (TicketHistoryTable.changed_at.asc(), TicketHistoryTable.sequence.asc())
        else:
            ordering = (TicketHistoryTable.changed_at.desc(), TicketHistoryTable.sequence.desc())
        stmt = select(TicketHistoryTable).where(*conditions).order_by(*ordering)
        with storage_errors(action):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [self._table_to_entry(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_entry(row: TicketHistoryTable) -> HistoryEntry:
        return HistoryEntry(
            id=row.id,
            ticket_id=row.ticket_id,
            status=TicketStatus(row.status),
            changed_by=row.changed_by,
            changed_at=ensure_datetime(row.changed_at),
            notes=row.notes,
        )
