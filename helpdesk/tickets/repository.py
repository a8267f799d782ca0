from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from helpdesk.db.models import TicketTable
from helpdesk.db.session import ensure_datetime, ensure_utc, storage_errors

from .models import Ticket, TicketFilters
from .state import TicketPriority, TicketStatus


class TicketRepository:
    """Data access layer for the `tickets` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, ticket: Ticket) -> Ticket:
        row = TicketTable(
            id=ticket.id,
            user_id=ticket.user_id,
            message=ticket.message,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category,
            assigned_to=ticket.assigned_to,
            source=ticket.source,
            escalation_level=ticket.escalation_level,
            resolution_notes=ticket.resolution_notes,
            resolved_at=ensure_utc(ticket.resolved_at) if ticket.resolved_at else None,
            created_at=ensure_utc(ticket.created_at),
            updated_at=ensure_utc(ticket.updated_at),
        )
        with storage_errors("insert ticket"):
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                await session.refresh(row)
                return self._table_to_ticket(row)

    async def query(
        self, filters: TicketFilters, *, offset: int, limit: int
    ) -> tuple[Sequence[Ticket], int]:
        """Return one page of tickets (newest first) and the total number of matches."""

        conditions = []
        if filters.status is not None:
            conditions.append(TicketTable.status == filters.status.value)
        if filters.priority is not None:
            conditions.append(TicketTable.priority == filters.priority.value)
        if filters.category is not None:
            conditions.append(TicketTable.category == filters.category)
        if filters.assigned_to is not None:
            conditions.append(TicketTable.assigned_to == filters.assigned_to)
        if filters.user_id is not None:
            conditions.append(TicketTable.user_id == filters.user_id)

        rows_stmt = (
            select(TicketTable)
            .where(*conditions)
            .order_by(TicketTable.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(TicketTable).where(*conditions)

        with storage_errors("query tickets"):
            async with self._session_factory() as session:
                result = await session.execute(rows_stmt)
                tickets = [self._table_to_ticket(row) for row in result.scalars().all()]
                total = (await session.execute(count_stmt)).scalar_one()
        return tickets, int(total)

    async def get(self, ticket_id: str) -> Ticket | None:
        with storage_errors("load ticket"):
            async with self._session_factory() as session:
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return None
                return self._table_to_ticket(row)

    async def update_status(self, ticket_id: str, status: TicketStatus) -> Ticket | None:
        with storage_errors("update ticket status"):
            async with self._session_factory() as session:
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return None
                row.status = status.value
                row.updated_at = datetime.now(timezone.utc)
                await session.commit()
                await session.refresh(row)
                return self._table_to_ticket(row)

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            user_id=row.user_id,
            message=row.message,
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            category=row.category,
            assigned_to=row.assigned_to,
            source=row.source,
            escalation_level=row.escalation_level,
            resolution_notes=row.resolution_notes,
            resolved_at=ensure_datetime(row.resolved_at) if row.resolved_at else None,
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )
