from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from helpdesk.db.models import InteractionTable
from helpdesk.db.session import ensure_datetime, ensure_utc, storage_errors


@dataclass(slots=True)
class Interaction:
    """A single message exchanged on a ticket."""

    id: str
    user_id: str
    ticket_id: str
    message: str
    sent_by: str
    channel: str
    timestamp: datetime


_UPDATABLE_FIELDS = ("message", "sent_by", "channel")


class InteractionRepository:
    """Data access layer for the `interactions` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, interaction: Interaction) -> Interaction:
        row = InteractionTable(
            id=interaction.id,
            user_id=interaction.user_id,
            ticket_id=interaction.ticket_id,
            message=interaction.message,
            sent_by=interaction.sent_by,
            channel=interaction.channel,
            timestamp=ensure_utc(interaction.timestamp),
        )
        with storage_errors("create interaction"):
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                await session.refresh(row)
                return self._table_to_interaction(row)

    async def get(self, interaction_id: str) -> Interaction | None:
        with storage_errors("load interaction"):
            async with self._session_factory() as session:
                row = await session.get(InteractionTable, interaction_id)
                return None if row is None else self._table_to_interaction(row)

    async def list_by_ticket(self, ticket_id: str) -> list[Interaction]:
        stmt = (
            select(InteractionTable)
            .where(InteractionTable.ticket_id == ticket_id)
            .order_by(InteractionTable.timestamp.asc(), InteractionTable.id.asc())
        )
        return await self._fetch("list interactions by ticket", stmt)

    async def list_by_user(self, user_id: str) -> list[Interaction]:
        stmt = (
            select(InteractionTable)
            .where(InteractionTable.user_id == user_id)
            .order_by(InteractionTable.timestamp.desc(), InteractionTable.id.desc())
        )
        return await self._fetch("list interactions by user", stmt)

    async def count_by_ticket(self, ticket_id: str) -> int:
        stmt = select(func.count()).select_from(InteractionTable).where(InteractionTable.ticket_id == ticket_id)
        with storage_errors("count interactions"):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return int(result.scalar_one())

    async def update(self, interaction_id: str, changes: Mapping[str, Any]) -> Interaction | None:
        with storage_errors("update interaction"):
            async with self._session_factory() as session:
                row = await session.get(InteractionTable, interaction_id)
                if row is None:
                    return None
                for name in _UPDATABLE_FIELDS:
                    if changes.get(name) is not None:
                        setattr(row, name, changes[name])
                await session.commit()
                await session.refresh(row)
                return self._table_to_interaction(row)

    async def delete(self, interaction_id: str) -> bool:
        with storage_errors("delete interaction"):
            async with self._session_factory() as session:
                row = await session.get(InteractionTable, interaction_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True

    async def _fetch(self, action: str, stmt: Any) -> list[Interaction]:
        with storage_errors(action):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [self._table_to_interaction(row) for row in result.scalars().all()]

    @staticmethod
    def _table_to_interaction(row: InteractionTable) -> Interaction:
        return Interaction(
            id=row.id,
            user_id=row.user_id,
            ticket_id=row.ticket_id,
            message=row.message,
            sent_by=row.sent_by,
            channel=row.channel,
            timestamp=ensure_datetime(row.timestamp),
        )
