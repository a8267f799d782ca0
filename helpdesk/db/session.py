from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from helpdesk.core.errors import InternalError

# imported for its side effect of registering the tables on SQLModel.metadata
from helpdesk.db import models  # noqa: F401

logger = logging.getLogger(__name__)


def to_async_dsn(dsn: str) -> str:
    """Ensure a PostgreSQL DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    if dsn.startswith("postgres://"):
        return "postgresql+asyncpg://" + dsn[len("postgres://") :]
    return dsn


def create_engine(dsn: str) -> AsyncEngine:
    return create_async_engine(to_async_dsn(dsn), future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create any missing tables."""

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Translate driver level failures into :class:`InternalError`."""

    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Datastore failure while trying to %s: %s", action, exc)
        raise InternalError(f"Failed to {action}") from exc


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    raise TypeError("Expected datetime value from database")
