from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from helpdesk.core.errors import ConflictError
from helpdesk.db.models import UserTable
from helpdesk.db.session import ensure_datetime, ensure_utc, storage_errors


class EmailAlreadyExistsError(ConflictError):
    """Raised when another user already owns the email address."""

    def __init__(self, message: str = "Email already exists") -> None:
        super().__init__(message)


@dataclass(slots=True)
class User:
    id: str
    name: str
    email: str
    role: str
    status: str
    created_at: datetime
    updated_at: datetime
    phone: str | None = None
    department: str | None = None
    last_login: datetime | None = None


_UPDATABLE_FIELDS = ("name", "email", "phone", "role", "department", "status", "last_login")


def _is_email_conflict(exc: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: users.email", postgres: "users_email_key"
    detail = str(exc.orig).lower()
    return "unique" in detail and "email" in detail


class UserRepository:
    """Data access layer for the `users` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, user: User) -> User:
        row = UserTable(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            department=user.department,
            status=user.status,
            last_login=ensure_utc(user.last_login) if user.last_login else None,
            created_at=ensure_utc(user.created_at),
            updated_at=ensure_utc(user.updated_at),
        )
        with storage_errors("create user"):
            async with self._session_factory() as session:
                try:
                    async with session.begin():
                        session.add(row)
                except IntegrityError as exc:
                    if not _is_email_conflict(exc):
                        raise
                    raise EmailAlreadyExistsError() from exc
                await session.refresh(row)
                return self._table_to_user(row)

    async def list_all(self) -> Sequence[User]:
        with storage_errors("list users"):
            async with self._session_factory() as session:
                result = await session.execute(select(UserTable).order_by(UserTable.created_at.desc()))
                return [self._table_to_user(row) for row in result.scalars().all()]

    async def get(self, user_id: str) -> User | None:
        with storage_errors("load user"):
            async with self._session_factory() as session:
                row = await session.get(UserTable, user_id)
                return None if row is None else self._table_to_user(row)

    async def get_by_email(self, email: str) -> User | None:
        with storage_errors("look up user by email"):
            async with self._session_factory() as session:
                result = await session.execute(select(UserTable).where(UserTable.email == email))
                row = result.scalars().first()
                return None if row is None else self._table_to_user(row)

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> User | None:
        with storage_errors("update user"):
            async with self._session_factory() as session:
                row = await session.get(UserTable, user_id)
                if row is None:
                    return None
                for name in _UPDATABLE_FIELDS:
                    if name in changes:
                        value = changes[name]
                        if isinstance(value, datetime):
                            value = ensure_utc(value)
                        setattr(row, name, value)
                row.updated_at = datetime.now(timezone.utc)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    if not _is_email_conflict(exc):
                        raise
                    raise EmailAlreadyExistsError() from exc
                await session.refresh(row)
                return self._table_to_user(row)

    async def delete(self, user_id: str) -> bool:
        with storage_errors("delete user"):
            async with self._session_factory() as session:
                row = await session.get(UserTable, user_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True

    @staticmethod
    def _table_to_user(row: UserTable) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            role=row.role,
            department=row.department,
            status=row.status,
            last_login=ensure_datetime(row.last_login) if row.last_login else None,
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )
