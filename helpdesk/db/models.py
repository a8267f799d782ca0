"""SQLModel table definitions for the helpdesk data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class TicketTable(SQLModel, table=True):
    """Support tickets opened by users."""

    __tablename__ = "tickets"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    message: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(50), nullable=False))
    category: str | None = Field(default=None, sa_column=Column(String(100), nullable=True))
    assigned_to: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    source: str | None = Field(default=None, sa_column=Column(String(100), nullable=True))
    escalation_level: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    resolution_notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketHistoryTable(SQLModel, table=True):
    """Append-only log of ticket status changes."""

    __tablename__ = "ticket_history"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id"), nullable=False, index=True)
    )
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    changed_by: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    changed_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    # insertion order among entries sharing a changed_at
    sequence: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, server_default="0"))


class UserTable(SQLModel, table=True):
    """People who open tickets or act on them."""

    __tablename__ = "users"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(100), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    phone: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    role: str = Field(sa_column=Column(String(50), nullable=False))
    department: str | None = Field(default=None, sa_column=Column(String(100), nullable=True))
    status: str = Field(sa_column=Column(String(50), nullable=False))
    last_login: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class InteractionTable(SQLModel, table=True):
    """Messages exchanged on a ticket."""

    __tablename__ = "interactions"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    user_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    ticket_id: str = Field(
        sa_column=Column(String(36), ForeignKey("tickets.id"), nullable=False, index=True)
    )
    message: str = Field(sa_column=Column(Text, nullable=False))
    sent_by: str = Field(sa_column=Column(String(100), nullable=False))
    channel: str = Field(sa_column=Column(String(50), nullable=False))
    timestamp: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
