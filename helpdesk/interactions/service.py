from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from helpdesk.core.errors import InvalidInputError, NotFoundError, require
from helpdesk.db.session import ensure_utc

from .repository import Interaction, InteractionRepository

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
MAX_SENDER_LENGTH = 100
MAX_CHANNEL_LENGTH = 50
DEFAULT_SENDER = "system"
DEFAULT_CHANNEL = "web"
SYSTEM_CHANNEL = "auto"


class InteractionNotFoundError(NotFoundError):
    """Raised when an interaction could not be located."""

    def __init__(self, message: str = "Interaction not found") -> None:
        super().__init__(message)


def _check_message(message: str | None) -> None:
    require(message, "Message is required")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise InvalidInputError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")


def _check_length(value: str | None, limit: int, name: str) -> None:
    if value is not None and len(value) > limit:
        raise InvalidInputError(f"{name} must be at most {limit} characters")


class InteractionService:
    """Messages attached to tickets."""

    def __init__(self, repository: InteractionRepository) -> None:
        self._repository = repository

    async def create_interaction(
        self,
        *,
        user_id: str,
        ticket_id: str,
        message: str,
        sent_by: str | None = None,
        channel: str | None = None,
        timestamp: datetime | None = None,
    ) -> Interaction:
        require(user_id, "User id is required")
        require(ticket_id, "Ticket id is required")
        _check_message(message)
        _check_length(sent_by, MAX_SENDER_LENGTH, "Sender")
        _check_length(channel, MAX_CHANNEL_LENGTH, "Channel")

        interaction = await self._repository.insert(
            Interaction(
                id=str(uuid.uuid4()),
                user_id=user_id,
                ticket_id=ticket_id,
                message=message,
                sent_by=sent_by or DEFAULT_SENDER,
                channel=channel or DEFAULT_CHANNEL,
                timestamp=ensure_utc(timestamp) if timestamp else datetime.now(timezone.utc),
            )
        )
        logger.info("Added interaction %s to ticket %s via %s", interaction.id, ticket_id, interaction.channel)
        return interaction

    async def add_system_response(self, ticket_id: str, message: str, user_id: str) -> Interaction:
        return await self.create_interaction(
            user_id=user_id,
            ticket_id=ticket_id,
            message=message,
            sent_by=DEFAULT_SENDER,
            channel=SYSTEM_CHANNEL,
        )

    async def get_interaction(self, interaction_id: str) -> Interaction:
        interaction = await self._repository.get(interaction_id)
        if interaction is None:
            raise InteractionNotFoundError()
        return interaction

    async def by_ticket(self, ticket_id: str) -> list[Interaction]:
        """Interactions of one ticket, oldest first."""

        require(ticket_id, "Ticket id is required")
        return await self._repository.list_by_ticket(ticket_id)

    async def by_user(self, user_id: str) -> list[Interaction]:
        require(user_id, "User id is required")
        return await self._repository.list_by_user(user_id)

    async def count_by_ticket(self, ticket_id: str) -> int:
        require(ticket_id, "Ticket id is required")
        return await self._repository.count_by_ticket(ticket_id)

    async def update_interaction(self, interaction_id: str, changes: Mapping[str, Any]) -> Interaction:
        if changes.get("message") is not None:
            _check_message(changes["message"])
        _check_length(changes.get("sent_by"), MAX_SENDER_LENGTH, "Sender")
        _check_length(changes.get("channel"), MAX_CHANNEL_LENGTH, "Channel")

        updated = await self._repository.update(interaction_id, changes)
        if updated is None:
            raise InteractionNotFoundError()
        return updated

    async def delete_interaction(self, interaction_id: str) -> None:
        if not await self._repository.delete(interaction_id):
            raise InteractionNotFoundError()
        logger.info("Deleted interaction %s", interaction_id)
