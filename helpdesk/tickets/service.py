from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from helpdesk.core.errors import InvalidInputError, NotFoundError, require
from helpdesk.metrics import MetricsRegistry, metrics_registry
from helpdesk.notifications import NullNotifier, TicketEvent, TicketNotifier

from .models import Pagination, Ticket, TicketFilters, TicketPage
from .recorder import HistoryRecorder, parse_status
from .repository import TicketRepository
from .state import TicketPriority, TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
MAX_PAGE_SIZE = 100


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket could not be located."""


def parse_priority(value: TicketPriority | str | None) -> TicketPriority:
    if value is None:
        return TicketPriority.NORMAL
    try:
        return TicketPriority(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown ticket priority: {value}") from exc


class TicketService:
    """High level orchestration for ticket creation and status changes.

    Every successful status change is written to the history through the
    recorder before the notifier is told about it.
    """

    def __init__(
        self,
        repository: TicketRepository,
        recorder: HistoryRecorder,
        *,
        notifier: TicketNotifier | None = None,
        state_machine: TicketStateMachine | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._recorder = recorder
        self._notifier = notifier or NullNotifier()
        self._state_machine = state_machine or TicketStateMachine()
        registry = metrics or metrics_registry
        self._created_counter = registry.counter("helpdesk_tickets_created_total", label_names=("priority",))
        self._status_counter = registry.counter("helpdesk_ticket_status_changes_total", label_names=("status",))

    async def create_ticket(
        self,
        *,
        user_id: str,
        message: str,
        priority: TicketPriority | str | None = None,
        category: str | None = None,
        assigned_to: str | None = None,
        source: str | None = None,
        escalation_level: str | None = None,
        resolution_notes: str | None = None,
    ) -> Ticket:
        require(user_id, "User id is required")
        require(message, "Message is required")
        if len(message) > MAX_MESSAGE_LENGTH:
            raise InvalidInputError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")
        parsed_priority = parse_priority(priority)

        now = datetime.now(timezone.utc)
        ticket = await self._repository.insert(
            Ticket(
                id=str(uuid.uuid4()),
                user_id=user_id,
                message=message,
                status=self._state_machine.initial_state(),
                priority=parsed_priority,
                category=category,
                assigned_to=assigned_to,
                source=source,
                escalation_level=escalation_level,
                resolution_notes=resolution_notes,
                created_at=now,
                updated_at=now,
            )
        )
        self._created_counter.inc(labels={"priority": ticket.priority.value})
        logger.info("Created ticket %s for user %s (%s)", ticket.id, ticket.user_id, ticket.priority.value)
        self._notifier.notify(TicketEvent(name="ticket.created", ticket=ticket))
        return ticket

    async def list_tickets(
        self,
        filters: TicketFilters | None = None,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> TicketPage:
        if page < 1:
            raise InvalidInputError("Page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidInputError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        tickets, total = await self._repository.query(
            filters or TicketFilters(), offset=(page - 1) * limit, limit=limit
        )
        return TicketPage(tickets=tickets, pagination=Pagination(page=page, limit=limit, total=total))

    async def get_ticket(self, ticket_id: str) -> Ticket:
        require(ticket_id, "Ticket id is required")
        ticket = await self._repository.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def update_status(
        self,
        ticket_id: str,
        *,
        status: TicketStatus | str,
        actor_id: str,
        note: str | None = None,
    ) -> Ticket:
        require(ticket_id, "Ticket id is required")
        require(actor_id, "Actor id is required to change a ticket status")
        new_status = parse_status(status)

        current = await self.get_ticket(ticket_id)
        self._state_machine.assert_transition(current.status, new_status)

        updated = await self._repository.update_status(ticket_id, new_status)
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        await self._recorder.record_change(ticket_id, new_status, actor_id, notes=note)
        self._status_counter.inc(labels={"status": new_status.value})
        logger.info(
            "Ticket %s moved from %s to %s by %s",
            ticket_id,
            current.status.value,
            new_status.value,
            actor_id,
        )
        self._notifier.notify(TicketEvent(name="ticket.status_changed", ticket=updated))
        return updated
