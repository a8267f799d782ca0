"""Ticket lifecycle, history recording and reporting."""

from .models import ActivityReport, HistoryEntry, Pagination, Ticket, TicketFilters, TicketPage
from .state import InvalidTicketTransitionError, TicketPriority, TicketStateMachine, TicketStatus

__all__ = [
    "ActivityReport",
    "HistoryEntry",
    "InvalidTicketTransitionError",
    "Pagination",
    "Ticket",
    "TicketFilters",
    "TicketPage",
    "TicketPriority",
    "TicketStateMachine",
    "TicketStatus",
]
