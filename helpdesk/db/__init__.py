from .models import InteractionTable, TicketHistoryTable, TicketTable, UserTable

__all__ = [
    "InteractionTable",
    "TicketHistoryTable",
    "TicketTable",
    "UserTable",
]
