from .services import (
    get_activity_reports,
    get_history_queries,
    get_history_recorder,
    get_interaction_service,
    get_ticket_service,
    get_user_service,
)

__all__ = [
    "get_activity_reports",
    "get_history_queries",
    "get_history_recorder",
    "get_interaction_service",
    "get_ticket_service",
    "get_user_service",
]
