from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request

from helpdesk.interactions import InteractionService
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import HistoryRecorder
from helpdesk.tickets.reports import ActivityReportGenerator
from helpdesk.tickets.service import TicketService
from helpdesk.users import UserService


def _from_state(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return service


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_history_recorder(request: Request) -> HistoryRecorder:
    return _from_state(request, "history_recorder", "History recorder")


async def get_history_queries(request: Request) -> HistoryQueryService:
    return _from_state(request, "history_queries", "History queries")


async def get_activity_reports(request: Request) -> ActivityReportGenerator:
    return _from_state(request, "activity_reports", "Activity reports")


async def get_user_service(request: Request) -> UserService:
    return _from_state(request, "user_service", "User service")


async def get_interaction_service(request: Request) -> InteractionService:
    return _from_state(request, "interaction_service", "Interaction service")
