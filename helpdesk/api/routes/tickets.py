from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.api.responses import ApiResponse
from helpdesk.api.types import UuidStr
from helpdesk.dependencies import get_ticket_service
from helpdesk.tickets.models import Ticket, TicketFilters, TicketPage
from helpdesk.tickets.service import MAX_MESSAGE_LENGTH, MAX_PAGE_SIZE, TicketService
from helpdesk.tickets.state import TicketPriority, TicketStatus

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    user_id: UuidStr
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    # accepted for compatibility, new tickets always start open
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    category: str | None = None
    assigned_to: UuidStr | None = None
    source: str | None = None
    escalation_level: str | None = None
    resolution_notes: str | None = None


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus
    changed_by: UuidStr
    notes: str | None = Field(default=None, max_length=1000)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    message: str
    status: TicketStatus
    priority: TicketPriority
    category: str | None
    assigned_to: str | None
    source: str | None
    escalation_level: str | None
    resolution_notes: str | None
    resolved_at: datetime | None
    created_at: datetime
    updated_at: datetime


class PaginationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")


class TicketListResponse(BaseModel):
    tickets: list[TicketResponse]
    pagination: PaginationResponse


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_list_response(page: TicketPage) -> TicketListResponse:
    return TicketListResponse(
        tickets=[_to_response(ticket) for ticket in page.tickets],
        pagination=PaginationResponse(
            page=page.pagination.page,
            limit=page.pagination.limit,
            total=page.pagination.total,
            total_pages=page.pagination.total_pages,
        ),
    )


@router.post("", response_model=ApiResponse[TicketResponse], status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> ApiResponse[TicketResponse]:
    ticket = await service.create_ticket(
        user_id=payload.user_id,
        message=payload.message,
        priority=payload.priority,
        category=payload.category,
        assigned_to=payload.assigned_to,
        source=payload.source,
        escalation_level=payload.escalation_level,
        resolution_notes=payload.resolution_notes,
    )
    return ApiResponse(message="Ticket created", data=_to_response(ticket))


@router.get("", response_model=ApiResponse[TicketListResponse])
async def list_tickets(
    service: TicketServiceDep,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = Query(default=None),
    category: str | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
) -> ApiResponse[TicketListResponse]:
    filters = TicketFilters(
        status=status_filter,
        priority=priority,
        category=category,
        assigned_to=assigned_to,
        user_id=user_id,
    )
    result = await service.list_tickets(filters, page=page, limit=limit)
    return ApiResponse(message=f"{len(result.tickets)} tickets found", data=_to_list_response(result))


@router.get("/{ticket_id}", response_model=ApiResponse[TicketResponse])
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> ApiResponse[TicketResponse]:
    ticket = await service.get_ticket(ticket_id)
    return ApiResponse(message="Ticket found", data=_to_response(ticket))


@router.patch("/{ticket_id}/status", response_model=ApiResponse[TicketResponse])
async def update_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
) -> ApiResponse[TicketResponse]:
    ticket = await service.update_status(
        ticket_id,
        status=payload.status,
        actor_id=payload.changed_by,
        note=payload.notes,
    )
    return ApiResponse(message="Ticket status updated", data=_to_response(ticket))
