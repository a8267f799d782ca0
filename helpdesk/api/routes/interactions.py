from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.api.responses import ApiResponse, CountResponse
from helpdesk.api.types import UuidStr
from helpdesk.dependencies import get_interaction_service
from helpdesk.interactions import Interaction, InteractionService
from helpdesk.interactions.service import MAX_CHANNEL_LENGTH, MAX_MESSAGE_LENGTH, MAX_SENDER_LENGTH

router = APIRouter(prefix="/interactions", tags=["interactions"])


class InteractionCreateRequest(BaseModel):
    user_id: UuidStr
    ticket_id: UuidStr
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    sent_by: str | None = Field(default=None, max_length=MAX_SENDER_LENGTH)
    channel: str | None = Field(default=None, max_length=MAX_CHANNEL_LENGTH)
    timestamp: datetime | None = None


class InteractionUpdateRequest(BaseModel):
    message: str | None = Field(default=None, min_length=1, max_length=MAX_MESSAGE_LENGTH)
    sent_by: str | None = Field(default=None, max_length=MAX_SENDER_LENGTH)
    channel: str | None = Field(default=None, max_length=MAX_CHANNEL_LENGTH)

    def changes(self) -> dict[str, object]:
        values = self.model_dump(exclude_none=True)
        if not values:
            raise HTTPException(status_code=400, detail="No fields provided for update")
        return values


class InteractionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    ticket_id: str
    message: str
    sent_by: str
    channel: str
    timestamp: datetime


InteractionServiceDep = Annotated[InteractionService, Depends(get_interaction_service)]


def _to_response(interaction: Interaction) -> InteractionResponse:
    return InteractionResponse.model_validate(interaction)


def _to_list(interactions: list[Interaction]) -> ApiResponse[list[InteractionResponse]]:
    return ApiResponse(
        message=f"{len(interactions)} interactions found",
        data=[_to_response(item) for item in interactions],
    )


@router.post("", response_model=ApiResponse[InteractionResponse], status_code=status.HTTP_201_CREATED)
async def create_interaction(
    payload: InteractionCreateRequest, service: InteractionServiceDep
) -> ApiResponse[InteractionResponse]:
    interaction = await service.create_interaction(**payload.model_dump())
    return ApiResponse(message="Interaction created", data=_to_response(interaction))


@router.get("/ticket/{ticket_id}", response_model=ApiResponse[list[InteractionResponse]])
async def get_interactions_by_ticket(
    ticket_id: str, service: InteractionServiceDep
) -> ApiResponse[list[InteractionResponse]]:
    return _to_list(await service.by_ticket(ticket_id))


@router.get("/ticket/{ticket_id}/count", response_model=ApiResponse[CountResponse])
async def count_interactions_by_ticket(ticket_id: str, service: InteractionServiceDep) -> ApiResponse[CountResponse]:
    count = await service.count_by_ticket(ticket_id)
    return ApiResponse(message="Count completed", data=CountResponse(count=count))


@router.get("/user/{user_id}", response_model=ApiResponse[list[InteractionResponse]])
async def get_interactions_by_user(
    user_id: str, service: InteractionServiceDep
) -> ApiResponse[list[InteractionResponse]]:
    return _to_list(await service.by_user(user_id))


@router.get("/{interaction_id}", response_model=ApiResponse[InteractionResponse])
async def get_interaction(interaction_id: str, service: InteractionServiceDep) -> ApiResponse[InteractionResponse]:
    interaction = await service.get_interaction(interaction_id)
    return ApiResponse(message="Interaction found", data=_to_response(interaction))


@router.put("/{interaction_id}", response_model=ApiResponse[InteractionResponse])
async def update_interaction(
    interaction_id: str,
    payload: InteractionUpdateRequest,
    service: InteractionServiceDep,
) -> ApiResponse[InteractionResponse]:
    interaction = await service.update_interaction(interaction_id, payload.changes())
    return ApiResponse(message="Interaction updated", data=_to_response(interaction))


@router.delete("/{interaction_id}", response_model=ApiResponse[None])
async def delete_interaction(interaction_id: str, service: InteractionServiceDep) -> ApiResponse[None]:
    await service.delete_interaction(interaction_id)
    return ApiResponse(message="Interaction deleted")
