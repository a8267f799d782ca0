from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from helpdesk.api.responses import ApiResponse
from helpdesk.dependencies import get_user_service
from helpdesk.users import User, UserService

router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=50)
    role: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=100)
    status: str | None = Field(default=None, max_length=50)


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    role: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=100)
    status: str | None = Field(default=None, max_length=50)
    last_login: datetime | None = None

    @field_validator("name", "email", "role", "status")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    def changes(self) -> dict[str, object]:
        values = self.model_dump(exclude_unset=True)
        if not values:
            raise HTTPException(status_code=400, detail="No fields provided for update")
        return values


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str | None
    role: str
    department: str | None
    status: str
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime


UserServiceDep = Annotated[UserService, Depends(get_user_service)]


def _to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


@router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, service: UserServiceDep) -> ApiResponse[UserResponse]:
    user = await service.create_user(**payload.model_dump())
    return ApiResponse(message="User created", data=_to_response(user))


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users(service: UserServiceDep) -> ApiResponse[list[UserResponse]]:
    users = await service.list_users()
    return ApiResponse(message=f"{len(users)} users found", data=[_to_response(user) for user in users])


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: str, service: UserServiceDep) -> ApiResponse[UserResponse]:
    user = await service.get_user(user_id)
    return ApiResponse(message="User found", data=_to_response(user))


@router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(user_id: str, payload: UserUpdateRequest, service: UserServiceDep) -> ApiResponse[UserResponse]:
    user = await service.update_user(user_id, payload.changes())
    return ApiResponse(message="User updated", data=_to_response(user))


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(user_id: str, service: UserServiceDep) -> ApiResponse[None]:
    await service.delete_user(user_id)
    return ApiResponse(message="User deleted")
