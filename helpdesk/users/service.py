from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from helpdesk.core.errors import InvalidInputError, NotFoundError, require

from .repository import EmailAlreadyExistsError, User, UserRepository

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "colaborador"
DEFAULT_STATUS = "active"
MAX_NAME_LENGTH = 100
_REQUIRED_ON_UPDATE = {"email": "Email is required", "role": "Role is required", "status": "Status is required"}


class UserNotFoundError(NotFoundError):
    """Raised when a user could not be located."""

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


def _check_name(name: str) -> None:
    require(name, "Name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInputError(f"Name must be at most {MAX_NAME_LENGTH} characters")


class UserService:
    """User directory with unique email addresses."""

    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def create_user(
        self,
        *,
        name: str,
        email: str,
        phone: str | None = None,
        role: str | None = None,
        department: str | None = None,
        status: str | None = None,
    ) -> User:
        _check_name(name)
        require(email, "Email is required")
        if await self._repository.get_by_email(email) is not None:
            raise EmailAlreadyExistsError()

        now = datetime.now(timezone.utc)
        user = await self._repository.insert(
            User(
                id=str(uuid.uuid4()),
                name=name,
                email=email,
                phone=phone,
                role=role or DEFAULT_ROLE,
                department=department,
                status=status or DEFAULT_STATUS,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Created user %s", user.id)
        return user

    async def list_users(self) -> Sequence[User]:
        return await self._repository.list_all()

    async def get_user(self, user_id: str) -> User:
        user = await self._repository.get(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:
        if "name" in changes:
            _check_name(changes["name"])
        for field, message in _REQUIRED_ON_UPDATE.items():
            if field in changes:
                require(changes[field], message)
        email = changes.get("email")
        if email is not None:
            owner = await self._repository.get_by_email(email)
            if owner is not None and owner.id != user_id:
                raise EmailAlreadyExistsError()

        updated = await self._repository.update(user_id, changes)
        if updated is None:
            raise UserNotFoundError()
        return updated

    async def delete_user(self, user_id: str) -> None:
        if not await self._repository.delete(user_id):
            raise UserNotFoundError()
        logger.info("Deleted user %s", user_id)
