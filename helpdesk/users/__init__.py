from .repository import EmailAlreadyExistsError, User, UserRepository
from .service import UserNotFoundError, UserService

__all__ = ["EmailAlreadyExistsError", "User", "UserNotFoundError", "UserRepository", "UserService"]
