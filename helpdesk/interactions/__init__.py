from .repository import Interaction, InteractionRepository
from .service import InteractionNotFoundError, InteractionService

__all__ = ["Interaction", "InteractionNotFoundError", "InteractionRepository", "InteractionService"]
