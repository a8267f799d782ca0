"""Route modules exposed by the API package."""

from . import health, history, interactions, tickets, users

__all__ = ["health", "history", "interactions", "tickets", "users"]
