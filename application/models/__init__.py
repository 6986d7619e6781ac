"""
Application models package.

Contains the response DTOs returned by the chat backend.
"""

from application.models.response_models import (
    ConversationsResponse,
    MessagesResponse,
    PaginatedResponse,
)

__all__ = [
    "ConversationsResponse",
    "MessagesResponse",
    "PaginatedResponse",
]
