"""
Response models for the chat backend API.

The list endpoints (``/messages``, ``/conversations``) share one paginated
envelope: ``{"data": [...], "limit": N, "has_more": bool}``.
"""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from application.entity.conversation import Conversation
from application.entity.message import Message

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated list envelope."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    limit: int = Field(..., description="Page size requested")
    has_more: bool = Field(..., description="Whether another page is available")
    data: List[T] = Field(default_factory=list, description="Page rows")


MessagesResponse = PaginatedResponse[Message]
ConversationsResponse = PaginatedResponse[Conversation]
