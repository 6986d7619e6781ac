"""
Conversation Entity for the NoteAI chat client.

Represents a conversation row as returned by the chat backend's
``/conversations`` endpoint. Conversations are created server-side; the client
only reads them or captures an id echoed back from a send.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Conversation(BaseModel):
    """
    Conversation entity represents a chat session owned by the backend.

    Timestamps are epoch seconds, exactly as the backend sends them.
    """

    ENTITY_NAME: ClassVar[str] = "Conversation"
    ENTITY_VERSION: ClassVar[int] = 1

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Server-assigned conversation ID")

    name: str = Field(default="", description="Display name for the conversation")

    inputs: Optional[Dict[str, Any]] = Field(
        default=None, description="Input variables the conversation was started with"
    )

    status: str = Field(default="normal", description="Backend status of the conversation")

    introduction: str = Field(
        default="", description="Opening statement configured for the assistant"
    )

    created_at: int = Field(default=0, description="Creation time (epoch seconds)")

    updated_at: int = Field(default=0, description="Last update time (epoch seconds)")

    @property
    def created_datetime(self) -> datetime:
        """Creation time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)

    @property
    def updated_datetime(self) -> datetime:
        """Last update time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.updated_at, tz=timezone.utc)
