"""
Message Entity for the NoteAI chat client.

One Message is one turn of a conversation: the user's query and the
assistant's answer. Messages created locally start in ``sending`` state and
are reconciled with the backend response by id.
"""

import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

THINK_BLOCK_PATTERN = re.compile(r"<think>[\s\S]*?</think>")
THINK_CONTENT_PATTERN = re.compile(r"<think>([\s\S]+?)</think>")


class MessageStatus(str, Enum):
    """Lifecycle status of a message."""

    SENDING = "sending"
    NORMAL = "normal"
    ERROR = "error"


class Feedback(BaseModel):
    """User feedback attached to an answer."""

    rating: Optional[str] = None
    content: Optional[str] = None


class MessageFile(BaseModel):
    """File attached to a message."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    transfer_method: str
    url: Optional[str] = None
    upload_file_id: Optional[str] = None


class RetrieverResource(BaseModel):
    """Citation/source object the assistant used for an answer."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    segment: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None
    score: Optional[float] = None
    hit_count: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    semantic_id: Optional[str] = None
    semantic_ranker: Optional[str] = None


class Message(BaseModel):
    """
    Message entity: a single query/answer turn.

    ``id`` is assigned once and never changes. ``answer`` is replaced while a
    streaming response arrives and fixed when the message is finalized.
    """

    ENTITY_NAME: ClassVar[str] = "Message"
    ENTITY_VERSION: ClassVar[int] = 1

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Stable message identifier")

    conversation_id: str = Field(default="", description="Owning conversation ID")

    query: str = Field(default="", description="User-authored text")

    answer: str = Field(default="", description="Assistant-authored text")

    created_at: int = Field(..., description="Creation time (epoch seconds)")

    parent_message_id: Optional[str] = None

    status: MessageStatus = Field(default=MessageStatus.NORMAL)

    error: Optional[str] = Field(
        default=None, description="Error description, only set when status is error"
    )

    agent_thoughts: Optional[List[Any]] = None

    feedback: Optional[Feedback] = None

    inputs: Optional[Dict[str, Any]] = None

    message_files: Optional[List[MessageFile]] = None

    retriever_resources: List[RetrieverResource] = Field(default_factory=list)

    @field_validator("retriever_resources", mode="before")
    @classmethod
    def _wrap_single_resource(cls, value: Any) -> Any:
        """Accept a single resource object as well as a list."""
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value

    @classmethod
    def pending(cls, query: str, conversation_id: Optional[str] = None) -> "Message":
        """Create a locally-optimistic message awaiting the backend response."""
        return cls(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id or "",
            query=query,
            answer="",
            created_at=int(datetime.now(timezone.utc).timestamp()),
            status=MessageStatus.SENDING,
        )

    def with_answer(self, answer: str) -> "Message":
        """Return a copy carrying ``answer``; every other field is kept."""
        return self.model_copy(update={"answer": answer})

    @property
    def created_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)

    @property
    def clean_answer(self) -> str:
        """Answer text with any <think>...</think> reasoning blocks removed."""
        return THINK_BLOCK_PATTERN.sub("", self.answer).strip()

    @property
    def thinking_content(self) -> Optional[str]:
        match = THINK_CONTENT_PATTERN.search(self.answer)
        if not match:
            return None
        return match.group(1).strip()

    @property
    def is_from_user(self) -> bool:
        return bool(self.query) and not self.answer
