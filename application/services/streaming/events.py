"""SSE event representation and formatting."""

import json
from typing import Any, Dict, Optional

from application.services.streaming.constants import EVENT_ERROR, TERMINAL_EVENTS


class StreamEvent:
    """Represents one named event decoded from the chat backend's stream."""

    def __init__(
        self,
        event_type: str,
        data: Dict[str, Any],
        event_id: Optional[str] = None,
    ):
        """Initialize a stream event.

        Args:
            event_type: Type of event (message, done, message_end, error, ...)
            data: Decoded JSON payload
            event_id: Optional event ID from an ``id:`` line
        """
        self.event_type = event_type
        self.data = data
        self.event_id = event_id

    @property
    def answer(self) -> Optional[str]:
        """Answer snapshot carried by the event, if it is a string."""
        value = self.data.get("answer")
        return value if isinstance(value, str) else None

    @property
    def conversation_id(self) -> Optional[str]:
        value = self.data.get("conversation_id")
        return value if isinstance(value, str) and value else None

    @property
    def is_terminal(self) -> bool:
        return self.event_type in TERMINAL_EVENTS

    @property
    def is_error(self) -> bool:
        return self.event_type == EVENT_ERROR

    def to_sse(self) -> str:
        """Convert event to SSE format.

        Returns:
            SSE-formatted string with event type, data, and optional ID
        """
        lines = []
        if self.event_id:
            lines.append(f"id: {self.event_id}")
        lines.append(f"event: {self.event_type}")
        lines.append(f"data: {json.dumps(self.data)}")

        return "\n".join(lines) + "\n\n"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StreamEvent):
            return NotImplemented
        return self.event_type == other.event_type and self.data == other.data

    def __repr__(self) -> str:
        return f"StreamEvent(event_type={self.event_type!r}, data={self.data!r})"

