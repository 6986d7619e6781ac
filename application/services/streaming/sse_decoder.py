"""Incremental decoder for the chat backend's server-sent event stream.

The backend writes frames of the form::

    event: message
    data: {"answer": "Hel", "conversation_id": "..."}

separated by blank lines, but network reads can split or merge frames at any
byte. The decoder buffers text until a frame is complete and then extracts the
first balanced JSON object that follows each ``event:`` marker. Frames whose
JSON does not parse are dropped; the stream carries on.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from application.services.streaming.constants import (
    COMMENT_PREFIX,
    DATA_MARKER,
    EVENT_ERROR,
    EVENT_MARKER,
    EVENT_MESSAGE,
    FRAME_SEPARATOR,
    MAX_BUFFER_SIZE,
    TERMINAL_EVENTS,
)
from application.services.streaming.events import StreamEvent

logger = logging.getLogger(__name__)

EVENT_LINE_PATTERN = re.compile(
    rf"^{re.escape(EVENT_MARKER)}[ \t]*([^\s]*)[ \t]*$", re.MULTILINE
)
ID_LINE_PATTERN = re.compile(r"^id:[ \t]*(\S+)[ \t]*$", re.MULTILINE)


class _Missing:
    """Marker for a frame segment that contains no JSON object at all."""


MISSING = _Missing()

Payload = Union[Dict[str, Any], _Missing, None]


def find_object_end(text: str, start: int) -> int:
    """Return the index just past the object opened at ``text[start]``.

    Braces inside JSON strings are ignored. Returns -1 when the object is not
    closed within ``text``.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return -1


def extract_payload(segment: str) -> Payload:
    """Extract the first balanced JSON object from a frame segment.

    Returns:
        The decoded object, ``MISSING`` when the segment holds no object, or
        ``None`` when an object is present but malformed.
    """
    text = _strip_field_prefixes(segment)
    start = text.find("{")
    if start < 0:
        return MISSING

    end = find_object_end(text, start)
    if end < 0:
        return None

    try:
        payload = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def _strip_field_prefixes(segment: str) -> str:
    """Drop SSE field names so multi-line ``data:`` values join into one text."""
    lines = []
    for line in segment.split("\n"):
        if line.startswith(DATA_MARKER):
            value = line[len(DATA_MARKER):]
            lines.append(value[1:] if value.startswith(" ") else value)
        elif line.startswith(COMMENT_PREFIX) or line.startswith("id:"):
            continue
        else:
            lines.append(line)
    return "\n".join(lines)


class SSEDecoder:
    """Turns raw text chunks into ``StreamEvent`` objects.

    One decoder is used per streamed response. ``feed`` may be called with
    any slice of the stream; ``flush`` parses whatever remains once the
    connection closes.
    """

    def __init__(self, max_buffer_size: int = MAX_BUFFER_SIZE):
        self.max_buffer_size = max_buffer_size
        self._buffer = ""
        self.dropped_frames = 0

    def feed(self, chunk: str) -> List[StreamEvent]:
        """Add a chunk of stream text and return the events it completed."""
        if not chunk:
            return []

        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")
        events: List[StreamEvent] = []

        while True:
            index = self._buffer.find(FRAME_SEPARATOR)
            if index < 0:
                break
            frame = self._buffer[:index]
            self._buffer = self._buffer[index + len(FRAME_SEPARATOR):]
            events.extend(self._parse_frame(frame))

        events.extend(self._drain_unterminated_frames())

        if len(self._buffer) > self.max_buffer_size:
            logger.warning(
                f"SSE buffer exceeded {self.max_buffer_size} bytes without a frame "
                f"boundary, discarding buffered text"
            )
            self._buffer = ""
            self.dropped_frames += 1

        return events

    def flush(self) -> List[StreamEvent]:
        """Parse any buffered text left when the stream ends."""
        frame, self._buffer = self._buffer, ""
        if not frame.strip():
            return []
        return self._parse_frame(frame)

    def reset(self) -> None:
        """Drop buffered text so the decoder can be reused."""
        self._buffer = ""
        self.dropped_frames = 0

    def _drain_unterminated_frames(self) -> List[StreamEvent]:
        """Parse frames the backend wrote back to back without a blank line.

        Everything before the last ``event:`` line of the buffer is complete
        once a later ``event:`` line has arrived.
        """
        markers = list(EVENT_LINE_PATTERN.finditer(self._buffer))
        if len(markers) < 2:
            return []

        cut = markers[-1].start()
        complete, self._buffer = self._buffer[:cut], self._buffer[cut:]
        return self._parse_frame(complete)

    def _parse_frame(self, frame: str) -> List[StreamEvent]:
        """Parse one frame, which may hold several ``event:`` sections."""
        id_match = ID_LINE_PATTERN.search(frame)
        event_id = id_match.group(1) if id_match else None

        markers = list(EVENT_LINE_PATTERN.finditer(frame))
        if not markers:
            return self._parse_unnamed(frame, event_id)

        events = []
        for position, marker in enumerate(markers):
            end = markers[position + 1].start() if position + 1 < len(markers) else len(frame)
            payload = extract_payload(frame[marker.end():end])
            event = self._build_event(marker.group(1), payload, event_id)
            if event is not None:
                events.append(event)
        return events

    def _parse_unnamed(self, frame: str, event_id: Optional[str]) -> List[StreamEvent]:
        """Handle frames without an ``event:`` line.

        Comment-only frames (keep-alives) yield nothing. A data object that
        names its own event in an ``event`` key is accepted.
        """
        if not frame.strip() or all(
            line.startswith(COMMENT_PREFIX) for line in frame.split("\n") if line
        ):
            return []

        payload = extract_payload(frame)
        if isinstance(payload, dict) and isinstance(payload.get("event"), str):
            event = self._build_event(payload["event"], payload, event_id)
            return [event] if event is not None else []

        logger.debug(f"Ignoring SSE frame without event name: {frame[:200]!r}")
        return []

    def _build_event(
        self, name: str, payload: Payload, event_id: Optional[str]
    ) -> Optional[StreamEvent]:
        if payload is None:
            self.dropped_frames += 1
            logger.debug(f"Dropping malformed SSE frame for event '{name}'")
            return None

        if isinstance(payload, _Missing):
            if name in TERMINAL_EVENTS or name == EVENT_ERROR:
                return StreamEvent(event_type=name, data={}, event_id=event_id)
            logger.debug(f"Dropping SSE event '{name}' without a JSON payload")
            return None

        if not name:
            name = payload.get("event") if isinstance(payload.get("event"), str) else ""
            if not name:
                return None

        if name == EVENT_MESSAGE and not isinstance(payload.get("answer"), str):
            logger.debug("Ignoring message event without an answer field")
            return None

        return StreamEvent(event_type=name, data=payload, event_id=event_id)
