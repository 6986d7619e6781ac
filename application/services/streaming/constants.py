"""Constants for SSE stream decoding."""

# Event names sent by the chat backend
EVENT_MESSAGE = "message"
EVENT_DONE = "done"
EVENT_MESSAGE_END = "message_end"
EVENT_ERROR = "error"

# Events after which no further answer fragments follow for the message
TERMINAL_EVENTS = frozenset({EVENT_DONE, EVENT_MESSAGE_END})

# SSE framing
EVENT_MARKER = "event:"
DATA_MARKER = "data:"
COMMENT_PREFIX = ":"
FRAME_SEPARATOR = "\n\n"

# Memory limit for text buffered while waiting for a frame to complete
MAX_BUFFER_SIZE = 1024 * 1024  # 1MB

# Accept header value for streaming requests
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"
