"""Decoding of the chat backend's server-sent event stream."""

from application.services.streaming.events import StreamEvent
from application.services.streaming.sse_decoder import SSEDecoder

__all__ = ["SSEDecoder", "StreamEvent"]
