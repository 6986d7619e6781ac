"""Client for the chat backend REST + SSE API."""

from application.services.chat_api.client import ChatAPIClient
from application.services.chat_api.constants import (
    RESPONSE_MODE_BLOCKING,
    RESPONSE_MODE_STREAMING,
)

__all__ = ["ChatAPIClient", "RESPONSE_MODE_BLOCKING", "RESPONSE_MODE_STREAMING"]
