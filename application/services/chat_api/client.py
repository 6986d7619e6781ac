"""HTTP client for the chat backend.

Wraps the three endpoints the chat core needs:

- ``POST /chat-messages`` in blocking mode (one JSON object) or streaming mode
  (a live SSE text stream)
- ``GET /messages`` for a conversation's history
- ``GET /conversations`` for the user's conversation list

Every call opens its own ``httpx.AsyncClient``; the client object keeps only
its configuration, so it can be shared freely. Failures are translated into
the exceptions of ``common.exception.exceptions``.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional, Union

import httpx

from application.services.chat_api.constants import (
    CHAT_MESSAGES_ENDPOINT,
    CONVERSATIONS_ENDPOINT,
    DEFAULT_USER_ID,
    MESSAGES_ENDPOINT,
    NEW_CONVERSATION_GREETING,
    RESPONSE_MODE_BLOCKING,
    RESPONSE_MODE_STREAMING,
    RESPONSE_MODES,
)
from application.services.streaming.constants import EVENT_STREAM_CONTENT_TYPE
from common.config.config import (
    CONVERSATIONS_PAGE_LIMIT,
    HTTP_CONNECT_TIMEOUT,
    HTTP_TIMEOUT,
    MESSAGES_PAGE_LIMIT,
)
from common.exception.exceptions import (
    DecodingFailureException,
    InvalidRequestException,
    NetworkFailureException,
    ServerResponseException,
)

logger = logging.getLogger(__name__)


class ChatAPIClient:
    """Issues requests to the chat backend with bearer-token auth."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        user_id: str = DEFAULT_USER_ID,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the chat API client.

        Args:
            base_url: Backend base URL, e.g. ``http://host/v1``
            api_key: Chat application API key sent as a bearer token
            user_id: Opaque user identifier sent with every request
            timeout: httpx timeout; defaults to the configured connect/total timeouts
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``)

        Raises:
            InvalidRequestException: If the base URL or API key is empty
        """
        if not base_url or not base_url.strip():
            raise InvalidRequestException(
                "Chat API base URL is empty. Set CHAT_API_BASE_URL."
            )
        if not api_key:
            raise InvalidRequestException("Chat API key is missing. Set CHAT_API_KEY.")

        self.base_url = base_url.strip().rstrip("/")
        self.api_key = api_key
        self.user_id = user_id
        self.timeout = timeout or httpx.Timeout(HTTP_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT)
        self._transport = transport

        logger.debug(f"ChatAPIClient initialized with base URL {self.base_url}")

    # ------------------------------------------------------------------
    # chat-messages
    # ------------------------------------------------------------------

    async def send(
        self,
        query: str,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        mode: str = RESPONSE_MODE_BLOCKING,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> Union[Dict[str, Any], AsyncIterator[str]]:
        """Send a chat message in the requested response mode.

        Returns:
            The decoded JSON object in blocking mode, or an async iterator of
            raw stream text in streaming mode. Errors for a streamed request
            that only show up on the wire (status, connectivity) are raised
            while iterating.
        """
        if mode == RESPONSE_MODE_STREAMING:
            return self.stream_chat_message(query, user_id, conversation_id, inputs)
        return await self.send_blocking(query, user_id, conversation_id, inputs)

    async def send_blocking(
        self,
        query: str,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a chat message and wait for the complete answer."""
        content = self._encode_body(
            self.build_chat_body(query, user_id, conversation_id, RESPONSE_MODE_BLOCKING, inputs)
        )
        response = await self._request("POST", CHAT_MESSAGES_ENDPOINT, content=content)
        return self._decode_object(response)

    def stream_chat_message(
        self,
        query: str,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[str]:
        """Send a chat message and return the response as a text stream.

        The request body is validated immediately; the connection is opened
        when iteration starts.
        """
        content = self._encode_body(
            self.build_chat_body(query, user_id, conversation_id, RESPONSE_MODE_STREAMING, inputs)
        )
        return self._stream_text(content)

    async def create_conversation(self, name: str) -> Dict[str, Any]:
        """Start a new, auto-named conversation by sending a greeting.

        Returns:
            The blocking response, whose ``conversation_id`` is the new id
        """
        logger.info(f"Creating new conversation '{name}' via chat-messages")
        return await self.send_blocking(NEW_CONVERSATION_GREETING.format(name=name))

    def build_chat_body(
        self,
        query: str,
        user_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        mode: str = RESPONSE_MODE_BLOCKING,
        inputs: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build the JSON body for ``POST /chat-messages``.

        ``auto_generate_name`` is only sent when no conversation id is given,
        which asks the backend to create and name a new conversation.

        Raises:
            InvalidRequestException: If the query is empty or the mode unknown
        """
        if not query or not query.strip():
            raise InvalidRequestException("Query must not be empty.")
        if mode not in RESPONSE_MODES:
            raise InvalidRequestException(f"Unknown response mode: {mode}")

        body: Dict[str, Any] = {
            "query": query,
            "user": user_id or self.user_id,
            "response_mode": mode,
            "inputs": inputs or {},
        }

        if conversation_id:
            body["conversation_id"] = conversation_id
            logger.debug(f"Sending message to existing conversation_id: {conversation_id}")
        else:
            body["auto_generate_name"] = True
            logger.debug("No conversation_id, requesting a new auto-named conversation")

        return body

    # ------------------------------------------------------------------
    # messages / conversations
    # ------------------------------------------------------------------

    async def list_messages(
        self, conversation_id: str, limit: int = MESSAGES_PAGE_LIMIT
    ) -> Dict[str, Any]:
        """Fetch one page of a conversation's message history."""
        if not conversation_id:
            raise InvalidRequestException("conversation_id is required to list messages.")

        params = {"conversation_id": conversation_id, "user": self.user_id, "limit": limit}
        response = await self._request("GET", MESSAGES_ENDPOINT, params=params)
        return self._decode_object(response)

    async def list_conversations(self, limit: int = CONVERSATIONS_PAGE_LIMIT) -> Dict[str, Any]:
        """Fetch one page of the user's conversations."""
        params = {"user": self.user_id, "limit": limit}
        response = await self._request("GET", CONVERSATIONS_ENDPOINT, params=params)
        return self._decode_object(response)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    def _headers(self, streaming: bool = False) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if streaming:
            headers["Accept"] = EVENT_STREAM_CONTENT_TYPE
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _encode_body(body: Dict[str, Any]) -> bytes:
        try:
            encoded = json.dumps(body).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize request body: {e}")
            raise InvalidRequestException(f"Failed to encode request body: {e}") from e

        logger.debug(f"Request body: {body}")
        return encoded

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        url = self._url(endpoint)
        logger.debug(f"{method} request to {url}")

        try:
            async with self._client() as client:
                response = await client.request(
                    method, url, params=params, content=content, headers=self._headers()
                )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise InvalidRequestException(f"The provided URL was invalid: {url}") from e
        except httpx.TimeoutException as e:
            raise NetworkFailureException(f"Request to {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkFailureException(f"The network request failed: {e}") from e

        logger.debug(f"Received {len(response.content)} bytes from {url} ({response.status_code})")

        if not response.is_success:
            raise ServerResponseException(response.status_code, response.text or None)
        return response

    async def _stream_text(self, content: bytes) -> AsyncIterator[str]:
        url = self._url(CHAT_MESSAGES_ENDPOINT)
        logger.debug(f"POST streaming request to {url}")

        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", url, content=content, headers=self._headers(streaming=True)
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.debug(
                            f"Streaming request received non-OK HTTP status "
                            f"{response.status_code}, body: {body[:500]}"
                        )
                        raise ServerResponseException(
                            response.status_code,
                            f"Streaming failed with status {response.status_code}. "
                            f"Body: {body or 'No body'}",
                        )

                    async for chunk in response.aiter_text():
                        if chunk:
                            yield chunk
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise InvalidRequestException(f"The provided URL was invalid: {url}") from e
        except httpx.TimeoutException as e:
            raise NetworkFailureException(f"Streaming request to {url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkFailureException(f"The network request failed: {e}") from e

    @staticmethod
    def _decode_object(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise DecodingFailureException(
                f"Failed to decode the server's response: {e}"
            ) from e

        if not isinstance(payload, dict):
            raise DecodingFailureException(
                f"Expected a JSON object from the server, got {type(payload).__name__}"
            )
        return payload
