"""Conversation state machine for one chat session.

The session owns the ordered message list of a conversation and is its only
writer. A send appends an optimistic ``sending`` message straight away and
then reconciles it with the backend response:

    sending -> (streaming snapshots)* -> normal
    sending -> error

All mutation happens on the event loop that runs the session; network I/O is
awaited, so the loop stays free for the UI while a request is in flight.
"""

import asyncio
import functools
import logging
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from application.entity.message import Message, MessageStatus, RetrieverResource
from application.services.chat.history_loader import MessageHistoryLoader
from application.services.chat.wait_signal import WaitSignal
from application.services.chat_api.client import ChatAPIClient
from application.services.chat_api.constants import (
    RESPONSE_MODE_BLOCKING,
    RESPONSE_MODE_STREAMING,
    RESPONSE_MODES,
)
from application.services.streaming.constants import EVENT_MESSAGE
from application.services.streaming.events import StreamEvent
from application.services.streaming.sse_decoder import SSEDecoder
from common.exception.exceptions import (
    ChatAPIException,
    ServerResponseException,
    UnexpectedFormatException,
)

logger = logging.getLogger(__name__)

UNEXPECTED_FORMAT_MESSAGE = "Unexpected response format from server."
EMPTY_STREAM_MESSAGE = "The stream ended before the assistant answered."
CANCELLED_MESSAGE = "Request cancelled"

SessionListener = Callable[["ConversationSession"], None]


def extract_retriever_resources(payload: Optional[Dict[str, Any]]) -> List[RetrieverResource]:
    """Read citation objects from a final response or terminal event.

    The backend puts them under ``metadata.retriever_resources``; a top-level
    ``retriever_resources`` key is accepted too, as is a single object.
    """
    if not payload:
        return []

    metadata = payload.get("metadata")
    raw = metadata.get("retriever_resources") if isinstance(metadata, dict) else None
    if raw is None:
        raw = payload.get("retriever_resources")
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = [raw]

    resources = []
    for item in raw:
        try:
            resources.append(RetrieverResource.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed retriever resource: {e}")
    return resources


class ConversationSession:
    """Owns the messages of one conversation and drives sends against the backend."""

    def __init__(
        self,
        client: ChatAPIClient,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        response_mode: str = RESPONSE_MODE_BLOCKING,
        history_loader: Optional[MessageHistoryLoader] = None,
        wait_signal: Optional[WaitSignal] = None,
        on_new_conversation_created: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize a conversation session.

        Args:
            client: Chat API client used for sends
            conversation_id: Existing conversation, or None to start a new one on first send
            user_id: User sent with requests; defaults to the client's user
            response_mode: ``blocking`` or ``streaming``
            history_loader: Loader for ``load_messages``; built from ``client`` if omitted
            wait_signal: Long-wait signal; a default 180s signal is created if omitted
            on_new_conversation_created: Called once with the id the backend assigns
                to a conversation started by this session
        """
        self.client = client
        self.conversation_id = conversation_id or None
        self.user_id = user_id or client.user_id
        self.response_mode = RESPONSE_MODE_BLOCKING
        self.set_response_mode(response_mode)
        self.history_loader = history_loader or MessageHistoryLoader(client)
        self.wait_signal = wait_signal or WaitSignal(on_change=self._notify)
        if self.wait_signal.on_change is None:
            self.wait_signal.on_change = self._notify
        self.on_new_conversation_created = on_new_conversation_created

        self.is_loading = False
        self.error_message: Optional[str] = None
        self.is_streaming_response = False
        self.current_streamed_response = ""

        self._messages: Dict[str, Message] = {}
        self._deliveries: Dict[str, asyncio.Task] = {}
        self._send_lock = asyncio.Lock()
        self._listeners: List[SessionListener] = []
        self._conversation_announced = False

    # ------------------------------------------------------------------
    # observable state
    # ------------------------------------------------------------------

    @property
    def messages(self) -> List[Message]:
        """Messages in display order."""
        return list(self._messages.values())

    def get_message(self, message_id: str) -> Optional[Message]:
        return self._messages.get(message_id)

    @property
    def has_pending_sends(self) -> bool:
        return bool(self._deliveries)

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked with the session after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_response_mode(self, mode: str) -> None:
        if mode not in RESPONSE_MODES:
            raise ValueError(f"Unknown response mode '{mode}', expected one of {RESPONSE_MODES}")
        self.response_mode = mode

    # ------------------------------------------------------------------
    # sending
    # ------------------------------------------------------------------

    def submit(self, text: str) -> Optional[asyncio.Task]:
        """Append an optimistic message for ``text`` and schedule its delivery.

        The pending message is in ``messages`` when this returns, before any
        network activity. Must be called from the session's event loop.

        Returns:
            The delivery task, or None when ``text`` is blank
        """
        if not text or not text.strip():
            return None

        message = Message.pending(text, self.conversation_id)
        self._messages[message.id] = message
        self.is_loading = True
        self.error_message = None
        self.wait_signal.start()
        self._notify()

        task = asyncio.get_running_loop().create_task(
            self._deliver(message.id, text, self.response_mode), name=message.id
        )
        self._deliveries[message.id] = task
        task.add_done_callback(functools.partial(self._on_delivery_done, message.id))
        return task

    async def send_message(self, text: str) -> Optional[Message]:
        """Send ``text`` and wait until its message settles.

        Failures are recorded on the message rather than raised.

        Returns:
            The settled message, or None when ``text`` is blank
        """
        task = self.submit(text)
        if task is None:
            return None

        await asyncio.wait([task])
        return self._messages.get(task.get_name())

    def cancel(self, message_id: Optional[str] = None) -> int:
        """Cancel in-flight sends; cancelled messages end in ``error``.

        Args:
            message_id: Only cancel this message's send; all sends when None

        Returns:
            Number of sends cancelled
        """
        if message_id is None:
            targets = list(self._deliveries.values())
        elif message_id in self._deliveries:
            targets = [self._deliveries[message_id]]
        else:
            targets = []

        for task in targets:
            task.cancel()
        return len(targets)

    async def close(self) -> None:
        """Cancel outstanding sends and stop the wait signal."""
        tasks = list(self._deliveries.values())
        self.cancel()
        if tasks:
            await asyncio.wait(tasks)
        self.wait_signal.stop()

    async def _deliver(self, message_id: str, text: str, mode: str) -> None:
        async with self._send_lock:
            if not self.wait_signal.is_running:
                self.wait_signal.start()
            self.current_streamed_response = ""
            is_new_conversation = not self.conversation_id

            try:
                result = await self.client.send(
                    text,
                    user_id=self.user_id,
                    conversation_id=self.conversation_id,
                    mode=mode,
                )
                if mode == RESPONSE_MODE_STREAMING:
                    await self._consume_stream(message_id, result, is_new_conversation)
                else:
                    self._apply_blocking_response(message_id, result, is_new_conversation)
            except ChatAPIException as e:
                logger.warning(f"Error sending message {message_id}: {e.description}")
                self._fail(message_id, e.description)
            except Exception as e:
                logger.error(f"Unexpected error sending message {message_id}: {e}", exc_info=True)
                self._fail(message_id, str(e) or type(e).__name__)

    def _on_delivery_done(self, message_id: str, task: asyncio.Task) -> None:
        self._deliveries.pop(message_id, None)

        if task.cancelled():
            message = self._messages.get(message_id)
            if message is not None and message.status == MessageStatus.SENDING:
                logger.info(f"Send of message {message_id} cancelled")
                self._fail(message_id, CANCELLED_MESSAGE)

        if not self._deliveries:
            self.is_loading = False
            self.wait_signal.stop()
        self._notify()

    # ------------------------------------------------------------------
    # blocking mode
    # ------------------------------------------------------------------

    def _apply_blocking_response(
        self, message_id: str, response: Dict[str, Any], is_new_conversation: bool
    ) -> None:
        if is_new_conversation and not self._capture_conversation_id(
            response.get("conversation_id")
        ):
            logger.warning(
                "New conversation was expected, but 'conversation_id' is missing "
                "or empty in the response"
            )

        answer = response.get("answer")
        if isinstance(answer, str):
            self._finalize(message_id, answer, response)
            return

        logger.warning(f"Missing answer in response, keys: {sorted(response)}")
        self._fail(message_id, UnexpectedFormatException(UNEXPECTED_FORMAT_MESSAGE).description)

    # ------------------------------------------------------------------
    # streaming mode
    # ------------------------------------------------------------------

    async def _consume_stream(
        self, message_id: str, stream: AsyncIterator[str], is_new_conversation: bool
    ) -> None:
        decoder = SSEDecoder()
        try:
            async for chunk in stream:
                if self._apply_stream_events(message_id, decoder.feed(chunk), is_new_conversation):
                    return

            if self._apply_stream_events(message_id, decoder.flush(), is_new_conversation):
                return

            self._finish_unterminated_stream(message_id, is_new_conversation)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _apply_stream_events(
        self, message_id: str, events: Iterable[StreamEvent], is_new_conversation: bool
    ) -> bool:
        """Apply decoded events in arrival order.

        Returns:
            True once the message has settled (terminal or error event)
        """
        for event in events:
            if is_new_conversation and event.conversation_id:
                self._capture_conversation_id(event.conversation_id)

            if event.is_error:
                status = event.data.get("status")
                error = ServerResponseException(
                    status if isinstance(status, int) else 500,
                    event.data.get("message") or event.data.get("code"),
                )
                self._fail(message_id, error.description)
                return True

            if event.event_type == EVENT_MESSAGE:
                if event.answer:
                    self._apply_snapshot(message_id, event.answer)
                continue

            if event.is_terminal:
                self._finish_stream(message_id, event.data)
                return True

            logger.debug(f"Ignoring stream event '{event.event_type}'")
        return False

    def _apply_snapshot(self, message_id: str, answer: str) -> None:
        """Replace the pending answer with the latest cumulative snapshot."""
        message = self._messages.get(message_id)
        if message is None or message.status != MessageStatus.SENDING:
            return
        self.is_streaming_response = True
        self.current_streamed_response = answer
        self._messages[message_id] = message.with_answer(answer)
        self._notify()

    def _finish_stream(self, message_id: str, payload: Dict[str, Any]) -> None:
        answer = self.current_streamed_response
        self.is_streaming_response = False
        self.current_streamed_response = ""

        if answer:
            self._finalize(message_id, answer, payload)
        else:
            self._fail(message_id, UnexpectedFormatException(EMPTY_STREAM_MESSAGE).description)

    def _finish_unterminated_stream(self, message_id: str, is_new_conversation: bool) -> None:
        if is_new_conversation and not self.conversation_id:
            logger.warning("Stream closed without reporting a conversation_id for the new conversation")

        if self.current_streamed_response:
            logger.warning(
                f"Stream for message {message_id} closed without a done event, "
                f"keeping the last answer snapshot"
            )
        self._finish_stream(message_id, {})

    # ------------------------------------------------------------------
    # reconciliation
    # ------------------------------------------------------------------

    def _capture_conversation_id(self, conversation_id: Any) -> bool:
        """Adopt a server-assigned conversation id for a new conversation.

        Returns:
            True if the session has a conversation id afterwards
        """
        if not isinstance(conversation_id, str) or not conversation_id:
            return bool(self.conversation_id)
        if self.conversation_id:
            return True

        self.conversation_id = conversation_id
        logger.info(f"New conversation created. Captured conversation_id: {conversation_id}")

        if not self._conversation_announced:
            self._conversation_announced = True
            if self.on_new_conversation_created is not None:
                try:
                    self.on_new_conversation_created(conversation_id)
                except Exception as e:
                    logger.error(
                        f"on_new_conversation_created failed for {conversation_id}: {e}",
                        exc_info=True,
                    )
        self._notify()
        return True

    def _finalize(self, message_id: str, answer: str, payload: Optional[Dict[str, Any]] = None) -> None:
        """Settle a message as ``normal`` with its final answer."""
        message = self._messages.get(message_id)
        if message is None:
            logger.warning(f"Cannot finalize unknown message {message_id}")
            return

        resources = extract_retriever_resources(payload)
        self._messages[message_id] = message.model_copy(
            update={
                "answer": answer,
                "status": MessageStatus.NORMAL,
                "error": None,
                "conversation_id": message.conversation_id or self.conversation_id or "",
                "retriever_resources": resources or message.retriever_resources,
            }
        )
        self.wait_signal.stop()
        self._notify()

    def _fail(self, message_id: str, description: str) -> None:
        message = self._messages.get(message_id)
        if message is not None:
            self._messages[message_id] = message.model_copy(
                update={"status": MessageStatus.ERROR, "error": description}
            )
        self.error_message = f"Failed to send message: {description}"
        self.is_streaming_response = False
        self.current_streamed_response = ""
        self.wait_signal.stop()
        self._notify()

    # ------------------------------------------------------------------
    # history
    # ------------------------------------------------------------------

    async def load_messages(self) -> None:
        """Replace the message list with the conversation's stored history.

        Does nothing without a conversation id. On failure the current list is
        kept and ``error_message`` is set. Pending sends that the history does
        not contain yet stay at the end of the list.
        """
        if not self.conversation_id:
            logger.debug("load_messages called without a conversation_id, skipping fetch")
            return

        self.is_loading = True
        self._notify()
        try:
            fetched = await self.history_loader.fetch(self.conversation_id)
        except ChatAPIException as e:
            self.error_message = f"Failed to load messages: {e.description}"
            logger.error(f"Error loading messages for {self.conversation_id}: {e.description}")
            return
        finally:
            self.is_loading = self.has_pending_sends
            self._notify()

        fetched_ids = {message.id for message in fetched}
        pending = [
            message
            for message in self._messages.values()
            if message.status == MessageStatus.SENDING and message.id not in fetched_ids
        ]

        self._messages = {message.id: message for message in fetched}
        for message in pending:
            self._messages[message.id] = message
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
