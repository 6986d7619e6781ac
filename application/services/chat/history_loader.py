"""Loads the persisted message history of a conversation."""

import logging
from typing import List

from pydantic import ValidationError

from application.entity.message import Message
from application.models.response_models import MessagesResponse
from application.services.chat_api.client import ChatAPIClient
from common.config.config import MESSAGES_PAGE_LIMIT
from common.exception.exceptions import DecodingFailureException

logger = logging.getLogger(__name__)


class MessageHistoryLoader:
    """Fetches and orders a conversation's messages."""

    def __init__(self, client: ChatAPIClient, limit: int = MESSAGES_PAGE_LIMIT):
        self.client = client
        self.limit = limit

    async def fetch(self, conversation_id: str) -> List[Message]:
        """Fetch the history of ``conversation_id`` ordered by creation time.

        Raises:
            ChatAPIException: On transport or server failure
            DecodingFailureException: If the page does not match the message schema
        """
        payload = await self.client.list_messages(conversation_id, limit=self.limit)

        try:
            page = MessagesResponse.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Failed to decode messages for conversation {conversation_id}: {e}")
            raise DecodingFailureException(str(e)) from e

        logger.info(
            f"Loaded {len(page.data)} messages for conversation {conversation_id} "
            f"(limit={page.limit}, has_more={page.has_more})"
        )
        return sorted(page.data, key=lambda message: message.created_at)
