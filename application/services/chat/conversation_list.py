"""Conversation list state: loading and creating conversations."""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from application.entity.conversation import Conversation
from application.models.response_models import ConversationsResponse
from application.services.chat_api.client import ChatAPIClient
from common.exception.exceptions import ChatAPIException

logger = logging.getLogger(__name__)


def default_conversation_name(now: Optional[datetime] = None) -> str:
    """Name used when a conversation is created without one, e.g. ``Chat Mar 05 14:30``."""
    return f"Chat {(now or datetime.now()).strftime('%b %d %H:%M')}"


class ConversationListService:
    """Holds the user's conversation list, newest activity first."""

    def __init__(self, client: ChatAPIClient):
        self.client = client
        self.conversations: List[Conversation] = []
        self.is_loading = False
        self.is_creating_conversation = False
        self.error_message: Optional[str] = None
        self.newly_created_conversation_id: Optional[str] = None

    async def load_conversations(self) -> List[Conversation]:
        """Reload the list; on failure the previous list is kept."""
        self.is_loading = True
        self.error_message = None
        try:
            payload = await self.client.list_conversations()
            page = ConversationsResponse.model_validate(payload)
        except ValidationError as e:
            self.error_message = f"Failed to parse conversations: {e}"
            logger.error(self.error_message)
            return self.conversations
        except ChatAPIException as e:
            self.error_message = f"Failed to load conversations: {e.description}"
            logger.error(self.error_message)
            return self.conversations
        finally:
            self.is_loading = False

        self.conversations = sorted(page.data, key=lambda c: c.updated_at, reverse=True)
        logger.info(
            f"Loaded {len(self.conversations)} conversations "
            f"(limit={page.limit}, has_more={page.has_more})"
        )
        return self.conversations

    async def create_conversation(self, name: Optional[str] = None) -> Optional[str]:
        """Create a conversation and reload the list.

        Returns:
            The new conversation id, or None if creation failed
        """
        name = name or default_conversation_name()
        self.is_creating_conversation = True
        self.error_message = None
        self.newly_created_conversation_id = None

        try:
            response = await self.client.create_conversation(name)
        except ChatAPIException as e:
            self.error_message = f"Failed to create conversation: {e.description}"
            logger.error(self.error_message)
            return None
        finally:
            self.is_creating_conversation = False

        conversation_id = response.get("conversation_id")
        if isinstance(conversation_id, str) and conversation_id:
            self.newly_created_conversation_id = conversation_id
            logger.info(f"Created conversation {conversation_id}")
        else:
            logger.warning("Conversation creation response did not include a conversation_id")

        await self.load_conversations()
        return self.newly_created_conversation_id
