"""Factory functions that wire chat services from configuration."""

import logging
from typing import Callable, Optional

from application.services.chat.conversation_list import ConversationListService
from application.services.chat.session import ConversationSession
from application.services.chat_api.client import ChatAPIClient
from common.config.config import (
    CHAT_API_BASE_URL,
    CHAT_API_KEY,
    CHAT_RESPONSE_MODE,
    CHAT_USER_ID,
)

logger = logging.getLogger(__name__)


def create_chat_client(
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    user_id: Optional[str] = None,
) -> ChatAPIClient:
    """Create a chat API client, falling back to configured values."""
    return ChatAPIClient(
        base_url=base_url or CHAT_API_BASE_URL,
        api_key=api_key or CHAT_API_KEY,
        user_id=user_id or CHAT_USER_ID,
    )


async def open_session(
    client: ChatAPIClient,
    conversation_id: Optional[str] = None,
    response_mode: Optional[str] = None,
    on_new_conversation_created: Optional[Callable[[str], None]] = None,
) -> ConversationSession:
    """Create a session and load its history when it continues a conversation."""
    session = ConversationSession(
        client,
        conversation_id=conversation_id,
        response_mode=response_mode or CHAT_RESPONSE_MODE,
        on_new_conversation_created=on_new_conversation_created,
    )

    if session.conversation_id:
        logger.info(f"Opening existing conversation {session.conversation_id}, loading messages")
        await session.load_messages()
    else:
        logger.info("Opening new session, a conversation will be created on first message")
    return session


def create_conversation_list(client: ChatAPIClient) -> ConversationListService:
    return ConversationListService(client)
