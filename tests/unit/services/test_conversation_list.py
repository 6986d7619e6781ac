"""Tests for ConversationListService in application/services/chat/conversation_list.py."""

from datetime import datetime

import pytest

from application.entity.conversation import Conversation
from application.services.chat.conversation_list import (
    ConversationListService,
    default_conversation_name,
)
from common.exception.exceptions import NetworkFailureException


def conversations_page(*rows):
    return {"data": list(rows), "limit": 20, "has_more": False}


class TestLoadConversations:
    """Tests for ConversationListService.load_conversations."""

    @pytest.mark.asyncio
    async def test_sorted_by_most_recent_update(self, mock_chat_client):
        mock_chat_client.list_conversations.return_value = conversations_page(
            {"id": "old", "name": "Old", "created_at": 1, "updated_at": 10},
            {"id": "new", "name": "New", "created_at": 2, "updated_at": 30},
            {"id": "mid", "name": "Mid", "created_at": 3, "updated_at": 20},
        )
        service = ConversationListService(mock_chat_client)

        conversations = await service.load_conversations()

        assert [c.id for c in conversations] == ["new", "mid", "old"]
        assert service.is_loading is False
        assert service.error_message is None

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, mock_chat_client):
        service = ConversationListService(mock_chat_client)
        service.conversations = [Conversation(id="kept")]
        mock_chat_client.list_conversations.side_effect = NetworkFailureException("offline")

        conversations = await service.load_conversations()

        assert [c.id for c in conversations] == ["kept"]
        assert service.error_message == "Failed to load conversations: offline"
        assert service.is_loading is False

    @pytest.mark.asyncio
    async def test_bad_payload_sets_parse_error(self, mock_chat_client):
        mock_chat_client.list_conversations.return_value = {"data": [{"name": "no id"}]}
        service = ConversationListService(mock_chat_client)

        await service.load_conversations()

        assert service.conversations == []
        assert service.error_message.startswith("Failed to parse conversations: ")


class TestCreateConversation:
    """Tests for ConversationListService.create_conversation."""

    @pytest.mark.asyncio
    async def test_create_returns_new_id_and_reloads(self, mock_chat_client):
        mock_chat_client.create_conversation.return_value = {
            "answer": "Hello!",
            "conversation_id": "new-1",
        }
        mock_chat_client.list_conversations.return_value = conversations_page(
            {"id": "new-1", "name": "Groceries", "updated_at": 5}
        )
        service = ConversationListService(mock_chat_client)

        conversation_id = await service.create_conversation("Groceries")

        assert conversation_id == "new-1"
        assert service.newly_created_conversation_id == "new-1"
        assert service.is_creating_conversation is False
        assert [c.id for c in service.conversations] == ["new-1"]
        mock_chat_client.create_conversation.assert_awaited_once_with("Groceries")

    @pytest.mark.asyncio
    async def test_default_name_used(self, mock_chat_client):
        mock_chat_client.create_conversation.return_value = {"conversation_id": "c"}
        mock_chat_client.list_conversations.return_value = conversations_page()
        service = ConversationListService(mock_chat_client)

        await service.create_conversation()

        name = mock_chat_client.create_conversation.call_args.args[0]
        assert name.startswith("Chat ")

    @pytest.mark.asyncio
    async def test_create_failure(self, mock_chat_client):
        mock_chat_client.create_conversation.side_effect = NetworkFailureException("offline")
        service = ConversationListService(mock_chat_client)

        assert await service.create_conversation("x") is None
        assert service.error_message == "Failed to create conversation: offline"
        assert service.is_creating_conversation is False
        mock_chat_client.list_conversations.assert_not_called()


def test_default_conversation_name_format():
    assert default_conversation_name(datetime(2024, 3, 5, 14, 30)) == "Chat Mar 05 14:30"
