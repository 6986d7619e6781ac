"""Tests for MessageHistoryLoader in application/services/chat/history_loader.py."""

import pytest

from application.entity.message import MessageStatus
from application.services.chat.history_loader import MessageHistoryLoader
from common.exception.exceptions import DecodingFailureException, ServerResponseException


class TestMessageHistoryLoader:
    """Tests for MessageHistoryLoader.fetch."""

    @pytest.mark.asyncio
    async def test_fetch_orders_by_created_at(self, mock_chat_client):
        mock_chat_client.list_messages.return_value = {
            "limit": 50,
            "has_more": False,
            "data": [
                {"id": "b", "conversation_id": "c-1", "query": "q2", "answer": "a2", "created_at": 200},
                {"id": "a", "conversation_id": "c-1", "query": "q1", "answer": "a1", "created_at": 100},
            ],
        }
        loader = MessageHistoryLoader(mock_chat_client)

        messages = await loader.fetch("c-1")

        assert [m.id for m in messages] == ["a", "b"]
        assert all(m.status == MessageStatus.NORMAL for m in messages)
        mock_chat_client.list_messages.assert_awaited_once_with("c-1", limit=50)

    @pytest.mark.asyncio
    async def test_fetch_accepts_single_retriever_resource(self, mock_chat_client):
        mock_chat_client.list_messages.return_value = {
            "limit": 10,
            "has_more": True,
            "data": [
                {
                    "id": "a",
                    "created_at": 1,
                    "answer": "x",
                    "retriever_resources": {"segment": "s", "score": 0.5},
                    "feedback": None,
                    "message_files": [],
                    "unknown_field": "ignored",
                }
            ],
        }
        loader = MessageHistoryLoader(mock_chat_client, limit=10)

        messages = await loader.fetch("c-1")

        assert messages[0].retriever_resources[0].segment == "s"
        mock_chat_client.list_messages.assert_awaited_once_with("c-1", limit=10)

    @pytest.mark.asyncio
    async def test_schema_mismatch_raises_decoding_failure(self, mock_chat_client):
        mock_chat_client.list_messages.return_value = {"data": "nope", "limit": 50}
        loader = MessageHistoryLoader(mock_chat_client)

        with pytest.raises(DecodingFailureException):
            await loader.fetch("c-1")

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, mock_chat_client):
        mock_chat_client.list_messages.side_effect = ServerResponseException(404, "missing")
        loader = MessageHistoryLoader(mock_chat_client)

        with pytest.raises(ServerResponseException):
            await loader.fetch("c-1")
