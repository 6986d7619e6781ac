"""Tests for common/config/config.py, the chat factory and the terminal helpers."""

from unittest.mock import patch

import pytest

import run
from application.services.chat import factory
from application.services.chat.conversation_list import ConversationListService
from common.config import config


class TestConfig:
    """Tests for configuration helpers and defaults."""

    def test_base_url_from_host(self):
        assert config.base_url_from_host(" 192.168.1.20:8080 ") == "http://192.168.1.20:8080/v1"

    def test_get_env_missing(self, monkeypatch):
        monkeypatch.delenv("NOTEAI_TEST_MISSING", raising=False)

        with pytest.raises(Exception, match="NOTEAI_TEST_MISSING not found"):
            config.get_env("NOTEAI_TEST_MISSING")

    def test_get_env_present(self, monkeypatch):
        monkeypatch.setenv("NOTEAI_TEST_PRESENT", "yes")

        assert config.get_env("NOTEAI_TEST_PRESENT") == "yes"

    def test_timeouts_and_threshold_defaults(self):
        assert config.HTTP_CONNECT_TIMEOUT > 0
        assert config.HTTP_TIMEOUT >= config.HTTP_CONNECT_TIMEOUT
        assert config.LONG_WAIT_THRESHOLD_SECONDS > 0

    def test_is_chat_configured(self):
        with patch.object(config, "CHAT_API_KEY", ""):
            assert config.is_chat_configured() is False
        with patch.object(config, "CHAT_API_KEY", "app-secret"):
            assert config.is_chat_configured() is True


class TestFactory:
    """Tests for application/services/chat/factory.py."""

    def test_create_chat_client_uses_arguments(self):
        client = factory.create_chat_client(
            base_url="http://backend.test/v1", api_key="k", user_id="u-1"
        )

        assert client.base_url == "http://backend.test/v1"
        assert client.api_key == "k"
        assert client.user_id == "u-1"

    @pytest.mark.asyncio
    async def test_open_session_loads_history(self, mock_chat_client):
        mock_chat_client.list_messages.return_value = {
            "data": [{"id": "m1", "query": "q", "answer": "a", "created_at": 1}],
            "limit": 50,
            "has_more": False,
        }

        session = await factory.open_session(
            mock_chat_client, conversation_id="c-1", response_mode="streaming"
        )

        assert session.response_mode == "streaming"
        assert [m.id for m in session.messages] == ["m1"]

    @pytest.mark.asyncio
    async def test_open_session_new_conversation(self, mock_chat_client):
        session = await factory.open_session(mock_chat_client, response_mode="blocking")

        assert session.conversation_id is None
        mock_chat_client.list_messages.assert_not_called()

    @pytest.mark.asyncio
    async def test_conversation_list_printed_newest_first(self, mock_chat_client, capsys):
        mock_chat_client.list_conversations.return_value = {
            "data": [
                {"id": "older", "name": "Groceries", "updated_at": 1700000000},
                {"id": "newer", "name": "Meeting", "updated_at": 1700000500},
            ],
            "limit": 20,
            "has_more": False,
        }

        await run.print_conversations(mock_chat_client)

        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == ["newer", "older"]
        assert lines[0].endswith("Meeting")

    def test_create_conversation_list(self, mock_chat_client):
        service = factory.create_conversation_list(mock_chat_client)

        assert isinstance(service, ConversationListService)
        assert service.client is mock_chat_client
        assert service.conversations == []
