"""Tests for the Message and Conversation entities."""

from datetime import timezone

import pytest
from pydantic import ValidationError

from application.entity.conversation import Conversation
from application.entity.message import Message, MessageStatus


class TestMessage:
    """Tests for Message."""

    def test_pending_message(self):
        message = Message.pending("Hello")

        assert message.status == MessageStatus.SENDING
        assert message.query == "Hello"
        assert message.answer == ""
        assert message.conversation_id == ""
        assert message.id
        assert message.created_at > 0
        assert message.is_from_user

    def test_pending_ids_are_unique(self):
        assert Message.pending("a").id != Message.pending("a").id

    def test_with_answer_keeps_identity(self):
        message = Message.pending("Hello", conversation_id="c-1")

        updated = message.with_answer("Hi")

        assert updated.id == message.id
        assert updated.status == MessageStatus.SENDING
        assert updated.conversation_id == "c-1"
        assert updated.answer == "Hi"
        assert message.answer == ""

    def test_backend_row_defaults_to_normal(self):
        message = Message.model_validate(
            {"id": "m1", "conversation_id": "c-1", "query": "q", "answer": "a", "created_at": 100}
        )

        assert message.status == MessageStatus.NORMAL
        assert message.created_datetime.tzinfo == timezone.utc
        assert message.retriever_resources == []

    def test_created_at_is_required(self):
        with pytest.raises(ValidationError):
            Message.model_validate({"id": "m1"})

    def test_think_blocks(self):
        message = Message(
            id="m1",
            created_at=1,
            answer="<think>\nplanning the reply\n</think>\n\nFinal answer",
        )

        assert message.clean_answer == "Final answer"
        assert message.thinking_content == "planning the reply"
        assert message.is_from_user is False

    def test_no_think_block(self):
        message = Message(id="m1", created_at=1, answer="plain")

        assert message.clean_answer == "plain"
        assert message.thinking_content is None

    def test_retriever_resources_null(self):
        message = Message.model_validate({"id": "m1", "created_at": 1, "retriever_resources": None})

        assert message.retriever_resources == []


class TestConversation:
    """Tests for Conversation."""

    def test_from_backend_row(self):
        conversation = Conversation.model_validate(
            {
                "id": "c-1",
                "name": "Groceries",
                "inputs": {},
                "status": "normal",
                "introduction": "",
                "created_at": 1700000000,
                "updated_at": 1700000100,
                "dialogue_count": 4,
            }
        )

        assert conversation.name == "Groceries"
        assert conversation.updated_datetime > conversation.created_datetime

    def test_id_is_required(self):
        with pytest.raises(ValidationError):
            Conversation.model_validate({"name": "nameless"})
