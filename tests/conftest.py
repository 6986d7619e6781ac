"""Pytest configuration for tests.

Sets up Python path and shared fixtures for the chat client tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path so imports work correctly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from application.services.chat_api.client import ChatAPIClient  # noqa: E402


@pytest.fixture
def mock_chat_client():
    """Chat API client double with awaitable request methods."""
    client = MagicMock(spec=ChatAPIClient)
    client.user_id = "user-123"
    client.send = AsyncMock()
    client.list_messages = AsyncMock()
    client.list_conversations = AsyncMock()
    client.create_conversation = AsyncMock()
    return client
