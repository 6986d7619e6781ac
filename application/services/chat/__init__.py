"""Chat conversation services."""

from application.services.chat.conversation_list import ConversationListService
from application.services.chat.history_loader import MessageHistoryLoader
from application.services.chat.session import ConversationSession
from application.services.chat.wait_signal import WaitSignal

__all__ = [
    "ConversationListService",
    "ConversationSession",
    "MessageHistoryLoader",
    "WaitSignal",
]
