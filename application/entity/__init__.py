"""
Application entities package.

Contains the domain entities of the chat client.
"""

from application.entity.conversation import Conversation
from application.entity.message import Message, MessageStatus, RetrieverResource

__all__ = ["Conversation", "Message", "MessageStatus", "RetrieverResource"]
