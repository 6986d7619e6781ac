from application.entity.conversation.version_1.conversation import Conversation

__all__ = ["Conversation"]
