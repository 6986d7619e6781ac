from application.entity.message.version_1.message import (
    Feedback,
    Message,
    MessageFile,
    MessageStatus,
    RetrieverResource,
)

__all__ = ["Feedback", "Message", "MessageFile", "MessageStatus", "RetrieverResource"]
