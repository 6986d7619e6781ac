"""Constants for the chat backend API."""

# Endpoints (relative to the configured base URL)
CHAT_MESSAGES_ENDPOINT = "chat-messages"
MESSAGES_ENDPOINT = "messages"
CONVERSATIONS_ENDPOINT = "conversations"

# Response modes
RESPONSE_MODE_BLOCKING = "blocking"
RESPONSE_MODE_STREAMING = "streaming"
RESPONSE_MODES = (RESPONSE_MODE_BLOCKING, RESPONSE_MODE_STREAMING)

DEFAULT_USER_ID = "user-123"

# First message used to open a named conversation; the backend has no
# direct create endpoint, so the conversation is started by a send.
NEW_CONVERSATION_GREETING = (
    "Hello! This is the first message for a new conversation named: {name}. "
    "Please respond to start our chat."
)
