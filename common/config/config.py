"""
Configuration module for the NoteAI chat client.

Values are read from the environment (a local .env file is loaded first) and
exposed as module-level constants. Collaborators receive these values through
their constructors; nothing below holds a shared client instance.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_env(key: str) -> str:
    """Get environment variable or raise exception if not found."""
    value = os.getenv(key)
    if value is None:
        raise Exception(f"{key} not found")
    return value


def base_url_from_host(host: str) -> str:
    """Build the chat API base URL for a backend reachable at ``host``."""
    return f"http://{host.strip()}/v1"


# Chat backend
CHAT_API_BASE_URL = os.getenv("CHAT_API_BASE_URL", "http://localhost/v1").rstrip("/")
CHAT_API_KEY = os.getenv("CHAT_API_KEY", "")
CHAT_USER_ID = os.getenv("CHAT_USER_ID", "user-123")
CHAT_RESPONSE_MODE = os.getenv("CHAT_RESPONSE_MODE", "blocking").lower()

# Transport timeouts (seconds)
HTTP_CONNECT_TIMEOUT = float(os.getenv("HTTP_CONNECT_TIMEOUT", "60"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "120"))

# Advisory "this is taking a while" signal, independent of transport timeouts
LONG_WAIT_THRESHOLD_SECONDS = int(os.getenv("LONG_WAIT_THRESHOLD_SECONDS", "180"))

# Pagination
MESSAGES_PAGE_LIMIT = int(os.getenv("MESSAGES_PAGE_LIMIT", "50"))
CONVERSATIONS_PAGE_LIMIT = int(os.getenv("CONVERSATIONS_PAGE_LIMIT", "20"))

# Local note storage
NOTES_DIR = os.getenv("NOTES_DIR", os.path.expanduser("~/noteai_notes"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def is_chat_configured() -> bool:
    """Return True when both the base URL and the chat API key are set."""
    return bool(CHAT_API_BASE_URL) and bool(CHAT_API_KEY)
