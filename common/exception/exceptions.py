"""
Exceptions raised by the chat API client and the services built on it.

Every exception carries a human-readable ``description`` that the
conversation session stores on a failed message or shows as the error
banner.
"""

from typing import Optional


class ChatAPIException(Exception):
    """Base class for chat backend failures."""

    def __init__(self, description: str):
        super().__init__(description)
        self.description = description


class InvalidRequestException(ChatAPIException):
    """Raised when a request cannot be built (bad URL, unencodable body)."""

    pass


class NetworkFailureException(ChatAPIException):
    """Raised on transport-level failures such as lost connectivity or timeouts."""

    pass


class ServerResponseException(ChatAPIException):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(
            f"Server error ({status_code}): {message or 'No additional information'}"
        )


class DecodingFailureException(ChatAPIException):
    """Raised when a response body does not match the expected schema."""

    pass


class UnexpectedFormatException(ChatAPIException):
    """Raised when a response decodes but a required field is absent."""

    pass
