"""Chat client exceptions."""

from common.exception.exceptions import (
    ChatAPIException,
    DecodingFailureException,
    InvalidRequestException,
    NetworkFailureException,
    ServerResponseException,
    UnexpectedFormatException,
)

__all__ = [
    "ChatAPIException",
    "DecodingFailureException",
    "InvalidRequestException",
    "NetworkFailureException",
    "ServerResponseException",
    "UnexpectedFormatException",
]
