"""Exceptions for the Chat feature."""
from typing import Any, Dict, Optional

from api.shared.exceptions import ChatServiceException


class ChatException(ChatServiceException):
    """Base exception for chat operations."""

    pass


class InvalidInputError(ChatException):
    """Raised when a chat message is missing, blank or too long."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_INPUT", details)


class ReferentialError(ChatException):
    """Raised when a message targets a conversation that does not exist."""

    def __init__(self, conversation_id: str):
        message = f"Conversation '{conversation_id}' does not exist"
        super().__init__(
            message, "REFERENTIAL_ERROR", {"conversation_id": conversation_id}
        )
