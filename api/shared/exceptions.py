"""Shared exceptions for the support chat API."""
from typing import Any, Dict, Optional


class ChatServiceException(Exception):
    """Base exception for the support chat API."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class StorageError(ChatServiceException):
    """Raised when storage operations fail."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORAGE_ERROR", details)


class ExternalServiceError(ChatServiceException):
    """Raised when external service calls fail."""

    def __init__(
        self,
        service: str,
        message: str,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, error_code, details)


class GenerationFailure(ExternalServiceError):
    """Raised when the text generation provider errors, times out or returns nothing usable."""

    def __init__(
        self, message: str, model: str, details: Optional[Dict[str, Any]] = None
    ):
        error_details = {"model": model}
        if details:
            error_details.update(details)
        super().__init__("generation", message, "GENERATION_FAILURE", error_details)
