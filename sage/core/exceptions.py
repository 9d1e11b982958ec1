"""
Error taxonomy for the assistant.

Every provider failure is classified into exactly one of these types at
the orchestrator boundary. Each class carries the HTTP status and the
stable `error` code the API renders.
"""
from typing import Dict, List, Optional


class SageException(Exception):
    """Root of the taxonomy; unclassified internal failures use it directly."""
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ============================================================
# Provider failure taxonomy
# ============================================================

class ConfigurationError(SageException):
    """Raised when no usable provider credential is available. Never retried."""
    status_code = 500
    error_code = "configuration_error"


class RateLimited(SageException):
    """The provider rejected the request for rate-limit reasons."""
    status_code = 429
    error_code = "rate_limited"

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please wait a moment and try again.",
        details: Optional[str] = None
    ):
        super().__init__(message, details)


class AuthenticationError(SageException):
    """The provider rejected the credential."""
    status_code = 502
    error_code = "authentication_error"

    def __init__(
        self,
        message: str = "API authentication failed. Please check your API key configuration.",
        details: Optional[str] = None
    ):
        super().__init__(message, details)


class NetworkError(SageException):
    """The provider could not be reached."""
    status_code = 503
    error_code = "network_error"

    def __init__(
        self,
        message: str = "Network error. Please check your internet connection.",
        details: Optional[str] = None
    ):
        super().__init__(message, details)


class QuotaExceeded(SageException):
    """The provider account is out of quota or billing credit."""
    status_code = 402
    error_code = "quota_exceeded"

    def __init__(
        self,
        message: str = "API quota exceeded. Please check your account limits.",
        details: Optional[str] = None
    ):
        super().__init__(message, details)


class UnavailableError(SageException):
    """Generic upstream failure."""
    status_code = 503
    error_code = "unavailable"

    def __init__(
        self,
        message: str = "The AI service is currently unavailable. Please try again later.",
        details: Optional[str] = None
    ):
        super().__init__(message, details)


# ============================================================
# Request errors
# ============================================================

class ValidationError(SageException):
    """
    Raised when input validation fails.

    Carries one message per violated field so a configuration update
    reports every problem at once.
    """
    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None
    ):
        errors = dict(errors or {})
        if field and field not in errors:
            errors[field] = message
        details = ", ".join(f"field={name}" for name in errors) or None
        super().__init__(message, details=details)
        self.errors = errors

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed validation."""
        return list(self.errors)

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["fields"] = self.errors
        return payload


class NotInitializedError(SageException):
    """Raised when a message is sent before the conversation is initialized."""
    status_code = 400
    error_code = "not_initialized"

    def __init__(self):
        super().__init__(
            "Chat session not initialized. Call /api/chat/initialize first"
        )


class SessionInvalidatedError(SageException):
    """Raised when a session disappears between resolution and use."""
    status_code = 503
    error_code = "session_invalidated"

    def __init__(self, session_id: str):
        super().__init__(
            message="Session was invalidated, please retry",
            details=f"session_id={session_id}"
        )
