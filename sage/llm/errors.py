"""
Provider error classification.

Provider SDKs raise many exception types with inconsistent shapes, so
failures are classified by inspecting the error text and any HTTP
status attribute for known markers. Classification happens once, at the
orchestrator boundary.
"""
from typing import Optional

from sage.core.exceptions import (
    SageException,
    RateLimited,
    AuthenticationError,
    NetworkError,
    QuotaExceeded,
    UnavailableError,
)

RATE_LIMIT_MARKERS = (
    "429",
    "too many requests",
    "resource exhausted",
    "resource has been exhausted",
    "rate limit",
    "rate_limit",
)
AUTH_MARKERS = (
    "api key",
    "api_key",
    "401",
    "403",
    "unauthenticated",
    "unauthorized",
    "permission denied",
    "invalid_api_key",
)
NETWORK_MARKERS = (
    "connection",
    "timed out",
    "timeout",
    "network",
    "name resolution",
    "econnrefused",
    "enotfound",
)
QUOTA_MARKERS = (
    "quota",
    "billing",
    "insufficient_quota",
)


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def _error_text(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}".lower()


def is_rate_limit_error(exc: BaseException) -> bool:
    """Check an error for rate-limit markers."""
    if isinstance(exc, RateLimited):
        return True
    if _status_code(exc) == 429:
        return True
    text = _error_text(exc)
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


def classify_provider_error(exc: BaseException) -> SageException:
    """
    Map any provider failure onto the error taxonomy.

    Rate limits are checked first because quota-flavoured 429 messages
    ("Resource has been exhausted (e.g. check quota)") must still trigger
    the fallback.

    Args:
        exc: The exception raised by a provider call

    Returns:
        A SageException subclass instance; already-classified errors are
        returned unchanged
    """
    if isinstance(exc, SageException):
        return exc

    raw = str(exc) or type(exc).__name__
    status = _status_code(exc)
    text = _error_text(exc)

    if is_rate_limit_error(exc):
        return RateLimited(details=raw)

    if status in (401, 403) or any(marker in text for marker in AUTH_MARKERS):
        return AuthenticationError(details=raw)

    if isinstance(exc, (ConnectionError, TimeoutError)) or any(
        marker in text for marker in NETWORK_MARKERS
    ):
        return NetworkError(details=raw)

    if status == 402 or any(marker in text for marker in QUOTA_MARKERS):
        return QuotaExceeded(details=raw)

    return UnavailableError(details=raw)
