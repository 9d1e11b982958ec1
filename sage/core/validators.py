"""
Input checks applied at the HTTP boundary, before the orchestrator sees
anything: message cleanup and session-id shape.
"""
import re
import uuid
from typing import Optional, Tuple

MAX_MESSAGE_LENGTH = 10000

# C0 control characters other than tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_message(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Strip control characters and outer whitespace, then cap the length.

    Inner whitespace is left alone so pasted code keeps its layout.
    """
    if not message:
        return ""
    cleaned = _CONTROL_CHARS.sub("", message).strip()
    return cleaned[:max_length]


def validate_session_id(session_id: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Check that a session id, when given, is a UUID.

    Returns:
        (is_valid, error_message); a missing id is valid
    """
    if not session_id:
        return True, None
    try:
        uuid.UUID(session_id)
    except ValueError:
        return False, "Invalid session id (expected a UUID)"
    return True, None


def validate_message(message: str) -> Tuple[bool, str, Optional[str]]:
    """
    Sanitize a chat message and decide whether it can be sent.

    Returns:
        (is_valid, sanitized_message, error_message)
    """
    sanitized = sanitize_message(message, max_length=MAX_MESSAGE_LENGTH + 1)

    if not sanitized:
        return False, "", "Message cannot be empty"
    if len(sanitized) > MAX_MESSAGE_LENGTH:
        return False, "", f"Message is longer than {MAX_MESSAGE_LENGTH} characters"

    return True, sanitized, None
