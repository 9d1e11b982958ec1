"""
Request dependencies shared by the routes.

The session dependency reads the X-Session-ID header, resolves it
through the registry and echoes the resolved id on the response.
"""
from typing import Optional

from fastapi import Depends, Header, Response

from sage.core.audit import SESSION_HEADER
from sage.core.exceptions import SessionInvalidatedError
from sage.core.logging_config import get_logger
from sage.core.validators import validate_session_id
from sage.services.chat_service import ChatService, get_chat_service
from sage.sessions.registry import Session

logger = get_logger(__name__)


def chat_service() -> ChatService:
    """Overridable in tests via app.dependency_overrides."""
    return get_chat_service()


def current_session(
    response: Response,
    x_session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER),
    service: ChatService = Depends(chat_service),
) -> Session:
    """
    Resolve the caller's session.

    Unknown, malformed or expired identifiers silently get a new
    session. The one exception: if the session disappears between
    resolution and the follow-up lookup (a concurrent sweep or delete),
    the request fails with SessionInvalidatedError so the client retries
    instead of talking to an orphaned conversation.
    """
    identifier = x_session_id
    if identifier:
        is_valid, _ = validate_session_id(identifier)
        if not is_valid:
            logger.debug("Ignoring malformed session header")
            identifier = None

    session = service.registry.resolve(identifier)

    if service.registry.get(session.session_id) is None:
        raise SessionInvalidatedError(session.session_id)

    response.headers[SESSION_HEADER] = session.session_id
    return session
