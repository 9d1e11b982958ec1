"""
Sessions module - Server-held session state.

Maps the opaque X-Session-ID token to a Session that owns one
conversation orchestrator.
"""
from sage.sessions.registry import (
    Session,
    SessionRegistry,
    run_expiry_sweeper,
    get_session_registry,
    reset_session_registry,
)

__all__ = [
    "Session",
    "SessionRegistry",
    "run_expiry_sweeper",
    "get_session_registry",
    "reset_session_registry",
]
