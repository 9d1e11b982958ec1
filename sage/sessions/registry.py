"""
Session Registry - Bounded, time-expiring session store.

This module maps opaque session identifiers to server-held session state:
- Lazy session creation on first request
- Idle-timeout expiry via a periodic sweep
- Least-recently-accessed eviction when at capacity

Architecture note:
This is an in-memory implementation suitable for single-instance deployments.
Every read-modify-write runs under one re-entrant lock, so a concurrent
sweep can never leave a half-evicted entry visible to a resolve.
"""
import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sage.core.logging_config import get_logger
from sage.memory.conversation import utcnow

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MINUTES = 30
DEFAULT_MAX_SESSIONS = 10000


@dataclass
class Session:
    """
    Server-held handle binding a client to one conversation.

    Attributes:
        session_id: Opaque token, echoed to the client
        created_at: When the session was admitted
        last_access: Bumped on every resolve
        conversation: The owned conversation orchestrator, attached lazily
    """
    session_id: str
    created_at: datetime
    last_access: datetime
    conversation: Optional[Any] = field(default=None, repr=False)

    def idle_time(self, now: datetime) -> timedelta:
        return now - self.last_access


class SessionRegistry:
    """
    Manages sessions with automatic expiry and LRU eviction.

    Example:
        >>> registry = SessionRegistry(timeout_minutes=30, max_sessions=10000)
        >>> session = registry.resolve(None)        # new session
        >>> again = registry.resolve(session.session_id)
        >>> again is session
        True
    """

    def __init__(
        self,
        timeout_minutes: float = DEFAULT_TIMEOUT_MINUTES,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], datetime] = utcnow
    ):
        """
        Initialize the registry.

        Args:
            timeout_minutes: Idle time after which a session expires
            max_sessions: Maximum concurrent sessions
            clock: Source of "now"; tests pass a controllable clock
        """
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")

        self.timeout = timedelta(minutes=timeout_minutes)
        self.max_sessions = max_sessions
        self._clock = clock

        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()

        logger.info(
            f"SessionRegistry initialized: "
            f"timeout={timeout_minutes}min, max_sessions={max_sessions}"
        )

    def resolve(self, identifier: Optional[str] = None) -> Session:
        """
        Return the live session for an identifier, or admit a new one.

        A missing, unknown or expired identifier never raises: a fresh
        session with a newly allocated identifier is returned instead.

        Args:
            identifier: Session id supplied by the client, if any

        Returns:
            The resolved Session, with last_access bumped
        """
        with self._lock:
            now = self._clock()

            if identifier:
                session = self._sessions.get(identifier)
                if session is not None:
                    if not self._is_expired(session, now):
                        session.last_access = now
                        return session
                    self._remove(identifier)
                    logger.debug(f"Session expired on access: {identifier[:8]}...")

            # Capacity is checked before admission, never after
            if len(self._sessions) >= self.max_sessions:
                self._evict_lru()

            session_id = self._allocate_id()
            session = Session(session_id=session_id, created_at=now, last_access=now)
            self._sessions[session_id] = session

            logger.info(f"Created new session: {session_id[:8]}...")
            return session

    def get(self, identifier: str) -> Optional[Session]:
        """
        Look up a session without touching it.

        Expired sessions are removed and reported as missing.
        """
        with self._lock:
            session = self._sessions.get(identifier)
            if session is not None and self._is_expired(session, self._clock()):
                self._remove(identifier)
                return None
            return session

    def expire(self) -> List[str]:
        """
        Remove every session idle for longer than the timeout.

        Returns:
            Identifiers of the removed sessions, so dependent stores can react
        """
        with self._lock:
            now = self._clock()
            expired = [
                sid for sid, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for session_id in expired:
                self._remove(session_id)

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")

        return expired

    def delete(self, identifier: str) -> bool:
        """
        Remove a session. Deleting an unknown id is a no-op.

        Returns:
            True if a session was removed
        """
        with self._lock:
            removed = self._remove(identifier)

        if removed:
            logger.info(f"Deleted session: {identifier[:8]}...")
        return removed

    def count(self) -> int:
        """Current population, for diagnostics."""
        with self._lock:
            return len(self._sessions)

    def get_stats(self) -> Dict:
        """Session counts and configuration."""
        with self._lock:
            return {
                "active_sessions": len(self._sessions),
                "max_sessions": self.max_sessions,
                "session_timeout_minutes": int(self.timeout.total_seconds() / 60),
            }

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return session.idle_time(now) > self.timeout

    def _evict_lru(self) -> Optional[str]:
        """Remove the session with the oldest last access."""
        if not self._sessions:
            return None

        oldest_id = min(
            self._sessions,
            key=lambda sid: self._sessions[sid].last_access
        )
        self._remove(oldest_id)
        logger.warning(
            f"Evicted LRU session {oldest_id[:8]}... (at capacity: {self.max_sessions})"
        )
        return oldest_id

    def _allocate_id(self) -> str:
        session_id = str(uuid.uuid4())
        while session_id in self._sessions:
            session_id = str(uuid.uuid4())
        return session_id

    def _remove(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


async def run_expiry_sweeper(
    registry: SessionRegistry,
    interval_minutes: float = 5,
    on_expired: Optional[Callable[[List[str]], None]] = None
) -> None:
    """
    Periodically expire idle sessions until cancelled.

    A failing sweep is logged and the loop keeps going.

    Args:
        registry: The registry to sweep
        interval_minutes: Time between sweeps
        on_expired: Called with the removed ids after each non-empty sweep
    """
    interval = interval_minutes * 60
    logger.info(f"Session expiry sweeper started: every {interval_minutes}min")

    while True:
        await asyncio.sleep(interval)
        try:
            expired = registry.expire()
            if expired and on_expired is not None:
                on_expired(expired)
        except Exception as e:
            logger.exception(f"Session sweep failed: {e}")


# Singleton instance
_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Get or create the global SessionRegistry."""
    global _registry
    if _registry is None:
        from sage.core.config import get_settings
        settings = get_settings()
        _registry = SessionRegistry(
            timeout_minutes=settings.session_timeout_minutes,
            max_sessions=settings.max_sessions
        )
    return _registry


def reset_session_registry() -> None:
    """Reset the global SessionRegistry (useful for testing)."""
    global _registry
    _registry = None
