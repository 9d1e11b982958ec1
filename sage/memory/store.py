"""
Conversation Stores - Persistence for conversation history.

Two implementations share one async interface:
- InMemoryConversationStore: lost on restart, good for development/testing
- SQLConversationStore: SQLAlchemy-backed, survives restarts

The orchestrator treats every write as fire-and-forget: a failing
append is logged by the caller and never aborts a reply.
"""
import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sage.core.logging_config import get_logger
from sage.database.connection import DatabaseConnection, get_database
from sage.database.init_db import init_tables
from sage.database.models import ConversationRecord, TurnRecord
from sage.memory.conversation import Turn, utcnow

logger = get_logger(__name__)


class ConversationStore(ABC):
    """Async persistence contract for conversation turns."""

    @abstractmethod
    async def load_conversation(self, conversation_id: str) -> Optional[List[Turn]]:
        """Return the ordered turns, or None if the conversation is unknown."""

    @abstractmethod
    async def append_turn(self, conversation_id: str, turn: Turn) -> None:
        """Append one turn, creating the conversation on first write."""

    @abstractmethod
    async def list_conversations(self, limit: int = 20) -> List[Dict]:
        """Most recently active conversations first."""

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> bool:
        """Remove a conversation and its turns."""


class InMemoryConversationStore(ConversationStore):
    """Process-local store backed by a dict of turn lists."""

    def __init__(self):
        self._conversations: Dict[str, List[Turn]] = {}
        self._lock = threading.RLock()

    async def load_conversation(self, conversation_id: str) -> Optional[List[Turn]]:
        with self._lock:
            turns = self._conversations.get(conversation_id)
            return list(turns) if turns is not None else None

    async def append_turn(self, conversation_id: str, turn: Turn) -> None:
        with self._lock:
            self._conversations.setdefault(conversation_id, []).append(turn)

    async def list_conversations(self, limit: int = 20) -> List[Dict]:
        with self._lock:
            items = [
                _summarize(conversation_id, turns)
                for conversation_id, turns in self._conversations.items()
                if turns
            ]
        items.sort(key=lambda item: item["last_activity"], reverse=True)
        return items[:limit]

    async def delete_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            return self._conversations.pop(conversation_id, None) is not None


class SQLConversationStore(ConversationStore):
    """
    SQLAlchemy-backed conversation store.

    Blocking database calls run in a worker thread so they do not stall
    the event loop.
    """

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or get_database()
        init_tables(self.db)

    async def load_conversation(self, conversation_id: str) -> Optional[List[Turn]]:
        return await asyncio.to_thread(self._load, conversation_id)

    async def append_turn(self, conversation_id: str, turn: Turn) -> None:
        await asyncio.to_thread(self._append, conversation_id, turn)

    async def list_conversations(self, limit: int = 20) -> List[Dict]:
        return await asyncio.to_thread(self._list, limit)

    async def delete_conversation(self, conversation_id: str) -> bool:
        return await asyncio.to_thread(self._delete, conversation_id)

    def _load(self, conversation_id: str) -> Optional[List[Turn]]:
        with self.db.get_session() as session:
            record = session.get(ConversationRecord, conversation_id)
            if record is None:
                return None

            rows = session.query(TurnRecord).filter(
                TurnRecord.conversation_id == conversation_id
            ).order_by(TurnRecord.id).all()

            turns = [Turn.from_dict(row.to_dict()) for row in rows]

        logger.debug(f"[SQL] Loaded conversation {conversation_id} ({len(turns)} turns)")
        return turns

    def _append(self, conversation_id: str, turn: Turn) -> None:
        with self.db.get_session() as session:
            record = session.get(ConversationRecord, conversation_id)
            if record is None:
                record = ConversationRecord(
                    id=conversation_id,
                    created_at=turn.timestamp,
                    last_activity=turn.timestamp,
                    turn_count=0
                )
                session.add(record)

            session.add(TurnRecord(
                conversation_id=conversation_id,
                role=turn.role,
                content=turn.content,
                timestamp=turn.timestamp,
                extra_data=turn.flags() or None
            ))
            record.turn_count += 1
            record.last_activity = utcnow()

        logger.debug(f"[SQL] Saved turn: conversation={conversation_id}, role={turn.role}")

    def _list(self, limit: int) -> List[Dict]:
        with self.db.get_session() as session:
            records = session.query(ConversationRecord).order_by(
                ConversationRecord.last_activity.desc()
            ).limit(limit).all()

            result = []
            for record in records:
                item = record.to_dict()
                first_message = session.query(TurnRecord.content).filter(
                    TurnRecord.conversation_id == record.id,
                    TurnRecord.role == "user"
                ).order_by(TurnRecord.id.asc()).limit(1).scalar()
                item["preview"] = _preview(first_message)
                result.append(item)

            return result

    def _delete(self, conversation_id: str) -> bool:
        with self.db.get_session() as session:
            record = session.get(ConversationRecord, conversation_id)
            if record is None:
                return False
            session.delete(record)

        logger.info(f"[SQL] Deleted conversation {conversation_id}")
        return True


def _preview(text: Optional[str]) -> str:
    preview = text or "New Conversation"
    if len(preview) > 50:
        preview = preview[:47] + "..."
    return preview


def _summarize(conversation_id: str, turns: List[Turn]) -> Dict:
    first_user = next((t.content for t in turns if t.role == "user"), None)
    return {
        "id": conversation_id,
        "created_at": turns[0].timestamp.isoformat(),
        "last_activity": turns[-1].timestamp.isoformat(),
        "turn_count": len(turns),
        "preview": _preview(first_user),
    }
