"""
Long-Term Memory - Facts about the user remembered across conversations.

Facts are stored with a category and an access counter. Recall uses a
forgiving word match so "movies" finds "likes movies" and "movie night".
The context summary is what the fallback provider receives as its
system-level memory.
"""
import asyncio
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sage.core.logging_config import get_logger
from sage.database.connection import DatabaseConnection, get_database
from sage.database.init_db import init_tables
from sage.database.models import MemoryFact
from sage.memory.conversation import utcnow

logger = get_logger(__name__)

MEMORY_CATEGORIES = ("preference", "fact", "context", "project", "general")


@dataclass
class Fact:
    """A remembered piece of information."""
    content: str
    category: str = "general"
    created_at: datetime = field(default_factory=utcnow)
    access_count: int = 0
    last_accessed: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "category": self.category,
            "timestamp": self.created_at.isoformat(),
        }


def normalize_category(category: Optional[str]) -> str:
    """Map free-form categories onto the known set."""
    category = (category or "").strip().lower()
    return category if category in MEMORY_CATEGORIES else "general"


def matches_query(fact: Fact, query: str) -> bool:
    """
    Decide whether a fact is relevant to a recall query.

    Matches on the whole phrase, or on any query word longer than two
    characters: directly, by its singular stem, or as a prefix of (or
    prefixed by) a word in the fact.
    """
    lower_query = query.lower().strip()
    search_text = f"{fact.content.lower()} {fact.category.lower()}"

    if lower_query and lower_query in search_text:
        return True

    query_words = [w for w in re.split(r"\s+", lower_query) if len(w) > 2]
    fact_words = search_text.split()

    for word in query_words:
        if word in search_text:
            return True
        stem = re.sub(r"s$", "", word)
        if len(stem) > 2 and stem in search_text:
            return True
        if any(w.startswith(word) or word.startswith(w) for w in fact_words):
            return True

    return False


def rank_recalled(facts: List[Fact], query: str) -> List[Fact]:
    """Exact matches first, then most frequently accessed."""
    lower_query = query.lower().strip()
    return sorted(
        facts,
        key=lambda f: (f.content.lower() != lower_query, -f.access_count)
    )


def context_score(fact: Fact) -> float:
    """Blend recency and access frequency into one ranking score."""
    return fact.created_at.timestamp() + fact.access_count * 10000


def format_for_context(facts: List[Fact]) -> str:
    """Render facts as a memory block for a system prompt."""
    if not facts:
        return ""
    lines = "\n".join(f"- [{f.category or 'general'}] {f.content}" for f in facts)
    return f"Relevant memories:\n{lines}"


class LongTermMemory(ABC):
    """Async contract for remembering and recalling facts."""

    @abstractmethod
    async def remember(self, content: str, category: str = "general") -> Fact:
        """Store a fact and return it."""

    @abstractmethod
    async def recall(self, query: str) -> List[Fact]:
        """Facts relevant to the query, best first."""

    @abstractmethod
    async def context_memories(self, limit: int = 10) -> List[Fact]:
        """The facts most worth putting in front of a model."""

    async def context_summary(self, limit: int = 10) -> str:
        """Formatted memory block, empty when nothing is stored."""
        return format_for_context(await self.context_memories(limit))


class InMemoryLongTermMemory(LongTermMemory):
    """Process-local fact store."""

    def __init__(self):
        self._facts: List[Fact] = []
        self._next_id = 1
        self._lock = threading.RLock()

    async def remember(self, content: str, category: str = "general") -> Fact:
        with self._lock:
            fact = Fact(
                content=content,
                category=normalize_category(category),
                id=self._next_id
            )
            self._next_id += 1
            self._facts.append(fact)
        return fact

    async def recall(self, query: str) -> List[Fact]:
        with self._lock:
            matches = [f for f in self._facts if matches_query(f, query)]
            now = utcnow()
            for fact in matches:
                fact.access_count += 1
                fact.last_accessed = now
        return rank_recalled(matches, query)

    async def context_memories(self, limit: int = 10) -> List[Fact]:
        with self._lock:
            ranked = sorted(self._facts, key=context_score, reverse=True)
        return ranked[:limit]


class SQLLongTermMemory(LongTermMemory):
    """SQLAlchemy-backed fact store."""

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or get_database()
        init_tables(self.db)

    async def remember(self, content: str, category: str = "general") -> Fact:
        return await asyncio.to_thread(self._remember, content, normalize_category(category))

    async def recall(self, query: str) -> List[Fact]:
        return await asyncio.to_thread(self._recall, query)

    async def context_memories(self, limit: int = 10) -> List[Fact]:
        return await asyncio.to_thread(self._context_memories, limit)

    def _remember(self, content: str, category: str) -> Fact:
        with self.db.get_session() as session:
            row = MemoryFact(content=content, category=category, created_at=utcnow())
            session.add(row)
            session.flush()
            fact = _to_fact(row)

        logger.info(f"[MEMORY] Stored fact #{fact.id} ({category})")
        return fact

    def _recall(self, query: str) -> List[Fact]:
        # Matching is fuzzy, so filter in Python over the full set
        with self.db.get_session() as session:
            rows = session.query(MemoryFact).all()
            now = utcnow()
            matches = []
            for row in rows:
                if matches_query(_to_fact(row), query):
                    row.access_count += 1
                    row.last_accessed = now
                    matches.append(_to_fact(row))

        return rank_recalled(matches, query)

    def _context_memories(self, limit: int) -> List[Fact]:
        with self.db.get_session() as session:
            facts = [_to_fact(row) for row in session.query(MemoryFact).all()]
        return sorted(facts, key=context_score, reverse=True)[:limit]


def _to_fact(row: MemoryFact) -> Fact:
    created_at = row.created_at or utcnow()
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=utcnow().tzinfo)
    return Fact(
        id=row.id,
        content=row.content,
        category=row.category,
        created_at=created_at,
        access_count=row.access_count or 0,
        last_accessed=row.last_accessed,
    )
