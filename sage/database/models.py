"""
Database Models - SQLAlchemy ORM models for persistent storage.

This module defines the database schema for:
- Conversations and their turns
- Long-term memory facts
"""
from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationRecord(Base):
    """
    A single conversation thread.

    The id is the conversation id handed to clients for resuming.
    """
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True)  # UUID
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    last_activity = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    turn_count = Column(Integer, default=0, nullable=False)

    turns = relationship(
        "TurnRecord",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="TurnRecord.id"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "turn_count": self.turn_count,
        }


class TurnRecord(Base):
    """
    One turn of a conversation.

    Rows are ordered by the autoincrement id, which preserves append order
    even when two turns share a timestamp.
    """
    __tablename__ = "conversation_turns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role = Column(String(20), nullable=False)  # 'user' or 'model'
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    extra_data = Column(JSON, nullable=True)  # search_used, tool_calls, fallback, model

    conversation = relationship("ConversationRecord", back_populates="turns")

    def to_dict(self) -> Dict[str, Any]:
        """Flattened dict in the shape Turn.from_dict() accepts."""
        data = dict(self.extra_data or {})
        data.update({
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        })
        return data


class MemoryFact(Base):
    """A fact about the user remembered across conversations."""
    __tablename__ = "memory_facts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, default="general")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    access_count = Column(Integer, default=0, nullable=False)
    last_accessed = Column(DateTime(timezone=True), nullable=True)
