"""
Database module - SQLAlchemy persistence layer.

This module handles:
- Database connection management
- ORM models for conversations, turns and memory facts
- Table initialisation
"""
from sage.database.connection import DatabaseConnection, get_database, reset_database
from sage.database.models import Base, ConversationRecord, TurnRecord, MemoryFact
from sage.database.init_db import init_tables

__all__ = [
    "DatabaseConnection",
    "get_database",
    "reset_database",
    "Base",
    "ConversationRecord",
    "TurnRecord",
    "MemoryFact",
    "init_tables",
]
