"""
Database Initialization - Create tables for conversation and memory storage.
"""
from typing import Optional

from sage.core.logging_config import get_logger
from sage.database.connection import DatabaseConnection, get_database
from sage.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create conversation and memory tables if they don't exist.

    Called once during application startup when persistent memory is
    enabled, and by the SQL-backed stores on construction.

    Returns:
        True if tables were created successfully
    """
    db = db or get_database()
    try:
        Base.metadata.create_all(db.engine)
    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise

    logger.info("Conversation and memory tables initialized")
    return True


if __name__ == "__main__":
    # Allow running directly to create tables
    print("Initializing tables...")
    init_tables()
    print("Done!")
