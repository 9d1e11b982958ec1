"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that `import sage`
works consistently in all tests, and resets module singletons between
tests.
"""

import sys
from pathlib import Path

import pytest


# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@pytest.fixture(autouse=True)
def reset_singletons():
    from sage.database import reset_database
    from sage.memory import reset_memory
    from sage.services.chat_service import reset_chat_service
    from sage.sessions.registry import reset_session_registry

    yield

    reset_memory()
    reset_database()
    reset_chat_service()
    reset_session_registry()
