"""
API Routes module - Endpoint definitions.

- chat.py    : Session-scoped conversation endpoints
- history.py : Stored conversation listing
- health.py  : Health check endpoints
"""
from sage.api.routes.chat import router as chat_router
from sage.api.routes.health import router as health_router
from sage.api.routes.history import router as history_router

__all__ = [
    "chat_router",
    "health_router",
    "history_router",
]
