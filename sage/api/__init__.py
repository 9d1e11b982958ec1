"""
API module - FastAPI routes and HTTP handling.

This module handles:
- Session resolution from the X-Session-ID header
- Request validation and response formatting
- Rendering of the error taxonomy
"""
from sage.api.main import app

__all__ = ["app"]
