"""
Audit Middleware - One log line per HTTP request.

Each line carries method, path, status, latency, client address and the
first characters of the session id. The id is read from the response
first because the session dependency may have just issued it.
"""
import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from sage.core.logging_config import get_logger

logger = get_logger(__name__)

SESSION_HEADER = "X-Session-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"

# Probed constantly by load balancers
QUIET_PATHS = frozenset({"/health", "/health/ready"})


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


def _short_session(request: Request, response: Response) -> str:
    session_id = response.headers.get(SESSION_HEADER) or request.headers.get(SESSION_HEADER)
    return session_id[:8] if session_id else "-"


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs every request and stamps the response with its latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        client = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.url.path} raised after "
                f"{time.perf_counter() - started:.3f}s client={client}: {e}"
            )
            raise

        elapsed = time.perf_counter() - started
        logger.log(
            _level_for(request.url.path, response.status_code),
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed:.3f}s client={client} session={_short_session(request, response)}"
        )

        response.headers[RESPONSE_TIME_HEADER] = f"{elapsed:.3f}s"
        return response
