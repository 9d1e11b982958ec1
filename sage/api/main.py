"""
Sage HTTP application.

Wires the chat, history and health routers onto one FastAPI app, renders
the SageException taxonomy as JSON errors, and runs the session expiry
sweeper for the lifetime of the process.

Run with: uvicorn sage.api.main:app --reload
"""
import asyncio
import contextlib
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sage import __version__
from sage.api.routes import chat_router, health_router, history_router
from sage.core.audit import AuditMiddleware, SESSION_HEADER
from sage.core.config import get_settings
from sage.core.exceptions import RateLimited, SageException
from sage.core.logging_config import setup_logging, get_logger
from sage.sessions.registry import get_session_registry, run_expiry_sweeper


settings = get_settings()
setup_logging(settings.log_level, log_to_file=settings.log_to_file)
logger = get_logger(__name__)

RETRY_AFTER_SECONDS = 30


def _log_expired(session_ids: List[str]) -> None:
    logger.info(f"Expired {len(session_ids)} idle sessions")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting {settings.app_name} ({settings.app_env}): "
        f"gemini={bool(settings.gemini_api_key)}, groq={bool(settings.groq_api_key)}, "
        f"fallback={settings.fallback_model if settings.has_fallback else 'disabled'}, "
        f"persistent={settings.memory_persistent}"
    )

    if settings.memory_persistent:
        from sage.database.init_db import init_tables
        try:
            init_tables()
        except Exception as e:
            # Stores retry table creation on first use
            logger.error(f"Could not create tables at startup: {e}")

    sweeper = asyncio.create_task(
        run_expiry_sweeper(
            get_session_registry(),
            interval_minutes=settings.session_sweep_interval_minutes,
            on_expired=_log_expired,
        )
    )

    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(
    title="Sage Conversation API",
    description="""
    Conversational assistant with tool calling and provider fallback.

    - Send the `X-Session-ID` header returned by any call to stay in your session
    - Replies may use web search, workspace files and long-term memory
    - Rate-limited requests are answered by a secondary provider when one is configured
    - Stored conversations can be resumed by id
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[SESSION_HEADER],
    )
    logger.warning("Development CORS enabled for all origins")


@app.exception_handler(RateLimited)
async def rate_limited_handler(request: Request, exc: RateLimited):
    """Only reached when no fallback provider could answer."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


@app.exception_handler(SageException)
async def sage_exception_handler(request: Request, exc: SageException):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path}: {exc.error_code}: {exc.message} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema errors get the same body shape as ValidationError."""
    fields = {
        ".".join(str(part) for part in error["loc"] if part != "body"): error["msg"]
        for error in exc.errors()
    }
    summary = "; ".join(f"{name}: {message}" for name, message in fields.items())
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": f"Invalid request: {summary}",
            "details": None,
            "fields": fields,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # Tracebacks stay in the log; details only leave the server in development
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": str(exc) if settings.is_development() else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


app.include_router(health_router)
app.include_router(chat_router)
app.include_router(history_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "Sage Conversation API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sage.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development(),
    )
