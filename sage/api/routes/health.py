"""
Liveness and readiness probes.

/health answers as long as the process is up; /health/ready also reports
the database, provider credentials and the live session count.
"""
from fastapi import APIRouter, Depends

from sage import __version__
from sage.api.deps import chat_service
from sage.core.config import get_settings
from sage.models.chat import HealthResponse, ReadinessResponse
from sage.services.chat_service import ChatService


router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness probe",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=__version__)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="""
    Reports whether the service can serve conversations:
    - database connectivity (when persistence is enabled)
    - which providers have credentials
    - active session count
    """
)
async def readiness_check(service: ChatService = Depends(chat_service)) -> ReadinessResponse:
    settings = get_settings()

    database = None
    if settings.memory_persistent:
        from sage.database import get_database
        database = "connected" if get_database().check_connection() else "unavailable"

    primary_configured = bool(settings.gemini_api_key or settings.groq_api_key)
    status = "ready" if primary_configured and database != "unavailable" else "degraded"

    return ReadinessResponse(
        status=status,
        database=database,
        active_sessions=service.registry.count(),
        primary_configured=primary_configured,
        fallback_configured=settings.has_fallback,
    )
