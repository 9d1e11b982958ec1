"""
Provider construction from settings.

Credentials are checked here, when a conversation actually needs a
provider, rather than at startup.
"""
from typing import Any, Dict, List, Optional

from sage.core.config import Settings, get_settings
from sage.core.exceptions import ConfigurationError
from sage.core.logging_config import get_logger
from sage.llm.base import FallbackClient, PrimaryProvider
from sage.llm.model_config import ModelConfig

logger = get_logger(__name__)


def build_primary_provider(
    config: ModelConfig,
    tools: Optional[List[Dict[str, Any]]] = None,
    system_instruction: Optional[str] = None,
    settings: Optional[Settings] = None
) -> PrimaryProvider:
    """
    Create the primary provider named by the model config.

    Args:
        config: Conversation model config (provider and sampling values)
        tools: Neutral JSON-schema tool declarations
        system_instruction: System prompt for the model
        settings: Settings to read credentials from (defaults to global)

    Returns:
        A ready PrimaryProvider

    Raises:
        ConfigurationError: If the provider's API key is not configured
    """
    settings = settings or get_settings()

    if config.provider == "groq":
        if not settings.groq_api_key:
            raise ConfigurationError(
                "GROQ_API_KEY not configured",
                details="Set GROQ_API_KEY in .env to use Groq as the primary provider"
            )
        from sage.llm.groq import GroqProvider
        return GroqProvider(
            api_key=settings.groq_api_key,
            model_name=settings.groq_model,
            config=config,
            tools=tools,
            system_instruction=system_instruction,
        )

    if not settings.gemini_api_key:
        raise ConfigurationError(
            "GEMINI_API_KEY not configured",
            details="Set GEMINI_API_KEY in .env to use Gemini"
        )
    from sage.llm.gemini import GeminiProvider
    return GeminiProvider(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        config=config,
        tools=tools,
        system_instruction=system_instruction,
    )


def build_fallback_client(settings: Optional[Settings] = None) -> Optional[FallbackClient]:
    """The secondary provider, or None when GROQ_API_KEY is not set."""
    settings = settings or get_settings()
    if not settings.has_fallback:
        logger.info("No fallback provider configured (GROQ_API_KEY not set)")
        return None

    from sage.llm.groq import GroqFallbackClient
    return GroqFallbackClient(api_key=settings.groq_api_key, model_name=settings.fallback_model)
