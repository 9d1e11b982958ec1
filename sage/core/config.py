"""
Settings for the Sage service, read once from the environment.

A .env file at the project root is loaded first (python-dotenv) so local
development needs no exported variables.

Provider credentials are optional here. A missing key only becomes an
error when a conversation is initialized against that provider, which
surfaces as a ConfigurationError.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv(Path(__file__).resolve().parents[2] / ".env")


@dataclass(frozen=True)
class Settings:
    """
    Immutable application settings.

    Attributes:
        app_name: Name used in startup logs
        app_env: development, staging or production
        log_level: Console log level
        log_to_file: Also write daily log files under logs/
        gemini_api_key: API key for Google Gemini (primary provider)
        gemini_model: Gemini model identifier
        groq_api_key: API key for Groq (alternate primary and fallback)
        groq_model: Groq model used when Groq is the primary provider
        fallback_model: Groq model used by the fallback protocol
        tavily_api_key: API key for web search
        database_url: SQLAlchemy URL for conversation/memory persistence
        memory_persistent: Persist conversations and memories to the database
        session_timeout_minutes: Idle time after which a session expires
        max_sessions: Session registry capacity
        session_sweep_interval_minutes: Period of the expiry sweep
        max_tool_rounds: Upper bound on tool-call rounds per message
        workspace_dir: Root directory for file tools
        enable_audit_logging: Log every HTTP request
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str
    log_to_file: bool

    # Provider settings
    gemini_api_key: Optional[str]
    gemini_model: str
    groq_api_key: Optional[str]
    groq_model: str
    fallback_model: str
    tavily_api_key: Optional[str]

    # Persistence settings
    database_url: str
    memory_persistent: bool

    # Session settings
    session_timeout_minutes: int
    max_sessions: int
    session_sweep_interval_minutes: int

    # Tool settings
    max_tool_rounds: int
    workspace_dir: str

    enable_audit_logging: bool

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"

    @property
    def has_fallback(self) -> bool:
        """Whether a secondary provider can be configured."""
        return bool(self.groq_api_key)


def _get_env(key: str, default: Optional[str] = None) -> str:
    """Read a variable; with no default, a missing value is a startup error."""
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(f"Environment variable '{key}' must be set (see .env.example)")
    return value


def _get_optional_env(key: str) -> Optional[str]:
    """Blank values count as unset, so `GROQ_API_KEY=` disables the fallback."""
    value = os.environ.get(key, "").strip()
    return value or None


def _get_bool(key: str, default: bool) -> bool:
    return _get_env(key, "true" if default else "false").strip().lower() in ("1", "true", "yes")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Build the settings once per process.

    Tests that change the environment call get_settings.cache_clear().
    """
    database_url = _get_env("DATABASE_URL", "sqlite:///./sage.db")

    # Heroku-style URLs use the legacy dialect name
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "Sage"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        log_to_file=_get_bool("LOG_TO_FILE", True),

        # Providers
        gemini_api_key=_get_optional_env("GEMINI_API_KEY"),
        gemini_model=_get_env("GEMINI_MODEL", "gemini-2.0-flash"),
        groq_api_key=_get_optional_env("GROQ_API_KEY"),
        groq_model=_get_env("GROQ_MODEL", "llama-3.3-70b-versatile"),
        fallback_model=_get_env("FALLBACK_MODEL", "llama-3.1-8b-instant"),
        tavily_api_key=_get_optional_env("TAVILY_API_KEY"),

        # Persistence
        database_url=database_url,
        memory_persistent=_get_bool("MEMORY_PERSISTENT", False),

        # Sessions
        session_timeout_minutes=int(_get_env("SESSION_TIMEOUT_MINUTES", "30")),
        max_sessions=int(_get_env("MAX_SESSIONS", "10000")),
        session_sweep_interval_minutes=int(_get_env("SESSION_SWEEP_INTERVAL_MINUTES", "5")),

        # Tools
        max_tool_rounds=int(_get_env("MAX_TOOL_ROUNDS", "5")),
        workspace_dir=_get_env("WORKSPACE_DIR", os.getcwd()),

        enable_audit_logging=_get_bool("ENABLE_AUDIT_LOGGING", True),
    )
