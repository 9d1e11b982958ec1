"""
LLM Package - Model providers and their shared contracts.

- base.py         : reply variants and provider interfaces
- gemini.py       : Gemini primary provider
- groq.py         : Groq primary provider and fallback client
- errors.py       : provider error classification
- model_config.py : per-conversation model settings and validation
- prompts.py      : system prompts
- factory.py      : provider construction from settings
"""
from sage.llm.base import (
    Completion,
    FallbackClient,
    PrimaryChat,
    PrimaryProvider,
    ProviderReply,
    TextReply,
    ToolCall,
    ToolCallsReply,
    ToolResult,
)
from sage.llm.errors import classify_provider_error, is_rate_limit_error
from sage.llm.factory import build_fallback_client, build_primary_provider
from sage.llm.model_config import ModelConfig, validate_config_update

__all__ = [
    "Completion",
    "FallbackClient",
    "PrimaryChat",
    "PrimaryProvider",
    "ProviderReply",
    "TextReply",
    "ToolCall",
    "ToolCallsReply",
    "ToolResult",
    "classify_provider_error",
    "is_rate_limit_error",
    "build_fallback_client",
    "build_primary_provider",
    "ModelConfig",
    "validate_config_update",
]
