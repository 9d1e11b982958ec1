"""
Gemini primary provider.

Wraps google-generativeai chat sessions with function calling. Tool
declarations arrive as plain JSON schema and are converted to the
upper-case type names the Gemini API expects.
"""
from typing import Any, Dict, List, Optional

import google.generativeai as genai

from sage.core.logging_config import get_logger
from sage.llm.base import (
    PrimaryChat,
    PrimaryProvider,
    ProviderReply,
    TextReply,
    ToolCall,
    ToolCallsReply,
    ToolResult,
)
from sage.llm.model_config import ModelConfig
from sage.memory.conversation import Turn

logger = get_logger(__name__)


def to_gemini_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively upper-case JSON-schema type names."""
    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties" and isinstance(value, dict):
            converted[key] = {name: to_gemini_schema(prop) for name, prop in value.items()}
        elif key == "items" and isinstance(value, dict):
            converted[key] = to_gemini_schema(value)
        else:
            converted[key] = value
    return converted


def to_gemini_history(turns: List[Turn]) -> List[Dict[str, Any]]:
    """Turns become {role, parts}; 'model' is already Gemini's role name."""
    return [{"role": turn.role, "parts": [turn.content]} for turn in turns]


def translate_response(response: Any) -> ProviderReply:
    """
    Decide the reply variant of a raw Gemini response.

    Function-call parts win over text; their arguments are converted to
    a plain dict; a call without arguments gets an empty dict and one
    whose arguments are not an object gets None.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return TextReply(text="")

    calls: List[ToolCall] = []
    texts: List[str] = []

    for part in candidates[0].content.parts:
        if "function_call" in part:
            payload = type(part.function_call).to_dict(part.function_call)
            args = payload.get("args")
            if args is None:
                # An empty argument object is dropped from the payload
                args = {}
            calls.append(ToolCall(
                name=payload.get("name") or None,
                args=args if isinstance(args, dict) else None,
            ))
        elif part.text:
            texts.append(part.text)

    text = "".join(texts)
    if calls:
        return ToolCallsReply(calls=calls, text=text)
    return TextReply(text=text)


class GeminiChat(PrimaryChat):
    """A google-generativeai ChatSession speaking the reply variants."""

    def __init__(self, session: "genai.ChatSession"):
        self._session = session

    async def send(self, text: str) -> ProviderReply:
        response = await self._session.send_message_async(text)
        return translate_response(response)

    async def send_tool_results(self, results: List[ToolResult]) -> ProviderReply:
        parts = [
            genai.protos.Part(
                function_response=genai.protos.FunctionResponse(
                    name=result.name,
                    response=result.response,
                )
            )
            for result in results
        ]
        response = await self._session.send_message_async(parts)
        return translate_response(response)


class GeminiProvider(PrimaryProvider):
    """
    Google Gemini with function calling.

    Example:
        >>> provider = GeminiProvider(api_key, "gemini-2.0-flash", ModelConfig(), tools, prompt)
        >>> chat = provider.start_chat(history=[])
        >>> reply = await chat.send("Hello!")
    """

    def __init__(
        self,
        api_key: str,
        model_name: str,
        config: ModelConfig,
        tools: Optional[List[Dict[str, Any]]] = None,
        system_instruction: Optional[str] = None
    ):
        genai.configure(api_key=api_key)

        self.model_name = model_name
        declarations = [
            {
                "name": tool["name"],
                "description": tool["description"],
                "parameters": to_gemini_schema(tool["parameters"]),
            }
            for tool in tools or []
        ]

        self._model = genai.GenerativeModel(
            model_name=model_name,
            tools=[{"function_declarations": declarations}] if declarations else None,
            system_instruction=system_instruction,
            generation_config=genai.GenerationConfig(
                temperature=config.temperature,
                top_p=config.top_p,
                top_k=config.top_k,
                max_output_tokens=config.max_output_tokens,
            ),
        )

        logger.info(f"Gemini provider initialized: model={model_name}, tools={len(declarations)}")

    def start_chat(self, history: List[Turn]) -> PrimaryChat:
        return GeminiChat(self._model.start_chat(history=to_gemini_history(history)))
