"""
Groq providers.

Groq serves two roles:
- GroqProvider: an alternate primary provider with OpenAI-style tool calls
- GroqFallbackClient: the single-shot secondary provider used when the
  primary is rate-limited
"""
import json
from typing import Any, Dict, List, Optional

from groq import AsyncGroq

from sage.core.logging_config import get_logger
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
from sage.llm.model_config import ModelConfig
from sage.memory.conversation import Turn

logger = get_logger(__name__)


def to_openai_role(role: str) -> str:
    """The secondary provider calls the model 'assistant'."""
    return "assistant" if role == "model" else role


def parse_tool_arguments(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a tool-call argument string; anything but a JSON object is None."""
    if not raw:
        return {}
    try:
        args = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return args if isinstance(args, dict) else None


class GroqChat(PrimaryChat):
    """Chat state for Groq: the running OpenAI-format message list."""

    def __init__(
        self,
        client: AsyncGroq,
        model_name: str,
        config: ModelConfig,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]]
    ):
        self._client = client
        self._model_name = model_name
        self._config = config
        self._messages = messages
        self._tools = tools

    async def send(self, text: str) -> ProviderReply:
        self._messages.append({"role": "user", "content": text})
        return await self._complete()

    async def send_tool_results(self, results: List[ToolResult]) -> ProviderReply:
        for result in results:
            self._messages.append({
                "role": "tool",
                "tool_call_id": result.call_id,
                "name": result.name,
                "content": json.dumps(result.response),
            })
        return await self._complete()

    async def _complete(self) -> ProviderReply:
        params: Dict[str, Any] = {
            "model": self._model_name,
            "messages": self._messages,
            "temperature": self._config.temperature,
            "top_p": self._config.top_p,
            "max_tokens": self._config.max_output_tokens,
        }
        if self._tools:
            params["tools"] = self._tools

        response = await self._client.chat.completions.create(**params)
        message = response.choices[0].message
        content = message.content or ""

        if message.tool_calls:
            self._messages.append({
                "role": "assistant",
                "content": content,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.function.name,
                            "arguments": tc.function.arguments,
                        },
                    }
                    for tc in message.tool_calls
                ],
            })
            calls = [
                ToolCall(
                    name=tc.function.name or None,
                    args=parse_tool_arguments(tc.function.arguments),
                    call_id=tc.id,
                )
                for tc in message.tool_calls
            ]
            return ToolCallsReply(calls=calls, text=content)

        self._messages.append({"role": "assistant", "content": content})
        return TextReply(text=content)


class GroqProvider(PrimaryProvider):
    """Groq-hosted model as the primary, tool-calling provider."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        config: ModelConfig,
        tools: Optional[List[Dict[str, Any]]] = None,
        system_instruction: Optional[str] = None
    ):
        self._client = AsyncGroq(api_key=api_key)
        self.model_name = model_name
        self._config = config
        self._system_instruction = system_instruction
        self._tools = [{"type": "function", "function": tool} for tool in tools or []]

        logger.info(f"Groq provider initialized: model={model_name}, tools={len(self._tools)}")

    def start_chat(self, history: List[Turn]) -> PrimaryChat:
        messages: List[Dict[str, Any]] = []
        if self._system_instruction:
            messages.append({"role": "system", "content": self._system_instruction})
        messages.extend(
            {"role": to_openai_role(turn.role), "content": turn.content}
            for turn in history
        )
        return GroqChat(self._client, self.model_name, self._config, messages, self._tools)


class GroqFallbackClient(FallbackClient):
    """
    Single-shot Groq completions for the fallback protocol.

    No tools are sent: the fallback path never tool-calls.
    """

    def __init__(self, api_key: str, model_name: str):
        self._client = AsyncGroq(api_key=api_key)
        self.model_name = model_name
        logger.info(f"Groq fallback client initialized: model={model_name}")

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Completion:
        response = await self._client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            temperature=0.7 if temperature is None else temperature,
            max_tokens=max_tokens or 4000,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("Invalid fallback response: missing message content")

        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return Completion(content=content, model=response.model or self.model_name, usage=usage)
