"""
Fallback Protocol - One-shot retry against the secondary provider.

Used only when the primary provider is rate-limited. The secondary
provider has no tool calling, so the conversation is flattened to plain
role/content messages and sent in a single completion request. The
protocol never retries itself; failures propagate to the caller.
"""
from typing import Dict, List, Optional

from sage.core.logging_config import get_logger
from sage.llm.base import Completion, FallbackClient
from sage.llm.groq import to_openai_role
from sage.llm.model_config import ModelConfig
from sage.llm.prompts import build_fallback_system_prompt
from sage.memory.conversation import Turn
from sage.memory.long_term import LongTermMemory

logger = get_logger(__name__)


def flatten_turn(turn: Turn) -> str:
    """Plain-text content for a turn, noting any tools it invoked."""
    if turn.role == "model" and turn.tool_calls:
        return f"{turn.content}\n\n[Tools used: {', '.join(turn.tool_calls)}]"
    return turn.content


def translate_history(turns: List[Turn], pending_input: str) -> List[Dict[str, str]]:
    """
    Convert turns to the secondary provider's message shape.

    The last turn is the failed user turn; its content is replaced by
    the input the primary actually received (which may carry search
    results).
    """
    messages = [
        {"role": to_openai_role(turn.role), "content": flatten_turn(turn)}
        for turn in turns
    ]
    if messages and messages[-1]["role"] == "user":
        messages[-1]["content"] = pending_input
    else:
        messages.append({"role": "user", "content": pending_input})
    return messages


class FallbackProtocol:
    """
    Runs the single fallback completion.

    Example:
        >>> protocol = FallbackProtocol(GroqFallbackClient(key, model), memory)
        >>> completion = await protocol.run(turns, pending_input, config)
        >>> completion.model
        'llama-3.1-8b-instant'
    """

    def __init__(self, client: FallbackClient, memory: Optional[LongTermMemory] = None):
        self.client = client
        self.memory = memory

    async def _memory_summary(self, config: ModelConfig) -> str:
        if self.memory is None or config.memory_mode == "off":
            return ""
        try:
            return await self.memory.context_summary()
        except Exception as e:
            logger.warning(f"Memory summary unavailable for fallback: {e}")
            return ""

    async def run(self, turns: List[Turn], pending_input: str, config: ModelConfig) -> Completion:
        """
        Issue one completion request for the failed turn.

        Args:
            turns: Full history, ending with the failed user turn
            pending_input: Text the primary provider was sent for that turn
            config: Conversation model config (sampling values)

        Returns:
            The secondary provider's Completion

        Raises:
            Exception: Whatever the fallback client raises
        """
        system_prompt = build_fallback_system_prompt(await self._memory_summary(config))
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(translate_history(turns, pending_input))

        logger.info(f"Fallback request: messages={len(messages)}")

        return await self.client.complete(
            messages,
            temperature=config.temperature,
            max_tokens=config.max_output_tokens,
        )
