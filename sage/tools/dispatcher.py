"""
Tool Dispatcher - Routes provider tool calls to capability adapters.

The dispatcher owns the tool declarations offered to the primary
provider and maps each declared tool name onto one adapter. Malformed
or unknown calls are skipped; adapter failures come back as failure
results. Nothing here raises into the orchestration loop.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sage.core.logging_config import LoggerMixin
from sage.llm.base import ToolCall, ToolResult
from sage.tools.base import AdapterResult, CapabilityAdapters

SKIPPED_MESSAGE = "Skipped malformed tool call"


@dataclass(frozen=True)
class ToolSpec:
    """
    One declared tool.

    Attributes:
        name: Tool name the provider calls
        description: Guidance for the model
        parameters: JSON schema of the arguments
        adapter: CapabilityAdapters attribute that performs it
        arguments: Ordered (tool argument, adapter argument) pairs
        memory: Hidden when memory mode is 'off'
    """
    name: str
    description: str
    parameters: Dict[str, Any]
    adapter: str
    arguments: Tuple[Tuple[str, str], ...]
    memory: bool = False

    @property
    def required(self) -> List[str]:
        return list(self.parameters.get("required", []))

    def declaration(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


TOOL_SPECS = [
    ToolSpec(
        name="web_search",
        description=(
            "Search the web for current information such as news, weather, "
            "prices or recent events."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query"},
            },
            "required": ["query"],
        },
        adapter="search",
        arguments=(("query", "query"),),
    ),
    ToolSpec(
        name="search_files",
        description=(
            "Search for files by name or glob pattern in the workspace. "
            "Use this before reading a file whose location is unknown."
        ),
        parameters={
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": "File name or glob pattern, e.g. 'banner.*' or 'src/**/*.py'",
                },
            },
            "required": ["pattern"],
        },
        adapter="search_files",
        arguments=(("pattern", "pattern"),),
    ),
    ToolSpec(
        name="read_file",
        description="Read the contents of a file in the workspace.",
        parameters={
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path relative to the workspace"},
                "reason": {"type": "string", "description": "Why the file needs to be read"},
            },
            "required": ["file_path"],
        },
        adapter="read_file",
        arguments=(("file_path", "file_path"),),
    ),
    ToolSpec(
        name="write_file",
        description="Create or overwrite a file in the workspace.",
        parameters={
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path relative to the workspace"},
                "content": {"type": "string", "description": "Full file content to write"},
                "reason": {"type": "string", "description": "Why the file is being written"},
            },
            "required": ["file_path", "content"],
        },
        adapter="write_file",
        arguments=(("file_path", "file_path"), ("content", "content")),
    ),
    ToolSpec(
        name="remember_info",
        description=(
            "Store information about the user for future conversations: "
            "preferences, personal facts, or project context."
        ),
        parameters={
            "type": "object",
            "properties": {
                "content": {"type": "string", "description": "The information to remember"},
                "category": {
                    "type": "string",
                    "description": "One of: preference, fact, context, project, general",
                },
            },
            "required": ["content"],
        },
        adapter="remember_fact",
        arguments=(("content", "content"), ("category", "category")),
        memory=True,
    ),
    ToolSpec(
        name="recall_info",
        description=(
            "Search stored memories about the user to personalize a response."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "What to look for in memory"},
            },
            "required": ["query"],
        },
        adapter="recall_facts",
        arguments=(("query", "query"),),
        memory=True,
    ),
]


class ToolDispatcher(LoggerMixin):
    """
    Declares tools and dispatches tool calls.

    Example:
        >>> dispatcher = ToolDispatcher(adapters, memory_mode="active")
        >>> provider = build_primary_provider(config, tools=dispatcher.declarations())
        >>> result = await dispatcher.dispatch(ToolCall("web_search", {"query": "news"}))
    """

    def __init__(self, adapters: Optional[CapabilityAdapters] = None, memory_mode: str = "active"):
        self.adapters = adapters or CapabilityAdapters()
        self.memory_mode = memory_mode

    def available_tools(self) -> List[ToolSpec]:
        """Specs whose adapter exists and which the memory mode allows."""
        return [
            spec for spec in TOOL_SPECS
            if getattr(self.adapters, spec.adapter) is not None
            and not (spec.memory and self.memory_mode == "off")
        ]

    def declarations(self) -> List[Dict[str, Any]]:
        return [spec.declaration() for spec in self.available_tools()]

    def _lookup(self, name: str) -> Optional[ToolSpec]:
        for spec in self.available_tools():
            if spec.name == name:
                return spec
        return None

    async def dispatch(self, call: ToolCall) -> Optional[ToolResult]:
        """
        Run one tool call.

        Args:
            call: The provider's tool call

        Returns:
            The ToolResult, or None when the call is skipped (missing name,
            non-object arguments, or a tool that is not offered)
        """
        if not call.name or not isinstance(call.args, dict):
            self.logger.warning(f"Skipping malformed tool call: name={call.name!r}")
            return None

        spec = self._lookup(call.name)
        if spec is None:
            self.logger.warning(f"Skipping unknown tool call: {call.name}")
            return None

        missing = [arg for arg in spec.required if call.args.get(arg) in (None, "")]
        if missing:
            result = AdapterResult.fail(f"Missing required argument: {', '.join(missing)}")
            return ToolResult(name=call.name, response=result.to_response(), call_id=call.call_id)

        kwargs = {
            target: call.args[source]
            for source, target in spec.arguments
            if call.args.get(source) is not None
        }
        adapter = getattr(self.adapters, spec.adapter)

        self.logger.info(f"Invoking tool: {call.name}")

        try:
            result = await adapter(**kwargs)
        except Exception as e:
            self.logger.exception(f"Tool {call.name} failed: {e}")
            result = AdapterResult.fail(f"{call.name} failed: {e}")

        if not result.success:
            self.logger.info(f"Tool {call.name} returned failure: {result.error}")

        return ToolResult(name=call.name, response=result.to_response(), call_id=call.call_id)


def skipped_result(call: ToolCall) -> ToolResult:
    """
    Failure result answering a call that was skipped, not run.

    Providers expect one response per call id in a round, so a skipped
    call still gets an entry when the round is resubmitted.
    """
    result = AdapterResult.fail(SKIPPED_MESSAGE)
    return ToolResult(name=call.name or "unknown", response=result.to_response(), call_id=call.call_id)
