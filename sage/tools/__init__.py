"""
Tools Package - Capability adapters and tool dispatch.

- base.py       : AdapterResult, CapabilityAdapters, confirmation gating
- search.py     : search-intent heuristic and the Tavily search adapter
- files.py      : workspace-confined file adapters
- memory.py     : long-term memory adapters
- dispatcher.py : tool declarations and call routing
"""
from sage.tools.base import (
    AdapterResult,
    CapabilityAdapters,
    require_confirmation,
)
from sage.tools.dispatcher import ToolDispatcher, TOOL_SPECS
from sage.tools.files import FileOperations
from sage.tools.memory import MemoryAdapters
from sage.tools.search import (
    TavilySearch,
    build_search_prompt,
    detect_search_intent,
    extract_search_query,
)

__all__ = [
    "AdapterResult",
    "CapabilityAdapters",
    "require_confirmation",
    "ToolDispatcher",
    "TOOL_SPECS",
    "FileOperations",
    "MemoryAdapters",
    "TavilySearch",
    "build_search_prompt",
    "detect_search_intent",
    "extract_search_query",
]
