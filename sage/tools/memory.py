"""
Memory capability adapters over a LongTermMemory.
"""
from sage.memory.long_term import LongTermMemory
from sage.tools.base import AdapterResult


class MemoryAdapters:
    """remember_fact / recall_facts adapters bound to one memory backend."""

    def __init__(self, memory: LongTermMemory):
        self.memory = memory

    async def remember_fact(self, content: str, category: str = "general") -> AdapterResult:
        fact = await self.memory.remember(content, category)
        return AdapterResult.ok(
            stored=True,
            message=f"Remembered: {fact.content}",
            category=fact.category,
        )

    async def recall_facts(self, query: str) -> AdapterResult:
        facts = await self.memory.recall(query)
        if not facts:
            return AdapterResult.ok(facts=[], message="No relevant memories found")
        return AdapterResult.ok(
            facts=[fact.to_dict() for fact in facts],
            message=f"Found {len(facts)} relevant memories",
        )
