"""
Context assembly.

Merges core blocks, recent summaries and the relation graph into one
read-only payload for prompt injection. Recomputed from storage on every call.
"""

import json
from dataclasses import dataclass, field

from botmem.core.errors import BotmemError, ContextAssemblyError
from botmem.core.logging import get_logger
from botmem.core.typing import JSONDict
from botmem.memory.base import Block, Relation, Summary
from botmem.memory.blocks import BlockStore
from botmem.memory.database import MemoryDatabase
from botmem.memory.graph import GraphStore
from botmem.memory.summaries import SummaryStore

logger = get_logger("memory.context")

CORE_BLOCK_TYPE = "core"
RECENT_SUMMARY_LEVEL = 0
RECENT_SUMMARY_LIMIT = 5


@dataclass
class ContextPayload:
    """Structured context returned to an LLM."""

    core_blocks: list[Block] = field(default_factory=list)
    recent_summaries: list[Summary] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    def to_dict(self) -> JSONDict:
        """Wire shape; summaries and relations are omitted when empty."""
        data: JSONDict = {"core_blocks": [b.to_dict() for b in self.core_blocks]}
        if self.recent_summaries:
            data["recent_summaries"] = [s.to_dict() for s in self.recent_summaries]
        if self.relations:
            data["key_relations"] = [r.to_dict() for r in self.relations]
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


class ContextAssembler:
    """Pure aggregation over the block, summary and graph stores."""

    def __init__(self, blocks: BlockStore, summaries: SummaryStore, graph: GraphStore):
        self.blocks = blocks
        self.summaries = summaries
        self.graph = graph

    @classmethod
    def from_database(cls, db: MemoryDatabase) -> "ContextAssembler":
        return cls(BlockStore(db), SummaryStore(db), GraphStore(db))

    async def build(self) -> ContextPayload:
        """Assemble the payload. Any failed read fails the whole build."""
        try:
            core_blocks = await self.blocks.list(CORE_BLOCK_TYPE)
        except BotmemError as e:
            raise ContextAssemblyError("blocks", str(e)) from e

        try:
            recent = await self.summaries.list(RECENT_SUMMARY_LEVEL, RECENT_SUMMARY_LIMIT)
        except BotmemError as e:
            raise ContextAssemblyError("summaries", str(e)) from e

        try:
            relations = await self._collect_relations()
        except BotmemError as e:
            raise ContextAssemblyError("graph", str(e)) from e

        logger.debug(
            f"Context: {len(core_blocks)} blocks, {len(recent)} summaries, "
            f"{len(relations)} relations"
        )
        return ContextPayload(
            core_blocks=core_blocks,
            recent_summaries=recent,
            relations=relations,
        )

    async def _collect_relations(self) -> list[Relation]:
        """Union of every entity's relations, de-duplicated by relation id.

        Each relation surfaces once per endpoint scanned. Graphs are assumed
        small enough to walk in full.
        """
        seen: set[int] = set()
        relations: list[Relation] = []
        for entity in await self.graph.list_entities(""):
            for relation in await self.graph.query_entity(entity.name):
                if relation.id not in seen:
                    seen.add(relation.id)
                    relations.append(relation)
        return relations
