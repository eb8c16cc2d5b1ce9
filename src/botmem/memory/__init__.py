"""
Memory module - four stores sharing one SQLite database.

Stores:
- blocks: Working memory slots, always injected (human, persona, context)
- archival: Long-term facts with FTS5 search and optional embeddings
- graph: Entities and subject/predicate/object relations
- summaries: Leveled conversation summaries

context assembles blocks, recent summaries and relations into one payload.
"""

from botmem.memory.archival import ArchivalStore
from botmem.memory.blocks import BlockStore
from botmem.memory.context import ContextAssembler, ContextPayload
from botmem.memory.database import MemoryDatabase
from botmem.memory.graph import GraphStore
from botmem.memory.summaries import SummaryStore

__all__ = [
    "ArchivalStore",
    "BlockStore",
    "ContextAssembler",
    "ContextPayload",
    "GraphStore",
    "MemoryDatabase",
    "SummaryStore",
]
