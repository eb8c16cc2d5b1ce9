"""
Extraction pipeline.

Turns free conversation text into writes across all four stores:
text -> backend -> ExtractionResult -> blocks, archival, graph, summaries.

Stages run in a fixed order with no retries. A failed store write aborts the
run; writes already applied are kept (there is no cross-store transaction).
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from botmem.core.config import Settings
from botmem.core.logging import get_logger
from botmem.ingest.schema import SYSTEM_PROMPT, ExtractionResult, Fact, parse_extraction
from botmem.llm.base import BackendType, ExtractionBackend
from botmem.llm.factory import create_backend
from botmem.memory.archival import ArchivalStore
from botmem.memory.blocks import DEFAULT_BLOCK_TYPE, BlockStore
from botmem.memory.database import MemoryDatabase
from botmem.memory.embeddings import (
    EmbeddingProvider,
    OllamaEmbeddingProvider,
    serialize_embedding,
)
from botmem.memory.graph import GraphStore
from botmem.memory.summaries import SummaryStore

logger = get_logger("ingest.pipeline")

SUMMARY_LEVEL = 0


class IngestStage(Enum):
    IDLE = "idle"
    BACKEND_SELECTED = "backend_selected"
    BACKEND_INVOKED = "backend_invoked"
    RESULT_PARSED = "result_parsed"
    STORES_UPDATED = "stores_updated"
    DONE = "done"
    FAILED = "failed"


@dataclass
class IngestConfig:
    """Everything the pipeline needs, passed in explicitly."""

    provider: str
    model: str = ""
    api_key: str = ""
    base_url: str = ""
    embedder: EmbeddingProvider | None = None
    embedding_dim: int | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        environ: Mapping[str, str] | None = None,
    ) -> "IngestConfig":
        """Build from settings, resolving ANTHROPIC_API_KEY as a fallback key."""
        environ = os.environ if environ is None else environ

        api_key = settings.llm.api_key
        if not api_key and settings.llm.provider.lower() == BackendType.ANTHROPIC.value:
            api_key = environ.get("ANTHROPIC_API_KEY", "")

        embedder = None
        embedding_dim = None
        if settings.embeddings.enabled:
            embedder = OllamaEmbeddingProvider(
                base_url=settings.embeddings.base_url,
                model=settings.embeddings.model,
            )
            embedding_dim = settings.embeddings.dimensions

        return cls(
            provider=settings.llm.provider,
            model=settings.llm.model,
            api_key=api_key,
            base_url=settings.llm.base_url,
            embedder=embedder,
            embedding_dim=embedding_dim,
        )


class ExtractionPipeline:
    """Runs one extraction and fans the result out to the stores."""

    def __init__(
        self,
        db: MemoryDatabase,
        config: IngestConfig,
        backend: ExtractionBackend | None = None,
    ):
        self.config = config
        self.blocks = BlockStore(db)
        self.archival = ArchivalStore(db, embedding_dim=config.embedding_dim)
        self.graph = GraphStore(db)
        self.summaries = SummaryStore(db)
        self._backend = backend
        self.stage = IngestStage.IDLE

    def _select_backend(self) -> ExtractionBackend:
        if self._backend is None:
            self._backend = create_backend(
                self.config.provider,
                model=self.config.model,
                api_key=self.config.api_key,
                base_url=self.config.base_url,
            )
        return self._backend

    async def close(self) -> None:
        """Close the backend and the embedding provider."""
        if self._backend is not None:
            await self._backend.close()
        if self.config.embedder is not None:
            await self.config.embedder.close()

    async def __aenter__(self) -> "ExtractionPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def run(self, text: str) -> ExtractionResult:
        """Extract memories from text and store them.

        Raises ConfigurationError, BackendError, SchemaError or StoreError;
        self.stage records how far the run got.
        """
        self.stage = IngestStage.IDLE
        try:
            backend = self._select_backend()
            self.stage = IngestStage.BACKEND_SELECTED

            logger.info(f"Extracting with {backend.name} ({len(text)} chars)")
            raw = await backend.invoke(SYSTEM_PROMPT, text)
            self.stage = IngestStage.BACKEND_INVOKED

            result = parse_extraction(raw)
            self.stage = IngestStage.RESULT_PARSED
            logger.debug(
                f"Extracted {len(result.block_updates)} block updates, "
                f"{len(result.facts)} facts, {len(result.triplets)} triplets"
            )

            await self.apply(result)
            self.stage = IngestStage.STORES_UPDATED
        except Exception:
            failed_after = self.stage
            self.stage = IngestStage.FAILED
            logger.error(f"Ingest failed after stage {failed_after.value}")
            raise

        self.stage = IngestStage.DONE
        logger.info("Ingest complete")
        return result

    async def apply(self, result: ExtractionResult) -> None:
        """Write an extraction result: blocks, facts, triplets, then summary."""
        for update in result.block_updates:
            await self.blocks.set(update.label, update.content, DEFAULT_BLOCK_TYPE)

        for fact in result.facts:
            embedding = await self._embed(fact)
            await self.archival.add(fact.content, fact.tags, embedding)

        for triplet in result.triplets:
            await self.graph.add_relation(triplet.subject, triplet.predicate, triplet.object)

        if result.summary:
            await self.summaries.add(SUMMARY_LEVEL, result.summary)

    async def _embed(self, fact: Fact) -> bytes | None:
        """Best-effort embedding; any failure stores the fact without a vector."""
        if self.config.embedder is None:
            return None
        try:
            vector = await self.config.embedder.embed(fact.content)
        except Exception as e:
            logger.warning(f"Embedding failed, storing fact without vector: {e}")
            return None

        dim = self.config.embedding_dim
        if dim and len(vector) != dim:
            logger.warning(
                f"Embedding has {len(vector)} dims, expected {dim}; storing fact without vector"
            )
            return None
        return serialize_embedding(vector)
