"""
Embedding vectors for archival facts.

Vectors are stored as little-endian float32 BLOBs. Similarity is a
brute-force cosine scan; there is no vector index.
"""

import math
import struct
from typing import Protocol, runtime_checkable

import httpx

from botmem.core.logging import get_logger
from botmem.memory.base import ArchivalEntry

logger = get_logger("memory.embeddings")

OLLAMA_DEFAULT_URL = "http://localhost:11434"
OLLAMA_DEFAULT_MODEL = "nomic-embed-text"


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-length vector."""

    async def embed(self, text: str) -> list[float]:
        ...

    async def close(self) -> None:
        ...


def serialize_embedding(vector: list[float]) -> bytes:
    """Pack floats as little-endian float32 (4 bytes each)."""
    return struct.pack(f"<{len(vector)}f", *vector)


def deserialize_embedding(data: bytes) -> list[float]:
    """Unpack a little-endian float32 BLOB. Trailing partial floats are dropped."""
    count = len(data) // 4
    return list(struct.unpack(f"<{count}f", data[: count * 4]))


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 for mismatched lengths or zero vectors."""
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def rank_by_similarity(
    query: list[float],
    entries: list[ArchivalEntry],
    limit: int = 10,
) -> list[tuple[ArchivalEntry, float]]:
    """Score entries against a query vector, best first.

    Entries without an embedding are skipped.
    """
    scored = [
        (entry, cosine_similarity(query, deserialize_embedding(entry.embedding)))
        for entry in entries
        if entry.embedding
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit] if limit > 0 else scored


class OllamaEmbeddingProvider:
    """Embeddings from a local Ollama instance (/api/embed)."""

    def __init__(
        self,
        base_url: str = OLLAMA_DEFAULT_URL,
        model: str = OLLAMA_DEFAULT_MODEL,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or OLLAMA_DEFAULT_URL).rstrip("/")
        self.model = model or OLLAMA_DEFAULT_MODEL
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=60.0)
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Embed one text. Raises httpx errors or ValueError on bad responses."""
        response = await self.client.post(
            "/api/embed", json={"model": self.model, "input": text}
        )
        response.raise_for_status()
        data = response.json()

        embeddings = data.get("embeddings") or []
        if not embeddings:
            raise ValueError("no embeddings returned")
        logger.debug(f"Embedded {len(text)} chars -> {len(embeddings[0])} dims")
        return embeddings[0]

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
