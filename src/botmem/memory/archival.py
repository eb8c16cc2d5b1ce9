"""Archival store - append-only long-term facts with FTS5 search."""

import re

from botmem.core.errors import NotFoundError, StoreError
from botmem.core.logging import get_logger
from botmem.memory.base import ArchivalEntry
from botmem.memory.database import MemoryDatabase, store_errors

logger = get_logger("memory.archival")

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_LIST_LIMIT = 50

_COLUMNS = "id, content, tags, created_at, embedding"

_TERM_RE = re.compile(r"\w+", re.UNICODE)


def _row_to_entry(row: tuple) -> ArchivalEntry:
    return ArchivalEntry(
        id=row[0],
        content=row[1],
        tags=row[2],
        created_at=row[3],
        embedding=row[4],
    )


def join_tags(tags: list[str] | None) -> str:
    """Serialize tags to the stored comma-joined form ("" for none)."""
    return ",".join(tags) if tags else ""


def fts_query(query: str) -> str:
    """Turn free text into an FTS5 query of quoted terms (implicit AND).

    Quoting every term keeps punctuation like commas or colons from being
    parsed as FTS5 syntax.
    """
    return " ".join(f'"{term}"' for term in _TERM_RE.findall(query))


class ArchivalStore:
    """Facts are created and deleted, never updated in place."""

    def __init__(self, db: MemoryDatabase, embedding_dim: int | None = None):
        self.db = db
        self.embedding_dim = embedding_dim

    async def add(
        self,
        content: str,
        tags: list[str] | None = None,
        embedding: bytes | None = None,
    ) -> ArchivalEntry:
        """Store a fact, optionally with a serialized embedding vector."""
        if embedding is not None and self.embedding_dim:
            expected = self.embedding_dim * 4
            if len(embedding) != expected:
                raise StoreError(
                    "add archival",
                    f"embedding is {len(embedding)} bytes, expected {expected} "
                    f"({self.embedding_dim} float32 values)"
                )

        with store_errors("add archival"):
            cursor = await self.db.conn.execute(
                "INSERT INTO archival (content, tags, embedding) VALUES (?, ?, ?)",
                (content, join_tags(tags), embedding),
            )
            await self.db.conn.commit()

        logger.debug(f"Archived fact {cursor.lastrowid} (tags={join_tags(tags)!r})")
        return await self.get_by_id(cursor.lastrowid)

    async def get_by_id(self, entry_id: int) -> ArchivalEntry:
        """Get entry by id. Raises NotFoundError."""
        with store_errors(f"get archival {entry_id}"):
            async with self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM archival WHERE id = ?", (entry_id,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"get archival {entry_id}", "no such entry")
        return _row_to_entry(row)

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[ArchivalEntry]:
        """Full-text search over content and tags, most relevant first."""
        if limit <= 0:
            limit = DEFAULT_SEARCH_LIMIT

        match = fts_query(query)
        if not match:
            return []

        # bm25 rank: lower is more relevant
        with store_errors("search archival"):
            async with self.db.conn.execute(
                """SELECT a.id, a.content, a.tags, a.created_at, a.embedding
                   FROM archival_fts
                   JOIN archival a ON a.id = archival_fts.rowid
                   WHERE archival_fts MATCH ?
                   ORDER BY rank
                   LIMIT ?""",
                (match, limit),
            ) as cursor:
                results = [_row_to_entry(row) async for row in cursor]

        logger.debug(f"FTS search returned {len(results)} results for query: {query}")
        return results

    async def delete(self, entry_id: int) -> None:
        """Delete entry by id. The FTS index follows via trigger."""
        with store_errors(f"delete archival {entry_id}"):
            await self.db.conn.execute("DELETE FROM archival WHERE id = ?", (entry_id,))
            await self.db.conn.commit()

    async def all_with_embeddings(self) -> list[ArchivalEntry]:
        """Entries that carry an embedding, for brute-force similarity scans."""
        with store_errors("list embeddings"):
            async with self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM archival WHERE embedding IS NOT NULL ORDER BY id"
            ) as cursor:
                return [_row_to_entry(row) async for row in cursor]

    async def list(self, tag: str = "", limit: int = DEFAULT_LIST_LIMIT) -> list[ArchivalEntry]:
        """Most recent entries first. Tag filter is a case-insensitive substring match."""
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT

        query = f"SELECT {_COLUMNS} FROM archival"
        args: list = []
        if tag:
            query += " WHERE instr(lower(tags), lower(?)) > 0"
            args.append(tag)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        args.append(limit)

        with store_errors("list archival"):
            async with self.db.conn.execute(query, args) as cursor:
                return [_row_to_entry(row) async for row in cursor]
