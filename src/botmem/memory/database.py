"""SQLite database holding all four memory stores (WAL, foreign keys, FTS5)."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import aiosqlite

from botmem.core.errors import StoreError
from botmem.core.logging import get_logger

logger = get_logger("memory.database")


def _convert_datetime(val: bytes) -> datetime:
    """Convert stored timestamp text back to datetime."""
    return datetime.fromisoformat(val.decode())


# Python 3.12+ deprecates the implicit default converters
sqlite3.register_converter("DATETIME", _convert_datetime)

# Millisecond UTC timestamps keep recency ordering stable within one second
NOW = "(strftime('%Y-%m-%d %H:%M:%f', 'now'))"

SCHEMA = f"""
-- Working memory: one live row per label
CREATE TABLE IF NOT EXISTS memory_blocks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    label TEXT NOT NULL UNIQUE,
    block_type TEXT NOT NULL DEFAULT 'core',
    content TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL DEFAULT {NOW},
    updated_at DATETIME NOT NULL DEFAULT {NOW}
);

-- Archival memory: append-only facts
CREATE TABLE IF NOT EXISTS archival (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '',
    embedding BLOB,  -- little-endian float32 vector
    created_at DATETIME NOT NULL DEFAULT {NOW}
);

-- FTS5 index over archival content and tags
CREATE VIRTUAL TABLE IF NOT EXISTS archival_fts USING fts5(
    content,
    tags,
    content='archival',
    content_rowid='id',
    tokenize='porter unicode61'
);

-- Triggers to keep FTS in sync
CREATE TRIGGER IF NOT EXISTS archival_ai AFTER INSERT ON archival BEGIN
    INSERT INTO archival_fts(rowid, content, tags) VALUES (new.id, new.content, new.tags);
END;

CREATE TRIGGER IF NOT EXISTS archival_ad AFTER DELETE ON archival BEGIN
    INSERT INTO archival_fts(archival_fts, rowid, content, tags)
        VALUES ('delete', old.id, old.content, old.tags);
END;

CREATE TRIGGER IF NOT EXISTS archival_au AFTER UPDATE ON archival BEGIN
    INSERT INTO archival_fts(archival_fts, rowid, content, tags)
        VALUES ('delete', old.id, old.content, old.tags);
    INSERT INTO archival_fts(rowid, content, tags) VALUES (new.id, new.content, new.tags);
END;

-- Knowledge graph
CREATE TABLE IF NOT EXISTS entities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    entity_type TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL DEFAULT {NOW}
);

CREATE TABLE IF NOT EXISTS relations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject_id INTEGER NOT NULL REFERENCES entities(id),
    predicate TEXT NOT NULL,
    object_id INTEGER NOT NULL REFERENCES entities(id),
    metadata TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL DEFAULT {NOW},
    UNIQUE(subject_id, predicate, object_id)
);

-- Conversation summaries
CREATE TABLE IF NOT EXISTS conversation_summaries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    level INTEGER NOT NULL DEFAULT 0,
    content TEXT NOT NULL,
    source_ids TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL DEFAULT {NOW}
);

CREATE INDEX IF NOT EXISTS idx_summaries_level
    ON conversation_summaries(level, created_at);
"""


class MemoryDatabase:
    """Owns the aiosqlite connection shared by the stores."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database, enable WAL + foreign keys, create schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES,
        )
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.debug(f"Connected to memory database: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "MemoryDatabase":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Memory database not connected. Call connect() first.")
        return self._conn


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise engine errors as StoreError naming the failing operation."""
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(operation, str(e)) from e
