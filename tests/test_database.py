"""Tests for database setup: pragmas, schema and FTS triggers."""

import sqlite3
from pathlib import Path

import pytest

from botmem.core.errors import StoreError
from botmem.memory.blocks import BlockStore
from botmem.memory.database import MemoryDatabase


@pytest.fixture
async def db(tmp_path: Path):
    database = MemoryDatabase(tmp_path / "nested" / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest.mark.asyncio
async def test_creates_parent_directory(db: MemoryDatabase):
    assert db.db_path.exists()


@pytest.mark.asyncio
async def test_wal_mode_enabled(db: MemoryDatabase):
    async with db.conn.execute("PRAGMA journal_mode") as cursor:
        row = await cursor.fetchone()
    assert row[0].lower() == "wal"


@pytest.mark.asyncio
async def test_foreign_keys_enabled(db: MemoryDatabase):
    async with db.conn.execute("PRAGMA foreign_keys") as cursor:
        row = await cursor.fetchone()
    assert row[0] == 1


@pytest.mark.asyncio
async def test_tables_exist(db: MemoryDatabase):
    async with db.conn.execute(
        "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
    ) as cursor:
        names = {row[0] async for row in cursor}
    for table in (
        "memory_blocks",
        "archival",
        "archival_fts",
        "entities",
        "relations",
        "conversation_summaries",
    ):
        assert table in names


@pytest.mark.asyncio
async def test_fts_triggers_exist(db: MemoryDatabase):
    async with db.conn.execute(
        "SELECT name FROM sqlite_master WHERE type='trigger' "
        "AND name IN ('archival_ai', 'archival_ad', 'archival_au')"
    ) as cursor:
        results = await cursor.fetchall()
    assert len(results) == 3


@pytest.mark.asyncio
async def test_relations_reject_unknown_entities(db: MemoryDatabase):
    """Foreign keys are enforced on relations."""
    with pytest.raises(sqlite3.IntegrityError):
        await db.conn.execute(
            "INSERT INTO relations (subject_id, predicate, object_id) VALUES (999, 'p', 998)"
        )


@pytest.mark.asyncio
async def test_reopen_is_idempotent(tmp_path: Path):
    """Schema creation can run against an existing database."""
    path = tmp_path / "test.db"
    async with MemoryDatabase(path) as first:
        await BlockStore(first).create("human", "core", "kept")

    async with MemoryDatabase(path) as second:
        block = await BlockStore(second).get_by_label("human")
    assert block.content == "kept"


def test_conn_before_connect(tmp_path: Path):
    database = MemoryDatabase(tmp_path / "test.db")
    with pytest.raises(RuntimeError):
        database.conn


@pytest.mark.asyncio
async def test_engine_errors_name_operation(db: MemoryDatabase):
    """Engine failures surface as StoreError with the failing operation."""
    store = BlockStore(db)
    await db.conn.execute("DROP TABLE memory_blocks")

    with pytest.raises(StoreError) as exc_info:
        await store.list()
    assert exc_info.value.operation == "list blocks"
