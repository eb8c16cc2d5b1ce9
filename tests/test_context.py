"""Tests for context payload assembly."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from botmem.core.errors import ContextAssemblyError, StoreError
from botmem.memory.blocks import BlockStore
from botmem.memory.context import ContextAssembler, ContextPayload
from botmem.memory.database import MemoryDatabase
from botmem.memory.graph import GraphStore
from botmem.memory.summaries import SummaryStore


@pytest.fixture
async def db(tmp_path: Path):
    database = MemoryDatabase(tmp_path / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest.mark.asyncio
async def test_build_empty(db: MemoryDatabase):
    payload = await ContextAssembler.from_database(db).build()

    assert payload.core_blocks == []
    assert payload.recent_summaries == []
    assert payload.relations == []


@pytest.mark.asyncio
async def test_build_with_data(db: MemoryDatabase):
    """Only core blocks are included; relations are de-duplicated."""
    blocks = BlockStore(db)
    await blocks.create("human", "core", "Stuart")
    await blocks.create("persona", "core", "Moltbot")
    await blocks.create("notes", "archival", "should not appear in core")
    await GraphStore(db).add_relation("Stuart", "works_on", "Moltbot")
    await SummaryStore(db).add(0, "Test conversation")

    payload = await ContextAssembler.from_database(db).build()

    assert [b.label for b in payload.core_blocks] == ["human", "persona"]
    assert len(payload.relations) == 1
    assert len(payload.recent_summaries) == 1


@pytest.mark.asyncio
async def test_relations_deduplicated_across_entities(db: MemoryDatabase):
    """Each relation appears once even though both endpoints are scanned."""
    graph = GraphStore(db)
    await graph.add_relation("A", "p", "B")
    await graph.add_relation("B", "q", "C")
    await graph.add_relation("C", "r", "A")
    await graph.add_relation("A", "self", "A")

    payload = await ContextAssembler.from_database(db).build()
    ids = [r.id for r in payload.relations]
    assert len(ids) == 4
    assert len(set(ids)) == 4


@pytest.mark.asyncio
async def test_recent_summaries_level_zero_capped(db: MemoryDatabase):
    summaries = SummaryStore(db)
    for i in range(7):
        await summaries.add(0, f"s{i}")
    await summaries.add(1, "higher level")

    payload = await ContextAssembler.from_database(db).build()
    assert [s.content for s in payload.recent_summaries] == ["s6", "s5", "s4", "s3", "s2"]


@pytest.mark.asyncio
async def test_build_reflects_latest_writes(db: MemoryDatabase):
    """No caching between builds."""
    assembler = ContextAssembler.from_database(db)
    assert (await assembler.build()).core_blocks == []

    await BlockStore(db).create("human", "core", "new")
    assert len((await assembler.build()).core_blocks) == 1


@pytest.mark.asyncio
async def test_build_failure_names_store(db: MemoryDatabase):
    """A failing read aborts the build and names the store."""
    graph = GraphStore(db)
    graph.list_entities = AsyncMock(side_effect=StoreError("list entities", "disk I/O error"))
    assembler = ContextAssembler(BlockStore(db), SummaryStore(db), graph)

    with pytest.raises(ContextAssemblyError) as exc_info:
        await assembler.build()
    assert exc_info.value.store == "graph"
    assert "list entities" in str(exc_info.value)


def test_payload_json_omits_empty_optional_arrays():
    out = ContextPayload().to_json()
    parsed = json.loads(out)

    assert parsed == {"core_blocks": []}
    assert out == '{\n  "core_blocks": []\n}'


@pytest.mark.asyncio
async def test_payload_json_keys(db: MemoryDatabase):
    await BlockStore(db).create("human", "core", "hello")
    await GraphStore(db).add_relation("A", "p", "B")
    await SummaryStore(db).add(0, "summary")

    parsed = json.loads((await ContextAssembler.from_database(db).build()).to_json())
    assert set(parsed) == {"core_blocks", "recent_summaries", "key_relations"}
    assert parsed["core_blocks"][0]["content"] == "hello"
    assert parsed["key_relations"][0]["subject"] == "A"
