"""Block store - labeled working-memory slots (Letta-style core memory)."""

import sqlite3

from botmem.core.errors import ConflictError, NotFoundError
from botmem.core.logging import get_logger
from botmem.memory.base import Block
from botmem.memory.database import NOW, MemoryDatabase, store_errors

logger = get_logger("memory.blocks")

DEFAULT_BLOCK_TYPE = "core"

_COLUMNS = "id, label, block_type, content, created_at, updated_at"


def _row_to_block(row: tuple) -> Block:
    return Block(
        id=row[0],
        label=row[1],
        block_type=row[2],
        content=row[3],
        created_at=row[4],
        updated_at=row[5],
    )


class BlockStore:
    """CRUD over memory_blocks. Labels are globally unique."""

    def __init__(self, db: MemoryDatabase):
        self.db = db

    async def create(self, label: str, block_type: str, content: str = "") -> Block:
        """Create a block. Raises ConflictError if the label exists."""
        block_type = block_type or DEFAULT_BLOCK_TYPE
        with store_errors("create block"):
            try:
                cursor = await self.db.conn.execute(
                    "INSERT INTO memory_blocks (label, block_type, content) VALUES (?, ?, ?)",
                    (label, block_type, content),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError("create block", f"label {label!r} already exists") from e
            await self.db.conn.commit()
            block_id = cursor.lastrowid

        logger.debug(f"Created block {label!r} ({block_type})")
        return await self.get_by_id(block_id)

    async def get_by_label(self, label: str) -> Block:
        """Get block by label. Raises NotFoundError."""
        with store_errors(f"get block {label!r}"):
            async with self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM memory_blocks WHERE label = ?", (label,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"get block {label!r}", "no such block")
        return _row_to_block(row)

    async def get_by_id(self, block_id: int) -> Block:
        """Get block by id. Raises NotFoundError."""
        with store_errors(f"get block {block_id}"):
            async with self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM memory_blocks WHERE id = ?", (block_id,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"get block {block_id}", "no such block")
        return _row_to_block(row)

    async def update(self, label: str, content: str) -> Block:
        """Replace block content and bump updated_at. Raises NotFoundError."""
        with store_errors(f"update block {label!r}"):
            cursor = await self.db.conn.execute(
                f"UPDATE memory_blocks SET content = ?, updated_at = {NOW} WHERE label = ?",
                (content, label),
            )
            await self.db.conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError(f"update block {label!r}", "no such block")

        logger.debug(f"Updated block {label!r}")
        return await self.get_by_label(label)

    async def set(self, label: str, content: str, block_type: str = DEFAULT_BLOCK_TYPE) -> Block:
        """Update the block if it exists, otherwise create it."""
        try:
            return await self.update(label, content)
        except NotFoundError:
            return await self.create(label, block_type, content)

    async def delete(self, label: str) -> None:
        """Delete block by label. Deleting an absent label is a no-op."""
        with store_errors(f"delete block {label!r}"):
            await self.db.conn.execute("DELETE FROM memory_blocks WHERE label = ?", (label,))
            await self.db.conn.commit()

    async def list(self, block_type: str = "") -> list[Block]:
        """List blocks ordered by label, optionally filtered by type."""
        query = f"SELECT {_COLUMNS} FROM memory_blocks"
        args: tuple = ()
        if block_type:
            query += " WHERE block_type = ?"
            args = (block_type,)
        query += " ORDER BY label"

        with store_errors("list blocks"):
            async with self.db.conn.execute(query, args) as cursor:
                return [_row_to_block(row) async for row in cursor]
