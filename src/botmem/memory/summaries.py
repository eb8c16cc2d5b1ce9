"""Summary store - leveled conversation summaries."""

from botmem.core.errors import NotFoundError
from botmem.core.logging import get_logger
from botmem.memory.base import Summary
from botmem.memory.database import MemoryDatabase, store_errors

logger = get_logger("memory.summaries")

DEFAULT_LIST_LIMIT = 20

_COLUMNS = "id, level, content, created_at, source_ids"


def _row_to_summary(row: tuple) -> Summary:
    return Summary(
        id=row[0],
        level=row[1],
        content=row[2],
        created_at=row[3],
        source_ids=row[4],
    )


class SummaryStore:
    """Append-only summaries. Level is caller-asserted and not validated."""

    def __init__(self, db: MemoryDatabase):
        self.db = db

    async def add(self, level: int, content: str, source_ids: str = "") -> Summary:
        with store_errors("add summary"):
            cursor = await self.db.conn.execute(
                "INSERT INTO conversation_summaries (level, content, source_ids) VALUES (?, ?, ?)",
                (level, content, source_ids),
            )
            await self.db.conn.commit()
        logger.debug(f"Added L{level} summary {cursor.lastrowid}")
        return await self.get_by_id(cursor.lastrowid)

    async def get_by_id(self, summary_id: int) -> Summary:
        with store_errors(f"get summary {summary_id}"):
            async with self.db.conn.execute(
                f"SELECT {_COLUMNS} FROM conversation_summaries WHERE id = ?", (summary_id,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError(f"get summary {summary_id}", "no such summary")
        return _row_to_summary(row)

    async def count_at_level(self, level: int) -> int:
        """How many summaries exist at a level (0 when none)."""
        with store_errors("count summaries"):
            async with self.db.conn.execute(
                "SELECT COUNT(*) FROM conversation_summaries WHERE level = ?", (level,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def list(self, level: int = 0, limit: int = DEFAULT_LIST_LIMIT) -> list[Summary]:
        """Newest first at one level; ties go to the higher id."""
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT

        with store_errors("list summaries"):
            async with self.db.conn.execute(
                f"""SELECT {_COLUMNS} FROM conversation_summaries
                    WHERE level = ? ORDER BY created_at DESC, id DESC LIMIT ?""",
                (level, limit),
            ) as cursor:
                return [_row_to_summary(row) async for row in cursor]
