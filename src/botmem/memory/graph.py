"""Graph store - entities and subject/predicate/object relations."""

from botmem.core.logging import get_logger
from botmem.memory.base import Entity, Relation
from botmem.memory.database import MemoryDatabase, store_errors

logger = get_logger("memory.graph")

_RELATION_SELECT = """
    SELECT r.id, s.name, r.predicate, o.name, r.created_at, r.metadata
    FROM relations r
    JOIN entities s ON s.id = r.subject_id
    JOIN entities o ON o.id = r.object_id
"""


def _row_to_relation(row: tuple) -> Relation:
    return Relation(
        id=row[0],
        subject=row[1],
        predicate=row[2],
        object=row[3],
        created_at=row[4],
        metadata=row[5],
    )


class GraphStore:
    """Knowledge graph with idempotent entity and relation inserts."""

    def __init__(self, db: MemoryDatabase):
        self.db = db

    async def ensure_entity(self, name: str, entity_type: str = "") -> int:
        """Create the entity if missing and return its id.

        First write wins: the type is ignored when the name already exists.
        """
        with store_errors("ensure entity"):
            await self.db.conn.execute(
                "INSERT OR IGNORE INTO entities (name, entity_type) VALUES (?, ?)",
                (name, entity_type),
            )
            await self.db.conn.commit()
            async with self.db.conn.execute(
                "SELECT id FROM entities WHERE name = ?", (name,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def add_relation(
        self,
        subject: str,
        predicate: str,
        obj: str,
        metadata: str = "",
    ) -> None:
        """Add a triplet, creating both endpoints as untyped entities if needed.

        A duplicate (subject, predicate, object) is silently ignored.
        """
        subject_id = await self.ensure_entity(subject, "")
        object_id = await self.ensure_entity(obj, "")

        with store_errors("add relation"):
            await self.db.conn.execute(
                """INSERT OR IGNORE INTO relations (subject_id, predicate, object_id, metadata)
                   VALUES (?, ?, ?, ?)""",
                (subject_id, predicate, object_id, metadata),
            )
            await self.db.conn.commit()
        logger.debug(f"Relation: {subject} -[{predicate}]-> {obj}")

    async def query_entity(self, name: str) -> list[Relation]:
        """Relations where the entity is subject or object, newest first."""
        with store_errors("query entity"):
            async with self.db.conn.execute(
                _RELATION_SELECT
                + "WHERE s.name = ? OR o.name = ? ORDER BY r.created_at DESC, r.id DESC",
                (name, name),
            ) as cursor:
                return [_row_to_relation(row) async for row in cursor]

    async def search_relations(self, predicate: str) -> list[Relation]:
        """Relations whose predicate contains the substring (case-insensitive), newest first."""
        with store_errors("search relations"):
            async with self.db.conn.execute(
                _RELATION_SELECT
                + "WHERE instr(lower(r.predicate), lower(?)) > 0 ORDER BY r.created_at DESC, r.id DESC",
                (predicate,),
            ) as cursor:
                return [_row_to_relation(row) async for row in cursor]

    async def list_entities(self, entity_type: str = "") -> list[Entity]:
        """Entities ordered by name, optionally filtered by type."""
        query = "SELECT id, name, entity_type, created_at FROM entities"
        args: tuple = ()
        if entity_type:
            query += " WHERE entity_type = ?"
            args = (entity_type,)
        query += " ORDER BY name"

        with store_errors("list entities"):
            async with self.db.conn.execute(query, args) as cursor:
                return [
                    Entity(id=row[0], name=row[1], entity_type=row[2], created_at=row[3])
                    async for row in cursor
                ]
