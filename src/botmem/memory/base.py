"""
Memory records.

One dataclass per table family. to_dict() gives the JSON shape used by the
context payload and the CLI.
"""

from dataclasses import dataclass
from datetime import datetime

from botmem.core.typing import JSONDict


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


@dataclass
class Block:
    """Named slot of always-on working memory (human, persona, context...)."""

    id: int
    label: str
    block_type: str
    content: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> JSONDict:
        return {
            "id": self.id,
            "label": self.label,
            "block_type": self.block_type,
            "content": self.content,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class ArchivalEntry:
    """Single long-term fact. Never updated in place."""

    id: int
    content: str
    tags: str  # comma-joined, "" when untagged
    created_at: datetime
    embedding: bytes | None = None

    @property
    def tag_list(self) -> list[str]:
        return [t for t in self.tags.split(",") if t] if self.tags else []

    def to_dict(self) -> JSONDict:
        # Embedding bytes are never serialized
        return {
            "id": self.id,
            "content": self.content,
            "tags": self.tags,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Entity:
    """Knowledge graph node. Name is unique regardless of type."""

    id: int
    name: str
    entity_type: str
    created_at: datetime

    def to_dict(self) -> JSONDict:
        return {
            "id": self.id,
            "name": self.name,
            "entity_type": self.entity_type,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Relation:
    """Directed labeled edge, endpoints resolved to entity names."""

    id: int
    subject: str
    predicate: str
    object: str
    created_at: datetime
    metadata: str = ""

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "subject": self.subject,
            "predicate": self.predicate,
            "object": self.object,
        }
        if self.metadata:
            data["metadata"] = self.metadata
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class Summary:
    """Leveled conversation summary. Level 0 is the most granular."""

    id: int
    level: int
    content: str
    created_at: datetime
    source_ids: str = ""

    def to_dict(self) -> JSONDict:
        data: JSONDict = {
            "id": self.id,
            "level": self.level,
            "content": self.content,
        }
        if self.source_ids:
            data["source_ids"] = self.source_ids
        data["created_at"] = _iso(self.created_at)
        return data
