"""
Extraction wire contract.

The system prompt sent to every backend and the strict parser for the JSON
object it must return.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from botmem.core.errors import SchemaError

SYSTEM_PROMPT = """You are a memory extraction system. Given conversation text, extract:

1. block_updates: Updates to core memory blocks. Labels are: "human" (personal info about the user), "persona" (bot personality), "context" (current project/session context). Only include blocks that need updating. Provide the FULL updated content for each block, not just the diff.

2. facts: Important facts worth remembering long-term. Each fact should be a self-contained statement with relevant tags.

3. triplets: Entity-relationship triplets (subject, predicate, object) for the knowledge graph. Examples: ("Stuart", "works_on", "Moltbot"), ("Moltbot", "is_a", "Discord bot").

4. summary: A concise summary of this conversation.

Return ONLY valid JSON matching this schema:
{
  "block_updates": [{"label": "string", "content": "string"}],
  "facts": [{"content": "string", "tags": ["string"]}],
  "triplets": [{"subject": "string", "predicate": "string", "object": "string"}],
  "summary": "string"
}"""


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


class BlockUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str
    content: str


class Fact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str
    tags: list[str] = Field(default_factory=list)

    tags_default = field_validator("tags", mode="before")(_none_to_empty_list)


class Triplet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subject: str
    predicate: str
    object: str


class ExtractionResult(BaseModel):
    """What the model returns after analyzing conversation text.

    Missing or null lists mean "nothing extracted"; unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    block_updates: list[BlockUpdate] = Field(default_factory=list)
    facts: list[Fact] = Field(default_factory=list)
    triplets: list[Triplet] = Field(default_factory=list)
    summary: str = ""

    lists_default = field_validator("block_updates", "facts", "triplets", mode="before")(
        _none_to_empty_list
    )

    @field_validator("summary", mode="before")
    @classmethod
    def summary_default(cls, value: Any) -> Any:
        return "" if value is None else value


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown fence (```json ... ```) if present."""
    text = text.strip()
    if text.startswith("```"):
        newline = text.find("\n")
        text = text[newline + 1 :] if newline != -1 else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_extraction(raw: str) -> ExtractionResult:
    """Parse backend output strictly. Raises SchemaError with the raw text."""
    text = strip_code_fences(raw)
    try:
        return ExtractionResult.model_validate_json(text)
    except ValidationError as e:
        raise SchemaError(str(e), raw=text) from e
