"""
Extraction backend interface.

A backend takes system instructions plus user text and returns the model's
raw text. Parsing that text is the ingest pipeline's job.
"""

from enum import Enum
from typing import Protocol, runtime_checkable


class BackendType(Enum):
    CLAUDE_CLI = "claude"  # local `claude -p` subprocess
    ANTHROPIC = "anthropic"  # hosted Messages API
    OLLAMA = "ollama"  # local HTTP chat API


@runtime_checkable
class ExtractionBackend(Protocol):
    """Capability shared by all backends."""

    name: str

    async def invoke(self, system_prompt: str, text: str) -> str:
        """Return the model's text response.

        Raises BackendError on transport failure, non-success status,
        non-zero exit or empty output.
        """
        ...

    async def close(self) -> None:
        """Release clients or connections held by the backend."""
        ...


def preview(text: str, limit: int = 200) -> str:
    """Shorten text for debug logs."""
    return text[:limit] + "..." if len(text) > limit else text
