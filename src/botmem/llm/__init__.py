"""
LLM module - extraction backend abstraction.

Backends:
- claude_cli: Local `claude -p` subprocess
- claude: Anthropic Messages API
- ollama: Local Ollama chat API

factory selects the backend from configuration.
"""

from botmem.llm.base import BackendType, ExtractionBackend
from botmem.llm.factory import create_backend

__all__ = ["BackendType", "ExtractionBackend", "create_backend"]
