"""Backend selection from explicit configuration."""

from botmem.core.errors import ConfigurationError
from botmem.core.logging import get_logger
from botmem.llm.base import BackendType, ExtractionBackend
from botmem.llm.claude import AnthropicBackend
from botmem.llm.claude_cli import ClaudeCliBackend
from botmem.llm.ollama import OllamaBackend

logger = get_logger("llm.factory")


def parse_backend_type(provider: str) -> BackendType:
    """Map a config tag to a BackendType. Raises ConfigurationError."""
    if not provider:
        raise ConfigurationError("no LLM provider configured - run 'botmem init' to set up")
    try:
        return BackendType(provider.lower())
    except ValueError:
        choices = ", ".join(t.value for t in BackendType)
        raise ConfigurationError(
            f"unknown provider {provider!r} (expected one of: {choices})"
        ) from None


def create_backend(
    provider: str,
    model: str = "",
    api_key: str = "",
    base_url: str = "",
) -> ExtractionBackend:
    """Build the backend for a provider tag, validating its credentials."""
    backend_type = parse_backend_type(provider)

    if backend_type == BackendType.CLAUDE_CLI:
        backend: ExtractionBackend = ClaudeCliBackend()
    elif backend_type == BackendType.ANTHROPIC:
        backend = AnthropicBackend(api_key=api_key, model=model)
    else:
        backend = OllamaBackend(base_url=base_url, model=model)

    logger.debug(f"Selected extraction backend: {backend.name}")
    return backend
