"""
Anthropic API backend.

Hosted extraction through the Messages API.
"""

import anthropic
from anthropic import APIConnectionError, APIError, APIStatusError

from botmem.core.errors import BackendError, ConfigurationError
from botmem.core.logging import get_logger
from botmem.llm.base import BackendType, preview

logger = get_logger("llm.claude")

DEFAULT_MODEL = "claude-sonnet-4-20250514"
MAX_TOKENS = 4096


class AnthropicBackend:
    """Anthropic Claude API backend."""

    name = BackendType.ANTHROPIC.value

    def __init__(
        self,
        api_key: str,
        model: str = "",
        client: anthropic.AsyncAnthropic | None = None,
    ):
        if not api_key and client is None:
            raise ConfigurationError(
                "no Anthropic API key - set ANTHROPIC_API_KEY or run 'botmem init'"
            )
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def invoke(self, system_prompt: str, text: str) -> str:
        logger.debug(f"Anthropic request: model={self.model}, max_tokens={MAX_TOKENS}")

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                system=system_prompt,
                messages=[{"role": "user", "content": text}],
            )
        except APIStatusError as e:
            logger.error(f"Anthropic API error: {e.status_code}")
            raise BackendError(
                self.name, "request failed", status=e.status_code, body=e.response.text
            ) from e
        except APIConnectionError as e:
            logger.error(f"Connection error: {e}")
            raise BackendError(self.name, f"request failed: {e}") from e
        except APIError as e:
            logger.error(f"API error: {e}")
            raise BackendError(self.name, str(e)) from e

        texts = [block.text for block in response.content if getattr(block, "text", None)]
        if not texts:
            raise BackendError(self.name, "empty anthropic response")

        content = texts[0]
        logger.debug(
            f"Anthropic usage: {response.usage.input_tokens} in, "
            f"{response.usage.output_tokens} out"
        )
        logger.debug(f"Anthropic response: {preview(content)}")
        return content

    async def close(self) -> None:
        """Close the API client."""
        if self._client:
            await self._client.close()
            self._client = None
