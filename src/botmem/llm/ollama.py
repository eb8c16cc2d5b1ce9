"""Ollama backend - local chat API with JSON output mode."""

import httpx

from botmem.core.errors import BackendError
from botmem.core.logging import get_logger
from botmem.llm.base import BackendType, preview

logger = get_logger("llm.ollama")

DEFAULT_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2"


class OllamaBackend:
    """Local LLM via Ollama's /api/chat."""

    name = BackendType.OLLAMA.value

    def __init__(
        self,
        base_url: str = "",
        model: str = "",
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or DEFAULT_URL).rstrip("/")
        self.model = model or DEFAULT_MODEL
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=300.0,  # Local models can be slow
            )
        return self._client

    async def invoke(self, system_prompt: str, text: str) -> str:
        payload = {
            "model": self.model,
            "stream": False,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            "format": "json",
        }
        logger.debug(f"Ollama request: model={self.model}, url={self.base_url}")

        try:
            response = await self.client.post("/api/chat", json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"Ollama not reachable at {self.base_url}: {e}")
            raise BackendError(self.name, f"request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Ollama error: {response.status_code}")
            raise BackendError(
                self.name, "request failed", status=response.status_code, body=response.text
            )

        try:
            content = response.json()["message"]["content"]
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError(self.name, f"decode ollama response: {e}", body=response.text) from e

        if not content:
            raise BackendError(self.name, "empty ollama response")

        logger.debug(f"Ollama response: {preview(content)}")
        return content

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
