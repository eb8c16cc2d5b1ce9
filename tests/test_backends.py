"""Tests for extraction backends and backend selection."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from botmem.core.errors import BackendError, ConfigurationError
from botmem.llm.base import BackendType, ExtractionBackend
from botmem.llm.claude import DEFAULT_MODEL, MAX_TOKENS, AnthropicBackend
from botmem.llm.claude_cli import ClaudeCliBackend
from botmem.llm.factory import create_backend, parse_backend_type
from botmem.llm.ollama import OllamaBackend


class TestFactory:
    @pytest.mark.parametrize(
        "provider,expected",
        [("claude", ClaudeCliBackend), ("ollama", OllamaBackend), ("OLLAMA", OllamaBackend)],
    )
    def test_create_backend(self, provider, expected):
        backend = create_backend(provider)
        assert isinstance(backend, expected)
        assert isinstance(backend, ExtractionBackend)

    def test_create_anthropic_with_key(self):
        backend = create_backend("anthropic", api_key="sk-test", model="claude-x")
        assert isinstance(backend, AnthropicBackend)
        assert backend.model == "claude-x"

    def test_anthropic_without_key(self):
        with pytest.raises(ConfigurationError):
            create_backend("anthropic")

    def test_empty_provider(self):
        with pytest.raises(ConfigurationError, match="botmem init"):
            parse_backend_type("")

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="gpt"):
            parse_backend_type("gpt")

    def test_backend_tags(self):
        assert [t.value for t in BackendType] == ["claude", "anthropic", "ollama"]


class _FakeProcess:
    def __init__(self, returncode: int, stdout: bytes = b"", stderr: bytes = b""):
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr

    async def communicate(self):
        return self._stdout, self._stderr


class TestClaudeCli:
    def test_build_args(self):
        args = ClaudeCliBackend().build_args("SYSTEM", "hello")

        assert args[:4] == ["claude", "-p", "--output-format", "text"]
        assert args[4] == "SYSTEM\n\nConversation text to extract from:\n\nhello"

    @pytest.mark.asyncio
    async def test_invoke_success(self, monkeypatch):
        calls = []

        async def fake_exec(*args, **kwargs):
            calls.append(args)
            return _FakeProcess(0, stdout=b'  {"summary": "ok"}\n')

        monkeypatch.setattr("asyncio.create_subprocess_exec", fake_exec)

        out = await ClaudeCliBackend().invoke("SYSTEM", "hello")
        assert out == '{"summary": "ok"}'
        assert calls[0][0] == "claude"

    @pytest.mark.asyncio
    async def test_invoke_nonzero_exit(self, monkeypatch):
        async def fake_exec(*args, **kwargs):
            return _FakeProcess(1, stderr=b"not logged in")

        monkeypatch.setattr("asyncio.create_subprocess_exec", fake_exec)

        with pytest.raises(BackendError) as exc_info:
            await ClaudeCliBackend().invoke("SYSTEM", "hello")
        assert exc_info.value.status == 1
        assert exc_info.value.body == "not logged in"

    @pytest.mark.asyncio
    async def test_invoke_empty_output(self, monkeypatch):
        async def fake_exec(*args, **kwargs):
            return _FakeProcess(0, stdout=b"   ")

        monkeypatch.setattr("asyncio.create_subprocess_exec", fake_exec)

        with pytest.raises(BackendError, match="empty"):
            await ClaudeCliBackend().invoke("SYSTEM", "hello")

    @pytest.mark.asyncio
    async def test_close_is_noop(self):
        await ClaudeCliBackend().close()

    @pytest.mark.asyncio
    async def test_invoke_missing_binary(self):
        backend = ClaudeCliBackend(command="botmem-no-such-binary")
        with pytest.raises(BackendError, match="not found"):
            await backend.invoke("SYSTEM", "hello")


def _anthropic_response(*texts: str) -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=t) for t in texts],
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )


class TestAnthropic:
    @pytest.mark.asyncio
    async def test_invoke(self):
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=_anthropic_response('{"summary": "s"}'))
        backend = AnthropicBackend(api_key="sk-test", client=client)

        out = await backend.invoke("SYSTEM", "hello")

        assert out == '{"summary": "s"}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == DEFAULT_MODEL
        assert kwargs["max_tokens"] == MAX_TOKENS
        assert kwargs["system"] == "SYSTEM"
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_invoke_empty_content(self):
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=_anthropic_response())
        backend = AnthropicBackend(api_key="sk-test", client=client)

        with pytest.raises(BackendError, match="empty"):
            await backend.invoke("SYSTEM", "hello")

    @pytest.mark.asyncio
    async def test_invoke_status_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(529, request=request, text="overloaded")
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=anthropic.APIStatusError("overloaded", response=response, body=None)
        )
        backend = AnthropicBackend(api_key="sk-test", client=client)

        with pytest.raises(BackendError) as exc_info:
            await backend.invoke("SYSTEM", "hello")
        assert exc_info.value.status == 529
        assert exc_info.value.body == "overloaded"
        assert exc_info.value.backend == "anthropic"

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        client = MagicMock()
        client.close = AsyncMock()
        backend = AnthropicBackend(api_key="sk-test", client=client)

        await backend.close()

        client.close.assert_awaited_once()
        await backend.close()
        client.close.assert_awaited_once()


def _ollama(handler) -> OllamaBackend:
    client = httpx.AsyncClient(base_url="http://ollama.test", transport=httpx.MockTransport(handler))
    return OllamaBackend(base_url="http://ollama.test", client=client)


class TestOllama:
    @pytest.mark.asyncio
    async def test_invoke(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "{}"}})

        backend = _ollama(handler)
        assert await backend.invoke("SYSTEM", "hello") == "{}"

        body = seen[0]
        assert body["model"] == "llama3.2"
        assert body["stream"] is False
        assert body["format"] == "json"
        assert body["messages"] == [
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "hello"},
        ]
        await backend.close()

    @pytest.mark.asyncio
    async def test_invoke_error_status(self):
        backend = _ollama(lambda r: httpx.Response(500, text="model not loaded"))

        with pytest.raises(BackendError) as exc_info:
            await backend.invoke("SYSTEM", "hello")
        assert exc_info.value.status == 500
        assert exc_info.value.body == "model not loaded"

    @pytest.mark.asyncio
    async def test_invoke_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError, match="request failed"):
            await _ollama(handler).invoke("SYSTEM", "hello")

    @pytest.mark.asyncio
    async def test_invoke_empty_content(self):
        backend = _ollama(lambda r: httpx.Response(200, json={"message": {"content": ""}}))

        with pytest.raises(BackendError, match="empty"):
            await backend.invoke("SYSTEM", "hello")

    @pytest.mark.asyncio
    async def test_close(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        )
        backend = OllamaBackend(client=client)

        await backend.close()

        assert client.is_closed
        await backend.close()
