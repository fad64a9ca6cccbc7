"""Tests for the HTTP embedding providers, using httpx.MockTransport."""

import json

import httpx
import pytest

from docrag.config import EmbeddingConfig
from docrag.embedder import GeminiEmbedder, OpenAICompatibleEmbedder
from docrag.errors import (
    AuthenticationError,
    DeserializationError,
    PayloadTooLarge,
    ProviderTimeoutError,
    RateLimitError,
    TransientProviderError,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _gemini(handler, **overrides) -> GeminiEmbedder:
    config = EmbeddingConfig(
        provider="gemini",
        model="text-embedding-004",
        api_key="secret",
        **overrides,
    )
    return GeminiEmbedder(config, client=_client(handler))


class TestGeminiEmbedder:

    @pytest.mark.asyncio
    async def test_request_and_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

        embedder = _gemini(handler)
        vector = await embedder.embed("hello")

        assert vector == [0.1, 0.2, 0.3]
        assert seen["url"].endswith("/models/text-embedding-004:embedContent")
        assert seen["key"] == "secret"
        assert seen["body"] == {
            "model": "models/text-embedding-004",
            "content": {"parts": [{"text": "hello"}]},
        }
        assert embedder.dimension == 3

    @pytest.mark.asyncio
    async def test_base_url_override(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"embedding": {"values": [1.0]}})

        await _gemini(handler, base_url="http://localhost:9000/v1/").embed("x")
        assert seen["url"] == "http://localhost:9000/v1/models/text-embedding-004:embedContent"

    @pytest.mark.asyncio
    async def test_payload_guard_makes_no_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"embedding": {"values": [1.0]}})

        embedder = _gemini(handler, max_payload_bytes=100)
        with pytest.raises(PayloadTooLarge) as exc_info:
            await embedder.embed("x" * 200)

        assert calls == []
        assert exc_info.value.limit_bytes == 100

    @pytest.mark.asyncio
    async def test_error_status_keeps_body(self):
        def handler(request):
            return httpx.Response(401, text='{"error": "API key not valid"}')

        with pytest.raises(AuthenticationError) as exc_info:
            await _gemini(handler).embed("x")

        assert exc_info.value.status_code == 401
        assert "API key not valid" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "2"}, text="slow down")

        with pytest.raises(RateLimitError) as exc_info:
            await _gemini(handler).embed("x")
        assert exc_info.value.retry_after == 2.0

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _gemini(handler, timeout=0.5).embed("x")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientProviderError):
            await _gemini(handler).embed("x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            '{"unexpected": true}',
            '{"embedding": {"values": []}}',
            '{"embedding": {"values": ["a", "b"]}}',
        ],
    )
    async def test_malformed_response(self, body):
        def handler(request):
            return httpx.Response(200, text=body)

        with pytest.raises(DeserializationError):
            await _gemini(handler).embed("x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "values",
        ["[0.1, NaN, 0.3]", "[Infinity, 0.0]", "[-Infinity, 1.0]", "[1e400, 0.5]"],
    )
    async def test_non_finite_components_rejected(self, values):
        def handler(request):
            return httpx.Response(200, text='{"embedding": {"values": %s}}' % values)

        with pytest.raises(DeserializationError, match="not finite"):
            await _gemini(handler).embed("x")

    @pytest.mark.asyncio
    async def test_dimension_change_rejected(self):
        sizes = iter([3, 2])

        def handler(request):
            return httpx.Response(200, json={"embedding": {"values": [1.0] * next(sizes)}})

        embedder = _gemini(handler)
        await embedder.embed("a")
        with pytest.raises(DeserializationError):
            await embedder.embed("b")

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = _client(lambda request: httpx.Response(200))
        embedder = GeminiEmbedder(EmbeddingConfig(api_key="k"), client=client)
        await embedder.aclose()
        assert not client.is_closed
        await client.aclose()


class TestOpenAICompatibleEmbedder:

    @pytest.mark.asyncio
    async def test_request_and_response(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"embedding": [0.5, 0.5], "index": 0}]})

        config = EmbeddingConfig(
            provider="openai",
            model="text-embedding-3-small",
            api_key="sk-test",
            base_url="http://localhost:8080/v1",
        )
        async with OpenAICompatibleEmbedder(config, client=_client(handler)) as embedder:
            vector = await embedder.embed("hello")

        assert vector == [0.5, 0.5]
        assert seen["url"] == "http://localhost:8080/v1/embeddings"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"model": "text-embedding-3-small", "input": "hello"}

    @pytest.mark.asyncio
    async def test_server_error(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        embedder = OpenAICompatibleEmbedder(
            EmbeddingConfig(provider="openai", model="m", api_key="k"),
            client=_client(handler),
        )
        with pytest.raises(TransientProviderError) as exc_info:
            await embedder.embed("x")
        assert exc_info.value.details["model"] == "m"
