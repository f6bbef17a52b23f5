"""Tests for the Ollama embedding clients (sync and async)."""

import json

import httpx
import pytest

from rag_proxy.boundary.embeddings import AsyncOllamaEmbeddingClient, OllamaEmbeddingClient
from rag_proxy.configs.vector_store import EmbeddingsSettings
from rag_proxy.core.exceptions import EmbeddingError

SETTINGS = EmbeddingsSettings(endpoint="http://ollama.test:11434/", model="all-minilm", batch_size=2)


def _client(handler) -> OllamaEmbeddingClient:
    return OllamaEmbeddingClient(SETTINGS, httpx.Client(transport=httpx.MockTransport(handler)))


class TestEmbed:
    """Single text embedding via /api/embeddings."""

    def test_request_and_response(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"embedding": [0.25, -1, 3]})

        assert _client(handler).embed("What is 2+2?") == [0.25, -1.0, 3.0]
        assert str(requests[0].url) == "http://ollama.test:11434/api/embeddings"
        assert json.loads(requests[0].content) == {"model": "all-minilm", "prompt": "What is 2+2?"}

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="out of memory"),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"embedding": []}),
            httpx.Response(200, json={"error": "model not found"}),
            httpx.Response(200, json=[1, 2]),
        ],
    )
    def test_bad_responses(self, response: httpx.Response) -> None:
        with pytest.raises(EmbeddingError):
            _client(lambda request: response).embed("text")

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(EmbeddingError) as exc_info:
            _client(handler).embed("text")
        assert exc_info.value.details["error_type"] == "ConnectTimeout"


class TestEmbedBatch:
    """Batch embedding via /api/embed."""

    def test_split_into_batches_preserving_order(self) -> None:
        inputs: list[list[str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            texts = json.loads(request.content)["input"]
            inputs.append(texts)
            return httpx.Response(200, json={"embeddings": [[float(len(t))] for t in texts]})

        vectors = _client(handler).embed_batch(["a", "bb", "ccc", "dddd", "eeeee"])

        assert inputs == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]
        assert vectors == [[1.0], [2.0], [3.0], [4.0], [5.0]]

    def test_count_mismatch(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"embeddings": [[1.0]]})

        with pytest.raises(EmbeddingError):
            _client(handler).embed_batch(["a", "b"])

    def test_empty_input_no_requests(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert _client(handler).embed_batch([]) == []


class TestAsyncClient:
    """Async flavour shares request construction."""

    @pytest.mark.asyncio
    async def test_embed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embeddings"
            return httpx.Response(200, json={"embedding": [1, 2]})

        client = AsyncOllamaEmbeddingClient(
            SETTINGS, httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        assert await client.embed("q") == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_2xx(self) -> None:
        client = AsyncOllamaEmbeddingClient(
            SETTINGS,
            httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))),
        )
        with pytest.raises(EmbeddingError):
            await client.embed("q")
