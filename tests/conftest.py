"""
Shared test fixtures and configuration for entire test suite.

Provides: Settings factory, in-memory Ollama/Qdrant/LLM fakes behind httpx.MockTransport
Dependencies: pytest, httpx, fastapi
System role: Test infrastructure and fixture management
"""

import hashlib
import json
import math
import re
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from rag_proxy.api import create_app
from rag_proxy.configs import Settings

VECTOR_SIZE = 16
OLLAMA_URL = "http://ollama.test:11434"
QDRANT_HOST = "qdrant.test"
LLM_URL = "http://llm.test/v1/chat/completions"

COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "model": "test-model",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Paris."},
            "finish_reason": "stop",
        }
    ],
}


def fake_embedding(text: str) -> list[float]:
    """Deterministic bag-of-words vector (stable across processes)."""
    vector = [0.0] * VECTOR_SIZE
    for word in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % VECTOR_SIZE
        vector[bucket] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeBackend:
    """In-memory Ollama, Qdrant and upstream LLM served through one MockTransport."""

    def __init__(self) -> None:
        self.collections: dict[str, dict] = {}
        self.llm_requests: list[httpx.Request] = []
        self.embedding_calls = 0
        self.upsert_calls = 0
        self.qdrant_down = False
        self.llm_down = False

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def points(self, collection: str) -> dict[str, dict]:
        return self.collections[collection]["points"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "ollama.test":
            return self._ollama(request)
        if host == QDRANT_HOST:
            if self.qdrant_down:
                raise httpx.ConnectError("Connection refused", request=request)
            return self._qdrant(request)
        if host == "llm.test":
            if self.llm_down:
                raise httpx.ConnectError("Connection refused", request=request)
            return self._llm(request)
        return httpx.Response(404, json={"error": "unknown host"})

    def _ollama(self, request: httpx.Request) -> httpx.Response:
        self.embedding_calls += 1
        body = json.loads(request.content)
        if request.url.path == "/api/embeddings":
            return httpx.Response(200, json={"embedding": fake_embedding(body["prompt"])})
        if request.url.path == "/api/embed":
            return httpx.Response(
                200, json={"embeddings": [fake_embedding(text) for text in body["input"]]}
            )
        return httpx.Response(404, json={"error": "not found"})

    def _qdrant(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        method = request.method

        if path == "/telemetry":
            return httpx.Response(200, json={"result": {"id": "fake"}, "status": "ok"})

        match = re.fullmatch(r"/collections/([^/]+)(/.*)?", path)
        if match is None:
            return httpx.Response(404, json={"status": {"error": "not found"}})
        name, suffix = match.group(1), match.group(2) or ""
        collection = self.collections.get(name)

        if suffix == "/exists" and method == "GET":
            return httpx.Response(200, json={"result": {"exists": collection is not None}})
        if suffix == "" and method == "PUT":
            body = json.loads(request.content)
            self.collections[name] = {"config": body["vectors"], "points": {}}
            return httpx.Response(200, json={"result": True, "status": "ok"})
        if collection is None:
            return httpx.Response(
                404, json={"status": {"error": f"Collection `{name}` doesn't exist!"}}
            )
        if suffix == "" and method == "DELETE":
            del self.collections[name]
            return httpx.Response(200, json={"result": True, "status": "ok"})
        if suffix == "/points" and method == "PUT":
            self.upsert_calls += 1
            for point in json.loads(request.content)["points"]:
                collection["points"][point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if suffix == "/points/search" and method == "POST":
            body = json.loads(request.content)
            threshold = body.get("score_threshold")
            hits = [
                {"id": point["id"], "score": cosine(body["vector"], point["vector"]),
                 "payload": point["payload"]}
                for point in collection["points"].values()
            ]
            hits = [hit for hit in hits if threshold is None or hit["score"] >= threshold]
            hits.sort(key=lambda hit: hit["score"], reverse=True)
            return httpx.Response(200, json={"result": hits[: body["limit"]], "status": "ok"})
        return httpx.Response(404, json={"status": {"error": "not found"}})

    def _llm(self, request: httpx.Request) -> httpx.Response:
        self.llm_requests.append(request)
        body = json.loads(request.content)
        if body.get("stream") is True:
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream", "x-upstream": "yes"},
                content=b'data: {"choices":[{"delta":{"content":"Par"}}]}\n\n'
                        b'data: {"choices":[{"delta":{"content":"is."}}]}\n\n'
                        b"data: [DONE]\n\n",
            )
        return httpx.Response(
            200,
            headers={"content-type": "application/json", "x-upstream": "yes"},
            content=json.dumps(COMPLETION).encode(),
        )


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh in-memory upstream services."""
    return FakeBackend()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Empty corpus directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(tmp_path: Path, data_dir: Path):
    """
    Build Settings pointing at the fakes and tmp_path.

    Keyword arguments are merged into the matching sections, e.g.
    make_settings(qdrant={"score_threshold": 0.9}).
    """
    def factory(**overrides: dict) -> Settings:
        sections = {
            "data_sources": {"path": str(data_dir)},
            "indexing": {
                "file_tracker_path": str(tmp_path / "file_tracker.json"),
                "chunk_size": 500,
                "chunk_overlap": 50,
                "isolate_parsers": False,
            },
            "embeddings": {"endpoint": OLLAMA_URL, "batch_size": 4},
            "qdrant": {
                "host": QDRANT_HOST,
                "collection": "test_docs",
                "vector_size": VECTOR_SIZE,
                "score_threshold": 0.0,
            },
            "llm": {"endpoint": LLM_URL, "api_key": "sk-test"},
        }
        for section, values in overrides.items():
            sections.setdefault(section, {}).update(values)
        return Settings(**sections)

    return factory


@pytest.fixture
def settings(make_settings) -> Settings:
    """Default test settings."""
    return make_settings()


@pytest.fixture
def client(settings: Settings, backend: FakeBackend):
    """TestClient for the RAG proxy wired to the fakes (lifespan running)."""
    app = create_app(settings, transport=backend.transport)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def passthrough_client(settings: Settings, backend: FakeBackend):
    """TestClient for the passthrough proxy wired to the fakes."""
    app = create_app(settings, passthrough=True, transport=backend.transport)
    with TestClient(app) as test_client:
        yield test_client
