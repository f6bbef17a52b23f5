"""
Ollama embedding client.

Thin HTTP client for Ollama's embedding endpoints, in blocking and asyncio
flavours. Single texts go through /api/embeddings, batches through /api/embed.

Dependencies: httpx, rag_proxy.configs, rag_proxy.core.exceptions
System role: Embedding generation adapter
"""

import logging
from typing import Any

import httpx

from rag_proxy.configs.vector_store import EmbeddingsSettings
from rag_proxy.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class _OllamaRequestBuilder:
    """Request construction and response parsing shared by both clients."""

    def __init__(self, settings: EmbeddingsSettings) -> None:
        self.settings = settings
        self.base_url = settings.endpoint.rstrip("/")
        self.model = settings.model

    def _single_request(self, text: str) -> tuple[str, dict[str, Any]]:
        return f"{self.base_url}/api/embeddings", {"model": self.model, "prompt": text}

    def _batch_request(self, texts: list[str]) -> tuple[str, dict[str, Any]]:
        return f"{self.base_url}/api/embed", {"model": self.model, "input": texts}

    def _batches(self, texts: list[str]) -> list[list[str]]:
        size = self.settings.batch_size
        return [texts[i:i + size] for i in range(0, len(texts), size)]

    def _transport_error(self, url: str, exc: Exception) -> EmbeddingError:
        logger.error(
            "Failed to send embedding request to Ollama",
            extra={"url": url, "error": str(exc)},
        )
        return EmbeddingError(
            f"Embedding service unreachable: {exc}",
            details={"url": url, "model": self.model, "error_type": type(exc).__name__},
        )

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        if not response.is_success:
            logger.error(
                "Ollama API error",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise EmbeddingError(
                f"Ollama API error: {response.status_code}",
                details={"status_code": response.status_code, "body": response.text[:500]},
            )
        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingError(
                "Failed to parse embedding response from Ollama",
                details={"body": response.text[:500]},
            ) from e
        if not isinstance(data, dict):
            raise EmbeddingError("Unexpected embedding response shape")
        return data

    def _parse_single(self, response: httpx.Response) -> list[float]:
        data = self._decode(response)
        embedding = data.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingError(
                "Embedding response carries no vector",
                details={"keys": sorted(data)},
            )
        return [float(value) for value in embedding]

    def _parse_batch(self, response: httpx.Response, expected: int) -> list[list[float]]:
        data = self._decode(response)
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != expected:
            raise EmbeddingError(
                "Batch embedding response does not match input size",
                details={
                    "expected": expected,
                    "received": len(embeddings) if isinstance(embeddings, list) else None,
                },
            )
        return [[float(value) for value in vector] for vector in embeddings]


class OllamaEmbeddingClient(_OllamaRequestBuilder):
    """
    Blocking embedding client used by the indexing pipeline.

    Example:
        >>> client = OllamaEmbeddingClient(settings.embeddings)
        >>> vector = client.embed("What is 2+2?")
    """

    def __init__(
        self,
        settings: EmbeddingsSettings,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=settings.timeout_seconds)

    def __enter__(self) -> "OllamaEmbeddingClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            return self._client.post(url, json=payload)
        except httpx.TransportError as e:
            raise self._transport_error(url, e) from e

    def embed(self, text: str) -> list[float]:
        """
        Generate the embedding of one text.

        Raises:
            EmbeddingError: On transport failure, non-2xx status or bad payload
        """
        url, payload = self._single_request(text)
        return self._parse_single(self._post(url, payload))

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for many texts, preserving order."""
        vectors: list[list[float]] = []
        for batch in self._batches(texts):
            url, payload = self._batch_request(batch)
            vectors.extend(self._parse_batch(self._post(url, payload), len(batch)))
        return vectors


class AsyncOllamaEmbeddingClient(_OllamaRequestBuilder):
    """Asyncio embedding client used by the proxy retriever."""

    def __init__(
        self,
        settings: EmbeddingsSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            return await self._client.post(url, json=payload)
        except httpx.TransportError as e:
            raise self._transport_error(url, e) from e

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding of one text."""
        url, payload = self._single_request(text)
        return self._parse_single(await self._post(url, payload))

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for many texts, preserving order."""
        vectors: list[list[float]] = []
        for batch in self._batches(texts):
            url, payload = self._batch_request(batch)
            vectors.extend(self._parse_batch(await self._post(url, payload), len(batch)))
        return vectors
