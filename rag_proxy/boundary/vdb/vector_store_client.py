"""
Qdrant REST client wrapper.

Provides high-level interface for collection lifecycle, point upsert and
similarity search over the Qdrant HTTP API, in blocking and asyncio flavours
that share request construction and response parsing.

No operation retries internally; retry policy belongs to the caller.

Dependencies: httpx, rag_proxy.configs, rag_proxy.core.exceptions
System role: Vector store client for indexing and retrieval
"""

import logging
from typing import Any

import httpx

from rag_proxy.boundary.vdb.vector_schemas import SearchHit, VectorPoint
from rag_proxy.configs.vector_store import QdrantSettings
from rag_proxy.core.exceptions import (
    CollectionNotFoundError,
    VectorStoreConnectionError,
    VectorStoreError,
)

logger = logging.getLogger(__name__)


class _QdrantRequestBuilder:
    """Request construction and response parsing shared by both clients."""

    def __init__(self, settings: QdrantSettings) -> None:
        self.settings = settings
        self._base_url = settings.base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["api-key"] = self.settings.api_key
        return headers

    @staticmethod
    def _collection_path(name: str, suffix: str = "") -> str:
        return f"/collections/{name}{suffix}"

    @staticmethod
    def _create_body(vector_size: int, distance: str) -> dict[str, Any]:
        return {"vectors": {"size": vector_size, "distance": distance}}

    @staticmethod
    def _upsert_body(points: list[VectorPoint]) -> dict[str, Any]:
        return {"points": [point.model_dump(mode="json") for point in points]}

    @staticmethod
    def _search_body(
        vector: list[float],
        limit: int,
        score_threshold: float | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
        }
        if score_threshold is not None:
            body["score_threshold"] = score_threshold
        return body

    @staticmethod
    def _connection_error(operation: str, url: str, exc: Exception) -> VectorStoreConnectionError:
        logger.error(
            "Qdrant unreachable",
            extra={"operation": operation, "url": url, "error": str(exc)},
        )
        return VectorStoreConnectionError(
            message=f"Cannot reach Qdrant: {exc}",
            operation=operation,
            details={"url": url, "error_type": type(exc).__name__},
        )

    @staticmethod
    def _parse(operation: str, name: str | None, response: httpx.Response) -> dict[str, Any]:
        """
        Validate status and decode the JSON envelope.

        Raises:
            CollectionNotFoundError: 404 on a collection-scoped operation
            VectorStoreError: Any other non-2xx status or undecodable body
        """
        if response.status_code == 404 and name is not None:
            raise CollectionNotFoundError(
                message=f"Collection not found: {name}",
                operation=operation,
                details={"collection": name, "status_code": 404},
            )
        if not response.is_success:
            raise VectorStoreError(
                message=f"Qdrant returned HTTP {response.status_code}",
                operation=operation,
                details={
                    "status_code": response.status_code,
                    "body": response.text[:500],
                },
            )
        try:
            data = response.json()
        except ValueError as e:
            raise VectorStoreError(
                message="Qdrant returned a non-JSON body",
                operation=operation,
                details={"body": response.text[:500]},
            ) from e
        if not isinstance(data, dict):
            raise VectorStoreError(
                message="Unexpected Qdrant response shape",
                operation=operation,
                details={"body": response.text[:500]},
            )
        return data

    @staticmethod
    def _parse_exists(data: dict[str, Any]) -> bool:
        try:
            return bool(data["result"]["exists"])
        except (KeyError, TypeError) as e:
            raise VectorStoreError(
                message="Malformed exists response",
                operation="exists",
                details={"response": data},
            ) from e

    @staticmethod
    def _parse_hits(data: dict[str, Any]) -> list[SearchHit]:
        result = data.get("result")
        if not isinstance(result, list):
            raise VectorStoreError(
                message="Malformed search response",
                operation="search",
                details={"response": data},
            )
        return [SearchHit.model_validate(item) for item in result]


class QdrantVectorStoreClient(_QdrantRequestBuilder):
    """
    Blocking Qdrant client used by the indexing pipeline and CLI.

    Example:
        >>> with QdrantVectorStoreClient(settings.qdrant) as client:
        ...     client.health_check()
    """

    def __init__(
        self,
        settings: QdrantSettings,
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            settings: Qdrant connection settings
            http_client: Optional pre-configured httpx client (pooled/shared)
        """
        super().__init__(settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=settings.timeout_seconds)

    def __enter__(self) -> "QdrantVectorStoreClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        collection: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        url = self._url(path)
        try:
            response = self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            raise self._connection_error(operation, url, e) from e
        return self._parse(operation, collection, response)

    def health_check(self) -> dict[str, Any]:
        """Call the telemetry endpoint; raises when Qdrant is unreachable."""
        return self._request("health", "GET", "/telemetry")

    def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""
        data = self._request("exists", "GET", self._collection_path(name, "/exists"))
        return self._parse_exists(data)

    def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        """Create a dense-vector collection with the given size and metric."""
        data = self._request(
            "create",
            "PUT",
            self._collection_path(name),
            json=self._create_body(vector_size, distance),
        )
        logger.info(
            "Created Qdrant collection",
            extra={"collection": name, "vector_size": vector_size, "distance": distance},
        )
        return bool(data.get("result", False))

    def ensure_collection(self, name: str, vector_size: int, distance: str) -> bool:
        """
        Create the collection when absent.

        Returns:
            bool: True when the collection was created by this call
        """
        if self.collection_exists(name):
            return False
        return self.create_collection(name, vector_size, distance)

    def upsert(self, name: str, points: list[VectorPoint]) -> None:
        """Upsert a batch of points; idempotent by point id."""
        if not points:
            return
        self._request(
            "upsert",
            "PUT",
            self._collection_path(name, "/points"),
            collection=name,
            params={"wait": "true"},
            json=self._upsert_body(points),
        )

    def search(
        self,
        name: str,
        vector: list[float],
        limit: int,
        score_threshold: float | None = None,
    ) -> list[SearchHit]:
        """Similarity search returning hits in store order."""
        data = self._request(
            "search",
            "POST",
            self._collection_path(name, "/points/search"),
            collection=name,
            json=self._search_body(vector, limit, score_threshold),
        )
        return self._parse_hits(data)

    def delete_collection(self, name: str) -> bool:
        """
        Delete a collection.

        Returns:
            bool: True when deleted, False when it did not exist
        """
        try:
            data = self._request("delete", "DELETE", self._collection_path(name), collection=name)
        except CollectionNotFoundError:
            return False
        return bool(data.get("result", False))


class AsyncQdrantVectorStoreClient(_QdrantRequestBuilder):
    """Asyncio Qdrant client used per request by the proxy."""

    def __init__(
        self,
        settings: QdrantSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            settings: Qdrant connection settings
            http_client: Optional shared httpx.AsyncClient (connection pool)
        """
        super().__init__(settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        collection: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        url = self._url(path)
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            raise self._connection_error(operation, url, e) from e
        return self._parse(operation, collection, response)

    async def health_check(self) -> dict[str, Any]:
        """Call the telemetry endpoint; raises when Qdrant is unreachable."""
        return await self._request("health", "GET", "/telemetry")

    async def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""
        data = await self._request("exists", "GET", self._collection_path(name, "/exists"))
        return self._parse_exists(data)

    async def create_collection(self, name: str, vector_size: int, distance: str) -> bool:
        """Create a dense-vector collection with the given size and metric."""
        data = await self._request(
            "create",
            "PUT",
            self._collection_path(name),
            json=self._create_body(vector_size, distance),
        )
        return bool(data.get("result", False))

    async def upsert(self, name: str, points: list[VectorPoint]) -> None:
        """Upsert a batch of points; idempotent by point id."""
        if not points:
            return
        await self._request(
            "upsert",
            "PUT",
            self._collection_path(name, "/points"),
            collection=name,
            params={"wait": "true"},
            json=self._upsert_body(points),
        )

    async def search(
        self,
        name: str,
        vector: list[float],
        limit: int,
        score_threshold: float | None = None,
    ) -> list[SearchHit]:
        """Similarity search returning hits in store order."""
        data = await self._request(
            "search",
            "POST",
            self._collection_path(name, "/points/search"),
            collection=name,
            json=self._search_body(vector, limit, score_threshold),
        )
        return self._parse_hits(data)

    async def delete_collection(self, name: str) -> bool:
        """Delete a collection; False when it did not exist."""
        try:
            data = await self._request(
                "delete", "DELETE", self._collection_path(name), collection=name
            )
        except CollectionNotFoundError:
            return False
        return bool(data.get("result", False))
