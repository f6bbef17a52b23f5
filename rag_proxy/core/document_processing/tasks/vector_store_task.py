"""
Qdrant upload task.

Ensures the target collection exists and upserts points in batches.

Dependencies: rag_proxy.boundary.vdb
System role: Final stage of document ingestion pipeline
"""

import logging

from rag_proxy.boundary.vdb import QdrantVectorStoreClient, VectorPoint

logger = logging.getLogger(__name__)


class VectorStoreTask:
    """Upload points to a Qdrant collection."""

    def __init__(
        self,
        client: QdrantVectorStoreClient,
        collection: str,
        vector_size: int,
        distance: str,
        batch_size: int = 128,
    ) -> None:
        """
        Initialize vector store task.

        Args:
            client: Blocking Qdrant client
            collection: Target collection name
            vector_size: Dimension used when creating the collection
            distance: Metric used when creating the collection
            batch_size: Points per upsert request

        Raises:
            ValueError: When collection is empty or batch_size is not positive
        """
        if not collection:
            raise ValueError("collection cannot be empty")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self._client = client
        self.collection = collection
        self._vector_size = vector_size
        self._distance = distance
        self._batch_size = batch_size

    def check_connection(self) -> None:
        """Raise VectorStoreConnectionError when Qdrant is unreachable."""
        self._client.health_check()

    def ensure_collection(self) -> bool:
        """Create the collection when absent; True when created."""
        created = self._client.ensure_collection(
            self.collection, self._vector_size, self._distance
        )
        if created:
            logger.info(
                "Collection created",
                extra={"collection": self.collection, "vector_size": self._vector_size},
            )
        return created

    def upload(self, points: list[VectorPoint]) -> int:
        """
        Upsert points in batches.

        Returns:
            int: Number of points upserted

        Raises:
            VectorStoreError: When any batch fails
        """
        for start in range(0, len(points), self._batch_size):
            self._client.upsert(self.collection, points[start:start + self._batch_size])
        return len(points)
