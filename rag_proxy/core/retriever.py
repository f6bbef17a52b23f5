"""
Retrieval logic.

Embeds a natural-language query and runs a top-K similarity search against
the configured collection. Results under the score threshold are dropped and
the rest are ordered by descending score.

Dependencies: rag_proxy.boundary.embeddings, rag_proxy.boundary.vdb, rag_proxy.core.exceptions
System role: RAG retrieval business logic
"""

import logging

from pydantic import BaseModel, Field

from rag_proxy.boundary.embeddings import AsyncOllamaEmbeddingClient
from rag_proxy.boundary.vdb import AsyncQdrantVectorStoreClient, SearchHit
from rag_proxy.core.exceptions import CollectionNotFoundError

logger = logging.getLogger(__name__)


class RetrievedChunk(BaseModel):
    """Chunk text returned for a query."""

    text: str = Field(description="Chunk text content")
    score: float = Field(description="Similarity score")
    source: str | None = Field(default=None, description="Source file of the chunk")


class Retriever:
    """Query embedding plus similarity search."""

    def __init__(
        self,
        embedding_client: AsyncOllamaEmbeddingClient,
        vector_client: AsyncQdrantVectorStoreClient,
        collection: str,
        limit: int = 5,
        score_threshold: float | None = None,
    ) -> None:
        """
        Initialize retriever.

        Args:
            embedding_client: Async embedding client (same model as indexing)
            vector_client: Async Qdrant client
            collection: Collection to search
            limit: Top-K
            score_threshold: Minimum score kept (None keeps everything)
        """
        self._embedding_client = embedding_client
        self._vector_client = vector_client
        self.collection = collection
        self.limit = limit
        self.score_threshold = score_threshold

    async def retrieve(self, query: str) -> list[RetrievedChunk]:
        """
        Retrieve chunks relevant to a query.

        Args:
            query: Natural-language question

        Returns:
            list[RetrievedChunk]: Best first; empty when nothing clears the threshold

        Raises:
            EmbeddingError: Embedding service failure
            VectorStoreError: Qdrant failure other than a missing collection
        """
        if not query.strip():
            return []

        vector = await self._embedding_client.embed(query)
        try:
            hits = await self._vector_client.search(
                self.collection,
                vector,
                limit=self.limit,
                score_threshold=self.score_threshold,
            )
        except CollectionNotFoundError:
            logger.warning(
                "Collection missing, no context retrieved",
                extra={"collection": self.collection},
            )
            return []

        results = self.rank_results(hits)
        logger.info(
            f"Retrieved {len(results)} chunks",
            extra={"collection": self.collection, "hit_count": len(hits)},
        )
        return results

    def rank_results(self, hits: list[SearchHit]) -> list[RetrievedChunk]:
        """
        Filter by threshold and order by descending score.

        The sort is stable, so ties keep the store's order.
        """
        kept = [
            hit for hit in hits
            if self.score_threshold is None or hit.score >= self.score_threshold
        ]
        kept.sort(key=lambda hit: hit.score, reverse=True)
        return [
            RetrievedChunk(text=hit.text, score=hit.score, source=hit.source)
            for hit in kept
            if hit.text
        ]


def format_context(chunks: list[RetrievedChunk], header: str = "--- Context from: RAG ---") -> str:
    """
    Render retrieved chunks as the block injected into the system message.

    Returns:
        str: "" when there are no chunks
    """
    if not chunks:
        return ""
    body = "\n\n".join(chunk.text for chunk in chunks)
    return f"{header}\n{body}" if header else body
