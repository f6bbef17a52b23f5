"""
Embedding generation task.

Embeds chunk texts in batches through the Ollama client and pairs each
vector with its content-addressed point id and payload.

Dependencies: rag_proxy.boundary.embeddings, rag_proxy.boundary.vdb
System role: Third stage of document ingestion pipeline
"""

from rag_proxy.boundary.embeddings import OllamaEmbeddingClient
from rag_proxy.boundary.vdb import ChunkPayload, VectorPoint
from rag_proxy.core.document_processing.models import Chunk


class EmbeddingTask:
    """Turn chunks into vector points."""

    def __init__(self, client: OllamaEmbeddingClient) -> None:
        """
        Initialize embedding task.

        Args:
            client: Blocking embedding client
        """
        self._client = client

    def embed(self, chunks: list[Chunk]) -> list[VectorPoint]:
        """
        Generate points for chunks, preserving order.

        Raises:
            EmbeddingError: When the embedding service fails
        """
        if not chunks:
            return []

        vectors = self._client.embed_batch([chunk.text for chunk in chunks])
        return [
            VectorPoint(
                id=chunk.point_id,
                vector=vector,
                payload=ChunkPayload(
                    source=chunk.source,
                    text=chunk.text,
                    chunk_index=chunk.index,
                ),
            )
            for chunk, vector in zip(chunks, vectors)
        ]
