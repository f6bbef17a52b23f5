"""
Vector database boundary.

Qdrant REST clients and the schemas exchanged with them.
"""

from rag_proxy.boundary.vdb.vector_schemas import ChunkPayload, SearchHit, VectorPoint
from rag_proxy.boundary.vdb.vector_store_client import (
    AsyncQdrantVectorStoreClient,
    QdrantVectorStoreClient,
)

__all__ = [
    "AsyncQdrantVectorStoreClient",
    "ChunkPayload",
    "QdrantVectorStoreClient",
    "SearchHit",
    "VectorPoint",
]
