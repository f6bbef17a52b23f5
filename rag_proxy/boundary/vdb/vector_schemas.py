"""
Vector database schemas.

Pydantic models for vector operations (points, payloads, search hits).
Used for type-safe vector store interactions.

Dependencies: pydantic
System role: Type definitions for vector operations
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChunkPayload(BaseModel):
    """Payload attached to each point."""

    model_config = ConfigDict(extra="allow")

    source: str = Field(description="Source file path relative to the corpus root")
    text: str = Field(description="Chunk text content")
    chunk_index: int = Field(description="Position of the chunk in its source file")


class VectorPoint(BaseModel):
    """Point upserted into the collection."""

    id: str = Field(description="UUID derived from the chunk content hash")
    vector: list[float] = Field(description="Embedding vector")
    payload: ChunkPayload = Field(description="Chunk payload")


class SearchHit(BaseModel):
    """Single result from a similarity search."""

    id: str | int = Field(description="Point identifier")
    score: float = Field(description="Similarity score")
    payload: dict[str, Any] | None = Field(default=None, description="Stored payload")

    @property
    def text(self) -> str:
        """Chunk text stored in the payload, empty when absent."""
        return str((self.payload or {}).get("text", ""))

    @property
    def source(self) -> str | None:
        """Source path stored in the payload."""
        return (self.payload or {}).get("source")
