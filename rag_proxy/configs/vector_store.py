"""
Vector store and embedding configuration settings.

Manages Qdrant connection settings, collection layout and retrieval limits,
plus the Ollama embedding model used for both indexing and queries.

Dependencies: pydantic
System role: Vector database configuration for RAG retrieval
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingsSettings(BaseModel):
    """Embedding service (Ollama) configuration."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(default="http://localhost:11434", description="Ollama base URL")
    model: str = Field(default="all-minilm", description="Embedding model name")
    batch_size: int = Field(default=32, gt=0, description="Texts per batch embedding call")
    timeout_seconds: float = Field(default=60.0, gt=0, description="Per-call timeout")


class QdrantSettings(BaseModel):
    """Qdrant vector store configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="localhost", description="Qdrant host")
    port: int = Field(default=6333, gt=0, lt=65536, description="Qdrant REST port")
    https: bool = Field(default=False, description="Use HTTPS for the REST API")
    api_key: str = Field(default="", description="Qdrant API key (sent as api-key header)")
    collection: str = Field(default="documents", min_length=1, description="Collection name")
    vector_size: int = Field(
        default=384,
        gt=0,
        description="Embedding vector dimension (must match the embedding model)",
    )
    distance: Literal["Cosine", "Euclid", "Dot", "Manhattan"] = Field(
        default="Cosine",
        description="Similarity metric used when creating the collection",
    )
    limit: int = Field(default=5, gt=0, description="Number of top results to retrieve")
    score_threshold: float = Field(default=0.5, description="Minimum similarity score")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call timeout")

    @property
    def base_url(self) -> str:
        """REST base URL built from host, port and scheme."""
        scheme = "https" if self.https else "http"
        return f"{scheme}://{self.host}:{self.port}"
