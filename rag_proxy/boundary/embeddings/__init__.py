"""
Embedding service boundary (Ollama).
"""

from rag_proxy.boundary.embeddings.ollama_client import (
    AsyncOllamaEmbeddingClient,
    OllamaEmbeddingClient,
)

__all__ = ["AsyncOllamaEmbeddingClient", "OllamaEmbeddingClient"]
