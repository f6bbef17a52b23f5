"""
Indexing pipeline tasks: load, chunk, embed, upload.
"""

from .chunking_task import ChunkingTask
from .embedding_task import EmbeddingTask
from .loading_task import (
    DocumentLoader,
    DocxLoader,
    LoadingTask,
    PdfLoader,
    PlainTextLoader,
    default_loaders,
)
from .vector_store_task import VectorStoreTask

__all__ = [
    "ChunkingTask",
    "DocumentLoader",
    "DocxLoader",
    "EmbeddingTask",
    "LoadingTask",
    "PdfLoader",
    "PlainTextLoader",
    "VectorStoreTask",
    "default_loaders",
]
