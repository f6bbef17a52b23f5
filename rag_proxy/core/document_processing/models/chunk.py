"""
Chunk domain model for the indexing pipeline.

Represents a bounded text fragment of a source file with a content-addressed
identifier, so identical text always maps to the same vector point.

Dependencies: pydantic, hashlib, uuid
System role: Data structure for document chunks in ingestion pipeline
"""

import hashlib
import uuid

from pydantic import BaseModel, Field, computed_field


def chunk_point_id(text: str) -> str:
    """
    Derive a deterministic point identifier from chunk text.

    Args:
        text: Chunk text content

    Returns:
        str: UUID string built from the first 128 bits of the SHA-256 digest
    """
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return str(uuid.UUID(hex=digest[:32]))


class Chunk(BaseModel):
    """Document chunk with its position in the extracted text."""

    source: str = Field(description="Source file path relative to the corpus root")
    index: int = Field(ge=0, description="Zero-based sequence number within the source")
    text: str = Field(description="Chunk text content")
    start: int = Field(ge=0, description="Start offset (characters) in the extracted text")
    end: int = Field(ge=0, description="End offset (exclusive) in the extracted text")

    @computed_field
    @property
    def content_hash(self) -> str:
        """SHA-256 hex digest of the chunk text."""
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    @computed_field
    @property
    def point_id(self) -> str:
        """Vector store identifier (pure function of the text)."""
        return chunk_point_id(self.text)
