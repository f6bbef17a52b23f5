"""
Pipeline result models for indexing runs.

Represents the outcome of processing each file and the run as a whole.

Dependencies: pydantic
System role: Return type for DocumentPipeline.run()
"""

from enum import Enum

from pydantic import BaseModel, Field


class FileStatus(str, Enum):
    """Outcome of one file in an indexing run."""

    INDEXED = "indexed"
    SKIPPED = "skipped"
    EMPTY = "empty"
    FAILED = "failed"


class FileIndexResult(BaseModel):
    """Result of processing a single source file."""

    source: str = Field(description="Source path relative to the corpus root")
    status: FileStatus = Field(description="Processing outcome")
    chunk_count: int = Field(default=0, description="Number of points upserted")
    processing_time_ms: float = Field(default=0.0, description="Wall time spent on the file")
    error: str | None = Field(default=None, description="Error message for failed files")


class IndexReport(BaseModel):
    """Aggregate result of an indexing run."""

    collection: str = Field(description="Target collection")
    collection_created: bool = Field(default=False, description="Collection created by this run")
    files: list[FileIndexResult] = Field(default_factory=list)
    processing_time_ms: float = Field(default=0.0, description="Total run time")

    def count(self, status: FileStatus) -> int:
        """Number of files with the given status."""
        return sum(1 for result in self.files if result.status == status)

    @property
    def chunk_count(self) -> int:
        """Total points upserted during the run."""
        return sum(result.chunk_count for result in self.files)
