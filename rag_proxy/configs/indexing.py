"""
Indexing configuration settings.

Source directory, tracker location and chunking parameters for the offline
indexing pipeline.

Dependencies: pydantic
System role: Indexing pipeline configuration
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DataSourcesSettings(BaseModel):
    """Location of the document corpus."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(default="data_sources", description="Directory scanned for documents")


class IndexingSettings(BaseModel):
    """Chunking, batching and tracking configuration."""

    model_config = ConfigDict(frozen=True)

    file_tracker_path: str = Field(
        default="file_tracker.json",
        description="JSON file mapping source path to last indexed MD5",
    )
    chunk_size: int = Field(default=1000, gt=0, description="Maximum chunk size in characters")
    chunk_overlap: int = Field(default=100, ge=0, description="Overlap between consecutive chunks")
    upsert_batch_size: int = Field(default=128, gt=0, description="Points per upsert request")
    isolate_parsers: bool = Field(
        default=True,
        description="Run PDF/DOCX parsers in a supervised worker process",
    )
    parser_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Per-file timeout for isolated parsers",
    )

    @model_validator(mode="after")
    def _check_overlap(self) -> "IndexingSettings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self
