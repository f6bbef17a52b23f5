"""
Models for the indexing pipeline.

Exports: Chunk, SourceFile, FileIndexResult, FileStatus, IndexReport, chunk_point_id
"""

from .chunk import Chunk, chunk_point_id
from .pipeline_result import FileIndexResult, FileStatus, IndexReport
from .source_file import SourceFile

__all__ = [
    "Chunk",
    "FileIndexResult",
    "FileStatus",
    "IndexReport",
    "SourceFile",
    "chunk_point_id",
]
