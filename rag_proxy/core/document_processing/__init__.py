"""
Document indexing pipeline.

Exports: DocumentPipeline, FileTracker
"""

from .entrypoint import DocumentPipeline
from .file_tracker import FileTracker

__all__ = ["DocumentPipeline", "FileTracker"]
