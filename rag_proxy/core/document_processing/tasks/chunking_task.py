"""
Text chunking task using RecursiveCharacterTextSplitter.

Splits extracted text into bounded chunks, preferring paragraph, line and
sentence boundaries and falling back to a hard cut at the size bound.
Identical input and configuration always yield identical boundaries.

Dependencies: langchain_text_splitters
System role: Second stage of document ingestion pipeline
"""

from langchain_text_splitters import RecursiveCharacterTextSplitter

from rag_proxy.core.document_processing.models import Chunk

SEPARATORS = ["\n\n", "\n", ". ", "? ", "! ", "; ", " ", ""]


class ChunkingTask:
    """Split text into chunks using RecursiveCharacterTextSplitter."""

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 100,
    ) -> None:
        """
        Initialize chunking task with splitter configuration.

        Args:
            chunk_size: Maximum chunk size in characters
            chunk_overlap: Overlap between consecutive chunks

        Raises:
            ValueError: When chunk_size is not positive or overlap is not smaller
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=SEPARATORS,
            keep_separator="end",
            add_start_index=True,
            length_function=len,
        )

    def chunk(self, text: str, source: str) -> list[Chunk]:
        """
        Split text into ordered chunks.

        Args:
            text: Extracted document text
            source: Source path recorded on each chunk

        Returns:
            list[Chunk]: Chunks in document order, empty for blank input
        """
        if not text.strip():
            return []

        documents = self._splitter.create_documents([text])
        chunks = []
        for index, document in enumerate(documents):
            start = document.metadata.get("start_index", -1)
            if start < 0:
                start = 0
            chunks.append(
                Chunk(
                    source=source,
                    index=index,
                    text=document.page_content,
                    start=start,
                    end=start + len(document.page_content),
                )
            )
        return chunks
