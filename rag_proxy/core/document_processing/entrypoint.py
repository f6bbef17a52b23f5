"""
Indexing pipeline orchestrator.

Coordinates file discovery, change tracking, loading, chunking, embedding and
Qdrant upload. Per-file failures are logged and the run continues; losing the
vector store connection aborts the run. The tracker is only updated once every
chunk of a file has been upserted.

Dependencies: All task modules, rag_proxy.configs, rag_proxy.boundary
System role: Pipeline orchestration (coordinates only)
"""

import logging
import time
from pathlib import Path

from rag_proxy.boundary.embeddings import OllamaEmbeddingClient
from rag_proxy.boundary.vdb import QdrantVectorStoreClient
from rag_proxy.configs import Settings
from rag_proxy.core.document_processing.file_tracker import FileTracker
from rag_proxy.core.document_processing.models import (
    Chunk,
    FileIndexResult,
    FileStatus,
    IndexReport,
    SourceFile,
)
from rag_proxy.core.document_processing.tasks import (
    ChunkingTask,
    EmbeddingTask,
    LoadingTask,
    VectorStoreTask,
)
from rag_proxy.core.exceptions import (
    EmbeddingError,
    LoadError,
    VectorStoreConnectionError,
    VectorStoreError,
)
from rag_proxy.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """Orchestrate indexing: discover -> track -> load -> chunk -> embed -> upsert."""

    def __init__(
        self,
        settings: Settings,
        embedding_client: OllamaEmbeddingClient | None = None,
        vector_client: QdrantVectorStoreClient | None = None,
        loading_task: LoadingTask | None = None,
    ) -> None:
        """
        Initialize pipeline with configuration.

        Args:
            settings: Application settings
            embedding_client: Embedding client (created from settings if None)
            vector_client: Qdrant client (created from settings if None)
            loading_task: Loader dispatcher (created from settings if None)
        """
        self._settings = settings
        self._owned_clients: list[OllamaEmbeddingClient | QdrantVectorStoreClient] = []

        if embedding_client is None:
            embedding_client = OllamaEmbeddingClient(settings.embeddings)
            self._owned_clients.append(embedding_client)
        if vector_client is None:
            vector_client = QdrantVectorStoreClient(settings.qdrant)
            self._owned_clients.append(vector_client)

        self.source_root = Path(settings.data_sources.path)
        self.tracker_path = Path(settings.indexing.file_tracker_path)

        self._loading_task = loading_task or LoadingTask(
            isolate_parsers=settings.indexing.isolate_parsers,
            timeout_seconds=settings.indexing.parser_timeout_seconds,
        )
        self._chunking_task = ChunkingTask(
            chunk_size=settings.indexing.chunk_size,
            chunk_overlap=settings.indexing.chunk_overlap,
        )
        self._embedding_task = EmbeddingTask(embedding_client)
        self._vector_store_task = VectorStoreTask(
            client=vector_client,
            collection=settings.qdrant.collection,
            vector_size=settings.qdrant.vector_size,
            distance=settings.qdrant.distance,
            batch_size=settings.indexing.upsert_batch_size,
        )

    def __enter__(self) -> "DocumentPipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close HTTP clients created by the pipeline."""
        for client in self._owned_clients:
            client.close()

    def discover_files(self) -> list[SourceFile]:
        """
        List indexable files under the corpus root.

        Hidden files and directories, unsupported extensions and the tracker
        file itself are skipped. Order is deterministic (sorted by path).
        """
        if not self.source_root.is_dir():
            logger.warning(
                "Data source directory does not exist",
                extra={"source_root": str(self.source_root)},
            )
            return []

        tracker = self.tracker_path.resolve()
        files = []
        for path in sorted(self.source_root.rglob("*")):
            relative = path.relative_to(self.source_root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not path.is_file() or path.resolve() == tracker:
                continue
            if not self._loading_task.supports(path):
                logger.debug("Skipping unsupported file", extra={"source": relative.as_posix()})
                continue
            files.append(SourceFile.from_path(path, self.source_root))
        return files

    def run(self, force: bool = False) -> IndexReport:
        """
        Index every new or changed file.

        Args:
            force: Re-index files even when their hash is unchanged

        Returns:
            IndexReport: Per-file outcomes and totals

        Raises:
            VectorStoreConnectionError: Qdrant unreachable (fatal for the run)
        """
        start_time = time.perf_counter()
        logger.info(
            "Starting document indexing",
            extra={"source_root": str(self.source_root), "force": force},
        )

        self._vector_store_task.check_connection()
        report = IndexReport(
            collection=self._vector_store_task.collection,
            collection_created=self._vector_store_task.ensure_collection(),
        )

        with FileTracker.open(self.tracker_path, root=self.source_root) as tracker:
            for source in self.discover_files():
                report.files.append(self.process_file(source, tracker, force=force))

        report.processing_time_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Document indexing completed: {report.count(FileStatus.INDEXED)} indexed, "
            f"{report.count(FileStatus.SKIPPED)} skipped, {report.count(FileStatus.EMPTY)} empty, "
            f"{report.count(FileStatus.FAILED)} failed, {report.chunk_count} chunks "
            f"in {report.processing_time_ms:.0f} ms"
        )
        return report

    def process_file(
        self,
        source: SourceFile,
        tracker: FileTracker,
        force: bool = False,
    ) -> FileIndexResult:
        """
        Run one file through the pipeline.

        Raises:
            VectorStoreConnectionError: Qdrant became unreachable
        """
        start_time = time.perf_counter()
        key = source.relative_path

        def elapsed_ms() -> float:
            return (time.perf_counter() - start_time) * 1000

        try:
            content_hash = FileTracker.compute_hash(source.path)
        except OSError as e:
            log_exception_with_context(logger, "Failed to read source file", e, source=key)
            return FileIndexResult(
                source=key, status=FileStatus.FAILED, error=str(e), processing_time_ms=elapsed_ms()
            )

        if not force and not tracker.has_changed(source.path, content_hash):
            logger.debug("File unchanged, skipping", extra={"source": key})
            return FileIndexResult(source=key, status=FileStatus.SKIPPED)

        logger.info(f"Processing file: {key}")
        try:
            text = self._loading_task.extract(source.path)
        except LoadError as e:
            log_exception_with_context(
                logger, "Failed to load file", e, source=key, file_type=e.file_type
            )
            return FileIndexResult(
                source=key, status=FileStatus.FAILED, error=str(e), processing_time_ms=elapsed_ms()
            )

        chunks = self._unique_chunks(self._chunking_task.chunk(text, key))

        if not chunks:
            tracker.record_processed(source.path, content_hash)
            logger.info(f"No text extracted from {key}", extra={"source": key})
            return FileIndexResult(
                source=key, status=FileStatus.EMPTY, processing_time_ms=elapsed_ms()
            )

        try:
            points = self._embedding_task.embed(chunks)
            upserted = self._vector_store_task.upload(points)
        except VectorStoreConnectionError:
            raise
        except (EmbeddingError, VectorStoreError) as e:
            log_exception_with_context(
                logger, "Failed to index file", e, source=key, chunk_count=len(chunks)
            )
            return FileIndexResult(
                source=key, status=FileStatus.FAILED, error=str(e), processing_time_ms=elapsed_ms()
            )

        tracker.record_processed(source.path, content_hash)
        duration = elapsed_ms()
        logger.info(
            f"Indexed {key}: {upserted} chunks in {duration:.0f} ms",
            extra={"source": key, "chunk_count": upserted, "processing_time_ms": round(duration, 2)},
        )
        return FileIndexResult(
            source=key,
            status=FileStatus.INDEXED,
            chunk_count=upserted,
            processing_time_ms=duration,
        )

    @staticmethod
    def _unique_chunks(chunks: list[Chunk]) -> list[Chunk]:
        """Drop repeated chunk texts within one file (same point id)."""
        seen: set[str] = set()
        unique = []
        for chunk in chunks:
            if chunk.point_id in seen:
                continue
            seen.add(chunk.point_id)
            unique.append(chunk)
        return unique
