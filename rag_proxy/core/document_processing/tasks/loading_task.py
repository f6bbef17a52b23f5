"""
Document loading task.

Extracts raw text from source files. Formats form a closed set of loaders
dispatched by file extension (plain text, PDF, DOCX). Third-party parsers run
in a supervised worker process so that a crash, abort or hang on one
pathological file surfaces as a LoadError for that file instead of taking
the indexing run down.

Dependencies: langchain_community.document_loaders (pypdf, docx2txt), multiprocessing
System role: First stage of document ingestion pipeline
"""

import logging
import multiprocessing
from abc import ABC, abstractmethod
from multiprocessing.connection import Connection
from pathlib import Path

from langchain_community.document_loaders import Docx2txtLoader, PyPDFLoader

from rag_proxy.core.exceptions import LoadError

logger = logging.getLogger(__name__)


class DocumentLoader(ABC):
    """Single-format text extractor."""

    file_type: str = ""
    extensions: tuple[str, ...] = ()
    # Parsers backed by native/third-party code run out of process
    isolated: bool = False

    @abstractmethod
    def extract(self, path: Path) -> str:
        """
        Extract text from a file.

        Raises:
            LoadError: When the file cannot be read or parsed
        """


class PlainTextLoader(DocumentLoader):
    """UTF-8 text files; undecodable bytes are replaced."""

    file_type = "text"
    extensions = (
        ".txt", ".md", ".markdown", ".rst", ".csv", ".json",
        ".yaml", ".yml", ".toml", ".log", ".html", ".htm", ".xml",
    )

    def extract(self, path: Path) -> str:
        try:
            return path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise LoadError(
                f"Failed to read file: {e}", source=str(path), file_type=self.file_type
            ) from e


class PdfLoader(DocumentLoader):
    """PDF text via LangChain PyPDFLoader, pages joined by newlines."""

    file_type = "pdf"
    extensions = (".pdf",)
    isolated = True

    def extract(self, path: Path) -> str:
        try:
            pages = PyPDFLoader(str(path)).load()
        except Exception as e:
            raise LoadError(
                f"Failed to parse PDF: {e}", source=str(path), file_type=self.file_type
            ) from e
        return "\n".join(page.page_content for page in pages)


class DocxLoader(DocumentLoader):
    """Word documents via LangChain Docx2txtLoader."""

    file_type = "docx"
    extensions = (".docx",)
    isolated = True

    def extract(self, path: Path) -> str:
        try:
            documents = Docx2txtLoader(str(path)).load()
        except Exception as e:
            raise LoadError(
                f"Failed to parse DOCX: {e}", source=str(path), file_type=self.file_type
            ) from e
        return "\n".join(document.page_content for document in documents)


def default_loaders() -> list[DocumentLoader]:
    """Loaders for every supported format."""
    return [PlainTextLoader(), PdfLoader(), DocxLoader()]


def _extract_in_worker(loader: DocumentLoader, path: Path, conn: Connection) -> None:
    """Worker process entry point: send ("ok", text) or ("error", message)."""
    try:
        conn.send(("ok", loader.extract(path)))
    except Exception as e:
        conn.send(("error", f"{type(e).__name__}: {e}"))
    finally:
        conn.close()


class LoadingTask:
    """Dispatch files to format loaders with per-file fault isolation."""

    def __init__(
        self,
        loaders: list[DocumentLoader] | None = None,
        isolate_parsers: bool = True,
        timeout_seconds: float = 120.0,
        mp_context: str | None = None,
    ) -> None:
        """
        Initialize loading task.

        Args:
            loaders: Format loaders (defaults to text, PDF and DOCX)
            isolate_parsers: Run loaders flagged `isolated` in a worker process
            timeout_seconds: Per-file limit for isolated extraction
            mp_context: multiprocessing start method (platform default if None)
        """
        self._loaders: dict[str, DocumentLoader] = {}
        for loader in loaders or default_loaders():
            for extension in loader.extensions:
                self._loaders[extension] = loader
        self._isolate = isolate_parsers
        self._timeout = timeout_seconds
        self._mp = multiprocessing.get_context(mp_context)

    @property
    def extensions(self) -> frozenset[str]:
        """Supported file extensions."""
        return frozenset(self._loaders)

    def supports(self, path: Path) -> bool:
        """Whether a loader exists for the file extension."""
        return path.suffix.lower() in self._loaders

    def extract(self, path: Path) -> str:
        """
        Extract text from a file.

        Raises:
            LoadError: Unsupported format, read/parse failure, worker crash or timeout
        """
        loader = self._loaders.get(path.suffix.lower())
        if loader is None:
            raise LoadError(
                f"Unsupported file format: {path.suffix or '<none>'}",
                source=str(path),
                file_type=path.suffix.lower() or None,
            )
        if self._isolate and loader.isolated:
            return self._extract_isolated(loader, path)
        return loader.extract(path)

    def _extract_isolated(self, loader: DocumentLoader, path: Path) -> str:
        receiver, sender = self._mp.Pipe(duplex=False)
        process = self._mp.Process(
            target=_extract_in_worker,
            args=(loader, path, sender),
            daemon=True,
        )
        process.start()
        sender.close()

        try:
            if not receiver.poll(self._timeout):
                raise LoadError(
                    f"Parser timed out after {self._timeout}s",
                    source=str(path),
                    file_type=loader.file_type,
                )
            try:
                outcome = receiver.recv()
            except EOFError:
                outcome = None
        finally:
            receiver.close()
            process.join(timeout=1.0)
            if process.is_alive():
                process.terminate()
            process.join()

        if outcome is None:
            raise LoadError(
                f"Parser process died (exit code {process.exitcode})",
                source=str(path),
                file_type=loader.file_type,
                details={"exit_code": process.exitcode},
            )
        status, value = outcome
        if status != "ok":
            raise LoadError(value, source=str(path), file_type=loader.file_type)
        return value
