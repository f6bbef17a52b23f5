"""
Exception hierarchy for the RAG proxy.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging, and an HTTP
status code used when they surface at the proxy boundary.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class RagProxyException(Exception):
    """Base exception for all RAG proxy errors."""

    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RagProxyException):
    """Raised when settings are missing or invalid."""


class DocumentProcessingError(RagProxyException):
    """Base exception for indexing errors scoped to one source file."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize document processing error.

        Args:
            message: Error message
            source: Source file that failed
            details: Additional context
        """
        details = details or {}
        if source:
            details["source"] = source
        super().__init__(message, details)


class LoadError(DocumentProcessingError):
    """Raised when text extraction from a file fails."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        file_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize load error.

        Args:
            message: Error message
            source: Source file path
            file_type: Format variant that failed (text, pdf, docx)
            details: Additional context
        """
        details = details or {}
        if file_type:
            details["file_type"] = file_type
        self.file_type = file_type
        super().__init__(message, source, details)


class EmbeddingError(RagProxyException):
    """Raised when the embedding service is unreachable or returns garbage."""

    status_code = 502


class VectorStoreError(RagProxyException):
    """Raised when vector store operations fail."""

    status_code = 502

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (health, exists, create, upsert, search, delete)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        self.operation = operation
        super().__init__(message, details)


class VectorStoreConnectionError(VectorStoreError):
    """Raised when the vector store cannot be reached at all."""


class CollectionNotFoundError(VectorStoreError):
    """Raised when the target collection does not exist."""


class RequestFormatError(RagProxyException):
    """Raised when a client request body cannot be parsed."""

    status_code = 400


class UpstreamError(RagProxyException):
    """Raised when the remote LLM endpoint cannot be reached."""

    status_code = 502
