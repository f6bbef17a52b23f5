"""
Observability module.

Logging configuration, request logging and correlation ID middleware.
"""

from rag_proxy.observability.logger import configure_logging

__all__ = ["configure_logging"]
