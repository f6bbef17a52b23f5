"""
FastAPI middleware for observability.

Correlation ID propagation and one access-log line per request. Chat routes
record their outcome (mode, splice reason, retrieved chunk count) on
`request.state`; the access line carries those fields next to the upstream
status and duration.

Dependencies: fastapi, starlette, rag_proxy.observability
System role: Request/response observability injection
"""

import logging
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rag_proxy.observability.correlation import clear_correlation_id, set_correlation_id
from rag_proxy.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

OUTCOME_FIELDS = ("proxy_mode", "splice_reason", "context_chunks")


def proxy_outcome(request: Request) -> dict[str, Any]:
    """Outcome fields a route stored on request.state."""
    return {
        field: getattr(request.state, field)
        for field in OUTCOME_FIELDS
        if hasattr(request.state, field)
    }


def _outcome_suffix(outcome: dict[str, Any]) -> str:
    if "proxy_mode" not in outcome:
        return ""
    parts = [outcome["proxy_mode"]]
    if "splice_reason" in outcome:
        parts.append(outcome["splice_reason"])
    if "context_chunks" in outcome:
        parts.append(f"{outcome['context_chunks']} chunks")
    return f" [{', '.join(parts)}]"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log: method, path, status, duration and proxy outcome."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        try:
            response: Response = await call_next(request)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{method} {path} raised",
                e,
                method=method,
                path=path,
                **proxy_outcome(request),
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        outcome = proxy_outcome(request)
        logger.info(
            f"{method} {path} {response.status_code} in {duration_ms} ms{_outcome_suffix(outcome)}",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                **outcome,
            },
        )
        return response


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware for correlation ID injection."""

    async def dispatch(self, request: Request, call_next):
        """
        Inject correlation ID into request context.

        Args:
            request: FastAPI request
            call_next: Next middleware in chain

        Returns:
            Response: Response with correlation ID header
        """
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        try:
            response: Response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response
