"""
Exception handlers.

Convert domain exceptions into OpenAI-style JSON error bodies
({"error": {"message", "type"}}) so clients always get a parseable reply.

Dependencies: fastapi, rag_proxy.core.exceptions
System role: Error boundary of the HTTP surface
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rag_proxy.core.exceptions import RagProxyException
from rag_proxy.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

ERROR_TYPES = {
    400: "invalid_request_error",
    502: "upstream_error",
}


def error_response(status_code: int, message: str) -> JSONResponse:
    """JSON error body in the shape OpenAI clients expect."""
    error_type = ERROR_TYPES.get(status_code, "internal_error")
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "type": error_type}},
    )


async def rag_proxy_exception_handler(request: Request, exc: RagProxyException) -> JSONResponse:
    """Map a domain exception to its HTTP status."""
    if exc.status_code >= 500:
        log_exception_with_context(
            logger, "Request failed", exc, path=request.url.path, details=exc.details
        )
    else:
        logger.warning(
            f"Rejected request: {exc.message}",
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
    return error_response(exc.status_code, exc.message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: 500 without leaking internals."""
    log_exception_with_context(logger, "Unhandled error", exc, path=request.url.path)
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    app.add_exception_handler(RagProxyException, rag_proxy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
