"""
Structured logging helpers.

Values passed as `extra` context are flattened to short strings first: raw
request and response bodies are reported by size, everything else is cut at
MAX_VALUE_LENGTH characters.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any

MAX_VALUE_LENGTH = 500


def summarize(value: Any, max_length: int = MAX_VALUE_LENGTH) -> str:
    """Printable form of a context value, bounded in length."""
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    text = str(value)
    if len(text) > max_length:
        return f"{text[:max_length]}... ({len(text)} chars)"
    return text


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """
    Log a failure with its traceback and summarized context.

    Adds `error_type` and `error_msg` fields; for RagProxyException the
    message excludes the details dict, which callers pass explicitly.
    """
    extra = {key: summarize(value) for key, value in context.items()}
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = summarize(getattr(exc, "message", exc))
    logger.error(message, exc_info=exc, extra=extra)
