"""Raw request body rewriting for context injection."""

from rag_proxy.core.request_splicing.json_spans import JSONSpanError, Node, parse_spans
from rag_proxy.core.request_splicing.splicer import (
    RequestSplicer,
    SpliceResult,
    extract_user_query,
    parse_request_body,
)

__all__ = [
    "JSONSpanError",
    "Node",
    "RequestSplicer",
    "SpliceResult",
    "extract_user_query",
    "parse_request_body",
    "parse_spans",
]
