"""
Chat completions API endpoint.

Routes: POST {rag_proxy.chat_completion_endpoint} (default /v1/chat/completions)

The RAG handler retrieves context for the last user message, splices it into
the system message of the raw body and forwards the result upstream. The
passthrough handler forwards the body untouched.

Dependencies: rag_proxy.core.retriever, rag_proxy.core.request_splicing, rag_proxy.boundary.llm
System role: Proxy request handling
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, Response

from rag_proxy.api.deps import get_app_settings, get_forwarder, get_retriever, get_splicer
from rag_proxy.boundary.llm import LLMForwarder
from rag_proxy.configs import Settings
from rag_proxy.core.request_splicing import (
    RequestSplicer,
    extract_user_query,
    parse_request_body,
)
from rag_proxy.core.retriever import Retriever, format_context

logger = logging.getLogger(__name__)


def wants_stream(body: bytes) -> bool:
    """Whether the request asks for a streamed reply ("stream": true)."""
    try:
        document = json.loads(body)
    except (ValueError, RecursionError):
        return False
    return isinstance(document, dict) and document.get("stream") is True


async def rag_chat_completions(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    retriever: Retriever = Depends(get_retriever),
    splicer: RequestSplicer = Depends(get_splicer),
    forwarder: LLMForwarder = Depends(get_forwarder),
) -> Response:
    """
    Retrieve context, splice it into the system message, forward upstream.

    Raises:
        RequestFormatError(400): Body is not a JSON object
        EmbeddingError / VectorStoreError(502): Retrieval failed
        UpstreamError(502): LLM endpoint unreachable
    """
    request.state.proxy_mode = "rag"
    body = await request.body()
    document = parse_request_body(body)

    query = extract_user_query(document)
    chunks = await retriever.retrieve(query)
    context = format_context(chunks, settings.rag_proxy.context_header)
    result = splicer.splice(body, context)
    request.state.context_chunks = len(chunks)
    request.state.splice_reason = result.reason

    logger.debug(
        f"Forwarding chat completion ({result.reason})",
        extra={"chunk_count": len(chunks), "modified": result.modified},
    )
    return await forwarder.forward(result.body, stream=document.get("stream") is True)


async def passthrough_chat_completions(
    request: Request,
    forwarder: LLMForwarder = Depends(get_forwarder),
) -> Response:
    """Forward the request body upstream byte for byte."""
    request.state.proxy_mode = "passthrough"
    body = await request.body()
    return await forwarder.forward(body, stream=wants_stream(body))


def build_router(endpoint: str, passthrough: bool = False) -> APIRouter:
    """
    Router serving chat completions at a configurable path.

    Args:
        endpoint: Route path, e.g. /v1/chat/completions
        passthrough: Serve the passthrough handler instead of the RAG one
    """
    router = APIRouter(tags=["chat"])
    handler = passthrough_chat_completions if passthrough else rag_chat_completions
    router.add_api_route(endpoint, handler, methods=["POST"], response_class=Response)
    return router
