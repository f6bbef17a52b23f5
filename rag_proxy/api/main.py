"""
FastAPI application with assembled routers.

Builds the proxy application: shared HTTP connection pools and components are
created in the lifespan and stored on app.state, routers and middleware are
registered by the factory.

Dependencies: fastapi, httpx, rag_proxy.api.routers, rag_proxy.core, rag_proxy.boundary
System role: API entry point with router assembly
"""

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI

from rag_proxy import __version__
from rag_proxy.api.error_handlers import register_exception_handlers
from rag_proxy.api.routers import build_chat_router, health_router
from rag_proxy.boundary.embeddings import AsyncOllamaEmbeddingClient
from rag_proxy.boundary.llm import LLMForwarder
from rag_proxy.boundary.vdb import AsyncQdrantVectorStoreClient
from rag_proxy.configs import Settings
from rag_proxy.core.request_splicing import RequestSplicer
from rag_proxy.core.retriever import Retriever
from rag_proxy.observability.middleware import CorrelationMiddleware, RequestLoggingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Opens one connection pool per upstream service on startup and closes them
    on shutdown.
    """
    settings: Settings = app.state.settings
    transport: httpx.AsyncBaseTransport | None = app.state.transport

    async with AsyncExitStack() as stack:
        embeddings_http = await stack.enter_async_context(
            httpx.AsyncClient(timeout=settings.embeddings.timeout_seconds, transport=transport)
        )
        qdrant_http = await stack.enter_async_context(
            httpx.AsyncClient(timeout=settings.qdrant.timeout_seconds, transport=transport)
        )
        llm_http = await stack.enter_async_context(
            httpx.AsyncClient(timeout=settings.llm.timeout_seconds, transport=transport)
        )

        embedding_client = AsyncOllamaEmbeddingClient(settings.embeddings, embeddings_http)
        vector_client = AsyncQdrantVectorStoreClient(settings.qdrant, qdrant_http)

        app.state.vector_client = vector_client
        app.state.retriever = Retriever(
            embedding_client=embedding_client,
            vector_client=vector_client,
            collection=settings.qdrant.collection,
            limit=settings.qdrant.limit,
            score_threshold=settings.qdrant.score_threshold,
        )
        app.state.splicer = RequestSplicer(
            fingerprint_length=settings.rag_proxy.system_message_fingerprint_length,
            separator=settings.rag_proxy.context_separator,
            strategy=settings.rag_proxy.splice_strategy,
        )
        app.state.forwarder = LLMForwarder(settings.llm, llm_http)

        logger.info(
            "RAG proxy started",
            extra={
                "passthrough": app.state.passthrough,
                "endpoint": settings.rag_proxy.chat_completion_endpoint,
                "upstream": settings.llm.endpoint,
            },
        )
        yield

    logger.info("RAG proxy stopped, connection pools closed")


def create_app(
    settings: Settings,
    passthrough: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application with routers.

    Args:
        settings: Application settings
        passthrough: Forward requests without retrieval or splicing
        transport: httpx transport for every upstream pool (tests inject a mock)

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title="RAG Proxy",
        description="Retrieval-augmented proxy for OpenAI-compatible chat completions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.passthrough = passthrough
    app.state.transport = transport

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(
        build_chat_router(settings.rag_proxy.chat_completion_endpoint, passthrough=passthrough)
    )
    return app
