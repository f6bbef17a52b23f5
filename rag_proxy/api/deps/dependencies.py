"""
Dependency providers.

Shared components are built once in the application lifespan and stored on
app.state; these functions hand them to route handlers via Depends.

Dependencies: fastapi, rag_proxy.core, rag_proxy.boundary
System role: DI for per-request collaborators
"""

from fastapi import Request

from rag_proxy.boundary.llm import LLMForwarder
from rag_proxy.boundary.vdb import AsyncQdrantVectorStoreClient
from rag_proxy.configs import Settings
from rag_proxy.core.request_splicing import RequestSplicer
from rag_proxy.core.retriever import Retriever


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_retriever(request: Request) -> Retriever:
    """Shared retriever (async embedding + Qdrant clients)."""
    return request.app.state.retriever


def get_splicer(request: Request) -> RequestSplicer:
    """Shared request splicer."""
    return request.app.state.splicer


def get_forwarder(request: Request) -> LLMForwarder:
    """Shared upstream forwarder."""
    return request.app.state.forwarder


def get_vector_client(request: Request) -> AsyncQdrantVectorStoreClient:
    """Shared async Qdrant client."""
    return request.app.state.vector_client
