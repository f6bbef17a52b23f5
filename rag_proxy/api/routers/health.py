"""
Health check API endpoints.

Routes: GET /health, GET /health/vector-store

Dependencies: rag_proxy.boundary
System role: Health check HTTP API
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rag_proxy.api.deps import get_vector_client
from rag_proxy.boundary.vdb import AsyncQdrantVectorStoreClient
from rag_proxy.core.exceptions import VectorStoreError

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check."""
    return HealthResponse(status="healthy", message="Server Healthy")


@router.get(
    "/vector-store",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check_vector_store(
    vector_client: AsyncQdrantVectorStoreClient = Depends(get_vector_client),
):
    """Vector store health check (Qdrant telemetry)."""
    try:
        await vector_client.health_check()
    except VectorStoreError as e:
        logger.warning("Vector store health check failed", extra={"error": e.message})
        return JSONResponse(
            status_code=503,
            content=HealthResponse(status="unhealthy", message=e.message).model_dump(),
        )
    return HealthResponse(status="healthy", message="Vector store accessible")
