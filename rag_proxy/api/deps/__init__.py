"""API-specific dependencies."""

from .dependencies import (
    get_app_settings,
    get_forwarder,
    get_retriever,
    get_splicer,
    get_vector_client,
)

__all__ = [
    "get_app_settings",
    "get_forwarder",
    "get_retriever",
    "get_splicer",
    "get_vector_client",
]
