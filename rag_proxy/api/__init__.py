"""HTTP surface of the proxy."""

from rag_proxy.api.main import create_app

__all__ = ["create_app"]
