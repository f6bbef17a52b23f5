"""API routers."""

from .chat_completions import build_router as build_chat_router
from .health import router as health_router

__all__ = ["build_chat_router", "health_router"]
