"""Upstream LLM adapter."""

from rag_proxy.boundary.llm.llm_client import LLMForwarder, ensure_usage, relay_headers

__all__ = ["LLMForwarder", "ensure_usage", "relay_headers"]
