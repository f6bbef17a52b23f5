"""
RAG proxy.

Indexes a local document corpus into Qdrant and serves an OpenAI-compatible
chat completions proxy that injects retrieved context into the system message.
"""

__version__ = "0.1.0"
