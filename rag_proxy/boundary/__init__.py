"""
Boundary adapters for external HTTP services (Qdrant, Ollama, upstream LLM).
"""
