"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
Values come from a TOML file and may be overridden by RAG_PROXY_* variables.
"""

from rag_proxy.configs.settings import (
    DEFAULT_CONFIG_PATH,
    Settings,
    get_settings,
    load_settings,
)

__all__ = ["DEFAULT_CONFIG_PATH", "Settings", "get_settings", "load_settings"]
