"""
Unified application settings.

Aggregates all configuration sections into a single immutable Settings class
loaded once from a TOML file (environment variables override file values).

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import SettingsConfigDict

from rag_proxy.configs.base import BaseSettings
from rag_proxy.configs.indexing import DataSourcesSettings, IndexingSettings
from rag_proxy.configs.proxy import LlmSettings, RagProxySettings
from rag_proxy.configs.vector_store import EmbeddingsSettings, QdrantSettings
from rag_proxy.core.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = "config.toml"


class Settings(BaseSettings):
    """Unified application settings aggregating all config sections."""

    data_sources: DataSourcesSettings = Field(default_factory=DataSourcesSettings)
    indexing: IndexingSettings = Field(default_factory=IndexingSettings)
    rag_proxy: RagProxySettings = Field(default_factory=RagProxySettings)
    llm: LlmSettings = Field(default_factory=LlmSettings)
    embeddings: EmbeddingsSettings = Field(default_factory=EmbeddingsSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)


def load_settings(config_path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Load settings from a TOML file.

    Args:
        config_path: Path to the TOML configuration file

    Returns:
        Settings: Frozen settings instance

    Raises:
        ConfigurationError: When the file is missing, malformed or invalid
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            details={"path": str(path)},
        )

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=path)

    try:
        return FileSettings()
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Malformed configuration file: {e}",
            details={"path": str(path)},
        ) from e
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration",
            details={"path": str(path), "errors": e.errors(include_url=False)},
        ) from e


@lru_cache
def get_settings(config_path: str = DEFAULT_CONFIG_PATH) -> Settings:
    """
    Get application settings singleton for a configuration file.

    Settings are loaded once per path and shared by reference.

    Usage:
        from rag_proxy.configs import get_settings
        settings = get_settings("config.toml")
    """
    return load_settings(config_path)
