"""
Proxy server and upstream LLM configuration settings.

Dependencies: pydantic
System role: HTTP surface and request splicing configuration
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RagProxySettings(BaseModel):
    """Proxy HTTP surface and request splicing configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=3000, gt=0, lt=65536, description="Bind port")
    chat_completion_endpoint: str = Field(
        default="/v1/chat/completions",
        description="Path of the proxied chat completions endpoint",
    )
    system_message_fingerprint_length: int = Field(
        default=255,
        gt=0,
        description="Tail length of the system message used as locator (fingerprint strategy)",
    )
    splice_strategy: Literal["offsets", "fingerprint"] = Field(
        default="offsets",
        description="How the system message text is located in the raw body",
    )
    context_separator: str = Field(
        default="\n\n",
        description="Inserted between the original system text and the retrieved context",
    )
    context_header: str = Field(
        default="--- Context from: RAG ---",
        description="First line of the injected context block",
    )

    @field_validator("chat_completion_endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("chat_completion_endpoint must start with '/'")
        return value


class LlmSettings(BaseModel):
    """Remote OpenAI-compatible chat completions endpoint."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(
        default="http://localhost:11434/v1/chat/completions",
        description="Full URL of the upstream chat completions endpoint",
    )
    api_key: str = Field(default="", description="Bearer token sent upstream")
    timeout_seconds: float = Field(default=300.0, gt=0, description="Per-call timeout")
