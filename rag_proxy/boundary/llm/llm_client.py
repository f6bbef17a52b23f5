"""
Upstream LLM forwarder.

Relays chat-completions request bodies to the remote OpenAI-compatible
endpoint over a pooled httpx.AsyncClient and turns the upstream reply into a
Starlette response. Streaming replies are relayed chunk by chunk without
interpretation.

Dependencies: httpx, starlette, rag_proxy.configs, rag_proxy.core.exceptions
System role: Outbound adapter for the proxy
"""

import json
import logging
from collections.abc import AsyncIterator

import httpx
from starlette.responses import Response, StreamingResponse

from rag_proxy.configs.proxy import LlmSettings
from rag_proxy.core.exceptions import UpstreamError
from rag_proxy.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

# Never relayed: connection-scoped headers, plus framing that Starlette recomputes
# (httpx hands us decoded bodies, so content-encoding no longer applies)
EXCLUDED_RESPONSE_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "content-length",
    "content-encoding",
})

EMPTY_USAGE = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def relay_headers(headers: httpx.Headers) -> list[tuple[bytes, bytes]]:
    """Upstream response headers safe to send back to the client, duplicates kept."""
    return [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in headers.multi_items()
        if name.lower() not in EXCLUDED_RESPONSE_HEADERS
    ]


def ensure_usage(content: bytes) -> bytes:
    """
    Add zeroed token usage to a completion object that lacks it.

    Some clients require "usage" on every completion. The member is appended
    in place so the rest of the upstream body is relayed byte for byte.
    Anything that is not a JSON object with "choices" is returned untouched.
    """
    try:
        text = content.decode("utf-8").rstrip()
        document = json.loads(text)
    except ValueError:
        return content
    if not isinstance(document, dict) or "choices" not in document or "usage" in document:
        return content

    member = '"usage":' + json.dumps(EMPTY_USAGE, separators=(",", ":"))
    return (text[:-1] + "," + member + "}").encode("utf-8")


class LLMForwarder:
    """Forward raw request bodies to the upstream chat completions endpoint."""

    def __init__(self, settings: LlmSettings, http_client: httpx.AsyncClient) -> None:
        """
        Initialize forwarder.

        Args:
            settings: Upstream endpoint, API key and timeout
            http_client: Shared connection pool (owned by the application)
        """
        self.settings = settings
        self._client = http_client

    def _request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _upstream_error(self, exc: httpx.HTTPError) -> UpstreamError:
        log_exception_with_context(
            logger, "Upstream LLM request failed", exc, endpoint=self.settings.endpoint
        )
        return UpstreamError(
            f"Upstream LLM unreachable: {exc}",
            details={"endpoint": self.settings.endpoint, "error_type": type(exc).__name__},
        )

    async def forward(self, body: bytes, stream: bool = False) -> Response:
        """
        Send a request body upstream and build the client response.

        Args:
            body: Request body bytes, sent as-is
            stream: Relay the reply incrementally

        Returns:
            Response: Upstream status, filtered headers and body

        Raises:
            UpstreamError: Transport failure or timeout before a reply arrived
        """
        if stream:
            return await self._forward_stream(body)

        try:
            upstream = await self._client.post(
                self.settings.endpoint,
                content=body,
                headers=self._request_headers(),
                timeout=self.settings.timeout_seconds,
            )
        except httpx.TransportError as e:
            raise self._upstream_error(e) from e

        logger.info(
            "Upstream LLM responded",
            extra={"status_code": upstream.status_code, "stream": False},
        )
        content = upstream.content
        if upstream.is_success:
            content = ensure_usage(content)

        response = Response(content=content, status_code=upstream.status_code)
        response.raw_headers.extend(relay_headers(upstream.headers))
        return response

    async def _forward_stream(self, body: bytes) -> StreamingResponse:
        request = self._client.build_request(
            "POST",
            self.settings.endpoint,
            content=body,
            headers=self._request_headers(),
            timeout=self.settings.timeout_seconds,
        )
        try:
            upstream = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise self._upstream_error(e) from e

        logger.info(
            "Upstream LLM stream opened",
            extra={"status_code": upstream.status_code, "stream": True},
        )

        async def relay() -> AsyncIterator[bytes]:
            try:
                async for chunk in upstream.aiter_bytes():
                    yield chunk
            except httpx.TransportError as e:
                # Status line is already sent; the client sees a truncated stream
                log_exception_with_context(
                    logger, "Upstream LLM stream interrupted", e, endpoint=self.settings.endpoint
                )
            finally:
                await upstream.aclose()

        response = StreamingResponse(relay(), status_code=upstream.status_code)
        response.raw_headers.extend(relay_headers(upstream.headers))
        return response
