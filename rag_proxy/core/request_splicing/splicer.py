"""
Request splicer.

Injects retrieved context into the system message of a raw chat-completions
request body. Only the system message text changes; every other byte of the
client's request (unknown fields, number formatting, key order, whitespace)
is forwarded as received.

Dependencies: json, rag_proxy.core.request_splicing.json_spans
System role: Per-request body rewriting for the RAG proxy
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

from rag_proxy.core.exceptions import RequestFormatError
from rag_proxy.core.request_splicing.json_spans import JSONSpanError, Node, parse_spans

logger = logging.getLogger(__name__)

SpliceStrategy = Literal["offsets", "fingerprint"]


@dataclass(frozen=True)
class SpliceResult:
    """Outcome of a splice attempt."""

    body: bytes
    modified: bool
    reason: str


def parse_request_body(body: bytes) -> dict[str, Any]:
    """
    Decode a chat-completions request body.

    Raises:
        RequestFormatError: Body is not UTF-8 JSON or not a JSON object
    """
    try:
        document = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RequestFormatError(f"Request body is not valid JSON: {e}") from e
    except RecursionError as e:
        raise RequestFormatError("Request body is nested too deeply") from e
    if not isinstance(document, dict):
        raise RequestFormatError("Request body must be a JSON object")
    return document


def _content_text(content: Any, joiner: str | None) -> str | None:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return None
    texts = [
        part["text"]
        for part in content
        if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
    ]
    if not texts:
        return None
    return joiner.join(texts) if joiner is not None else texts[-1]


def extract_user_query(document: dict[str, Any]) -> str:
    """
    Question used for retrieval: the last user message's text.

    List content contributes its text parts joined by a space. Falls back to
    the last message of any role, and to "" when there is nothing usable.
    """
    messages = document.get("messages")
    if not isinstance(messages, list):
        return ""
    candidates = [m for m in messages if isinstance(m, dict)]
    users = [m for m in candidates if m.get("role") == "user"]

    for message in (users[-1:] or candidates[-1:]):
        text = _content_text(message.get("content"), joiner=" ")
        if text is not None:
            return text
    return ""


def _escape(text: str) -> str:
    """JSON string escape without the surrounding quotes."""
    return json.dumps(text, ensure_ascii=False)[1:-1]


class RequestSplicer:
    """Insert context into the system message of a raw request body."""

    def __init__(
        self,
        fingerprint_length: int = 255,
        separator: str = "\n\n",
        strategy: SpliceStrategy = "offsets",
    ) -> None:
        """
        Initialize splicer.

        Args:
            fingerprint_length: Tail length (decoded chars) used to locate the
                system message text with the fingerprint strategy
            separator: Text placed between the system message and the context
            strategy: "offsets" edits at the scanned position of the string;
                "fingerprint" searches the raw body for the escaped tail
        """
        if fingerprint_length <= 0:
            raise ValueError("fingerprint_length must be positive")
        if strategy not in ("offsets", "fingerprint"):
            raise ValueError(f"Unknown splice strategy: {strategy}")
        self.fingerprint_length = fingerprint_length
        self.separator = separator
        self.strategy = strategy

    def splice(self, body: bytes, context: str) -> SpliceResult:
        """
        Append context to the last system message.

        When the request has no system message, one carrying only the context
        is inserted as the first element of "messages".

        Raises:
            RequestFormatError: Body is not UTF-8 JSON or not a JSON object
        """
        try:
            text = body.decode("utf-8")
            root = parse_spans(text)
        except (UnicodeDecodeError, JSONSpanError) as e:
            raise RequestFormatError(f"Request body is not valid JSON: {e}") from e
        if root.kind != "object":
            raise RequestFormatError("Request body must be a JSON object")

        if not context:
            return SpliceResult(body=body, modified=False, reason="no_context")

        messages = root.get("messages")
        if messages is None or messages.kind != "array":
            logger.warning("Request has no messages array, forwarding unchanged")
            return SpliceResult(body=body, modified=False, reason="no_messages")

        system = self._last_system_message(messages)
        if system is None:
            return self._insert_system_message(text, messages, context)

        target = self._system_text_node(system)
        if target is None:
            logger.warning("System message content is not text, forwarding unchanged")
            return SpliceResult(body=body, modified=False, reason="unsupported_content")

        insertion = _escape(self.separator + context)
        if self.strategy == "offsets":
            position = target.end - 1
        else:
            position = self._locate_by_fingerprint(text, target.value)
            if position is None:
                return SpliceResult(body=body, modified=False, reason="not_located")

        spliced = text[:position] + insertion + text[position:]
        logger.debug(
            "Context spliced into system message",
            extra={"strategy": self.strategy, "context_chars": len(context)},
        )
        return SpliceResult(body=spliced.encode("utf-8"), modified=True, reason="spliced")

    @staticmethod
    def _last_system_message(messages: Node) -> Node | None:
        for message in reversed(messages.items):
            if message.kind != "object":
                continue
            role = message.get("role")
            if role is not None and role.is_string and role.value == "system":
                return message
        return None

    @staticmethod
    def _system_text_node(message: Node) -> Node | None:
        """The string node holding the system text: content, or its last text part."""
        content = message.get("content")
        if content is None:
            return None
        if content.is_string:
            return content
        if content.kind != "array":
            return None
        for part in reversed(content.items):
            if part.kind != "object":
                continue
            part_type = part.get("type")
            part_text = part.get("text")
            if (
                part_type is not None
                and part_type.is_string
                and part_type.value == "text"
                and part_text is not None
                and part_text.is_string
            ):
                return part_text
        return None

    def _locate_by_fingerprint(self, text: str, system_text: str) -> int | None:
        """Position right after the unique escaped tail of the system text."""
        fingerprint = _escape(system_text[-self.fingerprint_length:])
        occurrences = text.count(fingerprint) if fingerprint else 0
        if occurrences != 1:
            logger.warning(
                "System message fingerprint not unique in request body, forwarding unchanged",
                extra={"occurrences": occurrences, "fingerprint_length": self.fingerprint_length},
            )
            return None
        return text.index(fingerprint) + len(fingerprint)

    @staticmethod
    def _insert_system_message(text: str, messages: Node, context: str) -> SpliceResult:
        element = json.dumps({"role": "system", "content": context}, ensure_ascii=False)
        if messages.items:
            element += ","
        position = messages.start + 1
        spliced = text[:position] + element + text[position:]
        logger.debug("No system message in request, inserted one with context")
        return SpliceResult(body=spliced.encode("utf-8"), modified=True, reason="inserted")
