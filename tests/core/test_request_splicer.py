"""
Test suite for the request splicer.

Covers context injection into the system message (string and multi-part
content), system message insertion, byte fidelity of untouched fields, the
fingerprint strategy and malformed bodies.

System role: Verification of raw request body rewriting
"""

import json

import pytest

from rag_proxy.core.exceptions import RequestFormatError
from rag_proxy.core.request_splicing import (
    RequestSplicer,
    extract_user_query,
    parse_request_body,
)

BODY = (
    b'{"model": "m", "temperature": 0.70, "foo": {"bar": [1, 2.50e3]},\n'
    b' "messages": [{"role": "system", "content": "You are helpful."},'
    b' {"role": "user", "content": "hi"}]}'
)


@pytest.fixture
def splicer() -> RequestSplicer:
    return RequestSplicer()


# ============================================================================
# Offsets strategy
# ============================================================================


class TestSpliceIntoSystemMessage:
    """Context appended to an existing system message."""

    def test_only_system_text_changes(self, splicer: RequestSplicer) -> None:
        """Should leave every byte outside the system string untouched."""
        result = splicer.splice(BODY, "CTX")

        assert result.modified is True
        assert result.reason == "spliced"
        assert result.body == BODY.replace(
            b'"You are helpful."', b'"You are helpful.\\n\\nCTX"'
        )

    def test_decoded_content(self, splicer: RequestSplicer) -> None:
        """Should produce system text + separator + context."""
        document = json.loads(splicer.splice(BODY, "CTX").body)

        assert document["messages"][0]["content"] == "You are helpful.\n\nCTX"
        assert document["messages"][1] == {"role": "user", "content": "hi"}
        assert document["temperature"] == 0.7
        assert document["foo"] == {"bar": [1, 2500.0]}

    def test_number_formatting_preserved(self, splicer: RequestSplicer) -> None:
        """Should keep 0.70 and 2.50e3 exactly as sent."""
        body = splicer.splice(BODY, "CTX").body

        assert b'"temperature": 0.70' in body
        assert b"2.50e3" in body

    def test_context_is_escaped(self, splicer: RequestSplicer) -> None:
        """Should JSON-escape quotes, backslashes, newlines and control chars."""
        context = 'He said "hi"\\ then\nleft\ttab é \x01'
        document = json.loads(splicer.splice(BODY, context).body)

        assert document["messages"][0]["content"] == "You are helpful.\n\n" + context

    def test_last_system_message_is_used(self, splicer: RequestSplicer) -> None:
        """Should only modify the last system message."""
        body = json.dumps({
            "messages": [
                {"role": "system", "content": "first"},
                {"role": "user", "content": "q"},
                {"role": "system", "content": "second"},
            ]
        }).encode()

        document = json.loads(splicer.splice(body, "CTX").body)

        assert document["messages"][0]["content"] == "first"
        assert document["messages"][2]["content"] == "second\n\nCTX"

    def test_escaped_system_text(self, splicer: RequestSplicer) -> None:
        """Should splice correctly when the client escaped characters."""
        body = b'{"messages": [{"role": "system", "content": "caf\\u00e9 \\"x\\""}]}'

        document = json.loads(splicer.splice(body, "CTX").body)

        assert document["messages"][0]["content"] == 'café "x"\n\nCTX'

    def test_multipart_content_last_text_part(self, splicer: RequestSplicer) -> None:
        """Should append to the last text part of list content."""
        body = json.dumps({
            "messages": [{
                "role": "system",
                "content": [
                    {"type": "text", "text": "one"},
                    {"type": "image_url", "image_url": {"url": "http://x"}},
                    {"type": "text", "text": "two"},
                ],
            }]
        }).encode()

        document = json.loads(splicer.splice(body, "CTX").body)
        parts = document["messages"][0]["content"]

        assert parts[0]["text"] == "one"
        assert parts[2]["text"] == "two\n\nCTX"

    def test_custom_separator(self) -> None:
        """Should use the configured separator."""
        splicer = RequestSplicer(separator=" | ")
        document = json.loads(splicer.splice(BODY, "CTX").body)

        assert document["messages"][0]["content"] == "You are helpful. | CTX"


class TestSystemMessageInsertion:
    """Requests without a system message."""

    def test_inserted_as_first_message(self, splicer: RequestSplicer) -> None:
        """Should insert a system message carrying only the context."""
        body = b'{"model": "m", "messages": [{"role": "user", "content": "hi"}], "n": 1}'

        result = splicer.splice(body, "CTX")
        document = json.loads(result.body)

        assert result.reason == "inserted"
        assert document["messages"] == [
            {"role": "system", "content": "CTX"},
            {"role": "user", "content": "hi"},
        ]
        assert b'{"role": "user", "content": "hi"}], "n": 1}' in result.body

    def test_empty_messages_array(self, splicer: RequestSplicer) -> None:
        """Should produce a one-element messages array."""
        document = json.loads(splicer.splice(b'{"messages": []}', "CTX").body)

        assert document["messages"] == [{"role": "system", "content": "CTX"}]


class TestUnchangedBodies:
    """Cases forwarded byte for byte."""

    def test_empty_context(self, splicer: RequestSplicer) -> None:
        result = splicer.splice(BODY, "")

        assert result.body == BODY
        assert result.modified is False
        assert result.reason == "no_context"

    def test_missing_messages(self, splicer: RequestSplicer) -> None:
        body = b'{"model": "m", "prompt": "hi"}'
        result = splicer.splice(body, "CTX")

        assert result.body == body
        assert result.reason == "no_messages"

    def test_non_text_system_content(self, splicer: RequestSplicer) -> None:
        body = b'{"messages": [{"role": "system", "content": 42}]}'
        result = splicer.splice(body, "CTX")

        assert result.body == body
        assert result.reason == "unsupported_content"


class TestMalformedBodies:
    """Bodies rejected with RequestFormatError (HTTP 400)."""

    @pytest.mark.parametrize(
        "body",
        [b"", b"not json", b'{"messages": [}', b'{"a": 1} trailing', b"\xff\xfe{}"],
    )
    def test_invalid_json(self, splicer: RequestSplicer, body: bytes) -> None:
        with pytest.raises(RequestFormatError):
            splicer.splice(body, "CTX")

    def test_non_object_root(self, splicer: RequestSplicer) -> None:
        with pytest.raises(RequestFormatError):
            splicer.splice(b'[{"role": "system", "content": "x"}]', "CTX")

    def test_parse_request_body_rejects_array(self) -> None:
        with pytest.raises(RequestFormatError) as exc_info:
            parse_request_body(b"[1, 2]")
        assert exc_info.value.status_code == 400

    def test_deeply_nested_body(self, splicer: RequestSplicer) -> None:
        body = b'{"messages": [], "x": ' + b"[" * 100000 + b"]" * 100000 + b"}"

        with pytest.raises(RequestFormatError):
            parse_request_body(body)
        with pytest.raises(RequestFormatError):
            splicer.splice(body, "CTX")


# ============================================================================
# Fingerprint strategy
# ============================================================================


class TestFingerprintStrategy:
    """Locating the system text by its escaped tail."""

    def test_unique_fingerprint_spliced(self) -> None:
        splicer = RequestSplicer(strategy="fingerprint", fingerprint_length=8)
        result = splicer.splice(BODY, "CTX")

        assert result.reason == "spliced"
        assert json.loads(result.body)["messages"][0]["content"] == "You are helpful.\n\nCTX"

    def test_ambiguous_fingerprint_left_unchanged(self) -> None:
        """Should not modify the body when the tail also occurs elsewhere."""
        body = json.dumps({
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Be brief."},
            ]
        }).encode()
        splicer = RequestSplicer(strategy="fingerprint")

        result = splicer.splice(body, "CTX")

        assert result.body == body
        assert result.modified is False
        assert result.reason == "not_located"

    def test_differently_escaped_body_not_located(self) -> None:
        """Should give up when the client escaped the tail differently."""
        body = b'{"messages": [{"role": "system", "content": "caf\\u00e9"}]}'
        splicer = RequestSplicer(strategy="fingerprint")

        result = splicer.splice(body, "CTX")

        assert result.body == body
        assert result.reason == "not_located"

    def test_invalid_configuration(self) -> None:
        with pytest.raises(ValueError):
            RequestSplicer(fingerprint_length=0)
        with pytest.raises(ValueError):
            RequestSplicer(strategy="regex")


# ============================================================================
# Query extraction
# ============================================================================


class TestExtractUserQuery:
    """Question used for retrieval."""

    def test_last_user_message(self) -> None:
        document = {
            "messages": [
                {"role": "user", "content": "first"},
                {"role": "assistant", "content": "answer"},
                {"role": "user", "content": "second"},
            ]
        }
        assert extract_user_query(document) == "second"

    def test_text_parts_joined_by_space(self) -> None:
        document = {
            "messages": [{
                "role": "user",
                "content": [
                    {"type": "text", "text": "What is"},
                    {"type": "image_url", "image_url": {"url": "http://x"}},
                    {"type": "text", "text": "this?"},
                ],
            }]
        }
        assert extract_user_query(document) == "What is this?"

    def test_falls_back_to_last_message(self) -> None:
        document = {"messages": [{"role": "system", "content": "only system"}]}
        assert extract_user_query(document) == "only system"

    def test_no_messages(self) -> None:
        assert extract_user_query({}) == ""
        assert extract_user_query({"messages": "nope"}) == ""
