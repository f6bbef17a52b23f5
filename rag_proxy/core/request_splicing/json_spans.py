"""
Span-recording JSON scanner.

Parses a JSON document into a tree of nodes that remember where each value
starts and ends in the original text, so callers can edit one value in place
while every other character stays exactly as the client sent it. String
decoding is delegated to the standard library scanner, so escapes are handled
exactly as json.loads handles them.

Offsets are indexes into the decoded str, end exclusive.
"""

import re
from dataclasses import dataclass, field
from json.decoder import scanstring
from typing import Any

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_NUMBER = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][-+]?[0-9]+)?")
_LITERALS = {"true": True, "false": False, "null": None}


class JSONSpanError(ValueError):
    """Malformed JSON text."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at char {position}")
        self.position = position


@dataclass
class Member:
    """Object member: key text plus its value node."""

    key: str
    key_start: int
    value: "Node"


@dataclass
class Node:
    """JSON value with its position in the source text."""

    kind: str
    start: int
    end: int
    value: Any = None
    members: list[Member] = field(default_factory=list)
    items: list["Node"] = field(default_factory=list)

    def get(self, key: str) -> "Node | None":
        """Value of an object member; the last one wins on duplicate keys."""
        for member in reversed(self.members):
            if member.key == key:
                return member.value
        return None

    @property
    def is_string(self) -> bool:
        return self.kind == "string"


def parse_spans(text: str) -> Node:
    """
    Parse a complete JSON document.

    Raises:
        JSONSpanError: On malformed input, trailing data or excessive nesting
    """
    try:
        node, end = _scan_value(text, _skip(text, 0))
    except RecursionError:
        raise JSONSpanError("Document nested too deeply", 0) from None
    end = _skip(text, end)
    if end != len(text):
        raise JSONSpanError("Extra data", end)
    return node


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _scan_value(text: str, pos: int) -> tuple[Node, int]:
    if pos >= len(text):
        raise JSONSpanError("Expecting value", pos)
    char = text[pos]

    if char == '"':
        return _scan_string(text, pos)
    if char == "{":
        return _scan_object(text, pos)
    if char == "[":
        return _scan_array(text, pos)

    for literal, value in _LITERALS.items():
        if text.startswith(literal, pos):
            end = pos + len(literal)
            return Node(kind=literal, start=pos, end=end, value=value), end

    match = _NUMBER.match(text, pos)
    if match and match.end() > pos:
        raw = match.group()
        value = float(raw) if any(c in raw for c in ".eE") else int(raw)
        return Node(kind="number", start=pos, end=match.end(), value=value), match.end()

    raise JSONSpanError("Expecting value", pos)


def _scan_string(text: str, pos: int) -> tuple[Node, int]:
    try:
        value, end = scanstring(text, pos + 1, True)
    except ValueError as e:
        raise JSONSpanError(f"Invalid string: {e}", pos) from None
    return Node(kind="string", start=pos, end=end, value=value), end


def _scan_object(text: str, pos: int) -> tuple[Node, int]:
    node = Node(kind="object", start=pos, end=pos)
    pos = _skip(text, pos + 1)
    if text.startswith("}", pos):
        node.end = pos + 1
        return node, node.end

    while True:
        if not text.startswith('"', pos):
            raise JSONSpanError("Expecting property name enclosed in double quotes", pos)
        key, pos_after_key = _scan_string(text, pos)
        pos = _skip(text, pos_after_key)
        if not text.startswith(":", pos):
            raise JSONSpanError("Expecting ':' delimiter", pos)
        value, pos = _scan_value(text, _skip(text, pos + 1))
        node.members.append(Member(key=key.value, key_start=key.start, value=value))

        pos = _skip(text, pos)
        if text.startswith("}", pos):
            node.end = pos + 1
            return node, node.end
        if not text.startswith(",", pos):
            raise JSONSpanError("Expecting ',' delimiter", pos)
        pos = _skip(text, pos + 1)


def _scan_array(text: str, pos: int) -> tuple[Node, int]:
    node = Node(kind="array", start=pos, end=pos)
    pos = _skip(text, pos + 1)
    if text.startswith("]", pos):
        node.end = pos + 1
        return node, node.end

    while True:
        item, pos = _scan_value(text, pos)
        node.items.append(item)

        pos = _skip(text, pos)
        if text.startswith("]", pos):
            node.end = pos + 1
            return node, node.end
        if not text.startswith(",", pos):
            raise JSONSpanError("Expecting ',' delimiter", pos)
        pos = _skip(text, pos + 1)
