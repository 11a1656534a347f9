"""Helpers for JSON-with-comments config documents.

The standard ``json`` module does the actual parsing. This module strips
``//`` and ``/* */`` comments and trailing commas first, and can locate the
text span of a top-level value so an edited value can be written back without
touching the rest of the document.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Tuple

from .errors import ConfigError

_WHITESPACE = " \t\r\n"


def _skip_string(text: str, i: int) -> int:
    """Return the index just past the string literal starting at ``i``."""
    j = i + 1
    n = len(text)
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == '"':
            return j + 1
        j += 1
    raise ConfigError(f"unterminated string starting at offset {i}")


def _skip_comment(text: str, i: int) -> int:
    """Return the index past a comment starting at ``i``, or ``i`` if none."""
    if text.startswith("//", i):
        j = text.find("\n", i)
        return len(text) if j == -1 else j
    if text.startswith("/*", i):
        j = text.find("*/", i + 2)
        if j == -1:
            raise ConfigError(f"unterminated block comment starting at offset {i}")
        return j + 2
    return i


def _skip_insignificant(text: str, i: int) -> int:
    """Skip whitespace and comments."""
    n = len(text)
    while i < n:
        if text[i] in _WHITESPACE:
            i += 1
            continue
        j = _skip_comment(text, i)
        if j == i:
            break
        i = j
    return i


def strip_comments(text: str) -> str:
    """Strip comments and trailing commas from JSONC content.

    Removes:
    - Single-line comments (// ...)
    - Multi-line comments (/* ... */)
    - Trailing commas before closing brackets/braces

    String literals are left untouched, so URLs like ``https://...`` survive.
    """
    out = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"':
            j = _skip_string(text, i)
            out.append(text[i:j])
            i = j
            continue
        j = _skip_comment(text, i)
        if j != i:
            i = j
            continue
        if c == ",":
            nxt = _skip_insignificant(text, i + 1)
            if nxt < n and text[nxt] in "}]":
                i += 1
                continue
        out.append(c)
        i += 1
    return "".join(out)


def loads(text: str) -> Any:
    """Parse JSONC text.

    Raises:
        ConfigError: If the text is not valid JSON once comments are removed.
    """
    try:
        return json.loads(strip_comments(text))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON: {exc}") from exc


def minimize(text: str) -> str:
    """Return the canonical compact form of a JSONC document."""
    return json.dumps(loads(text), separators=(",", ":"), ensure_ascii=False)


def _skip_value(text: str, i: int) -> int:
    """Return the index just past the JSON value starting at ``i``."""
    n = len(text)
    if i >= n:
        raise ConfigError("unexpected end of document")
    c = text[i]
    if c == '"':
        return _skip_string(text, i)
    if c in "{[":
        depth = 0
        while i < n:
            c = text[i]
            if c == '"':
                i = _skip_string(text, i)
                continue
            j = _skip_comment(text, i)
            if j != i:
                i = j
                continue
            if c in "{[":
                depth += 1
            elif c in "}]":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        raise ConfigError("unbalanced brackets in document")
    while i < n and text[i] not in ",}]" + _WHITESPACE and _skip_comment(text, i) == i:
        i += 1
    return i


def find_value_span(text: str, key: str) -> Optional[Tuple[int, int]]:
    """Locate the value of top-level member ``key``.

    Returns:
        ``(start, end)`` offsets of the value text, or None when the root
        object has no such member. With duplicate keys the last one wins,
        matching ``json.loads``.
    """
    i = _skip_insignificant(text, 0)
    if i >= len(text) or text[i] != "{":
        return None
    i += 1
    found = None
    while True:
        i = _skip_insignificant(text, i)
        if i >= len(text) or text[i] == "}":
            return found
        if text[i] == ",":
            i += 1
            continue
        if text[i] != '"':
            raise ConfigError(f"expected object key at offset {i}")
        key_end = _skip_string(text, i)
        member = json.loads(text[i:key_end])
        i = _skip_insignificant(text, key_end)
        if i >= len(text) or text[i] != ":":
            raise ConfigError(f"expected ':' at offset {i}")
        start = _skip_insignificant(text, i + 1)
        end = _skip_value(text, start)
        if member == key:
            found = (start, end)
        i = end


def render_value(value: Any, text: str, start: int, end: int) -> str:
    """Render ``value`` to replace ``text[start:end]`` in the same style.

    Multi-line originals are re-indented to the column of the member that
    owns them; single-line originals stay on one line.
    """
    original = text[start:end]
    if "\n" not in original:
        if _is_spaced(original):
            return json.dumps(value, ensure_ascii=False)
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    line_start = text.rfind("\n", 0, start) + 1
    line = text[line_start:start]
    indent = line[: len(line) - len(line.lstrip(" \t"))]
    rendered = json.dumps(value, indent=2, ensure_ascii=False)
    return rendered.replace("\n", "\n" + indent)


def _is_spaced(original: str) -> bool:
    """True when a ``:`` or ``,`` outside string literals is followed by a space."""
    i = 0
    n = len(original)
    while i < n:
        c = original[i]
        if c == '"':
            i = _skip_string(original, i)
            continue
        if c in ":," and original.startswith(" ", i + 1):
            return True
        i += 1
    return False
