"""
Decoding helpers for the JSON-like meta cells of a dump.

Meta cells are JSON except for three documented deviations that consumers must
special-case:

- bare ``inf``, ``-inf`` and ``-nan`` tokens for non-finite numbers;
- ``\\xNN`` escapes for bytes that were not valid UTF-8 in the source string.

``decode_cell`` rewrites those deviations into forms the stdlib ``json`` module
accepts (``Infinity``/``NaN`` constants, lone surrogates ``\\udcNN``) and parses
the result. Strings that carried invalid bytes therefore come back as ``str``
with surrogate escapes; ``.encode("utf-8", "surrogateescape")`` recovers the
original bytes.

Notes:
    - Zero-IO; stdlib-only.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .errors import SchemaError

__all__ = [
    "json_loads",
    "decode_cell",
]

# A JSON string literal, or one of the bare non-finite tokens outside strings.
_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|-inf\b|\binf\b|-nan\b|\bnan\b')
# Inside a string literal: an escaped backslash, or a \xNN byte escape.
_BYTE_ESCAPE_RE = re.compile(r"\\\\|\\x([0-9A-Fa-f]{2})")

_CONSTANTS = {"inf": "Infinity", "-inf": "-Infinity", "-nan": "NaN", "nan": "NaN"}


def json_loads(s: str) -> Any:
    """Deserialize a JSON string with the stdlib json module."""
    return json.loads(s)


def _rewrite_string(literal: str) -> str:
    def repl(m: re.Match[str]) -> str:
        if m.group(1) is None:
            return m.group(0)
        return "\\udc" + m.group(1).lower()

    return _BYTE_ESCAPE_RE.sub(repl, literal)


def _rewrite(text: str) -> str:
    def repl(m: re.Match[str]) -> str:
        tok = m.group(0)
        if tok.startswith('"'):
            return _rewrite_string(tok)
        return _CONSTANTS[tok]

    return _TOKEN_RE.sub(repl, text)


def decode_cell(text: str | None) -> Any:
    """
    Decode one ``key_meta``/``val_meta`` cell.

    Args:
        text (str | None): Cell text; empty or None means absent.

    Returns:
        Any: None for empty cells, otherwise the decoded value (str, int, float,
        bool, list or dict).

    Raises:
        SchemaError: If the cell is not decodable even after rewriting.

    Examples:
        >>> decode_cell('"a\\\\nb"')
        'a\\nb'
        >>> decode_cell("inf")
        inf
        >>> decode_cell("[1,\\"b\\"]")
        [1, 'b']
    """
    if text is None or text == "":
        return None
    try:
        return json.loads(_rewrite(text))
    except ValueError as exc:
        raise SchemaError(f"undecodable meta cell {text!r}: {exc}") from exc
