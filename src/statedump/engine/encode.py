"""
Value encoder: renders scalars into the restricted JSON-like text of meta cells.

Encoding rules
- absent (None) → "" (blank cell, distinct from any in-band null marker).
- number → canonical text through the builtin ``int``/``float`` reprs (subclass
  overrides never run); non-finite floats become the bare tokens ``inf``,
  ``-inf`` and ``-nan``. An int past the interpreter's digit limit degrades
  to the string ``"<int: N bits>"``.
- boolean → ``true`` / ``false``.
- string → double-quoted with ``\\"``, ``\\\\``, ``\\b``, ``\\f``, ``\\n``, ``\\r``,
  ``\\t`` escapes and ``\\u00XX`` for remaining code points 0-31.
- bytes → treated as a string: decoded as UTF-8 with ``surrogateescape`` and
  every byte that was not valid UTF-8 written as ``\\xNN``.
- anything else → its human-readable rendering, encoded as a string.

The ``\\xNN`` escape and the non-finite tokens are not valid JSON. That is a
known property of the format, documented for consumers (see
``statedump.core.serde.decode_cell``), not something to repair here.

The encoder never raises.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any

from statedump.core.constants import INF_TOKEN, NAN_TOKEN, NEG_INF_TOKEN
from statedump.core.grammar import Variant

__all__ = [
    "encode",
    "encode_string",
    "encode_number",
    "encode_array",
    "encode_object",
    "scalar_variant",
]

_ESCAPES: dict[str, str] = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}
for _i in range(32):
    _ESCAPES.setdefault(chr(_i), f"\\u{_i:04X}")
del _i

_NEEDS_ESCAPE_RE = re.compile('[\x00-\x1f"\\\\\ud800-\udfff]')


def _escape_char(m: re.Match[str]) -> str:
    ch = m.group(0)
    esc = _ESCAPES.get(ch)
    if esc is not None:
        return esc
    cp = ord(ch)
    if 0xDC80 <= cp <= 0xDCFF:
        # Byte smuggled through surrogateescape: emit it byte-for-byte.
        return f"\\x{cp - 0xDC00:02X}"
    return f"\\u{cp:04X}"


def encode_string(s: str | bytes) -> str:
    """
    Quote and escape a string (``bytes`` are decoded with ``surrogateescape``).

    Examples:
        >>> encode_string('say "hi"\\n')
        '"say \\\\"hi\\\\"\\\\n"'
        >>> encode_string(b"\\xff")
        '"\\\\xFF"'
    """
    if isinstance(s, (bytes, bytearray)):
        s = bytes(s).decode("utf-8", errors="surrogateescape")
    return '"' + _NEEDS_ESCAPE_RE.sub(_escape_char, s) + '"'


def encode_number(n: int | float) -> str:
    """Canonical text for a number; non-finite floats become sentinel tokens."""
    if isinstance(n, float):
        if math.isnan(n):
            return NAN_TOKEN
        if math.isinf(n):
            return INF_TOKEN if math.copysign(1.0, n) > 0 else NEG_INF_TOKEN
        return float.__repr__(n)
    if not isinstance(n, int):
        return encode_string(_render(n))
    try:
        return int.__repr__(n)
    except ValueError:
        # Past the interpreter's int-to-str digit limit.
        return encode_string(f"<int: {int.bit_length(n)} bits>")


def scalar_variant(value: Any) -> Variant | None:
    """
    Infer the scalar variant of a plain Python value.

    Returns None for anything that is not a scalar (bool is checked before int).
    """
    if value is None:
        return Variant.ABSENT
    if isinstance(value, bool):
        return Variant.BOOLEAN
    if isinstance(value, (int, float)):
        return Variant.NUMBER
    if isinstance(value, (str, bytes, bytearray)):
        return Variant.STRING
    return None


def _render(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


def encode(value: Any, variant: Variant | None = None) -> str:
    """
    Encode a value for a meta cell.

    Args:
        value (Any): Value to encode.
        variant (Variant | None): Variant as reported by a provider. When None,
            it is inferred from the Python type.

    Returns:
        str: Cell text. For object variants, ``value`` is expected to be the
        rendering text already (as produced by ``ReflectionProvider.describe``);
        non-text values are rendered with ``str`` first.
    """
    if variant is None:
        variant = scalar_variant(value)
    if value is None or variant is Variant.ABSENT:
        return ""
    if variant is Variant.BOOLEAN:
        return "true" if value else "false"
    if variant is Variant.NUMBER and isinstance(value, (int, float)):
        return encode_number(value)
    if isinstance(value, (str, bytes, bytearray)):
        return encode_string(value)
    return encode_string(_render(value))


def encode_array(items: Iterable[Any]) -> str:
    """
    Encode an inline array such as ``[index,"name"]`` or ``[mask,count]``.

    Absent items render as ``null`` so positions are preserved.
    """
    parts = [encode(item) or "null" for item in items]
    return "[" + ",".join(parts) + "]"


def encode_object(pairs: Iterable[tuple[Any, Any]]) -> str:
    """
    Encode key/value pairs as an object in the given order (never re-sorted).

    Returns "" when there are no pairs.
    """
    parts = [f"{encode_string(_render(k))}:{encode(v) or 'null'}" for k, v in pairs]
    if not parts:
        return ""
    return "{" + ",".join(parts) + "}"
