"""
Lightweight typing aliases used across the engine, IO layer and schemas.

Notes:
    - Intended for annotations only; no runtime logic.

Examples:
    >>> from statedump.core.typing import ObjectId, Cells
    >>> ROOT = ObjectId(0)
    >>> row: Cells = ("1", "container", "", "", "", '"table"')
"""

from __future__ import annotations

from typing import Any, NewType

__all__ = [
    "ObjectId",
    "Cells",
    "MetaPairs",
    "JsonDict",
]

# Integer identity assigned by the registry; 0 is the virtual root / absent.
ObjectId = NewType("ObjectId", int)

# One rendered dump row: exactly six text cells in COLUMNS order.
Cells = tuple[str, str, str, str, str, str]

# Provider metadata in yield order; never re-sorted.
MetaPairs = list[tuple[str, Any]]

JsonDict = dict[str, Any]
