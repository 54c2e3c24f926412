"""
statedump.engine — Identity registry, value encoder and graph walker.

## Responsibilities
- ``identity``: identity → integer id bijection and the FIFO frontier.
- ``encode``: restricted JSON-like rendering of scalars with documented sentinels.
- ``walker``: variant dispatch, vertex and edge row construction.

## Import DAG discipline
- Depends only on stdlib and statedump.core. Zero-IO: rows are handed to an
  ``emit`` callable supplied by statedump.io.
"""

from __future__ import annotations

from .encode import encode, encode_array, encode_object
from .identity import Frontier, IdentityRegistry
from .walker import GraphWalker, WalkStats

__all__ = [
    "encode",
    "encode_array",
    "encode_object",
    "Frontier",
    "IdentityRegistry",
    "GraphWalker",
    "WalkStats",
]
