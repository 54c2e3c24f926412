"""
Canonical statedump grammar: variants, relations, row types, dialects and columns.

Defines the closed vocabularies that every other layer refers to, plus zero-IO
helpers used to classify and normalize them.

Responsibilities
- Define the closed ``Variant`` set reported by reflection providers, with the
  capability queries the walker dispatches on (scalar?, default-behavior table?).
- Define the ``Relation`` labels an edge row may carry and the ``RowType``
  vocabulary of the ``type`` column (vertex types + edge types).
- Pin the six output columns and the two row dialects.

Design principles
-----------------
1) Closed sets only:
   - Anything a provider reports outside ``Variant`` is a contract violation,
     never a skip (see ``statedump.core.errors.ProviderContractError``).
2) Serialized values are lower-kebab (``execution-context``), matching the
   ``type`` column of the dump.
3) Edge type cells use the short relation labels (``kv``, ``hook``); the long
   forms ``key-value-pair`` and ``debug-hook`` are accepted when parsing.

Variant-to-relation mapping
---------------------------
| Variant             | Relations it may own                              |
|---------------------|---------------------------------------------------|
| container           | kv                                                |
| callable            | captured-variable                                 |
| execution-context   | hook, stack-callable, stack-local                 |
| opaque-blob         | attached-value                                    |

Examples
--------
>>> from statedump.core.grammar import Variant, row_type_from_value, RowType
>>> Variant.CONTAINER.has_behavior_table
True
>>> Variant.NUMBER.is_scalar
True
>>> row_type_from_value("key-value-pair") is RowType.KV
True
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from typing import Final

from .errors import GrammarError

__all__ = [
    "Variant",
    "Relation",
    "RowType",
    "Dialect",
    "TableName",
    "COLUMNS",
    "SCALAR_VARIANTS",
    "OBJECT_VARIANTS",
    "RELATIONS_BY_VARIANT",
    "is_lower_kebab",
    "variant_from_value",
    "relation_from_value",
    "row_type_from_value",
    "dialect_from_value",
    "ensure_all_enum_values_lower_kebab",
]


# ============================================================================
# VARIANTS
# ============================================================================


class Variant(Enum):
    """
    Closed set of dynamic variants a reflection provider may report.

    Scalar variants are encoded inline and never receive an id. Object variants
    receive an id at first discovery and get exactly one vertex row.
    """

    ABSENT = "absent"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    CONTAINER = "container"
    CALLABLE = "callable"
    EXECUTION_CONTEXT = "execution-context"
    OPAQUE_BLOB = "opaque-blob"

    @property
    def is_scalar(self) -> bool:
        return self in SCALAR_VARIANTS

    @property
    def has_behavior_table(self) -> bool:
        """True for variants that may carry a default-behavior table (container, opaque-blob)."""
        return self in (Variant.CONTAINER, Variant.OPAQUE_BLOB)


SCALAR_VARIANTS: Final[frozenset[Variant]] = frozenset(
    {Variant.ABSENT, Variant.STRING, Variant.NUMBER, Variant.BOOLEAN}
)
OBJECT_VARIANTS: Final[frozenset[Variant]] = frozenset(
    {Variant.CONTAINER, Variant.CALLABLE, Variant.EXECUTION_CONTEXT, Variant.OPAQUE_BLOB}
)


# ============================================================================
# RELATIONS AND ROW TYPES
# ============================================================================


class Relation(Enum):
    """
    Edge relation labels, written verbatim into the ``type`` column of edge rows.

    Notes:
      ``STACK_LOCAL`` is never yielded by providers directly: the locals of a
      ``STACK_CALLABLE`` child expand into one ``stack-local`` row each.
    """

    KV = "kv"
    CAPTURED_VARIABLE = "captured-variable"
    HOOK = "hook"
    STACK_CALLABLE = "stack-callable"
    STACK_LOCAL = "stack-local"
    ATTACHED_VALUE = "attached-value"


RELATIONS_BY_VARIANT: Final[dict[Variant, frozenset[Relation]]] = {
    Variant.CONTAINER: frozenset({Relation.KV}),
    Variant.CALLABLE: frozenset({Relation.CAPTURED_VARIABLE}),
    Variant.EXECUTION_CONTEXT: frozenset(
        {Relation.HOOK, Relation.STACK_CALLABLE, Relation.STACK_LOCAL}
    ),
    Variant.OPAQUE_BLOB: frozenset({Relation.ATTACHED_VALUE}),
}


class RowType(Enum):
    """
    Closed vocabulary of the ``type`` column.

    Vertex rows carry an object variant; edge rows carry a relation label.
    """

    CONTAINER = "container"
    CALLABLE = "callable"
    EXECUTION_CONTEXT = "execution-context"
    OPAQUE_BLOB = "opaque-blob"

    KV = "kv"
    CAPTURED_VARIABLE = "captured-variable"
    HOOK = "hook"
    STACK_CALLABLE = "stack-callable"
    STACK_LOCAL = "stack-local"
    ATTACHED_VALUE = "attached-value"

    @property
    def is_vertex(self) -> bool:
        return self.value in _VERTEX_VALUES

    @property
    def is_edge(self) -> bool:
        return not self.is_vertex

    @classmethod
    def for_variant(cls, variant: Variant) -> RowType:
        if variant not in OBJECT_VARIANTS:
            raise GrammarError(f"scalar variant {variant.value!r} has no vertex row type")
        return cls(variant.value)

    @classmethod
    def for_relation(cls, relation: Relation) -> RowType:
        return cls(relation.value)


_VERTEX_VALUES: Final[frozenset[str]] = frozenset(v.value for v in OBJECT_VARIANTS)

# Long-form spellings accepted by readers.
_ROW_TYPE_ALIASES: Final[dict[str, str]] = {
    "key-value-pair": "kv",
    "debug-hook": "hook",
}


class Dialect(Enum):
    """Row dialects understood by the emitter and the reader."""

    CSV = "csv"
    TSV = "tsv"

    @property
    def separator(self) -> str:
        return "," if self is Dialect.CSV else "\t"


class TableName(Enum):
    """Canonical table names (the raw dump plus its vertex/edge split)."""

    ROWS = "rows"
    VERTICES = "vertices"
    EDGES = "edges"


# Fixed column order of every dump row.
COLUMNS: Final[tuple[str, ...]] = ("id", "type", "key_id", "val_id", "key_meta", "val_meta")


# ============================================================================
# Helpers & Validators (zero I/O)
# ============================================================================

_LOWER_KEBAB_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_lower_kebab(value: str) -> bool:
    """
    Check whether a string is lower-kebab.

    Examples:
      >>> is_lower_kebab("stack-local")
      True
      >>> is_lower_kebab("StackLocal")
      False
    """
    return bool(_LOWER_KEBAB_RE.match(value or ""))


def variant_from_value(s: str) -> Variant:
    """
    Parse a serialized variant.

    Raises:
      GrammarError: If ``s`` is not a known variant.
    """
    try:
        return Variant(s)
    except ValueError as exc:
        raise GrammarError(f"unknown variant {s!r}") from exc


def relation_from_value(s: str) -> Relation:
    """
    Parse a serialized relation label, accepting the long forms.

    Raises:
      GrammarError: If ``s`` is not a known relation.
    """
    try:
        return Relation(_ROW_TYPE_ALIASES.get(s, s))
    except ValueError as exc:
        raise GrammarError(f"unknown relation {s!r}") from exc


def row_type_from_value(s: str) -> RowType:
    """
    Parse a ``type`` cell, accepting the long edge forms (``key-value-pair``, ``debug-hook``).

    Raises:
      GrammarError: If ``s`` is outside the closed vocabulary.
    """
    key = (s or "").strip().lower()
    try:
        return RowType(_ROW_TYPE_ALIASES.get(key, key))
    except ValueError as exc:
        raise GrammarError(f"unknown row type {s!r}") from exc


def dialect_from_value(s: str) -> Dialect:
    """Parse a dialect name case-insensitively (``csv`` or ``tsv``)."""
    try:
        return Dialect((s or "").strip().lower())
    except ValueError as exc:
        raise GrammarError(f"dialect must be one of {[d.value for d in Dialect]} (got {s!r})") from exc


def ensure_all_enum_values_lower_kebab(enums: Iterable[type[Enum]]) -> None:
    """
    Assert that every enum member's value is lower-kebab.

    Raises:
      AssertionError: If any enum member has a non-conforming value.
    """
    for E in enums:
        for m in E:
            if not is_lower_kebab(m.value):
                raise AssertionError(f"{E.__name__}.{m.name} has non-lower-kebab value: {m.value!r}")
