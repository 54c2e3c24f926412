"""
Core exception types raised by the dump engine, grammar parsing and row validation.

Provides typed exceptions for core-domain failures:
- ProviderContractError when a reflection provider reports something outside the
  closed variant/relation sets. This is a programming error and aborts a dump.
- GrammarError for unknown variant, relation or row-type spellings.
- SchemaError for row-level combination rules checked on finished dumps.
- DumpCancelled when a caller-supplied cancellation check fires mid-dump.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Encoding edge cases (non-finite numbers, invalid UTF-8) are not errors; the
      value encoder degrades them to documented sentinels instead.

Examples:
    >>> from statedump.core.errors import ProviderContractError
    >>> issubclass(ProviderContractError, TypeError)
    True
"""

from __future__ import annotations

__all__ = [
    "ProviderContractError",
    "GrammarError",
    "SchemaError",
    "DumpCancelled",
]


class ProviderContractError(TypeError):
    """Reflection provider reported an unknown variant or an illegal child relation."""


class GrammarError(ValueError):
    """Unknown variant, relation, row type or dialect spelling."""


class SchemaError(ValueError):
    """Row-level validation failure (id ranges, endpoint exclusivity, dangling references)."""


class DumpCancelled(RuntimeError):
    """
    A dump was aborted by its cancellation check.

    Attributes:
        rows_written (int): Rows already handed to the sink; the output is partial.
    """

    def __init__(self, rows_written: int) -> None:
        super().__init__(f"dump cancelled after {rows_written} rows; output is partial")
        self.rows_written = rows_written
