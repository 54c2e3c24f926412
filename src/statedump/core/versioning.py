"""
Schema version metadata for statedump row formats and table descriptors.

Exposes the canonical schema version (SCHEMA_V) embedded in exported artifacts.
This module is zero-IO.

Notes:
    - Parquet exports embed SCHEMA_V under the ``statedump_schema_version`` key.
    - Table descriptors pin SCHEMA_V.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

SCHEMA_MAJOR_VERSION = 1
SCHEMA_MINOR_VERSION = 0


@dataclass(frozen=True)
class SchemaVersion:
    """
    Immutable semantic version with ISO release date for dump artifacts.

    Attributes:
        major (int): Non-negative major component signalling breaking changes.
        minor (int): Non-negative minor component for additive, non-breaking changes.
        date (str): ISO YYYY-MM-DD release timestamp retained for metadata payloads.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"SchemaVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"SchemaVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(
                f"SchemaVersion date must be ISO YYYY-MM-DD, got {self.date!r}"
            ) from exc

    def tag(self) -> str:
        """Render as ``major.minor@date`` (the form stored in Parquet metadata)."""
        return f"{self.major}.{self.minor}@{self.date}"


SCHEMA_V = SchemaVersion(SCHEMA_MAJOR_VERSION, SCHEMA_MINOR_VERSION, "2026-10-01")
