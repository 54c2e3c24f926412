"""
statedump IO-facing defaults.

Defines dialect, header and Parquet export defaults consumed by the IO layer.
This module is zero-IO and uses only the Python standard library.

Notes:
    - ``statedump.io.config.DumpSettings`` sources its defaults from here.
    - The non-finite number sentinels are part of the row format, not settings.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_DIALECT",
    "DEFAULT_HEADER",
    "DEFAULT_ENCODING",
    "ROW_GROUP_SIZE",
    "COMPRESSION",
    "INF_TOKEN",
    "NEG_INF_TOKEN",
    "NAN_TOKEN",
]

# Row dialect when none is configured ("csv" or "tsv").
DEFAULT_DIALECT: str = "csv"

# Whether a header row listing the six columns is written first.
DEFAULT_HEADER: bool = False

# Text encoding of dump files. Undecodable bytes are escaped before they reach the file.
DEFAULT_ENCODING: str = "utf-8"

# Target row group size for Parquet exports.
ROW_GROUP_SIZE: int = 128 * 1024

# Default compression codec for Parquet exports.
COMPRESSION: str = "zstd"

# Bare, deliberately non-JSON tokens for non-finite numbers.
INF_TOKEN: str = "inf"
NEG_INF_TOKEN: str = "-inf"
NAN_TOKEN: str = "-nan"
