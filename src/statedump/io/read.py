"""
Read utilities for finished dump files.

Overview
- scan_dump(): Returns a Polars LazyFrame over one dump file.
- read_dump(): Collects a DataFrame, with an optional pre-collect row cap.

Source of truth
- Column names and dtypes come from statedump.core.tables.ROWS_DESC.
- Dialect and header expectations come from statedump.io.config.DumpSettings;
  a reader must be told both, the file does not declare them.
- Row-level rules live in statedump.core.schema; this module performs no
  validation beyond dtype parsing (see statedump.io.validate).

Parsing notes
- Empty cells load as nulls in every column.
- csv: standard double-quote quoting.
- tsv: no quote character; cells are taken verbatim (encoded strings carry
  their own double quotes).
- Meta cells stay text; decode them with statedump.core.serde.decode_cell.

Import DAG discipline
- Depends on stdlib, polars, and statedump.core / statedump.io helpers.
"""

from __future__ import annotations

import codecs
import io
import os
from typing import Any

import polars as pl

from statedump.core.grammar import Dialect
from statedump.core.tables import ROWS_DESC

from .config import DumpSettings
from .errors import IoError, IoSchemaError
from .validate import polars_schema


def _csv_options(settings: DumpSettings) -> dict[str, Any]:
    dialect = settings.dialect_enum
    return {
        "separator": dialect.separator,
        "has_header": settings.header,
        "quote_char": '"' if dialect is Dialect.CSV else None,
        "schema": polars_schema(ROWS_DESC),
    }


def _is_utf8(encoding: str) -> bool:
    return codecs.lookup(encoding).name == "utf-8"


def _empty_frame() -> pl.DataFrame:
    return pl.DataFrame(schema=polars_schema(ROWS_DESC))


def _source(path: str, settings: DumpSettings) -> str | io.BytesIO:
    """Polars parses UTF-8 only; other encodings are transcoded in memory."""
    if _is_utf8(settings.encoding):
        return path
    with open(path, encoding=settings.encoding, newline="") as fh:
        return io.BytesIO(fh.read().encode("utf-8"))


def scan_dump(path: str | os.PathLike[str], settings: DumpSettings | None = None) -> pl.LazyFrame:
    """
    Create a LazyFrame over a dump file.

    Args:
        path (str | os.PathLike[str]): Dump file written by statedump.dump.dump_state.
        settings (DumpSettings | None): Dialect/header/encoding (defaults to DumpSettings()).

    Returns:
        pl.LazyFrame: Six columns typed per ROWS_DESC.

    Raises:
        IoError: If the file does not exist.

    Notes:
        - Only UTF-8 files can be scanned lazily; other encodings are read
          eagerly and wrapped with ``.lazy()``.
    """
    settings = settings or DumpSettings()
    name = os.fspath(path)
    if not os.path.exists(name):
        raise IoError(f"dump file not found: {name!r}")
    if not _is_utf8(settings.encoding) or os.path.getsize(name) == 0:
        return read_dump(name, settings).lazy()
    return pl.scan_csv(name, **_csv_options(settings))


def read_dump(
    path: str | os.PathLike[str],
    settings: DumpSettings | None = None,
    limit: int | None = None,
) -> pl.DataFrame:
    """
    Read a dump file into a DataFrame.

    Args:
        path (str | os.PathLike[str]): Dump file.
        settings (DumpSettings | None): Dialect/header/encoding (defaults to DumpSettings()).
        limit (int | None): Optional row cap.

    Returns:
        pl.DataFrame: Six columns (id, type, key_id, val_id, key_meta, val_meta),
        possibly empty.

    Raises:
        IoError: If the file cannot be opened.
        IoSchemaError: If Polars cannot parse the file with the expected schema
            (wrong dialect, wrong header setting, non-integer ids).
    """
    settings = settings or DumpSettings()
    name = os.fspath(path)
    try:
        if os.path.getsize(name) == 0:
            return _empty_frame()
        source = _source(name, settings)
    except OSError as exc:
        raise IoError(f"cannot read dump file {name!r}: {exc}") from exc

    try:
        df = pl.read_csv(source, n_rows=limit, **_csv_options(settings))
    except pl.exceptions.PolarsError as exc:
        raise IoSchemaError(
            f"cannot parse {name!r} as a {settings.dialect} dump (header={settings.header}): {exc}"
        ) from exc
    return df
