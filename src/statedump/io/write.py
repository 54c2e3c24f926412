"""
Parquet export for finished dumps.

Overview
- Splits a dump frame into the canonical ``vertices`` and ``edges`` tables
  (statedump.core.tables.VERTICES_DESC / EDGES_DESC).
- Validates each table against its descriptor (source of truth).
- Writes each table with atomic tmp → fsync → rename and embeds schema
  version / table name metadata.

Source of truth
- Canonical table names: statedump.core.grammar.TableName.
- Table descriptors: statedump.core.tables.
- Schema version metadata: statedump.core.versioning.SCHEMA_V (embedded in Parquet key-value metadata).
- IO-layer errors: statedump.io.errors.IoSchemaError, IoWriteError.

Notes
- Single-writer semantics (no inter-process locking). Existing files in the
  output directory are replaced.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any

import polars as pl
import pyarrow.parquet as pq

from statedump.core.grammar import OBJECT_VARIANTS, TableName
from statedump.core.tables import get_table
from statedump.core.versioning import SCHEMA_V

from .config import DumpSettings
from .errors import IoWriteError
from .fs import fsync_path, makedirs, remove_quietly, rename_atomic
from .validate import validate_frame_against_descriptor

logger = logging.getLogger(__name__)

__all__ = [
    "split_dump",
    "write_table",
    "export_parquet",
]

_VERTEX_TYPES = sorted(v.value for v in OBJECT_VARIANTS)


def split_dump(df: pl.DataFrame) -> dict[TableName, pl.DataFrame]:
    """
    Split a dump frame into vertex and edge tables.

    Vertex rows are renamed after their vertex meaning (key_id → behavior_id,
    key_meta → metadata, val_meta → description); val_id is dropped because
    vertex rows never populate it.
    """
    is_vertex = pl.col("type").is_in(_VERTEX_TYPES)
    vertices = df.filter(is_vertex).select(
        pl.col("id"),
        pl.col("type"),
        pl.col("key_id").alias("behavior_id"),
        pl.col("key_meta").alias("metadata"),
        pl.col("val_meta").alias("description"),
    )
    edges = df.filter(~is_vertex)
    return {TableName.VERTICES: vertices, TableName.EDGES: edges}


def write_table(
    settings: DumpSettings,
    table: TableName,
    df: pl.DataFrame,
    out_dir: str,
) -> dict[str, Any]:
    """
    Write one canonical table to ``<out_dir>/<table>.parquet`` atomically.

    Args:
        settings (DumpSettings): Compression, row group size and strictness.
        table (TableName): Canonical table name.
        df (pl.DataFrame): Frame to write.
        out_dir (str): Output directory (created if missing).

    Returns:
        dict[str, Any]: {"table", "path", "rows", "bytes"}.

    Raises:
        IoSchemaError: Frame failed validation against its descriptor.
        IoWriteError: Parquet write/fsync/atomic-rename failed.

    Notes:
        - Parquet files embed metadata:
            b"statedump_schema_version" = SCHEMA_V.tag()
            b"statedump_table_name"     = table name
    """
    tname = table.value
    df = validate_frame_against_descriptor(df, get_table(table), strict=settings.strict_schema)

    makedirs(out_dir, exist_ok=True)
    final_path = os.path.join(out_dir, f"{tname}.parquet")
    tmp_path = os.path.join(out_dir, f".{tname}.{uuid.uuid4().hex}.tmp")

    try:
        arrow_table = df.to_arrow()
        meta = dict(arrow_table.schema.metadata or {})
        meta.update(
            {
                b"statedump_schema_version": SCHEMA_V.tag().encode(),
                b"statedump_table_name": tname.encode("utf-8"),
            }
        )
        arrow_table = arrow_table.replace_schema_metadata(meta)
        pq.write_table(
            arrow_table,
            tmp_path,
            compression=settings.compression,
            row_group_size=settings.row_group_size,
        )
        fsync_path(tmp_path)
        rename_atomic(tmp_path, final_path)
    except Exception as exc:
        remove_quietly(tmp_path)
        raise IoWriteError(f"failed to write parquet table {tname!r}: {exc}") from exc

    nbytes = int(os.path.getsize(final_path))
    logger.debug("wrote %s (%d rows, %d bytes)", final_path, df.height, nbytes)
    return {"table": tname, "path": final_path, "rows": df.height, "bytes": nbytes}


def export_parquet(
    df: pl.DataFrame,
    out_dir: str | os.PathLike[str],
    settings: DumpSettings | None = None,
) -> dict[str, Any]:
    """
    Export a dump frame as ``vertices.parquet`` and ``edges.parquet``.

    Args:
        df (pl.DataFrame): Six-column dump frame (see statedump.io.read.read_dump).
        out_dir (str | os.PathLike[str]): Output directory.
        settings (DumpSettings | None): Export settings (defaults to DumpSettings()).

    Returns:
        dict[str, Any]: Summary with keys:
            - out_dir (str)
            - tables (list[dict]): Per-table {"table","path","rows","bytes"}
            - rows (int): Total rows written

    Raises:
        IoSchemaError: A split table failed validation.
        IoWriteError: A Parquet write failed.
    """
    settings = settings or DumpSettings()
    out = os.fspath(out_dir)
    tables = [write_table(settings, name, part, out) for name, part in split_dump(df).items()]
    rows = sum(t["rows"] for t in tables)
    logger.info("exported %d rows to %s", rows, out)
    return {"out_dir": out, "tables": tables, "rows": rows}
