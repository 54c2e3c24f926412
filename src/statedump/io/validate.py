"""
Schema validation utilities for statedump.io.

Purpose
- Validate Polars DataFrames against canonical table descriptors from statedump.core.tables.
- Validate a whole dump: per-row rules (statedump.core.schema.DumpRow) plus the
  cross-row rules a single row cannot see.

Checks performed by validate_dump
- Descriptor: required columns present, no extras under strict mode, safe scalar casts.
- Rows: every row passes DumpRow (type vocabulary, id 0, endpoint exclusivity).
- Ordering: subject ids are non-decreasing.
- Identity: each object id labels exactly one vertex row.
- Referential integrity: every referenced id and every edge subject is a vertex or 0.
- Ownership: each edge type hangs off a vertex type that may own it (root 0 owns kv only).

Notes
- Depends on polars, pydantic (through DumpRow) and statedump.core descriptors.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import polars as pl
from pydantic import ValidationError

from statedump.core.grammar import RELATIONS_BY_VARIANT, RowType, TableName, Variant
from statedump.core.schema import DumpRow
from statedump.core.tables import ROWS_DESC, TableDescriptor, get_table

from .errors import IoSchemaError

_DTYPE_MAP: dict[str, object] = {
    "i64": pl.Int64,
    "str": pl.Utf8,
}

# Edge row types each vertex type may own.
_OWNED_EDGES: dict[str, set[str]] = {
    variant.value: {relation.value for relation in relations}
    for variant, relations in RELATIONS_BY_VARIANT.items()
}
_ROOT_EDGES: set[str] = {RowType.KV.value}
_VERTEX_TYPES: list[str] = [v.value for v in (Variant.CONTAINER, Variant.CALLABLE,
                                              Variant.EXECUTION_CONTEXT, Variant.OPAQUE_BLOB)]


def polars_schema(desc: TableDescriptor) -> dict[str, Any]:
    """Polars schema (column -> dtype) for a descriptor, in column order."""
    return {col: _DTYPE_MAP[dtype] for col, dtype in desc.columns.items()}


def _safe_cast(df: pl.DataFrame, col: str, target: object) -> pl.DataFrame:
    try:
        return df.with_columns(pl.col(col).cast(target, strict=True))  # type: ignore[arg-type]
    except Exception as exc:
        raise IoSchemaError(f"failed to cast column {col!r} to {target}: {exc}") from exc


def _ensure_columns_present(df: pl.DataFrame, needed: Iterable[str]) -> None:
    missing = [c for c in needed if c not in df.columns]
    if missing:
        raise IoSchemaError(f"missing required columns: {missing!r}")


def _ensure_no_extra_columns(df: pl.DataFrame, allowed: set[str]) -> None:
    extras = [c for c in df.columns if c not in allowed]
    if extras:
        raise IoSchemaError(f"unexpected columns present: {extras!r} (allowed={sorted(allowed)!r})")


def validate_frame_against_descriptor(
    df: pl.DataFrame,
    desc: TableDescriptor,
    *,
    strict: bool = True,
) -> pl.DataFrame:
    """
    Validate a Polars DataFrame against a TableDescriptor.

    Args:
        df (pl.DataFrame): Frame to validate.
        desc (TableDescriptor): Canonical descriptor from statedump.core.tables.
        strict (bool): Enforce exact column set (no extras) when True.

    Returns:
        pl.DataFrame: Possibly with casts applied for scalar types.

    Raises:
        IoSchemaError: If required columns are missing, extras are present under
            strict mode, required columns hold nulls, or a cast fails.
    """
    required = set(desc.required)
    nullable = set(desc.nullable)
    _ensure_columns_present(df, required)
    if strict:
        _ensure_no_extra_columns(df, required | nullable)

    for col, dtype_name in desc.columns.items():
        if col not in df.columns:
            continue
        expected = _DTYPE_MAP.get(dtype_name)
        if expected is None:  # pragma: no cover - descriptors only use i64/str
            raise IoSchemaError(f"unknown descriptor dtype {dtype_name!r} for column {col!r}")
        if df.schema[col] != expected:
            df = _safe_cast(df, col, expected)
        if col in required and df.get_column(col).null_count() > 0:
            raise IoSchemaError(f"column {col!r} is required but contains empty cells")

    return df


def validate_frame_for_table(
    df: pl.DataFrame,
    table: TableName | str,
    *,
    strict: bool = True,
) -> pl.DataFrame:
    """Validate a DataFrame against the descriptor for a given table name."""
    tname = table.value if isinstance(table, TableName) else str(table)
    return validate_frame_against_descriptor(df, get_table(TableName(tname)), strict=strict)


def _check_rows(df: pl.DataFrame) -> pl.DataFrame:
    normalized: list[str] = []
    for n, row in enumerate(df.iter_rows(named=True), start=1):
        try:
            normalized.append(DumpRow(**row).type)
        except ValidationError as exc:
            raise IoSchemaError(f"row {n} (id={row.get('id')!r}) is invalid: {exc}") from exc
    # Long-form type spellings are folded onto the short ones.
    return df.with_columns(pl.Series("type", normalized, dtype=pl.Utf8))


def _check_order(df: pl.DataFrame) -> None:
    diffs = df.get_column("id").diff().drop_nulls()
    if diffs.len() and diffs.min() < 0:  # type: ignore[operator]
        first = int(diffs.arg_min() or 0) + 2
        raise IoSchemaError(f"rows are not sorted by subject id (first regression at row {first})")


def _check_identity(vertices: pl.DataFrame) -> None:
    dupes = vertices.filter(pl.col("id").is_duplicated()).get_column("id").unique().sort()
    if dupes.len():
        raise IoSchemaError(f"ids labelled by more than one vertex row: {dupes.to_list()[:10]!r}")


def _check_references(df: pl.DataFrame, vertices: pl.DataFrame) -> None:
    known = set(vertices.get_column("id").to_list()) | {0}
    edges = df.filter(~pl.col("type").is_in(_VERTEX_TYPES))
    for col, frame in (("key_id", df), ("val_id", df), ("id", edges)):
        refs = set(frame.get_column(col).drop_nulls().to_list())
        dangling = sorted(refs - known)
        if dangling:
            raise IoSchemaError(f"{col} references ids with no vertex row: {dangling[:10]!r}")


def _check_ownership(df: pl.DataFrame, vertices: pl.DataFrame) -> None:
    owners = vertices.select(pl.col("id"), pl.col("type").alias("owner_type"))
    edges = df.filter(~pl.col("type").is_in(_VERTEX_TYPES)).join(owners, on="id", how="left")
    for row in edges.select("id", "type", "owner_type").unique().iter_rows(named=True):
        allowed = _ROOT_EDGES if row["id"] == 0 else _OWNED_EDGES.get(row["owner_type"], set())
        if row["type"] not in allowed:
            owner = "root" if row["id"] == 0 else f"{row['owner_type']} {row['id']}"
            raise IoSchemaError(f"{owner} cannot own a {row['type']!r} edge")


def validate_dump(df: pl.DataFrame, *, strict: bool = True) -> dict[str, int]:
    """
    Validate a dump frame as produced by statedump.io.read.read_dump.

    Args:
        df (pl.DataFrame): Six-column dump frame.
        strict (bool): Reject extra columns.

    Returns:
        dict[str, int]: {"rows", "vertices", "edges"} counts.

    Raises:
        IoSchemaError: On the first violated rule (see module docstring).
    """
    df = validate_frame_against_descriptor(df, ROWS_DESC, strict=strict)
    df = _check_rows(df)
    _check_order(df)
    vertices = df.filter(pl.col("type").is_in(_VERTEX_TYPES))
    _check_identity(vertices)
    _check_references(df, vertices)
    _check_ownership(df, vertices)
    return {"rows": df.height, "vertices": vertices.height, "edges": df.height - vertices.height}
