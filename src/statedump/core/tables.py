"""
Frozen table descriptors for statedump datasets.

Notes:
    - ``rows`` is the six-column dump exactly as written by the row emitter.
    - ``vertices`` and ``edges`` are the split produced by the Parquet export;
      the vertex table renames the generic columns after their vertex meaning.
    - Column names are lower_snake; descriptors are zero-IO (stdlib only).
"""

from __future__ import annotations

from dataclasses import dataclass

from .grammar import COLUMNS, TableName
from .versioning import SCHEMA_V, SchemaVersion

__all__ = [
    "TableDescriptor",
    "ROWS_DESC",
    "VERTICES_DESC",
    "EDGES_DESC",
    "get_table",
    "list_tables",
]


@dataclass(frozen=True)
class TableDescriptor:
    """
    Frozen descriptor for a canonical statedump table.

    Attributes:
        name (TableName): Canonical table identifier.
        columns (dict[str, str]): Ordered mapping column_name -> dtype where
            dtype ∈ {"i64","str"}.
        required (list[str]): Columns that must exist and be populated (non-null).
        nullable (list[str]): Columns permitted to contain nulls (empty cells).
        version (SchemaVersion): Schema version pinned to SCHEMA_V.

    Examples:
        >>> from statedump.core.tables import get_table
        >>> from statedump.core.grammar import TableName
        >>> list(get_table(TableName.ROWS).columns)[:2]
        ['id', 'type']
    """

    name: TableName
    columns: dict[str, str]
    required: list[str]
    nullable: list[str]
    version: SchemaVersion


ROWS_DESC = TableDescriptor(
    name=TableName.ROWS,
    columns=dict(zip(COLUMNS, ("i64", "str", "i64", "i64", "str", "str"), strict=True)),
    required=["id", "type"],
    nullable=["key_id", "val_id", "key_meta", "val_meta"],
    version=SCHEMA_V,
)

VERTICES_DESC = TableDescriptor(
    name=TableName.VERTICES,
    columns={
        "id": "i64",
        "type": "str",
        "behavior_id": "i64",
        "metadata": "str",
        "description": "str",
    },
    required=["id", "type"],
    nullable=["behavior_id", "metadata", "description"],
    version=SCHEMA_V,
)

EDGES_DESC = TableDescriptor(
    name=TableName.EDGES,
    columns=dict(ROWS_DESC.columns),
    required=["id", "type"],
    nullable=["key_id", "val_id", "key_meta", "val_meta"],
    version=SCHEMA_V,
)


_TABLES: dict[TableName, TableDescriptor] = {
    ROWS_DESC.name: ROWS_DESC,
    VERTICES_DESC.name: VERTICES_DESC,
    EDGES_DESC.name: EDGES_DESC,
}


def get_table(name: TableName) -> TableDescriptor:
    """Look up a table descriptor by canonical name."""
    return _TABLES[name]


def list_tables() -> list[TableDescriptor]:
    """Return all registered table descriptors in registry order."""
    return list(_TABLES.values())
