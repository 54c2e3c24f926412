import polars as pl
import pytest

from statedump.core.grammar import TableName
from statedump.core.tables import ROWS_DESC, VERTICES_DESC
from statedump.io.errors import IoSchemaError
from statedump.io.validate import (
    polars_schema,
    validate_frame_against_descriptor,
    validate_frame_for_table,
)


def _rows(**overrides) -> pl.DataFrame:
    data = {
        "id": [1, 1],
        "type": ["container", "kv"],
        "key_id": [None, None],
        "val_id": [None, 1],
        "key_meta": [None, '"me"'],
        "val_meta": ['"t"', None],
    }
    data.update(overrides)
    return pl.DataFrame(data, schema_overrides={k: v for k, v in polars_schema(ROWS_DESC).items() if k in data})


def test_required_missing_column_raises() -> None:
    df = _rows().drop("type")
    with pytest.raises(IoSchemaError, match="missing required columns"):
        validate_frame_against_descriptor(df, ROWS_DESC)


def test_required_column_with_nulls_raises() -> None:
    df = _rows(type=["container", None])
    with pytest.raises(IoSchemaError, match="empty cells"):
        validate_frame_against_descriptor(df, ROWS_DESC)


def test_scalar_casting_for_id_columns() -> None:
    df = _rows().with_columns(pl.col("id").cast(pl.Int32), pl.col("val_id").cast(pl.Utf8))
    out = validate_frame_against_descriptor(df, ROWS_DESC)
    assert out.schema["id"] == pl.Int64
    assert out.schema["val_id"] == pl.Int64


def test_uncastable_values_raise() -> None:
    df = _rows().with_columns(pl.Series("val_id", [None, "one"]))
    with pytest.raises(IoSchemaError, match="failed to cast"):
        validate_frame_against_descriptor(df, ROWS_DESC)


def test_non_strict_allows_extra_columns() -> None:
    df = _rows().with_columns(pl.lit(1).alias("extra_col"))
    with pytest.raises(IoSchemaError, match="unexpected columns"):
        validate_frame_against_descriptor(df, ROWS_DESC, strict=True)
    assert "extra_col" in validate_frame_against_descriptor(df, ROWS_DESC, strict=False).columns


def test_validate_for_table_by_name() -> None:
    vertices = pl.DataFrame(
        {"id": [1], "type": ["container"], "behavior_id": [None], "metadata": [None], "description": ['"t"']},
        schema=polars_schema(VERTICES_DESC),
    )
    assert validate_frame_for_table(vertices, "vertices").height == 1
    assert validate_frame_for_table(vertices, TableName.VERTICES).height == 1
