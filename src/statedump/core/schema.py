"""
Pydantic v2 model for one parsed dump row.

Validators normalize the ``type`` cell through grammar helpers and enforce the
row-level rules of the dump format.

Rules enforced by ``DumpRow``
- ``id`` is a non-negative integer; id 0 never labels a vertex row.
- Vertex rows leave ``val_id`` empty; ``key_id`` (default-behavior table) is a
  positive id when present.
- Edge endpoints are scalar-or-reference: ``key_id``/``key_meta`` and
  ``val_id``/``val_meta`` are never both populated, except the key side of a
  ``stack-local`` row, which pairs the frame's callable with ``[depth,slot,name]``.
- Referenced ids are non-negative.

Cross-row rules (ordering, dangling references, which vertex type may own which
edge type) need the whole dump and live in ``statedump.io.validate``.

Examples:
    >>> from statedump.core.schema import DumpRow
    >>> DumpRow(id=1, type="container", val_meta='"table: 0x1"').is_vertex
    True
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import GrammarError, SchemaError
from .grammar import COLUMNS, RowType, row_type_from_value

__all__ = [
    "DumpRow",
]


def _blank_to_none(v: object) -> object:
    if isinstance(v, str) and v == "":
        return None
    return v


class DumpRow(BaseModel):
    """
    One row of a dump, vertex or edge.

    Attributes:
        id (int): Subject id (>= 0).
        type (str): Row type; long edge forms are normalized to short ones.
        key_id (int | None): Vertex: behavior table id. Edge: key endpoint id.
        val_id (int | None): Edge value endpoint id; always empty on vertex rows.
        key_meta (str | None): Vertex: metadata blob. Edge: inline key.
        val_meta (str | None): Vertex: rendered description. Edge: inline value.

    Raises:
        pydantic.ValidationError: Wrapping GrammarError/SchemaError on violations.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int = Field(..., ge=0)
    type: str
    key_id: int | None = Field(default=None, ge=0)
    val_id: int | None = Field(default=None, ge=0)
    key_meta: str | None = None
    val_meta: str | None = None

    @field_validator("key_id", "val_id", "key_meta", "val_meta", mode="before")
    @classmethod
    def _empty_cells_are_none(cls, v: object) -> object:
        return _blank_to_none(v)

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, v: str) -> str:
        try:
            return row_type_from_value(v).value
        except GrammarError as exc:
            raise ValueError(str(exc)) from exc

    @property
    def row_type(self) -> RowType:
        return RowType(self.type)

    @property
    def is_vertex(self) -> bool:
        return self.row_type.is_vertex

    @model_validator(mode="after")
    def _check_combination(self) -> DumpRow:
        rt = self.row_type
        if rt.is_vertex:
            if self.id == 0:
                raise SchemaError("id 0 is reserved for the virtual root and never labels a vertex")
            if self.val_id is not None:
                raise SchemaError(f"vertex row {self.id} must leave val_id empty")
            if self.key_id == 0:
                raise SchemaError(f"vertex row {self.id} references id 0 as behavior table")
            return self

        if self.val_id is not None and self.val_meta is not None:
            raise SchemaError(
                f"{rt.value} edge from {self.id}: value endpoint is both reference and scalar"
            )
        if rt is not RowType.STACK_LOCAL and self.key_id is not None and self.key_meta is not None:
            raise SchemaError(
                f"{rt.value} edge from {self.id}: key endpoint is both reference and scalar"
            )
        return self

    @classmethod
    def from_cells(cls, cells: Sequence[object]) -> DumpRow:
        """Build a row from six cells in COLUMNS order."""
        if len(cells) != len(COLUMNS):
            raise SchemaError(f"expected {len(COLUMNS)} cells, got {len(cells)}")
        return cls(**dict(zip(COLUMNS, cells, strict=True)))
