"""
Row emitter: formats six-cell rows into a dialect and writes them via a sink.

Dialects
- tsv: cells joined by TAB, written verbatim.
- csv: embedded double quotes doubled, every non-empty cell wrapped in double
  quotes, cells joined by commas. Empty cells stay bare so readers see nulls.

Encoded cells never contain raw TAB, CR or LF (the value encoder escapes
them), so each row is a single, independently parseable line.
"""

from __future__ import annotations

from collections.abc import Sequence

from statedump.core.grammar import COLUMNS, Dialect

from .sink import RowSink

__all__ = [
    "format_row",
    "RowEmitter",
]


def _csv_cell(cell: str) -> str:
    if cell == "":
        return ""
    return '"' + cell.replace('"', '""') + '"'


def format_row(cells: Sequence[str], dialect: Dialect) -> str:
    """
    Render one row in the given dialect.

    Examples:
        >>> format_row(["1", "kv", "", "", '"y"', "5"], Dialect.TSV)
        '1\\tkv\\t\\t\\t"y"\\t5'
        >>> format_row(["1", "container", "", "", "", ""], Dialect.CSV)
        '"1","container",,,,'
    """
    if dialect is Dialect.TSV:
        return "\t".join(cells)
    return ",".join(_csv_cell(c) for c in cells)


class RowEmitter:
    """
    Writes rows to a sink, one sink call per row.

    Args:
        sink (RowSink): Destination.
        dialect (Dialect): Row dialect.

    Notes:
        Instances are callables so they can be passed as the walker's ``emit``.
    """

    def __init__(self, sink: RowSink, dialect: Dialect = Dialect.CSV) -> None:
        self.sink = sink
        self.dialect = dialect
        self.rows = 0

    def header(self) -> None:
        """Write the header row listing the six fixed column names."""
        self.sink.write_line(format_row(COLUMNS, self.dialect))

    def emit(self, cells: Sequence[str]) -> None:
        if len(cells) != len(COLUMNS):
            raise ValueError(f"row must have {len(COLUMNS)} cells, got {len(cells)}")
        self.sink.write_line(format_row(cells, self.dialect))
        self.rows += 1

    __call__ = emit
