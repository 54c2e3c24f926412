"""
statedump.io — Output, reading and export layer for dumps.

## Responsibilities
- Turn the engine's six-cell rows into csv/tsv lines on a caller-chosen target
  (path, open handle, or print-style callable), closing what it opened.
- Read finished dumps back with Polars, validate them against the
  statedump.core descriptors and rules, and replay them into a graph.
- Export a dump as ``vertices``/``edges`` Parquet tables with atomic renames.

## Public API
- DumpSettings — configuration (env > TOML > defaults).
- open_sink, RowEmitter — row output.
- read_dump, scan_dump, validate_dump, replay, export_parquet — consumers.

## Import DAG discipline
- Depends on stdlib, polars/pyarrow/pydantic, statedump.core and (for replay)
  statedump.engine.encode. Does not import statedump.runtime or the CLI.

## Examples
```python
from statedump.io import DumpSettings, read_dump, validate_dump

settings = DumpSettings(dialect="tsv")  # doctest: +SKIP
df = read_dump("state.tsv", settings)  # doctest: +SKIP
validate_dump(df)  # doctest: +SKIP
```

## Notes
- Export write path: tmp parquet → fsync → os.replace(tmp, final) on the same filesystem.
"""

from __future__ import annotations

from .config import DumpSettings
from .emit import RowEmitter, format_row
from .read import read_dump, scan_dump
from .replay import DumpGraph, ReplayProvider, replay
from .sink import open_sink
from .validate import validate_dump
from .write import export_parquet

__all__ = [
    "DumpSettings",
    "RowEmitter",
    "format_row",
    "open_sink",
    "read_dump",
    "scan_dump",
    "validate_dump",
    "replay",
    "DumpGraph",
    "ReplayProvider",
    "export_parquet",
]
