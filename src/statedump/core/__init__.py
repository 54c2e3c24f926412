"""
Core package aggregator for statedump contracts (grammar, provider, schema, tables, serde, versioning).

## Contracts (single source of truth)
- Grammar — closed Variant/Relation/RowType enums, dialects, the six columns.
- Provider — the ReflectionProvider protocol and the Child tuple.
- Schema — the pydantic DumpRow model with row-level rules.
- Tables — descriptors for the raw dump and its vertex/edge split.
- Serde — decoding of meta cells, including the non-JSON sentinels.
- Versioning/Constants/Errors — SCHEMA_V, IO defaults, typed exceptions.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Type cells are lower-kebab; column names are lower_snake.

## Examples
```python
from statedump.core.grammar import Variant, RowType
RowType.for_variant(Variant.EXECUTION_CONTEXT).value  # 'execution-context'

from statedump.core.schema import DumpRow
DumpRow.from_cells(["1", "kv", "", "", '"y"', "5"]).is_vertex  # False
```
"""
