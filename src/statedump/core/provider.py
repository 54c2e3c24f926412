"""
Reflection provider contract consumed by the dump engine.

The engine never inspects runtime objects itself. Everything it knows about an
object (variant, children, default-behavior table, rendering, metadata) comes
from a provider injected into ``statedump.engine.walker.GraphWalker``, so the
engine can be driven by a live interpreter (``statedump.runtime``) or by a
fabricated graph in tests.

Child shapes per relation
-------------------------
| Relation           | key                          | value                                 |
|--------------------|------------------------------|---------------------------------------|
| kv                 | entry key (scalar or object) | entry value (scalar or object)        |
| captured-variable  | capture name (str)           | captured value                        |
| hook               | hook callable                | ``(mask, count)``                     |
| stack-callable     | the frame's callable         | locals as ``[(name, value), ...]``    |
| attached-value     | ``None``                     | attached value                        |

Notes:
    - Children are consumed in yield order. Capture indices, frame depths and
      local slots are assigned by the engine while it enumerates them.
    - Providers must be read-only toward the graph.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, NamedTuple, Protocol, runtime_checkable

from .grammar import Relation, Variant

__all__ = [
    "Child",
    "ReflectionProvider",
]


class Child(NamedTuple):
    """One child reference reported by a provider."""

    relation: Relation
    key: Any
    value: Any


@runtime_checkable
class ReflectionProvider(Protocol):
    """Passive, read-only view over a runtime object graph."""

    def classify(self, obj: Any) -> Variant:
        """Return the dynamic variant of ``obj`` (scalar variants included)."""
        ...

    def children(self, obj: Any) -> Iterable[Child]:
        """Enumerate the child references of an object variant."""
        ...

    def behavior_table(self, obj: Any) -> Any | None:
        """Default-behavior table of a container or opaque-blob, or None."""
        ...

    def describe(self, obj: Any) -> str:
        """Human-readable rendering; used only in descriptive cells."""
        ...

    def metadata(self, obj: Any) -> Iterable[tuple[str, Any]]:
        """Variant-specific facts in provider order (callables, execution contexts)."""
        ...
