"""
Graph walker: breadth-first traversal that turns an object graph into dump rows.

Overview
- Root objects are resolved first, in root order, so they take the lowest ids.
  The virtual root (id 0) then emits one ``kv`` edge per root entry.
- Each dequeued object is classified, emitted as a vertex row, then expanded
  into edge rows by variant. Children are resolved (id + enqueue) as they are
  met, so output rows are non-decreasing by subject id without buffering.

Row layout (cells in COLUMNS order)
| Row                | key_id          | val_id    | key_meta             | val_meta        |
|--------------------|-----------------|-----------|----------------------|-----------------|
| vertex             | behavior table  |           | metadata blob        | description     |
| kv                 | key ref         | value ref | key scalar           | value scalar    |
| captured-variable  |                 | value ref | [index,"name"]       | value scalar    |
| hook               | hook callable   |           |                      | [mask,count]    |
| stack-callable     | frame callable  |           |                      | depth           |
| stack-local        | frame callable  | value ref | [depth,slot,"name"]  | value scalar    |
| attached-value     |                 | value ref |                      | value scalar    |

Error policy
- A variant outside the closed set, a scalar where an object is required, or a
  relation the variant cannot own raises ProviderContractError and aborts.
- A missing default-behavior table leaves the vertex ``key_id`` cell empty.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from statedump.core.errors import DumpCancelled, ProviderContractError
from statedump.core.grammar import (
    OBJECT_VARIANTS,
    RELATIONS_BY_VARIANT,
    Relation,
    RowType,
    Variant,
)
from statedump.core.provider import Child, ReflectionProvider
from statedump.core.typing import Cells, ObjectId

from .encode import encode, encode_array, encode_number, encode_object
from .identity import IdentityRegistry

__all__ = [
    "GraphWalker",
    "WalkStats",
    "CancelCheck",
]

CancelCheck = Callable[[], bool] | threading.Event


@dataclass(slots=True)
class WalkStats:
    """Counters collected during one walk."""

    rows: int = 0
    vertices: int = 0
    edges: int = 0
    by_type: Counter[str] = field(default_factory=Counter)

    def count(self, row_type: str, vertex: bool) -> None:
        self.rows += 1
        if vertex:
            self.vertices += 1
        else:
            self.edges += 1
        self.by_type[row_type] += 1


def _cancelled(cancel: CancelCheck | None) -> bool:
    if cancel is None:
        return False
    if isinstance(cancel, threading.Event):
        return cancel.is_set()
    return bool(cancel())


def _coerce_variant(v: Any) -> Variant:
    if isinstance(v, Variant):
        return v
    try:
        return Variant(v)
    except ValueError:
        raise ProviderContractError(f"provider reported unknown variant {v!r}") from None


def _coerce_relation(r: Any) -> Relation:
    if isinstance(r, Relation):
        return r
    try:
        return Relation(r)
    except ValueError:
        raise ProviderContractError(f"provider reported unknown relation {r!r}") from None


class GraphWalker:
    """
    Walks the graph reachable from a root mapping and emits six-cell rows.

    Args:
        provider (ReflectionProvider): Read-only reflection over the graph.
        emit (Callable[[Cells], None]): Receives each row as soon as it is built.
        exclude (Iterable[Any]): Objects pinned at id 0 and never visited. Stack
            frames whose callable is excluded are skipped with their locals.
        cancel (CancelCheck | None): Checked at the top of the main loop.

    Notes:
        A walker is single-use: ids are scoped to one ``walk`` call.
    """

    def __init__(
        self,
        provider: ReflectionProvider,
        emit: Callable[[Cells], None],
        *,
        exclude: Iterable[Any] = (),
        cancel: CancelCheck | None = None,
    ) -> None:
        self.provider = provider
        self.registry = IdentityRegistry()
        self.stats = WalkStats()
        self._emit = emit
        self._exclude = list(exclude)
        self._cancel = cancel
        self._used = False

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------
    def walk(self, roots: Mapping[str, Any]) -> WalkStats:
        """
        Dump everything reachable from ``roots``.

        Args:
            roots (Mapping[str, Any]): Named root objects forming the virtual root (id 0).

        Returns:
            WalkStats: Row counters.

        Raises:
            ProviderContractError: On any provider contract violation.
            DumpCancelled: If the cancellation check fires.
        """
        if self._used:
            raise RuntimeError("GraphWalker instances are single-use; create a new walker per dump")
        self._used = True

        self.registry.reserve(roots, 0)
        for obj in self._exclude:
            self.registry.reserve(obj, 0)

        entries = list(roots.items())
        for _name, obj in entries:
            if not self._classify(obj).is_scalar:
                self.registry.resolve(obj)

        self._check_cancel()
        for name, obj in entries:
            self._edge(0, RowType.KV, self._endpoint(name), self._endpoint(obj))

        while True:
            self._check_cancel()
            obj = self.registry.next()
            if obj is None:
                break
            oid = self.registry.lookup(obj)
            variant = self._classify(obj)
            if variant not in OBJECT_VARIANTS:
                raise ProviderContractError(
                    f"object {oid} was enqueued but is now classified as scalar {variant.value!r}"
                )
            self._vertex(oid, obj, variant)
            self._expand(oid, obj, variant)

        return self.stats

    def _check_cancel(self) -> None:
        if _cancelled(self._cancel):
            raise DumpCancelled(self.stats.rows)

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------
    def _classify(self, obj: Any) -> Variant:
        return _coerce_variant(self.provider.classify(obj))

    def _endpoint(self, value: Any) -> tuple[str, str]:
        """Render one endpoint as (id cell, meta cell); exactly one is non-empty (or both empty)."""
        variant = self._classify(value)
        if variant.is_scalar:
            return "", encode(value, variant)
        return str(self.registry.resolve(value)), ""

    def _ref(self, value: Any, what: str) -> ObjectId:
        variant = self._classify(value)
        if variant.is_scalar:
            if value is None:
                return ObjectId(0)
            raise ProviderContractError(f"{what} must be an object, got {variant.value} {value!r}")
        return self.registry.resolve(value)

    def _row(self, cells: Cells, row_type: RowType) -> None:
        self._emit(cells)
        self.stats.count(row_type.value, row_type.is_vertex)

    def _edge(
        self,
        oid: int,
        row_type: RowType,
        key: tuple[str, str],
        val: tuple[str, str],
    ) -> None:
        self._row((str(oid), row_type.value, key[0], val[0], key[1], val[1]), row_type)

    # ------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------
    def _vertex(self, oid: int, obj: Any, variant: Variant) -> None:
        sidecar = ""
        if variant.has_behavior_table:
            table = self.provider.behavior_table(obj)
            if table is not None:
                sidecar = str(self._ref(table, "default-behavior table"))

        meta = ""
        if variant in (Variant.CALLABLE, Variant.EXECUTION_CONTEXT):
            meta = encode_object(self.provider.metadata(obj))

        description = encode(self.provider.describe(obj), Variant.STRING)
        row_type = RowType.for_variant(variant)
        self._row((str(oid), row_type.value, sidecar, "", meta, description), row_type)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------
    def _children(self, oid: int, obj: Any, variant: Variant) -> Iterable[Child]:
        allowed = RELATIONS_BY_VARIANT[variant] - {Relation.STACK_LOCAL}
        for child in self.provider.children(obj):
            relation = _coerce_relation(child[0])
            if relation not in allowed:
                raise ProviderContractError(
                    f"{variant.value} {oid} cannot own a {relation.value!r} child"
                )
            yield Child(relation, child[1], child[2])

    def _expand(self, oid: int, obj: Any, variant: Variant) -> None:
        if variant is Variant.CONTAINER:
            self._expand_container(oid, obj)
        elif variant is Variant.CALLABLE:
            self._expand_callable(oid, obj)
        elif variant is Variant.EXECUTION_CONTEXT:
            self._expand_context(oid, obj)
        elif variant is Variant.OPAQUE_BLOB:
            self._expand_blob(oid, obj)
        else:  # pragma: no cover - guarded by OBJECT_VARIANTS check in walk()
            raise ProviderContractError(f"unknown variant {variant!r}")

    def _expand_container(self, oid: int, obj: Any) -> None:
        for child in self._children(oid, obj, Variant.CONTAINER):
            self._edge(oid, RowType.KV, self._endpoint(child.key), self._endpoint(child.value))

    def _expand_callable(self, oid: int, obj: Any) -> None:
        for index, child in enumerate(self._children(oid, obj, Variant.CALLABLE), start=1):
            key = ("", encode_array([index, child.key]))
            self._edge(oid, RowType.CAPTURED_VARIABLE, key, self._endpoint(child.value))

    def _expand_context(self, oid: int, obj: Any) -> None:
        hooks = 0
        depth = 0
        for child in self._children(oid, obj, Variant.EXECUTION_CONTEXT):
            if child.relation is Relation.HOOK:
                if child.key is None:
                    # No hook function installed.
                    continue
                hooks += 1
                if hooks > 1:
                    raise ProviderContractError(f"execution-context {oid} reported more than one hook")
                hook_id = self._ref(child.key, "hook")
                mask, count = child.value
                self._edge(oid, RowType.HOOK, (str(hook_id), ""), ("", encode_array([mask, count])))
            elif child.relation is Relation.STACK_CALLABLE:
                depth += 1
                self._expand_frame(oid, depth, child.key, child.value)

    def _expand_frame(self, oid: int, depth: int, func: Any, frame_locals: Any) -> None:
        f_id = self._ref(func, "stack frame callable")
        if f_id == 0:
            # Excluded (or unknown) callable: hide the frame and its locals.
            return
        self._edge(oid, RowType.STACK_CALLABLE, (str(f_id), ""), ("", encode_number(depth)))
        for slot, (name, value) in enumerate(frame_locals or (), start=1):
            key = (str(f_id), encode_array([depth, slot, name]))
            self._edge(oid, RowType.STACK_LOCAL, key, self._endpoint(value))

    def _expand_blob(self, oid: int, obj: Any) -> None:
        attached = 0
        for child in self._children(oid, obj, Variant.OPAQUE_BLOB):
            if child.value is None:
                continue
            attached += 1
            if attached > 1:
                raise ProviderContractError(f"opaque-blob {oid} reported more than one attached value")
            self._edge(oid, RowType.ATTACHED_VALUE, ("", ""), self._endpoint(child.value))
