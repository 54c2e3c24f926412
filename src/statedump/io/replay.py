"""
Replay a finished dump into an in-memory graph.

Overview
- replay(df) turns the six-column frame into a DumpGraph: one Vertex per
  vertex row and the edge rows grouped by subject id, in file order.
- DumpGraph.rebuild() goes one step further and reconstructs an isomorphic
  object structure (ReplayedObject instances wired by reference, cycles and
  aliasing included) that ReplayProvider can hand straight back to the walker.
  Dumping a rebuilt state reproduces the original rows.

Endpoints
- References decode to Ref(id); inline cells decode via
  statedump.core.serde.decode_cell (so ``-nan`` comes back as a float NaN and
  ``\\xNN`` escapes come back as surrogate-escaped characters).
- Id 0 is the virtual root. In a rebuilt state it is a container whose entries
  are the root set, which also stands in for excluded objects (they render as
  0 in the dump too).

Notes
- Referential integrity is checked here as well as in statedump.io.validate:
  a DumpGraph never holds a Ref to a missing vertex.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, NamedTuple

import polars as pl

from statedump.core.errors import GrammarError, ProviderContractError, SchemaError
from statedump.core.grammar import Relation, RowType, Variant, row_type_from_value
from statedump.core.provider import Child
from statedump.core.serde import decode_cell
from statedump.engine.encode import scalar_variant

logger = logging.getLogger(__name__)

__all__ = [
    "Ref",
    "Vertex",
    "Edge",
    "DumpGraph",
    "ReplayedObject",
    "ReplayedState",
    "ReplayProvider",
    "replay",
]


class Ref(NamedTuple):
    """Reference to an object id (distinguishes ids from inline numbers)."""

    id: int


@dataclass(frozen=True, slots=True)
class Vertex:
    id: int
    type: RowType
    behavior_id: int | None = None
    metadata: dict[str, Any] | None = None
    description: str | None = None


class Edge(NamedTuple):
    """
    One decoded edge row.

    ``key`` and ``value`` are Ref, a decoded scalar, or None. ``meta`` holds the
    positional facts of the row: ``[index, name]`` for captured variables,
    ``[mask, count]`` for hooks, the depth for stack callables and
    ``[depth, slot, name]`` for stack locals.
    """

    subject: int
    type: RowType
    key: Any
    value: Any
    meta: Any = None


def _endpoint(ref: int | None, cell: str | None) -> Any:
    if ref is not None:
        return Ref(int(ref))
    return decode_cell(cell)


def _as_list(meta: Any, size: int, what: str) -> list[Any]:
    if not isinstance(meta, list) or len(meta) != size:
        raise SchemaError(f"{what} meta must be a {size}-item array, got {meta!r}")
    return meta


def _edge(row: dict[str, Any], rt: RowType) -> Edge:
    subject = int(row["id"])
    key_id, val_id = row["key_id"], row["val_id"]
    if rt is RowType.KV:
        return Edge(subject, rt, _endpoint(key_id, row["key_meta"]), _endpoint(val_id, row["val_meta"]))
    if rt is RowType.CAPTURED_VARIABLE:
        meta = _as_list(decode_cell(row["key_meta"]), 2, "captured-variable")
        return Edge(subject, rt, meta[1], _endpoint(val_id, row["val_meta"]), meta)
    if rt is RowType.HOOK:
        meta = _as_list(decode_cell(row["val_meta"]), 2, "hook")
        return Edge(subject, rt, Ref(int(key_id or 0)), tuple(meta), meta)
    if rt is RowType.STACK_CALLABLE:
        return Edge(subject, rt, Ref(int(key_id or 0)), None, decode_cell(row["val_meta"]))
    if rt is RowType.STACK_LOCAL:
        meta = _as_list(decode_cell(row["key_meta"]), 3, "stack-local")
        return Edge(subject, rt, Ref(int(key_id or 0)), _endpoint(val_id, row["val_meta"]), meta)
    return Edge(subject, rt, None, _endpoint(val_id, row["val_meta"]))


def _refs(edge: Edge) -> Iterator[int]:
    for end in (edge.key, edge.value):
        if isinstance(end, Ref):
            yield end.id


class ReplayedObject:
    """
    Stand-in for one dumped object in a rebuilt state.

    Identity-hashed, so rebuilt containers may be keys of other containers
    exactly as the originals were.
    """

    __slots__ = ("id", "type", "description", "metadata", "behavior", "children")

    def __init__(self, vertex: Vertex) -> None:
        self.id = vertex.id
        self.type = vertex.type
        self.description = vertex.description
        self.metadata = vertex.metadata
        self.behavior: ReplayedObject | None = None
        self.children: list[Child] = []

    @property
    def entries(self) -> list[tuple[Any, Any]]:
        """Key/value entries of a container, in dump order."""
        return [(c.key, c.value) for c in self.children if c.relation is Relation.KV]

    def __repr__(self) -> str:
        return f"<replayed {self.type.value} {self.id}>"


@dataclass
class ReplayedState:
    """
    Result of DumpGraph.rebuild().

    Attributes:
        root (ReplayedObject): The virtual root (id 0) as a container.
        roots (dict[str, Any]): Root name -> rebuilt value, in dump order.
        objects (dict[int, ReplayedObject]): Every rebuilt object by id.
    """

    root: ReplayedObject
    roots: dict[str, Any]
    objects: dict[int, ReplayedObject] = field(default_factory=dict)


@dataclass
class DumpGraph:
    """
    Vertices and labelled edges of one dump.

    Attributes:
        vertices (dict[int, Vertex]): Vertex rows by id.
        edges (dict[int, list[Edge]]): Edge rows by subject id, in file order
            (subject 0 holds the root entries).
    """

    vertices: dict[int, Vertex] = field(default_factory=dict)
    edges: dict[int, list[Edge]] = field(default_factory=dict)

    def edges_from(self, oid: int) -> list[Edge]:
        return self.edges.get(oid, [])

    @property
    def root_entries(self) -> list[Edge]:
        return self.edges_from(0)

    def neighbors(self, oid: int) -> list[int]:
        """
        Ids referenced from ``oid`` (behavior table first, then edges), deduplicated
        in first-seen order. References to 0 are not neighbors.
        """
        seen: dict[int, None] = {}
        vertex = self.vertices.get(oid)
        if vertex is not None and vertex.behavior_id:
            seen[vertex.behavior_id] = None
        for edge in self.edges_from(oid):
            for ref in _refs(edge):
                if ref:
                    seen.setdefault(ref, None)
        return list(seen)

    def reachable(self, start: int = 0) -> set[int]:
        """Ids reachable from ``start`` (excluding 0 itself)."""
        found: set[int] = set()
        queue = deque([start])
        while queue:
            for nxt in self.neighbors(queue.popleft()):
                if nxt not in found:
                    found.add(nxt)
                    queue.append(nxt)
        return found

    def rebuild(self) -> ReplayedState:
        """
        Reconstruct an isomorphic object structure.

        Returns:
            ReplayedState: Rebuilt objects plus the root mapping.
        """
        root = ReplayedObject(Vertex(0, RowType.CONTAINER))
        objects: dict[int, ReplayedObject] = {0: root}
        for oid, vertex in self.vertices.items():
            objects[oid] = ReplayedObject(vertex)

        def resolve(end: Any) -> Any:
            return objects[end.id] if isinstance(end, Ref) else end

        for oid, obj in objects.items():
            vertex = self.vertices.get(oid)
            if vertex is not None and vertex.behavior_id is not None:
                obj.behavior = objects[vertex.behavior_id]
            frames: dict[int, list[tuple[Any, Any]]] = {}
            for edge in self.edges_from(oid):
                rt = edge.type
                if rt is RowType.KV:
                    obj.children.append(Child(Relation.KV, resolve(edge.key), resolve(edge.value)))
                elif rt is RowType.CAPTURED_VARIABLE:
                    obj.children.append(Child(Relation.CAPTURED_VARIABLE, edge.key, resolve(edge.value)))
                elif rt is RowType.HOOK:
                    obj.children.append(Child(Relation.HOOK, resolve(edge.key), edge.value))
                elif rt is RowType.STACK_CALLABLE:
                    depth = int(edge.meta)
                    # Frames hidden from the dump still occupied a depth.
                    while len(frames) < depth - 1:
                        frames[len(frames) + 1] = []
                        obj.children.append(Child(Relation.STACK_CALLABLE, None, []))
                    frames[depth] = []
                    obj.children.append(Child(Relation.STACK_CALLABLE, resolve(edge.key), frames[depth]))
                elif rt is RowType.STACK_LOCAL:
                    depth, _slot, name = edge.meta
                    if depth not in frames:
                        raise SchemaError(f"stack-local of {oid} refers to unknown depth {depth}")
                    frames[depth].append((name, resolve(edge.value)))
                elif rt is RowType.ATTACHED_VALUE:
                    obj.children.append(Child(Relation.ATTACHED_VALUE, None, resolve(edge.value)))

        roots = {str(k): v for k, v in root.entries}
        return ReplayedState(root=root, roots=roots, objects=objects)


class ReplayProvider:
    """
    Reflection provider over a rebuilt state.

    Examples:
        >>> from statedump.core.provider import ReflectionProvider
        >>> isinstance(ReplayProvider(), ReflectionProvider)
        True
    """

    def classify(self, obj: Any) -> Variant:
        if isinstance(obj, ReplayedObject):
            return Variant(obj.type.value)
        variant = scalar_variant(obj)
        if variant is None:
            raise ProviderContractError(f"cannot classify replayed value {obj!r}")
        return variant

    def children(self, obj: ReplayedObject) -> Iterable[Child]:
        return obj.children

    def behavior_table(self, obj: ReplayedObject) -> ReplayedObject | None:
        return obj.behavior

    def describe(self, obj: ReplayedObject) -> str | None:
        return obj.description

    def metadata(self, obj: ReplayedObject) -> Iterable[tuple[str, Any]]:
        return list((obj.metadata or {}).items())


def replay(df: pl.DataFrame) -> DumpGraph:
    """
    Build a DumpGraph from a dump frame (see statedump.io.read.read_dump).

    Args:
        df (pl.DataFrame): Six-column dump frame.

    Returns:
        DumpGraph: Vertices and edges in file order.

    Raises:
        SchemaError: On unknown row types, malformed meta cells, duplicate vertex
            rows or references to ids with no vertex row.
    """
    graph = DumpGraph()
    for row in df.iter_rows(named=True):
        try:
            rt = row_type_from_value(row["type"])
        except GrammarError as exc:
            raise SchemaError(str(exc)) from exc
        oid = int(row["id"])
        if rt.is_vertex:
            if oid in graph.vertices or oid == 0:
                raise SchemaError(f"id {oid} cannot label a second vertex row")
            metadata = decode_cell(row["key_meta"])
            graph.vertices[oid] = Vertex(
                id=oid,
                type=rt,
                behavior_id=row["key_id"],
                metadata=metadata if isinstance(metadata, dict) else None,
                description=decode_cell(row["val_meta"]),
            )
        else:
            graph.edges.setdefault(oid, []).append(_edge(row, rt))

    known = set(graph.vertices) | {0}
    for oid, edges in graph.edges.items():
        if oid not in known:
            raise SchemaError(f"edges from id {oid}, which has no vertex row")
        for edge in edges:
            for ref in _refs(edge):
                if ref not in known:
                    raise SchemaError(f"{edge.type.value} edge from {oid} references missing id {ref}")
    for vertex in graph.vertices.values():
        if vertex.behavior_id is not None and vertex.behavior_id not in known:
            raise SchemaError(f"vertex {vertex.id} references missing behavior table {vertex.behavior_id}")

    logger.debug("replayed %d vertices and %d edges", len(graph.vertices),
                 sum(len(e) for e in graph.edges.values()))
    return graph
