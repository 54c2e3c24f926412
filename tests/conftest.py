from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from statedump.core.grammar import Relation, Variant
from statedump.core.provider import Child
from statedump.dump import dump_state
from statedump.engine.encode import scalar_variant
from statedump.io.config import DumpSettings


class Node:
    """Fabricated graph object: a variant, ordered children and vertex facts."""

    def __init__(
        self,
        variant: Variant | str,
        name: str = "",
        *,
        behavior: Any = None,
        metadata: list[tuple[str, Any]] | None = None,
    ) -> None:
        self.variant = variant
        self.name = name
        self.behavior = behavior
        self.metadata = metadata or []
        self.children: list[tuple[Any, Any, Any]] = []

    def kv(self, key: Any, value: Any) -> Node:
        self.children.append(Child(Relation.KV, key, value))
        return self

    def capture(self, name: str, value: Any) -> Node:
        self.children.append(Child(Relation.CAPTURED_VARIABLE, name, value))
        return self

    def hook(self, func: Any, mask: str, count: int) -> Node:
        self.children.append(Child(Relation.HOOK, func, (mask, count)))
        return self

    def frame(self, func: Any, frame_locals: list[tuple[str, Any]] | None = None) -> Node:
        self.children.append(Child(Relation.STACK_CALLABLE, func, list(frame_locals or [])))
        return self

    def attach(self, value: Any) -> Node:
        self.children.append(Child(Relation.ATTACHED_VALUE, None, value))
        return self

    def raw(self, relation: Any, key: Any, value: Any) -> Node:
        self.children.append((relation, key, value))
        return self

    def __repr__(self) -> str:
        return f"Node({self.variant!r}, {self.name!r})"


class FakeProvider:
    """ReflectionProvider over Node objects and plain Python scalars."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def classify(self, obj: Any) -> Any:
        if isinstance(obj, Node):
            return obj.variant
        variant = scalar_variant(obj)
        if variant is None:
            raise AssertionError(f"fake graph holds a non-scalar plain value: {obj!r}")
        return variant

    def children(self, obj: Node) -> list[Any]:
        self.calls.append(f"children:{obj.name}")
        return list(obj.children)

    def behavior_table(self, obj: Node) -> Any:
        return obj.behavior

    def describe(self, obj: Node) -> str:
        variant = obj.variant.value if isinstance(obj.variant, Variant) else str(obj.variant)
        return f"{variant}: {obj.name}"

    def metadata(self, obj: Node) -> list[tuple[str, Any]]:
        return obj.metadata


@pytest.fixture
def node() -> type[Node]:
    return Node


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def tsv_settings() -> DumpSettings:
    return DumpSettings(dialect="tsv", header=False)


@pytest.fixture
def dump_rows(provider: FakeProvider, tsv_settings: DumpSettings) -> Callable[..., list[list[str]]]:
    """Dump a root mapping through the fake provider; return rows as cell lists."""

    def _dump(roots: Mapping[str, Any], **kwargs: Any) -> list[list[str]]:
        lines: list[str] = []
        dump_state(lines.append, roots, kwargs.pop("provider", provider), settings=tsv_settings, **kwargs)
        return [line.split("\t") for line in lines]

    return _dump


@pytest.fixture
def sample_graph(node: type[Node]) -> dict[str, Any]:
    """
    Small graph touching every variant and relation.

    globals = {x: A, y: 5, f: F, co: T, ud: U}; A = {self: A, [A]: "key is table"};
    F captures b=A, a=1.5; T has a hook (H) and two frames; U carries A.
    """
    a = node(Variant.CONTAINER, "A")
    a.kv("self", a).kv(a, "key is table")
    h = node(Variant.CALLABLE, "H", metadata=[("name", "hook")])
    f = node(Variant.CALLABLE, "F", metadata=[("name", "f"), ("nparams", 2), ("isvararg", False)])
    f.capture("b", a).capture("a", 1.5)
    t = node(Variant.EXECUTION_CONTEXT, "T", metadata=[("status", "suspended")])
    t.hook(h, "cr", 0).frame(f, [("n", 3), ("tbl", a)]).frame(h, [])
    mt = node(Variant.CONTAINER, "MT").kv("__index", a)
    u = node(Variant.OPAQUE_BLOB, "U", behavior=mt).attach(a)
    g = node(Variant.CONTAINER, "G")
    g.kv("x", a).kv("y", 5).kv("f", f).kv("co", t).kv("ud", u)
    return {"globals": g, "registry": node(Variant.CONTAINER, "R").kv(1, t)}
