from __future__ import annotations

import math
from pathlib import Path

import polars as pl
import pytest

from statedump.core.errors import SchemaError
from statedump.core.grammar import RowType, Variant
from statedump.dump import dump_state
from statedump.io.config import DumpSettings
from statedump.io.read import read_dump
from statedump.io.replay import Ref, ReplayedObject, ReplayProvider, replay


def _dump_frame(tmp_path: Path, roots, provider, settings: DumpSettings, **kwargs) -> tuple[pl.DataFrame, list[str]]:
    out = tmp_path / f"dump.{settings.dialect}"
    dump_state(str(out), roots, provider, settings=settings, **kwargs)
    return read_dump(out, settings), out.read_text().splitlines()


def test_vertices_and_edges(tmp_path: Path, provider, sample_graph) -> None:
    df, _ = _dump_frame(tmp_path, sample_graph, provider, DumpSettings(dialect="tsv"))
    graph = replay(df)

    g = graph.vertices[1]
    assert g.type is RowType.CONTAINER
    assert g.description == "container: G"
    assert [e.key for e in graph.root_entries] == ["globals", "registry"]
    assert [e.value for e in graph.root_entries] == [Ref(1), Ref(2)]

    kinds = {v.description: v.id for v in graph.vertices.values()}
    f_edges = graph.edges_from(kinds["callable: F"])
    assert [(e.key, e.meta) for e in f_edges] == [("b", [1, "b"]), ("a", [2, "a"])]
    assert f_edges[1].value == 1.5
    assert graph.vertices[kinds["callable: F"]].metadata == {"name": "f", "nparams": 2, "isvararg": False}

    u = graph.vertices[kinds["opaque-blob: U"]]
    assert u.behavior_id == kinds["container: MT"]


def test_neighbors_and_reachability(tmp_path: Path, provider, sample_graph) -> None:
    df, _ = _dump_frame(tmp_path, sample_graph, provider, DumpSettings(dialect="tsv"))
    graph = replay(df)

    assert graph.neighbors(0) == [1, 2]
    assert graph.reachable() == set(graph.vertices)
    kinds = {v.description: v.id for v in graph.vertices.values()}
    a = kinds["container: A"]
    assert graph.neighbors(a) == [a]
    assert graph.reachable(a) == {a}


@pytest.mark.parametrize("dialect", ["csv", "tsv"])
def test_rebuilt_state_dumps_identically(tmp_path: Path, provider, sample_graph, dialect: str) -> None:
    settings = DumpSettings(dialect=dialect, header=True)
    df, original = _dump_frame(tmp_path, sample_graph, provider, settings)

    state = replay(df).rebuild()
    again: list[str] = []
    dump_state(again.append, state.roots, ReplayProvider(), settings=settings, exclude=[state.root])

    assert again == original


def test_rebuild_preserves_cycles_and_aliasing(tmp_path: Path, provider, sample_graph) -> None:
    df, _ = _dump_frame(tmp_path, sample_graph, provider, DumpSettings(dialect="tsv"))
    state = replay(df).rebuild()

    g = state.roots["globals"]
    entries = dict((k, v) for k, v in g.entries if isinstance(k, str))
    a = entries["x"]
    assert isinstance(a, ReplayedObject)
    assert a.entries[0] == ("self", a)
    assert a.entries[1] == (a, "key is table")
    assert entries["y"] == 5
    # the suspended context's first frame local "tbl" is the same rebuilt A
    frame_locals = entries["co"].children[1].value
    assert frame_locals == [("n", 3), ("tbl", a)]


def test_excluded_objects_round_trip(tmp_path: Path, provider, node) -> None:
    hidden = node(Variant.CALLABLE, "hidden")
    caller = node(Variant.CALLABLE, "caller")
    t = node(Variant.EXECUTION_CONTEXT, "T").hook(hidden, "l", 3).frame(hidden, [("s", 1)]).frame(caller)
    g = node(Variant.CONTAINER, "G").kv("t", t).kv("h", hidden).kv("nan", math.nan).kv("bytes", b"\xff")
    settings = DumpSettings(dialect="tsv")
    df, original = _dump_frame(tmp_path, {"g": g}, provider, settings, exclude=[hidden])

    state = replay(df).rebuild()
    again: list[str] = []
    dump_state(again.append, state.roots, ReplayProvider(), settings=settings, exclude=[state.root])

    assert again == original


def test_dangling_reference_raises(tmp_path: Path) -> None:
    df = pl.DataFrame(
        {"id": [0], "type": ["kv"], "key_id": [None], "val_id": [5], "key_meta": ['"g"'], "val_meta": [None]},
        schema_overrides={"key_id": pl.Int64, "val_meta": pl.Utf8},
    )
    with pytest.raises(SchemaError, match="missing id 5"):
        replay(df)


def test_unknown_type_raises() -> None:
    df = pl.DataFrame(
        {"id": [1], "type": ["userdata"], "key_id": [None], "val_id": [None], "key_meta": [None], "val_meta": [None]},
        schema_overrides={"key_id": pl.Int64, "val_id": pl.Int64, "key_meta": pl.Utf8, "val_meta": pl.Utf8},
    )
    with pytest.raises(SchemaError, match="unknown row type"):
        replay(df)
