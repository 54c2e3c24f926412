from __future__ import annotations

import threading

import pytest

from statedump.core.errors import DumpCancelled, ProviderContractError
from statedump.core.grammar import Relation, Variant
from statedump.engine.walker import GraphWalker


def _ids(rows: list[list[str]]) -> list[int]:
    return [int(r[0]) for r in rows]


def _vertices(rows: list[list[str]]) -> list[list[str]]:
    return [r for r in rows if r[1] in {v.value for v in Variant if not v.is_scalar}]


def test_scenario_globals_with_container_and_number(dump_rows, node) -> None:
    a = node(Variant.CONTAINER, "A")
    g = node(Variant.CONTAINER, "G").kv("x", a).kv("y", 5)

    rows = dump_rows({"globals": g})

    assert rows == [
        ["0", "kv", "", "1", '"globals"', ""],
        ["1", "container", "", "", "", '"container: G"'],
        ["1", "kv", "", "2", '"x"', ""],
        ["1", "kv", "", "", '"y"', "5"],
        ["2", "container", "", "", "", '"container: A"'],
    ]


def test_self_cycle_terminates_with_one_vertex(dump_rows, node) -> None:
    a = node(Variant.CONTAINER, "A")
    a.kv("me", a)

    rows = dump_rows({"a": a})

    assert rows[1:] == [
        ["1", "container", "", "", "", '"container: A"'],
        ["1", "kv", "", "1", '"me"', ""],
    ]


def test_aliasing_shares_one_id(dump_rows, node) -> None:
    shared = node(Variant.CONTAINER, "S")
    g = node(Variant.CONTAINER, "G").kv("p", shared).kv("q", shared).kv(shared, shared)

    rows = dump_rows({"g": g})

    edges = [r for r in rows if r[0] == "1" and r[1] == "kv"]
    assert [e[3] for e in edges] == ["2", "2", "2"]
    assert edges[2][2] == "2"  # object key
    assert len([r for r in _vertices(rows) if r[0] == "2"]) == 1


def test_roots_take_lowest_ids_in_root_order(dump_rows, node) -> None:
    inner = node(Variant.CONTAINER, "C")
    a = node(Variant.CONTAINER, "A").kv("c", inner)
    b = node(Variant.CONTAINER, "B")

    rows = dump_rows({"a": a, "b": b, "answer": 42})

    assert rows[:3] == [
        ["0", "kv", "", "1", '"a"', ""],
        ["0", "kv", "", "2", '"b"', ""],
        ["0", "kv", "", "", '"answer"', "42"],
    ]
    by_id = {r[0]: r[5] for r in _vertices(rows)}
    assert by_id == {"1": '"container: A"', "2": '"container: B"', "3": '"container: C"'}


def test_rows_are_grouped_and_non_decreasing(dump_rows, sample_graph) -> None:
    rows = dump_rows(sample_graph)
    ids = _ids(rows)
    assert ids == sorted(ids)
    vertex_ids = _ids(_vertices(rows))
    assert vertex_ids == list(range(1, len(vertex_ids) + 1))
    # each subject's vertex row precedes its edges
    seen: set[int] = set()
    for r in rows:
        oid = int(r[0])
        if r in _vertices(rows):
            seen.add(oid)
        elif oid:
            assert oid in seen


def test_every_referenced_id_gets_a_vertex(dump_rows, sample_graph) -> None:
    rows = dump_rows(sample_graph)
    vertex_ids = set(_ids(_vertices(rows)))
    for r in rows:
        for cell in (r[2], r[3]):
            if cell:
                assert int(cell) in vertex_ids | {0}


def test_children_enumerated_once_per_object(dump_rows, provider, sample_graph) -> None:
    dump_rows(sample_graph)
    assert len(provider.calls) == len(set(provider.calls))


def test_captured_variables_are_indexed_from_one(dump_rows, node) -> None:
    a = node(Variant.CONTAINER, "A")
    f = node(Variant.CALLABLE, "F").capture("b", a).capture("a", 1.5)

    rows = dump_rows({"f": f})

    assert [r for r in rows if r[1] == "captured-variable"] == [
        ["1", "captured-variable", "", "2", '[1,"b"]', ""],
        ["1", "captured-variable", "", "", '[2,"a"]', "1.5"],
    ]


def test_callable_metadata_in_provider_order(dump_rows, node) -> None:
    f = node(Variant.CALLABLE, "F", metadata=[("source", "=[C]"), ("nparams", 2), ("isvararg", True)])

    rows = dump_rows({"f": f})

    assert rows[1] == ["1", "callable", "", "", '{"source":"=[C]","nparams":2,"isvararg":true}', '"callable: F"']


def test_context_with_zero_frames_emits_only_its_vertex(dump_rows, node) -> None:
    t = node(Variant.EXECUTION_CONTEXT, "T", metadata=[("status", "dead")])

    rows = dump_rows({"t": t})

    assert rows[1:] == [["1", "execution-context", "", "", '{"status":"dead"}', '"execution-context: T"']]


def test_hook_and_frames(dump_rows, node) -> None:
    a = node(Variant.CONTAINER, "A")
    h = node(Variant.CALLABLE, "H")
    f = node(Variant.CALLABLE, "F")
    t = node(Variant.EXECUTION_CONTEXT, "T").hook(h, "cr", 0).frame(f, [("n", 3), ("tbl", a)]).frame(h)

    rows = dump_rows({"t": t})

    # t=1, h=2, f=3, a=4
    assert [r for r in rows if r[0] == "1"] == [
        ["1", "execution-context", "", "", "", '"execution-context: T"'],
        ["1", "hook", "2", "", "", '["cr",0]'],
        ["1", "stack-callable", "3", "", "", "1"],
        ["1", "stack-local", "3", "", '[1,1,"n"]', "3"],
        ["1", "stack-local", "3", "4", '[1,2,"tbl"]', ""],
        ["1", "stack-callable", "2", "", "", "2"],
    ]


def test_excluded_frame_is_skipped_but_keeps_its_depth(dump_rows, node) -> None:
    dumper = node(Variant.CALLABLE, "dumper")
    caller = node(Variant.CALLABLE, "caller")
    t = node(Variant.EXECUTION_CONTEXT, "T").frame(dumper, [("secret", 1)]).frame(caller, [("x", 2)])
    g = node(Variant.CONTAINER, "G").kv("t", t).kv("d", dumper)

    rows = dump_rows({"g": g}, exclude=[dumper])

    assert ["1", "kv", "", "0", '"d"', ""] in rows
    ctx = [r for r in rows if r[1].startswith("stack")]
    assert ctx == [
        ["2", "stack-callable", "3", "", "", "2"],
        ["2", "stack-local", "3", "", '[2,1,"x"]', "2"],
    ]
    assert not any('"callable: dumper"' in r for r in rows)


def test_behavior_table_and_attached_value(dump_rows, node) -> None:
    mt = node(Variant.CONTAINER, "MT")
    payload = node(Variant.CONTAINER, "P")
    u = node(Variant.OPAQUE_BLOB, "U", behavior=mt).attach(None).attach(payload)

    rows = dump_rows({"u": u})

    assert rows[1] == ["1", "opaque-blob", "2", "", "", '"opaque-blob: U"']
    assert rows[2] == ["1", "attached-value", "", "3", "", ""]
    assert ["2", "container", "", "", "", '"container: MT"'] in rows


def test_container_without_behavior_table_leaves_cell_empty(dump_rows, node) -> None:
    rows = dump_rows({"c": node(Variant.CONTAINER, "C")})
    assert rows[1][2] == ""


@pytest.mark.parametrize("variant", ["bogus", 17])
def test_unknown_variant_is_fatal(dump_rows, node, variant) -> None:
    g = node(Variant.CONTAINER, "G").kv("bad", node(variant, "X"))
    with pytest.raises(ProviderContractError, match="unknown variant"):
        dump_rows({"g": g})


def test_relation_outside_variant_is_fatal(dump_rows, node) -> None:
    g = node(Variant.CONTAINER, "G").capture("up", 1)
    with pytest.raises(ProviderContractError, match="cannot own"):
        dump_rows({"g": g})


def test_unknown_relation_is_fatal(dump_rows, node) -> None:
    g = node(Variant.CONTAINER, "G").raw("upvalue", "k", 1)
    with pytest.raises(ProviderContractError, match="unknown relation"):
        dump_rows({"g": g})


def test_second_hook_is_fatal(dump_rows, node) -> None:
    h = node(Variant.CALLABLE, "H")
    t = node(Variant.EXECUTION_CONTEXT, "T").hook(h, "c", 0).hook(h, "r", 1)
    with pytest.raises(ProviderContractError, match="more than one hook"):
        dump_rows({"t": t})


def test_second_attached_value_is_fatal(dump_rows, node) -> None:
    u = node(Variant.OPAQUE_BLOB, "U").attach(1).attach(2)
    with pytest.raises(ProviderContractError, match="more than one attached value"):
        dump_rows({"u": u})


def test_scalar_frame_callable_is_fatal(dump_rows, node) -> None:
    t = node(Variant.EXECUTION_CONTEXT, "T").frame("not a function")
    with pytest.raises(ProviderContractError, match="must be an object"):
        dump_rows({"t": t})


def test_relation_labels_may_be_plain_strings(dump_rows, node) -> None:
    g = node(Variant.CONTAINER, "G").raw(Relation.KV.value, "k", True)
    rows = dump_rows({"g": g})
    assert rows[-1] == ["1", "kv", "", "", '"k"', "true"]


def test_cancel_event_aborts_with_partial_count(provider, node) -> None:
    done = threading.Event()
    done.set()
    walker = GraphWalker(provider, lambda cells: None, cancel=done)
    with pytest.raises(DumpCancelled) as exc_info:
        walker.walk({"g": node(Variant.CONTAINER, "G")})
    assert exc_info.value.rows_written == 0


def test_cancel_callable_checked_per_object(provider, node) -> None:
    out: list[tuple[str, ...]] = []
    checks = iter([False, False, False, True])
    chain = node(Variant.CONTAINER, "C3")
    for name in ("C2", "C1"):
        chain = node(Variant.CONTAINER, name).kv("next", chain)
    walker = GraphWalker(provider, out.append, cancel=lambda: next(checks))

    with pytest.raises(DumpCancelled) as exc_info:
        walker.walk({"head": chain})

    # root edge, then C1 (vertex + edge) and C2 (vertex + edge) before the fourth check
    assert exc_info.value.rows_written == len(out) == 5


def test_walker_is_single_use(provider, node) -> None:
    walker = GraphWalker(provider, lambda cells: None)
    walker.walk({})
    with pytest.raises(RuntimeError):
        walker.walk({})


def test_empty_roots_produce_no_rows(dump_rows) -> None:
    assert dump_rows({}) == []


def test_hook_without_callable_is_omitted(dump_rows, node) -> None:
    f = node(Variant.CALLABLE, "F")
    t = node(Variant.EXECUTION_CONTEXT, "T").hook(None, "", 0).frame(f)

    rows = dump_rows({"t": t})

    assert [r[1] for r in rows if r[0] == "1"] == ["execution-context", "stack-callable"]
