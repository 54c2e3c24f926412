from statedump.engine.identity import Frontier, IdentityRegistry


class Touchy:
    """Raises if the registry ever compares or hashes it."""

    def __eq__(self, other):
        raise AssertionError("__eq__ called")

    def __hash__(self):
        raise AssertionError("__hash__ called")


def test_resolve_assigns_once_and_enqueues_once() -> None:
    reg = IdentityRegistry()
    a, b = [], []
    assert reg.resolve(a) == 1
    assert reg.resolve(b) == 2
    assert reg.resolve(a) == 1
    assert len(reg.frontier) == 2
    assert reg.assigned == 2
    assert reg.next() is a
    assert reg.next() is b
    assert reg.next() is None


def test_equal_but_distinct_objects_get_distinct_ids() -> None:
    reg = IdentityRegistry()
    assert reg.resolve({}) != reg.resolve({})


def test_identity_never_uses_eq_or_hash() -> None:
    reg = IdentityRegistry()
    t = Touchy()
    assert reg.resolve(t) == reg.resolve(t) == 1
    assert t in reg


def test_none_is_zero() -> None:
    reg = IdentityRegistry()
    assert reg.resolve(None) == 0
    assert reg.lookup(None) == 0
    assert reg.assigned == 0


def test_reserved_objects_resolve_to_zero_without_enqueue() -> None:
    reg = IdentityRegistry()
    hidden = object()
    reg.reserve(hidden, 0)
    assert reg.resolve(hidden) == 0
    assert len(reg.frontier) == 0
    assert reg.lookup(object()) is None


def test_frontier_is_fifo() -> None:
    f = Frontier()
    for i in range(3):
        f.push(i)
    assert [f.pop(), f.pop(), f.pop(), f.pop()] == [0, 1, 2, None]
