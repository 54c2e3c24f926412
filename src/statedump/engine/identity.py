"""
Identity registry and traversal frontier for one dump pass.

``IdentityRegistry.resolve`` is simultaneously "get-or-create id" and "enqueue
for processing". Doing both in a single step is what guarantees exactly-once
visitation under arbitrary aliasing and cycles: an object is enqueued exactly
when it receives its id, and never again.

Identity is by reference. Keys are ``id(obj)`` and the registry pins a strong
reference to every registered object, so an address cannot be recycled for a
different object while the pass is running. Visited objects' ``__eq__`` and
``__hash__`` are never called.

Neither class is thread-safe; each dump owns its own instances.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from statedump.core.typing import ObjectId

__all__ = [
    "Frontier",
    "IdentityRegistry",
]


class Frontier:
    """FIFO worklist of discovered-but-unvisited objects."""

    def __init__(self) -> None:
        self._queue: deque[Any] = deque()

    def push(self, obj: Any) -> None:
        self._queue.append(obj)

    def pop(self) -> Any | None:
        """Pop the head, or return None when empty."""
        if not self._queue:
            return None
        return self._queue.popleft()

    def __len__(self) -> int:
        return len(self._queue)


class IdentityRegistry:
    """
    Bijection from object identity to a monotonically increasing integer id.

    Attributes:
        frontier (Frontier): Worklist fed by ``resolve``.

    Examples:
        >>> reg = IdentityRegistry()
        >>> a, b = [], []
        >>> reg.resolve(a), reg.resolve(b), reg.resolve(a), reg.resolve(None)
        (1, 2, 1, 0)
        >>> reg.next() is a
        True
    """

    def __init__(self) -> None:
        self.frontier = Frontier()
        self._ids: dict[int, tuple[Any, ObjectId]] = {}
        self._counter = 0

    def resolve(self, obj: Any) -> ObjectId:
        """
        Return the id of ``obj``, assigning and enqueueing it on first sight.

        Args:
            obj (Any): Object to identify. ``None`` always maps to 0.

        Returns:
            ObjectId: Existing id, or the next counter value (starting at 1).
        """
        if obj is None:
            return ObjectId(0)
        entry = self._ids.get(id(obj))
        if entry is not None:
            return entry[1]
        self.frontier.push(obj)
        self._counter += 1
        oid = ObjectId(self._counter)
        self._ids[id(obj)] = (obj, oid)
        return oid

    def reserve(self, obj: Any, oid: int = 0) -> None:
        """
        Register ``obj`` under a fixed id without enqueueing it.

        Used for the virtual root and for excluded objects, both at id 0.
        """
        self._ids[id(obj)] = (obj, ObjectId(oid))

    def lookup(self, obj: Any) -> ObjectId | None:
        """Id of an already registered object, or None (never assigns)."""
        if obj is None:
            return ObjectId(0)
        entry = self._ids.get(id(obj))
        return None if entry is None else entry[1]

    def next(self) -> Any | None:
        """Pop the frontier head (breadth-first, discovery order)."""
        return self.frontier.pop()

    @property
    def assigned(self) -> int:
        """Number of ids handed out so far (excludes reserved entries)."""
        return self._counter

    def __contains__(self, obj: Any) -> bool:
        return obj is None or id(obj) in self._ids
