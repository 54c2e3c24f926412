"""
Dump orchestration: one call from a root set to a finished row file.

``dump_state`` wires the pieces together for a single pass:

    open_sink(target) → RowEmitter(dialect) → [header] → GraphWalker(provider).walk(roots)

The sink is scoped to the call; on any failure (provider contract violation,
sink error, cancellation) it is released before the exception propagates and
whatever rows were already written stay written.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from statedump.core.provider import ReflectionProvider
from statedump.engine.walker import CancelCheck, GraphWalker
from statedump.io.config import DumpSettings
from statedump.io.emit import RowEmitter
from statedump.io.sink import open_sink

logger = logging.getLogger(__name__)

__all__ = [
    "DumpSummary",
    "dump_state",
]


@dataclass(frozen=True)
class DumpSummary:
    """
    Outcome of a completed dump.

    Attributes:
        rows (int): Data rows written (header excluded).
        vertices (int): Vertex rows written.
        edges (int): Edge rows written.
        objects (int): Ids assigned (equals ``vertices`` for a complete dump).
        path (str | None): Output file for path targets, otherwise None.
        by_type (dict[str, int]): Row counts per ``type`` cell.
    """

    rows: int
    vertices: int
    edges: int
    objects: int
    path: str | None = None
    by_type: dict[str, int] = field(default_factory=dict)


def dump_state(
    target: Any,
    roots: Mapping[str, Any],
    provider: ReflectionProvider,
    *,
    settings: DumpSettings | None = None,
    exclude: Iterable[Any] = (),
    cancel: CancelCheck | None = None,
) -> DumpSummary:
    """
    Dump every object reachable from ``roots`` to ``target``.

    Args:
        target: File path, writable text handle, or print-style callable
            (see statedump.io.sink.open_sink).
        roots (Mapping[str, Any]): Ordered root set; becomes the virtual root (id 0).
        provider (ReflectionProvider): Reflection over the graph.
        settings (DumpSettings | None): Dialect/header/encoding. Defaults to DumpSettings.load().
        exclude (Iterable[Any]): Objects rendered as id 0 and never visited.
        cancel (CancelCheck | None): Callable or threading.Event polled once per
            visited object.

    Returns:
        DumpSummary: Row counters and the output path, if any.

    Raises:
        IoConfigError: Unsupported target.
        SinkError: The output could not be opened, written or closed.
        ProviderContractError: The provider broke its contract.
        DumpCancelled: The cancellation check fired; output is partial.
    """
    settings = settings or DumpSettings.load()
    path = os.fspath(target) if isinstance(target, (str, os.PathLike)) else None
    logger.info(
        "dump started: %d roots, dialect=%s, header=%s, target=%s",
        len(roots), settings.dialect, settings.header, path or type(target).__name__,
    )

    with open_sink(target, settings) as sink:
        emitter = RowEmitter(sink, settings.dialect_enum)
        if settings.header:
            emitter.header()
        walker = GraphWalker(provider, emitter, exclude=exclude, cancel=cancel)
        stats = walker.walk(roots)

    summary = DumpSummary(
        rows=stats.rows,
        vertices=stats.vertices,
        edges=stats.edges,
        objects=walker.registry.assigned,
        path=path,
        by_type=dict(stats.by_type),
    )
    logger.info("dump finished: %d rows (%d vertices, %d edges)", summary.rows, summary.vertices, summary.edges)
    for row_type, n in sorted(summary.by_type.items()):
        logger.debug("  %-18s %d", row_type, n)
    return summary
