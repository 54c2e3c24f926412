"""
Output sinks for dump rows.

Responsibilities
- Accept the three output targets a dump can be pointed at: a filesystem path,
  an already open text handle, or a print-style callable.
- Scope the output resource: files opened here are closed on every exit path,
  including failures in the middle of a traversal.
- Translate OS-level and encoding failures into statedump.io.errors.SinkError
  with the cause chained.

Notes
- Handles and callables supplied by the caller are never closed here.
- A sink writes one complete line per call; there is no buffering across rows
  beyond what the underlying file object does.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol, TextIO

from .config import DumpSettings
from .errors import IoConfigError, SinkError

logger = logging.getLogger(__name__)

__all__ = [
    "RowSink",
    "HandleSink",
    "CallableSink",
    "open_sink",
]


class RowSink(Protocol):
    """Destination for rendered lines."""

    name: str
    lines: int

    def write_line(self, line: str) -> None: ...


class HandleSink:
    """Writes lines (newline-terminated) to a text handle."""

    def __init__(self, fh: TextIO, name: str) -> None:
        self.fh = fh
        self.name = name
        self.lines = 0

    def write_line(self, line: str) -> None:
        try:
            self.fh.write(line + "\n")
        except (OSError, UnicodeError) as exc:
            raise SinkError(f"write to {self.name} failed after {self.lines} lines: {exc}") from exc
        self.lines += 1


class CallableSink:
    """Hands each line to a print-style callable (no newline appended)."""

    def __init__(self, func: Callable[[str], Any]) -> None:
        self.func = func
        self.name = getattr(func, "__name__", repr(func))
        self.lines = 0

    def write_line(self, line: str) -> None:
        try:
            self.func(line)
        except (OSError, UnicodeError) as exc:
            raise SinkError(f"write to {self.name} failed after {self.lines} lines: {exc}") from exc
        self.lines += 1


@contextmanager
def _open_path(path: str | os.PathLike[str], settings: DumpSettings) -> Iterator[RowSink]:
    name = os.fspath(path)
    try:
        fh = open(name, "w", encoding=settings.encoding, errors="surrogateescape", newline="\n")
    except OSError as exc:
        raise SinkError(f"cannot open {name!r} for writing: {exc}") from exc
    logger.debug("opened %s for writing", name)
    completed = False
    try:
        yield HandleSink(fh, name)
        completed = True
    finally:
        try:
            fh.close()
        except OSError as exc:
            if completed:
                raise SinkError(f"closing {name!r} failed: {exc}") from exc
            logger.error("closing %s failed after an earlier error: %s", name, exc)


@contextmanager
def open_sink(target: Any, settings: DumpSettings | None = None) -> Iterator[RowSink]:
    """
    Open a row sink for a dump target.

    Args:
        target: One of:
            - str / os.PathLike: file path, opened for writing (truncating) and closed on exit;
            - object with ``.write``: text handle, written to but left open;
            - other callable: called once per line, print-style.
        settings (DumpSettings | None): Encoding for paths (defaults to DumpSettings()).

    Yields:
        RowSink: Sink with ``write_line`` and a running ``lines`` count.

    Raises:
        IoConfigError: If ``target`` is none of the supported kinds.
        SinkError: If the file cannot be opened, written or closed.

    Examples:
        >>> lines = []
        >>> with open_sink(lines.append) as sink:
        ...     sink.write_line("a")
        >>> lines
        ['a']
    """
    settings = settings or DumpSettings()
    if isinstance(target, (str, os.PathLike)):
        with _open_path(target, settings) as sink:
            yield sink
    elif hasattr(target, "write"):
        yield HandleSink(target, getattr(target, "name", repr(target)))
    elif callable(target):
        yield CallableSink(target)
    else:
        raise IoConfigError(
            f"dump target must be a file path, a writable handle or a print function (got {type(target).__name__})"
        )
