"""
Filesystem helpers for statedump.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used by
  the Parquet export: directory creation, fsync, atomic renames and cleanup.
- Establish clear semantics for the atomic write path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem.
- All helpers are synchronous.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Args:
        path (str): Directory path to create.
        exist_ok (bool): Do not error if the directory already exists.
    """
    os.makedirs(path, exist_ok=exist_ok)


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Args:
        path (str): Path to an already-written file.

    Notes:
        Useful when a library wrote to a path directly (e.g., pyarrow.parquet.write_table),
        and you want to ensure data hits the disk before an atomic rename operation.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Notes:
        Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
        Callers must ensure tmp and final are placed under the same mount/volume.
    """
    os.replace(src, dst)


def remove_quietly(path: str) -> None:
    """Best-effort removal of a leftover temporary file."""
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as exc:
        logger.warning("could not remove temporary file %s: %s", path, exc)
