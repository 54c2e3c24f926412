"""
Custom exceptions for the statedump.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in statedump.io.
- Keep statedump.core as the source of truth for contract/grammar/schema errors
  (see statedump.core.errors).

Source of truth and boundaries
- statedump.core.errors.ProviderContractError and DumpCancelled are raised by the engine.
- statedump.io raises Io* errors for sink/file/export concerns:
  - IoConfigError: invalid settings or an unsupported output target.
  - SinkError: the output could not be opened, written or closed.
  - IoSchemaError: a DataFrame failed validation against statedump.core.tables descriptors.
  - IoWriteError: the atomic Parquet export path failed.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in statedump.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from statedump.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Output target that is neither a path, a writable handle, nor a callable
        - Unknown dialect name
    """


class SinkError(IoError):
    """
    Raised when the row sink fails to open, write or close.

    Notes:
        The underlying OSError is chained as ``__cause__``. The dump halts on the
        first failure; there is no retry.
    """


class IoSchemaError(IoError):
    """
    Raised when a DataFrame fails schema validation against statedump.core.tables descriptors.
    """


class IoWriteError(IoError):
    """
    Raised when a Parquet export fails to complete atomically.

    Notes:
        The write path is tmp parquet → fsync → os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files).
    """
