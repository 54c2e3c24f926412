"""
Configuration for the statedump.io module.

Defines DumpSettings, a frozen dataclass carrying runtime configuration for row
output and Parquet export. Defaults are sourced from statedump.core.constants
(the single source of truth).

Source of truth
- statedump.core.constants.DEFAULT_DIALECT, DEFAULT_HEADER, DEFAULT_ENCODING,
  ROW_GROUP_SIZE, COMPRESSION
- Dialects from statedump.core.grammar.Dialect

Import DAG discipline
- Depends only on stdlib and statedump.core.
- Does not import the engine or the runtime provider.

Notes
- Loading precedence: env > TOML > defaults. Malformed values are ignored and
  the previous value is kept.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from statedump.core.constants import COMPRESSION as CORE_COMPRESSION
from statedump.core.constants import DEFAULT_DIALECT, DEFAULT_ENCODING, DEFAULT_HEADER
from statedump.core.constants import ROW_GROUP_SIZE as CORE_ROW_GROUP_SIZE
from statedump.core.grammar import Dialect

logger = logging.getLogger(__name__)

DialectName = Literal["csv", "tsv"]
Compression = Literal["zstd", "lz4", "snappy"]

_DIALECTS = {d.value for d in Dialect}
_COMPRESSIONS = {"zstd", "lz4", "snappy"}


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class DumpSettings:
    """
    Runtime settings for dump output and export.

    Attributes:
        dialect (Literal["csv","tsv"]): Row dialect written by the emitter and expected by readers.
        header (bool): Write (and expect) a header row with the six column names.
        encoding (str): Text encoding of dump files opened by path.
        compression (Literal["zstd","lz4","snappy"]): Parquet export codec.
        row_group_size (int): Parquet export row group size.
        strict_schema (bool): Reject extra columns when validating frames.

    Examples:
        >>> from statedump.io.config import DumpSettings
        >>> DumpSettings(dialect="tsv", header=True).dialect_enum.separator == "\\t"
        True
    """

    dialect: DialectName = DEFAULT_DIALECT  # type: ignore[assignment]
    header: bool = DEFAULT_HEADER
    encoding: str = DEFAULT_ENCODING
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    row_group_size: int = CORE_ROW_GROUP_SIZE
    strict_schema: bool = True

    @property
    def dialect_enum(self) -> Dialect:
        return Dialect(self.dialect)

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: DumpSettings, cfg: dict[str, Any] | None) -> DumpSettings:
        """Apply a loose config mapping onto DumpSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "dialect" in cfg and isinstance(cfg["dialect"], str):
            dialect = cfg["dialect"].strip().lower()
            if dialect in _DIALECTS:
                s = replace(s, dialect=dialect)  # type: ignore[arg-type]
            else:
                logger.warning("ignoring unknown dialect %r", cfg["dialect"])

        if "header" in cfg:
            s = replace(s, header=_bool(cfg["header"]))

        if "encoding" in cfg and isinstance(cfg["encoding"], str) and cfg["encoding"].strip():
            s = replace(s, encoding=cfg["encoding"].strip())

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSIONS:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        if "row_group_size" in cfg:
            try:
                s = replace(s, row_group_size=int(cfg["row_group_size"]))
            except (TypeError, ValueError):
                logger.warning("ignoring non-integer row_group_size %r", cfg["row_group_size"])

        if "strict_schema" in cfg:
            s = replace(s, strict_schema=_bool(cfg["strict_schema"]))

        return s

    @classmethod
    def from_env(cls, base: DumpSettings | None = None, prefix: str = "STATEDUMP_") -> DumpSettings:
        """
        Build DumpSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - STATEDUMP_DIALECT ("csv" | "tsv")
            - STATEDUMP_HEADER (1/0/true/false/yes/no/on/off)
            - STATEDUMP_ENCODING
            - STATEDUMP_COMPRESSION ("zstd" | "lz4" | "snappy")
            - STATEDUMP_ROW_GROUP_SIZE
            - STATEDUMP_STRICT_SCHEMA
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in ("dialect", "header", "encoding", "compression", "row_group_size", "strict_schema"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> DumpSettings:
        """
        Build DumpSettings from a TOML file.

        Search order when `path` is None:
            1) ./statedump.toml (with either a [dump] table or top-level keys)
            2) ./pyproject.toml under [tool.statedump]

        Returns defaults if no file is present or readable.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                logger.warning("could not read settings from %s: %s", p, exc)
                return None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "statedump.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("statedump") if isinstance(tool, dict) else None
            elif isinstance(data.get("dump"), dict):
                cfg = data["dump"]
            else:
                cfg = data
            if cfg:
                logger.debug("loaded settings from %s", p)
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> DumpSettings:
        """
        Load DumpSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (statedump.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
