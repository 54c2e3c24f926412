from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Any

import polars as pl

from statedump.core.errors import DumpCancelled, SchemaError
from statedump.io.config import DumpSettings
from statedump.io.errors import IoError
from statedump.io.read import read_dump
from statedump.io.replay import replay
from statedump.io.validate import validate_dump
from statedump.io.write import export_parquet
from statedump.runtime import dump_python_state

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--format", choices=["csv", "tsv"], default=None, help="Row dialect (default from settings).")
    p.add_argument("--header", action="store_true", help="Write/expect a header row.")
    p.add_argument("--config", type=str, default=None, help="Path to a statedump TOML file.")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")


def _settings(args: argparse.Namespace) -> DumpSettings:
    """Settings from env/TOML, with command-line flags on top.

    Args:
        args: Parsed arguments carrying ``format``, ``header`` and ``config``.
    """
    s = DumpSettings.load(args.config)
    if args.format:
        s = replace(s, dialect=args.format)
    if args.header:
        s = replace(s, header=True)
    logger.debug("settings: %s", s)
    return s


def _read(args: argparse.Namespace) -> pl.DataFrame:
    settings = _settings(args)
    return read_dump(args.file, settings)


def _cmd_dump(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="dump", description="Dump the running interpreter's object graph.")
    p.add_argument("out", type=str, help="Output file, or '-' for stdout.")
    _add_common_args(p)
    args = p.parse_args(argv)
    _setup_logging(args.verbose)

    target: Any = sys.stdout if args.out == "-" else args.out
    try:
        summary = dump_python_state(target, settings=_settings(args))
    except DumpCancelled as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 130
    except IoError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    print(
        f"[INFO] Wrote {summary.rows} rows ({summary.vertices} vertices, {summary.edges} edges) to {args.out}",
        file=sys.stderr,
    )
    return 0


def _cmd_inspect(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="inspect", description="Show per-type row counts of a dump.")
    p.add_argument("file", type=str, help="Dump file.")
    p.add_argument("--n", type=int, default=0, help="Also print the first n rows.")
    _add_common_args(p)
    args = p.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        df = _read(args)
    except IoError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    counts = df.group_by("type").agg(pl.len().alias("rows")).sort("type")
    with pl.Config(tbl_rows=-1):
        print(counts)
    if args.n:
        print(df.head(args.n))
    return 0


def _cmd_validate(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="validate", description="Validate a dump file.")
    p.add_argument("file", type=str, help="Dump file.")
    _add_common_args(p)
    args = p.parse_args(argv)
    _setup_logging(args.verbose)

    settings = _settings(args)
    try:
        df = read_dump(args.file, settings)
        counts = validate_dump(df, strict=settings.strict_schema)
        graph = replay(df)
    except (IoError, SchemaError) as exc:
        print(f"[ERROR] {args.file}: {exc}", file=sys.stderr)
        return 1
    orphans = set(graph.vertices) - graph.reachable()
    if orphans:
        print(f"[ERROR] {args.file}: {len(orphans)} vertices unreachable from the root", file=sys.stderr)
        return 1
    print(f"[INFO] OK: {counts['rows']} rows ({counts['vertices']} vertices, {counts['edges']} edges)")
    return 0


def _cmd_export(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="export", description="Export a dump as vertices/edges Parquet tables.")
    p.add_argument("file", type=str, help="Dump file.")
    p.add_argument("--out-dir", type=str, required=True, help="Output directory.")
    _add_common_args(p)
    args = p.parse_args(argv)
    _setup_logging(args.verbose)

    settings = _settings(args)
    try:
        df = read_dump(args.file, settings)
        summary = export_parquet(df, args.out_dir, settings)
    except IoError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    for table in summary["tables"]:
        print(f"[INFO] Wrote {table['rows']} rows to {table['path']}")
    return 0


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="statedump", description="Object graph dump utilities CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("dump")
    sub.add_parser("inspect")
    sub.add_parser("validate")
    sub.add_parser("export")
    return p


_COMMANDS = {
    "dump": _cmd_dump,
    "inspect": _cmd_inspect,
    "validate": _cmd_validate,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    cmd, rest = argv[0], argv[1:]
    handler = _COMMANDS.get(cmd)
    if handler is not None:
        code = handler(rest)
    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
