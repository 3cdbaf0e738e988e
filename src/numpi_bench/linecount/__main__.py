from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .counter import DEFAULT_GLOB, count_paths, format_table, total_of


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="numpi_bench.linecount",
        description="Count total/blank/comment/code lines in files or directories.",
    )
    parser.add_argument("paths", type=Path, nargs="+")
    parser.add_argument("--glob", default=DEFAULT_GLOB, help=f"File pattern for directories (default: {DEFAULT_GLOB}).")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of a table.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    try:
        counts = count_paths(ns.paths, glob=ns.glob)
    except FileNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 2

    if ns.json:
        payload = {"files": [c.to_dict() for c in counts], "total": total_of(counts).to_dict()}
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        print(format_table(counts))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
