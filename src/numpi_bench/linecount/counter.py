from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import attrs

DEFAULT_GLOB = "*.py"


@attrs.define(frozen=True, slots=True)
class LineCount:
    path: Path
    total: int
    blank: int
    comment: int
    code: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "total": self.total,
            "blank": self.blank,
            "comment": self.comment,
            "code": self.code,
        }


def count_text(text: str, *, path: Path = Path("-")) -> LineCount:
    """Classify each line of `text` as blank, comment (`#` after stripping) or code."""
    blank = comment = code = 0
    lines = text.splitlines()
    for ln in lines:
        s = ln.strip()
        if not s:
            blank += 1
        elif s.startswith("#"):
            comment += 1
        else:
            code += 1
    return LineCount(path=path, total=len(lines), blank=blank, comment=comment, code=code)


def count_lines(path: Path) -> LineCount:
    if not path.is_file():
        raise FileNotFoundError(f"Not a file: {path}")
    return count_text(path.read_text(errors="replace"), path=path)


def iter_files(paths: Iterable[Path], *, glob: str = DEFAULT_GLOB) -> Iterator[Path]:
    """Yield files in argument order; directories expand recursively (sorted) by `glob`."""
    for p in paths:
        if p.is_dir():
            yield from sorted(f for f in p.rglob(glob) if f.is_file())
        elif p.is_file():
            yield p
        else:
            raise FileNotFoundError(f"No such file or directory: {p}")


def count_paths(paths: Iterable[Path], *, glob: str = DEFAULT_GLOB) -> list[LineCount]:
    return [count_lines(f) for f in iter_files(paths, glob=glob)]


def total_of(counts: Iterable[LineCount]) -> LineCount:
    total = blank = comment = code = 0
    for c in counts:
        total += c.total
        blank += c.blank
        comment += c.comment
        code += c.code
    return LineCount(path=Path("total"), total=total, blank=blank, comment=comment, code=code)


def format_table(counts: list[LineCount]) -> str:
    rows = [c.to_dict() for c in counts]
    if len(counts) != 1:
        rows.append(total_of(counts).to_dict())

    header = ["total", "blank", "comment", "code", "path"]
    widths = {h: max([len(h), *(len(str(r[h])) for r in rows)]) for h in header[:-1]}
    out = ["  ".join(h.rjust(widths[h]) for h in header[:-1]) + "  path"]
    for r in rows:
        out.append("  ".join(str(r[h]).rjust(widths[h]) for h in header[:-1]) + f"  {r['path']}")
    return "\n".join(out)
