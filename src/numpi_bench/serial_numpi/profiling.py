"""
Line-level hotspot profiling for the serial estimator.

Each record in `results.json` is re-run under `line_profiler` (per-line timings of
`inside_circle` and `estimate_pi`) and under `cProfile` (per-function view). All
outputs are written under:

`<out_dir>/profiles/<case_id>/...`

and the record's `profiling` field points at them, together with the hotspot line.
"""

from __future__ import annotations

import cProfile
import csv
import io
import linecache
import logging
import platform
import pstats
import re
from pathlib import Path
from typing import Any

from line_profiler import LineProfiler
from mdutils.mdutils import MdUtils  # type: ignore[import-untyped]

from . import estimator
from .config import EstimatorConfig
from .export import load_results, validate_results_schema, write_json, write_results

logger = logging.getLogger(__name__)

HOTSPOT_FUNCTION = "inside_circle"

_CASE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")

LINE_FIELDS = ["function", "lineno", "hits", "time_ms", "per_hit_us", "share", "source"]


def validate_case_id(case_id: str) -> None:
    """
    Validate a case identifier used in on-disk artifact layout.

    Allowed characters are `[A-Za-z0-9._-]` and it must start with an
    alphanumeric character.
    """
    if not _CASE_ID_RE.fullmatch(case_id):
        raise ValueError(
            f"Invalid case_id '{case_id}'. Expected /^[A-Za-z0-9][A-Za-z0-9._-]{{0,127}}$/."
        )


def profiles_case_dir(out_dir: Path, case_id: str) -> Path:
    validate_case_id(case_id)
    return out_dir / "profiles" / case_id


def _short_name(func_name: str) -> str:
    return func_name.rsplit(".", 1)[-1]


def line_timings_from_stats(stats: Any) -> list[dict[str, Any]]:
    """
    Flatten line_profiler stats into one row per executed line.

    `stats.timings` maps `(filename, first_lineno, func_name)` to a list of
    `(lineno, hits, time)` tuples, with `time` in units of `stats.unit` seconds.
    `share` is the line's fraction of its function's total time.
    """
    rows: list[dict[str, Any]] = []
    for (filename, _first_lineno, func_name), entries in sorted(stats.timings.items()):
        if not entries:
            continue
        total = sum(t for _lineno, _hits, t in entries)
        for lineno, hits, t in sorted(entries):
            time_ms = t * stats.unit * 1e3
            rows.append(
                {
                    "function": _short_name(func_name),
                    "lineno": int(lineno),
                    "hits": int(hits),
                    "time_ms": time_ms,
                    "per_hit_us": (time_ms * 1e3 / hits) if hits else 0.0,
                    "share": (t / total) if total else 0.0,
                    "source": linecache.getline(filename, lineno).strip(),
                }
            )
    return rows


def find_hotspot(rows: list[dict[str, Any]], *, function: str | None = HOTSPOT_FUNCTION) -> dict[str, Any] | None:
    """Return the line with the largest time share (optionally within one function)."""
    candidates = [r for r in rows if function is None or r["function"] == function]
    if not candidates:
        return None
    hot = max(candidates, key=lambda r: (r["time_ms"], -r["lineno"]))
    return {
        "function": hot["function"],
        "lineno": hot["lineno"],
        "source": hot["source"],
        "share": float(min(max(hot["share"], 0.0), 1.0)),
    }


def run_line_profile(cfg: EstimatorConfig) -> tuple[Any, str]:
    """Run the estimator once under line_profiler and return (stats, text report)."""
    lp = LineProfiler()
    lp.add_function(estimator.inside_circle)
    lp.add_function(estimator.estimate_pi)
    lp.enable_by_count()
    try:
        estimator.estimate_pi(cfg.n_samples, seed=cfg.seed, dtype=cfg.dtype)
    finally:
        lp.disable_by_count()

    buf = io.StringIO()
    lp.print_stats(stream=buf)
    return lp.get_stats(), buf.getvalue()


def run_function_profile(cfg: EstimatorConfig, *, top: int = 20) -> str:
    """Run the estimator once under cProfile; return pstats text sorted two ways."""
    pr = cProfile.Profile()
    pr.enable()
    try:
        estimator.estimate_pi(cfg.n_samples, seed=cfg.seed, dtype=cfg.dtype)
    finally:
        pr.disable()

    s = io.StringIO()
    pstats.Stats(pr, stream=s).sort_stats("cumulative").print_stats(top)
    s2 = io.StringIO()
    pstats.Stats(pr, stream=s2).sort_stats("tottime").print_stats(top)
    return s.getvalue() + "\n===== SORTED BY SELF TIME =====\n" + s2.getvalue()


def _write_lines_csv(path: Path, rows: list[dict[str, Any]]) -> None:
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=LINE_FIELDS)
        writer.writeheader()
        for r in rows:
            writer.writerow(r)


def _write_readme(case_dir: Path, cfg: EstimatorConfig, hotspot: dict[str, Any] | None) -> None:
    md = MdUtils(file_name=str(case_dir / "README"), title="Line Profile (serial numpi)")
    md.new_paragraph(
        f"Profiling artifacts for `estimate_pi({cfg.n_samples}, seed={cfg.seed}, dtype={cfg.dtype})`."
    )
    md.new_header(level=1, title="Hotspot")
    if hotspot is None:
        md.new_paragraph("No line timings were recorded.")
    else:
        md.new_paragraph(
            f"`{hotspot['function']}` line {hotspot['lineno']}: `{hotspot['source']}` "
            f"({hotspot['share'] * 100:.1f}% of the function's time)"
        )
    md.new_header(level=1, title="Outputs")
    md.new_list(
        [
            "`line_profile.txt`: line_profiler text report",
            "`lines.csv`: per-line timings with time share",
            "`cprofile.txt`: cProfile/pstats function view",
            "`meta.json`: profiling metadata",
        ]
    )
    md.create_md_file()


def profile_case(out_dir: Path, cfg: EstimatorConfig) -> dict[str, Any]:
    """Profile one configuration and return the record's `profiling` object."""
    case_id = cfg.to_case_id()
    case_dir = profiles_case_dir(out_dir, case_id)
    case_dir.mkdir(parents=True, exist_ok=True)

    stats, text = run_line_profile(cfg)
    rows = line_timings_from_stats(stats)
    hotspot = find_hotspot(rows)

    line_txt = case_dir / "line_profile.txt"
    lines_csv = case_dir / "lines.csv"
    cprof_txt = case_dir / "cprofile.txt"
    line_txt.write_text(text)
    _write_lines_csv(lines_csv, rows)
    cprof_txt.write_text(run_function_profile(cfg))

    write_json(
        case_dir / "meta.json",
        {
            "tool": "line_profiler",
            "case_id": case_id,
            "config": {"n_samples": cfg.n_samples, "seed": cfg.seed, "dtype": cfg.dtype},
            "timer_unit_s": stats.unit,
            "host": {"platform": platform.platform(), "machine": platform.machine()},
            "hotspot": hotspot,
        },
    )
    _write_readme(case_dir, cfg, hotspot)

    def _rel(p: Path) -> str:
        return str(p.relative_to(out_dir)) if p.is_relative_to(out_dir) else str(p)

    return {
        "case_id": case_id,
        "line_profile": _rel(line_txt),
        "lines_csv": _rel(lines_csv),
        "cprofile": _rel(cprof_txt),
        "hotspot": hotspot,
    }


def profile_run(*, out_dir: Path, n_samples: int | None = None) -> int:
    results_path = out_dir / "results.json"
    results = load_results(results_path)

    failures: list[str] = []
    profiled = 0
    for rec in results.get("records", []):
        if n_samples is not None and rec["n_samples"] != n_samples:
            continue
        cfg = EstimatorConfig(n_samples=rec["n_samples"], seed=rec["seed"], dtype=rec["dtype"])
        logger.info("profiling %s", cfg.to_case_id())
        prof = profile_case(out_dir, cfg)
        rec["profiling"] = prof
        profiled += 1

        for key in ("line_profile", "lines_csv", "cprofile"):
            if not (out_dir / prof[key]).exists():
                failures.append(f"{prof['case_id']}: missing {prof[key]}")
        if prof["hotspot"] is None:
            failures.append(f"{prof['case_id']}: no line timings recorded")

    if profiled == 0:
        failures.append("no records matched")

    validate_results_schema(results)
    write_results(results_path, results)
    for reason in failures:
        logger.error("%s", reason)
    return 0 if not failures else 1
