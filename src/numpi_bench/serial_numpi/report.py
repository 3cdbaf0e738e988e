from __future__ import annotations

from pathlib import Path
from typing import Any

from .export import load_results


def _format_float(v: float | None, digits: int = 3) -> str:
    if v is None:
        return "NA"
    return f"{v:.{digits}f}"


def _format_int(v: int | None) -> str:
    if v is None:
        return "NA"
    return str(v)


def _group_key(rec: dict[str, Any]) -> tuple[int, str]:
    return (int(rec["seed"]), str(rec["dtype"]))


def compute_scaling_in_place(results: dict[str, Any]) -> None:
    """Annotate records with time/sample ratios relative to the smallest run of their (seed, dtype) group."""
    groups: dict[tuple[int, str], list[dict[str, Any]]] = {}
    for r in results.get("records", []):
        groups.setdefault(_group_key(r), []).append(r)

    for recs in groups.values():
        base = min(recs, key=lambda r: r["n_samples"])
        base_t = base.get("timing", {}).get("wall_time_ms")
        for r in recs:
            t = r.get("timing", {}).get("wall_time_ms")
            existing = r.get("scaling")
            scaling: dict[str, Any] = existing if isinstance(existing, dict) else {}
            scaling["samples_ratio_to_smallest"] = r["n_samples"] / base["n_samples"]
            if t is not None and base_t:
                scaling["time_ratio_to_smallest"] = float(t / base_t)
            r["scaling"] = scaling


def _table(header: list[str], rows: list[list[str]]) -> list[str]:
    lines = ["| " + " | ".join(header) + " |", "|" + "|".join(["---"] * len(header)) + "|"]
    lines += ["| " + " | ".join(row) + " |" for row in rows]
    return lines


def generate_report(results: dict[str, Any]) -> str:
    compute_scaling_in_place(results)
    records = sorted(results.get("records", []), key=lambda r: (r["dtype"], r["seed"], r["n_samples"]))

    lines: list[str] = []
    lines.append("# Serial Monte Carlo Pi Report")
    lines.append("")
    run = results.get("run", {})
    lines.append(f"- Branch: `{run.get('git', {}).get('branch', '')}`")
    lines.append(f"- Commit: `{run.get('git', {}).get('commit', '')}`")
    lines.append(f"- Status: `{run.get('status', '')}`")
    if run.get("failure_reason"):
        lines.append(f"- Failure: {run['failure_reason']}")
    env = run.get("environment", {})
    if env:
        lines.append(f"- Python: `{env.get('python', '')}`, NumPy: `{env.get('numpy', '')}`")
    lines.append("")

    lines.append("## Convergence")
    lines.append("")
    header = [
        "n_samples",
        "seed",
        "dtype",
        "pi_estimate",
        "abs_error",
        "std_error",
        "z",
        "time_ms",
        "time_ratio",
        "msamples_per_s",
        "required_mb",
        "peak_mb",
        "verify",
    ]
    rows: list[list[str]] = []
    for r in records:
        timing = r.get("timing", {})
        memory = r.get("memory", {})
        ver = r.get("verification", {})
        rows.append(
            [
                _format_int(r.get("n_samples")),
                _format_int(r.get("seed")),
                f"`{r.get('dtype', '')}`",
                _format_float(r.get("pi_estimate"), 6),
                _format_float(r.get("abs_error"), 6),
                _format_float(r.get("std_error"), 6),
                _format_float(ver.get("z_score"), 2),
                _format_float(timing.get("wall_time_ms")),
                _format_float(r.get("scaling", {}).get("time_ratio_to_smallest"), 2),
                _format_float(r.get("throughput_msamples_s"), 2),
                _format_float(memory.get("required_mb")),
                _format_float(memory.get("peak_mb")),
                str(ver.get("status", "NA")),
            ]
        )
    lines += _table(header, rows)
    lines.append("")

    lines.append("## Hotspots")
    lines.append("")
    profiled = [r for r in records if isinstance(r.get("profiling"), dict)]
    if not profiled:
        lines.append("No profiled records. Run the `profile` command to attribute time per line.")
    else:
        hot_rows: list[list[str]] = []
        for r in profiled:
            prof = r["profiling"]
            hot = prof.get("hotspot") or {}
            hot_rows.append(
                [
                    f"`{prof.get('case_id', '')}`",
                    f"`{hot.get('function', 'NA')}`",
                    _format_int(hot.get("lineno")),
                    f"`{hot.get('source', '')}`" if hot.get("source") else "NA",
                    _format_float(None if hot.get("share") is None else hot["share"] * 100, 1),
                    f"`{prof.get('line_profile', '')}`",
                ]
            )
        lines += _table(["case_id", "function", "line", "source", "share_pct", "line_profile"], hot_rows)
    lines.append("")

    lines.append("## Column Definitions")
    lines.append("")
    lines.append("- `n_samples`: Number of random (x, y) pairs drawn in [0, 1).")
    lines.append("- `pi_estimate`: `4 * count / n_samples`, where `count` is the number of radii <= 1.0.")
    lines.append("- `abs_error`: `|pi_estimate - pi|`.")
    lines.append("- `std_error`: Expected standard error `4*sqrt(p*(1-p)/n)` with `p = pi/4`.")
    lines.append("- `z`: `(pi_estimate - pi) / std_error`.")
    lines.append("- `time_ms`: Mean wall time of one `inside_circle` call over the timed repeats.")
    lines.append("- `time_ratio`: `time_ms` relative to the smallest `n_samples` with the same seed and dtype.")
    lines.append("- `msamples_per_s`: Throughput in millions of samples per second.")
    lines.append("- `required_mb`: Memory held by the x, y and radii arrays (`3 * n * itemsize`).")
    lines.append("- `peak_mb`: Peak allocation traced by `tracemalloc` during one call.")
    lines.append("- `verify`: `pass` if `|z|` is within the configured tolerance; otherwise `fail`.")
    lines.append("")
    lines.append("Notes:")
    lines.append("- `NA` means the value is missing (e.g., a record was not profiled).")
    lines.append("- `share_pct` is the hotspot line's share of its function's time under line_profiler.")
    lines.append("")

    return "\n".join(lines)


def report_run(*, out_dir: Path) -> int:
    results = load_results(out_dir / "results.json")
    report_md = generate_report(results)
    (out_dir / "report.md").write_text(report_md + "\n")
    return 0
