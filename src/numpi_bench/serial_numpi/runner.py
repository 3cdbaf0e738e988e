from __future__ import annotations

import json
import logging
import subprocess
import time
import tracemalloc
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from .config import DEFAULT_TOLERANCE_SIGMA, EstimatorConfig, iter_dtypes, iter_sample_sizes
from .estimator import inside_circle
from .export import build_record, normalize_run, record_key, validate_results_schema, write_json, write_results

logger = logging.getLogger(__name__)


def find_repo_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _git_info(repo_root: Path) -> tuple[str, str, bool]:
    def _run(cmd: list[str]) -> str:
        out = subprocess.check_output(cmd, cwd=repo_root, stderr=subprocess.DEVNULL)
        return out.decode().strip()

    try:
        branch = _run(["git", "branch", "--show-current"])
        commit = _run(["git", "rev-parse", "HEAD"])
        dirty = bool(_run(["git", "status", "--porcelain=v1"]))
        return branch, commit, dirty
    except (OSError, subprocess.CalledProcessError):
        return "unknown", "unknown", False


def _run_once(cfg: EstimatorConfig) -> int:
    rng = np.random.default_rng(cfg.seed)
    return inside_circle(cfg.n_samples, rng=rng, dtype=cfg.dtype)


def measure_peak_bytes(cfg: EstimatorConfig) -> int:
    """Peak traced allocation of a single kernel call (NumPy buffers are traced)."""
    was_tracing = tracemalloc.is_tracing()
    if not was_tracing:
        tracemalloc.start()
    try:
        tracemalloc.reset_peak()
        _run_once(cfg)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        if not was_tracing:
            tracemalloc.stop()
    return peak


def measure_config(
    cfg: EstimatorConfig,
    *,
    repeats: int,
    warmup: int,
    tolerance_sigma: float = DEFAULT_TOLERANCE_SIGMA,
) -> tuple[dict[str, Any], list[float]]:
    """Time one configuration and return (record, raw per-repeat seconds)."""
    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}")
    if warmup < 0:
        raise ValueError(f"warmup must be >= 0, got {warmup}")

    for _ in range(warmup):
        _run_once(cfg)

    times_s: list[float] = []
    counts: set[int] = set()
    for _ in range(repeats):
        t0 = time.perf_counter()
        count = _run_once(cfg)
        times_s.append(time.perf_counter() - t0)
        counts.add(count)

    # Same seed on every repeat, so every repeat must agree.
    if len(counts) != 1:
        raise RuntimeError(f"Non-deterministic count for {cfg.identity}: {sorted(counts)}")

    peak = measure_peak_bytes(cfg)
    rec = build_record(cfg, count=counts.pop(), times_s=times_s, peak_bytes=peak, tolerance_sigma=tolerance_sigma)
    return rec, times_s


def merge_results(existing: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    merged = dict(existing)
    merged_run = dict(existing.get("run", {}))

    # Keep the original started_at if present; update finished_at to the newest.
    new_run = new.get("run", {})
    if isinstance(new_run, dict):
        for k in ("finished_at", "artifacts_dir", "settings", "environment", "git", "run_id"):
            if k in new_run:
                merged_run[k] = new_run[k]

    by_key: dict[tuple, dict] = {}
    for r in existing.get("records", []) or []:
        by_key[record_key(r)] = r
    for r in new.get("records", []) or []:
        by_key[record_key(r)] = r
    merged["records"] = sorted(by_key.values(), key=record_key)

    # Completeness failures (set by a sweep) survive merges; verification
    # failures are recomputed because records may have been rerun.
    reasons: list[str] = []
    prior_reason = str(merged_run.get("failure_reason", "")).strip()
    for part in (p.strip() for p in prior_reason.split(";") if prior_reason):
        if part.startswith("missing "):
            reasons.append(part)

    failures = [r for r in merged["records"] if r.get("verification", {}).get("status") == "fail"]
    if failures:
        reasons.append(f"{len(failures)} record(s) failed verification")

    if reasons:
        merged_run["status"] = "fail"
        merged_run["failure_reason"] = "; ".join(dict.fromkeys(reasons))
    else:
        merged_run["status"] = "pass"
        merged_run["failure_reason"] = ""

    merged["run"] = merged_run
    validate_results_schema(merged)
    return merged


def timing_run(
    *,
    out_dir: Path,
    sample_set: str,
    dtype: str,
    seed: int,
    repeats: int = 3,
    warmup: int = 1,
    tolerance_sigma: float = DEFAULT_TOLERANCE_SIGMA,
) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "raw").mkdir(parents=True, exist_ok=True)

    sizes = list(iter_sample_sizes(sample_set))
    dtype_keys = [d.key for d in iter_dtypes(dtype)]
    started_at = datetime.now(timezone.utc).isoformat()

    records: list[dict[str, Any]] = []
    raw: list[dict[str, Any]] = []
    for dtype_key in dtype_keys:
        for n in sizes:
            cfg = EstimatorConfig(n_samples=n, seed=seed, dtype=dtype_key)
            logger.info("timing n_samples=%d seed=%d dtype=%s", n, seed, dtype_key)
            rec, times_s = measure_config(cfg, repeats=repeats, warmup=warmup, tolerance_sigma=tolerance_sigma)
            logger.info("  pi=%.6f mean=%.3f ms", rec["pi_estimate"], rec["timing"]["wall_time_ms"])
            records.append(rec)
            raw.append({"n_samples": n, "seed": seed, "dtype": dtype_key, "times_s": times_s})

    write_json(out_dir / "raw" / f"timing_{sample_set}_{dtype}_s{seed}.json", raw)

    repo_root = find_repo_root()
    branch, commit, dirty = _git_info(repo_root)
    results = normalize_run(
        records,
        git_branch=branch,
        git_commit=commit,
        git_dirty=dirty,
        artifacts_dir=out_dir,
        settings={"repeats": repeats, "warmup": warmup, "tolerance_sigma": tolerance_sigma},
        started_at=started_at,
    )
    results_path = out_dir / "results.json"
    if results_path.exists():
        existing = json.loads(results_path.read_text())
        results = merge_results(existing, results)
    write_results(results_path, results)

    # Fail overall run if any verification failed.
    return 0 if results["run"]["status"] == "pass" else 1
