from __future__ import annotations

import json
import math
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
from jsonschema import Draft202012Validator

from .config import DEFAULT_TOLERANCE_SIGMA, EstimatorConfig
from .estimator import required_memory_mb, standard_error, z_score

SCHEMA_VERSION = "0.1.0"


def _default_results_schema_path() -> Path:
    return Path(__file__).resolve().with_name("results.schema.json")


def validate_results_schema(results: dict[str, Any], *, schema_path: Path | None = None) -> None:
    schema_path = _default_results_schema_path() if schema_path is None else schema_path
    schema = json.loads(schema_path.read_text())
    Draft202012Validator(schema).validate(results)


def record_key(rec: dict[str, Any]) -> tuple[int, int, str]:
    return (int(rec.get("n_samples", 0)), int(rec.get("seed", 0)), str(rec.get("dtype", "")))


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def build_record(
    cfg: EstimatorConfig,
    *,
    count: int,
    times_s: list[float],
    peak_bytes: int | None,
    tolerance_sigma: float = DEFAULT_TOLERANCE_SIGMA,
) -> dict[str, Any]:
    """Build one normalized record from a measured configuration."""
    if not times_s:
        raise ValueError(f"No timing samples for n_samples={cfg.n_samples}")
    if not 0 <= count <= cfg.n_samples:
        raise ValueError(f"count={count} outside [0, {cfg.n_samples}]")

    estimate = 4.0 * count / cfg.n_samples
    z = z_score(estimate, cfg.n_samples)
    mean_s = _mean(times_s)

    return {
        "n_samples": cfg.n_samples,
        "seed": cfg.seed,
        "dtype": cfg.dtype,
        "count": count,
        "pi_estimate": estimate,
        "abs_error": abs(estimate - math.pi),
        "std_error": standard_error(cfg.n_samples),
        "memory": {
            "required_mb": required_memory_mb(cfg.n_samples, cfg.dtype),
            "peak_mb": None if peak_bytes is None else peak_bytes / (1024 * 1024),
        },
        "timing": {
            "wall_time_ms": mean_s * 1e3,
            "min_ms": min(times_s) * 1e3,
            "max_ms": max(times_s) * 1e3,
            "samples": len(times_s),
        },
        "throughput_msamples_s": None if mean_s == 0 else cfg.n_samples / mean_s / 1e6,
        "verification": {
            "status": "pass" if abs(z) <= tolerance_sigma else "fail",
            "z_score": z,
            "tolerance_sigma": tolerance_sigma,
        },
        "profiling": None,
    }


def normalize_run(
    records: list[dict[str, Any]],
    *,
    git_branch: str,
    git_commit: str,
    git_dirty: bool,
    artifacts_dir: Path,
    settings: dict[str, Any],
    started_at: str | None = None,
) -> dict[str, Any]:
    now = datetime.now(timezone.utc).isoformat()
    started_at = started_at or now
    run_obj = {
        "run_id": f"{git_commit}-{started_at}",
        "started_at": started_at,
        "finished_at": now,
        "status": "pass",
        "failure_reason": "",
        "git": {"branch": git_branch, "commit": git_commit, "dirty": git_dirty},
        "environment": {
            "platform": {"os": platform.system().lower(), "arch": platform.machine().lower()},
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
        "settings": settings,
        "artifacts_dir": str(artifacts_dir),
    }

    failures = [r for r in records if r["verification"]["status"] == "fail"]
    if failures:
        run_obj["status"] = "fail"
        run_obj["failure_reason"] = f"{len(failures)} record(s) failed verification"

    out = {"schema_version": SCHEMA_VERSION, "run": run_obj, "records": records}
    validate_results_schema(out)
    return out


def load_results(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing results.json at {path}")
    return json.loads(path.read_text())


def write_results(path: Path, results: dict[str, Any]) -> None:
    path.write_text(json.dumps(results, indent=2, sort_keys=True) + "\n")


def write_json(path: Path, obj: Any) -> None:
    """Write JSON with stable formatting (indent + sorted keys)."""
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n")
