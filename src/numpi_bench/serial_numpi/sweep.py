from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .config import DEFAULT_TOLERANCE_SIGMA, iter_dtypes, iter_sample_sizes
from .export import record_key, validate_results_schema, write_results
from .runner import timing_run

logger = logging.getLogger(__name__)


def expected_record_keys(*, sample_set: str, dtype: str, seeds: Sequence[int]) -> set[tuple[int, int, str]]:
    expected: set[tuple[int, int, str]] = set()
    for cfg in iter_dtypes(dtype):
        for n in iter_sample_sizes(sample_set):
            for seed in seeds:
                expected.add((n, seed, cfg.key))
    return expected


def mark_missing(results: dict[str, Any], expected: set[tuple[int, int, str]]) -> list[tuple[int, int, str]]:
    """Recompute the completeness part of the run status in place; return the missing keys.

    A "missing ..." reason left by an earlier sweep is dropped first, so a complete
    sweep clears it and the run passes unless other failure reasons remain.
    """
    actual = {record_key(r) for r in results.get("records", []) or []}
    missing = sorted(expected - actual)
    run = results.setdefault("run", {})
    prior = str(run.get("failure_reason", "")).strip()
    parts = [p.strip() for p in prior.split(";") if p.strip() and not p.strip().startswith("missing ")]
    if missing:
        parts.insert(0, f"missing {len(missing)} expected record(s)")
    run["status"] = "fail" if parts else "pass"
    run["failure_reason"] = "; ".join(parts)
    return missing


def sweep_run(
    *,
    out_dir: Path,
    sample_set: str,
    dtype: str,
    seeds: Sequence[int],
    repeats: int = 3,
    warmup: int = 1,
    tolerance_sigma: float = DEFAULT_TOLERANCE_SIGMA,
) -> int:
    if not seeds:
        raise ValueError("sweep needs at least one seed")
    out_dir.mkdir(parents=True, exist_ok=True)

    for seed in seeds:
        timing_run(
            out_dir=out_dir,
            sample_set=sample_set,
            dtype=dtype,
            seed=seed,
            repeats=repeats,
            warmup=warmup,
            tolerance_sigma=tolerance_sigma,
        )

    results_path = out_dir / "results.json"
    results = json.loads(results_path.read_text())

    missing = mark_missing(results, expected_record_keys(sample_set=sample_set, dtype=dtype, seeds=seeds))
    if missing:
        logger.error("sweep incomplete: %d record(s) missing, first=%s", len(missing), missing[0])
    validate_results_schema(results)
    write_results(results_path, results)

    return 0 if results.get("run", {}).get("status") == "pass" else 1
