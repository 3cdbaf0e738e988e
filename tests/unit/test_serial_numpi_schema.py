from __future__ import annotations

import copy
from pathlib import Path

import jsonschema
import pytest

from numpi_bench.serial_numpi.config import EstimatorConfig
from numpi_bench.serial_numpi.export import build_record, normalize_run, validate_results_schema


def _results(tmp_path: Path) -> dict:
    rec = build_record(EstimatorConfig(n_samples=1000, seed=1), count=785, times_s=[0.001, 0.002], peak_bytes=12_000)
    return normalize_run(
        [rec],
        git_branch="main",
        git_commit="deadbeef",
        git_dirty=False,
        artifacts_dir=tmp_path,
        settings={"repeats": 2, "warmup": 0, "tolerance_sigma": 5.0},
    )


def test_normalized_results_validate(tmp_path: Path) -> None:
    results = _results(tmp_path)
    validate_results_schema(results)
    rec = results["records"][0]
    assert rec["pi_estimate"] == pytest.approx(3.14)
    assert rec["timing"]["wall_time_ms"] == pytest.approx(1.5)
    assert rec["timing"]["samples"] == 2
    assert rec["verification"]["status"] == "pass"
    assert results["run"]["status"] == "pass"


def test_schema_rejects_unknown_dtype(tmp_path: Path) -> None:
    results = copy.deepcopy(_results(tmp_path))
    results["records"][0]["dtype"] = "int8"
    with pytest.raises(jsonschema.ValidationError):
        validate_results_schema(results)


def test_schema_rejects_missing_run_fields(tmp_path: Path) -> None:
    results = copy.deepcopy(_results(tmp_path))
    del results["run"]["git"]
    with pytest.raises(jsonschema.ValidationError):
        validate_results_schema(results)


def test_verification_failure_marks_run_fail(tmp_path: Path) -> None:
    # 1000 of 1000 inside gives pi=4.0, far outside 5 standard errors.
    rec = build_record(EstimatorConfig(n_samples=1000, seed=1), count=1000, times_s=[0.001], peak_bytes=None)
    assert rec["verification"]["status"] == "fail"
    results = normalize_run(
        [rec],
        git_branch="main",
        git_commit="deadbeef",
        git_dirty=False,
        artifacts_dir=tmp_path,
        settings={"repeats": 1, "warmup": 0, "tolerance_sigma": 5.0},
    )
    assert results["run"]["status"] == "fail"
    assert results["run"]["failure_reason"] == "1 record(s) failed verification"


def test_build_record_rejects_out_of_range_count() -> None:
    with pytest.raises(ValueError):
        build_record(EstimatorConfig(n_samples=10, seed=1), count=11, times_s=[0.1], peak_bytes=None)
    with pytest.raises(ValueError):
        build_record(EstimatorConfig(n_samples=10, seed=1), count=5, times_s=[], peak_bytes=None)


def test_run_id_includes_start_time(tmp_path: Path) -> None:
    rec = build_record(EstimatorConfig(n_samples=1000, seed=1), count=785, times_s=[0.001], peak_bytes=None)
    results = normalize_run(
        [rec],
        git_branch="unknown",
        git_commit="unknown",
        git_dirty=False,
        artifacts_dir=tmp_path,
        settings={"repeats": 1, "warmup": 0, "tolerance_sigma": 5.0},
        started_at="2026-01-02T03:04:05+00:00",
    )
    assert results["run"]["run_id"] == "unknown-2026-01-02T03:04:05+00:00"
    assert results["run"]["started_at"] == "2026-01-02T03:04:05+00:00"
    assert _results(tmp_path)["run"]["run_id"].startswith("deadbeef-")
