from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from numpi_bench.serial_numpi.config import EstimatorConfig
from numpi_bench.serial_numpi.profiling import (
    find_hotspot,
    line_timings_from_stats,
    profiles_case_dir,
    run_line_profile,
    validate_case_id,
)


def test_validate_case_id() -> None:
    validate_case_id("n1000_s1_float32")
    for bad in ("", "_x", "a/b", "a b"):
        with pytest.raises(ValueError):
            validate_case_id(bad)


def test_profiles_case_dir_layout(tmp_path: Path) -> None:
    assert profiles_case_dir(tmp_path, "c1") == tmp_path / "profiles" / "c1"


def test_line_timings_from_stats_shares_and_source(tmp_path: Path) -> None:
    src = tmp_path / "kernel.py"
    src.write_text("def inside_circle(n):\n    a = 1\n    b = 2\n    return a + b\n")
    stats = SimpleNamespace(
        unit=1e-6,
        timings={(str(src), 1, "inside_circle"): [(3, 2, 600.0), (2, 1, 300.0), (4, 1, 100.0)]},
    )
    rows = line_timings_from_stats(stats)
    assert [r["lineno"] for r in rows] == [2, 3, 4]
    assert rows[1]["source"] == "b = 2"
    assert rows[1]["share"] == pytest.approx(0.6)
    assert rows[1]["time_ms"] == pytest.approx(0.6)
    assert rows[1]["per_hit_us"] == pytest.approx(300.0)

    hot = find_hotspot(rows)
    assert hot == {"function": "inside_circle", "lineno": 3, "source": "b = 2", "share": pytest.approx(0.6)}


def test_find_hotspot_filters_function() -> None:
    rows = [
        {"function": "estimate_pi", "lineno": 10, "time_ms": 9.0, "share": 0.9, "source": "count = ..."},
        {"function": "inside_circle", "lineno": 3, "time_ms": 1.0, "share": 1.0, "source": "x = ..."},
    ]
    assert find_hotspot(rows)["lineno"] == 3
    assert find_hotspot(rows, function=None)["lineno"] == 10
    assert find_hotspot([]) is None


def test_run_line_profile_records_kernel_lines() -> None:
    stats, text = run_line_profile(EstimatorConfig(n_samples=20_000, seed=1))
    rows = line_timings_from_stats(stats)
    kernel_rows = [r for r in rows if r["function"] == "inside_circle"]
    assert kernel_rows
    assert all(r["hits"] >= 1 for r in kernel_rows)
    assert any("np.sqrt" in r["source"] for r in kernel_rows)
    assert "inside_circle" in text
