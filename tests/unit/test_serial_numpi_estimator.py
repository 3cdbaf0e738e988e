from __future__ import annotations

import math

import numpy as np
import pytest

from numpi_bench.serial_numpi import estimator


def test_count_within_bounds() -> None:
    rng = np.random.default_rng(0)
    for n in (1, 7, 1000):
        count = estimator.inside_circle(n, rng=rng)
        assert 0 <= count <= n


def test_estimate_deterministic_for_fixed_seed() -> None:
    a = estimator.estimate_pi(10_000, seed=123)
    b = estimator.estimate_pi(10_000, seed=123)
    assert a == b


def test_estimate_close_to_pi() -> None:
    n = 200_000
    est = estimator.estimate_pi(n, seed=2017)
    assert abs(est - math.pi) <= 5 * estimator.standard_error(n)


def test_float64_dtype_supported() -> None:
    est = estimator.estimate_pi(5_000, seed=1, dtype="float64")
    assert 0.0 <= est <= 4.0


@pytest.mark.parametrize("bad", [0, -1, 2.5, "10", True])
def test_invalid_total_count_rejected(bad: object) -> None:
    with pytest.raises(ValueError):
        estimator.inside_circle(bad)  # type: ignore[arg-type]


def test_unknown_dtype_rejected() -> None:
    with pytest.raises(KeyError):
        estimator.estimate_pi(10, seed=0, dtype="float16")


def test_required_memory_mb() -> None:
    assert estimator.required_memory_mb(1024 * 1024, "float32") == pytest.approx(12.0)
    assert estimator.required_memory_mb(1024 * 1024, "float64") == pytest.approx(24.0)


def test_standard_error_shrinks_with_n() -> None:
    assert estimator.standard_error(100) == pytest.approx(10 * estimator.standard_error(10_000))


def test_format_summary_lines() -> None:
    lines = estimator.format_summary(1000, 3.14, "float32")
    assert lines == [
        "[serial version] required memory 0.011 MB",
        "[serial version] pi is 3.140000 from 1000 samples",
    ]
