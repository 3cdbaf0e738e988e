"""Monte Carlo estimator of Pi (single core, NumPy).

The kernel is written as four separate statements (draw, radius, filter, count)
so that a line-level profiler can attribute time to each step.
"""

from __future__ import annotations

import math
import numbers

import numpy as np

from .config import DEFAULT_DTYPE, dtype_config

_P_INSIDE = math.pi / 4.0


def _validate_total_count(total_count: int) -> int:
    if isinstance(total_count, bool) or not isinstance(total_count, numbers.Integral):
        raise ValueError(f"total_count must be an integer, got {type(total_count).__name__}")
    if total_count <= 0:
        raise ValueError(f"total_count must be positive, got {total_count}")
    return int(total_count)


def inside_circle(total_count: int, *, rng: np.random.Generator | None = None, dtype: str = DEFAULT_DTYPE) -> int:
    """Count how many of `total_count` random points in the unit square fall inside the unit circle."""
    total_count = _validate_total_count(total_count)
    np_dtype = np.dtype(dtype_config(dtype).numpy_name)
    if rng is None:
        rng = np.random.default_rng()

    x = rng.random(total_count, dtype=np_dtype)
    y = rng.random(total_count, dtype=np_dtype)
    radii = np.sqrt(x * x + y * y)
    filtered = np.where(radii <= 1.0)
    count = len(radii[filtered])
    return int(count)


def estimate_pi(total_count: int, *, seed: int | None = None, dtype: str = DEFAULT_DTYPE) -> float:
    """Estimate Pi as `4 * inside / total` from `total_count` samples.

    The result is deterministic for a fixed `seed`.
    """
    rng = np.random.default_rng(seed)
    count = inside_circle(total_count, rng=rng, dtype=dtype)
    return 4.0 * count / total_count


def required_memory_mb(n_samples: int, dtype: str = DEFAULT_DTYPE) -> float:
    """Memory held by the x, y and radii arrays for one call, in MiB."""
    n_samples = _validate_total_count(n_samples)
    return n_samples * dtype_config(dtype).itemsize * 3 / (1024 * 1024)


def standard_error(n_samples: int) -> float:
    """Standard error of the estimate for `n_samples` draws (binomial, scaled by 4)."""
    n_samples = _validate_total_count(n_samples)
    return 4.0 * math.sqrt(_P_INSIDE * (1.0 - _P_INSIDE) / n_samples)


def z_score(estimate: float, n_samples: int) -> float:
    return (estimate - math.pi) / standard_error(n_samples)


def format_summary(n_samples: int, estimate: float, dtype: str = DEFAULT_DTYPE) -> list[str]:
    return [
        "[serial version] required memory %.3f MB" % required_memory_mb(n_samples, dtype),
        "[serial version] pi is %f from %i samples" % (estimate, n_samples),
    ]
