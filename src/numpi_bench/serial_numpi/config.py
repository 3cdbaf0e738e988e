from __future__ import annotations

import os
from collections.abc import Iterable

import attrs


@attrs.define(frozen=True, slots=True)
class DtypeConfig:
    key: str
    numpy_name: str
    itemsize: int


@attrs.define(frozen=True, slots=True)
class EstimatorConfig:
    n_samples: int
    seed: int
    dtype: str = "float32"

    @property
    def identity(self) -> tuple[int, int, str]:
        return (self.n_samples, self.seed, self.dtype)

    def to_case_id(self) -> str:
        return f"n{self.n_samples}_s{self.seed}_{self.dtype}"


DTYPES: dict[str, DtypeConfig] = {
    "float32": DtypeConfig(key="float32", numpy_name="float32", itemsize=4),
    "float64": DtypeConfig(key="float64", numpy_name="float64", itemsize=8),
}

DEFAULT_DTYPE = "float32"
DEFAULT_N_SAMPLES = 10000
DEFAULT_SEED = 2017
SEEDS: tuple[int, ...] = (2017, 42, 7)

# Tolerance used by record verification, in standard errors of the estimator.
DEFAULT_TOLERANCE_SIGMA = 5.0


# Sample-size sets. "lesson" mirrors the sizes used in the profiling walkthrough;
# "large" allocates several hundred MB per call and is opt-in.
SAMPLE_SETS: dict[str, tuple[int, ...]] = {
    "smoke": (1_000, 10_000),
    "lesson": (10_000, 1_000_000, 10_000_000),
    "convergence": (100, 1_000, 10_000, 100_000, 1_000_000),
    "large": (50_000_000,),
}


def env_seed() -> int | None:
    """Seed from ``NUMPI_BENCH_SEED``, or None when the variable is unset or empty."""
    env = os.environ.get("NUMPI_BENCH_SEED")
    if not env:
        return None
    try:
        seed = int(env)
    except ValueError:
        raise ValueError(f"NUMPI_BENCH_SEED must be an integer, got {env!r}") from None
    if seed < 0:
        raise ValueError(f"NUMPI_BENCH_SEED must be non-negative, got {seed}")
    return seed


def default_seed() -> int:
    seed = env_seed()
    return DEFAULT_SEED if seed is None else seed


def iter_sample_sizes(sample_set: str) -> Iterable[int]:
    if sample_set == "all":
        # "all" never pulls in the opt-in large set.
        return sorted({n for name, sizes in SAMPLE_SETS.items() if name != "large" for n in sizes})
    if sample_set not in SAMPLE_SETS:
        raise KeyError(f"Unknown sample_set={sample_set!r}. Known: {sorted(SAMPLE_SETS)}")
    return SAMPLE_SETS[sample_set]


def iter_dtypes(dtype: str) -> Iterable[DtypeConfig]:
    if dtype == "all":
        return DTYPES.values()
    if dtype not in DTYPES:
        raise KeyError(f"Unknown dtype={dtype!r}. Known: {sorted(DTYPES)}")
    return (DTYPES[dtype],)


def dtype_config(dtype: str) -> DtypeConfig:
    if dtype not in DTYPES:
        raise KeyError(f"Unknown dtype={dtype!r}. Known: {sorted(DTYPES)}")
    return DTYPES[dtype]
