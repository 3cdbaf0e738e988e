"""
CLI: line-profile a single estimator configuration.

Runs `estimate_pi` once under line_profiler and cProfile and writes the artifacts
under `<out_dir>/profiles/<case_id>/`, without needing a prior timing run:
    python scripts/numpi_line_profile.py --out-dir tmp/lp --n-samples 10000000
"""

from __future__ import annotations

import argparse
from pathlib import Path

from numpi_bench.serial_numpi.config import DEFAULT_DTYPE, DTYPES, EstimatorConfig, default_seed
from numpi_bench.serial_numpi.profiling import profile_case
from numpi_bench.serial_numpi.__main__ import non_negative_int, positive_int


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Line-profile one serial numpi configuration.")
    parser.add_argument("--out-dir", type=Path, required=True, help="Output directory root (artifacts under out_dir/profiles/...).")
    parser.add_argument("--n-samples", type=positive_int, required=True)
    parser.add_argument("--seed", type=non_negative_int, default=None, help="Random seed (default: $NUMPI_BENCH_SEED or 2017).")
    parser.add_argument("--dtype", default=DEFAULT_DTYPE, choices=list(DTYPES))
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    args = _parse_args(argv)
    seed = default_seed() if args.seed is None else args.seed
    cfg = EstimatorConfig(n_samples=args.n_samples, seed=seed, dtype=args.dtype)
    prof = profile_case(args.out_dir.expanduser().resolve(), cfg)

    hot = prof["hotspot"]
    if hot is None:
        print("no line timings recorded")
        return 1
    print(f"hotspot: {hot['function']}:{hot['lineno']} ({hot['share'] * 100:.1f}%) {hot['source']}")
    print(f"artifacts: {prof['line_profile']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
