"""
CLI: serial Monte Carlo estimate of pi (lesson entry point).

Prints the memory held by the sample arrays and the estimate, then exits 0:
    python3 ./scripts/serial_numpi.py 50000000

The number of samples defaults to 10000 when omitted.
"""

from __future__ import annotations

import argparse

from numpi_bench.serial_numpi.config import DEFAULT_DTYPE, DEFAULT_N_SAMPLES, DTYPES, env_seed
from numpi_bench.serial_numpi.estimator import estimate_pi, format_summary
from numpi_bench.serial_numpi.__main__ import non_negative_int, positive_int


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Estimate pi with a serial NumPy Monte Carlo kernel.")
    parser.add_argument("n_samples", type=positive_int, nargs="?", default=DEFAULT_N_SAMPLES)
    parser.add_argument("--seed", type=non_negative_int, default=None, help="Random seed (default: $NUMPI_BENCH_SEED, else unseeded).")
    parser.add_argument("--dtype", default=DEFAULT_DTYPE, choices=list(DTYPES))
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    args = _parse_args(argv)
    seed = env_seed() if args.seed is None else args.seed
    my_pi = estimate_pi(args.n_samples, seed=seed, dtype=args.dtype)
    for line in format_summary(args.n_samples, my_pi, args.dtype):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
