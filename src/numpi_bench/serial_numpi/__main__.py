from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_DTYPE, DEFAULT_TOLERANCE_SIGMA, DTYPES, SAMPLE_SETS, SEEDS, default_seed, env_seed
from .estimator import estimate_pi, format_summary
from .profiling import profile_run
from .report import report_run
from .runner import timing_run
from .sweep import sweep_run


def _abs_path(p: str) -> Path:
    return Path(p).expanduser().resolve()


def positive_int(v: str) -> int:
    try:
        n = int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {v!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {n}")
    return n


def non_negative_int(v: str) -> int:
    try:
        n = int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {v!r}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {n}")
    return n


def positive_float(v: str) -> float:
    try:
        x = float(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {v!r}") from None
    if not x > 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {x}")
    return x


def configure_logging(level: str) -> None:
    logging.captureWarnings(True)
    logging.basicConfig(level=level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _add_measure_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--out-dir", type=_abs_path, required=True)
    p.add_argument("--dtype", default=DEFAULT_DTYPE, choices=[*DTYPES, "all"])
    p.add_argument("--repeats", type=positive_int, default=3, help="Timed calls per configuration.")
    p.add_argument("--warmup", type=non_negative_int, default=1, help="Untimed calls before timing.")
    p.add_argument(
        "--tolerance-sigma",
        type=positive_float,
        default=DEFAULT_TOLERANCE_SIGMA,
        help="Verification tolerance in standard errors.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="numpi_bench.serial_numpi",
        description="Serial Monte Carlo Pi estimator: run, time, profile and report.",
    )
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    est = sub.add_parser("estimate", help="Estimate pi once and print memory + estimate.")
    est.add_argument("n_samples", type=positive_int)
    est.add_argument("--seed", type=non_negative_int, default=None, help="Random seed (default: $NUMPI_BENCH_SEED, else unseeded).")
    est.add_argument("--dtype", default=DEFAULT_DTYPE, choices=list(DTYPES))

    timing = sub.add_parser("timing", help="Time the kernel over a named sample-size set.")
    _add_measure_args(timing)
    timing.add_argument("--sample-set", default="smoke", choices=[*SAMPLE_SETS, "all"])
    timing.add_argument("--seed", type=non_negative_int, default=None, help="Random seed (default: $NUMPI_BENCH_SEED or 2017).")

    profile = sub.add_parser("profile", help="Line-profile every record in results.json.")
    profile.add_argument("--out-dir", type=_abs_path, required=True)
    profile.add_argument("--n-samples", type=positive_int, default=None, help="Only profile records of this size.")

    report = sub.add_parser("report", help="Generate Markdown report from results.json (no run).")
    report.add_argument("--out-dir", type=_abs_path, required=True)

    sweep = sub.add_parser("sweep", help="Run a convergence sweep over several seeds and check completeness.")
    _add_measure_args(sweep)
    sweep.add_argument("--sample-set", default="convergence", choices=[*SAMPLE_SETS, "all"])
    sweep.add_argument("--seeds", type=non_negative_int, nargs="+", default=list(SEEDS))

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    configure_logging(ns.log_level)

    try:
        if ns.cmd == "estimate":
            seed = env_seed() if ns.seed is None else ns.seed
            my_pi = estimate_pi(ns.n_samples, seed=seed, dtype=ns.dtype)
            for line in format_summary(ns.n_samples, my_pi, ns.dtype):
                print(line)
            return 0
        if ns.cmd == "timing":
            seed = default_seed() if ns.seed is None else ns.seed
            return timing_run(
                out_dir=ns.out_dir,
                sample_set=ns.sample_set,
                dtype=ns.dtype,
                seed=seed,
                repeats=ns.repeats,
                warmup=ns.warmup,
                tolerance_sigma=ns.tolerance_sigma,
            )
        if ns.cmd == "profile":
            return profile_run(out_dir=ns.out_dir, n_samples=ns.n_samples)
        if ns.cmd == "report":
            return report_run(out_dir=ns.out_dir)
        if ns.cmd == "sweep":
            return sweep_run(
                out_dir=ns.out_dir,
                sample_set=ns.sample_set,
                dtype=ns.dtype,
                seeds=ns.seeds,
                repeats=ns.repeats,
                warmup=ns.warmup,
                tolerance_sigma=ns.tolerance_sigma,
            )
    except (FileNotFoundError, KeyError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 2

    raise AssertionError(f"Unhandled cmd: {ns.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
