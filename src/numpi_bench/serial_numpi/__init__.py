"""Serial Monte Carlo Pi estimator (lesson kernel + measurement layer).

This package holds the single-core NumPy estimator used in the profiling lesson,
plus the orchestration around it: timing runs over named sample-size sets,
line-level hotspot profiling, convergence sweeps, and Markdown reports built from
a stable `results.json` schema.
"""

from __future__ import annotations
