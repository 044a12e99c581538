"""Benchmark ("deathmatch"): compare stage combinations over one recording."""

from __future__ import annotations

from voxpipe.benchmark.engine import BenchmarkEngine
from voxpipe.benchmark.models import BenchmarkReport, BenchmarkResult
from voxpipe.benchmark.scoring import calculate_accuracy, composite_score, rank_results
from voxpipe.benchmark.state import BenchmarkRun
from voxpipe.benchmark.variants import BenchmarkVariant, benchmark_variants

__all__ = [
    "BenchmarkEngine",
    "BenchmarkReport",
    "BenchmarkResult",
    "BenchmarkRun",
    "BenchmarkVariant",
    "benchmark_variants",
    "calculate_accuracy",
    "composite_score",
    "rank_results",
]
