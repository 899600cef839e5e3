"""
Runner module - Benchmarks the host under a tuning profile.

Components:
- BenchmarkRunner: Sequential rounds, averages and performance score
- ApacheBench: HTTP load generation via ab
- DatabaseWorkload: Timed PostgreSQL query
"""

from .benchmark import BenchmarkRunner, RunnerConfig
from .loadgen import ApacheBench, LoadGenerator, LoadResult
from .workload import DatabaseWorkload

__all__ = [
    "BenchmarkRunner",
    "RunnerConfig",
    "ApacheBench",
    "LoadGenerator",
    "LoadResult",
    "DatabaseWorkload",
]
