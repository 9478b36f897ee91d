"""Benchmark execution modules."""

from .base import BenchmarkRunner, CallableRunner, ExecutionOutcome
from .pgbench import PgbenchRunner

__all__ = [
    "BenchmarkRunner",
    "CallableRunner",
    "ExecutionOutcome",
    "PgbenchRunner",
]
