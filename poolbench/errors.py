"""Exception types raised by the pooler benchmark harness."""

from __future__ import annotations


class PoolbenchError(Exception):
    """Base class for harness errors."""


class SuiteConfigurationError(PoolbenchError, ValueError):
    """Raised when a suite is assembled incorrectly (duplicate names, bad timeouts)."""


class BenchmarkSetupError(PoolbenchError):
    """Raised when the benchmark tool cannot be started at all.

    This is distinct from a benchmark failure: the tool never ran, so there is
    no exit status to judge.
    """


class BenchmarkTimeoutError(PoolbenchError):
    """Raised when a benchmark run exceeds its allotted time.

    The runner has already terminated the spawned process group when this is
    raised.
    """

    def __init__(self, timeout_s: float, command: str = ""):
        self.timeout_s = timeout_s
        self.command = command
        super().__init__(f"Benchmark did not finish within {timeout_s:g}s")
