"""Common enums used across the poolbench harness."""

from enum import Enum


class VerdictStatus(str, Enum):
    """Outcome of a single scenario run.

    - PASS: pgbench exited with status 0
    - BENCHMARK_FAILURE: pgbench ran to completion but reported a failure
    - TIMEOUT: pgbench did not finish in time and was terminated
    - SETUP_ERROR: pgbench could not be started at all
    - SKIPPED: not run because an earlier scenario failed (stop-on-failure)
    """

    PASS = "pass"
    BENCHMARK_FAILURE = "benchmark_failure"
    TIMEOUT = "timeout"
    SETUP_ERROR = "setup_error"
    SKIPPED = "skipped"

    @classmethod
    def failures(cls) -> set["VerdictStatus"]:
        """Return the statuses that count as a failed case."""
        return {cls.BENCHMARK_FAILURE, cls.TIMEOUT, cls.SETUP_ERROR}

    def __str__(self) -> str:
        return self.value


class SslMode(str, Enum):
    """libpq sslmode values handed to pgbench."""

    REQUIRE = "require"
    DISABLE = "disable"

    @classmethod
    def for_connection(cls, use_secure_connection: bool) -> "SslMode":
        return cls.REQUIRE if use_secure_connection else cls.DISABLE

    def __str__(self) -> str:
        return self.value
