"""Turn benchmark outcomes into per-scenario verdicts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..common import VerdictStatus
from ..run.base import ExecutionOutcome

# Matched verbatim by downstream tooling
SUCCESS_NOT_FOUND = "success status not found"


@dataclass(frozen=True)
class Verdict:
    """Pass/fail result for one scenario."""

    scenario_name: str
    status: VerdictStatus
    message: str | None = None
    elapsed_s: float = 0.0
    returncode: int | None = None

    @property
    def passed(self) -> bool:
        return self.status == VerdictStatus.PASS

    @property
    def failed(self) -> bool:
        return self.status in VerdictStatus.failures()

    @property
    def symbol(self) -> str:
        """Return verdict symbol for display."""
        if self.status == VerdictStatus.PASS:
            return "[green]✓[/green]"
        elif self.status == VerdictStatus.TIMEOUT:
            return "[yellow]⏱[/yellow]"
        elif self.status == VerdictStatus.SKIPPED:
            return "[dim]-[/dim]"
        else:
            return "[red]✗[/red]"

    def check(self) -> None:
        """Raise AssertionError unless the verdict is a pass.

        Lets any test framework report the scenario as a failed case.
        """
        if not self.passed:
            raise AssertionError(self.message or str(self.status))

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario": self.scenario_name,
            "status": self.status.value,
            "message": self.message,
            "elapsed_s": round(self.elapsed_s, 3),
            "returncode": self.returncode,
        }


def assert_outcome(scenario_name: str, outcome: ExecutionOutcome) -> Verdict:
    """Pass when the benchmark reported success, fail otherwise."""
    if outcome.succeeded:
        return Verdict(
            scenario_name=scenario_name,
            status=VerdictStatus.PASS,
            elapsed_s=outcome.elapsed_s,
            returncode=outcome.returncode,
        )
    return Verdict(
        scenario_name=scenario_name,
        status=VerdictStatus.BENCHMARK_FAILURE,
        message=SUCCESS_NOT_FOUND,
        elapsed_s=outcome.elapsed_s,
        returncode=outcome.returncode,
    )


def timeout_verdict(scenario_name: str, timeout_s: float, elapsed_s: float = 0.0) -> Verdict:
    return Verdict(
        scenario_name=scenario_name,
        status=VerdictStatus.TIMEOUT,
        message=f"timed out after {timeout_s:g}s",
        elapsed_s=elapsed_s,
    )


def setup_error_verdict(scenario_name: str, detail: str, elapsed_s: float = 0.0) -> Verdict:
    return Verdict(
        scenario_name=scenario_name,
        status=VerdictStatus.SETUP_ERROR,
        message=f"setup error: {detail}",
        elapsed_s=elapsed_s,
    )


def skipped_verdict(scenario_name: str, reason: str) -> Verdict:
    return Verdict(
        scenario_name=scenario_name,
        status=VerdictStatus.SKIPPED,
        message=f"skipped: {reason}",
    )
