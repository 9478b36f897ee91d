"""Scenario registry and suite execution."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from ..common import VerdictStatus
from ..config import DEFAULT_TIMEOUT_S
from ..debug import debug_print
from ..errors import BenchmarkSetupError, BenchmarkTimeoutError, SuiteConfigurationError
from ..run.base import BenchmarkRunner
from ..run.parallel_executor import ParallelExecutor
from ..util import Timer
from ..verify.assertion import (
    Verdict,
    assert_outcome,
    setup_error_verdict,
    skipped_verdict,
    timeout_verdict,
)
from .scenario import Scenario

console = Console()


@dataclass(frozen=True)
class SuiteCase:
    """A registered scenario together with its time limit."""

    scenario: Scenario
    timeout_s: int

    @property
    def name(self) -> str:
        return self.scenario.name


@dataclass
class SuiteResult:
    """Verdicts of one suite run, in registration order."""

    suite_name: str
    verdicts: list[Verdict] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    elapsed_s: float = 0.0

    @property
    def passed(self) -> bool:
        """True when every scenario passed."""
        return bool(self.verdicts) and all(v.passed for v in self.verdicts)

    def count(self, status: VerdictStatus) -> int:
        return sum(1 for v in self.verdicts if v.status == status)

    def counts(self) -> dict[str, int]:
        """Number of verdicts per status, including zero counts."""
        return {status.value: self.count(status) for status in VerdictStatus}

    def get(self, scenario_name: str) -> Verdict:
        for verdict in self.verdicts:
            if verdict.scenario_name == scenario_name:
                return verdict
        raise KeyError(scenario_name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "suite": self.suite_name,
            "passed": self.passed,
            "started_at": self.started_at.isoformat(),
            "elapsed_s": round(self.elapsed_s, 3),
            "counts": self.counts(),
            "verdicts": [v.to_dict() for v in self.verdicts],
        }


class Suite:
    """An ordered, named collection of scenarios.

    Scenarios run one after another in registration order unless parallel
    execution is requested explicitly. The pooler keeps state between
    scenarios, so the order is part of what is being tested.
    """

    def __init__(self, name: str, default_timeout_s: int = DEFAULT_TIMEOUT_S):
        if not name:
            raise SuiteConfigurationError("Suite name cannot be empty")
        if default_timeout_s < 1:
            raise SuiteConfigurationError(
                f"default_timeout_s must be positive (got {default_timeout_s})"
            )
        self.name = name
        self.default_timeout_s = default_timeout_s
        self._cases: list[SuiteCase] = []

    def register(self, scenario: Scenario, timeout_s: int | None = None) -> Suite:
        """Append a scenario; returns the suite so calls can be chained."""
        if any(case.name == scenario.name for case in self._cases):
            raise SuiteConfigurationError(
                f"Duplicate scenario name '{scenario.name}' in suite '{self.name}'"
            )
        effective_timeout = self.default_timeout_s if timeout_s is None else timeout_s
        if effective_timeout < 1:
            raise SuiteConfigurationError(
                f"Scenario '{scenario.name}': timeout must be positive (got {effective_timeout})"
            )
        self._cases.append(SuiteCase(scenario=scenario, timeout_s=effective_timeout))
        return self

    @property
    def cases(self) -> tuple[SuiteCase, ...]:
        return tuple(self._cases)

    @property
    def names(self) -> list[str]:
        return [case.name for case in self._cases]

    def __len__(self) -> int:
        return len(self._cases)

    def __iter__(self) -> Iterator[SuiteCase]:
        return iter(self._cases)

    def __repr__(self) -> str:
        return f"Suite(name={self.name!r}, cases={self.names!r})"

    def select(self, names: Iterable[str]) -> Suite:
        """Return a new suite holding only the named cases, in registration order."""
        wanted = set(names)
        unknown = wanted - set(self.names)
        if unknown:
            raise SuiteConfigurationError(
                f"Unknown scenario(s): {', '.join(sorted(unknown))}. "
                f"Available: {', '.join(self.names)}"
            )
        subset = Suite(self.name, self.default_timeout_s)
        for case in self._cases:
            if case.name in wanted:
                subset.register(case.scenario, case.timeout_s)
        return subset

    def run(
        self,
        runner: BenchmarkRunner,
        stop_on_failure: bool = False,
        parallel: bool = False,
        max_workers: int | None = None,
        log_dir: Path | str | None = None,
    ) -> SuiteResult:
        """
        Execute every registered scenario and collect the verdicts.

        Args:
            runner: Adapter that runs one load shape
            stop_on_failure: Record the remaining scenarios as skipped after
                the first failure instead of running them
            parallel: Run scenarios concurrently (explicit opt-in)
            max_workers: Thread pool size for parallel runs
            log_dir: Directory for per-scenario logs of parallel runs

        Returns:
            SuiteResult with one verdict per scenario, in registration order
        """
        if parallel and stop_on_failure:
            raise SuiteConfigurationError(
                "stop_on_failure cannot be combined with parallel execution"
            )

        result = SuiteResult(suite_name=self.name)
        with Timer(f"suite {self.name}") as timer:
            if parallel:
                result.verdicts = self._run_parallel(runner, max_workers, log_dir)
            else:
                result.verdicts = self._run_sequential(runner, stop_on_failure)
        result.elapsed_s = timer.elapsed
        return result

    def _run_sequential(
        self, runner: BenchmarkRunner, stop_on_failure: bool
    ) -> list[Verdict]:
        verdicts: list[Verdict] = []
        failed_case: str | None = None

        for case in self._cases:
            if failed_case is not None:
                verdicts.append(skipped_verdict(case.name, f"'{failed_case}' failed"))
                continue

            console.print(f"[blue]▶ {case.name}[/blue] [dim]{case.scenario.describe()}[/dim]")
            verdict = self._run_case(runner, case)
            console.print(f"  {verdict.symbol} {case.name} ({verdict.elapsed_s:.1f}s)")
            if verdict.message:
                console.print(f"    [dim]{escape(verdict.message)}[/dim]")
            verdicts.append(verdict)

            if stop_on_failure and verdict.failed:
                failed_case = case.name

        return verdicts

    def _run_parallel(
        self,
        runner: BenchmarkRunner,
        max_workers: int | None,
        log_dir: Path | str | None,
    ) -> list[Verdict]:
        executor = ParallelExecutor(max_workers=max_workers or max(1, len(self._cases)))

        def make_task(case: SuiteCase) -> Callable[[], Verdict]:
            log = executor.create_output_callback(case.name)
            case_runner = runner
            with_callback = getattr(runner, "with_output_callback", None)
            if callable(with_callback):
                case_runner = with_callback(log)

            def task() -> Verdict:
                log(case.scenario.describe())
                verdict = self._run_case(case_runner, case)
                log(f"{verdict.status}: {verdict.message or 'ok'}")
                return verdict

            return task

        tasks = {case.name: make_task(case) for case in self._cases}
        results = executor.execute_parallel(tasks, f"Suite {self.name}", log_dir=log_dir)

        verdicts = []
        for case in self._cases:
            verdict = results.get(case.name)
            if verdict is None:
                verdict = setup_error_verdict(case.name, "scenario task raised an exception")
            verdicts.append(verdict)
        return verdicts

    def _run_case(self, runner: BenchmarkRunner, case: SuiteCase) -> Verdict:
        """Run one scenario; never raises for a failure of that scenario."""
        scenario = case.scenario
        with Timer(case.name) as timer:
            try:
                outcome = runner.execute(
                    scenario.target_database,
                    scenario.use_secure_connection,
                    scenario.client_count,
                    scenario.think_time_ms,
                    scenario.transaction_count,
                    timeout=case.timeout_s,
                )
            except BenchmarkTimeoutError:
                debug_print(f"{case.name}: timed out after {case.timeout_s}s")
                return timeout_verdict(case.name, case.timeout_s, elapsed_s=timer.elapsed)
            except BenchmarkSetupError as e:
                debug_print(f"{case.name}: setup error: {e}")
                return setup_error_verdict(case.name, str(e), elapsed_s=timer.elapsed)
            except Exception as e:
                # No exit status was produced, so this cannot be a benchmark failure
                debug_print(f"{case.name}: runner raised {type(e).__name__}: {e}")
                return setup_error_verdict(
                    case.name, f"{type(e).__name__}: {e}", elapsed_s=timer.elapsed
                )

        return assert_outcome(case.name, outcome)
