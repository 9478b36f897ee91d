"""Pre-flight validation before a suite run.

Catches setup problems (missing pgbench, unreachable pooler) up front so
they are not mistaken for pooler regressions.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from rich.markup import escape

from .util import resolve_executable, safe_command

if TYPE_CHECKING:
    from rich.console import Console


class CheckSeverity(Enum):
    """Severity level for check results."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class CheckResult:
    """Result of a single validation check."""

    name: str
    passed: bool
    severity: CheckSeverity
    message: str
    details: str | None = None
    suggestion: str | None = None

    @property
    def symbol(self) -> str:
        """Return check symbol for display."""
        if self.passed:
            return "[green]✓[/green]"
        elif self.severity == CheckSeverity.ERROR:
            return "[red]✗[/red]"
        elif self.severity == CheckSeverity.WARNING:
            return "[yellow]⚠[/yellow]"
        else:
            return "[blue]ℹ[/blue]"


@dataclass
class ValidationReport:
    """Aggregated results of all validation checks."""

    checks: list[CheckResult] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Return True if any check failed with ERROR severity."""
        return any(
            not c.passed and c.severity == CheckSeverity.ERROR for c in self.checks
        )

    @property
    def has_warnings(self) -> bool:
        """Return True if any check failed with WARNING severity."""
        return any(
            not c.passed and c.severity == CheckSeverity.WARNING for c in self.checks
        )

    @property
    def passed_count(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.checks if not c.passed)

    def add(self, result: CheckResult) -> None:
        """Add a check result to the report."""
        self.checks.append(result)


def check_pgbench_binary(binary: str) -> CheckResult:
    """
    Check that the pgbench executable can be found.

    Args:
        binary: Executable name (looked up on PATH) or path

    Returns:
        CheckResult with the resolved path on success
    """
    resolved = resolve_executable(binary)
    if resolved is None:
        return CheckResult(
            name="pgbench binary",
            passed=False,
            severity=CheckSeverity.ERROR,
            message=f"pgbench not found: {binary}",
            suggestion="Install the PostgreSQL client tools or set pgbench.binary in the config",
        )

    return CheckResult(
        name="pgbench binary",
        passed=True,
        severity=CheckSeverity.INFO,
        message=f"Found {resolved}",
    )


def check_pgbench_version(binary: str) -> CheckResult:
    """Check that pgbench runs and reports a version."""
    resolved = resolve_executable(binary)
    if resolved is None:
        return CheckResult(
            name="pgbench version",
            passed=False,
            severity=CheckSeverity.ERROR,
            message="Cannot check version: pgbench not found",
        )

    result = safe_command([resolved, "--version"], timeout=10)
    if not result["success"]:
        return CheckResult(
            name="pgbench version",
            passed=False,
            severity=CheckSeverity.ERROR,
            message="pgbench --version failed",
            details=(result["stderr"] or result["stdout"]).strip() or None,
        )

    return CheckResult(
        name="pgbench version",
        passed=True,
        severity=CheckSeverity.INFO,
        message=result["stdout"].strip(),
    )


def check_pooler_reachable(host: str, port: int, timeout: float = 3.0) -> CheckResult:
    """
    Check that the pooler accepts TCP connections.

    Args:
        host: Pooler host
        port: Pooler port
        timeout: Connect timeout in seconds
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as e:
        return CheckResult(
            name="Pooler reachable",
            passed=False,
            severity=CheckSeverity.ERROR,
            message=f"Cannot connect to {host}:{port}",
            details=str(e),
            suggestion="Start the pooler or fix pooler.host / pooler.port in the config",
        )

    return CheckResult(
        name="Pooler reachable",
        passed=True,
        severity=CheckSeverity.INFO,
        message=f"{host}:{port} accepts connections",
    )


def check_password_configured(password: str | None) -> CheckResult:
    """Warn when no password is configured; .pgpass or trust auth may still work."""
    if not password:
        return CheckResult(
            name="Pooler password",
            passed=False,
            severity=CheckSeverity.WARNING,
            message="No password configured",
            suggestion="Set pooler.password (e.g. $PGPASSWORD) unless .pgpass or trust auth is used",
        )

    return CheckResult(
        name="Pooler password",
        passed=True,
        severity=CheckSeverity.INFO,
        message="Password configured",
    )


class PreflightChecker:
    """Runs the pre-flight checks for a loaded harness configuration."""

    def __init__(self, config: dict[str, Any], console: Console | None = None):
        self.config = config
        self.console = console

    def run_all(self, check_network: bool = True) -> ValidationReport:
        """
        Run all checks.

        Args:
            check_network: Also try to connect to the pooler

        Returns:
            ValidationReport with every check result
        """
        report = ValidationReport()
        pooler = self.config["pooler"]
        binary = self.config["pgbench"]["binary"]

        report.add(check_pgbench_binary(binary))
        report.add(check_pgbench_version(binary))
        if check_network:
            report.add(check_pooler_reachable(pooler["host"], pooler["port"]))
        report.add(check_password_configured(pooler.get("password")))

        return report

    def display_report(self, report: ValidationReport) -> None:
        """Display validation report using the Rich console, or plain print."""
        if self.console is None:
            self._display_report_plain(report)
            return

        for check in report.checks:
            self.console.print(f"  {check.symbol} {check.name}: {escape(check.message)}")
            if check.details and not check.passed:
                for line in check.details.split("\n"):
                    self.console.print(f"      {escape(line)}")
            if check.suggestion and not check.passed:
                self.console.print(f"      [dim]→ Fix:[/dim] {escape(check.suggestion)}")

        self.console.print()
        if report.has_errors:
            self.console.print(
                f"[red bold]Summary: {report.passed_count} passed, {report.failed_count} failed[/red bold]"
            )
        elif report.has_warnings:
            self.console.print(
                f"[yellow]Summary: {report.passed_count} passed, {report.failed_count} warnings[/yellow]"
            )
        else:
            self.console.print(
                f"[green]Summary: {report.passed_count} passed, {report.failed_count} failed[/green]"
            )

    def _display_report_plain(self, report: ValidationReport) -> None:
        for check in report.checks:
            symbol = "OK" if check.passed else "FAIL"
            print(f"  [{symbol}] {check.name}: {check.message}")
            if check.details and not check.passed:
                print(f"      {check.details}")
            if check.suggestion and not check.passed:
                print(f"      Fix: {check.suggestion}")

        print()
        print(f"Summary: {report.passed_count} passed, {report.failed_count} failed")
