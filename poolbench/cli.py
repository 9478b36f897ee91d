"""Command line interface for the pooler benchmark harness."""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Load .env file if it exists - this must be done early before other imports
try:
    from dotenv import load_dotenv

    load_dotenv(override=True)
except ImportError:
    pass  # python-dotenv not installed, continue without .env support

from .config import load_config
from .debug import set_debug
from .errors import SuiteConfigurationError
from .report import verdict_table, write_reports
from .run.pgbench import PgbenchRunner
from .scenarios import Suite
from .scenarios.catalog import build_suite
from .validation import PreflightChecker

app = typer.Typer(
    name="poolbench",
    help="Run pgbench load scenarios against a PostgreSQL connection pooler",
    no_args_is_help=True,
)

console = Console()


def _load(config: str | None) -> dict:
    try:
        return load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2) from e


def _build_suite(cfg: dict) -> Suite:
    try:
        return build_suite(cfg["suite"], cfg["execution"]["default_timeout_s"])
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2) from e


@app.command("list")
def list_scenarios(
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
) -> None:
    """List the scenarios of the configured suite."""
    cfg = _load(config)
    suite = _build_suite(cfg)

    table = Table(title=suite.name)
    table.add_column("Scenario", style="bold")
    table.add_column("Database")
    table.add_column("SSL")
    table.add_column("Clients", justify="right")
    table.add_column("Think (ms)", justify="right")
    table.add_column("Transactions", justify="right")
    table.add_column("Timeout", justify="right")

    for case in suite:
        s = case.scenario
        table.add_row(
            s.name,
            s.target_database,
            "yes" if s.use_secure_connection else "no",
            str(s.client_count),
            str(s.think_time_ms),
            str(s.transaction_count),
            f"{case.timeout_s}s",
        )
    console.print(table)


@app.command()
def check(
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    skip_network: bool = typer.Option(
        False, "--skip-network", help="Do not try to connect to the pooler"
    ),
) -> None:
    """Run pre-flight checks (pgbench available, pooler reachable)."""
    cfg = _load(config)
    checker = PreflightChecker(cfg, console=console)
    report = checker.run_all(check_network=not skip_network)
    checker.display_report(report)
    if report.has_errors:
        raise typer.Exit(1)


@app.command()
def run(
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    only: str | None = typer.Option(
        None, "--only", help="Comma-separated list of scenarios to run"
    ),
    stop_on_failure: bool = typer.Option(
        False,
        "--stop-on-failure",
        help="Skip remaining scenarios after the first failure",
    ),
    parallel: bool = typer.Option(
        False,
        "--parallel",
        help="Run scenarios concurrently (changes the load shape on the pooler)",
    ),
    output_dir: str | None = typer.Option(
        None, "--output-dir", "-o", help="Directory for result files"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug output for detailed command tracing"
    ),
) -> None:
    """Run the suite and write result files. Exits 1 if any scenario failed."""
    set_debug(debug)

    cfg = _load(config)
    execution = cfg["execution"]
    # Flags can only switch these on; the config decides otherwise
    execution["stop_on_failure"] = execution["stop_on_failure"] or stop_on_failure
    execution["parallel"] = execution["parallel"] or parallel
    if output_dir:
        cfg["report"]["output_dir"] = output_dir

    suite = _build_suite(cfg)
    if only:
        try:
            suite = suite.select(s.strip() for s in only.split(","))
        except SuiteConfigurationError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(2) from e

    pooler = cfg["pooler"]
    outdir = Path(cfg["report"]["output_dir"])
    console.print(
        f"[blue]Running suite:[/] {suite.name} "
        f"[dim]({len(suite)} scenarios via {pooler['host']}:{pooler['port']})[/]"
    )
    if execution["parallel"]:
        console.print("[yellow]Parallel mode: scenarios share the pooler concurrently[/]")

    runner = PgbenchRunner.from_config(cfg)
    try:
        result = suite.run(
            runner,
            stop_on_failure=execution["stop_on_failure"],
            parallel=execution["parallel"],
            max_workers=execution["max_workers"],
            log_dir=outdir / "logs",
        )
    except SuiteConfigurationError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(2) from e

    console.print(verdict_table(result))

    written = write_reports(result, outdir, cfg["report"])
    for kind, path in written.items():
        console.print(f"[dim]{kind}: {path}[/]")

    if result.passed:
        console.print(f"[green]✓ Suite {suite.name} passed[/]")
    else:
        counts = result.counts()
        summary = ", ".join(f"{k}={v}" for k, v in counts.items() if v)
        console.print(f"[red]✗ Suite {suite.name} failed ({summary})[/]")
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
