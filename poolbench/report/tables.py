"""Tabular views of suite results."""

import pandas as pd
from rich.markup import escape
from rich.table import Table

from ..scenarios.suite import SuiteResult

VERDICT_COLUMNS = ["suite", "scenario", "status", "elapsed_s", "returncode", "message"]


def verdict_frame(result: SuiteResult) -> pd.DataFrame:
    """
    One row per scenario verdict, in registration order.

    Args:
        result: Completed suite run

    Returns:
        DataFrame with VERDICT_COLUMNS
    """
    if not result.verdicts:
        return pd.DataFrame(columns=VERDICT_COLUMNS)

    df = pd.DataFrame([v.to_dict() for v in result.verdicts])
    df.insert(0, "suite", result.suite_name)
    df["returncode"] = df["returncode"].astype("Int64")
    return df[VERDICT_COLUMNS]


def verdict_table(result: SuiteResult) -> Table:
    """Rich table for console output."""
    title_style = "green" if result.passed else "red"
    table = Table(
        title=f"[{title_style}]{result.suite_name}[/{title_style}]",
        show_lines=False,
    )
    table.add_column("", width=2)
    table.add_column("Scenario", style="bold")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Message", style="dim")

    for verdict in result.verdicts:
        table.add_row(
            verdict.symbol,
            verdict.scenario_name,
            verdict.status.value,
            f"{verdict.elapsed_s:.1f}s",
            escape(verdict.message or ""),
        )
    return table
