"""Report generation for suite results."""

from pathlib import Path
from typing import Any

from ..scenarios.suite import SuiteResult
from ..util import ensure_directory, save_json
from .junit import render_junit
from .tables import verdict_frame, verdict_table


def write_reports(
    result: SuiteResult, output_dir: str | Path, report_config: dict[str, Any] | None = None
) -> dict[str, Path]:
    """
    Write the enabled result files to output_dir.

    Returns:
        Mapping of report kind ("json", "csv", "junit") to written path
    """
    options = report_config or {}
    outdir = ensure_directory(output_dir)
    written: dict[str, Path] = {}

    if options.get("write_json", True):
        path = outdir / "results.json"
        save_json(result.to_dict(), path)
        written["json"] = path

    if options.get("write_csv", True):
        path = outdir / "results.csv"
        verdict_frame(result).to_csv(path, index=False)
        written["csv"] = path

    if options.get("write_junit", True):
        path = outdir / "junit.xml"
        render_junit(result, path)
        written["junit"] = path

    return written


__all__ = [
    "render_junit",
    "verdict_frame",
    "verdict_table",
    "write_reports",
]
