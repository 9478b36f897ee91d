"""JUnit XML rendering so CI test reporters can pick up suite results."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..common import VerdictStatus
from ..scenarios.suite import SuiteResult

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _format_seconds(value: float) -> str:
    """Format seconds the way JUnit consumers expect."""
    return f"{value:.3f}"


def render_junit(result: SuiteResult, output_file: Path | None = None) -> str:
    """
    Render a suite result as a JUnit XML document.

    Benchmark failures become <failure>, timeouts and setup errors become
    <error> with their own type, skipped cases become <skipped>.

    Args:
        result: Completed suite run
        output_file: Path to save the XML to

    Returns:
        Rendered XML content
    """
    jinja_env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["xml", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    jinja_env.filters["seconds"] = _format_seconds

    template = jinja_env.get_template("junit.xml.j2")
    xml_content = template.render(
        result=result,
        failures=result.count(VerdictStatus.BENCHMARK_FAILURE),
        errors=result.count(VerdictStatus.TIMEOUT) + result.count(VerdictStatus.SETUP_ERROR),
        skipped=result.count(VerdictStatus.SKIPPED),
        Status=VerdictStatus,
    )

    if output_file:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(xml_content)

    return xml_content
