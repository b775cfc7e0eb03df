"""auditscore CLI — Entry point for scoring analyzer results."""

import json
import logging
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from auditscore import __app_name__, __version__
from auditscore.config import resolve_history_path
from auditscore.core.aggregation import build_aggregates
from auditscore.core.pipeline import AnalysisResult, run_analysis
from auditscore.errors import MalformedFindings
from auditscore.history.storage import JsonFileStorage
from auditscore.history.store import HistoryStore
from auditscore.logging_config import setup_logging
from auditscore.models import CRITICAL, HIGH, LOW, MEDIUM, SEVERITIES, Findings
from auditscore.utils import read_json_document

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & Console
# ---------------------------------------------------------------------------

app = typer.Typer(
    name=__app_name__,
    help="🛡️ auditscore — Security score and history for smart-contract audits.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

# ---------------------------------------------------------------------------
# Severity / grade → Rich color mapping
# ---------------------------------------------------------------------------

_SEVERITY_COLORS: dict[str, str] = {
    CRITICAL: "red",
    HIGH: "dark_orange",
    MEDIUM: "yellow",
    LOW: "blue",
}

_GRADE_COLORS: dict[str, str] = {
    "A+": "green",
    "A": "green",
    "B": "yellow",
    "C": "dark_orange",
    "D": "red",
}

# ---------------------------------------------------------------------------
# Version callback
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


@app.callback()
def main(
    version: Optional[bool] = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-v",
        help="Show the application version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable debug logging on stderr.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors.",
    ),
) -> None:
    """auditscore — turn analyzer findings into a security grade."""
    setup_logging(verbose=verbose, quiet=quiet)


def _open_store(history_file: Optional[str]) -> HistoryStore:  # noqa: UP007
    path = resolve_history_path(history_file)
    logger.debug("Using history file %s", path)
    return HistoryStore(JsonFileStorage(path))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def score(
    findings_file: str = typer.Argument(
        ...,
        help="Analyzer JSON output to score ('-' reads stdin).",
    ),
    label: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--label",
        "-l",
        help="Contract name stored in the history (default: 'Contract N').",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON instead of Rich tables.",
    ),
    no_history: bool = typer.Option(
        False,
        "--no-history",
        help="Do not record this analysis in the history.",
    ),
    history_file: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--history-file",
        help="History file location (default: $AUDITSCORE_HISTORY_FILE or ~/.auditscore/history.json).",
    ),
    fail_under: Optional[int] = typer.Option(  # noqa: UP007
        None,
        "--fail-under",
        min=0,
        max=100,
        help="Exit with code 1 if the security score is below this value.",
    ),
) -> None:
    """Score an analyzer result and record it in the history."""

    # --- Read document ---
    try:
        payload = read_json_document(findings_file)
    except (FileNotFoundError, IsADirectoryError) as exc:
        console.print(f"[bold red]✗[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except MalformedFindings as exc:
        console.print(f"[bold red]✗ Malformed findings:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    # --- Run pipeline ---
    store = None if no_history else _open_store(history_file)
    try:
        result = run_analysis(payload, label=label, store=store)
    except MalformedFindings as exc:
        if output_json:
            print(json.dumps({"error": str(exc)}, indent=2))
        else:
            console.print(f"[bold red]✗ Malformed findings:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    # --- Output ---
    if output_json:
        _print_json(result)
    else:
        _print_rich(result)

    if result.failed:
        raise typer.Exit(code=1)

    # --- Fail-under check ---
    if fail_under is not None and result.report.security_score < fail_under:
        if not output_json:
            console.print(
                f"\n[bold red]✗ Score check failed:[/bold red] "
                f"{result.report.security_score} is below [bold]{fail_under}[/bold]."
            )
        raise typer.Exit(code=1)


@app.command()
def history(
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output the history as JSON instead of a Rich table.",
    ),
    show: Optional[int] = typer.Option(  # noqa: UP007
        None,
        "--show",
        min=1,
        help="Re-display the stored analysis at this position (1 = newest).",
    ),
    history_file: Optional[str] = typer.Option(  # noqa: UP007
        None,
        "--history-file",
        help="History file location (default: $AUDITSCORE_HISTORY_FILE or ~/.auditscore/history.json).",
    ),
) -> None:
    """List past analyses, newest first."""
    entries = _open_store(history_file).load()

    if show is None:
        if output_json:
            print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        else:
            _print_history_table(entries)
        return

    if show > len(entries):
        console.print(
            f"[bold red]✗[/bold red] No analysis #{show} in history "
            f"({len(entries)} stored)."
        )
        raise typer.Exit(code=1)

    entry = entries[show - 1]
    try:
        findings = Findings.from_dict(entry.findings)
        aggregates = build_aggregates(findings)
    except MalformedFindings as exc:
        console.print(f"[bold red]✗ Stored analysis is unreadable:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    result = AnalysisResult(
        findings=findings,
        report=entry.score,
        aggregates=aggregates,
        entry=entry,
    )
    if output_json:
        _print_json(result)
    else:
        console.print(
            f"[dim]{escape(entry.contract_label)} — analyzed {_format_timestamp(entry.timestamp)}[/dim]\n"
        )
        _print_rich(result)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _format_timestamp(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, OverflowError, OSError):
        # Outside the platform's date range; show the raw milliseconds.
        return str(timestamp)


def _print_json(result: AnalysisResult) -> None:
    """Print an analysis as structured JSON."""
    print(json.dumps(result.to_dict(), indent=2))


def _print_rich(result: AnalysisResult) -> None:
    """Render an analysis using Rich tables and panels."""
    if result.failed:
        console.print(
            Panel(
                f"[bold red]✗ Analysis failed:[/bold red] {escape(result.findings.error)}",
                border_style="red",
            )
        )
        return

    _print_score(result)
    if result.findings.vulnerabilities:
        _print_vulnerabilities_table(result)
    else:
        console.print(
            Panel(
                "[bold green]✔ No vulnerabilities reported[/bold green]",
                border_style="green",
            )
        )
    _print_metrics(result)


def _print_score(result: AnalysisResult) -> None:
    """Print the grade, score and severity breakdown."""
    report = result.report
    color = _GRADE_COLORS.get(report.grade, "white")
    counts = report.severity_counts

    lines = [
        f"[bold {color}]{report.grade}[/bold {color}]  "
        f"[bold]{report.security_score}[/bold]/100",
        "",
    ]
    for severity in SEVERITIES:
        sev_color = _SEVERITY_COLORS[severity]
        lines.append(
            f"[bold {sev_color}]{severity + ':':<9}[/bold {sev_color}] {counts.get(severity, 0)}"
        )
    lines.append("")
    lines.append(
        f"[dim]Penalties — vulnerabilities {report.penalties.vulnerabilities:g}, "
        f"complexity {report.penalties.complexity:g}, gas {report.penalties.gas:g}[/dim]"
    )

    console.print(
        Panel(
            "\n".join(lines),
            title="🛡️ Security Score",
            border_style=color,
        )
    )


def _print_vulnerabilities_table(result: AnalysisResult) -> None:
    """Render reported vulnerabilities as a Rich table."""
    table = Table(
        title="🔍 Detected Vulnerabilities",
        show_lines=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Severity", justify="center")
    table.add_column("Category", style="bold")
    table.add_column("Location", justify="right", style="dim")
    table.add_column("Description", max_width=50)
    table.add_column("Recommendation", max_width=40)

    for idx, vuln in enumerate(result.findings.vulnerabilities, start=1):
        color = _SEVERITY_COLORS.get(vuln.normalized_severity or "", "white")
        table.add_row(
            str(idx),
            f"[bold {color}]{escape(vuln.severity)}[/bold {color}]",
            escape(vuln.category),
            f"{vuln.location.start}-{vuln.location.end}",
            escape(vuln.description),
            escape(vuln.recommendation or ""),
        )

    console.print(table)
    console.print()


def _print_metrics(result: AnalysisResult) -> None:
    """Print gas, complexity and warning figures."""
    findings = result.findings
    aggregates = result.aggregates

    summary_lines = [
        f"[bold]Deployment gas:[/bold]   {findings.gas_usage.estimated_deployment_cost:,}",
        f"[bold]Complexity score:[/bold] {findings.complexity_score}/100",
        f"[bold]Warnings:[/bold]         {len(findings.warnings)}",
    ]
    console.print(
        Panel(
            "\n".join(summary_lines),
            title="📊 Contract Metrics",
            border_style="cyan",
        )
    )

    if aggregates is None:
        return

    if aggregates.function_gas_costs or aggregates.function_complexities:
        table = Table(title="⛽ Functions", header_style="bold magenta")
        table.add_column("Function", style="cyan")
        table.add_column("Gas", justify="right")
        table.add_column("Complexity", justify="right")

        complexities = dict(aggregates.function_complexities)
        names = [name for name, _ in aggregates.function_gas_costs]
        names += [name for name in complexities if name not in names]
        gas_costs = dict(aggregates.function_gas_costs)
        for name in names:
            gas = gas_costs.get(name)
            complexity = complexities.get(name)
            table.add_row(
                escape(name),
                f"{gas:,}" if gas is not None else "-",
                f"{complexity:g}" if complexity is not None else "-",
            )
        console.print(table)

    if aggregates.warning_categories:
        table = Table(title="⚠️ Warnings by Category", header_style="bold magenta")
        table.add_column("Category", style="bold")
        table.add_column("Count", justify="right")
        for category, count in aggregates.warning_categories.items():
            table.add_row(escape(category), str(count))
        console.print(table)


def _print_history_table(entries: list) -> None:
    """Render the history log as a Rich table."""
    if not entries:
        console.print(
            Panel("[dim]No analyses recorded yet.[/dim]", border_style="cyan")
        )
        return

    table = Table(title="🕘 Analysis History", header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Contract", style="cyan")
    table.add_column("Analyzed", style="dim")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="center")

    for idx, entry in enumerate(entries, start=1):
        color = _GRADE_COLORS.get(entry.score.grade, "white")
        table.add_row(
            str(idx),
            escape(entry.contract_label),
            _format_timestamp(entry.timestamp),
            str(entry.score.security_score),
            f"[bold {color}]{entry.score.grade}[/bold {color}]",
        )

    console.print(table)
