"""Analysis commands: analyze, conflicts, export."""

import json
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from ..formatting import format_bytes, format_seconds
from ..logging_config import setup_logging
from ..models import AnalysisReport, Conflict, PerformanceMetric, Recommendation, ScoreSnapshot
from ..serializers import conflicts_to_list, report_to_dict
from . import app
from ._common import GRADE_STYLES, console, open_doctor, print_json, severity_text


@app.callback()
def main(
    ctx: typer.Context,
    site: Optional[Path] = typer.Option(
        None,
        "--site",
        "-s",
        help="Site root to analyze (default: current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
        readable=True,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """
    Estimate plugin cost, detect conflicts, and track a site health score.

    [bold cyan]Examples:[/bold cyan]

      plugin-doctor --site /srv/site analyze

      plugin-doctor analyze --json

      plugin-doctor apply lazy_loading
    """
    ctx.ensure_object(dict)
    ctx.obj.update(site=site, config=config, verbose=verbose, quiet=quiet)
    setup_logging(verbose=verbose, quiet=quiet)


@app.command()
def analyze(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
    no_save: bool = typer.Option(False, "--no-save", help="Do not append the score to the history"),
):
    """
    Run a full analysis pass and show score, plugins, conflicts and advice.
    """
    with open_doctor(ctx) as doctor:
        report = doctor.run_analysis(save_history=not no_save)

    if json_output:
        print_json(report_to_dict(report))
        return

    _output_rich(report)


@app.command()
def conflicts(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List conflicts between active plugins.
    """
    with open_doctor(ctx) as doctor:
        found = doctor.detect_conflicts()

    if json_output:
        print_json(conflicts_to_list(found))
        return

    if not found:
        console.print("[green]No conflicts detected.[/green]")
        return
    _print_conflicts(found)


@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the JSON report to this file instead of stdout"
    ),
):
    """
    Export performance data, conflicts and recommendations as JSON.
    """
    with open_doctor(ctx) as doctor:
        data = doctor.export_results()

    if output is None:
        print_json(data)
        return

    output.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    console.print(f"[green]Report written to[/green] {output}")


# ---------------------------------------------------------------------------
# Rich output
# ---------------------------------------------------------------------------


def _output_rich(report: AnalysisReport) -> None:
    console.print()
    _print_score(report.score, report)
    console.print()
    _print_metrics(report.metrics)
    if report.conflicts:
        console.print()
        _print_conflicts(report.conflicts)
    if report.recommendations:
        console.print()
        _print_recommendations(report.recommendations)
    console.print()


def _print_score(score: ScoreSnapshot, report: AnalysisReport) -> None:
    style = GRADE_STYLES.get(score.grade, "white")
    trend = report.trend
    sign = "+" if trend.change > 0 else ""

    lines = [
        f"[{style}]{score.overall_score}/100  grade {score.grade}[/{style}]"
        f"   trend: {trend.direction.value} ({sign}{trend.change})",
        "",
    ]
    for sub in score.metrics.values():
        lines.append(f"  {sub.label:<22} {sub.score:>3}   [dim]{sub.value}[/dim]")

    console.print(Panel("\n".join(lines), title="Performance score", expand=False))


def _print_metrics(metrics: Dict[str, PerformanceMetric]) -> None:
    if not metrics:
        console.print("[yellow]No active plugins.[/yellow]")
        return

    table = Table(title="Plugins", show_lines=False, pad_edge=True)
    table.add_column("Plugin", style="bold")
    table.add_column("Load", justify="center")
    table.add_column("Score", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Queries", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Callbacks", justify="right")

    ranked = sorted(metrics.values(), key=lambda m: m.load_score, reverse=True)
    for m in ranked:
        table.add_row(
            m.name,
            severity_text(m.load_level.value),
            f"{m.load_score:.2f}",
            format_seconds(m.execution_time),
            str(m.db_queries),
            format_bytes(m.memory_usage, 1),
            str(m.hook_count),
        )
    console.print(table)


def _print_conflicts(found: List[Conflict]) -> None:
    table = Table(title="Conflicts", show_lines=False, pad_edge=True)
    table.add_column("Severity", justify="center")
    table.add_column("Type", style="cyan")
    table.add_column("Plugins")
    table.add_column("Description")

    for c in found:
        table.add_row(
            severity_text(c.severity.value),
            c.type.value,
            ", ".join(c.components) or "-",
            c.description,
        )
    console.print(table)


def _print_recommendations(recommendations: List[Recommendation]) -> None:
    console.print("[bold]Recommendations[/bold]")
    for i, rec in enumerate(recommendations, 1):
        console.print(f"\n {i}. {severity_text(rec.severity.value)} [bold]{rec.title}[/bold]")
        console.print(f"    {rec.description}", markup=False)
        for issue in rec.issues:
            console.print(f"      - {issue}", markup=False)
        for action in rec.actions:
            console.print(f"    [dim]>[/dim] {action}")
