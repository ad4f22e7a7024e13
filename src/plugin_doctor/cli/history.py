"""Score history CLI commands: history and trend."""

import typer
from rich.table import Table

from ..models import TrendDirection
from ..serializers import snapshot_to_dict, trend_to_dict
from . import app
from ._common import GRADE_STYLES, console, open_doctor, print_json

_TREND_STYLES = {
    TrendDirection.IMPROVING: "green",
    TrendDirection.DECLINING: "red",
    TrendDirection.STABLE: "dim",
}


def _sparkline(values: list) -> str:
    """Generate an ASCII sparkline from a list of numeric values."""
    if not values:
        return ""
    blocks = " ▁▂▃▄▅▆▇█"
    mn, mx = min(values), max(values)
    if mx == mn:
        return blocks[4] * len(values)
    return "".join(blocks[min(8, int((v - mn) / (mx - mn) * 8))] for v in values)


@app.command()
def history(
    ctx: typer.Context,
    last_n: int = typer.Option(
        10,
        "--last",
        "-n",
        help="Number of recent scores to list",
        min=1,
        max=30,
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List recorded health scores, oldest first.

    [bold cyan]Examples:[/bold cyan]

      plugin-doctor history

      plugin-doctor history --last 5 --json
    """
    with open_doctor(ctx) as doctor:
        snapshots = doctor.history(last_n)

    if json_output:
        print_json([snapshot_to_dict(s) for s in snapshots])
        return

    if not snapshots:
        console.print(
            "[yellow]No history found.[/yellow] "
            "Run [bold]plugin-doctor analyze[/bold] first to record a score."
        )
        raise typer.Exit(0)

    table = Table(title="Score History", show_lines=False, pad_edge=True)
    table.add_column("Timestamp", style="green")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Grade", justify="center")
    for key in snapshots[-1].metrics:
        table.add_column(key, justify="right", style="dim")

    for s in snapshots:
        style = GRADE_STYLES.get(s.grade, "white")
        table.add_row(
            s.timestamp,
            str(s.overall_score),
            f"[{style}]{s.grade}[/{style}]",
            *(str(s.metrics[k].score) if k in s.metrics else "-" for k in snapshots[-1].metrics),
        )

    console.print()
    console.print(table)
    console.print(f"  {_sparkline([s.overall_score for s in snapshots])}")
    console.print()


@app.command()
def trend(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Show whether the health score is improving, declining or stable.
    """
    with open_doctor(ctx) as doctor:
        current = doctor.trend()
        recent = doctor.history(doctor.config.thresholds.trend_window)

    if json_output:
        print_json(trend_to_dict(current))
        return

    style = _TREND_STYLES[current.direction]
    sign = "+" if current.change > 0 else ""
    console.print(
        f"Trend: [{style}]{current.direction.value}[/{style}] ({sign}{current.change} points)"
    )
    if recent:
        console.print(f"  {_sparkline([s.overall_score for s in recent])}")
