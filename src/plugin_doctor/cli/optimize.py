"""Optimization CLI commands: list, apply, revert, rollback, backups, purge."""

import typer
from rich.table import Table

from ..models import ActionResult
from ..serializers import backup_to_dict, optimization_to_dict, stats_to_dict
from . import app
from ._common import console, open_doctor, print_json, severity_text


def _report(result: ActionResult) -> None:
    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
        if result.backup_id:
            console.print(f"  [dim]backup: {result.backup_id}[/dim]")
        return
    console.print(f"[red]✗[/red] {result.message}")
    raise typer.Exit(1)


@app.command()
def optimizations(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List available optimizations and which of them are active.
    """
    with open_doctor(ctx) as doctor:
        catalog = doctor.get_available_optimizations()
        active = doctor.optimizer.get_active_optimizations()

    if json_output:
        print_json(
            [
                {**optimization_to_dict(opt), "active": opt_id in active}
                for opt_id, opt in catalog.items()
            ]
        )
        return

    table = Table(title="Optimizations", show_lines=False, pad_edge=True)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Impact", justify="center")
    table.add_column("Difficulty", justify="center")
    table.add_column("Active", justify="center")

    for opt_id, opt in catalog.items():
        record = active.get(opt_id)
        table.add_row(
            opt_id,
            opt.name,
            severity_text(opt.impact.value),
            opt.difficulty,
            f"[green]since {record.applied_at}[/green]" if record else "-",
        )
    console.print(table)


@app.command()
def apply(
    ctx: typer.Context,
    optimization_id: str = typer.Argument(..., help="Optimization id (see 'optimizations')"),
):
    """
    Apply an optimization. A backup is taken first so it can be reverted.
    """
    with open_doctor(ctx) as doctor:
        result = doctor.apply_optimization(optimization_id)
    _report(result)


@app.command()
def revert(
    ctx: typer.Context,
    optimization_id: str = typer.Argument(..., help="Active optimization id"),
):
    """
    Revert an active optimization from its backup.
    """
    with open_doctor(ctx) as doctor:
        result = doctor.revert_optimization(optimization_id)
    _report(result)


@app.command()
def rollback(
    ctx: typer.Context,
    backup_id: str = typer.Argument(..., help="Backup id (see 'backups')"),
):
    """
    Restore the state captured by a backup.
    """
    with open_doctor(ctx) as doctor:
        result = doctor.rollback(backup_id)
    _report(result)


@app.command()
def backups(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List stored backups.
    """
    with open_doctor(ctx) as doctor:
        records = doctor.backups()
        stats = doctor.backup_stats()

    if json_output:
        print_json({"backups": [backup_to_dict(b) for b in records], "stats": stats_to_dict(stats)})
        return

    if not records:
        console.print("[yellow]No backups stored.[/yellow]")
        return

    table = Table(title="Backups", show_lines=False, pad_edge=True)
    table.add_column("ID", style="cyan")
    table.add_column("Created", style="green")
    table.add_column("Type")
    table.add_column("Action", style="bold")
    table.add_column("State")

    for b in records:
        state = f"rolled back {b.rollback_time}" if b.rolled_back else "[green]active[/green]"
        table.add_row(b.id, b.timestamp, b.type.value, b.action, state)

    console.print(table)
    console.print(
        f"  [dim]{stats.total} total, {stats.active} active, {stats.rolled_back} rolled back[/dim]"
    )


@app.command()
def purge(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """
    Delete every option Plugin Doctor has stored (history, backups, toggles).
    """
    if not yes:
        typer.confirm("Delete all Plugin Doctor data for this site?", abort=True)

    with open_doctor(ctx) as doctor:
        removed = doctor.purge()
    console.print(f"Removed {removed} stored options.")
