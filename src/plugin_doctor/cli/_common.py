"""Shared CLI helpers."""

import json
from contextlib import contextmanager
from typing import Any, Iterator

import typer
from rich.console import Console
from rich.markup import escape

from ..config import load_config
from ..doctor import PerformanceDoctor, open_site
from ..exceptions import PluginDoctorError
from ..logging_config import get_logger

console = Console()
logger = get_logger(__name__)

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "dim"}
GRADE_STYLES = {"A": "bold green", "B": "green", "C": "yellow", "D": "red", "F": "bold red"}


def severity_text(value: str) -> str:
    style = SEVERITY_STYLES.get(value, "white")
    return f"[{style}]{value.upper()}[/{style}]"


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


@contextmanager
def open_doctor(ctx: typer.Context) -> Iterator[PerformanceDoctor]:
    """Doctor for the site selected by the global options.

    Configuration and site errors are reported and turned into exit code 1.
    """
    opts = ctx.obj or {}
    try:
        config = load_config(
            config_file=opts.get("config"),
            site_root=str(opts["site"]) if opts.get("site") else None,
            verbose=opts.get("verbose", False),
            quiet=opts.get("quiet", False),
        )
    except PluginDoctorError as e:
        logger.error(str(e))
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        if e.hint:
            console.print(f"[dim]{escape(e.hint)}[/dim]")
        raise typer.Exit(1)

    try:
        with open_site(config) as doctor:
            yield doctor
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
