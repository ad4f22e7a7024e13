"""CLI entry point: registers all subcommands."""

import typer

app = typer.Typer(
    name="plugin-doctor",
    help="Plugin Doctor - performance and conflict analysis for plugin host sites",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


# Import subcommands to register them
from .analyze import main as _main_callback  # noqa: F401, E402
from .history import history as _history, trend as _trend  # noqa: F401, E402
from .optimize import apply as _apply, optimizations as _optimizations  # noqa: F401, E402
