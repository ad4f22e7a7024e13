"""
Logging configuration for Plugin Doctor.

Doctor modules log under ``plugin_doctor``. Plugins imported while a site
boots live under :data:`PLUGIN_MODULE_PREFIX`, so their own loggers can be
held at a separate level from the doctor's.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .exceptions import PluginDoctorError

PLUGIN_MODULE_PREFIX = "_plugin_doctor_site"


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging with a rich handler on stderr.

    Args:
        verbose: DEBUG for the doctor and for booted plugins
        quiet: only errors from the doctor; booted plugins stay silent
        log_file: Optional file path to append logs to

    Returns:
        Configured logger instance for plugin_doctor
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
            # plugin names and log lines contain brackets
            markup=False,
            show_time=verbose,
            show_path=verbose,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    # force: the CLI may configure logging once per invocation in one process
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    logger = logging.getLogger("plugin_doctor")
    logger.setLevel(level)

    plugin_level = logging.DEBUG if verbose else logging.CRITICAL if quiet else logging.ERROR
    logging.getLogger(PLUGIN_MODULE_PREFIX).setLevel(plugin_level)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a doctor module, namespaced under ``plugin_doctor``."""
    if name is None:
        return logging.getLogger("plugin_doctor")

    if not name.startswith("plugin_doctor"):
        name = f"plugin_doctor.{name}"

    return logging.getLogger(name)


def log_error(
    logger: logging.Logger, error: PluginDoctorError, level: int = logging.WARNING
) -> None:
    """Log a recovered doctor error; its hint follows at DEBUG."""
    logger.log(level, str(error))
    if error.hint:
        logger.debug(f"hint: {error.hint}")
