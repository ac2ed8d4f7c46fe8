"""``gas`` command-line entry point.

Logging stays silent unless ``-v``/``-vv`` is given or ``GAS_LOG`` names a
level; ``GAS_LOG`` wins over the flags. Only the ``gas_provisioner`` logger
is raised, so third-party libraries keep logging at WARNING.
"""

from __future__ import annotations

import logging
import os
import sys

import typer

from gas_provisioner import __version__

app = typer.Typer(
    name="gas",
    help="Plan and deploy the resources of a gas resource container.",
    no_args_is_help=True,
    add_completion=False,
)

LOG_ENV_VAR = "GAS_LOG"
_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_VERBOSITY = (logging.INFO, logging.DEBUG)


def _log_level(verbose: int) -> int | None:
    """Level for the package logger, or None to leave logging unconfigured."""
    requested = os.environ.get(LOG_ENV_VAR, "").strip().upper()
    if requested:
        known = logging.getLevelNamesMapping()
        if requested in known and requested != "NOTSET":
            return known[requested]
        typer.echo(
            f"WARNING: invalid {LOG_ENV_VAR} level {requested!r}; defaulting to INFO",
            err=True,
        )
        return logging.INFO
    if verbose <= 0:
        return None
    return _VERBOSITY[min(verbose, len(_VERBOSITY)) - 1]


def _configure_logging(verbose: int) -> None:
    level = _log_level(verbose)
    if level is None:
        return
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("gas_provisioner").setLevel(level)


def _show_version(value: bool) -> None:
    if not value:
        return
    typer.echo(f"gas {__version__}")
    raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        is_eager=True,
        callback=_show_version,
        help="Print the gas version and exit.",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help=f"Log progress to stderr (-v info, -vv debug). {LOG_ENV_VAR} overrides.",
    ),
) -> None:
    del version
    _configure_logging(verbose)


# Commands register themselves on ``app`` when imported.
from gas_provisioner.cli import commands as _commands  # noqa: E402, F401
