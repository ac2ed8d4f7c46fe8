"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from gas_provisioner.config.loader import ConfigError
    from gas_provisioner.core.state import SnapshotIOError
    from gas_provisioner.engine.errors import (
        AggregateDeployError,
        ConfigResolutionError,
        GraphError,
        UnknownResourceTypeError,
        UnsupportedActionError,
    )

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, ConfigResolutionError):
        _err(f"Resource configuration error: {exc}", fg=fg)
    elif isinstance(exc, GraphError):
        _err(f"Invalid dependency graph: {exc}", fg=fg)
    elif isinstance(exc, (UnknownResourceTypeError, UnsupportedActionError)):
        _err(f"Unsupported change: {exc}", fg=fg)
    elif isinstance(exc, SnapshotIOError):
        _err(f"Snapshot error: {exc}", fg=fg)
    elif isinstance(exc, AggregateDeployError):
        _err(f"Deploy failed: {exc}", fg=fg)
        s = exc.result.summary()
        parts = [
            f"{n} {verb}"
            for n, verb in (
                (s["create"], "created"),
                (s["update"], "updated"),
                (s["delete"], "deleted"),
            )
            if n
        ]
        if parts:
            _err(f"  Partial result: {', '.join(parts)}.", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
