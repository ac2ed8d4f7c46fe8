"""CLI command implementations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from gas_provisioner.cli import app
from gas_provisioner.cli.errors import handle_error
from gas_provisioner.config.loader import DEFAULT_CONFIG_FILE

if TYPE_CHECKING:
    from gas_provisioner.config.schema import Config
    from gas_provisioner.engine.types import DeployEvent, DeployPlan, DeployResult

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file."),
]

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

AutoApprove = Annotated[
    bool,
    typer.Option("--auto-approve", help="Skip interactive approval."),
]


def _use_color(no_color: bool) -> bool:
    """Determine whether to use color output."""
    return not (no_color or os.environ.get("NO_COLOR"))


def _deploy_with_progress(plan_obj: DeployPlan, cfg: Config, *, color: bool) -> DeployResult:
    """Deploy a plan with a Rich progress bar and one status line per transition."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
    from rich.text import Text

    from gas_provisioner.cli.formatting import format_event
    from gas_provisioner.config import deploy

    console = Console(no_color=not color, highlight=False)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Deploying", total=len(plan_obj.changes()))

        # Runs on worker threads; Progress serializes its own updates.
        def on_progress(event: DeployEvent) -> None:
            progress.console.print(Text.from_ansi(format_event(event, color=color)))
            if event.state.is_terminal:
                progress.advance(task)

        return deploy(plan_obj, cfg, progress=on_progress)


@app.command()
def plan(
    config: ConfigPath = Path(DEFAULT_CONFIG_FILE),
    no_color: NoColor = False,
) -> None:
    """Show changes required by the resource container."""
    from gas_provisioner.cli.formatting import format_plan, format_plan_summary
    from gas_provisioner.config import load
    from gas_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        plan_obj = plan_fn(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))

    if plan_obj.has_changes():
        raise typer.Exit(2)


@app.command(name="deploy")
def deploy_cmd(
    config: ConfigPath = Path(DEFAULT_CONFIG_FILE),
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Deploy every changed resource, group by group."""
    from gas_provisioner.cli.formatting import (
        format_deploy_summary,
        format_plan,
        format_plan_summary,
    )
    from gas_provisioner.config import load
    from gas_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        plan_obj = plan_fn(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if not plan_obj.has_changes():
        typer.echo("No changes. Resources are up-to-date.")
        raise typer.Exit(0)

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))
    typer.echo()

    if not auto_approve:
        try:
            typer.confirm("Do you want to deploy these changes?", abort=True)
        except typer.Abort as e:
            typer.echo("Deploy canceled.", err=True)
            raise typer.Exit(1) from e

    try:
        result = _deploy_with_progress(plan_obj, cfg, color=color)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo()
    typer.echo(format_deploy_summary(result.summary(), color=color))


app.command(name="up", help="Alias for deploy.")(deploy_cmd)


@app.command()
def validate(
    config: ConfigPath = Path(DEFAULT_CONFIG_FILE),
    no_color: NoColor = False,
) -> None:
    """Validate the configuration file and resource container."""
    from gas_provisioner.cli.formatting import styler
    from gas_provisioner.config import load
    from gas_provisioner.engine.graph import DependencyGraph
    from gas_provisioner.resources.container import load_resources

    color = _use_color(no_color)
    try:
        cfg = load(config)
        resources = load_resources(cfg.container_path)
        DependencyGraph({r.id: r.dependencies for r in resources}).validate()
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)("Configuration is valid.", fg="green"))
