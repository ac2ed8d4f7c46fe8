"""Plan and deploy output rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from gas_provisioner.engine.types import Action, DeployState

if TYPE_CHECKING:
    from collections.abc import Callable

    from gas_provisioner.engine.types import DeployEvent, DeployPlan


class _ActionStyle(NamedTuple):
    color: str
    symbol: str
    description: str


_ACTION_STYLES: dict[Action, _ActionStyle] = {
    Action.CREATE: _ActionStyle("green", "+", "will be created"),
    Action.UPDATE: _ActionStyle("yellow", "~", "will be updated in-place"),
    Action.DELETE: _ActionStyle("red", "-", "will be deleted"),
}


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def _align_values(items: dict[str, str]) -> list[tuple[str, str]]:
    """Right-pad keys so ``=`` signs align."""
    if not items:
        return []
    max_key = max(len(k) for k in items)
    return [(k.ljust(max_key), v) for k, v in items.items()]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if value is None:
        return "null"
    return str(value)


def _change_attrs(plan: DeployPlan, rid: str, action: Action) -> dict[str, str]:
    """Displayable ``key -> formatted value`` pairs for one change."""
    resource = plan.resources.get(rid)
    prior = plan.snapshot.get(rid)
    if action is Action.CREATE and resource is not None:
        attrs = {k: _format_value(v) for k, v in resource.config.items()}
        if resource.dependencies:
            attrs["dependencies"] = str(resource.dependencies)
        return attrs
    if action is Action.UPDATE and resource is not None and prior is not None:
        before = {**prior.config, "dependencies": prior.dependencies}
        after = {**resource.config, "dependencies": resource.dependencies}
        return {
            k: f"{_format_value(before.get(k))} -> {_format_value(after.get(k))}"
            for k in sorted(set(before) | set(after))
            if before.get(k) != after.get(k)
        }
    return {}


def format_change(plan: DeployPlan, rid: str, action: Action, *, color: bool = True) -> str:
    """Render a single change as a diff block."""
    style = styler(color)
    s = _ACTION_STYLES[action]
    sc = {"fg": s.color}
    group, depth = plan.graph.groups[rid], plan.graph.depth[rid]
    lines = [
        style(f"  # {rid} {s.description} (group {group}, depth {depth})", bold=True, **sc),
        style(f"  {s.symbol} {rid} {{", **sc),
        *[
            style(f"      {s.symbol} {k} = {v}", **sc)
            for k, v in _align_values(_change_attrs(plan, rid, action))
        ],
        style("    }", **sc),
    ]
    return "\n".join(lines)


def format_plan(plan: DeployPlan, *, color: bool = True) -> str:
    """Render every change in *plan*."""
    blocks = [
        format_change(plan, rid, diff_state.action, color=color)
        for rid, diff_state in plan.changes().items()
        if diff_state.action is not None
    ]
    if not blocks:
        return "No changes. Resources are up-to-date."
    return "\n\n".join(blocks)


def format_event(event: DeployEvent, *, color: bool = True) -> str:
    """Render ``[12:00:01] Group 0 -> Depth 1 -> <id> -> CREATE_COMPLETE``."""
    style = styler(color)
    line = (
        f"[{event.timestamp.strftime('%H:%M:%S')}] Group {event.group} -> "
        f"Depth {event.depth} -> {event.resource_id} -> {event.state.value}"
    )
    if event.error:
        line += f": {event.error}"
    if event.state.is_failed:
        return style(line, fg="red")
    if event.state is DeployState.CANCELED:
        return style(line, fg="bright_black")
    if event.state.is_complete:
        return style(line, fg="green")
    return line


_PLAN_VERBS = ("to create", "to update", "to delete")
_DEPLOY_VERBS = ("created", "updated", "deleted")
_SUMMARY_COLORS = ("green", "yellow", "red")


def _format_summary(summary: dict[str, int], verbs: tuple[str, ...], *, color: bool) -> str:
    style = styler(color)
    counts = (summary.get("create", 0), summary.get("update", 0), summary.get("delete", 0))
    parts = [
        style(f"{n} {verb}", fg=fg) if n and color else f"{n} {verb}"
        for n, verb, fg in zip(counts, verbs, _SUMMARY_COLORS, strict=True)
    ]
    return ", ".join(parts)


def format_plan_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """Render ``Plan: 2 to create, 1 to update, 0 to delete.``"""
    return f"Plan: {_format_summary(summary, _PLAN_VERBS, color=color)}."


def format_deploy_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """Render ``Deploy complete! Resources: 2 created, 0 updated, 0 deleted.``"""
    style = styler(color)
    header = style("Deploy complete!", fg="green", bold=True)
    return f"{header} Resources: {_format_summary(summary, _DEPLOY_VERBS, color=color)}."
