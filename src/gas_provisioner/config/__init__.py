"""Config file loading and convenience plan/deploy API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import SecretStr

from gas_provisioner.config.loader import DEFAULT_CONFIG_FILE, ConfigError, load_config
from gas_provisioner.config.registry import default_registry
from gas_provisioner.config.schema import Config, ProviderConfig
from gas_provisioner.core.provider import CloudflareProvider
from gas_provisioner.engine.engine import GasEngine
from gas_provisioner.resources.container import load_resources

if TYPE_CHECKING:
    from pathlib import Path

    from gas_provisioner.engine.orchestrator import ProgressCallback
    from gas_provisioner.engine.types import DeployPlan, DeployResult
    from gas_provisioner.resources.resolver import ConfigResolver

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "Config",
    "ConfigError",
    "ProviderConfig",
    "deploy",
    "load",
    "load_config",
    "plan",
    "plan_and_deploy",
]


def load(path: Path | str) -> Config:
    """Load a config file."""
    return load_config(path)


def _engine_from_config(config: Config) -> GasEngine:
    """Build a ``GasEngine`` from a ``Config`` instance."""
    if not config.provider.account_id:
        raise ConfigError(
            "provider.account_id is required (set in config or CLOUDFLARE_ACCOUNT_ID env var)"
        )
    if not config.provider.api_token:
        raise ConfigError("provider.api_token is required (set CLOUDFLARE_API_TOKEN env var)")
    provider = CloudflareProvider(
        account_id=config.provider.account_id,
        api_token=SecretStr(config.provider.api_token),
    )
    return GasEngine(
        provider=provider,
        project=config.project,
        snapshot_path=config.snapshot_file,
        registry=default_registry(),
        max_workers=config.max_workers,
    )


def plan(config: Config, *, resolver: ConfigResolver | None = None) -> DeployPlan:
    """Load the resource container and plan changes against the snapshot."""
    resources = load_resources(config.container_path, resolver)
    return _engine_from_config(config).plan(resources)


def deploy(
    plan_obj: DeployPlan, config: Config, *, progress: ProgressCallback | None = None
) -> DeployResult:
    """Deploy a previously computed plan."""
    return _engine_from_config(config).deploy(plan_obj, progress=progress)


def plan_and_deploy(config: Config) -> DeployResult:
    """Plan and deploy in one step."""
    return deploy(plan(config), config)
