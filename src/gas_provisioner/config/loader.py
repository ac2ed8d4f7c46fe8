"""Config file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from gas_provisioner.config.schema import Config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "gas.config.yaml"


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name -> environment variable.
_PROVIDER_ENV_MAP: dict[str, str] = {
    "account_id": "CLOUDFLARE_ACCOUNT_ID",
    "api_token": "CLOUDFLARE_API_TOKEN",
}


def _resolve_provider(raw_provider: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve provider fields from the config file, env vars, and ``.env`` file.

    Priority (highest wins): config value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _PROVIDER_ENV_MAP.items():
        val = raw_provider.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            resolved[field] = str(val)
    return resolved


def load_config(path: Path | str) -> Config:
    """Load a YAML (or JSON) config file and return a ``Config`` object.

    Relative paths in the file resolve against the file's directory.

    Raises:
        ConfigError: On read/parse errors or validation failures.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    raw_provider = raw.get("provider") or {}
    if not isinstance(raw_provider, dict):
        raise ConfigError(f"{path}: 'provider' must be a mapping")

    try:
        raw["provider"] = _resolve_provider(raw_provider, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    logger.info("Loaded config from %s (project %s)", path, config.project)
    return config
