"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gas_provisioner.config import load

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from gas_provisioner.config.schema import Config

_GAS_ENV_VARS = ("CLOUDFLARE_ACCOUNT_ID", "CLOUDFLARE_API_TOKEN", "GAS_LOG", "NO_COLOR")


@pytest.fixture(autouse=True)
def _clean_gas_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove CLOUDFLARE_* / GAS_* env vars so unit tests don't leak host config."""
    for var in _GAS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "gas.config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "gas.config.yaml")

    return _make


@pytest.fixture
def make_container(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write one resource subdirectory into ``tmp_path/gas``.

    Returns the container directory.
    """
    import json

    container = tmp_path / "gas"

    def _make(
        subdir: str,
        manifest: str | None,
        *,
        package: str | None = None,
        dependencies: list[str] | None = None,
    ) -> Path:
        path = container / subdir
        path.mkdir(parents=True, exist_ok=True)
        pkg = {"name": package or f"@app/{subdir}", "dependencies": {}}
        for dep in dependencies or []:
            pkg["dependencies"][dep] = "*"
        (path / "package.json").write_text(json.dumps(pkg))
        if manifest is not None:
            (path / "resource.yaml").write_text(manifest)
        return container

    return _make
