"""Configuration models for the project config file."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseSettings):
    """Cloudflare connection settings.

    Fields can be set in the config file (constructor kwargs) or via
    environment variables with the ``CLOUDFLARE_`` prefix. Constructor kwargs
    take precedence.

    ``api_token`` is typically provided via ``CLOUDFLARE_API_TOKEN`` rather
    than the config file to avoid committing secrets to version control.
    """

    model_config = SettingsConfigDict(env_prefix="CLOUDFLARE_")

    account_id: str | None = None
    api_token: str | None = None


class Config(BaseModel):
    """Project configuration, validated directly from ``gas.config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    project: str = Field(min_length=1)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    resource_container_dir: Path = Path("gas")
    snapshot_path: Path = Path("gas.up.json")
    max_workers: int | None = Field(default=None, ge=1)
    config_dir: Path = Path()

    @property
    def container_path(self) -> Path:
        return self.config_dir / self.resource_container_dir

    @property
    def snapshot_file(self) -> Path:
        return self.config_dir / self.snapshot_path
