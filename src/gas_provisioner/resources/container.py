"""Resource container scanning.

A resource container is a directory holding one subdirectory per resource.
Each subdirectory carries a ``package.json`` (its package name and
dependencies) and a ``resource.yaml`` manifest. A resource depends on every
``package.json`` dependency that names another package in the container.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from gas_provisioner.engine.errors import ConfigResolutionError
from gas_provisioner.engine.graph import DependencyGraph
from gas_provisioner.resources.base import Resource
from gas_provisioner.resources.resolver import ManifestConfigResolver

if TYPE_CHECKING:
    from gas_provisioner.resources.resolver import ConfigResolver

logger = logging.getLogger(__name__)

PACKAGE_FILE = "package.json"
MANIFEST_FILE = "resource.yaml"


@dataclass(frozen=True)
class ResourceLocation:
    """One container subdirectory and the internal packages it depends on."""

    package: str
    path: Path
    dependencies: tuple[str, ...] = ()

    @property
    def manifest(self) -> Path:
        return self.path / MANIFEST_FILE


def _read_package(subdir: Path) -> tuple[str, list[str]]:
    path = subdir / PACKAGE_FILE
    if not path.is_file():
        raise ConfigResolutionError(str(subdir), f"unable to find {PACKAGE_FILE}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigResolutionError(str(path), f"unable to parse: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigResolutionError(str(path), "expected a JSON object")
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigResolutionError(str(path), "package has no 'name'")
    deps = data.get("dependencies") or {}
    if not isinstance(deps, dict):
        raise ConfigResolutionError(str(path), "'dependencies' must be an object")
    return name, list(deps)


def scan_container(container_dir: Path) -> list[ResourceLocation]:
    """Return a location for every resource subdirectory, sorted by package name.

    Raises:
        ConfigResolutionError: The container, a ``package.json`` or a manifest
            is missing, or a ``package.json`` is malformed.
    """
    if not container_dir.is_dir():
        raise ConfigResolutionError(str(container_dir), "unable to read resource container dir")

    packages: dict[str, tuple[Path, list[str]]] = {}
    for subdir in sorted(p for p in container_dir.iterdir() if p.is_dir()):
        if subdir.name.startswith("."):
            continue
        name, deps = _read_package(subdir)
        if name in packages:
            raise ConfigResolutionError(
                str(subdir), f"package {name!r} already defined in {packages[name][0]}"
            )
        if not (subdir / MANIFEST_FILE).is_file():
            raise ConfigResolutionError(str(subdir), f"unable to find {MANIFEST_FILE}")
        packages[name] = (subdir, deps)

    return [
        ResourceLocation(
            package=name,
            path=subdir,
            dependencies=tuple(d for d in deps if d in packages),
        )
        for name, (subdir, deps) in sorted(packages.items())
    ]


def order_locations(locations: list[ResourceLocation]) -> list[ResourceLocation]:
    """Order *locations* bottom-up: every location follows the ones it depends on."""
    by_package = {loc.package: loc for loc in locations}
    graph = DependencyGraph({loc.package: loc.dependencies for loc in locations})
    graph.validate()
    return [by_package[p] for p in graph.topological_order()]


def load_resources(
    container_dir: Path, resolver: ConfigResolver | None = None
) -> list[Resource]:
    """Scan *container_dir* and resolve every resource it holds."""
    resolver = resolver or ManifestConfigResolver()
    locations = order_locations(scan_container(container_dir))
    configs = resolver.resolve(locations)
    if len(configs) != len(locations):
        raise ConfigResolutionError(
            str(container_dir),
            f"resolver returned {len(configs)} configs for {len(locations)} resources",
        )

    ids = {loc.package: rid for loc, rid in zip(locations, configs, strict=True)}
    resources: list[Resource] = []
    for loc in locations:
        rid = ids[loc.package]
        try:
            resources.append(
                Resource(
                    id=rid,
                    config=configs[rid],
                    dependencies=[ids[d] for d in loc.dependencies],
                )
            )
        except ValidationError as exc:
            raise ConfigResolutionError(str(loc.path), str(exc)) from exc
    logger.info("Loaded %d resources from %s", len(resources), container_dir)
    return resources
