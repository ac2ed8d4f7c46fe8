"""Resource config resolution.

A resolver turns ordered source locations into the final JSON-compatible
config of each resource. Locations arrive dependencies-first, so a config may
refer to fields of configs resolved before it with ``${<resource id>.<field>}``.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Protocol

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from gas_provisioner.engine.errors import ConfigResolutionError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from gas_provisioner.resources.container import ResourceLocation

logger = logging.getLogger(__name__)

# ``${core:base:cloudflare-kv:1.name}``; IDs never contain dots, fields may be dotted paths.
_REFERENCE = re.compile(r"\$\{([^}.]+)\.([^}]+)\}")


class ConfigResolver(Protocol):
    def resolve(self, locations: Sequence[ResourceLocation]) -> dict[str, dict[str, Any]]:
        """Return ``resource_id -> config``, one entry per location, in location order."""
        ...


def _lookup(config: Mapping[str, Any], field: str) -> Any:
    value: Any = config
    for part in field.split("."):
        if not isinstance(value, dict) or part not in value:
            raise KeyError(field)
        value = value[part]
    return value


def resolve_references(value: Any, resolved: Mapping[str, Mapping[str, Any]]) -> Any:
    """Replace ``${<id>.<field>}`` references in string values, recursively.

    A string that is exactly one reference takes the referenced value as is;
    references embedded in longer strings are interpolated as text.

    Raises:
        KeyError: The referenced resource or field has not been resolved.
    """
    if isinstance(value, str):
        whole = _REFERENCE.fullmatch(value)
        if whole:
            rid, field = whole.groups()
            if rid not in resolved:
                raise KeyError(rid)
            return _lookup(resolved[rid], field)

        def _sub(m: re.Match[str]) -> str:
            rid, field = m.groups()
            if rid not in resolved:
                raise KeyError(rid)
            return str(_lookup(resolved[rid], field))

        return _REFERENCE.sub(_sub, value)
    if isinstance(value, dict):
        return {k: resolve_references(v, resolved) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_references(v, resolved) for v in value]
    return value


class ManifestConfigResolver:
    """Reads each location's ``resource.yaml`` manifest."""

    def __init__(self) -> None:
        self._yaml = YAML(typ="safe")

    def _load(self, location: ResourceLocation) -> dict[str, Any]:
        path = location.manifest
        try:
            raw = self._yaml.load(path)
        except (OSError, YAMLError) as exc:
            raise ConfigResolutionError(str(path), f"unable to read manifest: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigResolutionError(str(path), "manifest must be a mapping")
        if not isinstance(raw.get("id"), str) or not raw["id"]:
            raise ConfigResolutionError(str(path), "manifest has no 'id'")
        return raw

    def resolve(self, locations: Sequence[ResourceLocation]) -> dict[str, dict[str, Any]]:
        resolved: dict[str, dict[str, Any]] = {}
        for location in locations:
            raw = self._load(location)
            rid = raw["id"]
            if rid in resolved:
                raise ConfigResolutionError(str(location.manifest), f"duplicate resource id {rid}")
            try:
                resolved[rid] = resolve_references(raw, resolved)
            except KeyError as exc:
                raise ConfigResolutionError(
                    rid, f"unresolved reference {exc.args[0]!r} in {location.manifest}"
                ) from exc
            logger.debug("Resolved %s from %s", rid, location.manifest)
        return resolved
