"""Base resource and resource config classes."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class InvalidResourceIDError(ValueError):
    """Raised when a resource ID does not carry a type segment."""

    def __init__(self, resource_id: str) -> None:
        super().__init__(
            f"Invalid resource ID {resource_id!r}: expected colon-delimited segments "
            "with the resource type third (e.g. 'core:base:cloudflare-kv:12345')"
        )
        self.resource_id = resource_id


def resource_type_from_id(resource_id: str) -> str:
    """Return the type segment of a resource ID.

    ``core:base:cloudflare-kv:1`` -> ``cloudflare-kv``
    """
    segments = resource_id.split(":")
    if len(segments) < 3 or not all(segments[:3]):
        raise InvalidResourceIDError(resource_id)
    return segments[2]


class ResourceConfig(BaseModel):
    """Base class for typed resource configs.

    Each variant declares its ``resource_type`` and exposes ``id`` and ``name``
    directly, so handlers never have to dig through untyped dicts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    resource_type: ClassVar[str]

    id: str
    name: str = Field(min_length=1)

    @field_validator("id")
    @classmethod
    def _id_matches_type(cls, v: str) -> str:
        if resource_type_from_id(v) != cls.resource_type:
            msg = f"ID {v!r} does not name resource type {cls.resource_type!r}"
            raise ValueError(msg)
        return v


class Resource(BaseModel):
    """A declared resource: pure data describing desired state.

    ``config`` is the resolved, JSON-compatible configuration. It is what gets
    diffed and persisted; handlers receive it validated into the registered
    :class:`ResourceConfig` variant.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    config: dict[str, Any] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _valid_id(cls, v: str) -> str:
        resource_type_from_id(v)
        return v

    @field_validator("dependencies")
    @classmethod
    def _dedupe(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @computed_field
    @property
    def resource_type(self) -> str:
        return resource_type_from_id(self.id)
