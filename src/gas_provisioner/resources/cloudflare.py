"""Cloudflare resource configs."""

from typing import ClassVar

from gas_provisioner.resources.base import ResourceConfig


class CloudflareKvConfig(ResourceConfig):
    """A Workers KV namespace.

    The namespace title is ``<project>-<Train-Case-Name>``: a resource named
    ``CORE_BASE_KV`` in project ``shop`` becomes ``shop-Core-Base-Kv``.
    """

    resource_type: ClassVar[str] = "cloudflare-kv"
