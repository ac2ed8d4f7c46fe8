"""Dependency-aware deploys of Cloudflare resources from a resource container."""

__version__ = "0.1.0"
