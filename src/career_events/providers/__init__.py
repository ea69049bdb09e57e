"""Provider adapters and registry."""

from .base import ProviderAdapter, ScrapeSession
from .registry import PROVIDER_IDS, PROVIDER_SPECS, ProviderSpec, build_registry, create_adapter, resolve_enabled

__all__ = [
    "PROVIDER_IDS",
    "PROVIDER_SPECS",
    "ProviderAdapter",
    "ProviderSpec",
    "ScrapeSession",
    "build_registry",
    "create_adapter",
    "resolve_enabled",
]
