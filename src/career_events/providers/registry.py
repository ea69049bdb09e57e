"""Static provider registry with optional JSON overrides.

``config/providers.json`` may override ``priority``, ``throttle_seconds`` and
``enabled`` per provider id. ``DISABLE_<PROVIDER>`` environment switches are
already folded into ``RuntimeConfig.disabled_providers`` and always win.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Any, Type

from ..config import RuntimeConfig
from .base import ProviderAdapter, ScrapeSession
from .bi_karrieredagene import BIKarrieredageneProvider
from .eures import EuresProvider
from .oslomet import OsloMetProvider
from .tautdanning import TaUtdanningProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSpec:
    id: str
    display_name: str
    priority: int
    base_url: str
    adapter: Type[ProviderAdapter]
    enabled: bool = True
    throttle_seconds: float | None = None


PROVIDER_SPECS: list[ProviderSpec] = [
    ProviderSpec("tautdanning", "Ta Utdanning", 0, "https://www.tautdanning.no", TaUtdanningProvider),
    ProviderSpec("oslomet", "OsloMet", 1, "https://www.oslomet.no", OsloMetProvider),
    ProviderSpec("bi-karrieredagene", "BI Karrieredagene", 2, "https://www.karrieredagene.no", BIKarrieredageneProvider),
    ProviderSpec("eures", "EURES Job Days", 3, "https://europeanjobdays.eu", EuresProvider),
]

PROVIDER_IDS: list[str] = [spec.id for spec in PROVIDER_SPECS]


def default_overrides_path() -> Path:
    return Path.cwd() / "config" / "providers.json"


def load_provider_overrides(path: Path | None = None) -> dict[str, dict[str, Any]]:
    candidate = path or default_overrides_path()
    if not candidate.exists():
        return {}
    try:
        payload = json.loads(candidate.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable provider overrides %s: %s", candidate, exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    return {str(k): v for k, v in payload.items() if isinstance(v, dict)}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _apply_override(spec: ProviderSpec, override: dict[str, Any]) -> ProviderSpec:
    changes: dict[str, Any] = {}
    if "priority" in override:
        try:
            changes["priority"] = int(override["priority"])
        except (TypeError, ValueError):
            logger.warning("Invalid priority override for %s: %r", spec.id, override["priority"])
    if "throttle_seconds" in override:
        try:
            changes["throttle_seconds"] = max(0.0, float(override["throttle_seconds"]))
        except (TypeError, ValueError):
            logger.warning("Invalid throttle override for %s: %r", spec.id, override["throttle_seconds"])
    if "enabled" in override:
        changes["enabled"] = _as_bool(override["enabled"])
    return replace(spec, **changes) if changes else spec


def build_registry(config: RuntimeConfig, overrides_path: Path | None = None) -> list[ProviderSpec]:
    """All providers in priority order with overrides and environment switches applied."""
    overrides = load_provider_overrides(overrides_path)
    specs: list[ProviderSpec] = []
    for spec in PROVIDER_SPECS:
        spec = _apply_override(spec, overrides.get(spec.id, {}))
        if config.is_provider_disabled(spec.id):
            spec = replace(spec, enabled=False)
        specs.append(spec)
    return sorted(specs, key=lambda s: (s.priority, s.id))


def resolve_enabled(specs: list[ProviderSpec], provider_filter: str | None = None) -> list[ProviderSpec]:
    enabled = [spec for spec in specs if spec.enabled]
    if provider_filter:
        enabled = [spec for spec in enabled if spec.id == provider_filter]
    return enabled


def create_adapter(spec: ProviderSpec, session: ScrapeSession, today: date | None = None) -> ProviderAdapter:
    return spec.adapter(session, priority=spec.priority, throttle_seconds=spec.throttle_seconds, today=today)
