"""Centralized feature-flag loader for refresh tunables."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_FEATURE_FLAGS: dict[str, Any] = {
    "content_verification_enabled": True,
    "headless_fallback_enabled": True,
    "default_months": 12,
    "country_scope": "Norway+Europe",
    "url_check_ttl_hours": 24,
    "html_cache_ttl_hours": 6,
    "request_timeout_seconds": 8.0,
    "content_timeout_seconds": 12.0,
    "throttle_seconds": 0.5,
    "throttle_jitter_seconds": 0.3,
    "fetch_concurrency": 3,
    "verify_concurrency": 5,
    "content_min_body_bytes": 1000,
    "content_min_marker_categories": 2,
    "health_degraded_after_failures": 1,
    "health_failed_after_failures": 3,
    "past_grace_days": 1,
    "recheck_interval_hours": 24,
    "stale_threshold_hours": 48,
}


def default_feature_flags_path() -> Path:
    return Path.cwd() / "config" / "feature_flags.json"


def _coerce_flag_value(key: str, value: Any) -> Any:
    default = DEFAULT_FEATURE_FLAGS.get(key)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raw = str(value).strip().lower()
        return raw in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            return default
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError):
            return default
    return value


def load_feature_flags(path: Path | None = None, environ: dict[str, str] | None = None) -> dict[str, Any]:
    flags = dict(DEFAULT_FEATURE_FLAGS)
    env = os.environ if environ is None else environ
    candidate = path or default_feature_flags_path()
    if candidate.exists():
        try:
            payload = json.loads(candidate.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable feature flag file %s: %s", candidate, exc)
            payload = None
        if isinstance(payload, dict):
            for key in DEFAULT_FEATURE_FLAGS:
                if key in payload:
                    flags[key] = _coerce_flag_value(key, payload[key])

    # Alternate env names.
    env_aliases = {
        "EVENTS_DEFAULT_MONTHS": "default_months",
        "URL_VERIFICATION_TTL_HOURS": "url_check_ttl_hours",
    }
    for env_key, flag_key in env_aliases.items():
        raw = env.get(env_key, "").strip()
        if raw:
            flags[flag_key] = _coerce_flag_value(flag_key, raw)

    # Explicit override: EVENTS_FLAG_<FLAG_NAME_UPPER>
    for key in DEFAULT_FEATURE_FLAGS:
        raw = env.get(f"EVENTS_FLAG_{key.upper()}", "").strip()
        if raw:
            flags[key] = _coerce_flag_value(key, raw)

    return flags
