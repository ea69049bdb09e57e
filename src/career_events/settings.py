"""Environment and runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

SCRAPE_USER_AGENT = "SproutYouthPlatform/1.0 (+https://sprout.no/about)"
VERIFIER_USER_AGENT = "Mozilla/5.0 (compatible; Sprout-EventVerifier/1.0)"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def load_environment() -> None:
    load_dotenv(override=False)


def get_data_dir(environ: dict[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    raw = env.get("EVENTS_DATA_DIR", "").strip()
    return Path(raw) if raw else Path.cwd() / "data"


def disable_env_var(provider_id: str) -> str:
    """``bi-karrieredagene`` -> ``DISABLE_BI_KARRIEREDAGENE``."""
    return "DISABLE_" + provider_id.upper().replace("-", "_")


def disabled_providers_from_env(provider_ids: list[str], environ: dict[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    disabled: list[str] = []
    for provider_id in provider_ids:
        raw = env.get(disable_env_var(provider_id), "").strip().lower()
        if raw in _TRUE_VALUES:
            disabled.append(provider_id)
    return disabled
