"""Runtime configuration schema built once per invocation."""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from .feature_flags import load_feature_flags
from .settings import SCRAPE_USER_AGENT, disabled_providers_from_env, get_data_dir

MAX_MONTHS = 24


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    months: int = Field(default=12, ge=1, le=MAX_MONTHS)
    country_scope: Literal["Norway", "Norway+Europe"] = "Norway+Europe"
    dry_run: bool = False
    skip_verify: bool = False
    provider_filter: str | None = None
    verbose: bool = False
    data_dir: Path = Field(default_factory=lambda: Path.cwd() / "data")
    disabled_providers: List[str] = Field(default_factory=list)

    user_agent: str = SCRAPE_USER_AGENT
    request_timeout_seconds: float = Field(default=8.0, gt=0)
    content_timeout_seconds: float = Field(default=12.0, gt=0)
    url_check_ttl_hours: int = Field(default=24, ge=1)
    html_cache_ttl_hours: int = Field(default=6, ge=0)
    throttle_seconds: float = Field(default=0.5, ge=0)
    throttle_jitter_seconds: float = Field(default=0.3, ge=0)
    fetch_concurrency: int = Field(default=3, ge=1, le=16)
    verify_concurrency: int = Field(default=5, ge=1, le=32)

    content_verification_enabled: bool = True
    headless_fallback_enabled: bool = True
    content_min_body_bytes: int = Field(default=1000, ge=0)
    content_min_marker_categories: int = Field(default=2, ge=1)

    health_degraded_after_failures: int = Field(default=1, ge=1)
    health_failed_after_failures: int = Field(default=3, ge=1)

    past_grace_days: int = Field(default=1, ge=0)
    recheck_interval_hours: int = Field(default=24, ge=1)
    stale_threshold_hours: int = Field(default=48, ge=1)

    @field_validator("provider_filter")
    @classmethod
    def validate_provider_filter(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip().lower()
        return cleaned or None

    @field_validator("health_failed_after_failures")
    @classmethod
    def validate_failed_threshold(cls, value: int, info: ValidationInfo) -> int:
        degraded = info.data.get("health_degraded_after_failures", 1)
        if value < degraded:
            raise ValueError("health_failed_after_failures must be >= health_degraded_after_failures")
        return value

    def is_provider_disabled(self, provider_id: str) -> bool:
        return provider_id in self.disabled_providers

    @property
    def events_dir(self) -> Path:
        return self.data_dir / "career-events"

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"


def build_runtime_config(
    provider_ids: list[str],
    *,
    months: int | None = None,
    dry_run: bool = False,
    skip_verify: bool = False,
    provider_filter: str | None = None,
    verbose: bool = False,
    environ: dict[str, str] | None = None,
    flags_path: Path | None = None,
) -> RuntimeConfig:
    """Fold feature flags, ``DISABLE_*`` switches and CLI flags into one config."""
    flags = load_feature_flags(flags_path, environ=environ)
    default_months = min(max(int(flags["default_months"]), 1), MAX_MONTHS)
    return RuntimeConfig(
        months=months if months is not None else default_months,
        country_scope=flags["country_scope"],
        dry_run=dry_run,
        skip_verify=skip_verify,
        provider_filter=provider_filter,
        verbose=verbose,
        data_dir=get_data_dir(environ),
        disabled_providers=disabled_providers_from_env(provider_ids, environ),
        request_timeout_seconds=flags["request_timeout_seconds"],
        content_timeout_seconds=flags["content_timeout_seconds"],
        url_check_ttl_hours=flags["url_check_ttl_hours"],
        html_cache_ttl_hours=flags["html_cache_ttl_hours"],
        throttle_seconds=flags["throttle_seconds"],
        throttle_jitter_seconds=flags["throttle_jitter_seconds"],
        fetch_concurrency=flags["fetch_concurrency"],
        verify_concurrency=flags["verify_concurrency"],
        content_verification_enabled=flags["content_verification_enabled"],
        headless_fallback_enabled=flags["headless_fallback_enabled"],
        content_min_body_bytes=flags["content_min_body_bytes"],
        content_min_marker_categories=flags["content_min_marker_categories"],
        health_degraded_after_failures=flags["health_degraded_after_failures"],
        health_failed_after_failures=flags["health_failed_after_failures"],
        past_grace_days=flags["past_grace_days"],
        recheck_interval_hours=flags["recheck_interval_hours"],
        stale_threshold_hours=flags["stale_threshold_hours"],
    )
