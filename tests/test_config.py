import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from career_events.config import RuntimeConfig, build_runtime_config
from career_events.providers.registry import PROVIDER_IDS, build_registry, resolve_enabled
from career_events.settings import disable_env_var, disabled_providers_from_env


def test_disable_env_var_names() -> None:
    assert disable_env_var("bi-karrieredagene") == "DISABLE_BI_KARRIEREDAGENE"
    assert disable_env_var("eures") == "DISABLE_EURES"


def test_disabled_providers_from_env() -> None:
    env = {"DISABLE_EURES": "true", "DISABLE_OSLOMET": "0", "DISABLE_TAUTDANNING": "yes"}
    assert disabled_providers_from_env(PROVIDER_IDS, env) == ["tautdanning", "eures"]


def test_build_runtime_config_folds_flags_env_and_cli(tmp_path: Path) -> None:
    flags = tmp_path / "feature_flags.json"
    flags.write_text(json.dumps({"default_months": 6, "url_check_ttl_hours": 12, "country_scope": "Norway"}), encoding="utf-8")
    env = {"EVENTS_DATA_DIR": str(tmp_path / "data"), "DISABLE_EURES": "1"}

    config = build_runtime_config(PROVIDER_IDS, environ=env, flags_path=flags, provider_filter=" OsloMet ")
    assert config.months == 6
    assert config.url_check_ttl_hours == 12
    assert config.country_scope == "Norway"
    assert config.disabled_providers == ["eures"]
    assert config.provider_filter == "oslomet"
    assert config.events_dir == tmp_path / "data" / "career-events"
    assert config.cache_dir == tmp_path / "data" / "cache"

    explicit = build_runtime_config(PROVIDER_IDS, months=3, dry_run=True, environ=env, flags_path=flags)
    assert explicit.months == 3
    assert explicit.dry_run is True


def test_runtime_config_is_frozen_and_validated() -> None:
    config = RuntimeConfig()
    with pytest.raises(ValidationError):
        config.months = 3
    with pytest.raises(ValidationError):
        RuntimeConfig(months=25)
    with pytest.raises(ValidationError):
        RuntimeConfig(health_degraded_after_failures=3, health_failed_after_failures=2)


def test_registry_honors_env_switch_and_overrides(tmp_path: Path) -> None:
    overrides = tmp_path / "providers.json"
    overrides.write_text(
        json.dumps({"eures": {"priority": -1, "throttle_seconds": 2}, "oslomet": {"enabled": False}}),
        encoding="utf-8",
    )
    config = RuntimeConfig(disabled_providers=["tautdanning"])
    specs = build_registry(config, overrides)

    assert [spec.id for spec in specs] == ["eures", "tautdanning", "oslomet", "bi-karrieredagene"]
    eures = specs[0]
    assert eures.priority == -1
    assert eures.throttle_seconds == 2.0
    assert [spec.id for spec in resolve_enabled(specs)] == ["eures", "bi-karrieredagene"]
    assert [spec.id for spec in resolve_enabled(specs, "bi-karrieredagene")] == ["bi-karrieredagene"]
    assert resolve_enabled(specs, "tautdanning") == []


def test_enabled_override_accepts_strings(tmp_path: Path) -> None:
    overrides = tmp_path / "providers.json"
    overrides.write_text(
        json.dumps({"eures": {"enabled": "false"}, "oslomet": {"enabled": "0"}, "tautdanning": {"enabled": "yes"}}),
        encoding="utf-8",
    )
    specs = build_registry(RuntimeConfig(), overrides)
    assert [spec.id for spec in resolve_enabled(specs)] == ["tautdanning", "bi-karrieredagene"]
