import json
from pathlib import Path

import pytest

from career_events import main as cli
from career_events.cache import JsonFileStore
from career_events.dedupe import DedupeStats
from career_events.provider_health import ProviderHealthTracker
from career_events.providers.registry import PROVIDER_IDS
from career_events.refresh import RefreshResult
from career_events.settings import disable_env_var


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EVENTS_DATA_DIR", str(tmp_path / "data"))
    for provider_id in PROVIDER_IDS:
        monkeypatch.delenv(disable_env_var(provider_id), raising=False)


def test_refresh_flags_reach_config(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    seen = {}

    def fake_refresh(config):
        seen["config"] = config
        return RefreshResult(
            run_id="abc123",
            started_at="2026-03-01T06:00:00+00:00",
            finished_at="2026-03-01T06:01:00+00:00",
            months=config.months,
            dry_run=config.dry_run,
            skip_verify=config.skip_verify,
            provider_filter=config.provider_filter,
            providers=[],
            events=[],
            rejected=[],
            dedupe=DedupeStats(),
        )

    monkeypatch.setattr(cli, "run_refresh", fake_refresh)
    code = cli.main(["events:refresh", "--months=3", "--dry-run", "--skip-verify", "--provider=oslomet", "--json"])

    assert code == 0
    config = seen["config"]
    assert (config.months, config.dry_run, config.skip_verify, config.provider_filter) == (3, True, True, "oslomet")
    out = capsys.readouterr().out
    assert "Career events refresh abc123 (DRY RUN)" in out
    metadata = json.loads(out[out.index("{") :])
    assert metadata["run_id"] == "abc123"
    assert metadata["provider_filter"] == "oslomet"


def test_refresh_exits_1_when_every_provider_is_disabled(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    for provider_id in PROVIDER_IDS:
        monkeypatch.setenv(disable_env_var(provider_id), "true")
    assert cli.main(["events:refresh", "--dry-run"]) == 1
    assert "no providers are enabled" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["events:refresh", "--months=0"],
        ["events:refresh", "--months=25"],
        ["events:refresh", "--months=soon"],
        ["events:refresh", "--provider=meetup"],
        ["provider-health", "--reset", "meetup"],
    ],
)
def test_bad_arguments_exit_2(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    assert exc_info.value.code == 2


def test_provider_health_reset(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    health_path = tmp_path / "data" / "career-events" / "provider-health.json"
    tracker = ProviderHealthTracker(JsonFileStore(health_path))
    for _ in range(3):
        tracker.record_failure("eures", "HTTP 503")
    tracker.record_failure("oslomet", "timeout")

    assert cli.main(["provider-health", "--reset", "eures", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    states = {row["provider"]: row["state"] for row in payload["providers"]}
    assert states["eures"] == "HEALTHY"
    assert states["oslomet"] == "DEGRADED"
    assert payload["summary"] == {"healthy": 3, "degraded": 1, "failed": 0}

    assert cli.main(["provider-health"]) == 0
    table = capsys.readouterr().out
    assert "oslomet" in table and "DEGRADED" in table


def test_cache_stats_on_empty_data_dir(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["cache-stats"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "url_cache": {"total": 0, "valid": 0, "expired": 0},
        "html_cache": {"total": 0, "valid": 0, "expired": 0},
    }


def test_agent_on_empty_output(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["events:agent", "--dry-run"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["total_before"] == 0
    assert report["written"] is False


def test_unwritable_data_dir_exits_1(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    monkeypatch.setenv("EVENTS_DATA_DIR", str(blocker))

    assert cli.main(["provider-health", "--reset", "eures"]) == 1
    assert "cannot write" in capsys.readouterr().err
