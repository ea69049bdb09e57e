from datetime import UTC, datetime
from pathlib import Path

from career_events.cache import JsonFileStore, MemoryStore
from career_events.provider_health import ProviderHealthTracker, next_state

NOW = datetime(2026, 3, 1, 6, 0, tzinfo=UTC)


def test_next_state_thresholds() -> None:
    assert next_state(0) == "HEALTHY"
    assert next_state(1) == "DEGRADED"
    assert next_state(2) == "DEGRADED"
    assert next_state(3) == "FAILED"
    assert next_state(2, degraded_after=3, failed_after=5) == "HEALTHY"


def test_three_failures_then_recovery() -> None:
    tracker = ProviderHealthTracker(MemoryStore(), degraded_after=1, failed_after=3)

    states = [tracker.record_failure("oslomet", "listing fetch failed: HTTP 503", NOW).state for _ in range(3)]
    assert states == ["DEGRADED", "DEGRADED", "FAILED"]

    failed = tracker.get("oslomet")
    assert failed.consecutive_failures == 3
    assert failed.last_error == "listing fetch failed: HTTP 503"
    assert failed.last_failure_at == NOW.isoformat()

    recovered = tracker.record_success("oslomet", events_found=4, now=NOW)
    assert recovered.state == "HEALTHY"
    assert recovered.consecutive_failures == 0
    assert recovered.last_success_at == NOW.isoformat()
    assert recovered.last_events_found == 4
    assert recovered.total_runs == 4
    assert recovered.total_failures == 3
    assert recovered.total_successes == 1


def test_success_with_zero_events_is_still_healthy() -> None:
    tracker = ProviderHealthTracker(MemoryStore())
    tracker.record_failure("eures", "boom", NOW)
    assert tracker.record_success("eures", events_found=0, now=NOW).state == "HEALTHY"


def test_health_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "provider-health.json"
    ProviderHealthTracker(JsonFileStore(path)).record_failure("tautdanning", "timeout", NOW)
    ProviderHealthTracker(JsonFileStore(path)).record_failure("tautdanning", "timeout", NOW)
    record = ProviderHealthTracker(JsonFileStore(path)).get("tautdanning")
    assert record.state == "DEGRADED"
    assert record.consecutive_failures == 2


def test_reset_and_summary() -> None:
    tracker = ProviderHealthTracker(MemoryStore(), failed_after=2)
    tracker.record_failure("oslomet", "x", NOW)
    tracker.record_failure("oslomet", "x", NOW)
    tracker.record_failure("eures", "x", NOW)
    tracker.record_success("tautdanning", 3, NOW)

    ids = ["tautdanning", "oslomet", "bi-karrieredagene", "eures"]
    assert tracker.summary(ids) == {"healthy": 2, "degraded": 1, "failed": 1}

    reset = tracker.reset("oslomet")
    assert reset.state == "HEALTHY"
    assert reset.total_runs == 0
    assert tracker.summary(ids) == {"healthy": 3, "degraded": 1, "failed": 0}


def test_unknown_provider_defaults_to_healthy() -> None:
    record = ProviderHealthTracker(MemoryStore()).get("bi-karrieredagene")
    assert record.state == "HEALTHY"
    assert record.consecutive_failures == 0
