"""Per-provider health state machine persisted across runs.

HEALTHY -> DEGRADED -> FAILED as consecutive failed fetches cross the
configured thresholds; any successful fetch returns the provider to
HEALTHY with the failure counter cleared.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Iterable

from .cache import KeyValueStore
from .models import HealthState, ProviderHealthRecord

logger = logging.getLogger(__name__)


def next_state(consecutive_failures: int, degraded_after: int = 1, failed_after: int = 3) -> HealthState:
    if consecutive_failures >= failed_after:
        return "FAILED"
    if consecutive_failures >= degraded_after:
        return "DEGRADED"
    return "HEALTHY"


class ProviderHealthTracker:
    def __init__(self, store: KeyValueStore, *, degraded_after: int = 1, failed_after: int = 3) -> None:
        self.store = store
        self.degraded_after = degraded_after
        self.failed_after = max(failed_after, degraded_after)

    def get(self, provider: str) -> ProviderHealthRecord:
        entry = self.store.get(provider)
        if not entry:
            return ProviderHealthRecord(provider=provider)
        return ProviderHealthRecord.model_validate({**entry, "provider": provider})

    def _save(self, record: ProviderHealthRecord) -> ProviderHealthRecord:
        self.store.put(record.provider, record.model_dump(mode="json"))
        return record

    def record_success(self, provider: str, events_found: int, now: datetime | None = None) -> ProviderHealthRecord:
        stamp = (now or datetime.now(UTC)).isoformat()
        current = self.get(provider)
        if current.state != "HEALTHY":
            logger.info("Provider %s recovered from %s", provider, current.state)
        return self._save(
            current.model_copy(
                update={
                    "state": "HEALTHY",
                    "consecutive_failures": 0,
                    "last_run_at": stamp,
                    "last_success_at": stamp,
                    "last_events_found": events_found,
                    "total_runs": current.total_runs + 1,
                    "total_successes": current.total_successes + 1,
                }
            )
        )

    def record_failure(self, provider: str, error: str, now: datetime | None = None) -> ProviderHealthRecord:
        stamp = (now or datetime.now(UTC)).isoformat()
        current = self.get(provider)
        failures = current.consecutive_failures + 1
        state = next_state(failures, self.degraded_after, self.failed_after)
        if state != current.state:
            logger.warning("Provider %s moved %s -> %s after %d consecutive failure(s)", provider, current.state, state, failures)
        return self._save(
            current.model_copy(
                update={
                    "state": state,
                    "consecutive_failures": failures,
                    "last_run_at": stamp,
                    "last_failure_at": stamp,
                    "last_error": error,
                    "last_events_found": 0,
                    "total_runs": current.total_runs + 1,
                    "total_failures": current.total_failures + 1,
                }
            )
        )

    def reset(self, provider: str) -> ProviderHealthRecord:
        return self._save(ProviderHealthRecord(provider=provider))

    def all(self, provider_ids: Iterable[str] | None = None) -> list[ProviderHealthRecord]:
        if provider_ids is None:
            provider_ids = sorted(key for key, _ in self.store.items())
        return [self.get(provider) for provider in provider_ids]

    def summary(self, provider_ids: Iterable[str] | None = None) -> dict[str, int]:
        counts = {"healthy": 0, "degraded": 0, "failed": 0}
        for record in self.all(provider_ids):
            counts[record.state.lower()] += 1
        return counts
