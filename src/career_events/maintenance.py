"""Housekeeping pass over the already published event set.

Runs between refreshes: drops events that have ended, re-checks
registration links whose last check is older than the re-check interval
and drops events whose last successful check has gone stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import List

import httpx

from .cache import JsonFileStore, KeyValueStore
from .config import RuntimeConfig
from .models import EventItem
from .output import URL_CACHE_FILENAME, OutputStore
from .scrape_utils import HostThrottle
from .settings import VERIFIER_USER_AGENT
from .time_utils import hours_since, is_past_event, utc_today
from .verification import LiveUrlVerifier

logger = logging.getLogger(__name__)


@dataclass
class AgentRunReport:
    checked_at: str
    total_before: int = 0
    expired_removed: List[str] = field(default_factory=list)
    rechecked: int = 0
    recheck_failed: List[str] = field(default_factory=list)
    stale_removed: List[str] = field(default_factory=list)
    total_after: int = 0
    written: bool = False

    def as_dict(self) -> dict:
        return {
            "checked_at": self.checked_at,
            "total_before": self.total_before,
            "expired_removed": len(self.expired_removed),
            "rechecked": self.rechecked,
            "recheck_failed": len(self.recheck_failed),
            "stale_removed": len(self.stale_removed),
            "total_after": self.total_after,
            "written": self.written,
            "removed_ids": sorted(self.expired_removed + self.recheck_failed + self.stale_removed),
        }


def has_ended(item: EventItem, today: date) -> bool:
    return is_past_event(item.end_date or item.start_date, today)


def last_checked(item: EventItem) -> str | None:
    return item.last_checked_at or item.verified_at


class EventsAgent:
    def __init__(
        self,
        config: RuntimeConfig,
        *,
        client: httpx.Client | None = None,
        url_store: KeyValueStore | None = None,
        output: OutputStore | None = None,
        throttle: HostThrottle | None = None,
        today: date | None = None,
        now: datetime | None = None,
        max_rechecks: int | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.url_store = url_store or JsonFileStore(config.events_dir / URL_CACHE_FILENAME)
        self.output = output or OutputStore(config.events_dir)
        self.throttle = throttle or HostThrottle(config.throttle_seconds, config.throttle_jitter_seconds)
        self.today = today
        self.now = now
        self.max_rechecks = max_rechecks

    def run(self) -> AgentRunReport:
        owns_client = self.client is None
        client = self.client or httpx.Client(headers={"User-Agent": VERIFIER_USER_AGENT})
        try:
            return self._run(client)
        finally:
            if owns_client:
                client.close()

    def _run(self, client: httpx.Client) -> AgentRunReport:
        now = self.now or datetime.now(UTC)
        today = self.today or utc_today()
        report = AgentRunReport(checked_at=now.isoformat())
        events = self.output.load_events()
        report.total_before = len(events)

        verifier = LiveUrlVerifier(
            client,
            self.url_store,
            ttl_hours=self.config.url_check_ttl_hours,
            timeout_seconds=self.config.request_timeout_seconds,
            throttle=self.throttle,
        )

        kept: List[EventItem] = []
        budget = self.max_rechecks
        for item in events:
            if has_ended(item, today):
                report.expired_removed.append(item.id)
                continue

            age = hours_since(last_checked(item), now)
            due = age is None or age >= self.config.recheck_interval_hours
            if due and (budget is None or budget > 0):
                if budget is not None:
                    budget -= 1
                report.rechecked += 1
                result = verifier.verify_url(item.registration_url, skip_cache=True)
                if not result.ok:
                    logger.info("Re-check failed for %s: %s", item.id, result.error)
                    report.recheck_failed.append(item.id)
                    continue
                item = item.model_copy(update={"last_checked_at": result.checked_at})
                age = 0.0

            if age is None or age >= self.config.stale_threshold_hours:
                report.stale_removed.append(item.id)
                continue
            kept.append(item)

        report.total_after = len(kept)
        logger.info(
            "Agent pass: %d -> %d event(s) (%d expired, %d failed re-check, %d stale)",
            report.total_before,
            report.total_after,
            len(report.expired_removed),
            len(report.recheck_failed),
            len(report.stale_removed),
        )
        if self.config.dry_run:
            return report
        self.output.write_events(kept, generated_at=report.checked_at)
        report.written = True
        return report


def run_events_agent(config: RuntimeConfig, **kwargs) -> AgentRunReport:
    return EventsAgent(config, **kwargs).run()
