"""One end-to-end refresh run: fetch, verify, dedupe, publish."""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Dict, List

import httpx

from .cache import JsonFileStore, KeyValueStore, purge_expired
from .config import RuntimeConfig
from .dedupe import DedupeStats, dedupe_events
from .errors import (
    ConfigurationError,
    ContentVerificationFailure,
    LiveCheckFailure,
    ProviderFetchError,
    StructuralValidationError,
)
from .models import ContentCheckResult, EventItem, FetchParams, ProviderRunStats, RejectedItem, UrlCheckResult
from .output import HEALTH_FILENAME, HTML_CACHE_FILENAME, URL_CACHE_FILENAME, OutputStore
from .provider_health import ProviderHealthTracker
from .providers.base import ScrapeSession
from .providers.registry import ProviderSpec, build_registry, create_adapter, resolve_enabled
from .scrape_utils import HostThrottle
from .settings import VERIFIER_USER_AGENT
from .time_utils import utc_today
from .verification import ContentVerifier, HeadlessVerifier, LiveUrlVerifier, run_stage, validate_event_item

logger = logging.getLogger(__name__)

RejectionError = StructuralValidationError | LiveCheckFailure | ContentVerificationFailure


@dataclass
class ProviderFetchOutcome:
    spec: ProviderSpec
    items: List[EventItem] = field(default_factory=list)
    error: str | None = None


@dataclass
class RefreshResult:
    run_id: str
    started_at: str
    finished_at: str
    months: int
    dry_run: bool
    skip_verify: bool
    provider_filter: str | None
    providers: List[ProviderRunStats]
    events: List[EventItem]
    rejected: List[RejectedItem]
    dedupe: DedupeStats
    alerts: List[str] = field(default_factory=list)
    cache: Dict[str, int] = field(default_factory=dict)
    published: bool = False

    @property
    def fetched_count(self) -> int:
        return sum(p.fetched for p in self.providers)

    def rejected_by_reason(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for item in self.rejected:
            counts[item.reason] = counts.get(item.reason, 0) + 1
        return dict(sorted(counts.items()))

    def to_metadata(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "months": self.months,
            "dry_run": self.dry_run,
            "skip_verify": self.skip_verify,
            "provider_filter": self.provider_filter,
            "fetched": self.fetched_count,
            "published": len(self.events),
            "rejected_by_reason": self.rejected_by_reason(),
            "providers": [p.model_dump(mode="json") for p in self.providers],
            "dedupe": self.dedupe.as_dict(),
            "rejected": [r.model_dump(mode="json") for r in self.rejected],
            "alerts": list(self.alerts),
            "cache": dict(self.cache),
        }


def _reject(item: EventItem, stage: str, error: RejectionError) -> RejectedItem:
    return RejectedItem(
        id=item.id,
        provider=item.provider,
        title=item.title,
        registration_url=item.registration_url,
        stage=stage,
        reason=error.reason,
        detail=error.detail,
    )


class RefreshJob:
    """Drives one refresh pass against injectable stores and HTTP client."""

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        client: httpx.Client | None = None,
        url_store: KeyValueStore | None = None,
        html_store: KeyValueStore | None = None,
        health_store: KeyValueStore | None = None,
        output: OutputStore | None = None,
        specs: List[ProviderSpec] | None = None,
        headless: HeadlessVerifier | None = None,
        throttle: HostThrottle | None = None,
        today: date | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.url_store = url_store or JsonFileStore(config.events_dir / URL_CACHE_FILENAME)
        self.html_store = html_store or JsonFileStore(config.cache_dir / HTML_CACHE_FILENAME)
        self.health = ProviderHealthTracker(
            health_store or JsonFileStore(config.events_dir / HEALTH_FILENAME),
            degraded_after=config.health_degraded_after_failures,
            failed_after=config.health_failed_after_failures,
        )
        self.output = output or OutputStore(config.events_dir)
        self.specs = specs if specs is not None else build_registry(config)
        self.headless = headless or HeadlessVerifier()
        self.throttle = throttle or HostThrottle(config.throttle_seconds, config.throttle_jitter_seconds)
        self.today = today

    def _build_client(self) -> httpx.Client:
        return httpx.Client(headers={"User-Agent": self.config.user_agent})

    def enabled_specs(self) -> List[ProviderSpec]:
        return resolve_enabled(self.specs, self.config.provider_filter)

    def run(self) -> RefreshResult:
        specs = self.enabled_specs()
        if not specs:
            if self.config.provider_filter:
                raise ConfigurationError(f"provider {self.config.provider_filter!r} is unknown or disabled")
            raise ConfigurationError("no providers are enabled")

        owns_client = self.client is None
        client = self.client or self._build_client()
        try:
            return self._run(client, specs)
        finally:
            if owns_client:
                client.close()

    def _run(self, client: httpx.Client, specs: List[ProviderSpec]) -> RefreshResult:
        started_at = datetime.now(UTC).isoformat()
        run_id = uuid.uuid4().hex[:12]
        today = self.today or utc_today()
        config = self.config
        logger.info(
            "Refresh %s: %d provider(s), months=%d dry_run=%s skip_verify=%s",
            run_id,
            len(specs),
            config.months,
            config.dry_run,
            config.skip_verify,
        )

        cache_counts = {
            "html_purged": purge_expired(self.html_store),
            "url_purged": purge_expired(self.url_store),
        }

        session = ScrapeSession(
            client=client,
            html_cache=self.html_store if config.html_cache_ttl_hours > 0 else None,
            throttle=self.throttle,
            timeout_seconds=config.request_timeout_seconds,
            cache_ttl_hours=config.html_cache_ttl_hours,
            user_agent=config.user_agent,
        )
        outcomes = self._fetch_all(session, specs, today)

        stats: Dict[str, ProviderRunStats] = {}
        alerts: List[str] = []
        collected: List[EventItem] = []
        for outcome in outcomes:
            spec = outcome.spec
            if outcome.error is None:
                record = self.health.record_success(spec.id, len(outcome.items))
            else:
                record = self.health.record_failure(spec.id, outcome.error)
            if record.state == "FAILED":
                message = f"{spec.id} has failed {record.consecutive_failures} consecutive run(s): {record.last_error}"
                logger.error("Provider alert: %s", message)
                alerts.append(message)
            stats[spec.id] = ProviderRunStats(
                provider=spec.id,
                display_name=spec.display_name,
                fetched=len(outcome.items),
                errors=[outcome.error] if outcome.error else [],
                health_state=record.state,
            )
            collected.extend(outcome.items)

        rejected: List[RejectedItem] = []
        valid = self._structural(collected, today, stats, rejected)
        if config.skip_verify:
            logger.warning("Verification skipped; %d item(s) published unverified", len(valid))
            verified = [item.model_copy(update={"verified": False, "verification_method": "skipped"}) for item in valid]
            for item in verified:
                stats[item.provider].stage_a_passed += 1
                stats[item.provider].stage_b_passed += 1
        else:
            verified = self._verify(client, valid, stats, rejected)

        deduped = dedupe_events(verified)
        for provider, removed in deduped.stats.removed_by_provider.items():
            stats[provider].deduped_out = removed
        for item in deduped.events:
            stats[item.provider].published += 1
        if deduped.stats.duplicates_removed:
            logger.info("Dedupe removed %d duplicate(s)", deduped.stats.duplicates_removed)

        result = RefreshResult(
            run_id=run_id,
            started_at=started_at,
            finished_at=datetime.now(UTC).isoformat(),
            months=config.months,
            dry_run=config.dry_run,
            skip_verify=config.skip_verify,
            provider_filter=config.provider_filter,
            providers=[stats[spec.id] for spec in specs],
            events=deduped.events,
            rejected=rejected,
            dedupe=deduped.stats,
            alerts=alerts,
            cache=cache_counts,
        )

        if config.dry_run:
            logger.info("Dry run: %d event(s) not written", len(result.events))
            return result

        self.output.write_events(result.events, generated_at=result.finished_at)
        self.output.write_metadata(result.to_metadata())
        result.published = True
        logger.info("Published %d event(s) to %s", len(result.events), self.output.events_path)
        return result

    def _fetch_all(self, session: ScrapeSession, specs: List[ProviderSpec], today: date) -> List[ProviderFetchOutcome]:
        params = FetchParams(months=self.config.months, country_scope=self.config.country_scope)
        workers = max(1, min(self.config.fetch_concurrency, len(specs)))

        def fetch_one(spec: ProviderSpec) -> ProviderFetchOutcome:
            adapter = create_adapter(spec, session, today)
            try:
                return ProviderFetchOutcome(spec=spec, items=adapter.fetch(params))
            except ProviderFetchError as exc:
                logger.warning("%s", exc)
                return ProviderFetchOutcome(spec=spec, error=str(exc))
            except Exception as exc:
                logger.exception("Provider %s crashed", spec.id)
                return ProviderFetchOutcome(spec=spec, error=f"{type(exc).__name__}: {exc}")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch") as pool:
            return list(pool.map(fetch_one, specs))

    def _structural(
        self,
        items: List[EventItem],
        today: date,
        stats: Dict[str, ProviderRunStats],
        rejected: List[RejectedItem],
    ) -> List[EventItem]:
        valid: List[EventItem] = []
        for item in items:
            check = validate_event_item(
                item,
                months=self.config.months,
                past_grace_days=self.config.past_grace_days,
                today=today,
            )
            if check.valid:
                valid.append(item)
                stats[item.provider].structurally_valid += 1
                continue
            error = StructuralValidationError(check.errors)
            logger.info("Structural reject %s: %s", item.id, error)
            rejected.append(_reject(item, "structural", error))
        return valid

    def _verify(
        self,
        client: httpx.Client,
        items: List[EventItem],
        stats: Dict[str, ProviderRunStats],
        rejected: List[RejectedItem],
    ) -> List[EventItem]:
        config = self.config
        live = LiveUrlVerifier(
            client,
            self.url_store,
            ttl_hours=config.url_check_ttl_hours,
            timeout_seconds=config.request_timeout_seconds,
            user_agent=VERIFIER_USER_AGENT,
            throttle=self.throttle,
        )
        passed_live: List[tuple[EventItem, UrlCheckResult]] = []
        for item, result in run_stage(live, items, config.verify_concurrency):
            if result.ok:
                passed_live.append((item, result))
                stats[item.provider].stage_a_passed += 1
            else:
                logger.info("Live check failed %s: %s", item.registration_url, result.error)
                failure = LiveCheckFailure(item.registration_url, result.error or "unreachable", result.status)
                rejected.append(_reject(item, "live", failure))

        if not config.content_verification_enabled:
            http_only: List[EventItem] = []
            for item, live_result in passed_live:
                stats[item.provider].stage_b_passed += 1
                http_only.append(self._mark_verified(item, live_result, None, "http-only"))
            return http_only

        content = ContentVerifier(
            client,
            timeout_seconds=config.content_timeout_seconds,
            user_agent=VERIFIER_USER_AGENT,
            min_body_bytes=config.content_min_body_bytes,
            min_marker_categories=config.content_min_marker_categories,
            throttle=self.throttle,
        )
        checked = run_stage(content, [item for item, _ in passed_live], config.verify_concurrency)
        verified: List[EventItem] = []
        for (item, live_result), (_, result) in zip(passed_live, checked):
            method = "content"
            if not result.ok and result.ambiguous and config.headless_fallback_enabled:
                second = self.headless.verify(item)
                if second.ok:
                    method = "headless"
                else:
                    logger.debug("Headless fallback for %s: %s", item.registration_url, second.error)
            if result.ok or method == "headless":
                stats[item.provider].stage_b_passed += 1
                verified.append(self._mark_verified(item, live_result, result, method))
            else:
                logger.info("Content check failed %s: %s", item.registration_url, result.error)
                failure = ContentVerificationFailure(item.registration_url, result.error or "content check failed")
                rejected.append(_reject(item, "content", failure))
        return verified

    @staticmethod
    def _mark_verified(
        item: EventItem,
        live_result: UrlCheckResult,
        content_result: ContentCheckResult | None,
        method: str,
    ) -> EventItem:
        now = datetime.now(UTC).isoformat()
        notes = [f"HTTP {live_result.status}" if live_result.status is not None else "reachable"]
        update: dict[str, Any] = {
            "verified": True,
            "verified_at": now,
            "last_checked_at": live_result.checked_at,
            "verification_method": method,
            "verification_notes": notes,
        }
        if content_result is not None:
            notes.append("markers: " + ", ".join(content_result.markers) if content_result.markers else "markers: none")
            update["content_verified_at"] = content_result.checked_at
            update["verification_score"] = len(content_result.markers)
            update["final_url"] = content_result.final_url
        return item.model_copy(update=update)


def run_refresh(config: RuntimeConfig, **kwargs: Any) -> RefreshResult:
    return RefreshJob(config, **kwargs).run()
