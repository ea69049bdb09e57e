"""Stage A: live HTTP check of registration links with a TTL cache."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta

import httpx

from ..cache import KeyValueStore, is_expired
from ..models import EventItem, UrlCheckCacheEntry, UrlCheckResult
from ..scrape_utils import HostThrottle
from ..settings import VERIFIER_USER_AGENT
from ..url_canonical import url_cache_key, url_host
from .base import VerificationStage
from .structural import is_https_url

logger = logging.getLogger(__name__)

# Hosts that answer HEAD with an error or drop the connection.
HEAD_BLOCKING_HOSTS: tuple[str, ...] = ("eventbrite.", "meetup.com", "linkedin.com")
HEAD_REJECTED_STATUSES = {403, 405, 501}


def is_success_status(status: int | None) -> bool:
    return status is not None and 200 <= status < 400


class LiveUrlVerifier(VerificationStage[UrlCheckResult]):
    name = "live"

    def __init__(
        self,
        client: httpx.Client,
        store: KeyValueStore,
        *,
        ttl_hours: float = 24,
        timeout_seconds: float = 8.0,
        user_agent: str = VERIFIER_USER_AGENT,
        throttle: HostThrottle | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.ttl_hours = ttl_hours
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.throttle = throttle
        self._key_locks: dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    def verify(self, item: EventItem) -> UrlCheckResult:
        return self.verify_url(item.registration_url)

    def cached(self, url: str) -> UrlCheckResult | None:
        entry = self.store.get(url_cache_key(url))
        if not entry or is_expired(entry):
            return None
        cached = UrlCheckCacheEntry.model_validate(entry)
        return UrlCheckResult(
            url=url,
            ok=cached.ok,
            status=cached.status,
            error=cached.error,
            checked_at=cached.checked_at,
        )

    def verify_url(self, url: str, *, skip_cache: bool = False) -> UrlCheckResult:
        if not is_https_url(url):
            checked_at = datetime.now(UTC).isoformat()
            return UrlCheckResult(url=url, ok=False, error="URL must use HTTPS protocol", checked_at=checked_at)

        key = url_cache_key(url)
        # One network check per key at a time; later callers read the fresh entry.
        with self._key_lock(key):
            if not skip_cache:
                hit = self.cached(url)
                if hit is not None:
                    logger.debug("URL check cache hit %s", url)
                    return hit
            return self._check_and_store(url, key)

    def _key_lock(self, key: str) -> threading.Lock:
        with self._key_locks_guard:
            return self._key_locks.setdefault(key, threading.Lock())

    def _check_and_store(self, url: str, key: str) -> UrlCheckResult:
        now = datetime.now(UTC)
        status, error = self._fetch_status(url)
        ok = is_success_status(status)
        if status is not None and not ok:
            error = f"HTTP {status}"

        result = UrlCheckResult(url=url, ok=ok, status=status, error=error, checked_at=now.isoformat())
        entry = UrlCheckCacheEntry(
            key=key,
            url=url,
            ok=ok,
            status=status,
            error=error,
            checked_at=result.checked_at,
            expires_at=(now + timedelta(hours=self.ttl_hours)).isoformat(),
        )
        self.store.put(key, entry.model_dump(mode="json"))
        return result

    def _request(self, method: str, url: str) -> httpx.Response:
        if self.throttle is not None:
            self.throttle.wait(url)
        return self.client.request(
            method,
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout_seconds,
            follow_redirects=True,
        )

    def _fetch_status(self, url: str) -> tuple[int | None, str | None]:
        host = url_host(url)
        try:
            if not any(marker in host for marker in HEAD_BLOCKING_HOSTS):
                try:
                    head = self._request("HEAD", url)
                    if head.status_code not in HEAD_REJECTED_STATUSES:
                        return head.status_code, None
                    logger.debug("HEAD %s -> %s, retrying with GET", url, head.status_code)
                except httpx.HTTPError as exc:
                    logger.debug("HEAD %s failed (%s), retrying with GET", url, exc)
            response = self._request("GET", url)
            return response.status_code, None
        except httpx.TimeoutException:
            return None, "Request timeout"
        except httpx.HTTPError as exc:
            return None, str(exc) or exc.__class__.__name__
