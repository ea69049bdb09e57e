"""Shared fetch, throttle and HTML helpers used by every provider adapter."""

from __future__ import annotations

import logging
import random
import re
import threading
import time
import unicodedata
from datetime import UTC, datetime, timedelta
from typing import Callable
from urllib.parse import urljoin, urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup

from .cache import KeyValueStore, is_expired
from .errors import FetchError
from .settings import SCRAPE_USER_AGENT
from .url_canonical import url_host

logger = logging.getLogger(__name__)

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.9,nb;q=0.8,no;q=0.7"


class HostThrottle:
    """Spaces consecutive requests to the same host by ``min_interval`` seconds.

    Slots are reserved under a lock and the sleep happens outside it, so
    different hosts never wait on each other while two workers hitting the
    same host are serialized.
    """

    def __init__(
        self,
        min_interval: float,
        jitter: float = 0.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_interval = max(0.0, min_interval)
        self.jitter = max(0.0, jitter)
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot: dict[str, float] = {}

    def wait(self, url: str, min_interval: float | None = None) -> float:
        host = url_host(url)
        interval = self.min_interval if min_interval is None else max(0.0, min_interval)
        if not host or interval <= 0:
            return 0.0
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot.get(host, now))
            spacing = interval + (random.uniform(0, self.jitter) if self.jitter else 0.0)
            self._next_slot[host] = slot + spacing
        delay = slot - now
        if delay > 0:
            self._sleep(delay)
        return delay


def get_cached_html(store: KeyValueStore, url: str, now: datetime | None = None) -> str | None:
    entry = store.get(url)
    if not entry:
        return None
    if is_expired(entry, now):
        store.delete(url)
        return None
    html = entry.get("html")
    return html if isinstance(html, str) else None


def cache_html(store: KeyValueStore, url: str, html: str, ttl_hours: float) -> None:
    now = datetime.now(UTC)
    store.put(
        url,
        {
            "url": url,
            "html": html,
            "fetched_at": now.isoformat(),
            "expires_at": (now + timedelta(hours=ttl_hours)).isoformat(),
        },
    )


def fetch_html(
    client: httpx.Client,
    url: str,
    *,
    timeout: float = 8.0,
    user_agent: str = SCRAPE_USER_AGENT,
    cache: KeyValueStore | None = None,
    cache_ttl_hours: float = 6,
    throttle: HostThrottle | None = None,
    throttle_seconds: float | None = None,
) -> str:
    """GET ``url`` and return its body, consulting the HTML cache first.

    Raises ``FetchError`` on timeout, transport failure or a non-2xx status.
    """
    if cache is not None:
        cached = get_cached_html(cache, url)
        if cached is not None:
            logger.debug("HTML cache hit %s", url)
            return cached

    if throttle is not None:
        throttle.wait(url, throttle_seconds)

    try:
        response = client.get(
            url,
            headers={
                "User-Agent": user_agent,
                "Accept": ACCEPT_HTML,
                "Accept-Language": ACCEPT_LANGUAGE,
            },
            timeout=timeout,
            follow_redirects=True,
        )
    except httpx.TimeoutException as exc:
        raise FetchError(url, "Request timeout") from exc
    except httpx.HTTPError as exc:
        raise FetchError(url, str(exc) or exc.__class__.__name__) from exc

    if not 200 <= response.status_code < 300:
        raise FetchError(url, f"HTTP {response.status_code}", status=response.status_code)

    html = response.text
    if cache is not None and cache_ttl_hours > 0:
        cache_html(cache, url, html, cache_ttl_hours)
    return html


def strip_html(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())


def extract_links(html: str, base_url: str) -> list[dict[str, str]]:
    soup = BeautifulSoup(html or "", "html.parser")
    links: list[dict[str, str]] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href", "")).strip()
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue
        full = urljoin(base_url, href)
        if urlparse(full).scheme not in {"http", "https"}:
            continue
        links.append({"href": full, "text": " ".join(anchor.get_text(" ").split())})
    return links


def extract_main_text(html: str) -> str:
    """Main article text of a detail page, falling back to the stripped body."""
    try:
        text = trafilatura.extract(html, include_comments=False, include_tables=False)
    except (ValueError, TypeError) as exc:
        logger.debug("trafilatura extraction failed: %s", exc)
        text = None
    return " ".join(text.split()) if text else strip_html(html)


def page_title(html: str) -> str | None:
    soup = BeautifulSoup(html or "", "html.parser")
    if soup.title and soup.title.string:
        return soup.title.string.split("|")[0].strip() or None
    return None


def force_https(url: str) -> str:
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


_NORDIC_FOLD = str.maketrans({"æ": "ae", "ø": "o", "å": "a", "Æ": "ae", "Ø": "o", "Å": "a"})


def fold_diacritics(value: str) -> str:
    folded = (value or "").translate(_NORDIC_FOLD)
    decomposed = unicodedata.normalize("NFKD", folded)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(text: str, max_length: int = 60) -> str:
    lowered = fold_diacritics(text).lower()
    slug = re.sub(r"[^a-z0-9]+", "-", lowered).strip("-")
    return slug[:max_length].rstrip("-")
