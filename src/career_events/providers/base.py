"""Provider adapter contract and the shared scrape session."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, List

import httpx
from bs4 import BeautifulSoup, Tag

from ..cache import KeyValueStore
from ..errors import FetchError, ProviderFetchError
from ..models import EventItem, FetchParams
from ..scrape_utils import HostThrottle, extract_links, extract_main_text, fetch_html, force_https
from ..settings import SCRAPE_USER_AGENT
from ..taxonomy import build_location_label, generate_event_id
from ..time_utils import date_window
from ..url_canonical import url_host
from ..verification.structural import is_blocked_host

logger = logging.getLogger(__name__)

CARD_CLASS_HINTS = ("event", "card", "fair", "program", "teaser", "listing")


@dataclass
class ScrapeSession:
    client: httpx.Client
    html_cache: KeyValueStore | None = None
    throttle: HostThrottle | None = None
    timeout_seconds: float = 8.0
    cache_ttl_hours: float = 6
    user_agent: str = SCRAPE_USER_AGENT

    def get(self, url: str, *, throttle_seconds: float | None = None, use_cache: bool = True) -> str:
        return fetch_html(
            self.client,
            url,
            timeout=self.timeout_seconds,
            user_agent=self.user_agent,
            cache=self.html_cache if use_cache else None,
            cache_ttl_hours=self.cache_ttl_hours,
            throttle=self.throttle,
            throttle_seconds=throttle_seconds,
        )


class ProviderAdapter(ABC):
    """Turns one external listing site into canonical ``EventItem`` objects.

    ``fetch`` raises ``ProviderFetchError`` when the listing page itself is
    unreachable. Broken detail pages are skipped and logged.
    """

    provider_id: str = ""
    display_name: str = ""
    base_url: str = ""
    organizer_name: str | None = None
    max_detail_pages: int = 20

    def __init__(
        self,
        session: ScrapeSession,
        *,
        priority: int = 0,
        throttle_seconds: float | None = None,
        today: date | None = None,
    ) -> None:
        self.session = session
        self.priority = priority
        self.throttle_seconds = throttle_seconds
        self.today = today

    @abstractmethod
    def fetch_events(self, params: FetchParams) -> List[EventItem]: ...

    def fetch(self, params: FetchParams) -> List[EventItem]:
        items = self.fetch_events(params)
        logger.info("[%s] %d item(s) parsed", self.provider_id, len(items))
        return items

    def get_listing(self, url: str) -> str:
        try:
            return self.session.get(url, throttle_seconds=self.throttle_seconds)
        except FetchError as exc:
            raise ProviderFetchError(self.provider_id, f"listing fetch failed: {exc.message}") from exc

    def beyond_horizon(self, start: date, params: FetchParams) -> bool:
        """True when ``start`` falls after the requested look-ahead window."""
        return start > date_window(params.months, self.today)[1]

    def get_detail(self, url: str) -> str | None:
        try:
            return self.session.get(url, throttle_seconds=self.throttle_seconds)
        except FetchError as exc:
            logger.warning("[%s] detail fetch failed for %s: %s", self.provider_id, url, exc.message)
            return None

    def build_item(self, provider_event_id: str, **fields: Any) -> EventItem:
        registration_url = force_https(fields.pop("registration_url"))
        source_url = force_https(fields.pop("source_url", None) or registration_url)
        fields.setdefault("organizer_name", self.organizer_name)
        event_format = fields.setdefault("format", "In-person")
        if not fields.get("location_label"):
            fields["location_label"] = build_location_label(fields.get("city"), fields.get("country"), event_format)
        return EventItem(
            id=generate_event_id(self.provider_id, provider_event_id),
            provider=self.provider_id,
            provider_event_id=provider_event_id,
            registration_url=registration_url,
            source_url=source_url,
            provider_priority=self.priority,
            **fields,
        )


def _is_card_candidate(element: Tag) -> bool:
    if element.name == "article":
        return True
    if element.name not in {"div", "li"}:
        return False
    classes = " ".join(element.get("class") or []).lower()
    return any(hint in classes for hint in CARD_CLASS_HINTS)


def find_cards(soup: BeautifulSoup) -> list[Tag]:
    """Innermost listing entries that carry both a heading and a link, in document order."""
    candidates = [
        element
        for element in soup.find_all(_is_card_candidate)
        if (element.find(["h1", "h2", "h3", "h4"]) or element.select_one("[class*=title]")) and element.find("a", href=True)
    ]
    candidate_ids = {id(element) for element in candidates}
    outer: set[int] = set()
    for element in candidates:
        for parent in element.parents:
            if id(parent) in candidate_ids:
                outer.add(id(parent))
    return [card for card in candidates if id(card) not in outer]


def heading_text(node: Tag) -> str | None:
    heading = node.find(["h1", "h2", "h3", "h4"])
    if heading is None:
        heading = node.select_one("[class*=title]")
    if heading is None:
        return None
    text = " ".join(heading.get_text(" ").split())
    return text or None


def time_datetime(node: Tag) -> str | None:
    element = node.find("time")
    if element is None:
        return None
    value = element.get("datetime") or element.get_text(" ")
    return " ".join(str(value).split()) or None


def card_text(node: Tag) -> str:
    return " ".join(node.get_text(" ").split())


def block_text(node: Tag) -> str:
    """Text with one line per element, for "Label: value" lookups that must stop at the element."""
    return node.get_text("\n")


_VENUE_LABEL_RE = re.compile(r"(?:venue|location|place|sted|adresse)\s*:\s*([^\n|]{3,120})", re.I)
_TIME_RE = re.compile(r"\b\d{1,2}[:.]\d{2}(?:\s*[-–]\s*\d{1,2}[:.]\d{2})?")
_REGISTRATION_TEXT_RE = re.compile(
    r"\b(?:register|registration|registrer|sign\s+up|påmelding|meld\s+deg|get\s+tickets|book\s+(?:now|your|a\s+seat))\b",
    re.I,
)
_ONLINE_TERMS = ("online", "virtual", "digital", "remote", "webinar", "zoom", "teams")


@dataclass
class DetailPage:
    description: str | None = None
    venue: str | None = None
    registration_url: str | None = None
    time_label: str | None = None
    is_online: bool = False


def parse_detail_page(html: str, page_url: str) -> DetailPage:
    """Description, venue, registration link and time label from an event detail page."""
    soup = BeautifulSoup(html, "html.parser")
    detail = DetailPage()

    text = extract_main_text(html)
    if text:
        detail.description = text[:500]

    venue_node = soup.select_one("[class*=venue], [class*=location]")
    if venue_node is not None:
        detail.venue = " ".join(venue_node.get_text(" ").split()) or None
    if not detail.venue:
        match = _VENUE_LABEL_RE.search(block_text(soup))
        if match:
            detail.venue = match.group(1).strip()

    for link in extract_links(html, page_url):
        if not _REGISTRATION_TEXT_RE.search(link["text"]):
            continue
        if is_blocked_host(url_host(link["href"])):
            continue
        detail.registration_url = link["href"]
        break

    time_match = _TIME_RE.search(text or "")
    if time_match:
        detail.time_label = time_match.group(0)

    lowered = (text or "").lower()
    detail.is_online = any(term in lowered for term in _ONLINE_TERMS)
    return detail
