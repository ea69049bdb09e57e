"""Ta Utdanning student fairs (tautdanning.no), one listing page per city."""

from __future__ import annotations

import logging
import re
from typing import List

from bs4 import BeautifulSoup

from ..models import EventItem, FetchParams
from ..scrape_utils import extract_links, page_title, slugify, strip_html
from ..taxonomy import is_youth_friendly
from ..time_utils import parse_event_date, to_iso_date
from .base import ProviderAdapter, block_text, card_text, find_cards, heading_text, time_datetime

logger = logging.getLogger(__name__)

BASE_URL = "https://www.tautdanning.no"
STUDENTFAIRS_URL = f"{BASE_URL}/studentfairs/"
COMMON_CITIES = ["oslo", "bergen", "trondheim", "stavanger", "kristiansand", "tromso", "drammen"]

_CITY_PATH_RE = re.compile(r"/studentfairs/([a-z-]+)/?$", re.I)
_VENUE_RE = re.compile(r"(?:sted|venue|lokasjon|location)\s*:\s*([^,\n|]+)", re.I)
_DETAIL_LINK_HINTS = ("les mer", "read more", "mer info", "påmelding", "register")


def city_pages(listing_html: str) -> list[tuple[str, str]]:
    pages: list[tuple[str, str]] = []
    seen: set[str] = set()
    for link in extract_links(listing_html, BASE_URL):
        match = _CITY_PATH_RE.search(link["href"].split("?")[0])
        if not match or match.group(1).lower() == "studentfairs":
            continue
        slug = match.group(1).lower()
        if slug not in seen:
            seen.add(slug)
            pages.append((slug, link["href"]))
    for slug in COMMON_CITIES:
        if slug not in seen:
            seen.add(slug)
            pages.append((slug, f"{STUDENTFAIRS_URL}{slug}/"))
    return pages


def _city_name(slug: str) -> str:
    return "Tromsø" if slug == "tromso" else slug.replace("-", " ").title()


def _detail_link(card, page_url: str) -> str:
    links = extract_links(str(card), page_url)
    for link in links:
        if any(hint in link["text"].lower() for hint in _DETAIL_LINK_HINTS):
            return link["href"]
    return links[0]["href"] if links else page_url


class TaUtdanningProvider(ProviderAdapter):
    provider_id = "tautdanning"
    display_name = "Ta Utdanning"
    base_url = BASE_URL
    organizer_name = "Ta Utdanning"

    def fetch_events(self, params: FetchParams) -> List[EventItem]:
        listing = self.get_listing(STUDENTFAIRS_URL)
        items: List[EventItem] = []
        for slug, url in city_pages(listing)[: self.max_detail_pages]:
            html = self.get_detail(url)
            if html is None:
                continue
            items.extend(self.parse_city_page(html, _city_name(slug), url))
        return items

    def parse_city_page(self, html: str, city: str, page_url: str) -> List[EventItem]:
        soup = BeautifulSoup(html, "html.parser")
        entries: list[tuple[str, str, str | None, str]] = []
        for card in find_cards(soup):
            title = heading_text(card)
            text = card_text(card)
            date_text = time_datetime(card) or text
            if not title:
                continue
            venue_match = _VENUE_RE.search(block_text(card))
            entries.append((title, date_text, venue_match.group(1).strip() if venue_match else None, _detail_link(card, page_url)))

        if not entries:
            text = strip_html(html)
            venue_match = _VENUE_RE.search(block_text(soup))
            entries.append(
                (
                    page_title(html) or f"Utdanningsmesse {city}",
                    text,
                    venue_match.group(1).strip() if venue_match else None,
                    page_url,
                )
            )

        items: List[EventItem] = []
        for title, date_text, venue, url in entries:
            start = parse_event_date(date_text, self.today)
            if start is None:
                logger.debug("[%s] no date for %r", self.provider_id, title)
                continue
            full_title = title if city.lower() in title.lower() else f"{title} {city}"
            search_text = f"{full_title} {city} student fair"
            tags = ["student-fair"]
            if is_youth_friendly("Students", search_text):
                tags.append("youth-friendly")
            items.append(
                self.build_item(
                    slugify(f"{city}-{to_iso_date(start)}-{title}"),
                    title=full_title,
                    description=f"Venue: {venue}" if venue else None,
                    start_date=to_iso_date(start),
                    city=city,
                    country="Norway",
                    venue=venue,
                    format="In-person",
                    category="Job Fair",
                    audience_fit="Students",
                    youth_friendly="youth-friendly" in tags,
                    tags=tags,
                    registration_url=url,
                    source_url=page_url,
                )
            )
        return items
