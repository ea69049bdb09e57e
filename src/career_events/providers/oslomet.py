"""OsloMet upcoming events, filtered down to career-relevant entries."""

from __future__ import annotations

import logging
from typing import List

from bs4 import BeautifulSoup

from ..models import EventItem, FetchParams
from ..scrape_utils import extract_links, slugify
from ..taxonomy import infer_audience_fit, infer_category, infer_format, is_career_relevant, is_youth_friendly
from ..time_utils import parse_event_date, to_iso_date
from .base import ProviderAdapter, card_text, find_cards, heading_text, parse_detail_page, time_datetime

logger = logging.getLogger(__name__)

BASE_URL = "https://www.oslomet.no"
EVENTS_URL = f"{BASE_URL}/en/about/events/upcoming-events"


def parse_listing(html: str) -> list[dict]:
    soup = BeautifulSoup(html, "html.parser")
    rows: list[dict] = []
    for card in find_cards(soup):
        title = heading_text(card)
        links = extract_links(str(card), BASE_URL)
        if not title or not links:
            continue
        summary_node = card.find("p")
        rows.append(
            {
                "title": title,
                "date_text": time_datetime(card) or card_text(card),
                "url": links[0]["href"],
                "summary": " ".join(summary_node.get_text(" ").split())[:300] if summary_node else None,
            }
        )
    if not rows:
        for link in extract_links(html, BASE_URL):
            if "/events/" in link["href"] and len(link["text"]) > 5 and "all events" not in link["text"].lower():
                rows.append({"title": link["text"], "date_text": link["text"], "url": link["href"], "summary": None})
    return rows


class OsloMetProvider(ProviderAdapter):
    provider_id = "oslomet"
    display_name = "OsloMet"
    base_url = BASE_URL
    organizer_name = "OsloMet"

    def fetch_events(self, params: FetchParams) -> List[EventItem]:
        rows = parse_listing(self.get_listing(EVENTS_URL))
        relevant = [row for row in rows if is_career_relevant(row["title"], row["summary"])]
        logger.info("[%s] %d listing row(s), %d career-relevant", self.provider_id, len(rows), len(relevant))

        items: List[EventItem] = []
        for row in relevant[: self.max_detail_pages]:
            item = self.map_row(row, params)
            if item is not None:
                items.append(item)
        return items

    def map_row(self, row: dict, params: FetchParams) -> EventItem | None:
        start = parse_event_date(row["date_text"], self.today)
        if start is None:
            logger.debug("[%s] no date for %r", self.provider_id, row["title"])
            return None

        # Out-of-window rows still reach structural validation, without a detail fetch.
        html = None if self.beyond_horizon(start, params) else self.get_detail(row["url"])
        detail = parse_detail_page(html, row["url"]) if html else None
        description = (detail.description if detail else None) or row["summary"]
        venue = detail.venue if detail else None
        search_text = f"{row['title']} {description or ''}"
        audience = infer_audience_fit(search_text)
        if audience == "Unknown":
            audience = "Students"
        event_format = infer_format(bool(detail and detail.is_online), bool(venue))

        return self.build_item(
            slugify(f"{row['title']}-{to_iso_date(start)}"),
            title=row["title"],
            description=description,
            start_date=to_iso_date(start),
            time_label=detail.time_label if detail else None,
            city=None if event_format == "Online" else "Oslo",
            country="Norway",
            venue=venue,
            format=event_format,
            category=infer_category(search_text),
            audience_fit=audience,
            youth_friendly=is_youth_friendly(audience, search_text),
            tags=["university"],
            registration_url=(detail.registration_url if detail else None) or row["url"],
            source_url=row["url"],
        )
