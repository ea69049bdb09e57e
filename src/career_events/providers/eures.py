"""EURES European Job Days (europeanjobdays.eu), English-language listings."""

from __future__ import annotations

import logging
from typing import List

from bs4 import BeautifulSoup

from ..models import EventItem, FetchParams
from ..scrape_utils import extract_links, slugify
from ..taxonomy import contains_any, infer_audience_fit, infer_category, infer_format, is_youth_friendly
from ..time_utils import parse_english_date, parse_event_date, to_iso_date
from .base import ProviderAdapter, card_text, find_cards, heading_text, parse_detail_page, time_datetime

logger = logging.getLogger(__name__)

BASE_URL = "https://europeanjobdays.eu"
EVENTS_URL = f"{BASE_URL}/en/events"

JOB_KEYWORDS = ["job", "career", "recruitment", "employment", "hiring", "work", "talent", "graduate", "youth"]
NORWAY_TERMS = ["norway", "norge", "norwegian"]
EUROPEAN_COUNTRIES = [
    "Norway", "Sweden", "Denmark", "Finland", "Germany", "France",
    "Netherlands", "Belgium", "Spain", "Italy", "Poland", "Ireland",
    "Portugal", "Austria", "Switzerland", "Czech Republic", "Greece",
]
ONLINE_TERMS = ["online", "virtual", "digital", "remote"]


def parse_listing(html: str) -> list[dict]:
    soup = BeautifulSoup(html, "html.parser")
    rows: list[dict] = []
    for card in find_cards(soup):
        title = heading_text(card)
        links = extract_links(str(card), BASE_URL)
        if not title or not links:
            continue
        text = card_text(card)
        rows.append(
            {
                "title": title,
                "date_text": time_datetime(card) or text,
                "url": links[0]["href"],
                "summary": text[:300],
                "is_online": contains_any(text, ONLINE_TERMS),
                "country": next((c for c in EUROPEAN_COUNTRIES if c in text), None),
            }
        )
    if not rows:
        for link in extract_links(html, BASE_URL):
            title = link["text"]
            if ("/event/" in link["href"] or "/events/" in link["href"]) and len(title) > 5 and "all events" not in title.lower():
                rows.append(
                    {"title": title, "date_text": "", "url": link["href"], "summary": None, "is_online": False, "country": None}
                )
    return rows


class EuresProvider(ProviderAdapter):
    provider_id = "eures"
    display_name = "EURES Job Days"
    base_url = BASE_URL
    organizer_name = "EURES - European Employment Services"

    def fetch_events(self, params: FetchParams) -> List[EventItem]:
        if params.country_scope == "Norway":
            logger.info("[%s] skipped for Norway-only scope", self.provider_id)
            return []
        rows = parse_listing(self.get_listing(EVENTS_URL))
        relevant = [row for row in rows if contains_any(f"{row['title']} {row['summary'] or ''}", JOB_KEYWORDS)]
        logger.info("[%s] %d listing row(s), %d job-related", self.provider_id, len(rows), len(relevant))

        items: List[EventItem] = []
        for row in relevant[: self.max_detail_pages]:
            item = self.map_row(row, params)
            if item is not None:
                items.append(item)
        return items

    def map_row(self, row: dict, params: FetchParams) -> EventItem | None:
        start = parse_english_date(row["date_text"], self.today) or parse_event_date(row["date_text"], self.today)
        html = None if start and self.beyond_horizon(start, params) else self.get_detail(row["url"])
        detail = parse_detail_page(html, row["url"]) if html else None
        if start is None and detail and detail.description:
            start = parse_english_date(detail.description, self.today)
        if start is None:
            logger.debug("[%s] no date for %r", self.provider_id, row["title"])
            return None

        description = (detail.description if detail else None) or row["summary"]
        search_text = f"{row['title']} {row['summary'] or ''} {description or ''}"
        audience = infer_audience_fit(search_text)
        if audience == "Unknown":
            audience = "General"
        tags = ["european-job-days"]
        youth = is_youth_friendly(audience, search_text)
        if youth:
            tags.append("youth-friendly")
        if contains_any(search_text, NORWAY_TERMS):
            tags.append("norway-focus")

        venue = detail.venue if detail else None
        event_format = infer_format(row["is_online"] or bool(detail and detail.is_online), bool(venue))
        country = "Norway" if row["country"] == "Norway" else "Europe"
        city = None
        if event_format != "Online" and venue:
            city = venue.split(",")[0].strip() or None

        return self.build_item(
            slugify(row["title"]),
            title=row["title"],
            description=description,
            start_date=to_iso_date(start),
            time_label=detail.time_label if detail else None,
            city=city,
            country=country,
            venue=venue,
            location_label="Online" if event_format == "Online" else (venue or "Europe"),
            format=event_format,
            online_url=row["url"] if event_format != "In-person" else None,
            category=infer_category(search_text),
            audience_fit=audience,
            youth_friendly=youth,
            tags=tags,
            registration_url=(detail.registration_url if detail else None) or row["url"],
            source_url=row["url"],
        )
