"""BI Karrieredagene: the karrieredagene.no programme plus BI's own career-days page.

Either page alone is enough for a successful fetch; the provider only fails
when both are unreachable.
"""

from __future__ import annotations

import logging
import re
from typing import List

from bs4 import BeautifulSoup

from ..errors import ProviderFetchError
from ..models import EventCategory, EventItem, FetchParams
from ..scrape_utils import extract_links, slugify, strip_html
from ..taxonomy import infer_category, is_youth_friendly
from ..time_utils import parse_event_date, to_iso_date
from .base import ProviderAdapter, block_text, card_text, find_cards, heading_text, time_datetime

logger = logging.getLogger(__name__)

KARRIEREDAGENE_URL = "https://www.karrieredagene.no"
PROGRAM_URL = f"{KARRIEREDAGENE_URL}/program"
BI_CAREER_URL = "https://www.bi.no/en/study-at-bi/resources-and-opportunities/guidance/karrieredagene/"

_YEAR_RE = re.compile(r"karrieredagene\s+(\d{4})", re.I)
_DATE_CONTEXT_RE = re.compile(r"\d{1,2}(?:\.\s*|\s+)[a-zæøå]+(?:\s+\d{4})?", re.I)
_TIME_RE = re.compile(r"\b\d{1,2}[:.]\d{2}(?:\s*[-–]\s*\d{1,2}[:.]\d{2})?")
_VENUE_RE = re.compile(r"(?:sted|venue|rom|room|location)\s*:\s*([^,\n|]+)", re.I)
_CITIES = ("Bergen", "Trondheim", "Stavanger")


def determine_category(title: str, description: str | None = None) -> EventCategory:
    text = f"{title} {description or ''}".lower()
    if "karrieredag" in text or "career fair" in text or "jobbmesse" in text:
        return "Job Fair"
    if "workshop" in text:
        return "Workshop"
    if "seminar" in text or "foredrag" in text:
        return "Webinar/Seminar"
    return infer_category(text)


def parse_program_page(html: str) -> list[dict]:
    soup = BeautifulSoup(html, "html.parser")
    entries: list[dict] = []
    for card in find_cards(soup):
        title = heading_text(card)
        if not title or len(title) <= 3:
            continue
        text = card_text(card)
        links = extract_links(str(card), PROGRAM_URL)
        venue = _VENUE_RE.search(block_text(card))
        time_match = _TIME_RE.search(text)
        paragraph = card.find("p")
        entries.append(
            {
                "title": title,
                "date_text": time_datetime(card) or text,
                "time": time_match.group(0) if time_match else None,
                "venue": venue.group(1).strip() if venue else None,
                "url": links[0]["href"] if links else PROGRAM_URL,
                "description": " ".join(paragraph.get_text(" ").split()) if paragraph else None,
            }
        )
    if not entries:
        text = strip_html(html)
        date_match = _DATE_CONTEXT_RE.search(text)
        if date_match:
            year = _YEAR_RE.search(text)
            entries.append(
                {
                    "title": f"Karrieredagene {year.group(1)}" if year else "BI Karrieredagene",
                    "date_text": date_match.group(0),
                    "time": None,
                    "venue": None,
                    "url": PROGRAM_URL,
                    "description": "Career days at BI Norwegian Business School",
                }
            )
    return entries


def parse_bi_career_page(html: str) -> list[dict]:
    text = strip_html(html)
    for match in _DATE_CONTEXT_RE.finditer(text):
        context = text[max(0, match.start() - 100): match.end() + 100].lower()
        if "karrieredag" in context or "career" in context:
            return [
                {
                    "title": "BI Karrieredagene",
                    "date_text": match.group(0),
                    "time": None,
                    "venue": "BI Oslo",
                    "url": BI_CAREER_URL,
                    "description": "Annual career fair at BI Norwegian Business School",
                }
            ]
    return []


class BIKarrieredageneProvider(ProviderAdapter):
    provider_id = "bi-karrieredagene"
    display_name = "BI Karrieredagene"
    base_url = KARRIEREDAGENE_URL
    organizer_name = "BI Norwegian Business School"

    def fetch_events(self, params: FetchParams) -> List[EventItem]:
        entries: list[dict] = []
        failures: list[str] = []
        for url, parser in ((PROGRAM_URL, parse_program_page), (BI_CAREER_URL, parse_bi_career_page)):
            try:
                html = self.get_listing(url)
            except ProviderFetchError as exc:
                logger.warning("%s", exc)
                failures.append(str(exc))
                continue
            entries.extend(parser(html))
        if len(failures) == 2:
            raise ProviderFetchError(self.provider_id, "; ".join(failures))

        seen: set[str] = set()
        items: List[EventItem] = []
        for entry in entries:
            key = entry["title"].lower()
            if key in seen:
                continue
            seen.add(key)
            item = self.map_entry(entry)
            if item is not None:
                items.append(item)
        return items

    def map_entry(self, entry: dict) -> EventItem | None:
        start = parse_event_date(entry["date_text"], self.today)
        if start is None:
            return None
        venue = entry["venue"]
        city = next((c for c in _CITIES if venue and c.lower() in venue.lower()), "Oslo")
        search_text = f"{entry['title']} {entry['description'] or ''} student career"
        tags = ["career-fair"]
        if is_youth_friendly("Students", search_text):
            tags.append("youth-friendly")
        return self.build_item(
            slugify(f"{entry['title']}-{to_iso_date(start)}"),
            title=entry["title"],
            description=entry["description"],
            start_date=to_iso_date(start),
            time_label=entry["time"],
            city=city,
            country="Norway",
            venue=venue,
            location_label=venue or f"{city}, Norway",
            format="In-person",
            category=determine_category(entry["title"], entry["description"]),
            audience_fit="Students",
            youth_friendly="youth-friendly" in tags,
            tags=tags,
            registration_url=entry["url"],
        )
