"""Event classification and mapping helpers shared by the provider adapters."""

from __future__ import annotations

import re
from typing import Iterable

from .models import AudienceFit, EventCategory, EventFormat
from .scrape_utils import fold_diacritics

CATEGORY_KEYWORDS: list[tuple[EventCategory, list[str]]] = [
    (
        "Job Fair",
        ["job fair", "career fair", "recruitment fair", "karrieredag", "jobbmesse", "studentfair", "utdanningsmesse", "job day"],
    ),
    ("Workshop", ["workshop", "hands-on", "training", "kurs"]),
    ("Webinar/Seminar", ["webinar", "seminar", "online session", "frokostmøte"]),
    ("Meetup", ["meetup", "meet-up", "networking", "mingling"]),
    ("Conference", ["conference", "summit", "expo", "konferanse"]),
]

YOUTH_AUDIENCE_TERMS = ["youth", "16-21", "15-23", "teen", "young people", "ungdom"]
STUDENT_AUDIENCE_TERMS = ["student", "university", "graduate", "studenter", "universitet"]
GENERAL_AUDIENCE_TERMS = ["all ages", "everyone", "open to all", "åpent for alle"]

YOUTH_INDICATORS = [
    "youth",
    "young people",
    "student",
    "graduate",
    "entry level",
    "entry-level",
    "first job",
    "career start",
    "beginner",
    "internship",
    "apprentice",
    "trainee",
    "studenter",
    "ungdom",
]

CAREER_KEYWORDS = [
    "career",
    "job",
    "workshop",
    "seminar",
    "webinar",
    "student",
    "employer",
    "industry",
    "intern",
    "skills",
    "network",
    "karriere",
    "jobb",
]


def normalize_text(value: str) -> str:
    return " ".join((value or "").casefold().split())


def contains_any(text: str, terms: Iterable[str]) -> bool:
    haystack = normalize_text(text)
    return any(term in haystack for term in terms)


def generate_event_id(provider: str, provider_event_id: str) -> str:
    return f"{provider}:{provider_event_id}"


def parse_event_id(event_id: str, known_providers: Iterable[str] | None = None) -> tuple[str, str] | None:
    provider, sep, rest = (event_id or "").partition(":")
    if not provider or not sep or not rest:
        return None
    if known_providers is not None and provider not in set(known_providers):
        return None
    return provider, rest


def infer_format(is_online: bool = False, has_venue: bool = False) -> EventFormat:
    if is_online and has_venue:
        return "Hybrid"
    if is_online:
        return "Online"
    return "In-person"


def infer_category(text: str, provider_category: str | None = None) -> EventCategory:
    haystack = normalize_text(f"{text} {provider_category or ''}")
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in haystack for keyword in keywords):
            return category
    return "Other"


def infer_audience_fit(text: str) -> AudienceFit:
    if contains_any(text, YOUTH_AUDIENCE_TERMS):
        return "15-23"
    if contains_any(text, ["18+", "adults only"]):
        return "18+"
    if contains_any(text, STUDENT_AUDIENCE_TERMS):
        return "Students"
    if contains_any(text, GENERAL_AUDIENCE_TERMS):
        return "General"
    return "Unknown"


def is_youth_friendly(audience_fit: AudienceFit, text: str) -> bool:
    if audience_fit == "15-23":
        return True
    if audience_fit == "18+":
        return False
    return contains_any(text, YOUTH_INDICATORS)


def is_career_relevant(title: str, summary: str | None = None) -> bool:
    return contains_any(f"{title} {summary or ''}", CAREER_KEYWORDS)


def build_location_label(city: str | None, country: str | None, format: EventFormat = "In-person") -> str:
    if format == "Online":
        return "Online"
    if city and country:
        return f"{city}, {country}"
    return city or country or "Location TBA"


def normalize_key_part(value: str | None, *, keep_digits: bool = True) -> str:
    folded = fold_diacritics(value or "").lower()
    pattern = r"[^a-z0-9\s]" if keep_digits else r"[^a-z\s]"
    cleaned = re.sub(pattern, " ", folded)
    return " ".join(cleaned.split())
