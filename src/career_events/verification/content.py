"""Stage B: content sanity check of a registration page.

Rejection order: short body (soft 404), login wall, "not found" copy, then
too few distinct content-marker categories. The rule tables below are
versioned through ``CONTENT_RULESET_VERSION``; bump it when a list changes
so run metadata shows which rules produced a verdict.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from urllib.parse import urlparse

import httpx

from ..models import ContentCheckResult, EventItem
from ..scrape_utils import HostThrottle, strip_html
from ..settings import VERIFIER_USER_AGENT
from .base import VerificationStage
from .structural import is_https_url

logger = logging.getLogger(__name__)

CONTENT_RULESET_VERSION = "2"

LOGIN_PATH_SEGMENTS: tuple[str, ...] = ("login", "signin", "sign-in", "sso", "auth", "logg-inn", "innlogging")

LOGIN_WALL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<input[^>]+type=[\"']password[\"']", re.I),
    re.compile(r"window\.location(?:\.href)?\s*=\s*[\"'][^\"']*/(?:login|signin|sso|auth)\b", re.I),
    re.compile(r"<meta[^>]+http-equiv=[\"']refresh[\"'][^>]*url=[^\"'>]*/(?:login|signin|sso|auth)\b", re.I),
)

SOFT_404_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"page\s+not\s+found", re.I),
    re.compile(r"404\s*[-:|]?\s*not\s+found", re.I),
    re.compile(r"side(?:n)?\s+ikke\s+funnet", re.I),
    re.compile(r"denne\s+siden\s+finnes\s+ikke", re.I),
    re.compile(r"this\s+event\s+(?:has\s+ended|is\s+no\s+longer\s+available)", re.I),
)

DATE_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b\d{1,2}\.\s*(?:januar|februar|mars|april|mai|juni|juli|august|september|oktober|november|desember)\b", re.I),
    re.compile(r"\b(?:january|february|march|april|may|june|july|august|september|october|november|december)\s+\d{1,2}\b", re.I),
    re.compile(r"\b\d{1,2}\s+(?:january|february|march|april|may|june|july|august|september|october|november|december)\b", re.I),
    re.compile(r"\b\d{1,2}\.\d{1,2}\.\d{4}\b"),
)

TICKET_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:tickets?|billett(?:er)?|biljetter|free\s+entry|gratis|admission|pris|price)\b", re.I),
    re.compile(r"(?:\b(?:kr|nok|eur)\s?\d+|\d+\s?(?:kr|nok|eur)\b|€\s?\d+)", re.I),
)

LOCATION_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:venue|location|address|adresse|lokasjon|sted|where)\s*:", re.I),
    re.compile(r"\b\d{4}\s+(?:oslo|bergen|trondheim|stavanger|kristiansand|troms[oø]|drammen)\b", re.I),
)

REGISTRATION_KEYWORDS: tuple[str, ...] = (
    "register",
    "sign up",
    "signup",
    "påmelding",
    "meld deg på",
    "registrer",
    "book now",
    "book your",
    "get tickets",
    "buy tickets",
    "rsvp",
    "enroll",
    "join now",
    "apply now",
    "bestill",
)

ORGANIZER_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:organi[sz]ers?|organi[sz]ed\s+by|hosted\s+by|arrangør|arrangert\s+av|presented\s+by)\b", re.I),
)

EVENT_SCHEMA_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"@type[\"'\s:]+[\"'](?:Event|EducationEvent|BusinessEvent|SocialEvent)[\"']", re.I),
    re.compile(r"itemtype=[\"']https?://schema\.org/(?:Event|EducationEvent|BusinessEvent)[\"']", re.I),
)

CALENDAR_KEYWORDS: tuple[str, ...] = (
    "add to calendar",
    ".ics",
    "icalendar",
    "legg til i kalender",
    "google calendar",
    "outlook calendar",
)


def has_login_wall(html: str, final_url: str | None = None) -> bool:
    if final_url:
        segments = [s for s in urlparse(final_url).path.lower().split("/") if s]
        if any(segment in LOGIN_PATH_SEGMENTS for segment in segments):
            return True
    return any(pattern.search(html) for pattern in LOGIN_WALL_PATTERNS)


def has_soft_404(text: str) -> bool:
    return any(pattern.search(text) for pattern in SOFT_404_PATTERNS)


def _title_matches(text_lower: str, title: str) -> bool:
    words = [w for w in re.split(r"\s+", title.lower()) if len(w) > 3]
    if not words:
        return False
    return sum(1 for w in words if w in text_lower) >= 2


def detect_markers(html: str, text: str, title: str = "") -> list[str]:
    """Distinct content-marker categories present on the page, in a fixed order."""
    lowered = text.lower()
    html_lower = html.lower()
    found: list[str] = []
    if any(p.search(text) for p in DATE_MARKER_PATTERNS):
        found.append("date")
    if any(p.search(text) for p in TICKET_MARKER_PATTERNS):
        found.append("ticket")
    if any(p.search(text) for p in LOCATION_MARKER_PATTERNS):
        found.append("location")
    if any(keyword in lowered for keyword in REGISTRATION_KEYWORDS):
        found.append("registration")
    if any(p.search(text) for p in ORGANIZER_MARKER_PATTERNS):
        found.append("organizer")
    if any(p.search(html) for p in EVENT_SCHEMA_PATTERNS):
        found.append("event-schema")
    if any(keyword in html_lower for keyword in CALENDAR_KEYWORDS):
        found.append("calendar")
    if title and _title_matches(lowered, title):
        found.append("title-match")
    return found


class ContentVerifier(VerificationStage[ContentCheckResult]):
    name = "content"

    def __init__(
        self,
        client: httpx.Client,
        *,
        timeout_seconds: float = 12.0,
        user_agent: str = VERIFIER_USER_AGENT,
        min_body_bytes: int = 1000,
        min_marker_categories: int = 2,
        throttle: HostThrottle | None = None,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.min_body_bytes = min_body_bytes
        self.min_marker_categories = min_marker_categories
        self.throttle = throttle

    def verify(self, item: EventItem) -> ContentCheckResult:
        return self.verify_page(item.registration_url, title=item.title)

    def verify_page(self, url: str, *, title: str = "") -> ContentCheckResult:
        checked_at = datetime.now(UTC).isoformat()
        if not is_https_url(url):
            return ContentCheckResult(url=url, ok=False, error="URL must use HTTPS protocol", checked_at=checked_at)

        if self.throttle is not None:
            self.throttle.wait(url)
        try:
            response = self.client.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
        except httpx.TimeoutException:
            return ContentCheckResult(url=url, ok=False, error="Request timeout", checked_at=checked_at)
        except httpx.HTTPError as exc:
            return ContentCheckResult(url=url, ok=False, error=str(exc) or exc.__class__.__name__, checked_at=checked_at)

        final_url = str(response.url)
        status = response.status_code
        base = {"url": url, "status": status, "checked_at": checked_at, "final_url": final_url}
        if not 200 <= status < 300:
            return ContentCheckResult(**base, ok=False, error=f"HTTP {status}")

        html = response.text
        body_length = len(response.content)
        if body_length < self.min_body_bytes:
            return ContentCheckResult(
                **base,
                ok=False,
                body_length=body_length,
                soft_404=True,
                error=f"Body too short: {body_length} bytes (min {self.min_body_bytes})",
            )

        if has_login_wall(html, final_url):
            return ContentCheckResult(**base, ok=False, body_length=body_length, login_wall=True, error="Login wall detected")

        text = strip_html(html)
        if has_soft_404(text):
            return ContentCheckResult(**base, ok=False, body_length=body_length, soft_404=True, error="Soft 404 detected")

        markers = detect_markers(html, text, title)
        ok = len(markers) >= self.min_marker_categories
        error = None
        if not ok:
            error = f"Only {len(markers)} marker categor{'y' if len(markers) == 1 else 'ies'} found (need {self.min_marker_categories})"
        return ContentCheckResult(
            **base,
            ok=ok,
            body_length=body_length,
            markers=markers,
            ambiguous=not ok and len(markers) > 0,
            error=error,
        )
