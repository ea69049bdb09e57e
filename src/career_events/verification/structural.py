"""Network-free structural validation of registration links and event fields.

Rules:
- registration links must be HTTPS
- the host must be a trusted event domain or an institutional TLD
- shorteners, social-media posts and shared documents are always rejected
- ticketing-platform links must carry a numeric ticket id
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import List
from urllib.parse import urlparse

from ..models import EventItem
from ..time_utils import date_window, parse_iso_date


@dataclass(frozen=True)
class TrustedDomain:
    domain: str
    name: str
    variants: tuple[str, ...] = ()
    url_pattern: re.Pattern[str] | None = None


EVENTBRITE_TICKET_RE = re.compile(r"(?:tickets|biljetter)-\d+")

TRUSTED_EVENT_DOMAINS: list[TrustedDomain] = [
    TrustedDomain(
        "eventbrite.com",
        "Eventbrite",
        variants=("eventbrite.es", "eventbrite.co.uk", "eventbrite.de", "eventbrite.fr", "eventbrite.nl", "eventbrite.se", "eventbrite.no"),
        url_pattern=re.compile(r"/e/.+-(?:tickets|biljetter)-\d+"),
    ),
    TrustedDomain("europeanjobdays.eu", "EURES European Job Days"),
    TrustedDomain("eesc.europa.eu", "European Economic and Social Committee"),
    TrustedDomain("highnorthdialogue.no", "High North Dialogue"),
    TrustedDomain("oslotechshow.com", "Oslo Tech Show"),
    TrustedDomain("uio.no", "University of Oslo"),
    TrustedDomain("oslomet.no", "OsloMet"),
    TrustedDomain("itxbergen.no", "ITxBergen"),
    TrustedDomain("oiw.no", "Oslo Innovation Week"),
    TrustedDomain("kunskapframtid.se", "Kunskap & Framtid"),
    TrustedDomain("meetup.com", "Meetup"),
    TrustedDomain("tautdanning.no", "Ta Utdanning"),
    TrustedDomain("bi.no", "BI Norwegian Business School"),
    TrustedDomain("karrieredagene.no", "Karrieredagene BI Oslo"),
    TrustedDomain("kdntnu.no", "KarriereDagene NTNU"),
    TrustedDomain("karrieredagen.no", "Karrieredagen Stavanger"),
    TrustedDomain("springbrettet.org", "Springbrettet"),
    TrustedDomain("biso.no", "BISO"),
    TrustedDomain("oslostudenthub.no", "Oslo Student Hub"),
    TrustedDomain("isfit.org", "ISFiT"),
    TrustedDomain("arendalsuka.no", "Arendalsuka"),
    TrustedDomain("oslo.kommune.no", "Oslo Kommune"),
    TrustedDomain("digitallifenorway.org", "Digital Life Norway"),
    TrustedDomain("charm.se", "CHARM"),
    TrustedDomain("armada.nu", "THS Armada"),
    TrustedDomain("youth.europa.eu", "European Youth Portal"),
]

TRUSTED_TLD_SUFFIXES: tuple[str, ...] = (".edu", ".gov", ".ac.uk", ".ac.no", ".europa.eu")

BLOCKED_HOSTS: tuple[str, ...] = (
    # shorteners
    "bit.ly",
    "tinyurl.com",
    "t.co",
    "goo.gl",
    "ow.ly",
    "is.gd",
    "buff.ly",
    "short.io",
    "lnkd.in",
    "forms.gle",
    # social media
    "facebook.com",
    "fb.me",
    "instagram.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "linkedin.com",
    "reddit.com",
    # shared documents
    "docs.google.com",
    "sheets.google.com",
    "forms.google.com",
    "drive.google.com",
)


@dataclass
class StructuralResult:
    valid: bool
    domain: str | None = None
    errors: List[str] = field(default_factory=list)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def match_trusted_domain(host: str) -> TrustedDomain | None:
    for entry in TRUSTED_EVENT_DOMAINS:
        if any(_host_matches(host, d) for d in (entry.domain, *entry.variants)):
            return entry
    return None


def is_blocked_host(host: str) -> bool:
    return any(_host_matches(host, blocked) for blocked in BLOCKED_HOSTS)


def is_https_url(url: str) -> bool:
    parsed = urlparse((url or "").strip())
    return parsed.scheme == "https" and bool(parsed.hostname)


def is_valid_eventbrite_url(url: str) -> bool:
    parsed = urlparse(url)
    if "eventbrite" not in (parsed.hostname or "").lower():
        return False
    return bool(EVENTBRITE_TICKET_RE.search(parsed.path.lower()))


def validate_event_url(url: str) -> StructuralResult:
    raw = (url or "").strip()
    parsed = urlparse(raw)
    if parsed.scheme.lower() != "https":
        return StructuralResult(valid=False, errors=["URL must use HTTPS protocol"])
    host = (parsed.hostname or "").lower().rstrip(".")
    if not host:
        return StructuralResult(valid=False, errors=["Invalid URL format"])

    errors: list[str] = []
    if is_blocked_host(host):
        errors.append(f"Host {host!r} is on the block list")

    trusted = match_trusted_domain(host)
    domain_name: str | None = trusted.name if trusted else None
    if trusted is None:
        suffix = next((s for s in TRUSTED_TLD_SUFFIXES if host.endswith(s)), None)
        if suffix:
            domain_name = f"Institutional ({suffix})"
        else:
            errors.append(f"Domain {host!r} is not in the trusted domains list")

    if "eventbrite" in host and not is_valid_eventbrite_url(raw):
        errors.append("Eventbrite URL must contain a numeric ticket ID (e.g. tickets-1234567890)")
    elif trusted is not None and trusted.url_pattern is not None and not trusted.url_pattern.search(parsed.path.lower()):
        errors.append(f"{trusted.name} URL does not match the expected shape")

    return StructuralResult(valid=not errors, domain=domain_name, errors=errors)


def validate_event_item(
    item: EventItem,
    *,
    months: int,
    past_grace_days: int = 1,
    today: date | None = None,
) -> StructuralResult:
    """URL rules plus the date invariants every published item must satisfy."""
    result = validate_event_url(item.registration_url)
    errors = list(result.errors)

    start = parse_iso_date(item.start_date)
    if start is None:
        errors.append(f"start_date {item.start_date!r} is not an ISO date")
    else:
        lower, upper = date_window(months, today, past_grace_days)
        if start < lower:
            errors.append(f"start_date {item.start_date} is in the past")
        elif start > upper:
            errors.append(f"start_date {item.start_date} is beyond the {months}-month window")
        if item.end_date:
            end = parse_iso_date(item.end_date)
            if end is None:
                errors.append(f"end_date {item.end_date!r} is not an ISO date")
            elif end <= start:
                errors.append("end_date must be after start_date")

    return StructuralResult(valid=not errors, domain=result.domain, errors=errors)
