"""Date parsing and look-ahead window helpers for event listings.

Listing pages publish dates in Norwegian ("15. mars 2026"), English
("March 15, 2026" or "15 March 2026"), ISO and European numeric forms.
Every parser returns a ``date``; callers serialize with ``to_iso_date``.
When a listing omits the year, the next occurrence of that day is assumed.
"""

from __future__ import annotations

import calendar
import re
from datetime import UTC, date, datetime, timedelta

NORWEGIAN_MONTHS: dict[str, int] = {
    "januar": 1, "jan": 1,
    "februar": 2, "feb": 2,
    "mars": 3, "mar": 3,
    "april": 4, "apr": 4,
    "mai": 5,
    "juni": 6, "jun": 6,
    "juli": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "oktober": 10, "okt": 10,
    "november": 11, "nov": 11,
    "desember": 12, "des": 12,
}

ENGLISH_MONTHS: dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})\s+([a-zæøå]+)(?:\s+(\d{4}))?")
_MONTH_DAY_RE = re.compile(r"\b([a-z]+)\s+(\d{1,2})\b(?:\s+(\d{4}))?")
_ISO_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_EURO_RE = re.compile(r"(\d{1,2})[./](\d{1,2})[./](\d{4})")


def utc_today() -> date:
    return datetime.now(UTC).date()


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _resolve(day: int, month: int, year_raw: str | None, today: date) -> date | None:
    year = int(year_raw) if year_raw else today.year
    value = _build_date(year, month, day)
    if value is None:
        return None
    if not year_raw and value < today:
        value = _build_date(year + 1, month, day)
    return value


def parse_norwegian_date(text: str, today: date | None = None) -> date | None:
    cleaned = (text or "").lower().replace(".", " ").strip()
    for match in _DAY_MONTH_RE.finditer(cleaned):
        name = match.group(2)
        month = NORWEGIAN_MONTHS.get(name) or ENGLISH_MONTHS.get(name)
        if month is not None:
            return _resolve(int(match.group(1)), month, match.group(3), today or utc_today())
    return None


def parse_english_date(text: str, today: date | None = None) -> date | None:
    cleaned = (text or "").lower().replace(",", " ").strip()
    reference = today or utc_today()
    for match in _MONTH_DAY_RE.finditer(cleaned):
        if match.group(1) in ENGLISH_MONTHS:
            return _resolve(int(match.group(2)), ENGLISH_MONTHS[match.group(1)], match.group(3), reference)
    for match in _DAY_MONTH_RE.finditer(cleaned):
        if match.group(2) in ENGLISH_MONTHS:
            return _resolve(int(match.group(1)), ENGLISH_MONTHS[match.group(2)], match.group(3), reference)
    return None


def parse_event_date(text: str, today: date | None = None) -> date | None:
    """Try Norwegian, English, ISO then DD.MM.YYYY / DD/MM/YYYY."""
    if not text:
        return None
    parsed = parse_norwegian_date(text, today) or parse_english_date(text, today)
    if parsed:
        return parsed
    iso = _ISO_RE.search(text)
    if iso:
        return _build_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
    euro = _EURO_RE.search(text)
    if euro:
        return _build_date(int(euro.group(3)), int(euro.group(2)), int(euro.group(1)))
    return None


def to_iso_date(value: date) -> str:
    return value.isoformat()


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def date_window(months: int, today: date | None = None, past_grace_days: int = 0) -> tuple[date, date]:
    reference = today or utc_today()
    return reference - timedelta(days=past_grace_days), add_months(reference, months)


def parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    match = _ISO_RE.match(str(value).strip())
    if not match:
        return None
    return _build_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def is_within_window(
    start_date: str,
    months: int,
    *,
    today: date | None = None,
    past_grace_days: int = 0,
) -> bool:
    parsed = parse_iso_date(start_date)
    if parsed is None:
        return False
    lower, upper = date_window(months, today, past_grace_days)
    return lower <= parsed <= upper


def is_past_event(start_date: str, today: date | None = None) -> bool:
    parsed = parse_iso_date(start_date)
    if parsed is None:
        return True
    return parsed < (today or utc_today())


def hours_since(iso_value: str | None, now: datetime | None = None) -> float | None:
    parsed = parse_iso_datetime(iso_value)
    if parsed is None:
        return None
    return ((now or datetime.now(UTC)) - parsed).total_seconds() / 3600.0
