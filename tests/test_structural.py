from datetime import date

import pytest

from career_events.models import EventItem
from career_events.verification.structural import (
    is_valid_eventbrite_url,
    validate_event_item,
    validate_event_url,
)

TODAY = date(2026, 3, 1)


def _event(url: str, start: str = "2026-04-10", end: str | None = None) -> EventItem:
    return EventItem(
        id="oslomet:career-day",
        provider="oslomet",
        provider_event_id="career-day",
        title="Career Day",
        start_date=start,
        end_date=end,
        registration_url=url,
        source_url=url,
    )


@pytest.mark.parametrize(
    "url",
    [
        "http://www.oslomet.no/en/events/career-day",
        "ftp://www.oslomet.no/events",
        "www.oslomet.no/events",
    ],
)
def test_non_https_urls_are_rejected(url: str) -> None:
    result = validate_event_url(url)
    assert result.valid is False
    assert result.errors == ["URL must use HTTPS protocol"]


@pytest.mark.parametrize(
    "url",
    [
        "https://bit.ly/3abcdef",
        "https://tinyurl.com/career-day",
        "https://www.facebook.com/events/123456",
        "https://docs.google.com/forms/d/abc/viewform",
        "https://m.facebook.com/events/123456",
    ],
)
def test_block_listed_hosts_are_rejected_regardless_of_path(url: str) -> None:
    result = validate_event_url(url)
    assert result.valid is False
    assert any("block list" in error for error in result.errors)


def test_trusted_domain_and_subdomain_pass() -> None:
    assert validate_event_url("https://www.oslomet.no/en/about/events/career-day").valid
    result = validate_event_url("https://student.karrieredagene.no/program")
    assert result.valid
    assert result.domain == "Karrieredagene BI Oslo"


def test_institutional_tld_suffix_passes() -> None:
    result = validate_event_url("https://careers.stanford.edu/fair")
    assert result.valid
    assert result.domain == "Institutional (.edu)"


def test_unknown_domain_fails() -> None:
    result = validate_event_url("https://example.com/event")
    assert result.valid is False
    assert "not in the trusted domains list" in result.errors[0]


def test_lookalike_domain_is_not_trusted() -> None:
    assert validate_event_url("https://notoslomet.no/events").valid is False


def test_eventbrite_requires_numeric_ticket_id() -> None:
    good = "https://www.eventbrite.com/e/some-event-tickets-1286011839029"
    bad = "https://www.eventbrite.com/e/some-event"
    assert is_valid_eventbrite_url(good)
    assert validate_event_url(good).valid
    assert is_valid_eventbrite_url(bad) is False
    result = validate_event_url(bad)
    assert result.valid is False
    assert any("numeric ticket ID" in error for error in result.errors)


def test_eventbrite_norwegian_ticket_slug() -> None:
    assert validate_event_url("https://www.eventbrite.no/e/jobbmesse-oslo-biljetter-998877665544").valid


def test_validate_item_checks_date_window() -> None:
    url = "https://www.oslomet.no/en/events/career-day"
    assert validate_event_item(_event(url), months=12, today=TODAY).valid

    past = validate_event_item(_event(url, start="2026-02-20"), months=12, today=TODAY)
    assert past.valid is False
    assert "in the past" in past.errors[0]

    too_far = validate_event_item(_event(url, start="2027-06-01"), months=12, today=TODAY)
    assert too_far.valid is False
    assert "12-month window" in too_far.errors[0]


def test_validate_item_allows_grace_day() -> None:
    url = "https://www.oslomet.no/en/events/career-day"
    assert validate_event_item(_event(url, start="2026-02-28"), months=12, past_grace_days=1, today=TODAY).valid
    assert not validate_event_item(_event(url, start="2026-02-28"), months=12, past_grace_days=0, today=TODAY).valid


def test_validate_item_end_date_must_follow_start() -> None:
    url = "https://www.oslomet.no/en/events/career-day"
    same_day = validate_event_item(_event(url, end="2026-04-10"), months=12, today=TODAY)
    assert same_day.valid is False
    assert "end_date must be after start_date" in same_day.errors
    assert validate_event_item(_event(url, end="2026-04-11"), months=12, today=TODAY).valid
