import httpx
import pytest

from career_events.cache import MemoryStore
from career_events.errors import FetchError
from career_events.scrape_utils import (
    HostThrottle,
    extract_links,
    fetch_html,
    force_https,
    slugify,
    strip_html,
)
from career_events.settings import SCRAPE_USER_AGENT
from career_events.url_canonical import canonicalize_url


def test_throttle_spaces_same_host_only() -> None:
    sleeps: list[float] = []
    throttle = HostThrottle(1.0, 0.0, sleep=sleeps.append, clock=lambda: 100.0)

    assert throttle.wait("https://www.oslomet.no/a") == 0.0
    assert throttle.wait("https://www.oslomet.no/b") == 1.0
    assert throttle.wait("https://www.tautdanning.no/") == 0.0
    assert throttle.wait("https://www.oslomet.no/c") == 2.0
    assert sleeps == [1.0, 2.0]


def test_throttle_per_call_interval_override() -> None:
    sleeps: list[float] = []
    throttle = HostThrottle(1.0, sleep=sleeps.append, clock=lambda: 0.0)
    assert throttle.wait("https://europeanjobdays.eu/", min_interval=0) == 0.0
    assert throttle.wait("https://europeanjobdays.eu/", min_interval=0) == 0.0
    assert sleeps == []


def test_fetch_html_sends_user_agent_and_caches() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, text="<html><body>Listing</body></html>")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    cache = MemoryStore()
    url = "https://www.tautdanning.no/studentfairs"

    first = fetch_html(client, url, cache=cache, cache_ttl_hours=6)
    second = fetch_html(client, url, cache=cache, cache_ttl_hours=6)

    assert first == second == "<html><body>Listing</body></html>"
    assert len(calls) == 1
    assert calls[0].headers["User-Agent"] == SCRAPE_USER_AGENT
    assert cache.get(url)["html"] == first


def test_fetch_html_raises_typed_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/slow":
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(503)

    client = httpx.Client(transport=httpx.MockTransport(handler))

    with pytest.raises(FetchError) as exc_info:
        fetch_html(client, "https://www.oslomet.no/down")
    assert exc_info.value.status == 503
    assert exc_info.value.message == "HTTP 503"

    with pytest.raises(FetchError) as exc_info:
        fetch_html(client, "https://www.oslomet.no/slow")
    assert exc_info.value.status is None
    assert exc_info.value.message == "Request timeout"


def test_html_helpers() -> None:
    html = """
    <html><head><style>.x{}</style><script>var a = 1;</script></head>
    <body><h1>Jobbmesse</h1><p>Sted:   Oslo</p>
    <a href="/events/1">Event one</a>
    <a href="mailto:post@example.no">Mail</a>
    <a href="#top">Top</a>
    <a href="https://europeanjobdays.eu/en/event/x">EURES</a></body></html>
    """
    assert strip_html(html) == "Jobbmesse Sted: Oslo Event one Mail Top EURES"
    links = extract_links(html, "https://www.oslomet.no/en/")
    assert links == [
        {"href": "https://www.oslomet.no/events/1", "text": "Event one"},
        {"href": "https://europeanjobdays.eu/en/event/x", "text": "EURES"},
    ]


def test_slugify_and_force_https() -> None:
    assert slugify("Karrieredag på Gjøvik – Høst 2026") == "karrieredag-pa-gjovik-host-2026"
    assert len(slugify("x" * 100, max_length=20)) == 20
    assert force_https("http://www.bi.no/karriere") == "https://www.bi.no/karriere"
    assert force_https("https://www.bi.no/karriere") == "https://www.bi.no/karriere"


def test_canonicalize_url() -> None:
    assert (
        canonicalize_url("HTTPS://WWW.Oslomet.no:443/en/events/?utm_source=x&b=2&a=1&fbclid=abc#top")
        == "https://www.oslomet.no/en/events?a=1&b=2"
    )
