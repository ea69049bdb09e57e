import threading
import time
from datetime import UTC, datetime, timedelta

import httpx

from career_events.cache import MemoryStore
from career_events.models import EventItem
from career_events.url_canonical import url_cache_key
from career_events.verification.base import run_stage
from career_events.verification.live import LiveUrlVerifier, is_success_status


def _verifier(handler, store: MemoryStore | None = None) -> LiveUrlVerifier:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return LiveUrlVerifier(client, store or MemoryStore(), ttl_hours=24)


def test_success_status_range() -> None:
    assert is_success_status(200)
    assert is_success_status(302)
    assert is_success_status(399)
    assert not is_success_status(400)
    assert not is_success_status(404)
    assert not is_success_status(None)


def test_head_success_is_cached_and_not_refetched() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(200)

    store = MemoryStore()
    verifier = _verifier(handler, store)
    url = "https://www.oslomet.no/en/events/career-day"

    first = verifier.verify_url(url)
    second = verifier.verify_url(url)

    assert first.ok is True
    assert first.status == 200
    assert calls == ["HEAD"]
    assert second == first
    assert store.get(url_cache_key(url))["ok"] is True


def test_cache_key_ignores_tracking_params() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200)

    verifier = _verifier(handler)
    verifier.verify_url("https://www.oslomet.no/en/events/career-day?utm_source=newsletter")
    verifier.verify_url("https://www.oslomet.no/en/events/career-day")
    assert len(calls) == 1


def test_expired_cache_entry_triggers_recheck() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(200)

    url = "https://www.oslomet.no/en/events/career-day"
    past = datetime.now(UTC) - timedelta(hours=30)
    store = MemoryStore(
        {
            url_cache_key(url): {
                "key": url_cache_key(url),
                "url": url,
                "ok": False,
                "status": 500,
                "error": "HTTP 500",
                "checked_at": past.isoformat(),
                "expires_at": (past + timedelta(hours=24)).isoformat(),
            }
        }
    )
    result = _verifier(handler, store).verify_url(url)
    assert result.ok is True
    assert calls == ["HEAD"]


def test_head_rejected_falls_back_to_get() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200, text="<html>ok</html>")

    result = _verifier(handler).verify_url("https://www.oslomet.no/en/events/career-day")
    assert result.ok is True
    assert calls == ["HEAD", "GET"]


def test_head_transport_error_falls_back_to_get() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        if request.method == "HEAD":
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200)

    result = _verifier(handler).verify_url("https://www.oslomet.no/en/events/career-day")
    assert result.ok is True
    assert calls == ["HEAD", "GET"]


def test_head_blocking_host_uses_get_directly() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(200)

    _verifier(handler).verify_url("https://www.eventbrite.com/e/career-fair-tickets-1286011839029")
    assert calls == ["GET"]


def test_not_found_is_failure_and_cached() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(404)

    verifier = _verifier(handler)
    url = "https://www.oslomet.no/en/events/gone"
    result = verifier.verify_url(url)
    assert result.ok is False
    assert result.status == 404
    assert result.error == "HTTP 404"

    again = verifier.verify_url(url)
    assert again.ok is False
    assert calls == ["HEAD"]


def test_timeout_is_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    result = _verifier(handler).verify_url("https://www.oslomet.no/en/events/slow")
    assert result.ok is False
    assert result.status is None
    assert result.error == "Request timeout"


def test_skip_cache_forces_network() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(200)

    verifier = _verifier(handler)
    url = "https://www.oslomet.no/en/events/career-day"
    verifier.verify_url(url)
    verifier.verify_url(url, skip_cache=True)
    assert calls == ["HEAD", "HEAD"]


def test_http_url_fails_without_network() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result = _verifier(handler).verify_url("http://www.oslomet.no/en/events/career-day")
    assert result.ok is False
    assert result.error == "URL must use HTTPS protocol"


def test_concurrent_checks_of_one_url_hit_network_once() -> None:
    calls: list[str] = []
    calls_lock = threading.Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        with calls_lock:
            calls.append(request.method)
        time.sleep(0.05)
        return httpx.Response(200)

    url = "https://www.uio.no/event/1"
    items = [
        EventItem(
            id=f"oslomet:shared-{n}",
            provider="oslomet",
            provider_event_id=f"shared-{n}",
            title=f"Shared {n}",
            start_date="2026-04-10",
            registration_url=url,
            source_url=url,
        )
        for n in range(5)
    ]
    outcomes = run_stage(_verifier(handler), items, concurrency=5)

    assert calls == ["HEAD"]
    assert [result.ok for _, result in outcomes] == [True] * 5
