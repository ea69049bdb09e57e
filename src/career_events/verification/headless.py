"""Stage C: browser-rendered verification.

No browser backend ships with this package. ``HeadlessVerifier`` keeps the
same contract as the live and content stages and reports ``unavailable``,
so the refresh job already calls a three-stage pipeline and a rendering
backend can be dropped in by subclassing without touching the caller.
"""

from __future__ import annotations

from datetime import UTC, datetime

from ..models import EventItem, UrlCheckResult
from .base import VerificationStage

UNAVAILABLE = "unavailable"


class HeadlessVerifier(VerificationStage[UrlCheckResult]):
    name = "headless"
    available = False

    def verify(self, item: EventItem) -> UrlCheckResult:
        return self.verify_url(item.registration_url)

    def verify_url(self, url: str) -> UrlCheckResult:
        return UrlCheckResult(url=url, ok=False, error=UNAVAILABLE, checked_at=datetime.now(UTC).isoformat())
