"""Common contract for the network verification stages."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Generic, Sequence, TypeVar

from ..models import ContentCheckResult, EventItem, UrlCheckResult

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", UrlCheckResult, ContentCheckResult)


class VerificationStage(ABC, Generic[ResultT]):
    """One tier of the live -> content -> headless pipeline.

    ``verify`` never raises for a bad link; failures come back as a result
    with ``ok=False`` and an ``error`` string.
    """

    name: str = "stage"

    @abstractmethod
    def verify(self, item: EventItem) -> ResultT: ...


def run_stage(
    stage: VerificationStage[ResultT],
    items: Sequence[EventItem],
    concurrency: int = 5,
) -> list[tuple[EventItem, ResultT]]:
    """Run ``stage`` over ``items`` with a bounded worker pool, preserving input order."""
    if not items:
        return []
    workers = max(1, min(concurrency, len(items)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"verify-{stage.name}") as pool:
        results = list(pool.map(stage.verify, items))
    outcomes = list(zip(items, results))
    passed = sum(1 for _, result in outcomes if result.ok)
    logger.info("%s: %d/%d passed", stage.name, passed, len(outcomes))
    return outcomes
