"""Fuzzy-key deduplication with a deterministic winner order.

Items collide when their normalized title, ISO start date and normalized
city agree. Inside a group the winner is chosen by, in order: verified
status, location richness, provider rank (lower wins), most recent
verification, then id so the result never depends on input order.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .models import EventItem
from .taxonomy import normalize_key_part
from .time_utils import parse_iso_datetime


@dataclass
class DedupeConflict:
    key: str
    winner_id: str
    loser_ids: List[str]

    def as_dict(self) -> dict:
        return {"key": self.key, "winner_id": self.winner_id, "loser_ids": list(self.loser_ids)}


@dataclass
class DedupeStats:
    input_count: int = 0
    output_count: int = 0
    duplicates_removed: int = 0
    removed_by_provider: Dict[str, int] = field(default_factory=dict)
    conflicts: List[DedupeConflict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "input_count": self.input_count,
            "output_count": self.output_count,
            "duplicates_removed": self.duplicates_removed,
            "removed_by_provider": dict(self.removed_by_provider),
            "conflicts": [c.as_dict() for c in self.conflicts],
        }


@dataclass
class DedupeResult:
    events: List[EventItem]
    stats: DedupeStats


def normalize_title(title: str) -> str:
    return normalize_key_part(title)


def location_part(item: EventItem) -> str:
    if item.format == "Online":
        return ""
    if item.city:
        return normalize_key_part(item.city, keep_digits=False)
    return normalize_key_part(item.country, keep_digits=False)


def dedupe_key(item: EventItem) -> str:
    return "::".join([normalize_title(item.title), item.start_date[:10], location_part(item)])


def location_richness(item: EventItem) -> int:
    return sum(1 for value in (item.city, item.region, item.country, item.venue) if value and value.strip())


def _rank(item: EventItem) -> tuple:
    verified_at = parse_iso_datetime(item.verified_at) if item.verified else None
    recency = -verified_at.timestamp() if verified_at else math.inf
    return (
        0 if item.verified else 1,
        -location_richness(item),
        item.provider_priority,
        recency,
        item.id,
    )


def pick_winner(group: Iterable[EventItem]) -> EventItem:
    return min(group, key=_rank)


def group_events(events: Iterable[EventItem]) -> Dict[str, List[EventItem]]:
    groups: Dict[str, List[EventItem]] = {}
    for item in events:
        groups.setdefault(dedupe_key(item), []).append(item)
    return groups


def dedupe_events(events: Iterable[EventItem]) -> DedupeResult:
    items = list(events)
    stats = DedupeStats(input_count=len(items))
    removed = Counter()
    winners: List[EventItem] = []

    groups = group_events(items)
    for key in sorted(groups):
        group = groups[key]
        winner = pick_winner(group)
        winners.append(winner)
        if len(group) == 1:
            continue
        losers = sorted((i for i in group if i is not winner), key=_rank)
        for loser in losers:
            removed[loser.provider] += 1
        stats.conflicts.append(DedupeConflict(key=key, winner_id=winner.id, loser_ids=[i.id for i in losers]))

    winners.sort(key=lambda item: (item.start_date, item.id))
    stats.output_count = len(winners)
    stats.duplicates_removed = stats.input_count - stats.output_count
    stats.removed_by_provider = dict(sorted(removed.items()))
    return DedupeResult(events=winners, stats=stats)
