"""Published event set and run metadata on disk."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable, List

from pydantic import ValidationError

from .cache import write_json_atomic
from .errors import OutputReadError, OutputWriteError
from .models import EventItem

logger = logging.getLogger(__name__)

EVENTS_FILENAME = "verified-events.json"
METADATA_FILENAME = "refresh-metadata.json"
URL_CACHE_FILENAME = "url-cache.json"
HEALTH_FILENAME = "provider-health.json"
HTML_CACHE_FILENAME = "html-cache.json"


class OutputStore:
    def __init__(self, events_dir: Path) -> None:
        self.events_dir = events_dir

    @property
    def events_path(self) -> Path:
        return self.events_dir / EVENTS_FILENAME

    @property
    def metadata_path(self) -> Path:
        return self.events_dir / METADATA_FILENAME

    def load_events(self) -> List[EventItem]:
        if not self.events_path.exists():
            return []
        try:
            payload = json.loads(self.events_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise OutputReadError(f"cannot read {self.events_path}: {exc}") from exc
        rows = payload.get("events", []) if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise OutputReadError(f"{self.events_path} has no event list")

        events: List[EventItem] = []
        for row in rows:
            try:
                events.append(EventItem.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed published event %r: %s", row.get("id") if isinstance(row, dict) else row, exc)
        return events

    def write_events(self, events: Iterable[EventItem], generated_at: str | None = None) -> Path:
        items = list(events)
        payload = {
            "generated_at": generated_at or datetime.now(UTC).isoformat(),
            "count": len(items),
            "events": [item.model_dump(mode="json") for item in items],
        }
        return self._write(self.events_path, payload)

    def write_metadata(self, metadata: dict[str, Any]) -> Path:
        return self._write(self.metadata_path, metadata)

    def load_metadata(self) -> dict[str, Any] | None:
        if not self.metadata_path.exists():
            return None
        try:
            payload = json.loads(self.metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable run metadata %s: %s", self.metadata_path, exc)
            return None
        return payload if isinstance(payload, dict) else None

    def _write(self, path: Path, payload: Any) -> Path:
        try:
            write_json_atomic(path, payload)
        except OSError as exc:
            raise OutputWriteError(f"cannot write {path}: {exc}") from exc
        logger.debug("Wrote %s", path)
        return path
