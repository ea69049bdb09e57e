"""Pydantic models for provider output, verification results and run state."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

EventFormat = Literal["In-person", "Online", "Hybrid"]
EventCategory = Literal["Job Fair", "Workshop", "Webinar/Seminar", "Meetup", "Conference", "Other"]
AudienceFit = Literal["15-23", "18+", "Students", "General", "Unknown"]
VerificationMethod = Literal["content", "headless", "http-only", "skipped"]
HealthState = Literal["HEALTHY", "DEGRADED", "FAILED"]


class EventItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    provider: str
    provider_event_id: str
    title: str
    description: str | None = None
    organizer_name: str | None = None
    category: EventCategory = "Other"

    start_date: str
    end_date: str | None = None
    time_label: str | None = None

    format: EventFormat = "In-person"
    city: str | None = None
    region: str | None = None
    country: str | None = None
    venue: str | None = None
    location_label: str = ""
    latitude: float | None = None
    longitude: float | None = None
    online_url: str | None = None

    registration_url: str
    source_url: str
    capacity: int | None = Field(default=None, ge=0)

    audience_fit: AudienceFit = "Unknown"
    youth_friendly: bool = False
    tags: List[str] = Field(default_factory=list)

    provider_priority: int = 0

    verified: bool = False
    verified_at: str | None = None
    last_checked_at: str | None = None
    content_verified_at: str | None = None
    verification_method: VerificationMethod | None = None
    verification_score: int | None = None
    verification_notes: List[str] = Field(default_factory=list)
    final_url: str | None = None


class FetchParams(BaseModel):
    months: int = Field(default=12, ge=1, le=24)
    country_scope: Literal["Norway", "Norway+Europe"] = "Norway+Europe"


class UrlCheckResult(BaseModel):
    url: str
    ok: bool
    status: int | None = None
    error: str | None = None
    checked_at: str


class UrlCheckCacheEntry(BaseModel):
    key: str
    url: str
    ok: bool
    status: int | None = None
    error: str | None = None
    checked_at: str
    expires_at: str


class ContentCheckResult(BaseModel):
    url: str
    ok: bool
    status: int | None = None
    error: str | None = None
    checked_at: str
    body_length: int = 0
    markers: List[str] = Field(default_factory=list)
    login_wall: bool = False
    soft_404: bool = False
    ambiguous: bool = False
    final_url: str | None = None


class ProviderHealthRecord(BaseModel):
    provider: str
    state: HealthState = "HEALTHY"
    consecutive_failures: int = 0
    last_run_at: str | None = None
    last_success_at: str | None = None
    last_failure_at: str | None = None
    last_error: str | None = None
    last_events_found: int | None = None
    total_runs: int = 0
    total_successes: int = 0
    total_failures: int = 0


class RejectedItem(BaseModel):
    id: str
    provider: str
    title: str
    registration_url: str
    stage: Literal["structural", "live", "content"]
    reason: str
    detail: str = ""


class ProviderRunStats(BaseModel):
    provider: str
    display_name: str
    fetched: int = 0
    structurally_valid: int = 0
    stage_a_passed: int = 0
    stage_b_passed: int = 0
    deduped_out: int = 0
    published: int = 0
    errors: List[str] = Field(default_factory=list)
    health_state: HealthState = "HEALTHY"
