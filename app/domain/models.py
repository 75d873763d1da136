"""
Pydantic models for requests, responses, and internal data transfer.
Pure data, no I/O.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from app.domain.enums import (
    InteractionType,
    ResumeProcessingStatus,
    TransitionStatus,
)


# ── Job ───────────────────────────────────────────────────────


class Job(BaseModel):
    """A posting from the `jobs` table. Written by ingestion, read-only here."""

    job_id: str
    company_name: str | None = None
    job_title: str | None = None
    job_location: str | None = None
    remote: bool | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    salary_currency: str | None = None
    employment_type: str | None = None
    experience: str | None = None
    education: str | None = None
    industry: str | None = None
    short_summary: str | None = None
    description: str | None = None
    requirements: list[str] | str | None = None
    logo_url: str | None = None
    date_posted: datetime | date | None = None
    date_validthru: date | None = None

    def is_expired(self, today: date) -> bool:
        """A null expiry never expires."""
        return self.date_validthru is not None and self.date_validthru < today


class UserJobInteraction(BaseModel):
    """Row in `user_job_interactions`. At most one per (user_id, job_id)."""

    id: str | None = None
    user_id: str
    job_id: str
    interaction_type: InteractionType
    created_at: datetime | None = None
    updated_at: datetime | None = None


class JobWithInteraction(Job):
    interaction: UserJobInteraction | None = None

    def as_job(self) -> Job:
        return Job(**self.model_dump(exclude={"interaction"}))


class JobFilters(BaseModel):
    """Optional predicates for a jobs read. All set fields are AND-ed."""

    location: str | None = None
    remote: bool | None = None
    industry: str | None = None
    employment_type: str | None = None
    experience: str | None = None
    education: str | None = None
    salary_min: float | None = None
    keywords: str | None = None
    limit: int | None = None
    offset: int | None = None


class JobQuery(BaseModel):
    """
    Store-neutral description of a read against the jobs table.
    Built by the services, translated into PostgREST by the adapter.
    """

    filters: JobFilters = Field(default_factory=JobFilters)
    search_term: str | None = None                 # ilike across title/company/description
    text_search: str | None = None                 # websearch full-text query
    exclude_job_ids: list[str] = Field(default_factory=list)
    # None → no location clause; [] → remote only; [...] → remote OR any location
    profile_locations: list[str] | None = None
    today: date
    limit: int
    offset: int = 0
    with_count: bool = False


class JobPage(BaseModel):
    jobs: list[Job] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False


class FilterOptions(BaseModel):
    industries: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    employment_types: list[str] = Field(default_factory=list)
    experience_levels: list[str] = Field(default_factory=list)
    education_levels: list[str] = Field(default_factory=list)


class InteractionStats(BaseModel):
    queued: int = 0
    applied: int = 0
    passed: int = 0
    application_failed: int = 0
    expired: int = 0


# ── User ──────────────────────────────────────────────────────


class AppliedCountry(BaseModel):
    country_name: str
    country_code: str | None = None


class UserProfile(BaseModel):
    """The slice of the user profile the job pipeline filters on."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    location: str | None = None
    applying_countries: list[AppliedCountry] = Field(default_factory=list)
    title_requests: list[str] = Field(default_factory=list)

    def preferred_locations(self) -> list[str]:
        """
        Locations a recommendation may match besides remote jobs:
        the applying countries when set, else the free-text location.
        An empty list means remote jobs only.
        """
        countries = [c.country_name for c in self.applying_countries if c.country_name]
        if countries:
            return countries
        if self.location and self.location.strip():
            return [self.location.strip()]
        return []


# ── Job queue state ───────────────────────────────────────────


class JobsState(BaseModel):
    """Everything a client renders for the swipe deck."""

    current_jobs: list[Job] = Field(default_factory=list)
    is_loading: bool = False
    has_more: bool = True
    error: str | None = None
    total_count: int = 0
    # Catalog rows read so far; swiped cards leaving the deck do not move it
    next_offset: int = 0
    current_filters: JobFilters = Field(default_factory=JobFilters)
    card_status: dict[str, TransitionStatus] = Field(default_factory=dict)


# ── Resume ────────────────────────────────────────────────────


class ResumeRecord(BaseModel):
    id: str
    user_id: str
    file_url: str
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResumeUploadResult(BaseModel):
    resume_url: str
    storage_path: str
    record_id: str
    message: str = "Resume uploaded. Processing has been triggered."


class ResumeStatus(BaseModel):
    user_id: str
    status: ResumeProcessingStatus
    detail: str | None = None


# ── HTTP payloads ─────────────────────────────────────────────


class QueueJobsRequest(BaseModel):
    """Request body for POST /queue."""

    job_ids: list[str] = Field(..., min_length=1)


class SearchRequest(BaseModel):
    """Request body for POST /queue/search."""

    term: str = Field(..., min_length=1)
    filters: JobFilters = Field(default_factory=JobFilters)


class SwipeResult(BaseModel):
    """Response for the swipe endpoints."""

    job_id: str
    status: TransitionStatus | None = None
    error: str | None = None
