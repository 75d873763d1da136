"""
Job query service: filtered, paginated reads against the job catalog.
Single Responsibility: turns filter sets into JobQuery objects and pages.
"""

import asyncio
import logging
from datetime import date
from typing import Callable

from app.domain.exceptions import StoreError
from app.domain.models import FilterOptions, Job, JobFilters, JobPage, JobQuery, UserProfile
from app.ports.job_port import JobPort
from app.services.interaction_service import today_utc

logger = logging.getLogger(__name__)

# FilterOptions field → jobs column
_FACETS = {
    "industries": "industry",
    "locations": "job_location",
    "employment_types": "employment_type",
    "experience_levels": "experience",
    "education_levels": "education",
}


class JobQueryService:
    """Read-only access to the jobs table."""

    DEFAULT_LIMIT = 20
    MAX_LIMIT = 100

    def __init__(self, jobs: JobPort, today: Callable[[], date] = today_utc) -> None:
        self._jobs = jobs
        self._today = today

    @classmethod
    def clamp_limit(cls, limit: int | None) -> int:
        """None → default page size; anything else is forced into [1, MAX_LIMIT]."""
        if limit is None:
            return cls.DEFAULT_LIMIT
        return max(1, min(limit, cls.MAX_LIMIT))

    @staticmethod
    def resolve_offset(offset: int | None) -> int:
        return max(0, offset or 0)

    async def fetch_jobs(
        self,
        filters: JobFilters | None = None,
        profile: UserProfile | None = None,
    ) -> JobPage:
        """
        One page of non-expired jobs matching every set filter, newest
        posted first. The catalog view does not narrow by `profile`; it is
        accepted so callers can pass the same arguments as to
        get_recommended_jobs.
        """
        return await self._fetch_page(filters or JobFilters(), search_term=None)

    async def search_jobs(
        self,
        search_term: str,
        filters: JobFilters | None = None,
        profile: UserProfile | None = None,
    ) -> JobPage:
        """fetch_jobs plus a substring match on title, company or description."""
        term = (search_term or "").strip()
        f = (filters or JobFilters()).model_copy(update={"keywords": term or None})
        return await self._fetch_page(f, search_term=term or None)

    async def get_recommended_jobs(
        self, profile: UserProfile, limit: int = DEFAULT_LIMIT
    ) -> JobPage:
        """Jobs in the profile's countries or location, plus all remote jobs."""
        page_size = self.clamp_limit(limit)
        query = JobQuery(
            profile_locations=profile.preferred_locations(),
            today=self._today(),
            limit=page_size,
            with_count=True,
        )
        rows, total = await self._run(query, "get_recommended_jobs")
        jobs = [Job(**row) for row in rows]
        return JobPage(jobs=jobs, total_count=total, has_more=len(jobs) < total)

    async def get_job_by_id(self, job_id: str) -> Job | None:
        try:
            row = await self._jobs.get_job(job_id)
        except StoreError:
            logger.error("get_job_by_id failed: job=%s", job_id)
            raise
        return Job(**row) if row else None

    async def get_filter_options(self) -> FilterOptions:
        """Distinct non-null values for each facet, looked up concurrently."""
        values = await asyncio.gather(
            *(self._distinct_values(column) for column in _FACETS.values())
        )
        return FilterOptions(**dict(zip(_FACETS.keys(), values)))

    async def _distinct_values(self, column: str) -> list[str]:
        try:
            values = await self._jobs.list_distinct_values(column)
        except StoreError as exc:
            # A broken facet should not hide the others
            logger.error("Fetching distinct %s failed: %s", column, exc)
            return []
        return [str(v) for v in values if v not in (None, "")]

    async def _fetch_page(self, filters: JobFilters, search_term: str | None) -> JobPage:
        page_size = self.clamp_limit(filters.limit)
        offset = self.resolve_offset(filters.offset)

        query = JobQuery(
            filters=filters,
            search_term=search_term,
            today=self._today(),
            limit=page_size,
            offset=offset,
            with_count=True,
        )
        action = "search_jobs" if search_term else "fetch_jobs"
        rows, total = await self._run(query, action)

        jobs = [Job(**row) for row in rows]
        return JobPage(
            jobs=jobs,
            total_count=total,
            has_more=offset + len(jobs) < total,
        )

    async def _run(self, query: JobQuery, action: str) -> tuple[list[dict], int]:
        try:
            return await self._jobs.query_jobs(query)
        except StoreError:
            logger.error("JobQueryService.%s failed", action)
            raise
