"""
Interaction service: durable per-user, per-job interaction state.
Single Responsibility: only reads and writes `user_job_interactions`
(plus the jobs reads that depend on them).

Every store failure is logged here with the user/job context and then
re-raised unchanged; retry policy belongs to the caller.
"""

import logging
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, Callable

from app.domain.enums import InteractionType
from app.domain.exceptions import BatchWriteError, StoreError
from app.domain.models import (
    InteractionStats,
    Job,
    JobFilters,
    JobQuery,
    JobWithInteraction,
    UserJobInteraction,
    UserProfile,
)
from app.ports.interaction_port import InteractionPort
from app.ports.job_port import JobPort

logger = logging.getLogger(__name__)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


class InteractionService:
    """Tracks which jobs each user has queued, applied to, or passed on."""

    DEFAULT_QUEUE_LIMIT = 20
    DEFAULT_RECOMMEND_LIMIT = 50

    def __init__(
        self,
        interactions: InteractionPort,
        jobs: JobPort,
        today: Callable[[], date] = today_utc,
    ) -> None:
        self._interactions = interactions
        self._jobs = jobs
        self._today = today

    # ── Writes ────────────────────────────────────────────────

    async def add_interaction(
        self, user_id: str, job_id: str, interaction_type: InteractionType
    ) -> UserJobInteraction:
        """
        Insert a single interaction row. Does not check for an existing row;
        the store's unique constraint rejects duplicates with ConstraintError.
        """
        try:
            row = await self._interactions.insert_interaction({
                "user_id": user_id,
                "job_id": job_id,
                "interaction_type": InteractionType(interaction_type).value,
            })
        except StoreError:
            logger.error(
                "add_interaction failed: user=%s job=%s type=%s",
                user_id, job_id, interaction_type,
            )
            raise
        return UserJobInteraction(**row)

    async def add_jobs_to_queue(
        self, user_id: str, job_ids: list[str]
    ) -> list[UserJobInteraction]:
        """
        Queue many jobs in one statement. The batch commits or fails as a
        unit (BatchWriteError). Jobs the user already has a row for are
        skipped, so only newly queued rows are returned.
        """
        unique_ids = list(dict.fromkeys(job_id for job_id in job_ids if job_id))
        if not unique_ids:
            return []

        rows = [
            {
                "user_id": user_id,
                "job_id": job_id,
                "interaction_type": InteractionType.QUEUED.value,
            }
            for job_id in unique_ids
        ]

        try:
            inserted = await self._interactions.insert_queue_batch(rows)
        except BatchWriteError:
            logger.error(
                "add_jobs_to_queue failed: user=%s batch=%d", user_id, len(unique_ids)
            )
            raise
        except StoreError as exc:
            logger.error(
                "add_jobs_to_queue failed: user=%s batch=%d", user_id, len(unique_ids)
            )
            raise BatchWriteError(
                str(exc), job_ids=unique_ids, code=exc.code, details=exc.details
            ) from exc

        logger.info(
            "Queued %d of %d jobs for user %s", len(inserted), len(unique_ids), user_id
        )
        return [UserJobInteraction(**row) for row in inserted]

    async def update_interaction(
        self, user_id: str, job_id: str, new_type: InteractionType
    ) -> UserJobInteraction:
        """
        Move a (user, job) pair to `new_type` with one atomic upsert, creating
        the row if the job was never queued. Repeating the call is harmless.
        """
        try:
            row = await self._interactions.upsert_interaction({
                "user_id": user_id,
                "job_id": job_id,
                "interaction_type": InteractionType(new_type).value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
        except StoreError:
            logger.error(
                "update_interaction failed: user=%s job=%s type=%s",
                user_id, job_id, new_type,
            )
            raise
        return UserJobInteraction(**row)

    async def clear_interactions_by_type(
        self, user_id: str, interaction_type: InteractionType
    ) -> None:
        try:
            await self._interactions.delete_interactions(
                user_id, InteractionType(interaction_type).value
            )
        except StoreError:
            logger.error(
                "clear_interactions_by_type failed: user=%s type=%s",
                user_id, interaction_type,
            )
            raise
        logger.info(
            "Cleared all %s interactions for user %s",
            InteractionType(interaction_type).value, user_id,
        )

    async def expire_queued_interactions(self, today: date | None = None) -> int:
        """Move queued rows whose posting has expired to EXPIRED."""
        cutoff = today or self._today()
        try:
            ids = await self._interactions.list_expired_queued_ids(cutoff)
            if not ids:
                return 0
            updated = await self._interactions.set_interaction_type(
                ids, InteractionType.EXPIRED.value
            )
        except StoreError:
            logger.error("expire_queued_interactions failed: cutoff=%s", cutoff)
            raise
        logger.info("Expired %d queued interactions (cutoff %s)", updated, cutoff)
        return updated

    # ── Reads ─────────────────────────────────────────────────

    async def get_user_job_interaction(
        self,
        user_id: str,
        job_id: str,
        interaction_type: InteractionType | None = None,
    ) -> UserJobInteraction | None:
        """Returns None when no row exists; any other failure raises."""
        try:
            row = await self._interactions.find_interaction(
                user_id,
                job_id,
                InteractionType(interaction_type).value if interaction_type else None,
            )
        except StoreError:
            logger.error("get_user_job_interaction failed: user=%s job=%s", user_id, job_id)
            raise
        return UserJobInteraction(**row) if row else None

    async def get_interactions_by_type(
        self,
        user_id: str,
        interaction_type: InteractionType,
        limit: int | None = None,
    ) -> list[UserJobInteraction]:
        try:
            rows = await self._interactions.list_interactions(
                user_id, InteractionType(interaction_type).value, limit
            )
        except StoreError:
            logger.error(
                "get_interactions_by_type failed: user=%s type=%s", user_id, interaction_type
            )
            raise
        return [UserJobInteraction(**row) for row in rows]

    async def get_jobs_with_interactions(
        self,
        user_id: str,
        interaction_type: InteractionType,
        limit: int = DEFAULT_QUEUE_LIMIT,
    ) -> list[JobWithInteraction]:
        """Jobs joined with the user's interaction, newest interaction first."""
        try:
            rows = await self._interactions.list_interactions_with_jobs(
                user_id, InteractionType(interaction_type).value, max(1, limit)
            )
        except StoreError:
            logger.error(
                "get_jobs_with_interactions failed: user=%s type=%s", user_id, interaction_type
            )
            raise
        return [item for item in (self._to_job_with_interaction(row) for row in rows) if item]

    async def get_available_jobs(
        self,
        user_id: str,
        filters: JobFilters | None = None,
        limit: int = DEFAULT_QUEUE_LIMIT,
    ) -> list[Job]:
        """
        Jobs the user has no interaction row for, newest posted first.
        Only the location, remote and industry filters apply here.
        """
        f = filters or JobFilters()
        try:
            excluded = await self._interactions.list_interacted_job_ids(user_id)
            rows, _ = await self._jobs.query_jobs(JobQuery(
                filters=JobFilters(
                    location=f.location, remote=f.remote, industry=f.industry
                ),
                exclude_job_ids=excluded,
                today=self._today(),
                limit=max(1, limit),
            ))
        except StoreError:
            logger.error("get_available_jobs failed: user=%s", user_id)
            raise
        return [Job(**row) for row in rows]

    async def search_jobs_by_title_requests(
        self,
        user_id: str,
        title_requests: list[str],
        limit: int = DEFAULT_RECOMMEND_LIMIT,
    ) -> list[Job]:
        """Full-text match of desired titles against available jobs."""
        terms = [
            title.replace('"', " ").strip().lower()
            for title in title_requests
            if title and title.strip()
        ]
        terms = [t for t in terms if t]
        if not terms:
            return []

        # websearch syntax: "software engineer" or "data analyst"
        websearch = " or ".join(f'"{term}"' for term in terms)
        logger.debug("Full-text search query for user %s: %s", user_id, websearch)

        try:
            excluded = await self._interactions.list_interacted_job_ids(user_id)
            rows, _ = await self._jobs.query_jobs(JobQuery(
                text_search=websearch,
                exclude_job_ids=excluded,
                today=self._today(),
                limit=max(1, limit),
            ))
        except StoreError:
            logger.error("search_jobs_by_title_requests failed: user=%s", user_id)
            raise
        return [Job(**row) for row in rows]

    async def get_jobs_by_user_profile(
        self,
        user_id: str,
        profile: UserProfile,
        limit: int = DEFAULT_RECOMMEND_LIMIT,
    ) -> list[Job]:
        """Available jobs in the user's countries (or location), or remote."""
        try:
            excluded = await self._interactions.list_interacted_job_ids(user_id)
            rows, _ = await self._jobs.query_jobs(JobQuery(
                exclude_job_ids=excluded,
                profile_locations=profile.preferred_locations(),
                today=self._today(),
                limit=max(1, limit),
            ))
        except StoreError:
            logger.error("get_jobs_by_user_profile failed: user=%s", user_id)
            raise
        return [Job(**row) for row in rows]

    async def get_recommended_jobs_for_user(
        self,
        user_id: str,
        profile: UserProfile,
        limit: int = DEFAULT_RECOMMEND_LIMIT,
    ) -> list[Job]:
        """
        Title-request search first; when it yields fewer than half of
        `limit`, top up with the profile-location search.
        """
        if profile.title_requests:
            logger.info("Using title-based job search for user %s", user_id)
            jobs = await self.search_jobs_by_title_requests(
                user_id, profile.title_requests, limit
            )
            if len(jobs) < limit // 2:
                logger.info("Supplementing with profile-based search for user %s", user_id)
                jobs += await self.get_jobs_by_user_profile(
                    user_id, profile, limit - len(jobs)
                )
        else:
            logger.info("Using profile-based job search for user %s", user_id)
            jobs = await self.get_jobs_by_user_profile(user_id, profile, limit)

        seen: set[str] = set()
        unique: list[Job] = []
        for job in jobs:
            if job.job_id not in seen:
                seen.add(job.job_id)
                unique.append(job)
        return unique[:limit]

    async def get_user_interaction_stats(self, user_id: str) -> InteractionStats:
        try:
            types = await self._interactions.list_interaction_types(user_id)
        except StoreError:
            logger.error("get_user_interaction_stats failed: user=%s", user_id)
            raise
        known = {t.value for t in InteractionType}
        counts = Counter(t for t in types if t in known)
        return InteractionStats(**counts)

    @staticmethod
    def _to_job_with_interaction(row: dict[str, Any]) -> JobWithInteraction | None:
        job = row.get("jobs")
        if not job:
            # Job row deleted upstream; the dangling interaction is skipped
            return None
        return JobWithInteraction(
            **job,
            interaction=UserJobInteraction(
                id=row.get("id"),
                user_id=row["user_id"],
                job_id=row["job_id"],
                interaction_type=row["interaction_type"],
                created_at=row.get("created_at"),
                updated_at=row.get("updated_at"),
            ),
        )
