"""
Job queue orchestrator: the swipe deck's state container.

State lives in an explicit JobsState that only changes through
`jobs_reducer(state, action)`. Every public operation catches failures at
this boundary and records a readable message in `state.error`; callers
poll the state instead of catching exceptions.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable, Union

from pydantic import BaseModel, Field

from app.domain.enums import InteractionType, TransitionStatus
from app.domain.models import (
    InteractionStats,
    Job,
    JobFilters,
    JobPage,
    JobsState,
    UserJobInteraction,
    UserProfile,
)
from app.services.interaction_service import InteractionService
from app.services.job_query_service import JobQueryService

logger = logging.getLogger(__name__)

# current_filters.keywords while the deck shows the user's queue
QUEUE_MARKER = "queued"


# ── Actions ───────────────────────────────────────────────────


class SetLoading(BaseModel):
    is_loading: bool


class SetJobs(BaseModel):
    jobs: list[Job]
    total_count: int
    has_more: bool


class AppendJobs(BaseModel):
    jobs: list[Job]
    has_more: bool


class SetError(BaseModel):
    error: str | None


class SetFilters(BaseModel):
    filters: JobFilters = Field(default_factory=JobFilters)


class ClearJobs(BaseModel):
    pass


class ResetState(BaseModel):
    pass


class SetCardStatus(BaseModel):
    job_id: str
    status: TransitionStatus


class RemoveJob(BaseModel):
    job_id: str


JobsAction = Union[
    SetLoading, SetJobs, AppendJobs, SetError, SetFilters,
    ClearJobs, ResetState, SetCardStatus, RemoveJob,
]


def jobs_reducer(state: JobsState, action: JobsAction) -> JobsState:
    """Pure transition function; never mutates `state`."""
    if isinstance(action, SetLoading):
        return state.model_copy(update={"is_loading": action.is_loading})

    if isinstance(action, SetJobs):
        visible = {job.job_id for job in action.jobs}
        return state.model_copy(update={
            "current_jobs": list(action.jobs),
            "total_count": action.total_count,
            "next_offset": len(action.jobs),
            "has_more": action.has_more,
            "is_loading": False,
            "error": None,
            "card_status": {
                job_id: status
                for job_id, status in state.card_status.items()
                if job_id in visible
            },
        })

    if isinstance(action, AppendJobs):
        return state.model_copy(update={
            "current_jobs": [*state.current_jobs, *action.jobs],
            "next_offset": state.next_offset + len(action.jobs),
            "has_more": action.has_more,
            "is_loading": False,
            "error": None,
        })

    if isinstance(action, SetError):
        return state.model_copy(update={"error": action.error, "is_loading": False})

    if isinstance(action, SetFilters):
        return state.model_copy(update={"current_filters": action.filters})

    if isinstance(action, ClearJobs):
        return state.model_copy(update={
            "current_jobs": [],
            "total_count": 0,
            "next_offset": 0,
            "has_more": True,
            "card_status": {},
        })

    if isinstance(action, ResetState):
        return JobsState()

    if isinstance(action, SetCardStatus):
        return state.model_copy(update={
            "card_status": {**state.card_status, action.job_id: action.status},
        })

    if isinstance(action, RemoveJob):
        # Hides the card only; total_count and next_offset still track the store
        return state.model_copy(update={
            "current_jobs": [
                job for job in state.current_jobs if job.job_id != action.job_id
            ],
        })

    return state


# ── Orchestrator ──────────────────────────────────────────────


class JobQueueOrchestrator:
    """Holds one user's deck and mediates every transition on it."""

    def __init__(
        self,
        interactions: InteractionService,
        jobs: JobQueryService,
        profile: UserProfile | None = None,
        queue_batch_size: int = 20,
        refresh_batch_size: int = 50,
        history_limit: int = 100,
    ) -> None:
        self._interactions = interactions
        self._jobs = jobs
        self._profile = profile
        self._queue_batch_size = queue_batch_size
        self._refresh_batch_size = refresh_batch_size
        self._history_limit = history_limit
        self._state = JobsState()

    @property
    def state(self) -> JobsState:
        return self._state

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    def set_profile(self, profile: UserProfile | None) -> None:
        """Swap the signed-in profile. A different user starts from a blank deck."""
        if self._profile and (profile is None or profile.id != self._profile.id):
            self.dispatch(ResetState())
        self._profile = profile

    def dispatch(self, action: JobsAction) -> JobsState:
        self._state = jobs_reducer(self._state, action)
        return self._state

    # ── Catalog browsing ──────────────────────────────────────

    async def fetch_jobs(self, filters: JobFilters | None = None) -> None:
        """Replace the deck with the first page of catalog results."""
        self._begin()
        try:
            search_filters = (filters or JobFilters()).model_copy(update={"offset": 0})
            page = await self._jobs.fetch_jobs(search_filters, self._profile)
            self._set_page(page)
            self.dispatch(SetFilters(filters=search_filters))
        except Exception as exc:
            self._fail("fetch_jobs", exc, "Failed to fetch jobs")

    async def load_more_jobs(self) -> None:
        """Append the next page. No-op while loading, at the end, or on the queue."""
        state = self._state
        if not state.has_more or state.is_loading:
            return
        if state.current_filters.keywords == QUEUE_MARKER:
            logger.debug("load_more_jobs ignored: deck is showing the queue")
            return

        self._begin()
        try:
            filters = state.current_filters.model_copy(
                update={"offset": state.next_offset}
            )
            page = await self._read_page(filters)
            self.dispatch(AppendJobs(jobs=page.jobs, has_more=page.has_more))
        except Exception as exc:
            self._fail("load_more_jobs", exc, "Failed to load more jobs")

    async def refresh_jobs(self) -> None:
        """Re-read the first page with the current filters (pull-to-refresh)."""
        self._begin()
        try:
            filters = self._state.current_filters.model_copy(update={"offset": 0})
            self._set_page(await self._read_page(filters))
        except Exception as exc:
            self._fail("refresh_jobs", exc, "Failed to refresh jobs")

    async def update_filters(self, **changes) -> None:
        updated = self._active_filters().model_copy(update=changes)
        self.dispatch(ClearJobs())
        await self.fetch_jobs(updated)

    async def clear_filters(self) -> None:
        self.dispatch(ClearJobs())
        self.dispatch(SetFilters(filters=JobFilters()))
        await self.fetch_jobs(JobFilters())

    def get_job_by_id(self, job_id: str) -> Job | None:
        """Look up a job in the current deck (no remote call)."""
        return next((job for job in self._state.current_jobs if job.job_id == job_id), None)

    async def search_jobs(self, search_term: str, filters: JobFilters | None = None) -> None:
        self._begin()
        self.dispatch(ClearJobs())
        try:
            search_filters = (filters or JobFilters()).model_copy(
                update={"keywords": search_term, "offset": 0}
            )
            page = await self._jobs.search_jobs(search_term, search_filters, self._profile)
            self._set_page(page)
            self.dispatch(SetFilters(filters=search_filters))
        except Exception as exc:
            self._fail("search_jobs", exc, "Failed to search jobs")

    # ── Queue ─────────────────────────────────────────────────

    async def fetch_queued_jobs(self) -> None:
        """Load the user's QUEUED jobs as the visible deck."""
        if not self._require_profile("fetch_queued_jobs"):
            return
        self._begin()
        try:
            await self._load_queue()
        except Exception as exc:
            self._fail("fetch_queued_jobs", exc, "Failed to fetch queued jobs")

    async def fetch_recommended_jobs(self) -> None:
        """
        Queue a fresh batch of uninteracted jobs, then show the queue.
        Profile matches go first; any other available jobs fill the batch.
        """
        if not self._require_profile("fetch_recommended_jobs"):
            return
        self._begin()
        self.dispatch(ClearJobs())
        try:
            user_id = self._profile.id
            batch = self._queue_batch_size
            candidates = await self._interactions.get_recommended_jobs_for_user(
                user_id, self._profile, batch
            )
            if len(candidates) < batch:
                available = await self._interactions.get_available_jobs(
                    user_id, JobFilters(), batch
                )
                seen = {job.job_id for job in candidates}
                candidates += [job for job in available if job.job_id not in seen]
            await self._queue_and_show(candidates[:batch])
        except Exception as exc:
            self._fail("fetch_recommended_jobs", exc, "Failed to fetch recommended jobs")

    async def load_deck(self) -> None:
        """Show the existing queue, topping it up with recommendations when empty."""
        await self.fetch_queued_jobs()
        if self._profile and not self._state.error and not self._state.current_jobs:
            await self.fetch_recommended_jobs()

    async def add_jobs_to_queue(self, job_ids: list[str]) -> None:
        if not self._require_profile("add_jobs_to_queue"):
            return
        self._begin()
        try:
            await self._interactions.add_jobs_to_queue(self._profile.id, job_ids)
            await self._load_queue()
        except Exception as exc:
            self._fail("add_jobs_to_queue", exc, "Failed to add jobs to queue")

    async def clear_job_queue(self) -> None:
        if not self._require_profile("clear_job_queue"):
            return
        self._begin()
        try:
            await self._interactions.clear_interactions_by_type(
                self._profile.id, InteractionType.QUEUED
            )
            self.dispatch(ClearJobs())
            self.dispatch(SetLoading(is_loading=False))
        except Exception as exc:
            self._fail("clear_job_queue", exc, "Failed to clear job queue")

    async def refresh_job_queue(self) -> None:
        """
        Drop every queued row, then queue a fresh batch of available jobs
        under the current filters. No available jobs → empty deck, has_more False.
        """
        if not self._require_profile("refresh_job_queue"):
            return
        self._begin()
        try:
            user_id = self._profile.id
            await self._interactions.clear_interactions_by_type(user_id, InteractionType.QUEUED)
            self.dispatch(ClearJobs())

            available = await self._interactions.get_available_jobs(
                user_id, self._active_filters(), self._refresh_batch_size
            )
            await self._queue_and_show(available)
        except Exception as exc:
            self._fail("refresh_job_queue", exc, "Failed to refresh job queue")

    # ── Swipes ────────────────────────────────────────────────

    async def mark_job_as_applied(self, job_id: str) -> TransitionStatus | None:
        return await self._transition(job_id, InteractionType.APPLIED, leaves_deck=True)

    async def mark_job_as_passed(self, job_id: str) -> TransitionStatus | None:
        return await self._transition(job_id, InteractionType.PASSED, leaves_deck=True)

    async def mark_job_as_application_failed(self, job_id: str) -> TransitionStatus | None:
        # Overlay on APPLIED reported downstream; the card stays where it is
        return await self._transition(
            job_id, InteractionType.APPLICATION_FAILED, leaves_deck=False
        )

    # ── History ───────────────────────────────────────────────

    async def get_applied_jobs(self) -> list[Job]:
        return await self._history(InteractionType.APPLIED)

    async def get_passed_jobs(self) -> list[Job]:
        return await self._history(InteractionType.PASSED)

    async def get_user_job_interaction(self, job_id: str) -> UserJobInteraction | None:
        if not self._require_profile("get_user_job_interaction"):
            return None
        try:
            return await self._interactions.get_user_job_interaction(self._profile.id, job_id)
        except Exception as exc:
            self._fail("get_user_job_interaction", exc, "Failed to load job interaction")
            return None

    async def get_interaction_stats(self) -> InteractionStats:
        if not self._require_profile("get_interaction_stats"):
            return InteractionStats()
        try:
            return await self._interactions.get_user_interaction_stats(self._profile.id)
        except Exception as exc:
            self._fail("get_interaction_stats", exc, "Failed to load interaction stats")
            return InteractionStats()

    # ── Internals ─────────────────────────────────────────────

    async def _transition(
        self, job_id: str, new_type: InteractionType, leaves_deck: bool
    ) -> TransitionStatus | None:
        if not self._require_profile(f"mark_job_as_{new_type.value}"):
            return None

        self.dispatch(SetCardStatus(job_id=job_id, status=TransitionStatus.PENDING))
        try:
            await self._interactions.update_interaction(self._profile.id, job_id, new_type)
        except Exception as exc:
            self.dispatch(SetCardStatus(job_id=job_id, status=TransitionStatus.FAILED))
            self._fail(
                f"mark_job_as_{new_type.value}",
                exc,
                f"Failed to mark job as {new_type.value.replace('_', ' ')}",
            )
            return TransitionStatus.FAILED

        self.dispatch(SetCardStatus(job_id=job_id, status=TransitionStatus.COMMITTED))
        if leaves_deck:
            self.dispatch(RemoveJob(job_id=job_id))
        logger.info("Job %s marked %s for user %s", job_id, new_type.value, self._profile.id)
        return TransitionStatus.COMMITTED

    async def _history(self, interaction_type: InteractionType) -> list[Job]:
        if not self._require_profile(f"get_{interaction_type.value}_jobs"):
            return []
        try:
            items = await self._interactions.get_jobs_with_interactions(
                self._profile.id, interaction_type, self._history_limit
            )
        except Exception as exc:
            logger.error("Loading %s jobs failed: %s", interaction_type.value, exc)
            return []
        return [item.as_job() for item in items]

    async def _load_queue(self) -> None:
        items = await self._interactions.get_jobs_with_interactions(
            self._profile.id, InteractionType.QUEUED, self._queue_batch_size
        )
        jobs = [item.as_job() for item in items]
        self.dispatch(SetJobs(
            jobs=jobs,
            total_count=len(jobs),
            has_more=len(jobs) >= self._queue_batch_size,
        ))
        self.dispatch(SetFilters(filters=JobFilters(keywords=QUEUE_MARKER)))

    async def _queue_and_show(self, jobs: list[Job]) -> None:
        if not jobs:
            self.dispatch(SetJobs(jobs=[], total_count=0, has_more=False))
            return
        await self._interactions.add_jobs_to_queue(
            self._profile.id, [job.job_id for job in jobs]
        )
        await self._load_queue()

    async def _read_page(self, filters: JobFilters) -> JobPage:
        if filters.keywords and filters.keywords != QUEUE_MARKER:
            return await self._jobs.search_jobs(filters.keywords, filters, self._profile)
        return await self._jobs.fetch_jobs(filters, self._profile)

    def _set_page(self, page: JobPage) -> None:
        self.dispatch(SetJobs(
            jobs=page.jobs, total_count=page.total_count, has_more=page.has_more
        ))

    def _active_filters(self) -> JobFilters:
        """Current filters without the queue marker or pagination."""
        filters = self._state.current_filters
        update: dict = {"offset": None}
        if filters.keywords == QUEUE_MARKER:
            update["keywords"] = None
        return filters.model_copy(update=update)

    def _begin(self) -> None:
        self.dispatch(SetError(error=None))
        self.dispatch(SetLoading(is_loading=True))

    def _fail(self, operation: str, exc: Exception, fallback: str) -> None:
        logger.error("JobQueue.%s failed: %s: %s", operation, type(exc).__name__, exc)
        self.dispatch(SetError(error=str(exc) or fallback))

    def _require_profile(self, operation: str) -> bool:
        if self._profile is None or not self._profile.id:
            logger.warning("JobQueue: no user profile available for %s", operation)
            return False
        return True


class JobQueueRegistry:
    """
    One orchestrator per signed-in user. Holds at most `max_users` decks;
    the least recently used one is dropped when a new user arrives.
    """

    def __init__(
        self,
        factory: Callable[[UserProfile], JobQueueOrchestrator],
        max_users: int = 1000,
    ) -> None:
        self._factory = factory
        self._max_users = max(1, max_users)
        self._queues: OrderedDict[str, JobQueueOrchestrator] = OrderedDict()

    def get(self, profile: UserProfile) -> JobQueueOrchestrator:
        queue = self._queues.get(profile.id)
        if queue is None:
            queue = self._factory(profile)
            self._queues[profile.id] = queue
            self._evict()
        else:
            self._queues.move_to_end(profile.id)
            # Keep filters and deck; pick up profile edits (countries, titles)
            queue.set_profile(profile)
        return queue

    def discard(self, user_id: str) -> None:
        self._queues.pop(user_id, None)

    def _evict(self) -> None:
        while len(self._queues) > self._max_users:
            user_id, _ = self._queues.popitem(last=False)
            logger.debug("Evicted job queue for user %s", user_id)

    def __len__(self) -> int:
        return len(self._queues)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._queues
