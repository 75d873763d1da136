"""
Swipe deck endpoints: thin HTTP layer over the per-user JobQueueOrchestrator.

Orchestrator operations never raise; each mutating endpoint returns the
resulting JobsState and clients read `error` from it.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import get_job_queue_registry
from app.domain.models import (
    InteractionStats,
    Job,
    JobFilters,
    JobsState,
    QueueJobsRequest,
    SearchRequest,
    SwipeResult,
    UserJobInteraction,
    UserProfile,
)
from app.services.auth_service import get_current_user
from app.services.job_queue import JobQueueOrchestrator, JobQueueRegistry

router = APIRouter(prefix="/queue", tags=["Queue"])


def get_job_queue(
    current_user: UserProfile = Depends(get_current_user),
    registry: JobQueueRegistry = Depends(get_job_queue_registry),
) -> JobQueueOrchestrator:
    """Resolve the signed-in user's deck."""
    return registry.get(current_user)


# ── Deck ──────────────────────────────────────────────────────


@router.get("", response_model=JobsState)
async def get_state(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    return queue.state


@router.post("/load", response_model=JobsState)
async def load_deck(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    """Show queued jobs; queue recommendations first if there are none."""
    await queue.load_deck()
    return queue.state


@router.post("/refresh", response_model=JobsState)
async def refresh_queue(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    """Drop the queue and refill it with jobs the user has not seen."""
    await queue.refresh_job_queue()
    return queue.state


@router.post("/recommended", response_model=JobsState)
async def queue_recommended(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    await queue.fetch_recommended_jobs()
    return queue.state


@router.post("", response_model=JobsState)
async def add_to_queue(
    body: QueueJobsRequest,
    queue: JobQueueOrchestrator = Depends(get_job_queue),
):
    await queue.add_jobs_to_queue(body.job_ids)
    return queue.state


@router.delete("", response_model=JobsState)
async def clear_queue(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    await queue.clear_job_queue()
    return queue.state


# ── Catalog browsing inside the deck ──────────────────────────


@router.post("/browse", response_model=JobsState)
async def browse(
    filters: JobFilters,
    queue: JobQueueOrchestrator = Depends(get_job_queue),
):
    await queue.fetch_jobs(filters)
    return queue.state


@router.post("/browse/more", response_model=JobsState)
async def browse_more(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    await queue.load_more_jobs()
    return queue.state


@router.post("/browse/refresh", response_model=JobsState)
async def browse_refresh(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    await queue.refresh_jobs()
    return queue.state


@router.post("/search", response_model=JobsState)
async def search(
    body: SearchRequest,
    queue: JobQueueOrchestrator = Depends(get_job_queue),
):
    await queue.search_jobs(body.term, body.filters)
    return queue.state


@router.patch("/filters", response_model=JobsState)
async def update_filters(
    changes: JobFilters,
    queue: JobQueueOrchestrator = Depends(get_job_queue),
):
    await queue.update_filters(**changes.model_dump(exclude_unset=True))
    return queue.state


@router.delete("/filters", response_model=JobsState)
async def clear_filters(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    await queue.clear_filters()
    return queue.state


# ── Swipes ────────────────────────────────────────────────────


@router.post("/{job_id}/apply", response_model=SwipeResult)
async def apply(job_id: str, queue: JobQueueOrchestrator = Depends(get_job_queue)):
    """Swipe right."""
    result = await queue.mark_job_as_applied(job_id)
    return SwipeResult(job_id=job_id, status=result, error=queue.state.error)


@router.post("/{job_id}/pass", response_model=SwipeResult)
async def pass_job(job_id: str, queue: JobQueueOrchestrator = Depends(get_job_queue)):
    """Swipe left."""
    result = await queue.mark_job_as_passed(job_id)
    return SwipeResult(job_id=job_id, status=result, error=queue.state.error)


@router.post("/{job_id}/failed", response_model=SwipeResult)
async def application_failed(
    job_id: str, queue: JobQueueOrchestrator = Depends(get_job_queue)
):
    """Report that a submitted application did not go through."""
    result = await queue.mark_job_as_application_failed(job_id)
    return SwipeResult(job_id=job_id, status=result, error=queue.state.error)


# ── History ───────────────────────────────────────────────────


@router.get("/applied", response_model=list[Job])
async def applied_jobs(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    return await queue.get_applied_jobs()


@router.get("/passed", response_model=list[Job])
async def passed_jobs(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    return await queue.get_passed_jobs()


@router.get("/stats", response_model=InteractionStats)
async def interaction_stats(queue: JobQueueOrchestrator = Depends(get_job_queue)):
    return await queue.get_interaction_stats()


@router.get("/{job_id}/interaction", response_model=UserJobInteraction)
async def get_interaction(
    job_id: str, queue: JobQueueOrchestrator = Depends(get_job_queue)
):
    interaction = await queue.get_user_job_interaction(job_id)
    if not interaction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No interaction with this job",
        )
    return interaction
