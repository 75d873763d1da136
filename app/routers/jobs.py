"""
Job catalog endpoints: listing, search, recommendations, facets.
All logic delegated to JobQueryService.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.dependencies import get_job_query_service
from app.domain.exceptions import StoreError
from app.domain.models import FilterOptions, Job, JobFilters, JobPage, UserProfile
from app.services.auth_service import get_current_user
from app.services.job_query_service import JobQueryService

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def job_filters(
    location: str | None = Query(None),
    remote: bool | None = Query(None),
    industry: str | None = Query(None),
    employment_type: str | None = Query(None),
    experience: str | None = Query(None),
    education: str | None = Query(None),
    salary_min: float | None = Query(None, ge=0),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
) -> JobFilters:
    """Collect filter query parameters. limit/offset are clamped by the service."""
    return JobFilters(
        location=location,
        remote=remote,
        industry=industry,
        employment_type=employment_type,
        experience=experience,
        education=education,
        salary_min=salary_min,
        limit=limit,
        offset=offset,
    )


def _store_unavailable(exc: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Job store error: {exc}",
    )


@router.get("", response_model=JobPage)
async def list_jobs(
    filters: JobFilters = Depends(job_filters),
    current_user: UserProfile = Depends(get_current_user),
    svc: JobQueryService = Depends(get_job_query_service),
):
    """One page of non-expired jobs, newest posted first."""
    try:
        return await svc.fetch_jobs(filters, current_user)
    except StoreError as exc:
        raise _store_unavailable(exc)


@router.get("/search", response_model=JobPage)
async def search_jobs(
    q: str = Query(..., min_length=1),
    filters: JobFilters = Depends(job_filters),
    current_user: UserProfile = Depends(get_current_user),
    svc: JobQueryService = Depends(get_job_query_service),
):
    """Substring search across title, company and description."""
    try:
        return await svc.search_jobs(q, filters, current_user)
    except StoreError as exc:
        raise _store_unavailable(exc)


@router.get("/recommended", response_model=JobPage)
async def recommended_jobs(
    limit: int = Query(JobQueryService.DEFAULT_LIMIT),
    current_user: UserProfile = Depends(get_current_user),
    svc: JobQueryService = Depends(get_job_query_service),
):
    """Jobs in the user's target countries or location, plus remote jobs."""
    try:
        return await svc.get_recommended_jobs(current_user, limit)
    except StoreError as exc:
        raise _store_unavailable(exc)


@router.get("/filters", response_model=FilterOptions)
async def filter_options(
    current_user: UserProfile = Depends(get_current_user),
    svc: JobQueryService = Depends(get_job_query_service),
):
    """Distinct values per facet for populating filter pickers."""
    return await svc.get_filter_options()


@router.get("/{job_id}", response_model=Job)
async def get_job(
    job_id: str,
    current_user: UserProfile = Depends(get_current_user),
    svc: JobQueryService = Depends(get_job_query_service),
):
    try:
        job = await svc.get_job_by_id(job_id)
    except StoreError as exc:
        raise _store_unavailable(exc)

    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return job
