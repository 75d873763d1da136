"""Tests for the job catalog query service."""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.exceptions import QueryError
from app.domain.models import JobFilters, UserProfile
from app.services.job_query_service import JobQueryService
from tests.fakes import make_job


@pytest.mark.parametrize(
    "limit, expected",
    [(None, 20), (0, 1), (-5, 1), (1, 1), (50, 50), (100, 100), (500, 100)],
)
def test_clamp_limit(limit, expected):
    assert JobQueryService.clamp_limit(limit) == expected


@pytest.mark.parametrize("offset, expected", [(None, 0), (-3, 0), (0, 0), (7, 7)])
def test_resolve_offset(offset, expected):
    assert JobQueryService.resolve_offset(offset) == expected


@pytest.fixture
def catalog(store):
    """25 Berlin jobs, j0 newest."""
    store.add_jobs(*(make_job(f"j{i}", days_ago=i) for i in range(25)))
    return store


@pytest.mark.asyncio
async def test_fetch_jobs_first_page(job_query_service, catalog):
    page = await job_query_service.fetch_jobs(JobFilters(limit=10))

    assert [job.job_id for job in page.jobs] == [f"j{i}" for i in range(10)]
    assert page.total_count == 25
    assert page.has_more is True


@pytest.mark.asyncio
async def test_fetch_jobs_last_page(job_query_service, catalog):
    page = await job_query_service.fetch_jobs(JobFilters(limit=10, offset=20))

    assert len(page.jobs) == 5
    assert page.has_more is False


@pytest.mark.asyncio
async def test_fetch_jobs_defaults(job_query_service, catalog):
    page = await job_query_service.fetch_jobs()

    assert len(page.jobs) == 20
    assert page.jobs[0].job_id == "j0"


@pytest.mark.asyncio
async def test_fetch_jobs_ands_filters(job_query_service, store):
    store.add_jobs(
        make_job("match", remote=True, industry="Finance", salary_min=70000),
        make_job("not-remote", remote=False, industry="Finance", salary_min=70000),
        make_job("wrong-industry", remote=True, industry="Retail", salary_min=70000),
        make_job("underpaid", remote=True, industry="Finance", salary_min=30000),
    )

    page = await job_query_service.fetch_jobs(
        JobFilters(remote=True, industry="Finance", salary_min=50000)
    )

    assert [job.job_id for job in page.jobs] == ["match"]
    assert page.total_count == 1


@pytest.mark.asyncio
async def test_fetch_jobs_excludes_expired(job_query_service, store, today):
    store.add_jobs(
        make_job("expired", date_validthru=(today - timedelta(days=1)).isoformat()),
        make_job("valid", date_validthru=(today + timedelta(days=30)).isoformat()),
    )

    page = await job_query_service.fetch_jobs()

    assert [job.job_id for job in page.jobs] == ["valid"]


@pytest.mark.asyncio
async def test_fetch_jobs_ignores_profile(job_query_service, store):
    store.add_jobs(make_job("paris", job_location="Paris, France"))

    page = await job_query_service.fetch_jobs(None, UserProfile(id="u", location="Berlin"))

    assert [job.job_id for job in page.jobs] == ["paris"]


@pytest.mark.asyncio
async def test_search_jobs_matches_title_company_or_description(job_query_service, store):
    store.add_jobs(
        make_job("by-title", job_title="Python Developer"),
        make_job("by-company", company_name="PythonWorks"),
        make_job("by-description", description="We love python."),
        make_job("no-match", job_title="Accountant"),
    )

    page = await job_query_service.search_jobs("PYTHON")

    assert {job.job_id for job in page.jobs} == {"by-title", "by-company", "by-description"}


@pytest.mark.asyncio
async def test_search_jobs_excludes_expired(job_query_service, store, today):
    yesterday = (today - timedelta(days=1)).isoformat()
    store.add_jobs(
        make_job("expired", job_title="Python Developer", date_validthru=yesterday),
        make_job("expires-today", job_title="Python Developer", date_validthru=today.isoformat()),
        make_job("open-ended", job_title="Python Developer", date_validthru=None),
    )

    page = await job_query_service.search_jobs("python")

    assert {job.job_id for job in page.jobs} == {"expires-today", "open-ended"}
    assert page.total_count == 2


@pytest.mark.asyncio
async def test_search_jobs_excludes_expired_with_filters(job_query_service, store, today):
    yesterday = (today - timedelta(days=1)).isoformat()
    store.add_jobs(
        make_job("expired", job_title="Data Analyst", remote=True,
                 industry="Finance", date_validthru=yesterday),
        make_job("valid", job_title="Data Analyst", remote=True, industry="Finance"),
        make_job("on-site", job_title="Data Analyst", remote=False, industry="Finance"),
    )

    page = await job_query_service.search_jobs(
        "analyst", JobFilters(remote=True, industry="Finance", limit=5)
    )

    assert [job.job_id for job in page.jobs] == ["valid"]
    assert page.has_more is False


@pytest.mark.asyncio
async def test_search_jobs_blank_term_behaves_like_fetch(job_query_service, catalog):
    searched = await job_query_service.search_jobs("   ", JobFilters(limit=5))
    fetched = await job_query_service.fetch_jobs(JobFilters(limit=5))

    assert searched == fetched


@pytest.mark.asyncio
async def test_get_recommended_jobs_location_or_remote(job_query_service, store, profile):
    store.add_jobs(
        make_job("berlin", days_ago=1),
        make_job("remote", days_ago=2, job_location="Austin, USA", remote=True),
        make_job("paris", days_ago=0, job_location="Paris, France"),
    )

    page = await job_query_service.get_recommended_jobs(profile, limit=10)

    assert [job.job_id for job in page.jobs] == ["berlin", "remote"]
    assert page.has_more is False


@pytest.mark.asyncio
async def test_get_recommended_jobs_clamps_limit(job_query_service, catalog, profile):
    page = await job_query_service.get_recommended_jobs(profile, limit=0)

    assert len(page.jobs) == 1
    assert page.has_more is True


@pytest.mark.asyncio
async def test_get_job_by_id(job_query_service, store):
    store.add_jobs(make_job("j1", job_title="Auditor"))

    assert (await job_query_service.get_job_by_id("j1")).job_title == "Auditor"
    assert await job_query_service.get_job_by_id("missing") is None


@pytest.mark.asyncio
async def test_store_errors_propagate(job_query_service, store):
    store.failures["query_jobs"] = QueryError("statement timeout", code="57014")

    with pytest.raises(QueryError):
        await job_query_service.fetch_jobs()


@pytest.mark.asyncio
async def test_get_filter_options(job_query_service, store):
    store.add_jobs(
        make_job("a", industry="Finance", job_location="London"),
        make_job("b", industry="Technology", job_location="Berlin"),
        make_job("c", industry="Finance", job_location="Berlin", education=None),
    )

    options = await job_query_service.get_filter_options()

    assert options.industries == ["Finance", "Technology"]
    assert options.locations == ["Berlin", "London"]
    assert options.education_levels == ["Bachelor"]


@pytest.mark.asyncio
async def test_get_filter_options_failed_facet_is_empty(today):
    async def distinct(column):
        if column == "industry":
            raise QueryError("permission denied")
        return [f"{column}-value"]

    jobs = MagicMock()
    jobs.list_distinct_values = AsyncMock(side_effect=distinct)
    service = JobQueryService(jobs=jobs, today=lambda: today)

    options = await service.get_filter_options()

    assert options.industries == []
    assert options.locations == ["job_location-value"]
    assert jobs.list_distinct_values.await_count == 5
