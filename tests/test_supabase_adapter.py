"""Tests for the PostgREST calls the Supabase adapter emits."""
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from app.adapters.supabase_adapter import SupabaseAdapter, sanitize_or_term
from app.adapters.supabase_storage_adapter import SupabaseStorageAdapter
from app.domain.exceptions import BatchWriteError, ConstraintError, QueryError, StoreError
from app.domain.models import JobFilters, JobQuery


TODAY = date(2024, 6, 1)
EXPIRY = "date_validthru.is.null,date_validthru.gte.2024-06-01"


class RecordingQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self._response = response if response is not None else SimpleNamespace(data=[], count=None)
        self._error = error

    @property
    def not_(self):
        self.calls.append(("not_",))
        return self

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        if self._error:
            raise self._error
        return self._response

    def names(self):
        return [call[0] for call in self.calls]

    def args_of(self, name):
        return [call[1] for call in self.calls if call[0] == name]


def _adapter(query):
    client = MagicMock()
    client.table.return_value = query
    return SupabaseAdapter(client=client), client


def _api_error(message, code):
    return APIError({"message": message, "code": code, "details": None, "hint": None})


def test_sanitize_or_term():
    assert sanitize_or_term(' a,(b)%*c"\\ ') == "abc"
    assert sanitize_or_term("data analyst") == "data analyst"


@pytest.mark.asyncio
async def test_query_jobs_filters_and_pagination():
    query = RecordingQuery(SimpleNamespace(data=[{"job_id": "j1"}], count=41))
    adapter, client = _adapter(query)

    rows, total = await adapter.query_jobs(JobQuery(
        filters=JobFilters(location="Berlin", remote=True, industry="Finance", salary_min=5000),
        exclude_job_ids=["x", "y"],
        today=TODAY,
        limit=10,
        offset=20,
        with_count=True,
    ))

    client.table.assert_called_once_with("jobs")
    assert rows == [{"job_id": "j1"}]
    assert total == 41
    assert query.calls[0] == ("select", ("*",), {"count": "exact"})
    assert ("ilike", ("job_location", "%Berlin%"), {}) in query.calls
    assert ("eq", ("remote", "true"), {}) in query.calls
    assert ("eq", ("industry", "Finance"), {}) in query.calls
    assert ("gte", ("salary_min", 5000.0), {}) in query.calls
    assert query.args_of("in_") == [("job_id", ["x", "y"])]
    assert query.names()[query.names().index("in_") - 1] == "not_"
    assert query.args_of("or_") == [(EXPIRY,)]
    assert ("order", ("date_posted",), {"desc": True}) in query.calls
    assert query.args_of("range") == [(20, 29)]


@pytest.mark.asyncio
async def test_query_jobs_without_count_uses_row_count():
    query = RecordingQuery(SimpleNamespace(data=[{"job_id": "a"}, {"job_id": "b"}], count=None))
    adapter, _ = _adapter(query)

    rows, total = await adapter.query_jobs(JobQuery(today=TODAY, limit=5))

    assert total == 2
    assert query.calls[0] == ("select", ("*",), {})


@pytest.mark.asyncio
async def test_query_jobs_nests_or_groups():
    query = RecordingQuery()
    adapter, _ = _adapter(query)

    await adapter.query_jobs(JobQuery(
        search_term="dev, (ops)",
        profile_locations=["Germany"],
        today=TODAY,
        limit=20,
    ))

    assert query.args_of("or_") == [(
        "and("
        "or(job_title.ilike.*dev ops*,company_name.ilike.*dev ops*,description.ilike.*dev ops*),"
        "or(remote.eq.true,job_location.ilike.*Germany*),"
        f"or({EXPIRY})"
        ")",
    )]


@pytest.mark.asyncio
@pytest.mark.parametrize("term", ["()", ' ,%* ', '"\\'])
async def test_query_jobs_unsearchable_term_matches_nothing(term):
    query = RecordingQuery(SimpleNamespace(data=[{"job_id": "j1"}], count=1))
    adapter, client = _adapter(query)

    rows, total = await adapter.query_jobs(
        JobQuery(search_term=term, today=TODAY, limit=20, with_count=True)
    )

    assert (rows, total) == ([], 0)
    client.table.assert_not_called()


@pytest.mark.asyncio
async def test_query_jobs_empty_profile_locations_is_remote_only():
    query = RecordingQuery()
    adapter, _ = _adapter(query)

    await adapter.query_jobs(JobQuery(profile_locations=[], today=TODAY, limit=20))

    assert ("eq", ("remote", "true"), {}) in query.calls
    assert query.args_of("or_") == [(EXPIRY,)]


@pytest.mark.asyncio
async def test_query_jobs_full_text_search():
    query = RecordingQuery()
    adapter, _ = _adapter(query)

    await adapter.query_jobs(JobQuery(text_search='"data analyst"', today=TODAY, limit=50))

    assert query.args_of("text_search") == [("search_vector", '"data analyst"')]
    options = [c[2] for c in query.calls if c[0] == "text_search"][0]
    assert options == {"options": {"type": "websearch", "config": "english"}}


@pytest.mark.asyncio
async def test_query_jobs_translates_api_error():
    query = RecordingQuery(error=_api_error("statement timeout", "57014"))
    adapter, _ = _adapter(query)

    with pytest.raises(QueryError) as exc_info:
        await adapter.query_jobs(JobQuery(today=TODAY, limit=20))

    assert exc_info.value.code == "57014"
    assert isinstance(exc_info.value.__cause__, APIError)


@pytest.mark.asyncio
async def test_upsert_interaction_targets_unique_pair():
    row = {"id": "1", "user_id": "u", "job_id": "j", "interaction_type": "applied"}
    query = RecordingQuery(SimpleNamespace(data=[row]))
    adapter, client = _adapter(query)

    result = await adapter.upsert_interaction(row)

    client.table.assert_called_once_with("user_job_interactions")
    assert result == row
    assert query.calls == [("upsert", (row,), {"on_conflict": "user_id,job_id"})]


@pytest.mark.asyncio
async def test_upsert_interaction_rejection_is_constraint_error():
    query = RecordingQuery(error=_api_error("new row violates row-level security", "42501"))
    adapter, _ = _adapter(query)

    with pytest.raises(ConstraintError):
        await adapter.upsert_interaction({"user_id": "u", "job_id": "j"})


@pytest.mark.asyncio
async def test_insert_queue_batch_is_single_statement():
    rows = [
        {"user_id": "u", "job_id": "a", "interaction_type": "queued"},
        {"user_id": "u", "job_id": "b", "interaction_type": "queued"},
    ]
    query = RecordingQuery(SimpleNamespace(data=rows[:1]))
    adapter, _ = _adapter(query)

    inserted = await adapter.insert_queue_batch(rows)

    assert inserted == rows[:1]
    assert query.calls == [(
        "upsert",
        (rows,),
        {"on_conflict": "user_id,job_id", "ignore_duplicates": True},
    )]


@pytest.mark.asyncio
async def test_insert_queue_batch_failure_names_the_batch():
    query = RecordingQuery(error=_api_error("foreign key violation", "23503"))
    adapter, _ = _adapter(query)

    with pytest.raises(BatchWriteError) as exc_info:
        await adapter.insert_queue_batch([
            {"user_id": "u", "job_id": "a", "interaction_type": "queued"},
            {"user_id": "u", "job_id": "b", "interaction_type": "queued"},
        ])

    assert exc_info.value.job_ids == ["a", "b"]
    assert exc_info.value.code == "23503"


@pytest.mark.asyncio
async def test_find_interaction_not_found_is_none():
    query = RecordingQuery()
    query.execute = lambda: None  # maybe_single() with no row
    adapter, _ = _adapter(query)

    assert await adapter.find_interaction("u", "j", "queued") is None
    assert ("eq", ("interaction_type", "queued"), {}) in query.calls
    assert query.names()[-1] == "maybe_single"


@pytest.mark.asyncio
async def test_list_interactions_with_jobs_joins_jobs():
    query = RecordingQuery(SimpleNamespace(data=[{"id": "1", "jobs": {"job_id": "j"}}]))
    adapter, _ = _adapter(query)

    rows = await adapter.list_interactions_with_jobs("u", "queued", 20)

    assert rows[0]["jobs"] == {"job_id": "j"}
    assert query.calls[0] == ("select", ("*, jobs(*)",), {})
    assert ("order", ("created_at",), {"desc": True}) in query.calls
    assert query.args_of("limit") == [(20,)]


@pytest.mark.asyncio
async def test_list_expired_queued_ids():
    query = RecordingQuery(SimpleNamespace(data=[{"id": "1"}, {"id": "2"}]))
    adapter, _ = _adapter(query)

    ids = await adapter.list_expired_queued_ids(TODAY)

    assert ids == ["1", "2"]
    assert query.calls[0] == ("select", ("id, jobs!inner(date_validthru)",), {})
    assert ("eq", ("interaction_type", "queued"), {}) in query.calls
    assert ("lt", ("jobs.date_validthru", "2024-06-01"), {}) in query.calls


@pytest.mark.asyncio
async def test_set_interaction_type_empty_is_noop():
    adapter, client = _adapter(RecordingQuery())

    assert await adapter.set_interaction_type([], "expired") == 0
    client.table.assert_not_called()


@pytest.mark.asyncio
async def test_list_distinct_values_dedupes():
    query = RecordingQuery(SimpleNamespace(data=[
        {"industry": "Finance"}, {"industry": "Finance"}, {"industry": "Tech"},
    ]))
    adapter, _ = _adapter(query)

    assert await adapter.list_distinct_values("industry") == ["Finance", "Tech"]
    assert ("is_", ("industry", "null"), {}) in query.calls


# ── Storage ───────────────────────────────────────────────────


@pytest.fixture
def bucket():
    client = MagicMock()
    return client, client.storage.from_.return_value


@pytest.mark.asyncio
async def test_storage_upload_never_overwrites_by_default(bucket):
    client, files = bucket
    adapter = SupabaseStorageAdapter(client=client)

    path = await adapter.upload_file("resumes", "u_1.pdf", b"%PDF", "application/pdf")

    assert path == "u_1.pdf"
    client.storage.from_.assert_called_with("resumes")
    assert files.upload.call_args.kwargs["file_options"] == {
        "content-type": "application/pdf",
        "upsert": "false",
    }


@pytest.mark.asyncio
async def test_storage_signed_url(bucket):
    client, files = bucket
    files.create_signed_url.return_value = {"signedURL": "https://signed/u_1.pdf?token=t"}
    adapter = SupabaseStorageAdapter(client=client)

    url = await adapter.get_signed_url("resumes", "u_1.pdf", expires_in=60)

    assert url == "https://signed/u_1.pdf?token=t"
    files.create_signed_url.assert_called_once_with(path="u_1.pdf", expires_in=60)


@pytest.mark.asyncio
async def test_storage_errors_become_store_errors(bucket):
    client, files = bucket
    files.remove.side_effect = RuntimeError("bucket not found")
    adapter = SupabaseStorageAdapter(client=client)

    with pytest.raises(StoreError, match="bucket not found"):
        await adapter.remove_file("resumes", "u_1.pdf")
