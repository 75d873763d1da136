"""
Concrete implementation of DatabasePort using the Supabase Python client.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from app.domain.exceptions import BatchWriteError, ConstraintError, QueryError, StoreError
from app.domain.models import JobQuery
from app.ports.database_port import DatabasePort

logger = logging.getLogger(__name__)

INTERACTIONS_TABLE = "user_job_interactions"
JOBS_TABLE = "jobs"
RESUMES_TABLE = "resumes"
USERS_TABLE = "users"

# Unique constraint backing the one-row-per-(user, job) rule
INTERACTION_CONFLICT_TARGET = "user_id,job_id"

# Generated tsvector over job_title, description and short_summary
JOBS_SEARCH_COLUMN = "search_vector"

_OR_UNSAFE = str.maketrans("", "", ",()%*\"\\")


def sanitize_or_term(value: str) -> str:
    """Strip characters that would break a PostgREST `or=(...)` expression."""
    return value.translate(_OR_UNSAFE).strip()


def _execute(builder: Any, action: str, error_cls: type[StoreError] = QueryError) -> Any:
    """Run a PostgREST request, translating client errors into domain errors."""
    try:
        return builder.execute()
    except APIError as exc:
        logger.error("Supabase %s failed: %s (code=%s)", action, exc.message, exc.code)
        raise error_cls(
            f"{action} failed: {exc.message}", code=exc.code, details=exc.details
        ) from exc


class SupabaseAdapter(DatabasePort):
    """All database I/O goes through the Supabase REST client."""

    def __init__(self, client: Client) -> None:
        self._client = client

    # ── Users ─────────────────────────────────────────────────

    async def get_user_profile(self, user_id: str) -> dict[str, Any] | None:
        result = _execute(
            self._client.table(USERS_TABLE)
            .select("*")
            .eq("id", user_id)
            .maybe_single(),
            "get_user_profile",
        )
        return result.data if result else None

    # ── Jobs ──────────────────────────────────────────────────

    async def query_jobs(self, query: JobQuery) -> tuple[list[dict[str, Any]], int]:
        if query.search_term and not sanitize_or_term(query.search_term):
            # Nothing searchable left; dropping the term would return the whole catalog
            logger.debug("Search term %r is empty after sanitising", query.search_term)
            return [], 0

        if query.with_count:
            builder = self._client.table(JOBS_TABLE).select("*", count="exact")
        else:
            builder = self._client.table(JOBS_TABLE).select("*")

        builder = self._apply_job_query(builder, query)
        builder = builder.order("date_posted", desc=True).range(
            query.offset, query.offset + query.limit - 1
        )

        result = _execute(builder, "query_jobs")
        rows = result.data or []
        total = result.count if query.with_count and result.count is not None else len(rows)
        return rows, total

    async def get_job(self, job_id: str) -> dict[str, Any] | None:
        result = _execute(
            self._client.table(JOBS_TABLE)
            .select("*")
            .eq("job_id", job_id)
            .maybe_single(),
            "get_job",
        )
        return result.data if result else None

    async def list_distinct_values(self, column: str) -> list[Any]:
        # PostgREST has no DISTINCT; dedupe client-side preserving sort order
        result = _execute(
            self._client.table(JOBS_TABLE)
            .select(column)
            .not_.is_(column, "null")
            .order(column),
            f"list_distinct_values({column})",
        )
        values = [row[column] for row in (result.data or [])]
        return list(dict.fromkeys(values))

    @staticmethod
    def _apply_job_query(builder: Any, query: JobQuery) -> Any:
        """Translate a JobQuery into PostgREST filters (everything AND-ed)."""
        f = query.filters

        if f.location:
            builder = builder.ilike("job_location", f"%{f.location}%")
        if f.remote is not None:
            builder = builder.eq("remote", "true" if f.remote else "false")
        if f.industry:
            builder = builder.eq("industry", f.industry)
        if f.employment_type:
            builder = builder.eq("employment_type", f.employment_type)
        if f.experience:
            builder = builder.eq("experience", f.experience)
        if f.education:
            builder = builder.eq("education", f.education)
        if f.salary_min:
            builder = builder.gte("salary_min", f.salary_min)

        if query.exclude_job_ids:
            builder = builder.not_.in_("job_id", query.exclude_job_ids)

        if query.text_search:
            builder = builder.text_search(
                JOBS_SEARCH_COLUMN,
                query.text_search,
                options={"type": "websearch", "config": "english"},
            )

        or_groups: list[str] = []

        if query.search_term:
            term = sanitize_or_term(query.search_term)
            if term:
                or_groups.append(
                    f"job_title.ilike.*{term}*,"
                    f"company_name.ilike.*{term}*,"
                    f"description.ilike.*{term}*"
                )

        if query.profile_locations is not None:
            locations = [sanitize_or_term(loc) for loc in query.profile_locations]
            clauses = ["remote.eq.true"]
            clauses += [f"job_location.ilike.*{loc}*" for loc in locations if loc]
            if len(clauses) == 1:
                builder = builder.eq("remote", "true")
            else:
                or_groups.append(",".join(clauses))

        # Expired postings are never returned; a null expiry never expires
        or_groups.append(
            f"date_validthru.is.null,date_validthru.gte.{query.today.isoformat()}"
        )

        if len(or_groups) == 1:
            builder = builder.or_(or_groups[0])
        else:
            nested = ",".join(f"or({group})" for group in or_groups)
            builder = builder.or_(f"and({nested})")

        return builder

    # ── Interactions ──────────────────────────────────────────

    async def insert_interaction(self, data: dict[str, Any]) -> dict[str, Any]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE).insert(data),
            "insert_interaction",
            ConstraintError,
        )
        if not result.data:
            raise ConstraintError("insert_interaction returned no row")
        return result.data[0]

    async def insert_queue_batch(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        # One statement → one transaction: the batch commits or fails whole
        try:
            result = (
                self._client.table(INTERACTIONS_TABLE)
                .upsert(
                    rows,
                    on_conflict=INTERACTION_CONFLICT_TARGET,
                    ignore_duplicates=True,
                )
                .execute()
            )
        except APIError as exc:
            logger.error("Supabase insert_queue_batch failed: %s", exc.message)
            raise BatchWriteError(
                f"Queueing {len(rows)} jobs failed: {exc.message}",
                job_ids=[row["job_id"] for row in rows],
                code=exc.code,
                details=exc.details,
            ) from exc
        return result.data or []

    async def upsert_interaction(self, data: dict[str, Any]) -> dict[str, Any]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE).upsert(
                data, on_conflict=INTERACTION_CONFLICT_TARGET
            ),
            "upsert_interaction",
            ConstraintError,
        )
        if not result.data:
            raise ConstraintError("upsert_interaction returned no row")
        return result.data[0]

    async def find_interaction(
        self, user_id: str, job_id: str, interaction_type: str | None = None
    ) -> dict[str, Any] | None:
        builder = (
            self._client.table(INTERACTIONS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("job_id", job_id)
        )
        if interaction_type:
            builder = builder.eq("interaction_type", interaction_type)

        result = _execute(builder.maybe_single(), "find_interaction")
        return result.data if result else None

    async def list_interactions(
        self, user_id: str, interaction_type: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        builder = (
            self._client.table(INTERACTIONS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("interaction_type", interaction_type)
            .order("created_at", desc=True)
        )
        if limit:
            builder = builder.limit(limit)

        result = _execute(builder, "list_interactions")
        return result.data or []

    async def list_interactions_with_jobs(
        self, user_id: str, interaction_type: str, limit: int
    ) -> list[dict[str, Any]]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE)
            .select("*, jobs(*)")
            .eq("user_id", user_id)
            .eq("interaction_type", interaction_type)
            .order("created_at", desc=True)
            .limit(limit),
            "list_interactions_with_jobs",
        )
        return result.data or []

    async def delete_interactions(self, user_id: str, interaction_type: str) -> None:
        _execute(
            self._client.table(INTERACTIONS_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("interaction_type", interaction_type),
            "delete_interactions",
            ConstraintError,
        )

    async def list_interacted_job_ids(self, user_id: str) -> list[str]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE)
            .select("job_id")
            .eq("user_id", user_id),
            "list_interacted_job_ids",
        )
        return [row["job_id"] for row in (result.data or [])]

    async def list_interaction_types(self, user_id: str) -> list[str]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE)
            .select("interaction_type")
            .eq("user_id", user_id),
            "list_interaction_types",
        )
        return [row["interaction_type"] for row in (result.data or [])]

    async def list_expired_queued_ids(self, today: date) -> list[str]:
        result = _execute(
            self._client.table(INTERACTIONS_TABLE)
            .select("id, jobs!inner(date_validthru)")
            .eq("interaction_type", "queued")
            .lt("jobs.date_validthru", today.isoformat()),
            "list_expired_queued_ids",
        )
        return [row["id"] for row in (result.data or [])]

    async def set_interaction_type(self, interaction_ids: list[str], interaction_type: str) -> int:
        if not interaction_ids:
            return 0
        result = _execute(
            self._client.table(INTERACTIONS_TABLE)
            .update({
                "interaction_type": interaction_type,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .in_("id", interaction_ids),
            "set_interaction_type",
            ConstraintError,
        )
        return len(result.data or [])

    # ── Resumes ───────────────────────────────────────────────

    async def get_active_resume(self, user_id: str) -> dict[str, Any] | None:
        result = _execute(
            self._client.table(RESUMES_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", "true")
            .limit(1)
            .maybe_single(),
            "get_active_resume",
        )
        return result.data if result else None

    async def deactivate_resumes(self, user_id: str) -> None:
        _execute(
            self._client.table(RESUMES_TABLE)
            .update({"is_active": False})
            .eq("user_id", user_id)
            .eq("is_active", "true"),
            "deactivate_resumes",
            ConstraintError,
        )

    async def insert_resume(self, data: dict[str, Any]) -> dict[str, Any]:
        result = _execute(
            self._client.table(RESUMES_TABLE).insert(data),
            "insert_resume",
            ConstraintError,
        )
        if not result.data:
            raise ConstraintError("insert_resume returned no row")
        return result.data[0]

    async def delete_resume(self, resume_id: str) -> bool:
        result = _execute(
            self._client.table(RESUMES_TABLE).delete().eq("id", resume_id),
            "delete_resume",
            ConstraintError,
        )
        return bool(result.data)
