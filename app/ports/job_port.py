from abc import ABC, abstractmethod
from typing import Any

from app.domain.models import JobQuery


class JobPort(ABC):
    @abstractmethod
    async def query_jobs(self, query: JobQuery) -> tuple[list[dict[str, Any]], int]:
        """
        Run a filtered, ordered, paginated read against the jobs table.
        Returns (rows, total_count); total_count is the exact match count
        when `query.with_count` is set, else the number of rows returned.
        """
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> dict[str, Any] | None:
        """Fetch a single job by ID."""
        ...

    @abstractmethod
    async def list_distinct_values(self, column: str) -> list[Any]:
        """Distinct non-null values of one jobs column, sorted."""
        ...
