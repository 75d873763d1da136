"""
Domain error taxonomy.

Adapters translate client-library failures into these types so services
and the HTTP layer never depend on postgrest / storage exception classes.
"""

from typing import Any


class StoreError(Exception):
    """A call against the hosted data store failed."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code={self.code})"
        return self.message


class ConstraintError(StoreError):
    """A single-row write was rejected by the store."""


class BatchWriteError(StoreError):
    """A bulk queue write failed; none of the batch was committed."""

    def __init__(
        self,
        message: str,
        job_ids: list[str] | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.job_ids = list(job_ids or [])


class QueryError(StoreError):
    """A read against the store failed."""


class ResumeUploadError(Exception):
    """Resume validation or storage failed. The message is user-facing."""
