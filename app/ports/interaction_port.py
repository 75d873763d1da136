from abc import ABC, abstractmethod
from datetime import date
from typing import Any


class InteractionPort(ABC):
    """
    Persistence for `user_job_interactions`.
    The table carries a unique constraint on (user_id, job_id).
    """

    @abstractmethod
    async def insert_interaction(self, data: dict[str, Any]) -> dict[str, Any]:
        """Insert one interaction row and return it."""
        ...

    @abstractmethod
    async def insert_queue_batch(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Insert many rows in one statement, skipping (user_id, job_id) pairs
        that already exist. Returns only the rows actually inserted.
        """
        ...

    @abstractmethod
    async def upsert_interaction(self, data: dict[str, Any]) -> dict[str, Any]:
        """Insert, or update the existing row for the same (user_id, job_id)."""
        ...

    @abstractmethod
    async def find_interaction(
        self, user_id: str, job_id: str, interaction_type: str | None = None
    ) -> dict[str, Any] | None:
        """Fetch the interaction for a (user, job) pair, or None."""
        ...

    @abstractmethod
    async def list_interactions(
        self, user_id: str, interaction_type: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Interactions of one kind for a user, newest first."""
        ...

    @abstractmethod
    async def list_interactions_with_jobs(
        self, user_id: str, interaction_type: str, limit: int
    ) -> list[dict[str, Any]]:
        """Interactions of one kind with the job row embedded under `jobs`."""
        ...

    @abstractmethod
    async def delete_interactions(self, user_id: str, interaction_type: str) -> None:
        """Delete every interaction of one kind for a user."""
        ...

    @abstractmethod
    async def list_interacted_job_ids(self, user_id: str) -> list[str]:
        """IDs of every job the user has any interaction with."""
        ...

    @abstractmethod
    async def list_interaction_types(self, user_id: str) -> list[str]:
        """The interaction_type of every row the user owns."""
        ...

    @abstractmethod
    async def list_expired_queued_ids(self, today: date) -> list[str]:
        """IDs of queued interactions whose job expired before `today`."""
        ...

    @abstractmethod
    async def set_interaction_type(self, interaction_ids: list[str], interaction_type: str) -> int:
        """Bulk-transition rows by primary key. Returns the number updated."""
        ...
