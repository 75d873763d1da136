from abc import ABC, abstractmethod
from typing import Any


class ResumePort(ABC):
    """Persistence for the `resumes` table (one active row per user)."""

    @abstractmethod
    async def get_active_resume(self, user_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def deactivate_resumes(self, user_id: str) -> None:
        """Mark every active resume of the user inactive."""
        ...

    @abstractmethod
    async def insert_resume(self, data: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_resume(self, resume_id: str) -> bool:
        """Delete a resume row. Returns False when nothing was deleted."""
        ...
