from abc import ABC, abstractmethod
from typing import Any

class UserPort(ABC):
    @abstractmethod
    async def get_user_profile(self, user_id: str) -> dict[str, Any] | None:
        """Fetch a user profile row by ID."""
        ...
