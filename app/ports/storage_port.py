"""
Abstract interface for object storage (resume PDFs).
"""

from abc import ABC, abstractmethod


class StoragePort(ABC):
    """Port for the bucket that holds uploaded resumes."""

    @abstractmethod
    async def upload_file(
        self,
        bucket: str,
        path: str,
        file_bytes: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """
        Store `file_bytes` at `bucket/path` and return the path.
        With `upsert=False` an existing object at that path is an error.
        """
        ...

    @abstractmethod
    async def get_signed_url(
        self, bucket: str, path: str, expires_in: int = 3600
    ) -> str:
        """A URL that grants read access to a private object for `expires_in` seconds."""
        ...

    @abstractmethod
    async def remove_file(self, bucket: str, path: str) -> None:
        """Delete an object. Missing objects are not an error."""
        ...
