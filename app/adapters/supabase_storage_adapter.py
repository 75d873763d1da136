"""
Concrete implementation of StoragePort using Supabase Storage.
"""

import logging

from supabase import Client

from app.domain.exceptions import StoreError
from app.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


class SupabaseStorageAdapter(StoragePort):
    """Bucket I/O through the storage client; failures surface as StoreError."""

    def __init__(self, client: Client) -> None:
        self._client = client

    async def upload_file(
        self,
        bucket: str,
        path: str,
        file_bytes: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        try:
            self._client.storage.from_(bucket).upload(
                path=path,
                file=file_bytes,
                file_options={
                    "content-type": content_type,
                    # storage3 sends file options as headers, so strings only
                    "upsert": "true" if upsert else "false",
                },
            )
        except Exception as exc:
            logger.error("Storage upload %s/%s failed: %s", bucket, path, exc)
            raise StoreError(f"upload failed: {exc}") from exc
        return path

    async def get_signed_url(
        self, bucket: str, path: str, expires_in: int = 3600
    ) -> str:
        try:
            result = self._client.storage.from_(bucket).create_signed_url(
                path=path,
                expires_in=expires_in,
            )
        except Exception as exc:
            logger.error("Signing %s/%s failed: %s", bucket, path, exc)
            raise StoreError(f"signing failed: {exc}") from exc

        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StoreError(f"no signed URL returned for {bucket}/{path}")
        return url

    async def remove_file(self, bucket: str, path: str) -> None:
        try:
            self._client.storage.from_(bucket).remove([path])
        except Exception as exc:
            logger.error("Removing %s/%s failed: %s", bucket, path, exc)
            raise StoreError(f"remove failed: {exc}") from exc
