"""
Resume service: upload, record keeping, and processing hand-off.
Depends on ports only (Dependency Inversion).

The parser runs in a separate HTTP service; this layer only notifies it
(fire-and-forget) and can poll its status endpoint.
"""

import asyncio
import io
import logging
import time
from typing import Any
from urllib.parse import unquote, urlparse

import requests
from pypdf import PdfReader

from app.domain.enums import ResumeProcessingStatus
from app.domain.exceptions import ResumeUploadError
from app.domain.models import ResumeRecord, ResumeStatus, ResumeUploadResult
from app.ports.resume_port import ResumePort
from app.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

RESUME_BUCKET = "resumes"
PDF_CONTENT_TYPE = "application/pdf"


def storage_path_from_url(file_url: str) -> str:
    """
    Recover the object name from a signed URL
    (…/object/sign/resumes/<name>?token=… → <name>).
    """
    path = urlparse(file_url).path
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


class ResumeService:
    """Stores one active PDF resume per user and hands it to the parser."""

    def __init__(
        self,
        db: ResumePort,
        storage: StoragePort,
        processing_base_url: str,
        bucket: str = RESUME_BUCKET,
        max_bytes: int = 10 * 1024 * 1024,
        signed_url_ttl: int = 31536000,
        http_timeout: float = 10.0,
    ) -> None:
        self._db = db
        self._storage = storage
        self._base_url = processing_base_url.rstrip("/")
        self._bucket = bucket
        self._max_bytes = max_bytes
        self._signed_url_ttl = signed_url_ttl
        self._timeout = http_timeout

    async def upload_resume(
        self,
        user_id: str,
        file_name: str,
        file_bytes: bytes,
        content_type: str | None,
    ) -> ResumeUploadResult:
        """
        Full upload pipeline:
        1. Validate (PDF, size, readable)
        2. Upload to storage under a fresh, timestamped name
        3. Sign a long-lived URL for the parser
        4. Deactivate old records and insert the new active one
        5. Delete the previous record and its file

        A failure after step 2 removes the uploaded object again.
        """
        await self.validate(file_name, file_bytes, content_type)

        storage_path = f"{user_id}_{int(time.time() * 1000)}.pdf"
        previous = await self._db.get_active_resume(user_id)

        try:
            await self._storage.upload_file(
                bucket=self._bucket,
                path=storage_path,
                file_bytes=file_bytes,
                content_type=PDF_CONTENT_TYPE,
                upsert=False,
            )
        except Exception as exc:
            logger.error("Resume upload failed for user %s: %s", user_id, exc)
            raise ResumeUploadError(f"Upload failed: {exc}") from exc

        try:
            resume_url = await self._storage.get_signed_url(
                bucket=self._bucket,
                path=storage_path,
                expires_in=self._signed_url_ttl,
            )
            await self._db.deactivate_resumes(user_id)
            record = await self._db.insert_resume({
                "user_id": user_id,
                "file_url": resume_url,
                "is_active": True,
            })
        except Exception as exc:
            logger.error("Saving resume for user %s failed: %s", user_id, exc)
            await self._remove_object(storage_path)
            raise ResumeUploadError(f"Database error: {exc}") from exc

        if previous:
            await self._delete_previous(previous)

        logger.info("Resume stored for user %s at %s", user_id, storage_path)
        return ResumeUploadResult(
            resume_url=resume_url,
            storage_path=storage_path,
            record_id=str(record["id"]),
        )

    async def validate(
        self, file_name: str, file_bytes: bytes, content_type: str | None
    ) -> None:
        if not file_bytes:
            raise ResumeUploadError("No file selected")

        is_pdf_type = (content_type or "").split(";")[0].strip() == PDF_CONTENT_TYPE
        if not is_pdf_type and not (file_name or "").lower().endswith(".pdf"):
            raise ResumeUploadError("Please select a PDF file")

        if len(file_bytes) > self._max_bytes:
            limit_mb = self._max_bytes // (1024 * 1024)
            raise ResumeUploadError(f"File size must be less than {limit_mb}MB")

        # Parsing is CPU-bound; keep it off the event loop
        pages = await asyncio.to_thread(self._count_pages, file_bytes)
        if pages < 1:
            raise ResumeUploadError("The PDF has no pages")

    async def get_active_resume(self, user_id: str) -> ResumeRecord | None:
        row = await self._db.get_active_resume(user_id)
        return ResumeRecord(**row) if row else None

    def trigger_processing(self, user_id: str, resume_url: str) -> bool:
        """
        Tell the parser a new resume is ready. Fire-and-forget: failures
        are logged and reported as False, never raised.
        """
        try:
            response = requests.post(
                f"{self._base_url}/api/v1/resume/process",
                params={"user_id": user_id, "resume_url": resume_url},
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("Error triggering resume processing for %s: %s", user_id, exc)
            return False

        if not response.ok:
            logger.error(
                "Failed to start resume processing for %s: HTTP %s",
                user_id, response.status_code,
            )
            return False

        logger.info("Resume processing started for user %s", user_id)
        return True

    async def get_processing_status(self, user_id: str) -> ResumeStatus:
        """Poll the parser's status endpoint once."""
        try:
            response = await asyncio.to_thread(
                requests.get,
                f"{self._base_url}/api/v1/resume/status/{user_id}",
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload: dict[str, Any] = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Checking resume status for %s failed: %s", user_id, exc)
            return ResumeStatus(
                user_id=user_id,
                status=ResumeProcessingStatus.UNKNOWN,
                detail=str(exc),
            )

        raw = str(payload.get("status", "")).lower()
        try:
            status = ResumeProcessingStatus(raw)
        except ValueError:
            status = ResumeProcessingStatus.UNKNOWN
        return ResumeStatus(user_id=user_id, status=status, detail=payload.get("message"))

    async def _delete_previous(self, previous: dict[str, Any]) -> None:
        """Best-effort cleanup; the new resume is already live."""
        try:
            deleted = await self._db.delete_resume(str(previous["id"]))
        except Exception:
            logger.exception("Deleting old resume record %s failed", previous.get("id"))
            return

        if not deleted:
            # Row still exists (e.g. RLS); keep its file so the record stays valid
            logger.error("No resume record deleted for id %s", previous.get("id"))
            return

        await self._remove_object(storage_path_from_url(previous["file_url"]))

    async def _remove_object(self, path: str) -> None:
        try:
            await self._storage.remove_file(self._bucket, path)
        except Exception:
            logger.exception("Removing resume object %s failed", path)

    @staticmethod
    def _count_pages(file_bytes: bytes) -> int:
        try:
            reader = PdfReader(io.BytesIO(file_bytes))
            return len(reader.pages)
        except Exception as exc:
            raise ResumeUploadError("The file is not a readable PDF") from exc
