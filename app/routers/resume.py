"""
Resume endpoints: thin HTTP layer, delegates all logic to ResumeService.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, UploadFile, status

from app.dependencies import get_resume_service
from app.domain.exceptions import ResumeUploadError
from app.domain.models import ResumeRecord, ResumeStatus, ResumeUploadResult, UserProfile
from app.services.auth_service import get_current_user
from app.services.resume_service import ResumeService

router = APIRouter(prefix="/resume", tags=["Resume"])


@router.post("", response_model=ResumeUploadResult, status_code=status.HTTP_201_CREATED)
async def upload_resume(
    file: UploadFile,
    background_tasks: BackgroundTasks,
    current_user: UserProfile = Depends(get_current_user),
    svc: ResumeService = Depends(get_resume_service),
):
    """
    Upload a PDF resume → store → record as active.
    Parsing is triggered in the background and never delays the response.
    """
    file_bytes = await file.read()

    try:
        result = await svc.upload_resume(
            user_id=current_user.id,
            file_name=file.filename or "",
            file_bytes=file_bytes,
            content_type=file.content_type,
        )
    except ResumeUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )

    background_tasks.add_task(svc.trigger_processing, current_user.id, result.resume_url)
    return result


@router.get("", response_model=ResumeRecord)
async def get_resume(
    current_user: UserProfile = Depends(get_current_user),
    svc: ResumeService = Depends(get_resume_service),
):
    record = await svc.get_active_resume(current_user.id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No resume found. Upload one via POST /resume first.",
        )
    return record


@router.get("/status", response_model=ResumeStatus)
async def resume_status(
    current_user: UserProfile = Depends(get_current_user),
    svc: ResumeService = Depends(get_resume_service),
):
    """Processing state as reported by the resume parser."""
    return await svc.get_processing_status(current_user.id)
