import logging

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status

from chaincv.core.rate_limit import limiter, upload_rate_limit
from chaincv.schemas.resume import Analysis, ResumeStatus, RetryResponse, StatusResponse, UploadResponse
from chaincv.services.ingestor import UploadRejected, ingest_resume, retry_resume
from chaincv.services.pipeline import Pipeline
from chaincv.store.lifecycle import StoreError

logger = logging.getLogger(__name__)

router = APIRouter()


def _pipeline(request: Request) -> Pipeline:
    return request.app.state.pipeline


@router.post("/resumes/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(upload_rate_limit)
async def upload_resume(
    request: Request,
    resume: UploadFile | None = File(default=None),
    owner_key: str | None = Form(default=None),
):
    if resume is None or not resume.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    content = await resume.read()
    await resume.close()
    try:
        record, workflow_id = ingest_resume(
            _pipeline(request),
            filename=resume.filename,
            content=content,
            owner_key=owner_key,
        )
    except UploadRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return UploadResponse(
        id=record.id,
        filename=record.original_name,
        status=record.status,
        workflow_id=workflow_id,
    )


@router.get("/resumes/{resume_id}/status", response_model=StatusResponse, response_model_exclude_none=True)
async def resume_status(request: Request, resume_id: str):
    store = _pipeline(request).store
    resume = store.get_resume(resume_id)
    if resume is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")

    if resume.status == ResumeStatus.COMPLETED:
        analysis = store.get_latest_analysis(resume_id)
        if analysis is None:
            logger.error("completed_resume_without_analysis resume_id=%s", resume_id)
            return StatusResponse(status="PENDING")
        return StatusResponse(status="COMPLETED", data=analysis.analysis_data)

    if resume.status == ResumeStatus.FAILED:
        return StatusResponse(status="FAILED", message=resume.error or "Resume processing failed")

    return StatusResponse(status="PENDING")


@router.get("/resumes/{resume_id}/analysis", response_model=Analysis)
async def resume_analysis(request: Request, resume_id: str):
    analysis = _pipeline(request).store.get_latest_analysis(resume_id)
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return analysis


@router.post("/resumes/{resume_id}/retry", response_model=RetryResponse)
async def resume_retry(request: Request, resume_id: str):
    pipeline = _pipeline(request)
    if pipeline.store.get_resume(resume_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resume not found")
    try:
        resume, workflow_id = retry_resume(pipeline, resume_id)
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return RetryResponse(id=resume.id, status=resume.status, workflow_id=workflow_id)
