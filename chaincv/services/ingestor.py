from __future__ import annotations

import logging
import uuid
from pathlib import Path

from chaincv.schemas.resume import Resume
from chaincv.services.pipeline import Pipeline

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".docx", ".txt"}


class UploadRejected(ValueError):
    pass


def validate_upload(filename: str, content: bytes, *, max_bytes: int) -> str:
    extension = Path(filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UploadRejected(f"Unsupported file type '{extension or filename}'. Upload a PDF, DOCX or TXT file.")
    if not content:
        raise UploadRejected("Uploaded file is empty.")
    if len(content) > max_bytes:
        raise UploadRejected(f"File too large (max {max_bytes // (1024 * 1024)}MB).")
    return extension


def ingest_resume(
    pipeline: Pipeline,
    *,
    filename: str,
    content: bytes,
    owner_key: str | None = None,
) -> tuple[Resume, str]:
    """Store the upload, create the UPLOADED record and start the analysis workflow."""
    extension = validate_upload(filename, content, max_bytes=pipeline.settings.max_upload_bytes)

    upload_dir = Path(pipeline.settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{uuid.uuid4().hex}{extension}"
    file_path.write_bytes(content)

    safe_name = Path(filename).name
    resume = pipeline.store.create_resume(original_name=safe_name, file_path=str(file_path), owner_key=owner_key)
    workflow_id = pipeline.workflow.start(resume_id=resume.id)
    logger.info("resume_ingested resume_id=%s name=%s bytes=%s", resume.id, safe_name, len(content))
    return resume, workflow_id


def retry_resume(pipeline: Pipeline, resume_id: str) -> tuple[Resume, str]:
    resume = pipeline.store.reset_for_retry(resume_id)
    workflow_id = pipeline.workflow.start(resume_id=resume.id)
    logger.info("resume_retry_started resume_id=%s workflow=%s", resume.id, workflow_id)
    return resume, workflow_id
