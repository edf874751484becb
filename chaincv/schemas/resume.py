from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

REQUIRED_ANALYSIS_FIELDS = ("summary", "strengths", "areasForImprovement", "overallScore")

PollStatus = Literal["PENDING", "COMPLETED", "FAILED"]


class ResumeStatus(str, Enum):
    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {ResumeStatus.COMPLETED, ResumeStatus.FAILED}


class Resume(BaseModel):
    id: str
    original_name: str
    file_path: str
    owner_key: str | None = None
    status: ResumeStatus = ResumeStatus.UPLOADED
    error: str | None = None
    upload_date: datetime
    completed_at: datetime | None = None
    failed_at: datetime | None = None


class AnalysisData(BaseModel):
    """Typed view of the model's feedback object, keyed the way it is stored."""

    summary: str
    strengths: list[str] = Field(default_factory=list)
    areasForImprovement: list[str] = Field(default_factory=list)
    overallScore: int = Field(ge=0, le=100)


class Analysis(BaseModel):
    id: int
    resume_id: str
    analysis_data: dict[str, Any]
    created_at: datetime


class UploadResponse(BaseModel):
    id: str
    filename: str
    status: ResumeStatus
    workflow_id: str


class StatusResponse(BaseModel):
    status: PollStatus
    data: dict[str, Any] | None = None
    message: str | None = None


class RetryResponse(BaseModel):
    id: str
    status: ResumeStatus
    workflow_id: str
