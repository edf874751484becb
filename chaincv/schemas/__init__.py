from .resume import (
    REQUIRED_ANALYSIS_FIELDS,
    Analysis,
    AnalysisData,
    PollStatus,
    Resume,
    ResumeStatus,
    RetryResponse,
    StatusResponse,
    UploadResponse,
)

__all__ = [
    "REQUIRED_ANALYSIS_FIELDS",
    "Analysis",
    "AnalysisData",
    "PollStatus",
    "Resume",
    "ResumeStatus",
    "RetryResponse",
    "StatusResponse",
    "UploadResponse",
]
