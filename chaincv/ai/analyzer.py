from __future__ import annotations

import logging
import time
from typing import Any

from chaincv.ai.prompt import build_analysis_prompt
from chaincv.ai.sanitizer import ResponseSanitizationError, sanitize_model_response
from chaincv.ai.types import ModelAdapter, ModelError

logger = logging.getLogger(__name__)


class AnalysisError(RuntimeError):
    def __init__(self, message: str, *, code: str = "analysis_failed"):
        super().__init__(message)
        self.code = code


def analyze_resume_text(resume_text: str, model: ModelAdapter, *, max_chars: int = 15000) -> dict[str, Any]:
    """Ask the model for feedback on ``resume_text`` and return the sanitized object.

    Model and sanitizer failures are re-raised as ``AnalysisError`` with the
    original reason kept in the message and the original ``code`` preserved.
    """
    if not resume_text:
        raise AnalysisError("Resume text is required for analysis", code="empty_input")

    started = time.perf_counter()
    prompt = build_analysis_prompt(resume_text, max_chars=max_chars)
    try:
        raw = model.generate(prompt)
        analysis = sanitize_model_response(raw)
    except (ModelError, ResponseSanitizationError) as exc:
        logger.warning(
            "resume_analysis_failed code=%s latency_ms=%s: %s",
            exc.code,
            int((time.perf_counter() - started) * 1000),
            exc,
        )
        raise AnalysisError(f"AI analysis failed: {exc}", code=exc.code) from exc

    logger.info(
        "resume_analysis_succeeded text_len=%s latency_ms=%s",
        len(resume_text),
        int((time.perf_counter() - started) * 1000),
    )
    return analysis
