from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable

from chaincv.ai.analyzer import AnalysisError, analyze_resume_text
from chaincv.ai.types import ModelAdapter
from chaincv.parsing.parse import ExtractionError, extract_text_from_path
from chaincv.store.lifecycle import LifecycleStore, StoreError
from chaincv.workers.outcome import DomainFailure, Outcome, Success, TaskWorker

logger = logging.getLogger(__name__)

FETCH_FILE_PATH_TASK = "fetch_file_path"
PROCESS_RESUME_TASK = "process_resume"

SUCCESS = "Success"
FAILURE = "Failure"


class ProcessingError(RuntimeError):
    """A named step of resume processing could not be completed."""


def fetch_file_path(input_data: dict[str, Any], *, store: LifecycleStore) -> Outcome:
    logger.info(json.dumps({"event": "task_started", "task": FETCH_FILE_PATH_TASK, "input": input_data}))
    resume_id = input_data.get("resumeId")
    owner_key = input_data.get("ownerKey")

    try:
        if not resume_id and not owner_key:
            raise ProcessingError("resumeId or ownerKey is required to fetch file path")

        resume = store.get_resume(resume_id) if resume_id else store.find_resume_by_owner(owner_key)
        if resume is None or not resume.file_path:
            raise ProcessingError(
                f"No resume found or filePath missing for resumeId: {resume_id} or ownerKey: {owner_key}"
            )
    except (ProcessingError, StoreError) as exc:
        logger.warning("fetch_file_path_failed resume_id=%s owner_key=%s: %s", resume_id, owner_key, exc)
        return DomainFailure(
            payload={
                "filePath": None,
                "resumeId": resume_id,
                "fetchStatus": FAILURE,
                "error": str(exc),
            },
            reason=str(exc),
        )

    return Success(
        payload={
            "filePath": resume.file_path,
            "resumeId": resume.id,
            "fetchStatus": SUCCESS,
        }
    )


def _read_resume_text(file_path: str | None) -> str:
    if not file_path or not os.path.exists(file_path):
        raise ProcessingError(f"File not found at path: {file_path}")

    text = extract_text_from_path(file_path).strip()
    if not text:
        raise ProcessingError("Text extraction returned empty content")
    return text


def process_resume(
    input_data: dict[str, Any],
    *,
    store: LifecycleStore,
    model: ModelAdapter,
    max_chars: int = 15000,
) -> Outcome:
    logger.info(json.dumps({"event": "task_started", "task": PROCESS_RESUME_TASK, "input": input_data}))
    file_path = input_data.get("filePath")
    resume_id = input_data.get("resumeId")

    try:
        store.mark_processing(resume_id)
    except StoreError as exc:
        logger.warning("mark_processing_failed resume_id=%s: %s", resume_id, exc)

    try:
        text = _read_resume_text(file_path)
        logger.info("text_extraction_succeeded resume_id=%s chars=%s", resume_id, len(text))
        analysis = analyze_resume_text(text, model, max_chars=max_chars)
        store.complete_with_analysis(resume_id, analysis)
    except (ProcessingError, ExtractionError, AnalysisError, StoreError) as exc:
        logger.error("resume_processing_failed resume_id=%s: %s", resume_id, exc)
        try:
            store.mark_failed(resume_id, str(exc))
        except Exception as update_exc:  # noqa: BLE001 - must not mask the original reason
            logger.warning("mark_failed_update_failed resume_id=%s: %s", resume_id, update_exc)
        return DomainFailure(
            payload={
                "status": FAILURE,
                "message": f"Resume processing failed: {exc}",
                "resumeId": resume_id,
            },
            reason=str(exc),
        )

    logger.info(json.dumps({"event": "task_succeeded", "task": PROCESS_RESUME_TASK, "resumeId": resume_id}))
    return Success(
        payload={
            "status": SUCCESS,
            "message": "Resume processed and saved successfully",
            "resumeId": resume_id,
        }
    )


def build_task_workers(
    store: LifecycleStore,
    model: ModelAdapter,
    *,
    max_chars: int = 15000,
) -> list[TaskWorker]:
    def _fetch(input_data: dict[str, Any]) -> Outcome:
        return fetch_file_path(input_data, store=store)

    def _process(input_data: dict[str, Any]) -> Outcome:
        return process_resume(input_data, store=store, model=model, max_chars=max_chars)

    executors: dict[str, Callable[[dict[str, Any]], Outcome]] = {
        FETCH_FILE_PATH_TASK: _fetch,
        PROCESS_RESUME_TASK: _process,
    }
    return [TaskWorker(task_def_name=name, execute=execute) for name, execute in executors.items()]
