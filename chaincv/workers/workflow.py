from __future__ import annotations

import logging
import uuid

from chaincv.store.lifecycle import LifecycleStore
from chaincv.workers.outcome import TaskInstance, TaskResult
from chaincv.workers.queue import LocalTaskQueue
from chaincv.workers.tasks import FETCH_FILE_PATH_TASK, PROCESS_RESUME_TASK, SUCCESS

logger = logging.getLogger(__name__)

RESUME_WORKFLOW_NAME = "resume_analysis"


class ResumeWorkflow:
    """Two-step resume workflow: ``fetch_file_path`` then ``process_resume``.

    The second step is enqueued only when the first reports a Success payload.
    A failed lookup or a crashed task ends the workflow and, when the resume is
    known, records the reason on it so that pollers reach a terminal state.
    """

    def __init__(self, queue: LocalTaskQueue, store: LifecycleStore):
        self._queue = queue
        self._store = store
        queue.subscribe(self.on_task_result)

    def start(self, *, resume_id: str | None = None, owner_key: str | None = None) -> str:
        workflow_id = f"{RESUME_WORKFLOW_NAME}-{uuid.uuid4().hex[:12]}"
        input_data = {"resumeId": resume_id, "ownerKey": owner_key}
        self._queue.enqueue(TaskInstance(FETCH_FILE_PATH_TASK, input_data, workflow_id=workflow_id))
        logger.info("workflow_started workflow=%s resume_id=%s owner_key=%s", workflow_id, resume_id, owner_key)
        return workflow_id

    def on_task_result(self, task: TaskInstance, result: TaskResult) -> None:
        if task.workflow_id is None:
            return

        resume_id = result.output_data.get("resumeId") or task.input_data.get("resumeId")
        if result.status == "FAILED":
            self._fail_resume(resume_id, f"Task {task.task_type} crashed: {result.reason_for_incompletion}")
            return

        if task.task_type == FETCH_FILE_PATH_TASK:
            if result.output_data.get("fetchStatus") == SUCCESS:
                self._queue.enqueue(
                    TaskInstance(
                        PROCESS_RESUME_TASK,
                        {
                            "filePath": result.output_data.get("filePath"),
                            "resumeId": result.output_data.get("resumeId"),
                        },
                        workflow_id=task.workflow_id,
                    )
                )
                return
            self._fail_resume(resume_id, result.output_data.get("error") or "Could not locate resume file")
            return

        logger.info(
            "workflow_finished workflow=%s resume_id=%s status=%s",
            task.workflow_id,
            resume_id,
            result.output_data.get("status"),
        )

    def _fail_resume(self, resume_id: str | None, reason: str) -> None:
        logger.warning("workflow_failed resume_id=%s: %s", resume_id, reason)
        if not resume_id:
            return
        try:
            self._store.mark_failed(resume_id, reason)
        except Exception as exc:  # noqa: BLE001 - best-effort status update
            logger.warning("workflow_mark_failed_failed resume_id=%s: %s", resume_id, exc)
