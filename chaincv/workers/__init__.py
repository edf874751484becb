from .outcome import Crashed, DomainFailure, Outcome, Success, TaskInstance, TaskResult, TaskWorker
from .queue import LocalTaskQueue, TaskQueue
from .scheduler import WorkerPool
from .tasks import FETCH_FILE_PATH_TASK, PROCESS_RESUME_TASK, build_task_workers
from .workflow import ResumeWorkflow

__all__ = [
    "Crashed",
    "DomainFailure",
    "Outcome",
    "Success",
    "TaskInstance",
    "TaskResult",
    "TaskWorker",
    "LocalTaskQueue",
    "TaskQueue",
    "WorkerPool",
    "FETCH_FILE_PATH_TASK",
    "PROCESS_RESUME_TASK",
    "build_task_workers",
    "ResumeWorkflow",
]
