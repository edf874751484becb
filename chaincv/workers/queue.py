from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Protocol, Sequence

from chaincv.workers.outcome import TaskInstance, TaskResult

logger = logging.getLogger(__name__)

ResultListener = Callable[[TaskInstance, TaskResult], None]


class TaskQueue(Protocol):
    def poll(self, task_types: Sequence[str], count: int) -> list[TaskInstance]: ...

    def requeue(self, task: TaskInstance) -> None: ...

    def report(self, task: TaskInstance, result: TaskResult) -> None: ...


class LocalTaskQueue:
    """In-process FIFO of ready task instances.

    ``poll`` hands out at most ``count`` tasks of the requested types in
    enqueue order. Reported results are kept per task id and fanned out to
    subscribers, which is how a workflow learns that a step has finished.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: deque[TaskInstance] = deque()
        self._in_progress: dict[str, TaskInstance] = {}
        self._results: dict[str, TaskResult] = {}
        self._listeners: list[ResultListener] = []

    def subscribe(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def enqueue(self, task: TaskInstance) -> TaskInstance:
        with self._lock:
            self._pending.append(task)
        logger.debug("task_enqueued type=%s id=%s workflow=%s", task.task_type, task.task_id, task.workflow_id)
        return task

    def requeue(self, task: TaskInstance) -> None:
        with self._lock:
            self._in_progress.pop(task.task_id, None)
            self._pending.append(task)

    def poll(self, task_types: Sequence[str], count: int) -> list[TaskInstance]:
        if count <= 0:
            return []
        wanted = set(task_types)
        taken: list[TaskInstance] = []
        with self._lock:
            kept: deque[TaskInstance] = deque()
            while self._pending:
                task = self._pending.popleft()
                if len(taken) < count and task.task_type in wanted:
                    taken.append(task)
                    self._in_progress[task.task_id] = task
                else:
                    kept.append(task)
            self._pending = kept
        return taken

    def report(self, task: TaskInstance, result: TaskResult) -> None:
        with self._lock:
            self._in_progress.pop(task.task_id, None)
            self._results[task.task_id] = result
        for listener in list(self._listeners):
            listener(task, result)

    def result_for(self, task_id: str) -> TaskResult | None:
        with self._lock:
            return self._results.get(task_id)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def in_progress_count(self) -> int:
        with self._lock:
            return len(self._in_progress)
