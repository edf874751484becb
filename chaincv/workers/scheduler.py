from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Sequence

from chaincv.workers.outcome import Crashed, DomainFailure, Outcome, Success, TaskInstance, TaskResult, TaskWorker
from chaincv.workers.queue import TaskQueue

logger = logging.getLogger(__name__)


class WorkerPool:
    """Poll a task queue and run ready tasks in a bounded set of slots.

    Executors are synchronous and block on I/O, so each slot runs its executor
    in a worker thread. A poll only asks for as many tasks as there are free
    slots; when every slot is busy the pool waits for the next interval.
    Tasks for a resume that already has a task in flight are put back on the
    queue instead of being dispatched.
    """

    def __init__(
        self,
        queue: TaskQueue,
        workers: Sequence[TaskWorker],
        *,
        concurrency: int = 5,
        poll_interval_s: float = 0.1,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._queue = queue
        self._executors = {worker.task_def_name: worker.execute for worker in workers}
        self._concurrency = concurrency
        self._poll_interval_s = poll_interval_s
        self._slots: set[asyncio.Task] = set()
        self._inflight_resumes: set[str] = set()
        self._stop_event = asyncio.Event()
        self._loop_task: asyncio.Task | None = None

    @property
    def task_types(self) -> list[str]:
        return list(self._executors)

    @property
    def busy_slots(self) -> int:
        return len(self._slots)

    @property
    def free_slots(self) -> int:
        return max(0, self._concurrency - len(self._slots))

    async def tick(self) -> int:
        """Run one poll round and return how many tasks were dispatched."""
        free = self.free_slots
        if free == 0:
            return 0

        dispatched = 0
        for task in self._queue.poll(self.task_types, free):
            resume_id = task.input_data.get("resumeId")
            if resume_id and resume_id in self._inflight_resumes:
                logger.info("task_deferred type=%s id=%s resume_id=%s", task.task_type, task.task_id, resume_id)
                self._queue.requeue(task)
                continue
            self._dispatch(task)
            dispatched += 1
        return dispatched

    def _dispatch(self, task: TaskInstance) -> None:
        resume_id = task.input_data.get("resumeId")
        if resume_id:
            self._inflight_resumes.add(resume_id)
        slot = asyncio.create_task(self._run_task(task), name=f"{task.task_type}:{task.task_id}")
        self._slots.add(slot)
        slot.add_done_callback(self._slots.discard)

    async def _run_task(self, task: TaskInstance) -> None:
        try:
            outcome = await self._execute(task)
        finally:
            resume_id = task.input_data.get("resumeId")
            if resume_id:
                self._inflight_resumes.discard(resume_id)

        result = TaskResult.from_outcome(task, outcome)
        logger.info(
            "task_finished type=%s id=%s status=%s outcome=%s",
            task.task_type,
            task.task_id,
            result.status,
            type(outcome).__name__,
        )
        try:
            self._queue.report(task, result)
        except Exception:  # noqa: BLE001 - a failing listener must not take the pool down
            logger.exception("task_report_failed type=%s id=%s", task.task_type, task.task_id)

    async def _execute(self, task: TaskInstance) -> Outcome | Crashed:
        execute = self._executors.get(task.task_type)
        if execute is None:
            return Crashed(error=f"No executor registered for task type '{task.task_type}'")

        try:
            outcome = await asyncio.to_thread(execute, dict(task.input_data))
        except Exception as exc:  # noqa: BLE001 - defects become a FAILED task, not a dead pool
            logger.exception("task_crashed type=%s id=%s", task.task_type, task.task_id)
            return Crashed(error=f"{type(exc).__name__}: {exc}")

        if not isinstance(outcome, (Success, DomainFailure)):
            return Crashed(error=f"Executor returned {type(outcome).__name__} instead of an outcome")
        return outcome

    async def drain(self) -> None:
        if self._slots:
            await asyncio.gather(*list(self._slots), return_exceptions=True)

    async def run(self) -> None:
        logger.info(
            "worker_pool_started task_types=%s concurrency=%s poll_interval_s=%s",
            self.task_types,
            self._concurrency,
            self._poll_interval_s,
        )
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as exc:  # pragma: no cover - defensive guard
                logger.warning("worker_pool_poll_failed: %s", exc)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poll_interval_s)
            except asyncio.TimeoutError:
                continue
        await self.drain()
        logger.info("worker_pool_stopped")

    def start(self) -> asyncio.Task:
        self._stop_event.clear()
        self._loop_task = asyncio.create_task(self.run(), name="worker-pool")
        return self._loop_task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._loop_task is None:
            await self.drain()
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._loop_task
        self._loop_task = None
