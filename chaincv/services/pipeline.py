from __future__ import annotations

from dataclasses import dataclass

from chaincv.ai.factory import get_model_adapter
from chaincv.ai.types import ModelAdapter
from chaincv.core.config import Settings
from chaincv.store.lifecycle import LifecycleStore
from chaincv.workers.queue import LocalTaskQueue
from chaincv.workers.scheduler import WorkerPool
from chaincv.workers.tasks import build_task_workers
from chaincv.workers.workflow import ResumeWorkflow


@dataclass
class Pipeline:
    settings: Settings
    store: LifecycleStore
    queue: LocalTaskQueue
    workflow: ResumeWorkflow
    pool: WorkerPool


def build_pipeline(settings: Settings, *, model: ModelAdapter | None = None) -> Pipeline:
    store = LifecycleStore(settings.lifecycle_db_path)
    queue = LocalTaskQueue()
    workflow = ResumeWorkflow(queue, store)
    workers = build_task_workers(
        store,
        model or get_model_adapter(settings),
        max_chars=settings.resume_text_max_chars,
    )
    pool = WorkerPool(
        queue,
        workers,
        concurrency=settings.worker_concurrency,
        poll_interval_s=settings.worker_poll_interval_s,
    )
    return Pipeline(settings=settings, store=store, queue=queue, workflow=workflow, pool=pool)
