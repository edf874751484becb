from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Union

TaskStatus = Literal["COMPLETED", "FAILED"]

_task_ids = itertools.count(1)


@dataclass(frozen=True)
class Success:
    payload: dict[str, Any]


@dataclass(frozen=True)
class DomainFailure:
    """An expected failure mode; the task still completes, carrying the reason."""

    payload: dict[str, Any]
    reason: str


@dataclass(frozen=True)
class Crashed:
    """An executor raised instead of returning; only the scheduler produces this."""

    error: str


Outcome = Union[Success, DomainFailure]


@dataclass(frozen=True)
class TaskInstance:
    task_type: str
    input_data: dict[str, Any]
    workflow_id: str | None = None
    task_id: str = field(default_factory=lambda: f"task-{next(_task_ids)}")


@dataclass(frozen=True)
class TaskResult:
    task_id: str
    status: TaskStatus
    output_data: dict[str, Any] = field(default_factory=dict)
    reason_for_incompletion: str | None = None

    @classmethod
    def from_outcome(cls, task: TaskInstance, outcome: Outcome | Crashed) -> "TaskResult":
        if isinstance(outcome, Crashed):
            return cls(task_id=task.task_id, status="FAILED", reason_for_incompletion=outcome.error)
        return cls(task_id=task.task_id, status="COMPLETED", output_data=dict(outcome.payload))


@dataclass(frozen=True)
class TaskWorker:
    task_def_name: str
    execute: Callable[[dict[str, Any]], Outcome]
