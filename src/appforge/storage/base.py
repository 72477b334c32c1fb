"""Storage interface for per-task round state."""

from __future__ import annotations

from typing import Protocol

from appforge.models import TaskState


class TaskStateStore(Protocol):
    def get(self, task_id: str) -> TaskState | None: ...

    def set(self, task_id: str, state: TaskState) -> None: ...
