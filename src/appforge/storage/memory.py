"""Process-local task state store."""

from __future__ import annotations

import threading

from appforge.models import TaskState


class InMemoryTaskStateStore:
    """Thread-safe dict of task id to the latest successful round.

    Entries live for the lifetime of the process. Reads and writes hand out
    copies so a caller holding a TaskState cannot change what is stored.
    """

    def __init__(self) -> None:
        self._states: dict[str, TaskState] = {}
        # Lock guards the dict across concurrent round pipelines.
        self._lock = threading.Lock()

    def get(self, task_id: str) -> TaskState | None:
        with self._lock:
            state = self._states.get(task_id)
        return state.model_copy(deep=True) if state else None

    def set(self, task_id: str, state: TaskState) -> None:
        with self._lock:
            self._states[task_id] = state.model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
