"""Task state storage backends."""

from appforge.storage.base import TaskStateStore
from appforge.storage.memory import InMemoryTaskStateStore

__all__ = [
    "InMemoryTaskStateStore",
    "TaskStateStore",
]
