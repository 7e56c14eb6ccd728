"""
Priority Task Queue
===================

Tasks waiting to run, highest priority first. Equal priorities run in
creation order; an insertion sequence breaks exact timestamp ties so
tasks themselves are never compared.
"""

import bisect
import itertools
import logging
from typing import Iterator, List, Optional, Tuple

from quarry.core.task import Task, TaskPriority

logger = logging.getLogger(__name__)

_Entry = Tuple[int, float, int, str]


class PriorityTaskQueue:
    """Sorted list of tasks keyed by (-priority, created_at, sequence)."""

    def __init__(self) -> None:
        self._entries: List[_Entry] = []
        self._tasks: dict[str, Task] = {}
        self._sequence = itertools.count()

    def enqueue(self, task: Task) -> None:
        if task.id in self._tasks:
            raise ValueError(f"Task already queued: {task.id}")
        entry = (-task.priority, task.created_at.timestamp(), next(self._sequence), task.id)
        bisect.insort(self._entries, entry)
        self._tasks[task.id] = task

        if task.priority >= TaskPriority.CRITICAL:
            logger.info(
                f"Critical task queued: {task.name}",
                extra={"task_id": task.id, "priority": task.priority},
            )

    def dequeue_highest(self) -> Optional[Task]:
        if not self._entries:
            return None
        *_, task_id = self._entries.pop(0)
        return self._tasks.pop(task_id)

    def peek(self) -> Optional[Task]:
        if not self._entries:
            return None
        return self._tasks[self._entries[0][-1]]

    def remove(self, task_id: str) -> Optional[Task]:
        task = self._tasks.pop(task_id, None)
        if task is not None:
            self._entries = [entry for entry in self._entries if entry[-1] != task_id]
        return task

    def find(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Task]:
        """Tasks in dequeue order."""
        return (self._tasks[entry[-1]] for entry in list(self._entries))
