"""
Task Executor
=============

Runs queued tasks one at a time.

A task is dequeued, moved to IN_PROGRESS and its subtasks are driven in
stored order, each through the capability its type maps to. Any subtask
failure fails the task at once. Suspension may be requested at any time
and is honored at the next subtask boundary; a suspended task is held
until ``resume`` continues it from its first incomplete subtask.

Author: Quarry Development Team
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Set

from quarry.config import EngineSettings
from quarry.core.context import AgentContext, TaskRecord, TaskRecordSink
from quarry.core.task import (
    CraftSubtask,
    GatherFuelSubtask,
    GatherSubtask,
    SmeltSubtask,
    Subtask,
    SubtaskStatus,
    Task,
    TaskPriority,
    TaskStatus,
    ToolUpgradeSubtask,
)
from quarry.core.task_graph import SubtaskGraph
from quarry.error_instrumentation import (
    ErrorContext,
    LatencyMetrics,
    log_with_context,
    task_context,
)
from quarry.exceptions import (
    ExecutorBusyError,
    InvalidTransitionError,
    PlanningError,
    StorageError,
    TaskNotFoundError,
    TaskNotInterruptibleError,
)
from quarry.orchestrator.capabilities import CapabilityRegistry
from quarry.orchestrator.queue import PriorityTaskQueue
from quarry.orchestrator.storage import StorageOverflowManager

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one ``run_next`` / ``resume`` call."""

    completed: bool
    task: Optional[Task] = None


@dataclass
class ExecutorStats:
    created: int = 0
    completed: int = 0
    failed: int = 0
    suspended: int = 0
    resumed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class _LoopState(str, Enum):
    DONE = "DONE"
    SUSPENDED = "SUSPENDED"
    FAILED = "FAILED"


class TaskExecutor:
    """
    Single-threaded task runner.

    Args:
        capabilities: Game primitives
        queue: Source of PLANNED tasks
        context: Agent memory; receives terminal records
        settings: History bound and slow-call threshold
        storage: Overflow manager consulted before every subtask
        analyzer: Plans the container when storage has to craft one
        sinks: Extra record sinks, called after the context
    """

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        queue: PriorityTaskQueue,
        context: AgentContext,
        settings: EngineSettings,
        storage: Optional[StorageOverflowManager] = None,
        analyzer: Optional[Any] = None,
        sinks: Optional[Iterable[TaskRecordSink]] = None,
    ) -> None:
        self.capabilities = capabilities
        self.queue = queue
        self.context = context
        self.settings = settings
        self.storage = storage
        self.analyzer = analyzer
        self.sinks: List[TaskRecordSink] = list(sinks or [])

        self.current: Optional[Task] = None
        self.suspended: Dict[str, Task] = {}
        self.preempted: List[str] = []
        self.history: Deque[Task] = deque(maxlen=settings.history_limit)
        self.stats = ExecutorStats()
        self.metrics: Dict[str, LatencyMetrics] = {}
        self._suspend_requested: Set[str] = set()

    # ─── Queue side ──────────────────────────────────────────────

    def submit(self, task: Task) -> Task:
        self.queue.enqueue(task)
        self.stats.created += 1
        return task

    def find_task(self, task_id: str) -> Optional[Task]:
        """Look a task up wherever it currently lives."""
        if self.current is not None and self.current.id == task_id:
            return self.current
        task = self.queue.find(task_id) or self.suspended.get(task_id)
        if task is not None:
            return task
        for archived in self.history:
            if archived.id == task_id:
                return archived
        return None

    # ─── Control ─────────────────────────────────────────────────

    def run_next(self) -> RunResult:
        """
        Run the highest-priority queued task until it ends or suspends.

        Returns:
            RunResult(completed=False, task=None) when the queue is empty

        Raises:
            ExecutorBusyError: Called while another task is running
        """
        if self.current is not None:
            upcoming = self.queue.peek()
            raise ExecutorBusyError(upcoming.id if upcoming else "", self.current.id)

        task = self.queue.dequeue_highest()
        if task is None:
            return RunResult(completed=False)

        task.transition(TaskStatus.IN_PROGRESS)
        return self._run(task)

    def suspend(self, task_id: str, preempted: bool = False) -> Task:
        """
        Request suspension of the running task.

        Honored at the next subtask boundary. Preempted tasks are resumed
        by ``TaskManager.run_all`` as soon as they outrank the queue head.
        A task that is not resumable is cancelled (FAILED) at that boundary
        instead of being held.

        Raises:
            InvalidTransitionError: The task is not IN_PROGRESS
            TaskNotFoundError: Unknown task id
            TaskNotInterruptibleError: The task may not be interrupted
        """
        task = self.find_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if task is not self.current:
            raise InvalidTransitionError(task_id, task.status.value, TaskStatus.SUSPENDED.value)
        if not task.interruptible:
            raise TaskNotInterruptibleError(task_id)

        self._suspend_requested.add(task_id)
        if preempted and task_id not in self.preempted:
            self.preempted.append(task_id)
        log_with_context("info", "suspension_requested", task_id=task_id, preempted=preempted)
        return task

    def resume(self, task_id: str) -> RunResult:
        """
        Continue a suspended task from its first incomplete subtask.

        Raises:
            ExecutorBusyError: Another task is IN_PROGRESS
            InvalidTransitionError: The task exists but is not SUSPENDED
            TaskNotFoundError: Unknown task id
        """
        task = self.suspended.get(task_id)
        if task is None:
            known = self.find_task(task_id)
            if known is None:
                raise TaskNotFoundError(task_id)
            raise InvalidTransitionError(task_id, known.status.value, TaskStatus.IN_PROGRESS.value)
        if self.current is not None:
            raise ExecutorBusyError(task_id, self.current.id)

        del self.suspended[task_id]
        if task_id in self.preempted:
            self.preempted.remove(task_id)
        task.transition(TaskStatus.IN_PROGRESS)
        self.stats.resumed += 1
        logger.info(
            f"Resuming task '{task.name}' at subtask {task.first_incomplete_index()}",
            extra={"task_id": task.id},
        )
        self._call_hook(task, task.on_resume, "on_resume")
        return self._run(task)

    # ─── Running ─────────────────────────────────────────────────

    def _run(self, task: Task) -> RunResult:
        self.current = task
        try:
            with task_context(task.id, task.trace_id):
                log_with_context(
                    "info",
                    "task_running",
                    task_name=task.name,
                    priority=task.priority,
                    progress=task.progress.to_dict(),
                )
                if task.is_direct:
                    self._run_direct(task)
                else:
                    self._run_subtasks(task)
        except Exception as e:
            ErrorContext("run_task", e, {"task_id": task.id, "name": task.name}).log()
            if task.status == TaskStatus.IN_PROGRESS:
                task.fail(f"Unexpected {type(e).__name__}: {e}")
            self._settle(task)
            raise
        finally:
            self.current = None
            self._suspend_requested.discard(task.id)
        return self._settle(task)

    def _run_direct(self, task: Task) -> None:
        if task.action is None:
            task.fail("Direct task has no action")
            return
        try:
            outcome = task.action()
        except Exception as e:
            ErrorContext("direct_action", e, {"task_id": task.id, "name": task.name}).log()
            task.fail(f"Action raised {type(e).__name__}: {e}")
            return
        if outcome is False:
            task.fail("Action reported failure")
            return
        task.progress.completed = task.progress.total
        task.transition(TaskStatus.COMPLETED)

    def _run_subtasks(self, task: Task) -> None:
        state, reason = self._drive(task, interruptible=True)
        if state == _LoopState.DONE:
            task.transition(TaskStatus.COMPLETED)
        elif state == _LoopState.SUSPENDED and not task.resumable:
            task.fail("Cancelled: interrupted and not resumable")
        elif state == _LoopState.SUSPENDED:
            task.transition(TaskStatus.SUSPENDED)
            self._call_hook(task, task.on_pause, "on_pause")
        else:
            task.fail(reason or "unknown reason")

    def _call_hook(self, task: Task, hook: Optional[Callable[[Task], Any]], name: str) -> None:
        if hook is None:
            return
        try:
            hook(task)
        except Exception as e:
            ErrorContext(name, e, {"task_id": task.id, "name": task.name}).log()

    def _drive(self, task: Task, interruptible: bool) -> tuple[_LoopState, Optional[str]]:
        """
        Scan the stored order until every subtask is COMPLETED.

        Not-ready subtasks are skipped; at most one pass per subtask. A
        pass that completes nothing while work remains means the task is
        stuck.
        """
        graph = SubtaskGraph.from_subtasks(task.subtasks, task_id=task.id)
        for _ in range(max(1, len(task.subtasks))):
            if task.first_incomplete_index() is None:
                return _LoopState.DONE, None

            progressed = False
            for subtask in task.subtasks:
                if subtask.status == SubtaskStatus.COMPLETED:
                    continue
                if interruptible and task.id in self._suspend_requested:
                    return _LoopState.SUSPENDED, None
                if not graph.is_ready(subtask):
                    continue

                if interruptible and self.storage is not None:
                    self.storage.check_and_handle(task, acquire_container=self._acquire_container)

                if not self._execute(task, subtask):
                    return _LoopState.FAILED, f"{subtask.type.value} {subtask.target} failed"
                task.mark_subtask_completed(subtask)
                progressed = True

            if not progressed:
                break

        if task.first_incomplete_index() is None:
            return _LoopState.DONE, None
        return _LoopState.FAILED, "No executable subtasks remaining"

    def _execute(self, task: Task, subtask: Subtask) -> bool:
        subtask.status = SubtaskStatus.IN_PROGRESS
        try:
            ok = self._dispatch(subtask)
        except Exception as e:
            ErrorContext(
                subtask.type.value.lower(),
                e,
                {"task_id": task.id, "subtask_id": subtask.id, "target": subtask.target},
            ).log()
            ok = False

        if not ok:
            subtask.status = SubtaskStatus.FAILED
            log_with_context(
                "warning",
                "subtask_failed",
                subtask_id=subtask.id,
                subtask_type=subtask.type.value,
                target=subtask.target,
            )
        return ok

    def _dispatch(self, subtask: Subtask) -> bool:
        caps = self.capabilities
        match subtask:
            case GatherSubtask(item_name=item, quantity=quantity):
                result = self._timed("gather", caps.gather, item, quantity)
                return self._delivered(result.acquired, item, quantity)
            case CraftSubtask(item_name=item, quantity=quantity):
                result = self._timed("craft", caps.craft, item, quantity)
                return self._delivered(result.crafted, item, quantity)
            case SmeltSubtask(input_items=inputs, output_item=output, quantity=quantity):
                result = self._timed("smelt", caps.smelt, list(inputs), output, quantity)
                return self._delivered(result.produced, output, quantity)
            case ToolUpgradeSubtask(tool_name=tool):
                return self._timed("upgrade_tool", caps.upgrade_tool, tool).acquired
            case GatherFuelSubtask():
                return self._gather_fuel(subtask)
            case _:
                raise TypeError(f"Unsupported subtask: {type(subtask).__name__}")

    def _gather_fuel(self, subtask: GatherFuelSubtask) -> bool:
        """Try each candidate fuel in turn; any yield is enough."""
        for fuel in subtask.target_items:
            try:
                result = self._timed("gather", self.capabilities.gather, fuel, subtask.quantity)
            except Exception as e:
                ErrorContext("gather_fuel", e, {"subtask_id": subtask.id, "fuel": fuel}).log()
                continue
            if result.acquired > 0:
                return True
        return False

    def _delivered(self, produced: int, item: str, quantity: int) -> bool:
        if produced <= 0:
            return False
        return self.capabilities.inventory_snapshot().get(item, 0) >= quantity

    def _timed(self, operation: str, call: Callable[..., Any], *args: Any) -> Any:
        metrics = self.metrics.get(operation)
        if metrics is None:
            metrics = LatencyMetrics(operation, slow_threshold_ms=self.settings.slow_capability_ms)
            self.metrics[operation] = metrics
        start = time.perf_counter()
        try:
            return call(*args)
        finally:
            metrics.add((time.perf_counter() - start) * 1000)

    def _acquire_container(self) -> bool:
        """Plan and run a one-off helper task that produces one container item."""
        if self.analyzer is None:
            return False
        container = self.settings.container_item
        try:
            helper = self.analyzer.plan(
                f"{container} for storage",
                {container: 1},
                priority=TaskPriority.HIGH,
            )
        except PlanningError as e:
            logger.warning(f"Cannot plan {container}: {e}")
            return False
        state, reason = self._drive(helper, interruptible=False)
        if state != _LoopState.DONE:
            logger.warning(f"Could not produce {container}: {reason}")
            return False
        return True

    # ─── Settling ────────────────────────────────────────────────

    def _settle(self, task: Task) -> RunResult:
        if task.status == TaskStatus.SUSPENDED:
            self.suspended[task.id] = task
            self.stats.suspended += 1
            logger.info(
                f"Task '{task.name}' suspended at subtask {task.first_incomplete_index()}",
                extra={"task_id": task.id},
            )
            return RunResult(completed=False, task=task)

        if task.id in self.preempted:
            self.preempted.remove(task.id)
        if task.status == TaskStatus.COMPLETED:
            self.stats.completed += 1
        else:
            self.stats.failed += 1
            logger.warning(
                f"Task '{task.name}' failed: {task.error}",
                extra={"task_id": task.id},
            )

        self.history.append(task)
        self.context.update_project_status(task.id, task.status.value)
        self._publish(task)
        return RunResult(completed=task.status == TaskStatus.COMPLETED, task=task)

    def _publish(self, task: Task) -> None:
        record = TaskRecord(
            task_id=task.id,
            name=task.name,
            status=task.outcome_label(),
            duration_seconds=task.runtime_seconds(),
        )
        for sink in [self.context, *self.sinks]:
            try:
                sink.record(record)
            except StorageError as e:
                ErrorContext("record_sink", e, {"task_id": task.id}).log()
