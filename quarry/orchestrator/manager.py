"""
Task Manager
============

Single entry point for the agent: builds the analyzer, queue, storage
manager and executor around one AgentContext and exposes task creation,
running and status queries.

Example:
    >>> manager = TaskManager(capabilities)
    >>> manager.create_complex_task("pickaxe", {"stone_pickaxe": 1})
    >>> manager.run_all()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from quarry.config import EngineSettings, get_settings
from quarry.core.context import AgentContext, TaskRecordSink
from quarry.core.task import Task, TaskPriority, TaskProgress
from quarry.knowledge.recipes import KnowledgeBase
from quarry.knowledge.tools import ToolFeasibilityModel
from quarry.orchestrator.capabilities import CapabilityRegistry
from quarry.orchestrator.executor import RunResult, TaskExecutor
from quarry.orchestrator.queue import PriorityTaskQueue
from quarry.orchestrator.storage import StorageOverflowManager
from quarry.planning.analyzer import RequirementAnalyzer
from quarry.storage.history_sink import SQLiteHistorySink

logger = logging.getLogger(__name__)


def _rank(task: Task) -> tuple:
    """Sort key matching the queue: higher priority, then older, first."""
    return (-task.priority, task.created_at)


class TaskManager:
    """
    Facade over planning and execution.

    Args:
        capabilities: Game primitives supplied by the agent
        settings: Defaults to the cached environment settings
        context: Agent memory; a fresh one is created when omitted
        knowledge: Recipe tables; defaults to the built-in ones, with
            recipes learned in ``context`` taking precedence
        sinks: Extra terminal-record sinks
    """

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        settings: Optional[EngineSettings] = None,
        context: Optional[AgentContext] = None,
        knowledge: Optional[KnowledgeBase] = None,
        sinks: Optional[Iterable[TaskRecordSink]] = None,
    ) -> None:
        self.capabilities = capabilities
        self.settings = settings or get_settings()
        self.context = context or AgentContext(history_limit=self.settings.history_limit)
        self.knowledge = knowledge or KnowledgeBase(overlay=self.context)
        self.tools = ToolFeasibilityModel(loadout=self._held_items)

        sink_list = list(sinks or [])
        if self.settings.history_db_path is not None:
            sink_list.append(SQLiteHistorySink(self.settings.history_db_path))

        self.analyzer = RequirementAnalyzer(
            knowledge=self.knowledge,
            tools=self.tools,
            inventory=capabilities.inventory_snapshot,
            context=self.context,
            settings=self.settings,
        )
        self.queue = PriorityTaskQueue()
        self.storage = StorageOverflowManager(capabilities, self.settings, self.context, self.knowledge)
        self.executor = TaskExecutor(
            capabilities=capabilities,
            queue=self.queue,
            context=self.context,
            settings=self.settings,
            storage=self.storage,
            analyzer=self.analyzer,
            sinks=sink_list,
        )

    def _held_items(self) -> List[str]:
        return [item for item, count in self.capabilities.inventory_snapshot().items() if count > 0]

    # ─── Task creation ───────────────────────────────────────────

    def create_complex_task(
        self,
        name: str,
        requirements: Mapping[str, int],
        description: str = "",
        priority: int = TaskPriority.NORMAL,
        interruptible: bool = True,
        resumable: bool = True,
    ) -> Task:
        """
        Decompose requirements into a task and queue it.

        Raises:
            PlanningError: The plan is not a DAG; nothing is queued
        """
        task = self.analyzer.plan(name, requirements, description=description, priority=priority)
        task.interruptible = interruptible
        task.resumable = resumable
        self._record_created(task)
        self.executor.submit(task)
        logger.info(
            f"Created task '{name}' [{TaskPriority.label(priority)}] "
            f"with {task.progress.total} subtasks",
            extra={"task_id": task.id, "priority": priority},
        )
        return task

    def add_critical_task(self, name: str, requirements: Mapping[str, int], description: str = "") -> Task:
        """Queue a CRITICAL task and preempt whatever is running."""
        task = self.create_complex_task(name, requirements, description, priority=TaskPriority.CRITICAL)
        self._preempt_for(task)
        return task

    def add_direct_task(
        self,
        name: str,
        action: Callable[[], Any],
        priority: int = TaskPriority.CRITICAL,
        description: str = "",
        interruptible: bool = True,
    ) -> Task:
        """Queue a single callable, bypassing decomposition."""
        task = Task(
            name=name,
            description=description,
            priority=priority,
            is_direct=True,
            action=action,
            interruptible=interruptible,
            progress=TaskProgress(completed=0, total=1),
        )
        self._record_created(task)
        self.executor.submit(task)
        if priority >= TaskPriority.CRITICAL:
            self._preempt_for(task)
        return task

    def create_building_project(
        self,
        name: str,
        requirements: Mapping[str, int],
        description: str = "",
    ) -> Task:
        """Plan the materials for a build and remember it as a project."""
        task = self.create_complex_task(
            f"Build {name}",
            requirements,
            description or f"Gather materials for {name}",
        )
        self.context.record_project(name, task.id, dict(requirements))
        return task

    def _record_created(self, task: Task) -> None:
        self.context.append_history(
            {
                "task_id": task.id,
                "name": task.name,
                "status": "CREATED",
                "priority": task.priority,
                "recorded_at": datetime.now(timezone.utc),
            }
        )

    def _preempt_for(self, task: Task) -> None:
        running = self.executor.current
        if running is None or running.id == task.id or running.priority >= task.priority:
            return
        if not running.interruptible:
            logger.info(
                f"'{running.name}' is not interruptible, '{task.name}' waits",
                extra={"task_id": running.id},
            )
            return
        logger.info(
            f"Preempting '{running.name}' for '{task.name}'",
            extra={"task_id": running.id},
        )
        self.executor.suspend(running.id, preempted=True)

    # ─── Running ─────────────────────────────────────────────────

    def run_next(self) -> RunResult:
        return self.executor.run_next()

    def run_all(self, max_tasks: Optional[int] = None) -> List[RunResult]:
        """
        Run until the queue is empty.

        Tasks suspended by preemption compete with the queue head by
        priority, then creation time; tasks suspended explicitly stay held.
        """
        results: List[RunResult] = []
        while max_tasks is None or len(results) < max_tasks:
            waiting = self._next_preempted()
            upcoming = self.queue.peek()
            if waiting is not None and (upcoming is None or _rank(waiting) <= _rank(upcoming)):
                results.append(self.executor.resume(waiting.id))
            elif upcoming is not None:
                results.append(self.executor.run_next())
            else:
                break
        return results

    def _next_preempted(self) -> Optional[Task]:
        held = [
            self.executor.suspended[task_id]
            for task_id in self.executor.preempted
            if task_id in self.executor.suspended
        ]
        return min(held, key=_rank, default=None)

    def suspend(self, task_id: str) -> Task:
        return self.executor.suspend(task_id)

    def resume(self, task_id: str) -> RunResult:
        return self.executor.resume(task_id)

    # ─── Queries ─────────────────────────────────────────────────

    def get_task_status(self, task_id: str) -> Optional[Dict[str, Any]]:
        task = self.executor.find_task(task_id)
        return task.status_report() if task else None

    def get_memory_overview(self) -> Dict[str, Any]:
        return self.context.overview()

    def status_summary(self) -> Dict[str, Any]:
        current = self.executor.current
        return {
            "current": current.status_report() if current else None,
            "queued": [task.status_report() for task in self.queue],
            "suspended": [task.status_report() for task in self.executor.suspended.values()],
            "stats": self.executor.stats.to_dict(),
        }

    @staticmethod
    def priority_label(priority: int) -> str:
        return TaskPriority.label(priority)
