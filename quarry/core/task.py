"""
Task Primitives
===============

Defines the top-level Task and the Subtask variants that make up its
dependency graph.

Subtasks form a tagged union: every variant carries only the fields its
capability needs, and the executor dispatches on the variant class.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional

from quarry.exceptions import InvalidTransitionError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex[:12]}"


def new_subtask_id() -> str:
    return f"subtask_{uuid.uuid4().hex[:12]}"


class TaskPriority:
    """Reserved priority bands. Higher runs first."""

    CRITICAL = 100  # player / LLM commands, survival interrupts
    HIGH = 50  # tool upgrades, important work
    NORMAL = 25
    LOW = 10  # idle and background work

    @classmethod
    def label(cls, priority: int) -> str:
        """Band name for a raw priority value."""
        if priority >= cls.CRITICAL:
            return "CRITICAL"
        if priority >= cls.HIGH:
            return "HIGH"
        if priority >= cls.NORMAL:
            return "NORMAL"
        return "LOW"


class TaskStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SUSPENDED = "SUSPENDED"


class SubtaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SubtaskType(str, Enum):
    GATHER = "GATHER"
    CRAFT = "CRAFT"
    SMELT = "SMELT"
    TOOL_UPGRADE = "TOOL_UPGRADE"
    GATHER_FUEL = "GATHER_FUEL"


# Ordering among otherwise-unordered siblings; higher runs earlier.
SUBTASK_TYPE_PRIORITY: Dict[SubtaskType, int] = {
    SubtaskType.TOOL_UPGRADE: 10,
    SubtaskType.GATHER_FUEL: 8,
    SubtaskType.SMELT: 6,
    SubtaskType.CRAFT: 5,
    SubtaskType.GATHER: 3,
}


@dataclass(kw_only=True)
class Subtask:
    """
    One primitive, typed unit of work inside a Task.

    Attributes:
        id: Unique subtask identifier
        quantity: Units this subtask must deliver
        status: Current state
        dependencies: Subtask ids (or target item names) that must complete first
        estimated_seconds: Advisory duration hint, never enforced
    """

    type: ClassVar[SubtaskType]
    seconds_per_unit: ClassVar[float] = 0.0
    flat_seconds: ClassVar[float] = 0.0

    id: str = field(default_factory=new_subtask_id)
    quantity: int = 1
    status: SubtaskStatus = SubtaskStatus.PENDING
    dependencies: List[str] = field(default_factory=list)
    estimated_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not self.estimated_seconds:
            self.estimated_seconds = self.flat_seconds or self.quantity * self.seconds_per_unit

    @property
    def target(self) -> str:
        """Item, block or tool this subtask produces."""
        raise NotImplementedError

    @property
    def priority(self) -> int:
        return SUBTASK_TYPE_PRIORITY[self.type]

    def add_dependency(self, reference: str) -> None:
        if reference not in self.dependencies:
            self.dependencies.append(reference)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "target": self.target,
            "quantity": self.quantity,
            "status": self.status.value,
            "dependencies": list(self.dependencies),
            "estimated_seconds": self.estimated_seconds,
        }


@dataclass(kw_only=True)
class GatherSubtask(Subtask):
    """Collect ``item_name`` by breaking ``block_type``."""

    type: ClassVar[SubtaskType] = SubtaskType.GATHER
    seconds_per_unit: ClassVar[float] = 10.0

    item_name: str
    block_type: str

    @property
    def target(self) -> str:
        return self.item_name


@dataclass(kw_only=True)
class CraftSubtask(Subtask):
    type: ClassVar[SubtaskType] = SubtaskType.CRAFT
    seconds_per_unit: ClassVar[float] = 5.0

    item_name: str

    @property
    def target(self) -> str:
        return self.item_name


@dataclass(kw_only=True)
class SmeltSubtask(Subtask):
    type: ClassVar[SubtaskType] = SubtaskType.SMELT
    seconds_per_unit: ClassVar[float] = 15.0

    input_items: List[str]
    output_item: str

    @property
    def target(self) -> str:
        return self.output_item


@dataclass(kw_only=True)
class ToolUpgradeSubtask(Subtask):
    type: ClassVar[SubtaskType] = SubtaskType.TOOL_UPGRADE
    flat_seconds: ClassVar[float] = 30.0

    tool_name: str
    reason: str = ""

    @property
    def target(self) -> str:
        return self.tool_name


@dataclass(kw_only=True)
class GatherFuelSubtask(Subtask):
    type: ClassVar[SubtaskType] = SubtaskType.GATHER_FUEL
    flat_seconds: ClassVar[float] = 60.0

    target_items: List[str]

    @property
    def target(self) -> str:
        return "fuel"


@dataclass
class TaskProgress:
    completed: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"completed": self.completed, "total": self.total}


@dataclass
class Task:
    """
    A unit of top-level work.

    Attributes:
        name: Short human-readable name
        requirements: Item name -> required quantity
        description: Free text
        priority: Higher runs first (see TaskPriority)
        id: Unique task identifier
        status: Current state
        subtasks: Ordered subtasks, owned exclusively by this task
        progress: Completed / total subtask counters
        created_at: Tie-break for equal priority, earlier first
        is_direct: Skip decomposition and run ``action`` once
        action: Opaque callable for direct tasks
        error: Failure reason once FAILED
        trace_id: Links log events of one task
        paused_seconds: Time spent SUSPENDED
        interruptible: May be suspended or preempted while running
        resumable: Suspension pauses the task; otherwise it is cancelled (FAILED)
        on_pause: Called with the task once it is SUSPENDED
        on_resume: Called with the task before it continues
    """

    name: str
    requirements: Dict[str, int] = field(default_factory=dict)
    description: str = ""
    priority: int = TaskPriority.NORMAL
    id: str = field(default_factory=new_task_id)
    status: TaskStatus = TaskStatus.PLANNED
    subtasks: List[Subtask] = field(default_factory=list)
    progress: TaskProgress = field(default_factory=TaskProgress)
    created_at: datetime = field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None
    is_direct: bool = False
    action: Optional[Callable[[], Any]] = field(default=None, repr=False)
    error: Optional[str] = None
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    paused_seconds: float = 0.0
    interruptible: bool = True
    resumable: bool = True
    on_pause: Optional[Callable[["Task"], Any]] = field(default=None, repr=False)
    on_resume: Optional[Callable[["Task"], Any]] = field(default=None, repr=False)

    TRANSITIONS: ClassVar[Dict[TaskStatus, frozenset]] = {
        TaskStatus.PLANNED: frozenset({TaskStatus.IN_PROGRESS}),
        TaskStatus.IN_PROGRESS: frozenset(
            {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SUSPENDED}
        ),
        TaskStatus.SUSPENDED: frozenset({TaskStatus.IN_PROGRESS}),
        TaskStatus.COMPLETED: frozenset(),
        TaskStatus.FAILED: frozenset(),
    }

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)

    def transition(self, new_status: TaskStatus) -> None:
        """Move along one edge of the task state machine."""
        if new_status not in self.TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.id, self.status.value, new_status.value)

        now = _utcnow()
        if new_status == TaskStatus.IN_PROGRESS:
            if self.status == TaskStatus.SUSPENDED and self.suspended_at is not None:
                self.paused_seconds += (now - self.suspended_at).total_seconds()
                self.suspended_at = None
            elif self.started_at is None:
                self.started_at = now
        elif new_status == TaskStatus.SUSPENDED:
            self.suspended_at = now
        else:
            self.completed_at = now
        self.status = new_status

    def fail(self, reason: str) -> None:
        self.error = reason
        self.transition(TaskStatus.FAILED)

    def mark_subtask_completed(self, subtask: Subtask) -> None:
        subtask.status = SubtaskStatus.COMPLETED
        self.progress.completed = min(self.progress.total, self.progress.completed + 1)

    def find_subtask(self, subtask_id: str) -> Optional[Subtask]:
        for subtask in self.subtasks:
            if subtask.id == subtask_id:
                return subtask
        return None

    def first_incomplete_index(self) -> Optional[int]:
        """Index of the first subtask that has not COMPLETED."""
        for index, subtask in enumerate(self.subtasks):
            if subtask.status != SubtaskStatus.COMPLETED:
                return index
        return None

    def runtime_seconds(self) -> float:
        """Wall time since start, excluding suspended time."""
        if self.started_at is None:
            return 0.0
        end = self.completed_at or _utcnow()
        paused = self.paused_seconds
        if self.suspended_at is not None:
            paused += (end - self.suspended_at).total_seconds()
        return max(0.0, (end - self.started_at).total_seconds() - paused)

    def outcome_label(self) -> str:
        """Terminal record text: ``COMPLETED`` or ``FAILED: <reason>``."""
        if self.status == TaskStatus.FAILED:
            return f"FAILED: {self.error or 'unknown reason'}"
        return self.status.value

    def status_report(self) -> Dict[str, Any]:
        """Status query payload: state, progress and subtask summaries."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "priority": self.priority,
            "progress": self.progress.to_dict(),
            "error": self.error,
            "subtasks": [
                {
                    "id": st.id,
                    "type": st.type.value,
                    "status": st.status.value,
                    "target": st.target,
                    "quantity": st.quantity,
                }
                for st in self.subtasks
            ],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "requirements": dict(self.requirements),
            "priority": self.priority,
            "status": self.status.value,
            "is_direct": self.is_direct,
            "interruptible": self.interruptible,
            "resumable": self.resumable,
            "subtasks": [st.to_dict() for st in self.subtasks],
            "progress": self.progress.to_dict(),
            "error": self.error,
            "trace_id": self.trace_id,
            "paused_seconds": self.paused_seconds,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
