"""Task model, subtask graph and agent context."""

from .context import AgentContext, StorageLocation, TaskRecord, TaskRecordSink
from .task import (
    SUBTASK_TYPE_PRIORITY,
    CraftSubtask,
    GatherFuelSubtask,
    GatherSubtask,
    SmeltSubtask,
    Subtask,
    SubtaskStatus,
    SubtaskType,
    Task,
    TaskPriority,
    TaskProgress,
    TaskStatus,
    ToolUpgradeSubtask,
)
from .task_graph import SubtaskGraph

__all__ = [
    "AgentContext",
    "StorageLocation",
    "TaskRecord",
    "TaskRecordSink",
    "SUBTASK_TYPE_PRIORITY",
    "CraftSubtask",
    "GatherFuelSubtask",
    "GatherSubtask",
    "SmeltSubtask",
    "Subtask",
    "SubtaskStatus",
    "SubtaskType",
    "Task",
    "TaskPriority",
    "TaskProgress",
    "TaskStatus",
    "ToolUpgradeSubtask",
    "SubtaskGraph",
]
