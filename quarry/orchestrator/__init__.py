"""Queueing, execution and storage management."""

from .capabilities import (
    CapabilityOutcome,
    CapabilityRegistry,
    CraftResult,
    GatherResult,
    PlaceResult,
    SmeltResult,
    StoreResult,
    UpgradeResult,
    outcome_for,
)
from .executor import ExecutorStats, RunResult, TaskExecutor
from .manager import TaskManager
from .queue import PriorityTaskQueue
from .storage import StorageOutcome, StorageOverflowManager

__all__ = [
    "CapabilityOutcome",
    "CapabilityRegistry",
    "CraftResult",
    "GatherResult",
    "PlaceResult",
    "SmeltResult",
    "StoreResult",
    "UpgradeResult",
    "outcome_for",
    "ExecutorStats",
    "RunResult",
    "TaskExecutor",
    "TaskManager",
    "PriorityTaskQueue",
    "StorageOutcome",
    "StorageOverflowManager",
]
