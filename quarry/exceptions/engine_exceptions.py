"""
quarry/exceptions/engine_exceptions.py
Custom exceptions with actionable error messages.
"""

from __future__ import annotations


class QuarryException(Exception):
    """Base exception for all Quarry errors."""

    def __init__(self, message: str, error_code: str = "UNKNOWN") -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(f"[{error_code}] {message}")


class PlanningError(QuarryException):
    """Raised when a task plan cannot be built."""

    def __init__(self, message: str, task_id: str = "", error_code: str = "PLANNING_ERROR") -> None:
        super().__init__(message, error_code=error_code)
        self.task_id = task_id


class DependencyCycleError(PlanningError):
    """Raised when the subtask graph of a task contains a cycle.

    A cycle is a construction error: the task is rejected before it
    ever reaches the queue.
    """

    def __init__(self, task_id: str, cycle: list[str] | None = None) -> None:
        self.cycle = cycle or []
        path = " -> ".join(self.cycle) if self.cycle else "unknown"
        super().__init__(
            f"Subtask dependencies of task '{task_id}' form a cycle: {path}",
            task_id=task_id,
            error_code="DEPENDENCY_CYCLE",
        )


class DanglingDependencyError(PlanningError):
    """Raised when a subtask depends on something outside its task."""

    def __init__(self, task_id: str, subtask_id: str, reference: str) -> None:
        self.subtask_id = subtask_id
        self.reference = reference
        super().__init__(
            f"Subtask '{subtask_id}' of task '{task_id}' depends on unknown '{reference}'",
            task_id=task_id,
            error_code="DANGLING_DEPENDENCY",
        )


class ExecutionError(QuarryException):
    """Base class for executor state errors."""

    def __init__(self, message: str, task_id: str = "", error_code: str = "EXECUTION_ERROR") -> None:
        super().__init__(message, error_code=error_code)
        self.task_id = task_id


class InvalidTransitionError(ExecutionError):
    """Raised when a task is moved along an edge the state machine lacks."""

    def __init__(self, task_id: str, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Task '{task_id}' cannot move from {current} to {requested}",
            task_id=task_id,
            error_code="INVALID_TRANSITION",
        )


class TaskNotFoundError(ExecutionError):
    """Raised when a task id is not known to the executor."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task '{task_id}' not found", task_id=task_id, error_code="TASK_NOT_FOUND")


class ExecutorBusyError(ExecutionError):
    """Raised when a second task would become IN_PROGRESS."""

    def __init__(self, task_id: str, running_task_id: str) -> None:
        self.running_task_id = running_task_id
        super().__init__(
            f"Cannot start task '{task_id}' while task '{running_task_id}' is in progress",
            task_id=task_id,
            error_code="EXECUTOR_BUSY",
        )


class TaskNotInterruptibleError(ExecutionError):
    """Raised when suspension is requested for a task that cannot be interrupted."""

    def __init__(self, task_id: str) -> None:
        super().__init__(
            f"Task '{task_id}' is not interruptible",
            task_id=task_id,
            error_code="NOT_INTERRUPTIBLE",
        )


class StorageError(QuarryException):
    """Raised when task history persistence fails."""

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(
            f"Storage operation '{operation}' failed: {message}",
            error_code="STORAGE_ERROR",
        )
        self.operation = operation
