"""
quarry/exceptions/__init__.py
Custom exceptions for the engine.
"""

from .engine_exceptions import (
    DanglingDependencyError,
    DependencyCycleError,
    ExecutionError,
    ExecutorBusyError,
    InvalidTransitionError,
    PlanningError,
    QuarryException,
    StorageError,
    TaskNotFoundError,
    TaskNotInterruptibleError,
)

__all__ = [
    "QuarryException",
    "PlanningError",
    "DependencyCycleError",
    "DanglingDependencyError",
    "ExecutionError",
    "InvalidTransitionError",
    "TaskNotFoundError",
    "ExecutorBusyError",
    "TaskNotInterruptibleError",
    "StorageError",
]
