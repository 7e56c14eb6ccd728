"""
Unit tests for exception classes.

Tests all exception constructors and message formatting.
"""

from __future__ import annotations

from quarry.exceptions import (
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


class TestQuarryException:
    """Tests for QuarryException base class."""

    def test_init_with_default_error_code(self) -> None:
        exc = QuarryException("Test message")
        assert exc.message == "Test message"
        assert exc.error_code == "UNKNOWN"
        assert str(exc) == "[UNKNOWN] Test message"

    def test_init_with_custom_error_code(self) -> None:
        exc = QuarryException("Test message", error_code="CUSTOM_ERROR")
        assert exc.error_code == "CUSTOM_ERROR"
        assert str(exc) == "[CUSTOM_ERROR] Test message"


class TestPlanningErrors:
    """Tests for plan construction errors."""

    def test_cycle_lists_path(self) -> None:
        exc = DependencyCycleError("task_1", ["a", "b"])
        assert isinstance(exc, PlanningError)
        assert exc.task_id == "task_1"
        assert exc.cycle == ["a", "b"]
        assert exc.error_code == "DEPENDENCY_CYCLE"
        assert "a -> b" in str(exc)

    def test_cycle_without_path(self) -> None:
        exc = DependencyCycleError("task_1")
        assert exc.cycle == []
        assert "unknown" in str(exc)

    def test_dangling_dependency(self) -> None:
        exc = DanglingDependencyError("task_1", "subtask_2", "ghost")
        assert exc.subtask_id == "subtask_2"
        assert exc.reference == "ghost"
        assert exc.error_code == "DANGLING_DEPENDENCY"
        assert "ghost" in str(exc)


class TestExecutionErrors:
    """Tests for executor state errors."""

    def test_invalid_transition(self) -> None:
        exc = InvalidTransitionError("task_1", "COMPLETED", "IN_PROGRESS")
        assert isinstance(exc, ExecutionError)
        assert exc.current == "COMPLETED"
        assert exc.requested == "IN_PROGRESS"
        assert "COMPLETED to IN_PROGRESS" in str(exc)

    def test_task_not_found(self) -> None:
        exc = TaskNotFoundError("task_9")
        assert exc.task_id == "task_9"
        assert exc.error_code == "TASK_NOT_FOUND"

    def test_executor_busy(self) -> None:
        exc = ExecutorBusyError("task_1", "task_2")
        assert exc.running_task_id == "task_2"
        assert exc.error_code == "EXECUTOR_BUSY"
        assert "task_2" in str(exc)

    def test_not_interruptible(self) -> None:
        exc = TaskNotInterruptibleError("task_3")
        assert isinstance(exc, ExecutionError)
        assert exc.task_id == "task_3"
        assert exc.error_code == "NOT_INTERRUPTIBLE"


class TestStorageError:
    """Tests for StorageError exception."""

    def test_init_with_default_operation(self) -> None:
        exc = StorageError("Database connection failed")
        assert "Database connection failed" in exc.message
        assert exc.operation == ""
        assert exc.error_code == "STORAGE_ERROR"
        assert "Storage operation" in str(exc)

    def test_init_with_operation(self) -> None:
        exc = StorageError("disk full", operation="record")
        assert exc.operation == "record"
        assert "record" in str(exc)
        assert isinstance(exc, QuarryException)
