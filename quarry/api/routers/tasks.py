"""
Tasks FastAPI Router
====================

Read-only status endpoints over a TaskManager.

Endpoints:
- GET /tasks: Running, queued and suspended tasks plus executor stats
- GET /tasks/memory: Agent memory overview
- GET /tasks/health: Liveness of the task engine
- GET /tasks/{task_id}: Status of one task

Author: Quarry Development Team
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from quarry.orchestrator.manager import TaskManager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"],
    responses={404: {"description": "Task not found"}},
)

# Module-level singleton, replaced through set_task_manager
_task_manager: Optional[TaskManager] = None


def get_task_manager() -> TaskManager:
    """Get the TaskManager the routes read from.

    Raises:
        HTTPException 503: No manager has been installed
    """
    if _task_manager is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Task manager not configured",
        )
    return _task_manager


def set_task_manager(manager: Optional[TaskManager]) -> None:
    """Install the TaskManager instance (also used by tests).

    Args:
        manager: The TaskManager to serve, or None to clear
    """
    global _task_manager
    _task_manager = manager


class SubtaskSummary(BaseModel):
    id: str
    type: str
    status: str
    target: str
    quantity: int


class TaskStatusResponse(BaseModel):
    """Status of a single task."""
    id: str
    name: str
    status: str
    priority: int
    priority_label: str = Field(description="CRITICAL, HIGH, NORMAL or LOW")
    progress: dict[str, int]
    error: Optional[str] = None
    subtasks: list[SubtaskSummary] = Field(default_factory=list)


class TaskListResponse(BaseModel):
    """Everything the executor currently holds."""
    current: Optional[TaskStatusResponse] = None
    queued: list[TaskStatusResponse] = Field(default_factory=list)
    suspended: list[TaskStatusResponse] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)


def _to_response(report: dict[str, Any]) -> TaskStatusResponse:
    return TaskStatusResponse(priority_label=TaskManager.priority_label(report["priority"]), **report)


@router.get(
    "",
    response_model=TaskListResponse,
    summary="List tasks",
    description="Running, queued and suspended tasks with executor counters.",
)
async def list_tasks() -> TaskListResponse:
    summary = get_task_manager().status_summary()
    return TaskListResponse(
        current=_to_response(summary["current"]) if summary["current"] else None,
        queued=[_to_response(report) for report in summary["queued"]],
        suspended=[_to_response(report) for report in summary["suspended"]],
        stats=summary["stats"],
    )


@router.get(
    "/memory",
    summary="Agent memory overview",
    description="Recent history, building projects, tool needs and storage locations.",
)
async def memory_overview() -> dict:
    return get_task_manager().get_memory_overview()


@router.get(
    "/health",
    summary="Check task engine health",
)
async def health_check() -> dict:
    """Check if the task engine is operational.

    Returns:
        Health status including queue depth
    """
    manager = get_task_manager()
    return {
        "status": "healthy",
        "queued": len(manager.queue),
        "suspended": len(manager.executor.suspended),
        "running": manager.executor.current is not None,
        "subsystem": "TaskEngine",
    }


@router.get(
    "/{task_id}",
    response_model=TaskStatusResponse,
    summary="Get task status",
    description="Status, progress and subtask summaries of one task.",
)
async def get_task(task_id: str) -> TaskStatusResponse:
    """Get the status of a specific task.

    Raises:
        HTTPException 404: If task_id is unknown
    """
    report = get_task_manager().get_task_status(task_id)
    if report is None:
        logger.warning(f"Task not found: {task_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task not found: {task_id}",
        )
    return _to_response(report)
