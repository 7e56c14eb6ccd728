from .tasks import get_task_manager, router as tasks_router, set_task_manager

__all__ = ["get_task_manager", "set_task_manager", "tasks_router"]
