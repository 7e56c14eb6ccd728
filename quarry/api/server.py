"""
Quarry Status API Server
Serves task engine status over HTTP.
"""

from fastapi import FastAPI

from quarry.api.routers.tasks import router as tasks_router
from quarry.api.routers.tasks import set_task_manager
from quarry.logging_config import setup_logging
from quarry.orchestrator.manager import TaskManager


def create_app(manager: TaskManager, configure_logging: bool = False) -> FastAPI:
    """
    Build a FastAPI app serving ``manager``.

    Args:
        manager: Task manager the routes read from
        configure_logging: Install JSON logging from the manager's settings
    """
    if configure_logging:
        setup_logging(manager.settings.log_level, manager.settings.log_file)

    set_task_manager(manager)
    app = FastAPI(
        title="Quarry Task Engine",
        description="Status of planned, running and finished tasks",
        version="0.1.0",
    )
    app.include_router(tasks_router)

    @app.get("/")
    async def root() -> dict:
        return {"service": "quarry", "status": "running"}

    return app
