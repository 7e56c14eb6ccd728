"""
Quarry - hierarchical task planning and execution for a game-playing agent
Requirement decomposition, priority scheduling and resumable execution
"""

from quarry.config import EngineSettings, get_settings
from quarry.core import AgentContext, Task, TaskPriority, TaskStatus
from quarry.orchestrator import CapabilityRegistry, TaskManager

__version__ = "0.1.0"

__all__ = [
    "AgentContext",
    "CapabilityRegistry",
    "EngineSettings",
    "Task",
    "TaskManager",
    "TaskPriority",
    "TaskStatus",
    "get_settings",
]
