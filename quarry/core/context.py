"""
Agent Context
=============

Explicit, caller-owned memory shared by the analyzer and the executor.

Holds task history, runtime-learned recipes, known storage containers,
outstanding tool upgrade needs and building projects. Nothing here is
global: the agent creates one context and passes it in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from quarry.knowledge.recipes import Recipe

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskRecord(BaseModel):
    """One record per terminal task, handed to every record sink."""

    task_id: str
    name: str
    status: str = Field(description="COMPLETED or FAILED: <reason>")
    duration_seconds: float = Field(default=0.0, ge=0.0)
    recorded_at: datetime = Field(default_factory=_utcnow)


@runtime_checkable
class TaskRecordSink(Protocol):
    """Receives a record whenever a task reaches a terminal state."""

    def record(self, record: TaskRecord) -> None:
        ...


@dataclass
class StorageLocation:
    """A container the agent knows about."""

    location: str
    kind: str = "chest"
    capacity: int = 27
    items: Dict[str, int] = field(default_factory=dict)
    last_accessed: datetime = field(default_factory=_utcnow)


class AgentContext:
    """
    Memory object owned by the calling agent.

    Also acts as a TaskRecordSink so terminal tasks land in its history
    without further wiring.
    """

    def __init__(self, history_limit: int = 50) -> None:
        self.history_limit = history_limit
        self.task_history: List[Dict[str, Any]] = []
        self.known_recipes: Dict[str, Recipe] = {}
        self.storage_locations: Dict[str, StorageLocation] = {}
        self.tool_upgrade_needs: List[Dict[str, Any]] = []
        self.building_projects: Dict[str, Dict[str, Any]] = {}

    # ─── Task history ────────────────────────────────────────────

    def append_history(self, entry: Dict[str, Any]) -> None:
        self.task_history.append(entry)
        overflow = len(self.task_history) - self.history_limit
        if overflow > 0:
            del self.task_history[:overflow]

    def record(self, record: TaskRecord) -> None:
        self.append_history(
            {
                "task_id": record.task_id,
                "name": record.name,
                "status": record.status,
                "duration_seconds": record.duration_seconds,
                "recorded_at": record.recorded_at,
            }
        )

    def recent_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self.task_history[-limit:]

    # ─── Recipes ─────────────────────────────────────────────────

    def learn_recipe(self, item_name: str, recipe: Recipe) -> None:
        """Remember a recipe discovered at runtime; it wins over the static table."""
        self.known_recipes[item_name] = recipe
        logger.debug("Recipe learned", extra={"item": item_name})

    def get_recipe(self, item_name: str) -> Optional[Recipe]:
        return self.known_recipes.get(item_name)

    # ─── Storage ─────────────────────────────────────────────────

    def record_storage(
        self,
        location: str,
        items: Optional[Dict[str, int]] = None,
        kind: str = "chest",
    ) -> StorageLocation:
        entry = self.storage_locations.get(location)
        if entry is None:
            entry = StorageLocation(location=location, kind=kind)
            self.storage_locations[location] = entry
        if items is not None:
            entry.items = dict(items)
        entry.last_accessed = _utcnow()
        return entry

    # ─── Tools / projects ────────────────────────────────────────

    def record_tool_need(self, tool: str, reason: str, task_id: str) -> None:
        self.tool_upgrade_needs.append({"tool": tool, "reason": reason, "task_id": task_id})

    def record_project(self, name: str, task_id: str, requirements: Dict[str, int]) -> None:
        self.building_projects[name] = {
            "task_id": task_id,
            "requirements": dict(requirements),
            "created_at": _utcnow(),
            "status": "PLANNED",
        }

    def update_project_status(self, task_id: str, status: str) -> None:
        for project in self.building_projects.values():
            if project["task_id"] == task_id:
                project["status"] = status

    def overview(self) -> Dict[str, Any]:
        """Summary for status surfaces: last 10 history entries and key sets."""
        return {
            "task_history": self.recent_history(10),
            "building_projects": list(self.building_projects),
            "tool_upgrade_needs": list(self.tool_upgrade_needs),
            "storage_locations": list(self.storage_locations),
        }
