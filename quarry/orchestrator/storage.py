"""
Storage Overflow Manager
========================

Keeps the inventory from filling up mid-task.

Before each subtask the executor asks ``check_and_handle``. Once used
slots reach the high-water mark, surplus items (anything the running
task does not need) go into a nearby container. With no container in
range, one is placed, crafting it first through a nested plan when none
is held. When nothing works the task carries on in degraded mode.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Set

from quarry.config import EngineSettings
from quarry.core.context import AgentContext
from quarry.core.task import (
    CraftSubtask,
    GatherFuelSubtask,
    SmeltSubtask,
    SubtaskStatus,
    Task,
)
from quarry.error_instrumentation import ErrorContext, log_with_context
from quarry.knowledge.recipes import KnowledgeBase
from quarry.knowledge.tools import tool_family
from quarry.orchestrator.capabilities import CapabilityRegistry

logger = logging.getLogger(__name__)


class StorageOutcome(str, Enum):
    NOT_NEEDED = "NOT_NEEDED"
    STASHED_EXISTING = "STASHED_EXISTING"
    STASHED_NEW = "STASHED_NEW"
    DEGRADED = "DEGRADED"


class StorageOverflowManager:
    """
    Moves surplus items into containers when the inventory runs high.

    Args:
        capabilities: Inventory, scan, place and store primitives
        settings: Slot counts, search radius, container item
        context: Known storage locations are recorded here
        knowledge: Recipe and fuel tables, to tell surplus from inputs
    """

    def __init__(
        self,
        capabilities: CapabilityRegistry,
        settings: EngineSettings,
        context: AgentContext,
        knowledge: KnowledgeBase,
    ) -> None:
        self.capabilities = capabilities
        self.settings = settings
        self.context = context
        self.knowledge = knowledge
        self._active = False

    def used_slots(self) -> int:
        return self.settings.inventory_slots - self.capabilities.empty_capacity()

    def needs_storage(self) -> bool:
        return self.used_slots() >= self.settings.inventory_high_water

    def check_and_handle(
        self,
        task: Task,
        acquire_container: Optional[Callable[[], bool]] = None,
    ) -> StorageOutcome:
        """
        Stash surplus items if the inventory is at the high-water mark.

        Args:
            task: The running task; its inputs are never stashed
            acquire_container: Produces one container item, returns success

        Returns:
            What happened. Never raises for capability failures.
        """
        if self._active or not self.needs_storage():
            return StorageOutcome.NOT_NEEDED

        self._active = True
        try:
            return self._stash(task, acquire_container)
        except Exception as e:
            ErrorContext("storage_overflow", e, {"task_id": task.id}).log()
            return self._degraded(task, f"storage handling raised {type(e).__name__}")
        finally:
            self._active = False

    def _stash(self, task: Task, acquire_container: Optional[Callable[[], bool]]) -> StorageOutcome:
        surplus = self.surplus_items(task)
        if not surplus:
            return self._degraded(task, "inventory full of task materials")

        nearby = self.capabilities.scan_storage(self.settings.storage_search_radius)
        for location, items in nearby.items():
            self.context.record_storage(location, items)

        if nearby:
            location = next(iter(nearby))
            outcome = StorageOutcome.STASHED_EXISTING
        else:
            location = self._create_container(task, acquire_container)
            if location is None:
                return self._degraded(task, "no container available")
            outcome = StorageOutcome.STASHED_NEW

        result = self.capabilities.store_items(location, surplus)
        if not result.stored:
            return self._degraded(task, f"nothing stored at {location}")

        entry = self.context.record_storage(location)
        for item, count in result.stored.items():
            entry.items[item] = entry.items.get(item, 0) + count

        log_with_context(
            "info",
            "surplus_stashed",
            task_id=task.id,
            location=location,
            stored=result.stored,
            outcome=outcome.value,
        )
        return outcome

    def _create_container(
        self,
        task: Task,
        acquire_container: Optional[Callable[[], bool]],
    ) -> Optional[str]:
        if not self.settings.auto_container_creation:
            return None

        container = self.settings.container_item
        if self.capabilities.inventory_snapshot().get(container, 0) < 1:
            if acquire_container is None or not acquire_container():
                return None

        placed = self.capabilities.place_container(None)
        if not placed.placed or not placed.location:
            return None

        self.context.record_storage(placed.location, {}, kind=container)
        logger.info(
            f"Placed new {container} at {placed.location}",
            extra={"task_id": task.id},
        )
        return placed.location

    def surplus_items(self, task: Task) -> Dict[str, int]:
        """Held items the running task has no further use for."""
        keep = self._protected_items(task)
        return {
            item: count
            for item, count in self.capabilities.inventory_snapshot().items()
            if count > 0
            and item not in keep
            and tool_family(item) is None
            and item not in self.knowledge.fuel_sources
        }

    def _protected_items(self, task: Task) -> Set[str]:
        keep: Set[str] = set(task.requirements)
        keep.add(self.settings.container_item)
        for subtask in task.subtasks:
            if subtask.status == SubtaskStatus.COMPLETED:
                continue
            keep.add(subtask.target)
            if isinstance(subtask, CraftSubtask):
                recipe = self.knowledge.get_recipe(subtask.item_name)
                if recipe is not None:
                    keep.update(recipe.ingredients)
            elif isinstance(subtask, SmeltSubtask):
                keep.update(subtask.input_items)
            elif isinstance(subtask, GatherFuelSubtask):
                keep.update(subtask.target_items)
        return keep

    def _degraded(self, task: Task, reason: str) -> StorageOutcome:
        logger.warning(
            f"Inventory near capacity, continuing without storage: {reason}",
            extra={"task_id": task.id},
        )
        return StorageOutcome.DEGRADED
