"""Tests for StorageOverflowManager."""

import logging

import pytest

from quarry.config import EngineSettings
from quarry.core.task import CraftSubtask, Task, TaskStatus
from quarry.orchestrator.storage import StorageOutcome, StorageOverflowManager


@pytest.fixture
def planks_task() -> Task:
    return Task(
        name="planks",
        requirements={"oak_planks": 4},
        subtasks=[CraftSubtask(item_name="oak_planks", quantity=4)],
    )


@pytest.fixture
def overflow(caps, settings, context, knowledge) -> StorageOverflowManager:
    return StorageOverflowManager(caps, settings, context, knowledge)


def test_not_needed_below_high_water(overflow, caps, planks_task):
    caps.inventory.update({"dirt": 10})

    assert overflow.check_and_handle(planks_task) == StorageOutcome.NOT_NEEDED
    assert caps.calls_to("scan_storage") == []


def test_stashes_surplus_in_existing_container(overflow, caps, context, planks_task):
    caps.free_slots = 2
    caps.containers["chest_a"] = {}
    caps.inventory.update({"dirt": 10, "oak_log": 3, "wooden_pickaxe": 1, "coal": 2})

    outcome = overflow.check_and_handle(planks_task)

    assert outcome == StorageOutcome.STASHED_EXISTING
    assert caps.containers["chest_a"] == {"dirt": 10}
    assert "dirt" not in caps.inventory_snapshot()
    # recipe inputs, tools and fuel stay with the agent
    assert caps.inventory["oak_log"] == 3
    assert caps.inventory["wooden_pickaxe"] == 1
    assert caps.inventory["coal"] == 2
    assert context.storage_locations["chest_a"].items == {"dirt": 10}


def test_places_held_container_when_none_nearby(overflow, caps, context, planks_task):
    caps.free_slots = 2
    caps.inventory.update({"dirt": 5, "chest": 1})

    outcome = overflow.check_and_handle(planks_task)

    assert outcome == StorageOutcome.STASHED_NEW
    assert caps.calls_to("place_container") == [("place_container", None)]
    assert caps.containers["chest_1"] == {"dirt": 5}
    assert "chest_1" in context.storage_locations


def test_degrades_without_auto_creation(caps, context, knowledge, planks_task, caplog):
    overflow = StorageOverflowManager(
        caps, EngineSettings(auto_container_creation=False), context, knowledge
    )
    caps.free_slots = 2
    caps.inventory.update({"dirt": 5})

    with caplog.at_level(logging.WARNING, logger="quarry.orchestrator.storage"):
        outcome = overflow.check_and_handle(planks_task)

    assert outcome == StorageOutcome.DEGRADED
    assert "no container available" in caplog.text
    assert caps.inventory["dirt"] == 5


def test_degrades_when_container_cannot_be_acquired(overflow, caps, planks_task):
    caps.free_slots = 2
    caps.inventory.update({"dirt": 5})

    outcome = overflow.check_and_handle(planks_task, acquire_container=lambda: False)

    assert outcome == StorageOutcome.DEGRADED
    assert caps.calls_to("place_container") == []


def test_degrades_when_only_task_materials_are_held(overflow, caps, planks_task):
    caps.free_slots = 0
    caps.inventory.update({"oak_log": 64, "oak_planks": 2})

    assert overflow.check_and_handle(planks_task) == StorageOutcome.DEGRADED
    assert caps.calls_to("scan_storage") == []


def test_capability_error_degrades(overflow, caps, planks_task):
    caps.free_slots = 2
    caps.inventory.update({"dirt": 5})

    def broken_scan(radius):
        raise ConnectionError("world unloaded")

    caps.scan_storage = broken_scan

    assert overflow.check_and_handle(planks_task) == StorageOutcome.DEGRADED


def test_scan_uses_configured_radius(caps, context, knowledge, planks_task):
    overflow = StorageOverflowManager(caps, EngineSettings(storage_search_radius=24), context, knowledge)
    caps.free_slots = 2
    caps.containers["chest_a"] = {}
    caps.inventory.update({"dirt": 5})

    overflow.check_and_handle(planks_task)

    assert caps.calls_to("scan_storage") == [("scan_storage", 24)]


def test_executor_crafts_container_under_pressure(manager, caps):
    caps.free_slots = 2
    caps.inventory.update({"dirt": 5})
    task = manager.create_complex_task("logs", {"oak_log": 1})

    manager.run_next()

    assert task.status == TaskStatus.COMPLETED
    assert ("craft", "chest", 1) in caps.calls
    assert caps.containers["chest_1"] == {"dirt": 5}
