"""Unit tests for Task, Subtask variants and the task state machine."""

from datetime import timedelta

import pytest

from quarry.core.task import (
    CraftSubtask,
    GatherFuelSubtask,
    GatherSubtask,
    SmeltSubtask,
    SubtaskStatus,
    SubtaskType,
    Task,
    TaskPriority,
    TaskProgress,
    TaskStatus,
    ToolUpgradeSubtask,
)
from quarry.exceptions import InvalidTransitionError


class TestSubtasks:
    def test_estimates(self) -> None:
        assert GatherSubtask(item_name="oak_log", block_type="oak_log", quantity=3).estimated_seconds == 30
        assert CraftSubtask(item_name="stick", quantity=4).estimated_seconds == 20
        assert SmeltSubtask(input_items=["sand"], output_item="glass", quantity=2).estimated_seconds == 30
        assert ToolUpgradeSubtask(tool_name="stone_pickaxe").estimated_seconds == 30
        assert GatherFuelSubtask(target_items=["coal"], quantity=10).estimated_seconds == 60

    def test_targets_and_priorities(self) -> None:
        smelt = SmeltSubtask(input_items=["raw_iron"], output_item="iron_ingot")
        fuel = GatherFuelSubtask(target_items=["coal"])
        assert smelt.target == "iron_ingot"
        assert fuel.target == "fuel"
        assert smelt.type == SubtaskType.SMELT
        assert ToolUpgradeSubtask(tool_name="x").priority > fuel.priority > smelt.priority

    def test_add_dependency_is_idempotent(self) -> None:
        craft = CraftSubtask(item_name="stick")
        craft.add_dependency("subtask_1")
        craft.add_dependency("subtask_1")
        assert craft.dependencies == ["subtask_1"]

    def test_ids_are_unique(self) -> None:
        assert CraftSubtask(item_name="a").id != CraftSubtask(item_name="a").id


class TestStateMachine:
    def test_happy_path_sets_timestamps(self) -> None:
        task = Task(name="t")
        task.transition(TaskStatus.IN_PROGRESS)
        assert task.started_at is not None
        task.transition(TaskStatus.COMPLETED)
        assert task.completed_at is not None
        assert task.is_terminal

    @pytest.mark.parametrize(
        "path",
        [
            [TaskStatus.COMPLETED],
            [TaskStatus.SUSPENDED],
            [TaskStatus.IN_PROGRESS, TaskStatus.PLANNED],
            [TaskStatus.IN_PROGRESS, TaskStatus.FAILED, TaskStatus.IN_PROGRESS],
        ],
    )
    def test_invalid_edges_raise(self, path) -> None:
        task = Task(name="t")
        with pytest.raises(InvalidTransitionError):
            for status in path:
                task.transition(status)

    def test_suspension_accumulates_paused_time(self) -> None:
        task = Task(name="t")
        task.transition(TaskStatus.IN_PROGRESS)
        task.transition(TaskStatus.SUSPENDED)
        task.suspended_at -= timedelta(seconds=5)
        task.transition(TaskStatus.IN_PROGRESS)

        assert task.paused_seconds >= 5
        assert task.suspended_at is None

    def test_runtime_excludes_paused_time(self) -> None:
        task = Task(name="t")
        task.transition(TaskStatus.IN_PROGRESS)
        task.started_at -= timedelta(seconds=10)
        task.paused_seconds = 4
        task.transition(TaskStatus.COMPLETED)

        assert 5.5 < task.runtime_seconds() < 6.5

    def test_fail_records_reason(self) -> None:
        task = Task(name="t")
        task.transition(TaskStatus.IN_PROGRESS)
        task.fail("no cobblestone")

        assert task.status == TaskStatus.FAILED
        assert task.outcome_label() == "FAILED: no cobblestone"


class TestProgress:
    def test_progress_never_exceeds_total(self) -> None:
        gather = GatherSubtask(item_name="dirt", block_type="dirt")
        task = Task(name="t", subtasks=[gather], progress=TaskProgress(total=1))

        task.mark_subtask_completed(gather)
        task.mark_subtask_completed(gather)

        assert task.progress.completed == 1
        assert gather.status == SubtaskStatus.COMPLETED
        assert task.first_incomplete_index() is None

    def test_status_report(self) -> None:
        gather = GatherSubtask(item_name="dirt", block_type="dirt", quantity=2)
        task = Task(name="t", priority=TaskPriority.HIGH, subtasks=[gather])

        report = task.status_report()

        assert report["status"] == "PLANNED"
        assert report["priority"] == 50
        assert report["subtasks"] == [
            {"id": gather.id, "type": "GATHER", "status": "PENDING", "target": "dirt", "quantity": 2}
        ]

    def test_to_dict_is_serializable(self) -> None:
        task = Task(name="t", requirements={"dirt": 1}, action=lambda: None)
        data = task.to_dict()

        assert data["requirements"] == {"dirt": 1}
        assert data["started_at"] is None
        assert "action" not in data
        assert data["interruptible"] is True
        assert data["resumable"] is True
        assert "on_pause" not in data
