"""
Requirement Analyzer
====================

Expands "have N of item X" into the subtasks of a task.

Expansion is recursive over the knowledge base:
- already held → nothing to do
- craft recipe → ingredients first, then a CRAFT depending on them
- smelt output → source ore, fuel if none is held, then a SMELT
- block source → TOOL_UPGRADE when the loadout cannot break it, then GATHER
- unknown → warning, branch dropped

Each task gets its own analysis state (visited items, producers, depth)
so mutually derivable items terminate and repeated materials merge.

Author: Quarry Development Team
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Set

from quarry.config import EngineSettings
from quarry.core.context import AgentContext
from quarry.core.task import (
    CraftSubtask,
    GatherFuelSubtask,
    GatherSubtask,
    SmeltSubtask,
    Subtask,
    SubtaskStatus,
    Task,
    TaskPriority,
    ToolUpgradeSubtask,
)
from quarry.core.task_graph import SubtaskGraph
from quarry.knowledge.recipes import FUEL_GATHER_TARGETS, KnowledgeBase, Recipe
from quarry.knowledge.tools import ToolFeasibilityModel

logger = logging.getLogger(__name__)


@dataclass
class AnalysisState:
    """
    Per-task memo shared by every branch of one decomposition.

    Holds the task weakly so an analysis that is never finalized does not
    keep its task alive.
    """

    task_ref: "weakref.ReferenceType[Task]"
    inventory: Dict[str, int]
    visiting: Set[str] = field(default_factory=set)
    producers: Dict[str, str] = field(default_factory=dict)
    deepest: int = 0

    @property
    def task(self) -> Task:
        return self.task_ref()


class RequirementAnalyzer:
    """
    Builds subtask lists for tasks.

    Args:
        knowledge: Craft / smelt / source tables
        tools: Feasibility model over the current loadout
        inventory: Returns the current item counts
        context: Agent memory (tool upgrade needs are recorded here)
        settings: Depth bound and fuel quantity
    """

    def __init__(
        self,
        knowledge: KnowledgeBase,
        tools: ToolFeasibilityModel,
        inventory: Callable[[], Mapping[str, int]],
        context: AgentContext,
        settings: EngineSettings,
    ) -> None:
        self.knowledge = knowledge
        self.tools = tools
        self.inventory = inventory
        self.context = context
        self.settings = settings
        self._states: Dict[str, AnalysisState] = {}
        self.last_analysis_depth = 0

    # ─── Public API ──────────────────────────────────────────────

    def plan(
        self,
        name: str,
        requirements: Mapping[str, int],
        description: str = "",
        priority: int = TaskPriority.NORMAL,
    ) -> Task:
        """Create a task and fully decompose it."""
        task = Task(
            name=name,
            requirements=dict(requirements),
            description=description,
            priority=priority,
        )
        return self.analyze_task(task)

    def analyze_task(self, task: Task) -> Task:
        """
        Expand every requirement of ``task`` and order the result.

        Raises:
            DependencyCycleError: The resulting subtasks are not a DAG
            DanglingDependencyError: A dependency points outside the task
        """
        for item_name, quantity in task.requirements.items():
            self.analyze(task, item_name, quantity)
        return self.finalize(task)

    def analyze(self, task: Task, item_name: str, quantity: int) -> Optional[str]:
        """
        Expand one requirement into ``task.subtasks`` in place.

        Calls for the same task share one analysis state until
        ``finalize``; a task dropped without finalizing releases its
        state when it is garbage collected.

        Returns:
            Id of the subtask that produces the item, or None when the
            requirement is already satisfied or cannot be resolved.
        """
        state = self._states.get(task.id)
        if state is None:
            state = AnalysisState(task_ref=weakref.ref(task), inventory=dict(self.inventory()))
            self._states[task.id] = state
            weakref.finalize(task, self._states.pop, task.id, None)
        return self._expand(state, item_name, quantity, depth=0)

    @property
    def open_analyses(self) -> int:
        """Tasks analyzed but not yet finalized."""
        return len(self._states)

    def finalize(self, task: Task) -> Task:
        """Validate, topologically order and count the subtasks of ``task``."""
        state = self._states.pop(task.id, None)
        self.last_analysis_depth = state.deepest if state else 0

        graph = SubtaskGraph.from_subtasks(task.subtasks, task_id=task.id)
        task.subtasks = graph.ordered()
        task.progress.total = len(task.subtasks)
        task.progress.completed = sum(
            1 for st in task.subtasks if st.status == SubtaskStatus.COMPLETED
        )

        logger.info(
            f"Planned task '{task.name}' with {len(task.subtasks)} subtasks",
            extra={"task_id": task.id, "priority": task.priority},
        )
        return task

    # ─── Expansion ───────────────────────────────────────────────

    def _expand(self, state: AnalysisState, item_name: str, quantity: int, depth: int) -> Optional[str]:
        state.deepest = max(state.deepest, depth)
        if depth > self.settings.max_analysis_depth:
            logger.warning(
                f"Analysis depth limit reached at {item_name}",
                extra={"task_id": state.task.id, "depth": depth},
            )
            return None

        available = state.inventory.get(item_name, 0)
        if available >= quantity:
            return None
        needed = quantity - available

        producer_id = state.producers.get(item_name)
        if producer_id is not None:
            return self._merge(state, producer_id, needed, depth)

        if item_name in state.visiting:
            logger.warning(
                f"Cyclic derivation of {item_name}, branch skipped",
                extra={"task_id": state.task.id},
            )
            return None

        state.visiting.add(item_name)
        try:
            recipe = self.knowledge.get_recipe(item_name)
            if recipe is not None:
                producer_id = self._plan_craft(state, item_name, needed, recipe, depth)
                if self.knowledge.is_smeltable_output(item_name):
                    self._plan_smelt(state, item_name, needed, depth)
            elif self.knowledge.is_smeltable_output(item_name):
                producer_id = self._plan_smelt(state, item_name, needed, depth)
            elif self.knowledge.primary_source(item_name) is not None:
                producer_id = self._plan_gather(state, item_name, needed)
            else:
                logger.warning(
                    f"Unknown how to obtain {item_name}",
                    extra={"task_id": state.task.id},
                )
        finally:
            state.visiting.discard(item_name)

        if producer_id is not None:
            state.producers[item_name] = producer_id
        return producer_id

    def _merge(self, state: AnalysisState, producer_id: str, needed: int, depth: int) -> str:
        """
        Reuse an existing producer instead of planning the item twice.

        The producer's quantity becomes the larger of the two requests. A
        raised CRAFT or SMELT re-expands its inputs at the new quantity so
        the subtasks feeding it are raised too.
        """
        existing = state.task.find_subtask(producer_id)
        if existing is None or existing.status != SubtaskStatus.PENDING:
            return producer_id

        if isinstance(existing, GatherSubtask):
            existing.quantity = max(existing.quantity, needed)
            self._require_tools(state, existing)
        elif isinstance(existing, (CraftSubtask, SmeltSubtask)) and needed > existing.quantity:
            existing.quantity = needed
            self._raise_inputs(state, existing, depth)
        return producer_id

    def _raise_inputs(self, state: AnalysisState, producer: Subtask, depth: int) -> None:
        match producer:
            case CraftSubtask(item_name=item_name, quantity=quantity):
                recipe = self.knowledge.get_recipe(item_name)
                inputs = recipe.scaled(quantity) if recipe is not None else {}
            case SmeltSubtask(input_items=[source, *_], quantity=quantity):
                inputs = {source: quantity}
            case _:
                inputs = {}

        state.visiting.add(producer.target)
        try:
            for input_item, count in inputs.items():
                dep_id = self._expand(state, input_item, count, depth + 1)
                if dep_id is not None:
                    producer.add_dependency(dep_id)
        finally:
            state.visiting.discard(producer.target)

    def _plan_craft(
        self,
        state: AnalysisState,
        item_name: str,
        needed: int,
        recipe: Recipe,
        depth: int,
    ) -> str:
        craft = CraftSubtask(item_name=item_name, quantity=needed)
        for ingredient, count in recipe.scaled(needed).items():
            dep_id = self._expand(state, ingredient, count, depth + 1)
            if dep_id is not None:
                craft.add_dependency(dep_id)
        state.task.subtasks.append(craft)
        return craft.id

    def _plan_smelt(self, state: AnalysisState, item_name: str, needed: int, depth: int) -> Optional[str]:
        inputs = self.knowledge.smelt_inputs(item_name)
        chosen = self._choose_smelt_input(state, inputs, needed)
        if chosen is None:
            logger.warning(
                f"No obtainable smelting input for {item_name}",
                extra={"task_id": state.task.id},
            )
            return None

        smelt = SmeltSubtask(
            input_items=[chosen] + [src for src in inputs if src != chosen],
            output_item=item_name,
            quantity=needed,
        )
        dep_id = self._expand(state, chosen, needed, depth + 1)
        if dep_id is not None:
            smelt.add_dependency(dep_id)
        if self.knowledge.held_fuel(state.inventory) is None:
            smelt.add_dependency(self._ensure_fuel(state).id)

        state.task.subtasks.append(smelt)
        return smelt.id

    def _choose_smelt_input(self, state: AnalysisState, inputs: list, needed: int) -> Optional[str]:
        for candidate in inputs:
            if state.inventory.get(candidate, 0) >= needed:
                return candidate
        for candidate in inputs:
            if candidate not in state.visiting and self.knowledge.is_known(candidate):
                return candidate
        return None

    def _ensure_fuel(self, state: AnalysisState) -> Subtask:
        for subtask in state.task.subtasks:
            if isinstance(subtask, GatherFuelSubtask):
                return subtask
        fuel = GatherFuelSubtask(
            target_items=list(FUEL_GATHER_TARGETS),
            quantity=self.settings.fuel_gather_quantity,
        )
        state.task.subtasks.append(fuel)
        return fuel

    def _plan_gather(self, state: AnalysisState, item_name: str, needed: int) -> str:
        source = self.knowledge.primary_source(item_name)
        gather = GatherSubtask(item_name=item_name, block_type=source, quantity=needed)
        self._require_tools(state, gather)
        state.task.subtasks.append(gather)
        return gather.id

    def _require_tools(self, state: AnalysisState, gather: GatherSubtask) -> None:
        """
        Make ``gather`` depend on every TOOL_UPGRADE its source needs.

        Called again on merge, so merged requests carry the union of
        their tool requirements.
        """
        for suggestion in self.tools.suggest_upgrades([gather.block_type]):
            upgrade = self._find_upgrade(state.task, suggestion.required_tool)
            if upgrade is None:
                upgrade = ToolUpgradeSubtask(
                    tool_name=suggestion.required_tool,
                    reason=suggestion.reason,
                )
                state.task.subtasks.append(upgrade)
                self.context.record_tool_need(suggestion.required_tool, suggestion.reason, state.task.id)
                logger.info(
                    f"Tool upgrade required: {suggestion.required_tool}",
                    extra={"task_id": state.task.id, "target": suggestion.target},
                )
            gather.add_dependency(upgrade.id)

    @staticmethod
    def _find_upgrade(task: Task, tool_name: str) -> Optional[ToolUpgradeSubtask]:
        for subtask in task.subtasks:
            if (
                isinstance(subtask, ToolUpgradeSubtask)
                and subtask.tool_name == tool_name
                and subtask.status == SubtaskStatus.PENDING
            ):
                return subtask
        return None
