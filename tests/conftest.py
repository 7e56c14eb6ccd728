"""
Pytest Configuration and Shared Fixtures
=========================================

Provides an in-memory capability registry and pre-wired engine parts.

Author: Quarry Development Team
"""

from typing import Callable, Optional

import pytest

from quarry.config import EngineSettings
from quarry.core.context import AgentContext
from quarry.knowledge.recipes import CRAFT_RECIPES, KnowledgeBase
from quarry.knowledge.tools import ToolFeasibilityModel
from quarry.orchestrator.capabilities import (
    CapabilityOutcome,
    CraftResult,
    GatherResult,
    PlaceResult,
    SmeltResult,
    StoreResult,
    UpgradeResult,
    outcome_for,
)
from quarry.orchestrator.manager import TaskManager
from quarry.planning.analyzer import RequirementAnalyzer


class FakeCapabilities:
    """
    Capability registry backed by a plain dict inventory.

    Every producing call adds the requested quantity unless ``yields``
    overrides it. ``on_call`` runs before the call takes effect, so a
    hook can request suspension while the subtask still completes.

    With ``consume`` set, crafting and smelting use up their inputs and
    produce nothing when the inventory is short.
    """

    def __init__(self, inventory: Optional[dict] = None, consume: bool = False) -> None:
        self.inventory: dict[str, int] = dict(inventory or {})
        self.consume = consume
        self.yields: dict[str, int] = {}
        self.raise_on: set[str] = set()
        self.containers: dict[str, dict[str, int]] = {}
        self.free_slots: Optional[int] = None
        self.calls: list[tuple] = []
        self.on_call: Optional[Callable[[str, tuple], None]] = None

    def _enter(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if self.on_call is not None:
            self.on_call(name, args)

    def _produce(self, item: str, quantity: int) -> int:
        if item in self.raise_on:
            raise RuntimeError(f"simulated failure producing {item}")
        amount = self.yields.get(item, quantity)
        if amount > 0:
            self.inventory[item] = self.inventory.get(item, 0) + amount
        return amount

    def _take(self, items: dict) -> bool:
        if any(self.inventory.get(item, 0) < count for item, count in items.items()):
            return False
        for item, count in items.items():
            self.inventory[item] -= count
        return True

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    # ─── CapabilityRegistry ──────────────────────────────────────

    def gather(self, item_or_block: str, quantity: int) -> GatherResult:
        self._enter("gather", item_or_block, quantity)
        acquired = self._produce(item_or_block, quantity)
        return GatherResult(acquired=acquired, outcome=outcome_for(acquired, quantity))

    def craft(self, item: str, quantity: int) -> CraftResult:
        self._enter("craft", item, quantity)
        if self.consume and not self._take(CRAFT_RECIPES[item].scaled(quantity)):
            return CraftResult(crafted=0, message=f"missing ingredients for {item}")
        crafted = self._produce(item, quantity)
        return CraftResult(crafted=crafted, outcome=outcome_for(crafted, quantity))

    def smelt(self, input_items: list, output_item: str, quantity: int) -> SmeltResult:
        self._enter("smelt", tuple(input_items), output_item, quantity)
        if self.consume and not self._take({input_items[0]: quantity}):
            return SmeltResult(produced=0, message=f"missing {input_items[0]}")
        produced = self._produce(output_item, quantity)
        return SmeltResult(produced=produced, outcome=outcome_for(produced, quantity))

    def upgrade_tool(self, tool: str) -> UpgradeResult:
        self._enter("upgrade_tool", tool)
        acquired = self._produce(tool, 1) > 0
        return UpgradeResult(
            acquired=acquired,
            outcome=CapabilityOutcome.SUCCESS if acquired else CapabilityOutcome.FAILURE,
        )

    def scan_storage(self, radius: int) -> dict:
        self._enter("scan_storage", radius)
        return {location: dict(items) for location, items in self.containers.items()}

    def place_container(self, position: Optional[str]) -> PlaceResult:
        self._enter("place_container", position)
        if self.inventory.get("chest", 0) < 1:
            return PlaceResult(placed=False)
        self.inventory["chest"] -= 1
        location = f"chest_{len(self.containers) + 1}"
        self.containers[location] = {}
        return PlaceResult(placed=True, location=location, outcome=CapabilityOutcome.SUCCESS)

    def store_items(self, location: str, items: dict) -> StoreResult:
        self._enter("store_items", location, dict(items))
        container = self.containers.setdefault(location, {})
        stored = {}
        for item, count in items.items():
            moved = min(count, self.inventory.get(item, 0))
            if moved <= 0:
                continue
            self.inventory[item] -= moved
            container[item] = container.get(item, 0) + moved
            stored[item] = moved
        return StoreResult(
            stored=stored,
            outcome=CapabilityOutcome.SUCCESS if stored else CapabilityOutcome.FAILURE,
        )

    def inventory_snapshot(self) -> dict:
        return {item: count for item, count in self.inventory.items() if count > 0}

    def empty_capacity(self) -> int:
        if self.free_slots is not None:
            return self.free_slots
        return max(0, 36 - len(self.inventory_snapshot()))


# ============================================================
# ENGINE FIXTURES
# ============================================================

@pytest.fixture
def settings() -> EngineSettings:
    """Default settings, independent of the environment."""
    return EngineSettings(history_db_path=None, log_file=None)


@pytest.fixture
def context() -> AgentContext:
    return AgentContext()


@pytest.fixture
def caps() -> FakeCapabilities:
    """Empty-handed agent."""
    return FakeCapabilities()


@pytest.fixture
def knowledge(context: AgentContext) -> KnowledgeBase:
    return KnowledgeBase(overlay=context)


@pytest.fixture
def analyzer(caps, context, settings, knowledge) -> RequirementAnalyzer:
    tools = ToolFeasibilityModel(loadout=lambda: list(caps.inventory_snapshot()))
    return RequirementAnalyzer(knowledge, tools, caps.inventory_snapshot, context, settings)


@pytest.fixture
def manager(caps, settings, context) -> TaskManager:
    return TaskManager(caps, settings=settings, context=context)
