"""
Capability Contract
===================

The primitive game actions the engine drives, and the result values
they return. Implementations live with the agent (movement, mining,
crafting UI); the engine only sees this protocol.

Every result carries an ``outcome``:
- SUCCESS: the action delivered what was asked
- PARTIAL: something was produced, but less than asked
- FAILURE: nothing was produced
"""

from enum import Enum
from typing import Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class CapabilityOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILURE = "FAILURE"


def outcome_for(produced: int, requested: int) -> CapabilityOutcome:
    """Classify a produced count against the requested count."""
    if produced <= 0:
        return CapabilityOutcome.FAILURE
    if produced < requested:
        return CapabilityOutcome.PARTIAL
    return CapabilityOutcome.SUCCESS


class GatherResult(BaseModel):
    acquired: int = Field(default=0, ge=0, description="Units picked up")
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE
    message: str = ""


class CraftResult(BaseModel):
    crafted: int = Field(default=0, ge=0, description="Units crafted")
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE
    message: str = ""


class SmeltResult(BaseModel):
    produced: int = Field(default=0, ge=0, description="Units taken out of the furnace")
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE
    message: str = ""


class UpgradeResult(BaseModel):
    acquired: bool = False
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE
    message: str = ""


class PlaceResult(BaseModel):
    placed: bool = False
    location: Optional[str] = Field(default=None, description="Where the container now stands")
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE


class StoreResult(BaseModel):
    stored: Dict[str, int] = Field(default_factory=dict, description="Item -> units moved")
    outcome: CapabilityOutcome = CapabilityOutcome.FAILURE


@runtime_checkable
class CapabilityRegistry(Protocol):
    """Game actions supplied by the agent. Any raised exception is a failure."""

    def gather(self, item_or_block: str, quantity: int) -> GatherResult:
        ...

    def craft(self, item: str, quantity: int) -> CraftResult:
        ...

    def smelt(self, input_items: List[str], output_item: str, quantity: int) -> SmeltResult:
        ...

    def upgrade_tool(self, tool: str) -> UpgradeResult:
        ...

    def scan_storage(self, radius: int) -> Dict[str, Dict[str, int]]:
        ...

    def place_container(self, position: Optional[str]) -> PlaceResult:
        ...

    def store_items(self, location: str, items: Dict[str, int]) -> StoreResult:
        ...

    def inventory_snapshot(self) -> Dict[str, int]:
        ...

    def empty_capacity(self) -> int:
        ...
