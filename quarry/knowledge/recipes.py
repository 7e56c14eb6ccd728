"""
Crafting Knowledge Base
=======================

Static craft, smelt, fuel and source tables the analyzer expands
requirements against. Greedy first-match: every item has at most one
craft recipe and sources are listed best-first.

Recipes learned at runtime (kept in the agent context) override the
static craft table.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol


@dataclass(frozen=True)
class Recipe:
    """Ingredients consumed by one craft batch and the units it yields."""

    ingredients: Mapping[str, int] = field(default_factory=dict)
    yields: int = 1

    def batches_for(self, quantity: int) -> int:
        return max(1, math.ceil(quantity / self.yields))

    def scaled(self, quantity: int) -> Dict[str, int]:
        """Ingredient totals needed to produce at least ``quantity`` units."""
        batches = self.batches_for(quantity)
        return {name: count * batches for name, count in self.ingredients.items()}


_TOOL_MATERIALS = {
    "wooden": "oak_planks",
    "stone": "cobblestone",
    "iron": "iron_ingot",
    "golden": "gold_ingot",
    "diamond": "diamond",
}

# (material count, stick count) per tool shape
_TOOL_SHAPES = {
    "pickaxe": (3, 2),
    "axe": (3, 2),
    "shovel": (1, 2),
    "sword": (2, 1),
    "hoe": (2, 2),
}

CRAFT_RECIPES: Dict[str, Recipe] = {
    "oak_planks": Recipe({"oak_log": 1}, yields=4),
    "birch_planks": Recipe({"birch_log": 1}, yields=4),
    "spruce_planks": Recipe({"spruce_log": 1}, yields=4),
    "stick": Recipe({"oak_planks": 2}, yields=4),
    "crafting_table": Recipe({"oak_planks": 4}),
    "chest": Recipe({"oak_planks": 8}),
    "furnace": Recipe({"cobblestone": 8}),
    "torch": Recipe({"coal": 1, "stick": 1}, yields=4),
    "ladder": Recipe({"stick": 7}, yields=3),
    "bucket": Recipe({"iron_ingot": 3}),
    "shears": Recipe({"iron_ingot": 2}),
    "iron_block": Recipe({"iron_ingot": 9}),
    "glass_pane": Recipe({"glass": 6}, yields=16),
    "stone_bricks": Recipe({"stone": 4}, yields=4),
    "bread": Recipe({"wheat": 3}),
    "oak_door": Recipe({"oak_planks": 6}, yields=3),
    "oak_fence": Recipe({"oak_planks": 4, "stick": 2}, yields=3),
    **{
        f"{tier}_{shape}": Recipe({material: head, "stick": sticks})
        for tier, material in _TOOL_MATERIALS.items()
        for shape, (head, sticks) in _TOOL_SHAPES.items()
    },
}

# input -> output; the first input listed for an output is the preferred source
SMELTING_RECIPES: Dict[str, str] = {
    "raw_iron": "iron_ingot",
    "iron_ore": "iron_ingot",
    "deepslate_iron_ore": "iron_ingot",
    "raw_gold": "gold_ingot",
    "gold_ore": "gold_ingot",
    "deepslate_gold_ore": "gold_ingot",
    "raw_copper": "copper_ingot",
    "copper_ore": "copper_ingot",
    "deepslate_copper_ore": "copper_ingot",
    "cobblestone": "stone",
    "sand": "glass",
    "clay_ball": "brick",
    "netherrack": "nether_brick",
    "cactus": "green_dye",
    "oak_log": "charcoal",
}

FUEL_SOURCES: List[str] = [
    "coal",
    "charcoal",
    "blaze_rod",
    "lava_bucket",
    "oak_planks",
    "birch_planks",
    "spruce_planks",
    "oak_log",
    "birch_log",
    "spruce_log",
]

# Candidate fuels a GATHER_FUEL subtask tries, in order.
FUEL_GATHER_TARGETS: List[str] = ["coal", "charcoal", "oak_log"]

# item -> blocks that drop it, primary first
ITEM_SOURCES: Dict[str, List[str]] = {
    "oak_log": ["oak_log"],
    "birch_log": ["birch_log"],
    "spruce_log": ["spruce_log"],
    "cobblestone": ["stone", "cobblestone"],
    "dirt": ["dirt", "grass_block"],
    "sand": ["sand"],
    "gravel": ["gravel"],
    "flint": ["gravel"],
    "clay_ball": ["clay"],
    "coal": ["coal_ore", "deepslate_coal_ore"],
    "raw_iron": ["iron_ore", "deepslate_iron_ore"],
    "raw_gold": ["gold_ore", "deepslate_gold_ore"],
    "raw_copper": ["copper_ore", "deepslate_copper_ore"],
    "redstone": ["redstone_ore", "deepslate_redstone_ore"],
    "lapis_lazuli": ["lapis_ore", "deepslate_lapis_ore"],
    "diamond": ["diamond_ore", "deepslate_diamond_ore"],
    "emerald": ["emerald_ore", "deepslate_emerald_ore"],
    "obsidian": ["obsidian"],
    "netherrack": ["netherrack"],
    "cactus": ["cactus"],
    "wheat": ["wheat"],
    "oak_leaves": ["oak_leaves"],
}


class RecipeOverlay(Protocol):
    """Anything that can supply runtime-learned recipes (the agent context)."""

    def get_recipe(self, item_name: str) -> Optional[Recipe]:
        ...


class KnowledgeBase:
    """
    Lookup facade over the craft, smelt, fuel and source tables.

    Tables can be replaced wholesale for tests or other game versions.
    """

    def __init__(
        self,
        craft_recipes: Optional[Mapping[str, Recipe]] = None,
        smelting_recipes: Optional[Mapping[str, str]] = None,
        item_sources: Optional[Mapping[str, List[str]]] = None,
        fuel_sources: Optional[List[str]] = None,
        overlay: Optional[RecipeOverlay] = None,
    ) -> None:
        self.craft_recipes = dict(CRAFT_RECIPES if craft_recipes is None else craft_recipes)
        self.smelting_recipes = dict(SMELTING_RECIPES if smelting_recipes is None else smelting_recipes)
        self.item_sources = dict(ITEM_SOURCES if item_sources is None else item_sources)
        self.fuel_sources = list(FUEL_SOURCES if fuel_sources is None else fuel_sources)
        self.overlay = overlay

    def get_recipe(self, item_name: str) -> Optional[Recipe]:
        if self.overlay is not None:
            learned = self.overlay.get_recipe(item_name)
            if learned is not None:
                return learned
        return self.craft_recipes.get(item_name)

    def smelt_inputs(self, output_item: str) -> List[str]:
        """Inputs whose smelt output equals ``output_item``, preferred first."""
        return [src for src, out in self.smelting_recipes.items() if out == output_item]

    def is_smeltable_output(self, item_name: str) -> bool:
        return bool(self.smelt_inputs(item_name))

    def smelt_result(self, input_item: str) -> Optional[str]:
        return self.smelting_recipes.get(input_item)

    def sources_for(self, item_name: str) -> List[str]:
        return list(self.item_sources.get(item_name, []))

    def primary_source(self, item_name: str) -> Optional[str]:
        sources = self.item_sources.get(item_name)
        return sources[0] if sources else None

    def held_fuel(self, inventory: Mapping[str, int]) -> Optional[str]:
        """First fuel the inventory holds, or None."""
        for fuel in self.fuel_sources:
            if inventory.get(fuel, 0) > 0:
                return fuel
        return None

    def is_known(self, item_name: str) -> bool:
        return (
            self.get_recipe(item_name) is not None
            or self.is_smeltable_output(item_name)
            or item_name in self.item_sources
        )
