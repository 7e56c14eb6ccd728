"""
Tool Feasibility Model
======================

Answers "can the current loadout break this block" and "what is the
smallest tool that would let it".

Pure queries over a static hierarchy table plus a read of the current
loadout; no state of its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple


class ToolFamily(str, Enum):
    CUTTING = "cutting"  # axes
    DIGGING = "digging"  # shovels
    BREAKING = "breaking"  # pickaxes
    SHEARING = "shearing"  # shears


@dataclass(frozen=True)
class BlockCategory:
    """A group of blocks sharing a tool family and a minimum tool."""

    name: str
    family: ToolFamily
    blocks: Tuple[str, ...]
    min_tool: Optional[str] = None


# Ordered: first match wins. golden tools mine like wooden ones.
TIER_VOCABULARY: List[Tuple[str, int]] = [
    ("wooden", 0),
    ("golden", 0),
    ("stone", 1),
    ("iron", 2),
    ("diamond", 3),
    ("netherite", 4),
]

# Checked in order, so "pickaxe" must precede "axe".
FAMILY_VOCABULARY: List[Tuple[str, ToolFamily]] = [
    ("pickaxe", ToolFamily.BREAKING),
    ("axe", ToolFamily.CUTTING),
    ("shovel", ToolFamily.DIGGING),
    ("shears", ToolFamily.SHEARING),
]

TOOL_HIERARCHY: List[BlockCategory] = [
    BlockCategory(
        "wood",
        ToolFamily.CUTTING,
        (
            "oak_log", "birch_log", "spruce_log", "jungle_log", "acacia_log",
            "dark_oak_log", "mangrove_log", "cherry_log", "oak_planks",
            "birch_planks", "spruce_planks",
        ),
    ),
    BlockCategory(
        "stone",
        ToolFamily.BREAKING,
        (
            "stone", "cobblestone", "granite", "diorite", "andesite", "deepslate",
            "coal_ore", "deepslate_coal_ore", "netherrack",
        ),
        min_tool="wooden_pickaxe",
    ),
    BlockCategory(
        "iron_tier",
        ToolFamily.BREAKING,
        (
            "iron_ore", "deepslate_iron_ore", "raw_iron_block", "copper_ore",
            "deepslate_copper_ore", "lapis_ore", "deepslate_lapis_ore",
        ),
        min_tool="stone_pickaxe",
    ),
    BlockCategory(
        "iron_tool_tier",
        ToolFamily.BREAKING,
        (
            "gold_ore", "deepslate_gold_ore", "redstone_ore", "deepslate_redstone_ore",
            "emerald_ore", "deepslate_emerald_ore",
        ),
        min_tool="iron_pickaxe",
    ),
    BlockCategory(
        "diamond_tier",
        ToolFamily.BREAKING,
        ("diamond_ore", "deepslate_diamond_ore"),
        min_tool="iron_pickaxe",
    ),
    BlockCategory(
        "obsidian_tier",
        ToolFamily.BREAKING,
        ("obsidian", "crying_obsidian", "ancient_debris"),
        min_tool="diamond_pickaxe",
    ),
    BlockCategory(
        "earth",
        ToolFamily.DIGGING,
        ("dirt", "grass_block", "sand", "gravel", "clay", "soul_sand", "soul_soil"),
    ),
    BlockCategory(
        "leaves",
        ToolFamily.SHEARING,
        ("oak_leaves", "birch_leaves", "spruce_leaves", "jungle_leaves"),
    ),
]


def tool_tier(tool_name: str) -> int:
    """Tier of a tool by name (0 wooden ... 4 netherite). Unknown names are tier 0."""
    for pattern, tier in TIER_VOCABULARY:
        if pattern in tool_name:
            return tier
    return 0


def tool_family(tool_name: str) -> Optional[ToolFamily]:
    for pattern, family in FAMILY_VOCABULARY:
        if pattern in tool_name:
            return family
    return None


@dataclass(frozen=True)
class UpgradeSuggestion:
    target: str
    required_tool: str
    reason: str


@dataclass
class ToolFeasibilityModel:
    """
    Feasibility queries against the current loadout.

    Attributes:
        loadout: Returns the item names currently held
        hierarchy: Block categories, first match wins
    """

    loadout: Callable[[], Iterable[str]]
    hierarchy: List[BlockCategory] = field(default_factory=lambda: list(TOOL_HIERARCHY))

    def __post_init__(self) -> None:
        self._by_block: Dict[str, BlockCategory] = {}
        for category in self.hierarchy:
            for block in category.blocks:
                self._by_block.setdefault(block, category)

    def category_for(self, target: str) -> Optional[BlockCategory]:
        return self._by_block.get(target)

    def owned_tools(self) -> List[str]:
        return [name for name in self.loadout() if tool_family(name) is not None]

    def minimal_required_tool(self, target: str) -> Optional[str]:
        """Smallest tool the target demands, or None if bare hands do."""
        category = self.category_for(target)
        return category.min_tool if category else None

    def can_perform(self, target: str) -> bool:
        """
        True when some owned tool satisfies the target.

        Unknown targets, and categories without a minimum tool, are
        always performable. Otherwise the tool family must match and the
        tool tier must reach the minimum tool's tier.
        """
        category = self.category_for(target)
        if category is None or category.min_tool is None:
            return True

        min_tier = tool_tier(category.min_tool)
        for tool in self.owned_tools():
            if tool_family(tool) == category.family and tool_tier(tool) >= min_tier:
                return True
        return False

    def suggest_upgrades(self, targets: Iterable[str]) -> List[UpgradeSuggestion]:
        """Minimum tool for each infeasible target (never a better one)."""
        suggestions: List[UpgradeSuggestion] = []
        for target in targets:
            if self.can_perform(target):
                continue
            required = self.minimal_required_tool(target)
            if required:
                suggestions.append(
                    UpgradeSuggestion(
                        target=target,
                        required_tool=required,
                        reason=f"Cannot mine {target}",
                    )
                )
        return suggestions
