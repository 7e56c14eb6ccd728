"""Static game knowledge: recipes, sources, fuels and the tool hierarchy."""

from .recipes import (
    CRAFT_RECIPES,
    FUEL_GATHER_TARGETS,
    FUEL_SOURCES,
    ITEM_SOURCES,
    SMELTING_RECIPES,
    KnowledgeBase,
    Recipe,
)
from .tools import (
    TOOL_HIERARCHY,
    BlockCategory,
    ToolFamily,
    ToolFeasibilityModel,
    UpgradeSuggestion,
    tool_family,
    tool_tier,
)

__all__ = [
    "CRAFT_RECIPES",
    "FUEL_GATHER_TARGETS",
    "FUEL_SOURCES",
    "ITEM_SOURCES",
    "SMELTING_RECIPES",
    "KnowledgeBase",
    "Recipe",
    "TOOL_HIERARCHY",
    "BlockCategory",
    "ToolFamily",
    "ToolFeasibilityModel",
    "UpgradeSuggestion",
    "tool_family",
    "tool_tier",
]
