"""Unit tests for ToolFeasibilityModel."""

from quarry.knowledge.tools import ToolFamily, ToolFeasibilityModel, tool_family, tool_tier


def _model(*tools: str) -> ToolFeasibilityModel:
    return ToolFeasibilityModel(loadout=lambda: list(tools))


def test_iron_ore_without_tools_suggests_stone_pickaxe() -> None:
    suggestions = _model().suggest_upgrades(["iron_ore"])

    assert [s.required_tool for s in suggestions] == ["stone_pickaxe"]
    assert suggestions[0].target == "iron_ore"
    assert suggestions[0].reason == "Cannot mine iron_ore"


def test_wooden_pickaxe_is_not_enough_for_iron() -> None:
    model = _model("wooden_pickaxe")
    assert model.can_perform("stone")
    assert not model.can_perform("iron_ore")
    assert model.minimal_required_tool("iron_ore") == "stone_pickaxe"


def test_higher_tier_satisfies_lower_requirement() -> None:
    model = _model("diamond_pickaxe")
    assert model.can_perform("iron_ore")
    assert model.can_perform("obsidian")
    assert model.suggest_upgrades(["iron_ore", "stone"]) == []


def test_family_must_match() -> None:
    model = _model("diamond_axe", "iron_shovel")
    assert not model.can_perform("stone")


def test_golden_counts_as_lowest_tier() -> None:
    model = _model("golden_pickaxe")
    assert model.can_perform("coal_ore")
    assert not model.can_perform("iron_ore")


def test_unknown_and_tool_free_targets_are_performable() -> None:
    model = _model()
    assert model.can_perform("oak_log")
    assert model.can_perform("dirt")
    assert model.can_perform("unknown_block")
    assert model.minimal_required_tool("oak_log") is None


def test_tier_and_family_from_name() -> None:
    assert tool_tier("wooden_pickaxe") == 0
    assert tool_tier("stone_axe") == 1
    assert tool_tier("iron_shovel") == 2
    assert tool_tier("diamond_pickaxe") == 3
    assert tool_tier("netherite_pickaxe") == 4
    assert tool_family("stone_pickaxe") == ToolFamily.BREAKING
    assert tool_family("stone_axe") == ToolFamily.CUTTING
    assert tool_family("shears") == ToolFamily.SHEARING
    assert tool_family("oak_log") is None


def test_loadout_is_read_on_every_query() -> None:
    held: list[str] = []
    model = ToolFeasibilityModel(loadout=lambda: held)
    assert not model.can_perform("stone")

    held.append("wooden_pickaxe")
    assert model.can_perform("stone")
    assert model.owned_tools() == ["wooden_pickaxe"]
