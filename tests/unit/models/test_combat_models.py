"""Tests for combat models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rpg_engine.models.combat import (
    CombatantStats,
    CombatStatistics,
    Spell,
    Weapon,
    ability_modifier,
)
from rpg_engine.models.enums import Ability, DamageType, WeaponCategory


class TestCombatantStats:
    """Tests for CombatantStats."""

    def test_defaults(self) -> None:
        """Test default statistics."""
        stats = CombatantStats(id="npc", name="Villager")
        assert stats.score(Ability.STR) == 10
        assert stats.modifier(Ability.CHA) == 0
        assert stats.is_conscious is True
        assert stats.equipped_weapon is None

    def test_modifiers(self, fighter: CombatantStats) -> None:
        """Test ability modifiers derive from scores."""
        assert fighter.modifier(Ability.STR) == 3
        assert fighter.modifier(Ability.DEX) == 2
        assert fighter.modifier(Ability.CON) == 2

    def test_score_bounds(self) -> None:
        """Test ability scores must be within 1-30."""
        with pytest.raises(ValidationError):
            CombatantStats(id="x", name="X", strength=0)
        with pytest.raises(ValidationError):
            CombatantStats(id="x", name="X", wisdom=31)

    def test_take_damage_floors_at_zero(self, goblin: CombatantStats) -> None:
        """Test damage never takes hit points below zero."""
        assert goblin.take_damage(5) == 5
        assert goblin.hp_current == 2
        assert goblin.take_damage(10) == 2
        assert goblin.hp_current == 0
        assert goblin.is_conscious is False

    def test_negative_damage_ignored(self, goblin: CombatantStats) -> None:
        """Test negative amounts do not heal."""
        assert goblin.take_damage(-3) == 0
        assert goblin.hp_current == 7

    def test_heal_caps_at_max(self, goblin: CombatantStats) -> None:
        """Test healing never exceeds maximum hit points."""
        goblin.take_damage(5)
        assert goblin.heal(10) == 5
        assert goblin.hp_current == 7

    def test_hp_assignment_validated(self, goblin: CombatantStats) -> None:
        """Test assignments are validated."""
        with pytest.raises(ValidationError):
            goblin.hp_current = -1

    @pytest.mark.parametrize(("score", "expected"), [(3, -4), (10, 0), (15, 2), (8, -1)])
    def test_ability_modifier(self, score: int, expected: int) -> None:
        """Test the modifier formula."""
        assert ability_modifier(score) == expected


class TestEquipment:
    """Tests for weapons and spells."""

    def test_weapon_defaults(self) -> None:
        """Test weapon defaults."""
        weapon = Weapon(name="Club")
        assert weapon.category == WeaponCategory.MELEE
        assert weapon.damage_dice == "1d6"
        assert weapon.damage_type == DamageType.SLASHING
        assert weapon.id

    def test_weapon_is_frozen(self, longsword: Weapon) -> None:
        """Test weapons are immutable."""
        with pytest.raises(ValidationError):
            longsword.damage_dice = "2d6"  # type: ignore[misc]

    def test_spell_level_bounds(self) -> None:
        """Test spell levels are within 0-9."""
        assert Spell(name="Light").level == 0
        with pytest.raises(ValidationError):
            Spell(name="Wish+", level=10)


class TestCombatStatistics:
    """Tests for CombatStatistics."""

    def test_hit_rate(self) -> None:
        """Test the hit rate percentage."""
        assert CombatStatistics(total_attacks=3, hits=1).hit_rate == 33.33
        assert CombatStatistics().hit_rate == 0.0

    def test_hit_rate_serialized(self) -> None:
        """Test the computed field appears in dumps."""
        assert CombatStatistics(total_attacks=4, hits=2).model_dump()["hit_rate"] == 50.0
