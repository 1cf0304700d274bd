"""Tests for combat and spell resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rpg_engine.core.exceptions import CombatError
from rpg_engine.engine.combat import CombatEngine
from rpg_engine.engine.dice import DiceRoller
from rpg_engine.models.combat import CombatantStats, Spell, SpellEffect, Weapon
from rpg_engine.models.enums import (
    Ability,
    DamageType,
    DefenseMode,
    EffectKind,
)


if TYPE_CHECKING:
    from conftest import ScriptedRandom


@pytest.fixture
def shortsword() -> Weapon:
    return Weapon(id="shortsword", name="Shortsword", damage_dice="1d6", damage_type=DamageType.PIERCING)


class TestAttackBonus:
    """Tests for attack bonus derivation."""

    def test_melee_uses_strength(self, combat_engine: CombatEngine, fighter: CombatantStats) -> None:
        """Test melee attacks use STR + proficiency."""
        assert combat_engine.attack_bonus(fighter, fighter.equipped_weapon) == 5

    def test_ranged_uses_dexterity(
        self, combat_engine: CombatEngine, fighter: CombatantStats, shortbow: Weapon
    ) -> None:
        """Test ranged attacks use DEX + proficiency."""
        assert combat_engine.attack_ability(shortbow) == Ability.DEX
        assert combat_engine.attack_bonus(fighter, shortbow) == 4

    def test_weapon_attack_bonus(self, combat_engine: CombatEngine, fighter: CombatantStats) -> None:
        """Test a magic weapon's attack bonus is added."""
        magic = Weapon(name="+1 Longsword", damage_dice="1d8", attack_bonus=1)
        assert combat_engine.attack_bonus(fighter, magic) == 6

    def test_can_attack(
        self, combat_engine: CombatEngine, fighter: CombatantStats, goblin: CombatantStats
    ) -> None:
        """Test attack legality."""
        assert combat_engine.can_attack(fighter, goblin) is True
        assert combat_engine.can_attack(fighter, fighter) is False
        goblin.hp_current = 0
        assert combat_engine.can_attack(fighter, goblin) is False


class TestAttack:
    """Tests for attack resolution."""

    def test_seeded_hit(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        goblin: CombatantStats,
        shortsword: Weapon,
    ) -> None:
        """Test the canonical hit: d20 12 + 5 = 17 vs AC 15, 1d6 4 + 3 = 7 damage."""
        scripted_rng.push(12, 4)
        outcome = combat_engine.attack(fighter, goblin, shortsword)

        assert outcome.attack_roll == 17
        assert outcome.natural_roll == 12
        assert outcome.hit is True
        assert outcome.critical is False
        assert outcome.damage == 7
        assert outcome.damage_rolls == [4]
        assert outcome.damage_type == DamageType.PIERCING
        assert outcome.target_hp_remaining == 0
        assert goblin.hp_current == 0

    def test_tie_with_armor_class_hits(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        goblin: CombatantStats,
    ) -> None:
        """Test that meeting the armor class exactly is a hit."""
        scripted_rng.push(10, 1)
        outcome = combat_engine.attack(fighter, goblin)
        assert outcome.attack_roll == 15
        assert outcome.hit is True
        assert outcome.weapon_name == "Longsword"

    def test_miss(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        goblin: CombatantStats,
    ) -> None:
        """Test a miss deals no damage and draws no damage dice."""
        scripted_rng.push(9)
        outcome = combat_engine.attack(fighter, goblin)
        assert outcome.hit is False
        assert outcome.damage == 0
        assert goblin.hp_current == 7
        assert len(scripted_rng.calls) == 1
        assert "misses" in outcome.description

    def test_natural_one_never_hits(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
    ) -> None:
        """Test a fumble misses even when the total beats the armor class."""
        target = CombatantStats(id="dummy", name="Training Dummy", armor_class=2, hp_current=20, hp_max=20)
        scripted_rng.push(1)
        outcome = combat_engine.attack(fighter, target)
        assert outcome.attack_roll == 6
        assert outcome.fumble is True
        assert outcome.hit is False
        assert outcome.damage == 0
        assert target.hp_current == 20
        assert "fumbles" in outcome.description

    def test_natural_twenty_hits_and_doubles_dice(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        ogre: CombatantStats,
    ) -> None:
        """Test a critical hit rolls the damage dice twice and adds modifiers once."""
        ogre.armor_class = 30
        scripted_rng.push(20, 3, 5)
        outcome = combat_engine.attack(fighter, ogre)
        assert outcome.critical is True
        assert outcome.hit is True
        assert outcome.damage_rolls == [3, 5]
        assert outcome.damage == 11
        assert ogre.hp_current == 48
        assert outcome.description.startswith("Critical hit!")

    def test_damage_floors_at_one(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, goblin: CombatantStats
    ) -> None:
        """Test a hit always deals at least one damage."""
        weakling = CombatantStats(id="weakling", name="Weakling", strength=1)
        goblin.armor_class = 5
        scripted_rng.push(10, 1)
        outcome = combat_engine.attack(weakling, goblin)
        assert outcome.hit is True
        assert outcome.damage == 1
        assert outcome.weapon_name == "unarmed strike"
        assert outcome.damage_type == DamageType.BLUDGEONING

    def test_damage_bonus_added(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        ogre: CombatantStats,
    ) -> None:
        """Test a weapon's damage bonus is added to the damage."""
        axe = Weapon(name="Flame Axe", damage_dice="1d12+1", damage_bonus=2, damage_type=DamageType.FIRE)
        scripted_rng.push(15, 6)
        outcome = combat_engine.attack(fighter, ogre, axe)
        assert outcome.damage == 12

    def test_hit_points_floor_at_zero(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        goblin: CombatantStats,
    ) -> None:
        """Test overkill damage does not take hit points below zero."""
        scripted_rng.push(18, 8)
        outcome = combat_engine.attack(fighter, goblin)
        assert outcome.damage == 11
        assert goblin.hp_current == 0

    def test_advantage_keeps_higher(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        ogre: CombatantStats,
    ) -> None:
        """Test attacking with advantage."""
        scripted_rng.push(3, 14, 4)
        outcome = combat_engine.attack(fighter, ogre, advantage=True)
        assert outcome.attack_roll == 19
        assert outcome.natural_roll == 14

    def test_advantage_and_disadvantage_cancel(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        ogre: CombatantStats,
    ) -> None:
        """Test that advantage and disadvantage together roll once."""
        scripted_rng.push(2)
        outcome = combat_engine.attack(fighter, ogre, advantage=True, disadvantage=True)
        assert outcome.hit is False
        assert len(scripted_rng.calls) == 1


class TestDefense:
    """Tests for defensive reactions."""

    def test_dodge_success(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, fighter: CombatantStats
    ) -> None:
        """Test a dodge is a DEX check against the defense DC."""
        scripted_rng.push(13)
        outcome = combat_engine.defend(fighter, DefenseMode.DODGE)
        assert outcome.success is True
        assert outcome.roll == 15
        assert outcome.dc == 15

    def test_block_always_succeeds(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, goblin: CombatantStats
    ) -> None:
        """Test blocking succeeds without a roll."""
        outcome = combat_engine.defend(goblin, "block")
        assert outcome.success is True
        assert outcome.damage_reduction == 2
        assert outcome.roll is None
        assert scripted_rng.calls == []

    def test_parry_without_weapon_fails(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, goblin: CombatantStats
    ) -> None:
        """Test parrying unarmed fails outright."""
        outcome = combat_engine.defend(goblin, DefenseMode.PARRY)
        assert outcome.success is False
        assert scripted_rng.calls == []

    def test_parry_uses_strength(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, fighter: CombatantStats
    ) -> None:
        """Test a parry is a STR check."""
        scripted_rng.push(11)
        outcome = combat_engine.defend(fighter, DefenseMode.PARRY)
        assert outcome.roll == 14
        assert outcome.success is False
        assert "fails to parry" in outcome.description

    def test_custom_defense_dc(self, scripted_rng: ScriptedRandom, fighter: CombatantStats) -> None:
        """Test the defense DC is configurable."""
        engine = CombatEngine(DiceRoller(scripted_rng), defense_dc=10)
        scripted_rng.push(8)
        assert engine.defend(fighter, DefenseMode.DODGE).success is True


class TestSpells:
    """Tests for spell resolution."""

    def test_save_dc(self, combat_engine: CombatEngine, wizard: CombatantStats, fireball: Spell) -> None:
        """Test the save DC formula: 8 + proficiency + casting modifier."""
        assert combat_engine.save_dc(wizard, fireball) == 15

    def test_fixed_dc_overrides(self, combat_engine: CombatEngine, wizard: CombatantStats) -> None:
        """Test a spell's fixed DC wins over the formula."""
        spell = Spell(name="Glyph", level=3, fixed_dc=13)
        assert combat_engine.save_dc(wizard, spell) == 13

    def test_casting_ability_by_class(self) -> None:
        """Test class families map to their casting ability."""
        assert CombatantStats(id="c", name="Cleric", character_class="Cleric").casting_ability == Ability.WIS
        assert CombatantStats(id="b", name="Bard", character_class="bard").casting_ability == Ability.CHA
        assert CombatantStats(id="r", name="Rogue", character_class="rogue").casting_ability == Ability.INT

    def test_damage_spell_with_saves(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        wizard: CombatantStats,
        goblin: CombatantStats,
        ogre: CombatantStats,
        fireball: Spell,
    ) -> None:
        """Test savers take half damage, rounded down."""
        scripted_rng.push(13, 10)
        scripted_rng.push(*[3] * 8)
        outcome = combat_engine.cast_spell(wizard, fireball, [goblin, ogre])

        assert outcome.save_dc == 15
        assert [s.success for s in outcome.saves] == [True, False]
        assert outcome.damage == 24
        assert outcome.damage_type == DamageType.FIRE
        assert outcome.damage_rolls == [3] * 8
        assert outcome.per_target == {"goblin": 7, "ogre": 24}
        assert goblin.hp_current == 0
        assert ogre.hp_current == 35
        assert "1/2 targets save" in outcome.description

    def test_upcast_adds_flat_damage(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        wizard: CombatantStats,
        ogre: CombatantStats,
        fireball: Spell,
    ) -> None:
        """Test casting above base level adds damage per extra level."""
        scripted_rng.push(2)
        scripted_rng.push(*[1] * 8)
        outcome = combat_engine.cast_spell(wizard, fireball, [ogre], cast_level=5)
        assert outcome.cast_level == 5
        assert outcome.damage == 20
        assert ogre.hp_current == 39
        assert "at level 5" in outcome.description

    def test_healing_spell(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        wizard: CombatantStats,
        fighter: CombatantStats,
        cure_wounds: Spell,
    ) -> None:
        """Test healing is applied, capped at max, and reported as negative damage."""
        fighter.hp_current = 10
        scripted_rng.push(5)
        outcome = combat_engine.cast_spell(wizard, cure_wounds, [fighter], cast_level=2)
        assert outcome.damage == -12
        assert outcome.per_target == {"fighter": -12}
        assert fighter.hp_current == 22
        assert outcome.saves == []

    def test_healing_capped_at_max(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        wizard: CombatantStats,
        fighter: CombatantStats,
        cure_wounds: Spell,
    ) -> None:
        """Test healing never exceeds maximum hit points."""
        fighter.hp_current = 25
        scripted_rng.push(8)
        outcome = combat_engine.cast_spell(wizard, cure_wounds, [fighter])
        assert fighter.hp_current == 28
        assert outcome.per_target == {"fighter": -3}

    @pytest.mark.parametrize("level", [2, 10])
    def test_invalid_cast_level(
        self, combat_engine: CombatEngine, wizard: CombatantStats, fireball: Spell, level: int
    ) -> None:
        """Test casting below base level or above the highest slot is rejected."""
        with pytest.raises(CombatError):
            combat_engine.cast_spell(wizard, fireball, [], cast_level=level)

    def test_other_effects_are_narrative(
        self, combat_engine: CombatEngine, wizard: CombatantStats, goblin: CombatantStats
    ) -> None:
        """Test non-damage, non-healing effects become narrative lines."""
        spell = Spell(
            name="Blindness",
            level=2,
            effects=[SpellEffect(kind=EffectKind.OTHER, description="The target is blinded.")],
        )
        outcome = combat_engine.cast_spell(wizard, spell, [goblin])
        assert outcome.additional_effects == ["The target is blinded."]
        assert outcome.damage == 0
        assert goblin.hp_current == 7

    def test_concentration_replaces_previous(
        self, combat_engine: CombatEngine, wizard: CombatantStats
    ) -> None:
        """Test a new concentration spell ends the previous one."""
        combat_engine.cast_spell(wizard, Spell(name="Bless", level=1, concentration=True))
        outcome = combat_engine.cast_spell(wizard, Spell(name="Haste", level=3, concentration=True))
        assert wizard.concentration_spell == "Haste"
        assert outcome.concentration is True
        assert any("stops concentrating on Bless" in line for line in outcome.additional_effects)


class TestInitiativeAndLog:
    """Tests for initiative and the combat log."""

    def test_roll_initiative(
        self, scripted_rng: ScriptedRandom, combat_engine: CombatEngine, fighter: CombatantStats
    ) -> None:
        """Test initiative is d20 + DEX modifier."""
        scripted_rng.push(10)
        assert combat_engine.roll_initiative(fighter) == 12

    def test_order_initiative(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        goblin: CombatantStats,
        ogre: CombatantStats,
    ) -> None:
        """Test a party is ordered by initiative, ties keeping party order."""
        scripted_rng.push(10, 10, 20)
        order = combat_engine.order_initiative([fighter, goblin, ogre])
        assert [(m.id, r) for m, r in order] == [("ogre", 19), ("fighter", 12), ("goblin", 12)]

    def test_history_and_statistics(
        self,
        scripted_rng: ScriptedRandom,
        combat_engine: CombatEngine,
        fighter: CombatantStats,
        ogre: CombatantStats,
        wizard: CombatantStats,
        fireball: Spell,
    ) -> None:
        """Test the combat log feeds the statistics."""
        scripted_rng.push(20, 4, 4)  # critical: 4 + 4 + 3
        combat_engine.attack(fighter, ogre)
        scripted_rng.push(1)  # fumble
        combat_engine.attack(fighter, ogre)
        combat_engine.defend(ogre, DefenseMode.BLOCK)
        scripted_rng.push(20)  # ogre saves
        scripted_rng.push(*[2] * 8)
        combat_engine.cast_spell(wizard, fireball, [ogre])

        assert [e.kind for e in combat_engine.history] == ["attack", "attack", "defense", "spell"]
        stats = combat_engine.statistics()
        assert stats.total_attacks == 2
        assert stats.hits == 1
        assert stats.critical_hits == 1
        assert stats.fumbles == 1
        assert stats.hit_rate == 50.0
        assert stats.total_damage == 11 + 8
        assert stats.spells_cast == 1
        assert stats.successful_defenses == 1

        combat_engine.clear_history()
        assert combat_engine.history == []
        assert combat_engine.statistics().total_attacks == 0
