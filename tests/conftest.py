"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the RPG rules engine test suite.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pytest

from rpg_engine.core.config import DispatchConfig
from rpg_engine.dispatch import ActionDispatcher, ActionServices, build_default_registry
from rpg_engine.engine.combat import CombatEngine
from rpg_engine.engine.dice import DiceRoller
from rpg_engine.engine.turn_manager import TurnScheduler
from rpg_engine.models.combat import CombatantStats, Consumable, Spell, SpellEffect, Weapon
from rpg_engine.models.enums import Ability, DamageType, EffectKind, WeaponCategory
from rpg_engine.storage import EntityRepository


if TYPE_CHECKING:
    from collections.abc import Generator


class ScriptedRandom:
    """Stand-in generator returning scripted values from ``randint``.

    Each call consumes the next scripted value, which must fall inside
    the requested range. Once the script runs out, draws fall back to
    a seeded generator.
    """

    def __init__(self, values: Iterable[int] = ()) -> None:
        self.script: list[int] = list(values)
        self.calls: list[tuple[int, int]] = []
        self._fallback = random.Random(0)

    def push(self, *values: int) -> None:
        self.script.extend(values)

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        if not self.script:
            return self._fallback.randint(a, b)
        value = self.script.pop(0)
        if not a <= value <= b:
            raise AssertionError(f"Scripted value {value} outside [{a}, {b}]")
        return value


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from rpg_engine.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "RPG_ENGINE_DEBUG": "true",
        "RPG_ENGINE_LOG_LEVEL": "DEBUG",
        "RPG_ENGINE_DISPATCH_TIMEOUT_MS": "5000",
        "RPG_ENGINE_DISPATCH_MAX_CONCURRENT_ACTIONS": "5",
        "RPG_ENGINE_GAME_DICE_SEED": "1234",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Dice Fixtures
# =============================================================================


@pytest.fixture
def dice_roller() -> DiceRoller:
    """Provide a seeded dice roller for reproducible tests."""
    return DiceRoller(seed=42)


@pytest.fixture
def scripted_rng() -> ScriptedRandom:
    """Provide a generator whose draws are scripted by the test."""
    return ScriptedRandom()


@pytest.fixture
def scripted_roller(scripted_rng: ScriptedRandom) -> DiceRoller:
    """Provide a dice roller drawing from the scripted generator."""
    return DiceRoller(scripted_rng)


@pytest.fixture
def combat_engine(scripted_roller: DiceRoller) -> CombatEngine:
    return CombatEngine(scripted_roller)


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def longsword() -> Weapon:
    return Weapon(
        id="longsword",
        name="Longsword",
        category=WeaponCategory.MELEE,
        damage_dice="1d8",
        damage_type=DamageType.SLASHING,
    )


@pytest.fixture
def shortbow() -> Weapon:
    return Weapon(
        id="shortbow",
        name="Shortbow",
        category=WeaponCategory.RANGED,
        damage_dice="1d6",
        damage_type=DamageType.PIERCING,
    )


@pytest.fixture
def fighter(longsword: Weapon) -> CombatantStats:
    """A level 3 fighter: STR 16 (+3), DEX 14 (+2), proficiency +2."""
    return CombatantStats(
        id="fighter",
        name="Brienne",
        level=3,
        character_class="fighter",
        strength=16,
        dexterity=14,
        constitution=15,
        proficiency_bonus=2,
        armor_class=17,
        hp_current=28,
        hp_max=28,
        equipped_weapon=longsword,
    )


@pytest.fixture
def wizard() -> CombatantStats:
    """A level 5 wizard: INT 18 (+4), proficiency +3."""
    return CombatantStats(
        id="wizard",
        name="Elminster",
        level=5,
        character_class="wizard",
        intelligence=18,
        dexterity=12,
        proficiency_bonus=3,
        armor_class=12,
        hp_current=22,
        hp_max=22,
    )


@pytest.fixture
def goblin() -> CombatantStats:
    """A goblin: AC 15, 7 HP, DEX 14 (+2), WIS 8 (-1)."""
    return CombatantStats(
        id="goblin",
        name="Goblin",
        character_class="monster",
        strength=8,
        dexterity=14,
        wisdom=8,
        armor_class=15,
        hp_current=7,
        hp_max=7,
    )


@pytest.fixture
def ogre() -> CombatantStats:
    return CombatantStats(
        id="ogre",
        name="Ogre",
        character_class="monster",
        strength=19,
        dexterity=8,
        constitution=16,
        armor_class=11,
        hp_current=59,
        hp_max=59,
    )


@pytest.fixture
def fireball() -> Spell:
    return Spell(
        id="fireball",
        name="Fireball",
        level=3,
        effects=[SpellEffect(kind=EffectKind.DAMAGE, dice="8d6", damage_type=DamageType.FIRE)],
        save_ability=Ability.DEX,
    )


@pytest.fixture
def cure_wounds() -> Spell:
    return Spell(
        id="cure-wounds",
        name="Cure Wounds",
        level=1,
        effects=[SpellEffect(kind=EffectKind.HEALING, dice="1d8+3")],
    )


@pytest.fixture
def healing_potion() -> Consumable:
    return Consumable(id="potion", name="Potion of Healing", effect=EffectKind.HEALING, dice="2d4+2")


# =============================================================================
# Dispatch Fixtures
# =============================================================================


@pytest.fixture
def services(scripted_roller: DiceRoller) -> ActionServices:
    """Provide handler services backed by an in-memory store and scripted dice."""
    return ActionServices(
        repository=EntityRepository(),
        combat=CombatEngine(scripted_roller),
        turns=TurnScheduler(),
        dice=scripted_roller,
    )


@pytest.fixture
def populated_services(
    services: ActionServices,
    fighter: CombatantStats,
    wizard: CombatantStats,
    goblin: CombatantStats,
    ogre: CombatantStats,
    longsword: Weapon,
    shortbow: Weapon,
    fireball: Spell,
    cure_wounds: Spell,
    healing_potion: Consumable,
) -> ActionServices:
    """Services whose repository holds the sample entities."""
    repo = services.repository
    for combatant in (fighter, wizard, goblin, ogre):
        repo.save_combatant(combatant)
    for weapon in (longsword, shortbow):
        repo.save_weapon(weapon)
    for spell in (fireball, cure_wounds):
        repo.save_spell(spell)
    repo.save_consumable(healing_potion)
    return services


@pytest.fixture
def dispatcher(populated_services: ActionServices) -> ActionDispatcher:
    """A dispatcher over the default handlers with unsafe functions allowed."""
    return ActionDispatcher(
        build_default_registry(populated_services),
        config=DispatchConfig(allow_unsafe_functions=True),
    )


@pytest.fixture
def context() -> dict[str, Any]:
    """A complete wire-form action context for the fighter."""
    return {"sessionId": "session-1", "participantId": "fighter", "turn": 1, "round": 1}
