"""Pydantic V2 schemas for combat resolution.

This module defines the combatant statistics consumed by the combat
engine, the weapons, spells and consumables they use, and the outcome
records the engine produces.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from rpg_engine.models.enums import (
    Ability,
    DamageType,
    DefenseMode,
    EffectKind,
    WeaponCategory,
)


AbilityScore = Annotated[int, Field(ge=1, le=30, description="Ability score (1-30)")]

CASTING_ABILITY_BY_CLASS: dict[str, Ability] = {
    "wizard": Ability.INT,
    "artificer": Ability.INT,
    "cleric": Ability.WIS,
    "druid": Ability.WIS,
    "ranger": Ability.WIS,
    "monk": Ability.WIS,
    "bard": Ability.CHA,
    "sorcerer": Ability.CHA,
    "warlock": Ability.CHA,
    "paladin": Ability.CHA,
}
"""Spellcasting ability per class family; other classes use INT."""


def ability_modifier(score: int) -> int:
    """Calculate an ability modifier: ``(score - 10) // 2``.

    Example:
        >>> ability_modifier(15)
        2
        >>> ability_modifier(8)
        -1
    """
    return (score - 10) // 2


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Equipment & Spells
# =============================================================================


class Weapon(BaseModel):
    """A weapon usable in attacks.

    Attributes:
        id: Unique weapon identifier.
        name: Display name.
        category: Melee, ranged or thrown.
        damage_dice: Damage dice notation (e.g., '1d8').
        damage_type: Type of damage dealt.
        attack_bonus: Flat bonus to attack rolls.
        damage_bonus: Flat bonus to damage rolls.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_id, description="Unique weapon ID")
    name: str = Field(min_length=1, max_length=100, description="Weapon name")
    category: WeaponCategory = Field(default=WeaponCategory.MELEE)
    damage_dice: str = Field(default="1d6", description="Damage dice notation")
    damage_type: DamageType = Field(default=DamageType.SLASHING)
    attack_bonus: int = Field(default=0, ge=-10, le=10)
    damage_bonus: int = Field(default=0, ge=-10, le=10)


class SpellEffect(BaseModel):
    """One effect of a spell."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: EffectKind = Field(description="Damage, healing or other")
    dice: str | None = Field(default=None, description="Dice notation for damage/healing")
    damage_type: DamageType | None = None
    description: str = ""


class Spell(BaseModel):
    """A castable spell.

    Attributes:
        id: Unique spell identifier.
        name: Spell name.
        level: Base spell level (0 for cantrips).
        effects: Effects resolved in order when cast.
        save_ability: Ability targets save with, if any.
        fixed_dc: DC overriding the caster's save DC.
        concentration: Whether the spell requires concentration.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_id, description="Unique spell ID")
    name: str = Field(min_length=1, max_length=100)
    level: int = Field(default=0, ge=0, le=9, description="Base spell level")
    effects: list[SpellEffect] = Field(default_factory=list)
    save_ability: Ability | None = None
    fixed_dc: int | None = Field(default=None, ge=1, le=30)
    concentration: bool = False
    description: str = ""


class Consumable(BaseModel):
    """A single-use item such as a potion or a flask of acid."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_id, description="Unique item ID")
    name: str = Field(min_length=1, max_length=100)
    effect: EffectKind = Field(default=EffectKind.HEALING)
    dice: str = Field(default="2d4+2", description="Dice notation of the effect")
    damage_type: DamageType | None = None
    description: str = ""


# =============================================================================
# Combatants
# =============================================================================


class CombatantStats(BaseModel):
    """The rules-relevant statistics of a combatant.

    Hit points are mutated in place by the combat engine.

    Example:
        >>> stats = CombatantStats(id="hero", name="Aria", dexterity=16, hp_current=12, hp_max=12)
        >>> stats.modifier(Ability.DEX)
        3
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str = Field(min_length=1, description="Unique combatant ID")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    level: int = Field(default=1, ge=1, le=20)
    character_class: str = Field(default="fighter", description="Class name")
    strength: AbilityScore = 10
    dexterity: AbilityScore = 10
    constitution: AbilityScore = 10
    intelligence: AbilityScore = 10
    wisdom: AbilityScore = 10
    charisma: AbilityScore = 10
    proficiency_bonus: int = Field(default=2, ge=0, le=9)
    armor_class: int = Field(default=10, ge=1, le=30)
    hp_current: int = Field(default=10, ge=0)
    hp_max: int = Field(default=10, ge=1)
    equipped_weapon: Weapon | None = None
    concentration_spell: str | None = None
    is_agent: bool = False

    def score(self, ability: Ability) -> int:
        """Get the score for a specific ability."""
        return getattr(self, ability.value)

    def modifier(self, ability: Ability) -> int:
        """Get the modifier for a specific ability."""
        return ability_modifier(self.score(ability))

    @property
    def casting_ability(self) -> Ability:
        return CASTING_ABILITY_BY_CLASS.get(self.character_class.lower(), Ability.INT)

    @property
    def is_conscious(self) -> bool:
        return self.hp_current > 0

    def take_damage(self, amount: int) -> int:
        """Reduce hit points, flooring at zero.

        Returns:
            The hit points actually lost.
        """
        lost = min(max(amount, 0), self.hp_current)
        self.hp_current -= lost
        return lost

    def heal(self, amount: int) -> int:
        """Restore hit points, capped at the maximum.

        Returns:
            The hit points actually restored.
        """
        restored = min(max(amount, 0), self.hp_max - self.hp_current)
        self.hp_current += restored
        return restored


# =============================================================================
# Outcomes
# =============================================================================


class AttackOutcome(BaseModel):
    """The resolved result of a single attack."""

    model_config = ConfigDict(frozen=True)

    attacker_id: str
    target_id: str
    weapon_name: str
    hit: bool
    critical: bool
    fumble: bool
    damage: int = 0
    damage_type: DamageType
    attack_roll: int = Field(description="Attack total")
    natural_roll: int = Field(description="Kept d20 before modifiers")
    attack_bonus: int
    damage_rolls: list[int] = Field(default_factory=list)
    target_ac: int
    target_hp_remaining: int
    description: str


class DefenseOutcome(BaseModel):
    """The resolved result of a defensive reaction."""

    model_config = ConfigDict(frozen=True)

    defender_id: str
    mode: DefenseMode
    success: bool
    roll: int | None = Field(default=None, description="Check total, if a roll was made")
    dc: int | None = None
    damage_reduction: int = 0
    description: str


class SavingThrowResult(BaseModel):
    """One target's saving throw against a spell."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    ability: Ability
    dc: int
    roll: int
    natural_roll: int
    success: bool


class SpellCastOutcome(BaseModel):
    """The resolved result of casting a spell.

    ``damage`` is the net amount: negative values denote healing.
    """

    model_config = ConfigDict(frozen=True)

    caster_id: str
    spell_name: str
    cast_level: int
    save_dc: int
    saves: list[SavingThrowResult] = Field(default_factory=list)
    damage: int = 0
    damage_type: DamageType | None = None
    damage_rolls: list[int] = Field(default_factory=list)
    per_target: dict[str, int] = Field(
        default_factory=dict,
        description="Applied damage (positive) or healing (negative) per target",
    )
    additional_effects: list[str] = Field(default_factory=list)
    concentration: bool = False
    description: str


class CombatLogEntry(BaseModel):
    """An entry in the combat engine's append-only log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    kind: Literal["attack", "defense", "spell"]
    actor_id: str
    timestamp: datetime = Field(default_factory=_utc_now)
    outcome: AttackOutcome | DefenseOutcome | SpellCastOutcome


class CombatStatistics(BaseModel):
    """Aggregate statistics over the combat log."""

    model_config = ConfigDict(frozen=True)

    total_attacks: int = 0
    hits: int = 0
    critical_hits: int = 0
    fumbles: int = 0
    total_damage: int = 0
    spells_cast: int = 0
    defenses: int = 0
    successful_defenses: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hit_rate(self) -> float:
        """Percentage of attacks that hit."""
        if self.total_attacks == 0:
            return 0.0
        return round(self.hits / self.total_attacks * 100, 2)


__all__ = [
    "AbilityScore",
    "CASTING_ABILITY_BY_CLASS",
    "ability_modifier",
    "Weapon",
    "SpellEffect",
    "Spell",
    "Consumable",
    "CombatantStats",
    "AttackOutcome",
    "DefenseOutcome",
    "SavingThrowResult",
    "SpellCastOutcome",
    "CombatLogEntry",
    "CombatStatistics",
]
