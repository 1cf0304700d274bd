"""Enumeration types for the RPG rules engine.

This module defines the closed sets used throughout the engine: ability
scores, damage types, weapon categories, action kinds and the states of
the scheduler and dispatcher.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """The six ability scores.

    Each ability backs a modifier used by attacks, checks and saving
    throws.
    """

    STR = "strength"
    DEX = "dexterity"
    CON = "constitution"
    INT = "intelligence"
    WIS = "wisdom"
    CHA = "charisma"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        return self.value.capitalize()

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation.

        Returns:
            Three-letter abbreviation (e.g., 'STR').
        """
        return self.name


class DamageType(StrEnum):
    """Damage types carried by weapons and spell effects."""

    BLUDGEONING = "bludgeoning"
    PIERCING = "piercing"
    SLASHING = "slashing"
    ACID = "acid"
    COLD = "cold"
    FIRE = "fire"
    FORCE = "force"
    LIGHTNING = "lightning"
    NECROTIC = "necrotic"
    POISON = "poison"
    PSYCHIC = "psychic"
    RADIANT = "radiant"
    THUNDER = "thunder"


class WeaponCategory(StrEnum):
    """Weapon categories; the category selects the attack ability."""

    MELEE = "melee"
    RANGED = "ranged"
    THROWN = "thrown"


class DefenseMode(StrEnum):
    """Defensive reactions available to a combatant."""

    DODGE = "dodge"
    BLOCK = "block"
    PARRY = "parry"


class EffectKind(StrEnum):
    """What a spell effect or consumable does."""

    DAMAGE = "damage"
    HEALING = "healing"
    OTHER = "other"


class ActionKind(StrEnum):
    """Kinds of actions recorded in the turn log."""

    MOVEMENT = "movement"
    ACTION = "action"
    BONUS_ACTION = "bonus_action"
    REACTION = "reaction"
    FREE = "free"


class SchedulerState(StrEnum):
    """Turn scheduler states."""

    EMPTY = "empty"
    ACTIVE = "active"
    PAUSED = "paused"


class FunctionCategory(StrEnum):
    """Catalog categories of dispatchable functions."""

    COMBAT = "combat"
    MOVEMENT = "movement"
    SOCIAL = "social"
    MAGIC = "magic"
    UTILITY = "utility"
    SYSTEM = "system"


class ParameterType(StrEnum):
    """Parameter types declared in the function catalog."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class EventType(StrEnum):
    """Types of events emitted by the dispatcher."""

    ACTION = "action"
    SYSTEM = "system"
    ERROR = "error"
    NOTIFICATION = "notification"


class DispatcherState(StrEnum):
    """Observable dispatcher states."""

    IDLE = "idle"
    PROCESSING = "processing"
    ERROR = "error"
    DISABLED = "disabled"


__all__ = [
    "Ability",
    "DamageType",
    "WeaponCategory",
    "DefenseMode",
    "EffectKind",
    "ActionKind",
    "SchedulerState",
    "FunctionCategory",
    "ParameterType",
    "EventType",
    "DispatcherState",
]
