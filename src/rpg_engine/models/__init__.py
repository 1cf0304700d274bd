"""Pydantic V2 data models for the RPG rules engine.

This package defines the records shared by the engine components: turn
scheduling, combat resolution and the action dispatch protocol.
"""

from __future__ import annotations

from rpg_engine.models.combat import (
    AttackOutcome,
    CombatantStats,
    CombatLogEntry,
    CombatStatistics,
    Consumable,
    DefenseOutcome,
    SavingThrowResult,
    Spell,
    SpellCastOutcome,
    SpellEffect,
    Weapon,
    ability_modifier,
)
from rpg_engine.models.enums import (
    Ability,
    ActionKind,
    DamageType,
    DefenseMode,
    DispatcherState,
    EffectKind,
    EventType,
    FunctionCategory,
    ParameterType,
    SchedulerState,
    WeaponCategory,
)
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEffect,
    ActionEvent,
    ActionRequest,
    ActionResponse,
    ActionResult,
    DispatcherStats,
    DispatchMetrics,
    FunctionParameter,
    FunctionSpec,
    RollSummary,
    ValidationResult,
)
from rpg_engine.models.turns import (
    ActionRecord,
    Participant,
    ParticipantStatistics,
    TurnSnapshot,
    TurnStatistics,
)


__all__ = [
    # Enums
    "Ability",
    "ActionKind",
    "DamageType",
    "DefenseMode",
    "DispatcherState",
    "EffectKind",
    "EventType",
    "FunctionCategory",
    "ParameterType",
    "SchedulerState",
    "WeaponCategory",
    # Turns
    "Participant",
    "ActionRecord",
    "TurnSnapshot",
    "TurnStatistics",
    "ParticipantStatistics",
    # Combat
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
    # Protocol
    "ActionRequest",
    "ActionResponse",
    "ActionContext",
    "ActionResult",
    "ActionEffect",
    "RollSummary",
    "ValidationResult",
    "FunctionParameter",
    "FunctionSpec",
    "ActionEvent",
    "DispatchMetrics",
    "DispatcherStats",
]
