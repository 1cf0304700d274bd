"""Rules engine: dice, turn scheduling and combat resolution."""

from __future__ import annotations

from rpg_engine.engine.combat import CombatEngine
from rpg_engine.engine.dice import (
    CheckResult,
    DiceExpression,
    DiceResult,
    DiceRoller,
    Difficulty,
    RollType,
    ability_modifier,
    format_result,
    meets_difficulty,
    parse_notation,
)
from rpg_engine.engine.turn_manager import TurnScheduler


__all__ = [
    "CombatEngine",
    "CheckResult",
    "DiceExpression",
    "DiceResult",
    "DiceRoller",
    "Difficulty",
    "RollType",
    "ability_modifier",
    "format_result",
    "meets_difficulty",
    "parse_notation",
    "TurnScheduler",
]
