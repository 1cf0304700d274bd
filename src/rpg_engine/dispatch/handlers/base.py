"""Shared handler capability and helpers.

Handlers are plain objects satisfying the ActionHandler protocol: a
catalog ``spec``, the context fields they need, an ``unsafe`` flag, a
synchronous ``validate`` and an asynchronous ``execute``. There is no
handler base class; the helpers below are shared by composition.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from rpg_engine.core.config import GameSettings, Settings, get_settings
from rpg_engine.core.exceptions import HandlerFailureError
from rpg_engine.engine.combat import CombatEngine
from rpg_engine.engine.dice import CheckResult, DiceResult, DiceRoller
from rpg_engine.engine.turn_manager import TurnScheduler
from rpg_engine.models.enums import ParameterType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionResult,
    FunctionParameter,
    FunctionSpec,
    RollSummary,
    ValidationResult,
)
from rpg_engine.storage.repository import EntityRepository
from rpg_engine.storage.store import KeyValueStore


@runtime_checkable
class ActionHandler(Protocol):
    """Capability every dispatchable handler provides."""

    name: str
    spec: FunctionSpec
    required_context: tuple[str, ...]
    unsafe: bool

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        """Check parameters, reporting every problem found."""
        ...

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        """Run the action. Domain failures raise."""
        ...


@dataclass
class ActionServices:
    """The collaborators handlers act on.

    Attributes:
        repository: Stored combatants, weapons, spells and items.
        combat: Combat resolution engine.
        turns: Turn scheduler of the session.
        dice: Dice roller shared with the combat engine.
        game: Rules settings (speeds and check DCs).
    """

    repository: EntityRepository
    combat: CombatEngine
    turns: TurnScheduler
    dice: DiceRoller
    game: GameSettings = field(default_factory=GameSettings)

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        store: KeyValueStore | None = None,
        rng: random.Random | None = None,
    ) -> ActionServices:
        """Build a service bundle from settings.

        Args:
            settings: Engine settings; the cached singleton if omitted.
            store: Backing key-value store; in-memory if omitted.
            rng: Random generator; seeded from ``game.dice_seed`` if omitted.
        """
        settings = settings or get_settings()
        dice = DiceRoller(rng, seed=settings.game.dice_seed)
        return cls(
            repository=EntityRepository(store),
            combat=CombatEngine(dice, defense_dc=settings.game.defense_dc),
            turns=TurnScheduler(),
            dice=dice,
            game=settings.game,
        )


# =============================================================================
# Helpers
# =============================================================================


_TYPE_CHECKS: dict[ParameterType, tuple[type, ...]] = {
    ParameterType.STRING: (str,),
    ParameterType.NUMBER: (int, float),
    ParameterType.BOOLEAN: (bool,),
    ParameterType.OBJECT: (Mapping,),
    ParameterType.ARRAY: (list, tuple),
}


def _matches_type(value: Any, expected: ParameterType) -> bool:
    if expected != ParameterType.BOOLEAN and isinstance(value, bool):
        return False
    return isinstance(value, _TYPE_CHECKS[expected])


def validate_against_spec(spec: FunctionSpec, params: Mapping[str, Any]) -> list[str]:
    """Check params against a catalog entry.

    Returns:
        Every error found: missing required parameters, wrong types and
        values outside a declared enum.
    """
    errors: list[str] = []
    for parameter in spec.parameters:
        value = params.get(parameter.name)
        if value is None:
            if parameter.required:
                errors.append(f"{parameter.name} is required")
            continue
        if not _matches_type(value, parameter.type):
            errors.append(f"{parameter.name} must be of type {parameter.type}")
            continue
        if parameter.enum is not None and value not in parameter.enum:
            errors.append(f"{parameter.name} must be one of: {', '.join(parameter.enum)}")
    return errors


def param(
    name: str,
    type_: ParameterType,
    description: str,
    *,
    required: bool = False,
    enum: list[str] | None = None,
    default: Any = None,
) -> FunctionParameter:
    """Shorthand for declaring a catalog parameter."""
    return FunctionParameter(
        name=name,
        type=type_,
        description=description,
        required=required,
        enum=enum,
        default=default,
    )


def roll_summary(result: DiceResult) -> RollSummary:
    return RollSummary(
        expression=result.expression,
        rolls=list(result.rolls),
        modifier=result.modifier,
        total=result.total,
        critical=result.critical,
    )


def check_summary(check: CheckResult) -> RollSummary:
    return roll_summary(check.roll)


def actor_id(context: ActionContext) -> str:
    """The acting participant's ID; presence is checked by the dispatcher."""
    if context.participant_id is None:
        raise HandlerFailureError("Action context has no participant")
    return context.participant_id


__all__ = [
    "ActionHandler",
    "ActionServices",
    "validate_against_spec",
    "param",
    "roll_summary",
    "check_summary",
    "actor_id",
]
