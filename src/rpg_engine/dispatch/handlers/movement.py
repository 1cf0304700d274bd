"""Movement handlers: move, run and sneak.

Distance is checked against the turn's movement budget only; paths,
obstacles and line of sight are not modeled.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from rpg_engine.core.constants import RUN_SPEED_MULTIPLIER, SNEAK_SPEED_MULTIPLIER
from rpg_engine.dispatch.handlers.base import (
    ActionServices,
    actor_id,
    check_summary,
    param,
    validate_against_spec,
)
from rpg_engine.models.enums import Ability, ActionKind, FunctionCategory, ParameterType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEffect,
    ActionResult,
    FunctionParameter,
    FunctionSpec,
    ValidationResult,
)


def _movement_params() -> list[FunctionParameter]:
    return [
        param("distance", ParameterType.NUMBER, "Distance in meters", required=True),
        param("direction", ParameterType.STRING, "Heading or destination"),
    ]


def _validate_distance(spec: FunctionSpec, params: Mapping[str, Any]) -> ValidationResult:
    errors = validate_against_spec(spec, params)
    distance = params.get("distance")
    if isinstance(distance, int | float) and not isinstance(distance, bool):
        if not math.isfinite(distance):
            errors.append("distance must be a finite number")
        elif distance <= 0:
            errors.append("distance must be positive")
    return ValidationResult.from_errors(errors)


def _movement_effect(participant_id: str, distance: float, direction: str | None) -> ActionEffect:
    return ActionEffect(
        type="movement",
        target=participant_id,
        value=distance,
        description=f"Moved {distance:g}m" + (f" {direction}" if direction else ""),
    )


class MoveHandler:
    """Move up to the base speed."""

    name = "move"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="move",
        description="Move up to your speed",
        category=FunctionCategory.MOVEMENT,
        parameters=_movement_params(),
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return _validate_distance(self.spec, params)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        mover = actor_id(context)
        distance = float(params["distance"])
        budget = self.services.game.base_speed

        if distance > budget:
            return ActionResult(
                success=False,
                description=f"Cannot move {distance:g}m; speed is {budget:g}m.",
                data={"distance": distance, "budget": budget},
            )

        description = f"Moves {distance:g}m."
        self.services.turns.record_action(mover, ActionKind.MOVEMENT, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[_movement_effect(mover, distance, params.get("direction"))],
            data={"distance": distance, "budget": budget},
        )


class RunHandler:
    """Dash: spend the action to double the movement budget."""

    name = "run"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="run",
        description="Use your action to move up to twice your speed",
        category=FunctionCategory.MOVEMENT,
        parameters=_movement_params(),
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return _validate_distance(self.spec, params)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        mover = actor_id(context)
        distance = float(params["distance"])
        budget = self.services.game.base_speed * RUN_SPEED_MULTIPLIER

        if distance > budget:
            return ActionResult(
                success=False,
                description=f"Cannot run {distance:g}m; dash speed is {budget:g}m.",
                data={"distance": distance, "budget": budget},
            )

        description = f"Runs {distance:g}m."
        self.services.turns.record_action(mover, ActionKind.ACTION, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[_movement_effect(mover, distance, params.get("direction"))],
            data={"distance": distance, "budget": budget},
        )


class SneakHandler:
    """Move at half speed and roll a stealth (DEX) check."""

    name = "sneak"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="sneak",
        description="Move stealthily at half speed",
        category=FunctionCategory.MOVEMENT,
        parameters=_movement_params(),
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return _validate_distance(self.spec, params)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        mover = actor_id(context)
        distance = float(params["distance"])
        budget = self.services.game.base_speed * SNEAK_SPEED_MULTIPLIER

        if distance > budget:
            return ActionResult(
                success=False,
                description=f"Cannot sneak {distance:g}m; stealthy speed is {budget:g}m.",
                data={"distance": distance, "budget": budget},
            )

        stats = self.services.repository.get_combatant(mover)
        check = self.services.combat.ability_check(stats, Ability.DEX, self.services.game.check_dc)
        if check.success:
            description = f"{stats.name} slips {distance:g}m unseen."
        else:
            description = f"{stats.name} moves {distance:g}m but is noticed."

        self.services.turns.record_action(mover, ActionKind.MOVEMENT, description)
        effects = [_movement_effect(mover, distance, params.get("direction"))]
        if check.success:
            effects.append(ActionEffect(type="hidden", target=mover, value=True, duration=1))

        return ActionResult(
            success=check.success,
            description=description,
            effects=effects,
            roll=check_summary(check),
            data={"distance": distance, "budget": budget, "dc": check.dc},
        )


__all__ = ["MoveHandler", "RunHandler", "SneakHandler"]
