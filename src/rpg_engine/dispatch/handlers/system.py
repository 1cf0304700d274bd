"""System handlers: free-form dice rolls and turn control."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rpg_engine.core.exceptions import DiceRollError, HandlerFailureError
from rpg_engine.dispatch.handlers.base import (
    ActionServices,
    actor_id,
    param,
    roll_summary,
    validate_against_spec,
)
from rpg_engine.engine.dice import format_result, parse_notation
from rpg_engine.models.enums import FunctionCategory, ParameterType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionResult,
    FunctionSpec,
    ValidationResult,
)


class RollHandler:
    """Roll arbitrary dice notation."""

    name = "roll"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="roll",
        description="Roll dice using standard notation, e.g. 2d6+3",
        category=FunctionCategory.UTILITY,
        parameters=[
            param("expression", ParameterType.STRING, "Dice notation", required=True),
            param("reason", ParameterType.STRING, "What the roll is for"),
        ],
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        errors = validate_against_spec(self.spec, params)
        expression = params.get("expression")
        if isinstance(expression, str):
            try:
                parse_notation(expression)
            except DiceRollError as exc:
                errors.append(f"expression is invalid: {exc.message}")
        return ValidationResult.from_errors(errors)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        result = self.services.dice.roll(params["expression"])
        description = format_result(result)
        if params.get("reason"):
            description = f"{params['reason']}: {description}"
        return ActionResult(success=True, description=description, roll=roll_summary(result))


class EndTurnHandler:
    """End the acting participant's turn."""

    name = "end_turn"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="end_turn",
        description="End your turn and pass to the next participant",
        category=FunctionCategory.SYSTEM,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult(valid=True)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        turns = self.services.turns
        participant = actor_id(context)
        if not turns.is_turn_of(participant):
            raise HandlerFailureError(f"It is not {participant}'s turn")

        round_before = turns.round_number
        current = turns.advance_turn()
        next_id = current.id if current else None

        description = f"{participant} ends their turn."
        if turns.round_number != round_before:
            description += f" Round {turns.round_number} begins."

        return ActionResult(
            success=True,
            description=description,
            next_action=next_id,
            data={"round": turns.round_number, "turnIndex": turns.turn_index, "current": next_id},
        )


class ForceTurnHandler:
    """Hand the turn to any participant. Game master override."""

    name = "force_turn"
    required_context: tuple[str, ...] = ()
    unsafe = True
    spec = FunctionSpec(
        name="force_turn",
        description="Give the turn to a specific participant (game master only)",
        category=FunctionCategory.SYSTEM,
        parameters=[
            param("participantId", ParameterType.STRING, "Participant to act next", required=True),
        ],
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        turns = self.services.turns
        target = params["participantId"]
        if not turns.force_turn(target):
            raise HandlerFailureError(f"Participant not in the turn order: {target}")

        return ActionResult(
            success=True,
            description=f"The turn passes to {target}.",
            next_action=target,
            data={"round": turns.round_number, "turnIndex": turns.turn_index, "current": target},
        )


__all__ = ["RollHandler", "EndTurnHandler", "ForceTurnHandler"]
