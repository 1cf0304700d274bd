"""Social and utility handlers.

Talk, help and wait never roll. Intimidate, persuade, deceive,
investigate and perceive are ability checks against the configured
check DC; they share AbilityCheckHandler, configured per action.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from rpg_engine.core.exceptions import HandlerFailureError
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
    FunctionSpec,
    ValidationResult,
)


class TalkHandler:
    """Say something. Costs nothing and always succeeds."""

    name = "talk"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="talk",
        description="Speak to another character or to everyone present",
        category=FunctionCategory.SOCIAL,
        parameters=[
            param("message", ParameterType.STRING, "What is said", required=True),
            param("targetId", ParameterType.STRING, "Who is addressed"),
        ],
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        errors = validate_against_spec(self.spec, params)
        if isinstance(params.get("message"), str) and not params["message"].strip():
            errors.append("message must not be empty")
        return ValidationResult.from_errors(errors)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        speaker = actor_id(context)
        target = params.get("targetId")
        description = f'{speaker} says "{params["message"]}"' + (f" to {target}" if target else "")
        self.services.turns.record_action(speaker, ActionKind.FREE, description)
        return ActionResult(
            success=True,
            description=description,
            data={"message": params["message"], "targetId": target},
        )


class AbilityCheckHandler:
    """An action resolved by a single ability check.

    Attributes:
        ability: Ability rolled for the check.
        verb: Verb used in narrative lines.
    """

    required_context: tuple[str, ...] = ()
    unsafe = False

    def __init__(
        self,
        services: ActionServices,
        *,
        name: str,
        ability: Ability,
        category: FunctionCategory,
        description: str,
        verb: str,
        target_required: bool = False,
    ) -> None:
        self.services = services
        self.name = name
        self.ability = ability
        self.verb = verb
        self.spec = FunctionSpec(
            name=name,
            description=description,
            category=category,
            parameters=[
                param(
                    "targetId",
                    ParameterType.STRING,
                    "Who or what the check is aimed at",
                    required=target_required,
                ),
                param("subject", ParameterType.STRING, "What the character is trying to achieve"),
                param("dc", ParameterType.NUMBER, "Difficulty class override"),
            ],
            requires_target=target_required,
        )

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        errors = validate_against_spec(self.spec, params)
        dc = params.get("dc")
        if isinstance(dc, int | float) and not isinstance(dc, bool):
            if not (math.isfinite(dc) and 1 <= dc <= 30):
                errors.append("dc must be between 1 and 30")
        return ValidationResult.from_errors(errors)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        stats = self.services.repository.get_combatant(actor_id(context))
        dc = int(params.get("dc") or self.services.game.check_dc)
        check = self.services.combat.ability_check(stats, self.ability, dc)

        target = params.get("targetId")
        aim = f" {target}" if target else ""
        if check.success:
            description = f"{stats.name} manages to {self.verb}{aim} ({check.roll.total} vs DC {dc})."
        else:
            description = f"{stats.name} fails to {self.verb}{aim} ({check.roll.total} vs DC {dc})."

        self.services.turns.record_action(stats.id, ActionKind.ACTION, description)
        return ActionResult(
            success=check.success,
            description=description,
            roll=check_summary(check),
            data={
                "ability": self.ability.value,
                "dc": dc,
                "margin": check.margin,
                "targetId": target,
                "subject": params.get("subject"),
            },
        )


class HelpHandler:
    """Help an ally, granting advantage on their next check or attack."""

    name = "help"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="help",
        description="Aid an ally, granting advantage on their next roll",
        category=FunctionCategory.UTILITY,
        parameters=[
            param("allyId", ParameterType.STRING, "Ally to help", required=True),
            param(
                "helpType",
                ParameterType.STRING,
                "What the ally is helped with",
                enum=["attack", "check"],
                default="attack",
            ),
        ],
        requires_target=True,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        helper = actor_id(context)
        ally = params["allyId"]
        help_type = params.get("helpType") or "attack"
        if ally == helper:
            raise HandlerFailureError("A character cannot help themselves")

        description = f"{helper} helps {ally}, granting advantage on their next {help_type}."
        self.services.turns.record_action(helper, ActionKind.ACTION, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[
                ActionEffect(
                    type="advantage",
                    target=ally,
                    value=help_type,
                    duration=1,
                    description=description,
                )
            ],
        )


class WaitHandler:
    """Do nothing this turn."""

    name = "wait"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="wait",
        description="Hold position and wait",
        category=FunctionCategory.UTILITY,
        parameters=[param("reason", ParameterType.STRING, "Why the character waits")],
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        participant = actor_id(context)
        description = f"{participant} waits."
        self.services.turns.record_action(participant, ActionKind.FREE, description)
        return ActionResult(success=True, description=description)


def social_check_handlers(services: ActionServices) -> list[AbilityCheckHandler]:
    """The ability-check actions registered by default."""
    return [
        AbilityCheckHandler(
            services,
            name="intimidate",
            ability=Ability.CHA,
            category=FunctionCategory.SOCIAL,
            description="Threaten someone into compliance",
            verb="intimidate",
            target_required=True,
        ),
        AbilityCheckHandler(
            services,
            name="persuade",
            ability=Ability.CHA,
            category=FunctionCategory.SOCIAL,
            description="Convince someone with reason or charm",
            verb="persuade",
            target_required=True,
        ),
        AbilityCheckHandler(
            services,
            name="deceive",
            ability=Ability.CHA,
            category=FunctionCategory.SOCIAL,
            description="Mislead someone with a convincing lie",
            verb="deceive",
            target_required=True,
        ),
        AbilityCheckHandler(
            services,
            name="investigate",
            ability=Ability.INT,
            category=FunctionCategory.UTILITY,
            description="Search for clues and deduce what happened",
            verb="investigate",
        ),
        AbilityCheckHandler(
            services,
            name="perceive",
            ability=Ability.WIS,
            category=FunctionCategory.UTILITY,
            description="Look and listen for anything out of place",
            verb="perceive",
        ),
    ]


__all__ = [
    "TalkHandler",
    "AbilityCheckHandler",
    "HelpHandler",
    "WaitHandler",
    "social_check_handlers",
]
