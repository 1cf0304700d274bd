"""Combat action handlers: attack, defend and parry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rpg_engine.core.exceptions import HandlerFailureError
from rpg_engine.dispatch.handlers.base import (
    ActionServices,
    actor_id,
    param,
    validate_against_spec,
)
from rpg_engine.models.combat import AttackOutcome, DefenseOutcome
from rpg_engine.models.enums import (
    ActionKind,
    DefenseMode,
    FunctionCategory,
    ParameterType,
)
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEffect,
    ActionResult,
    FunctionSpec,
    RollSummary,
    ValidationResult,
)


def _attack_roll(outcome: AttackOutcome) -> RollSummary:
    return RollSummary(
        expression=f"1d20{outcome.attack_bonus:+d}",
        rolls=[outcome.natural_roll],
        modifier=outcome.attack_bonus,
        total=outcome.attack_roll,
        critical=outcome.critical,
    )


def _defense_result(outcome: DefenseOutcome) -> ActionResult:
    effects = []
    if outcome.success:
        effects.append(
            ActionEffect(
                type=f"defense:{outcome.mode}",
                target=outcome.defender_id,
                value=outcome.damage_reduction,
                duration=1,
                description=outcome.description,
            )
        )
    roll = None
    if outcome.roll is not None:
        roll = RollSummary(expression="1d20", rolls=[], total=outcome.roll)
    return ActionResult(
        success=outcome.success,
        description=outcome.description,
        effects=effects,
        roll=roll,
        data=outcome.model_dump(mode="json"),
    )


class AttackHandler:
    """Attack a target with a weapon or an unarmed strike."""

    name = "attack"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="attack",
        description="Make a weapon attack against a target",
        category=FunctionCategory.COMBAT,
        parameters=[
            param("targetId", ParameterType.STRING, "Combatant to attack", required=True),
            param("weaponId", ParameterType.STRING, "Weapon to use; equipped weapon if omitted"),
            param("advantage", ParameterType.BOOLEAN, "Roll with advantage", default=False),
            param("disadvantage", ParameterType.BOOLEAN, "Roll with disadvantage", default=False),
        ],
        requires_target=True,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        repo = self.services.repository
        attacker = repo.get_combatant(actor_id(context))
        target = repo.get_combatant(params["targetId"])

        if not self.services.combat.can_attack(attacker, target):
            raise HandlerFailureError(f"{attacker.name} cannot attack {target.name}")

        weapon = repo.get_weapon(params["weaponId"]) if params.get("weaponId") else None
        outcome = self.services.combat.attack(
            attacker,
            target,
            weapon,
            advantage=bool(params.get("advantage", False)),
            disadvantage=bool(params.get("disadvantage", False)),
        )
        repo.save_combatant(target)
        self.services.turns.record_action(attacker.id, ActionKind.ACTION, outcome.description)

        effects = []
        if outcome.hit:
            effects.append(
                ActionEffect(
                    type="damage",
                    target=target.id,
                    value=outcome.damage,
                    description=f"{outcome.damage} {outcome.damage_type} damage",
                )
            )
        if target.hp_current == 0:
            effects.append(ActionEffect(type="unconscious", target=target.id, value=True))

        return ActionResult(
            success=outcome.hit,
            description=outcome.description,
            effects=effects,
            roll=_attack_roll(outcome),
            data=outcome.model_dump(mode="json"),
        )


class DefendHandler:
    """Take a defensive stance: dodge, block or parry."""

    name = "defend"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="defend",
        description="Dodge, block or parry incoming attacks",
        category=FunctionCategory.COMBAT,
        parameters=[
            param(
                "mode",
                ParameterType.STRING,
                "Defensive technique",
                required=True,
                enum=[m.value for m in DefenseMode],
            ),
        ],
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        defender = self.services.repository.get_combatant(actor_id(context))
        outcome = self.services.combat.defend(defender, params["mode"])
        self.services.turns.record_action(defender.id, ActionKind.REACTION, outcome.description)
        return _defense_result(outcome)


class ParryHandler:
    """Parry with the equipped weapon."""

    name = "parry"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="parry",
        description="Deflect an incoming melee attack with the equipped weapon",
        category=FunctionCategory.COMBAT,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult(valid=True)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        defender = self.services.repository.get_combatant(actor_id(context))
        outcome = self.services.combat.defend(defender, DefenseMode.PARRY)
        self.services.turns.record_action(defender.id, ActionKind.REACTION, outcome.description)
        return _defense_result(outcome)


__all__ = ["AttackHandler", "DefendHandler", "ParryHandler"]
