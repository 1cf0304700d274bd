"""Spellcasting handlers: cast a spell, drop concentration."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from rpg_engine.core.constants import MAX_SPELL_LEVEL
from rpg_engine.dispatch.handlers.base import (
    ActionServices,
    actor_id,
    param,
    validate_against_spec,
)
from rpg_engine.models.enums import ActionKind, FunctionCategory, ParameterType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEffect,
    ActionResult,
    FunctionSpec,
    RollSummary,
    ValidationResult,
)


class CastSpellHandler:
    """Cast a stored spell at zero or more targets."""

    name = "cast_spell"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="cast_spell",
        description="Cast a spell, optionally at a higher slot level",
        category=FunctionCategory.MAGIC,
        parameters=[
            param("spellId", ParameterType.STRING, "Spell to cast", required=True),
            param("targetIds", ParameterType.ARRAY, "Combatants affected by the spell", default=[]),
            param("castLevel", ParameterType.NUMBER, "Slot level; the spell's level if omitted"),
        ],
        requires_target=False,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        errors = validate_against_spec(self.spec, params)

        targets = params.get("targetIds")
        if isinstance(targets, list | tuple) and not all(isinstance(t, str) for t in targets):
            errors.append("targetIds must contain combatant IDs")

        level = params.get("castLevel")
        if isinstance(level, int | float) and not isinstance(level, bool):
            if not math.isfinite(level) or level != int(level) or not 0 <= level <= MAX_SPELL_LEVEL:
                errors.append(f"castLevel must be a whole number between 0 and {MAX_SPELL_LEVEL}")

        return ValidationResult.from_errors(errors)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        repo = self.services.repository
        caster = repo.get_combatant(actor_id(context))
        spell = repo.get_spell(params["spellId"])
        target_ids = list(dict.fromkeys(params.get("targetIds") or []))

        # Each combatant is loaded once; the caster may be among the targets
        affected = {caster.id: caster}
        for target_id in target_ids:
            if target_id not in affected:
                affected[target_id] = repo.get_combatant(target_id)
        targets = [affected[t] for t in target_ids]
        level = params.get("castLevel")

        outcome = self.services.combat.cast_spell(
            caster,
            spell,
            targets,
            cast_level=int(level) if level is not None else None,
        )

        for combatant in affected.values():
            repo.save_combatant(combatant)
        self.services.turns.record_action(caster.id, ActionKind.ACTION, outcome.description)

        effects: list[ActionEffect] = []
        for target_id, amount in outcome.per_target.items():
            if amount > 0:
                effects.append(ActionEffect(type="damage", target=target_id, value=amount))
            elif amount < 0:
                effects.append(ActionEffect(type="healing", target=target_id, value=-amount))
        if outcome.concentration:
            effects.append(
                ActionEffect(type="concentration", target=caster.id, value=spell.name)
            )
        effects.extend(
            ActionEffect(type="narrative", description=line) for line in outcome.additional_effects
        )

        roll = None
        if outcome.damage_rolls:
            roll = RollSummary(
                expression=spell.name,
                rolls=outcome.damage_rolls,
                total=abs(outcome.damage),
            )

        return ActionResult(
            success=True,
            description=outcome.description,
            effects=effects,
            roll=roll,
            data=outcome.model_dump(mode="json"),
        )


class CancelConcentrationHandler:
    """Stop concentrating on the current spell."""

    name = "cancel_concentration"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="cancel_concentration",
        description="End the spell you are concentrating on",
        category=FunctionCategory.MAGIC,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult(valid=True)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        repo = self.services.repository
        caster = repo.get_combatant(actor_id(context))
        spell_name = caster.concentration_spell

        if spell_name is None:
            return ActionResult(success=False, description=f"{caster.name} is not concentrating.")

        caster.concentration_spell = None
        repo.save_combatant(caster)

        description = f"{caster.name} stops concentrating on {spell_name}."
        self.services.turns.record_action(caster.id, ActionKind.FREE, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[ActionEffect(type="concentration_ended", target=caster.id, value=spell_name)],
        )


__all__ = ["CastSpellHandler", "CancelConcentrationHandler"]
