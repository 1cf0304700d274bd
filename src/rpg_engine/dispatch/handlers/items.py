"""Item handlers: use a consumable, equip and unequip weapons.

These handlers only act on items listed in the request context
(``available_items`` / ``available_equipment``).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rpg_engine.core.exceptions import HandlerFailureError
from rpg_engine.dispatch.handlers.base import (
    ActionServices,
    actor_id,
    param,
    roll_summary,
    validate_against_spec,
)
from rpg_engine.models.enums import ActionKind, EffectKind, FunctionCategory, ParameterType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEffect,
    ActionResult,
    FunctionSpec,
    ValidationResult,
)


class UseItemHandler:
    """Use a consumable on yourself or another combatant."""

    name = "use_item"
    required_context: tuple[str, ...] = ("available_items",)
    unsafe = False
    spec = FunctionSpec(
        name="use_item",
        description="Use a consumable item such as a potion",
        category=FunctionCategory.UTILITY,
        parameters=[
            param("itemId", ParameterType.STRING, "Item to use", required=True),
            param("targetId", ParameterType.STRING, "Who the item affects; yourself if omitted"),
        ],
        requires_item=True,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        item_id = params["itemId"]
        if item_id not in (context.available_items or []):
            raise HandlerFailureError(f"Item not available: {item_id}")

        repo = self.services.repository
        user = actor_id(context)
        item = repo.get_consumable(item_id)
        target = repo.get_combatant(params.get("targetId") or user)

        result = self.services.dice.roll(item.dice)
        if item.effect == EffectKind.HEALING:
            amount = target.heal(result.total)
            effect = ActionEffect(type="healing", target=target.id, value=amount)
            description = f"{item.name} restores {amount} hit points to {target.name}."
        elif item.effect == EffectKind.DAMAGE:
            amount = target.take_damage(result.total)
            effect = ActionEffect(type="damage", target=target.id, value=amount)
            description = f"{item.name} deals {amount} damage to {target.name}."
        else:
            effect = ActionEffect(type="narrative", target=target.id, description=item.description)
            description = item.description or f"{item.name} is used."

        repo.save_combatant(target)
        repo.delete_consumable(item.id)
        self.services.turns.record_action(user, ActionKind.ACTION, description)

        return ActionResult(
            success=True,
            description=description,
            effects=[effect, ActionEffect(type="item_consumed", target=user, value=item.id)],
            roll=roll_summary(result),
        )


class EquipHandler:
    """Equip a weapon."""

    name = "equip"
    required_context: tuple[str, ...] = ("available_equipment",)
    unsafe = False
    spec = FunctionSpec(
        name="equip",
        description="Equip a weapon from your equipment",
        category=FunctionCategory.UTILITY,
        parameters=[param("weaponId", ParameterType.STRING, "Weapon to equip", required=True)],
        requires_item=True,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult.from_errors(validate_against_spec(self.spec, params))

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        weapon_id = params["weaponId"]
        if weapon_id not in (context.available_equipment or []):
            raise HandlerFailureError(f"Weapon not available: {weapon_id}")

        repo = self.services.repository
        stats = repo.get_combatant(actor_id(context))
        weapon = repo.get_weapon(weapon_id)

        stats.equipped_weapon = weapon
        repo.save_combatant(stats)

        description = f"{stats.name} equips {weapon.name}."
        self.services.turns.record_action(stats.id, ActionKind.FREE, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[ActionEffect(type="equipped", target=stats.id, value=weapon.id)],
        )


class UnequipHandler:
    """Put away the equipped weapon."""

    name = "unequip"
    required_context: tuple[str, ...] = ()
    unsafe = False
    spec = FunctionSpec(
        name="unequip",
        description="Put away your equipped weapon",
        category=FunctionCategory.UTILITY,
    )

    def __init__(self, services: ActionServices) -> None:
        self.services = services

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        return ValidationResult(valid=True)

    async def execute(self, params: Mapping[str, Any], context: ActionContext) -> ActionResult:
        repo = self.services.repository
        stats = repo.get_combatant(actor_id(context))
        weapon = stats.equipped_weapon

        if weapon is None:
            return ActionResult(success=False, description=f"{stats.name} has nothing equipped.")

        stats.equipped_weapon = None
        repo.save_combatant(stats)

        description = f"{stats.name} puts away {weapon.name}."
        self.services.turns.record_action(stats.id, ActionKind.FREE, description)
        return ActionResult(
            success=True,
            description=description,
            effects=[ActionEffect(type="unequipped", target=stats.id, value=weapon.id)],
        )


__all__ = ["UseItemHandler", "EquipHandler", "UnequipHandler"]
