"""Tests for the built-in action handlers, driven through the dispatcher."""

from __future__ import annotations

import asyncio
import json
import math
import random
from typing import TYPE_CHECKING, Any

import pytest

from rpg_engine.core.config import Settings
from rpg_engine.core.exceptions import ErrorKind
from rpg_engine.dispatch import ActionDispatcher, ActionServices, validate_against_spec
from rpg_engine.dispatch.handlers import AbilityCheckHandler, AttackHandler
from rpg_engine.models.combat import Spell, SpellEffect
from rpg_engine.models.enums import Ability, EffectKind, FunctionCategory
from rpg_engine.models.protocol import ActionResponse
from rpg_engine.models.turns import Participant
from rpg_engine.storage import InMemoryStore


if TYPE_CHECKING:
    from conftest import ScriptedRandom


def call(
    dispatcher: ActionDispatcher,
    method: str,
    actor: str = "fighter",
    extra_context: dict[str, Any] | None = None,
    **params: Any,
) -> ActionResponse:
    context = {"sessionId": "session-1", "participantId": actor, "turn": 1, "round": 1}
    context.update(extra_context or {})
    return asyncio.run(dispatcher.dispatch({"id": f"{method}-1", "method": method, "params": params}, context))


class TestCombatHandlers:
    """Tests for attack, defend and parry."""

    def test_attack_hit(
        self,
        scripted_rng: ScriptedRandom,
        dispatcher: ActionDispatcher,
        populated_services: ActionServices,
    ) -> None:
        """Test a hit is resolved, persisted and logged."""
        scripted_rng.push(12, 4)
        response = call(dispatcher, "attack", targetId="goblin")

        result = response.result
        assert response.success is True
        assert result["success"] is True
        assert result["roll"] == {
            "expression": "1d20+5",
            "rolls": [12],
            "modifier": 5,
            "total": 17,
            "critical": False,
        }
        assert result["effects"][0]["type"] == "damage"
        assert result["effects"][0]["value"] == 7
        assert result["effects"][1]["type"] == "unconscious"
        assert result["data"]["damage"] == 7

        assert populated_services.repository.get_combatant("goblin").hp_current == 0
        assert populated_services.turns.actions[0].participant_id == "fighter"

    def test_attack_with_ranged_weapon(
        self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher
    ) -> None:
        """Test attacking with a stored weapon."""
        scripted_rng.push(10, 3)
        response = call(dispatcher, "attack", targetId="ogre", weaponId="shortbow")
        assert response.result["roll"]["total"] == 14
        assert response.result["data"]["weapon_name"] == "Shortbow"
        assert response.result["data"]["damage"] == 5

    def test_attack_unknown_target(self, dispatcher: ActionDispatcher) -> None:
        """Test attacking a combatant that does not exist."""
        response = call(dispatcher, "attack", targetId="dragon")
        assert response.error_kind == ErrorKind.HANDLER_FAILURE
        assert "dragon" in response.error

    def test_attack_requires_target(self, dispatcher: ActionDispatcher) -> None:
        """Test the target parameter is required."""
        response = call(dispatcher, "attack", advantage="yes")
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "targetId is required" in response.error
        assert "advantage must be of type boolean" in response.error

    def test_defend_block(self, dispatcher: ActionDispatcher) -> None:
        """Test blocking grants damage reduction."""
        response = call(dispatcher, "defend", mode="block")
        effect = response.result["effects"][0]
        assert effect["type"] == "defense:block"
        assert effect["value"] == 2
        assert "roll" not in response.result

    def test_defend_invalid_mode(self, dispatcher: ActionDispatcher) -> None:
        """Test the defense mode enum."""
        response = call(dispatcher, "defend", mode="flee")
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "mode must be one of: dodge, block, parry" in response.error

    def test_parry(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test parrying with the equipped weapon."""
        scripted_rng.push(15)
        response = call(dispatcher, "parry")
        assert response.result["success"] is True
        assert response.result["roll"]["total"] == 18

    def test_handler_direct_validation(self, services: ActionServices) -> None:
        """Test a handler's validator outside the dispatcher."""
        handler = AttackHandler(services)
        assert handler.validate({"targetId": "goblin"}).valid is True
        assert handler.validate({}).errors == ["targetId is required"]


class TestMovementHandlers:
    """Tests for move, run and sneak."""

    def test_move_within_speed(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test moving within the base speed."""
        response = call(dispatcher, "move", distance=6, direction="north")
        assert response.result["success"] is True
        assert response.result["effects"][0]["description"] == "Moved 6m north"
        assert len(populated_services.turns.actions) == 1

    def test_move_beyond_speed(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test moving further than the speed allows."""
        response = call(dispatcher, "move", distance=12)
        assert response.success is True
        assert response.result["success"] is False
        assert populated_services.turns.actions == []

    def test_run_doubles_budget(self, dispatcher: ActionDispatcher) -> None:
        """Test running allows twice the speed."""
        assert call(dispatcher, "run", distance=18).result["success"] is True
        assert call(dispatcher, "run", distance=18.5).result["success"] is False

    @pytest.mark.parametrize("distance", [0, -3])
    def test_distance_must_be_positive(self, dispatcher: ActionDispatcher, distance: int) -> None:
        """Test non-positive distances are rejected."""
        response = call(dispatcher, "move", distance=distance)
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "distance must be positive" in response.error

    @pytest.mark.parametrize("distance", [math.nan, math.inf])
    def test_distance_must_be_finite(self, dispatcher: ActionDispatcher, distance: float) -> None:
        """Test NaN and infinite distances are rejected before the speed budget."""
        response = call(dispatcher, "move", distance=distance)
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "distance must be a finite number" in response.error

    def test_boolean_is_not_a_distance(self, dispatcher: ActionDispatcher) -> None:
        """Test booleans are not accepted as numbers."""
        response = call(dispatcher, "move", distance=True)
        assert response.error == "Invalid parameters: distance must be of type number"

    def test_sneak(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test sneaking at half speed with a DEX check."""
        scripted_rng.push(13)
        response = call(dispatcher, "sneak", distance=4)
        assert response.result["success"] is True
        assert [e["type"] for e in response.result["effects"]] == ["movement", "hidden"]
        assert response.result["roll"]["total"] == 15

    def test_sneak_beyond_half_speed(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test sneaking too far fails without a roll."""
        response = call(dispatcher, "sneak", distance=5)
        assert response.result["success"] is False
        assert scripted_rng.calls == []


class TestMagicHandlers:
    """Tests for spellcasting."""

    def test_cast_fireball(
        self,
        scripted_rng: ScriptedRandom,
        dispatcher: ActionDispatcher,
        populated_services: ActionServices,
    ) -> None:
        """Test an area spell with saves."""
        scripted_rng.push(13, 10, *[3] * 8)
        response = call(dispatcher, "cast_spell", actor="wizard", spellId="fireball", targetIds=["goblin", "ogre"])

        result = response.result
        assert result["success"] is True
        assert [(e["type"], e["target"], e["value"]) for e in result["effects"]] == [
            ("damage", "goblin", 7),
            ("damage", "ogre", 24),
        ]
        assert result["roll"]["total"] == 24
        repo = populated_services.repository
        assert repo.get_combatant("goblin").hp_current == 0
        assert repo.get_combatant("ogre").hp_current == 35

    def test_cast_healing(
        self,
        scripted_rng: ScriptedRandom,
        dispatcher: ActionDispatcher,
        populated_services: ActionServices,
    ) -> None:
        """Test a healing spell reports a healing effect."""
        repo = populated_services.repository
        fighter = repo.get_combatant("fighter")
        fighter.hp_current = 10
        repo.save_combatant(fighter)

        scripted_rng.push(4)
        response = call(dispatcher, "cast_spell", actor="wizard", spellId="cure-wounds", targetIds=["fighter"])
        assert response.result["effects"] == [
            {"type": "healing", "target": "fighter", "value": 7, "description": ""}
        ]
        assert repo.get_combatant("fighter").hp_current == 17

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"castLevel": 2.5}, "castLevel must be a whole number between 0 and 9"),
            ({"castLevel": 10}, "castLevel must be a whole number between 0 and 9"),
            ({"targetIds": ["goblin", 3]}, "targetIds must contain combatant IDs"),
            ({"targetIds": "goblin"}, "targetIds must be of type array"),
        ],
    )
    def test_cast_invalid(
        self, dispatcher: ActionDispatcher, params: dict[str, Any], message: str
    ) -> None:
        """Test spell parameter validation."""
        response = call(dispatcher, "cast_spell", actor="wizard", spellId="fireball", **params)
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert message in response.error

    def test_cast_below_spell_level(self, dispatcher: ActionDispatcher) -> None:
        """Test casting below the spell's level fails in the handler."""
        response = call(dispatcher, "cast_spell", actor="wizard", spellId="fireball", castLevel=1)
        assert response.error_kind == ErrorKind.HANDLER_FAILURE

    @pytest.mark.parametrize("raw_level", ["Infinity", "-Infinity", "NaN"])
    def test_cast_level_from_json_must_be_finite(
        self, dispatcher: ActionDispatcher, populated_services: ActionServices, raw_level: str
    ) -> None:
        """Test non-finite slot levels decoded from JSON are rejected."""
        raw = json.loads(
            '{"id": "r1", "method": "cast_spell", '
            f'"params": {{"spellId": "fireball", "castLevel": {raw_level}}}}}'
        )
        context = {"sessionId": "session-1", "participantId": "wizard", "turn": 1, "round": 1}
        response = asyncio.run(dispatcher.dispatch(raw, context))

        assert response.success is False
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "castLevel must be a whole number between 0 and 9" in response.error
        assert populated_services.repository.get_combatant("goblin").hp_current == 7

    def test_self_targeted_concentration_spell(
        self, dispatcher: ActionDispatcher, populated_services: ActionServices
    ) -> None:
        """Test a caster targeting themself keeps the concentration the cast started."""
        repo = populated_services.repository
        repo.save_spell(
            Spell(
                id="bless",
                name="Bless",
                level=1,
                effects=[SpellEffect(kind=EffectKind.OTHER, description="Allies feel blessed.")],
                concentration=True,
            )
        )

        response = call(dispatcher, "cast_spell", actor="wizard", spellId="bless", targetIds=["wizard", "wizard"])

        assert response.result["success"] is True
        assert repo.get_combatant("wizard").concentration_spell == "Bless"

    def test_cancel_concentration(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test dropping concentration."""
        repo = populated_services.repository
        wizard = repo.get_combatant("wizard")
        wizard.concentration_spell = "Haste"
        repo.save_combatant(wizard)

        response = call(dispatcher, "cancel_concentration", actor="wizard")
        assert response.result["success"] is True
        assert response.result["effects"][0]["value"] == "Haste"
        assert repo.get_combatant("wizard").concentration_spell is None

        again = call(dispatcher, "cancel_concentration", actor="wizard")
        assert again.result["success"] is False


class TestItemHandlers:
    """Tests for items and equipment."""

    def test_use_healing_potion(
        self,
        scripted_rng: ScriptedRandom,
        dispatcher: ActionDispatcher,
        populated_services: ActionServices,
    ) -> None:
        """Test a potion heals, is capped at max hit points and is consumed."""
        repo = populated_services.repository
        fighter = repo.get_combatant("fighter")
        fighter.hp_current = 20
        repo.save_combatant(fighter)

        scripted_rng.push(3, 4)
        response = call(dispatcher, "use_item", extra_context={"availableItems": ["potion"]}, itemId="potion")

        assert response.result["effects"][0] == {
            "type": "healing",
            "target": "fighter",
            "value": 8,
            "description": "",
        }
        assert response.result["roll"]["total"] == 9
        assert repo.get_combatant("fighter").hp_current == 28
        assert repo.list_consumables() == []

    def test_use_unavailable_item(self, dispatcher: ActionDispatcher) -> None:
        """Test items missing from the context cannot be used."""
        response = call(dispatcher, "use_item", extra_context={"availableItems": []}, itemId="potion")
        assert response.error_kind == ErrorKind.HANDLER_FAILURE
        assert response.error == "Item not available: potion"

    def test_equip_and_unequip(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test swapping weapons."""
        repo = populated_services.repository
        response = call(
            dispatcher, "equip", extra_context={"availableEquipment": ["shortbow"]}, weaponId="shortbow"
        )
        assert response.result["success"] is True
        assert repo.get_combatant("fighter").equipped_weapon.id == "shortbow"  # type: ignore[union-attr]

        assert call(dispatcher, "unequip").result["success"] is True
        assert repo.get_combatant("fighter").equipped_weapon is None
        assert call(dispatcher, "unequip").result["success"] is False

    def test_equip_unavailable(self, dispatcher: ActionDispatcher) -> None:
        """Test equipment missing from the context cannot be equipped."""
        response = call(
            dispatcher, "equip", extra_context={"availableEquipment": ["longsword"]}, weaponId="shortbow"
        )
        assert response.error_kind == ErrorKind.HANDLER_FAILURE


class TestSocialHandlers:
    """Tests for talk, checks, help and wait."""

    def test_talk(self, dispatcher: ActionDispatcher) -> None:
        """Test speaking to someone."""
        response = call(dispatcher, "talk", message="Surrender!", targetId="goblin")
        assert response.result["description"] == 'fighter says "Surrender!" to goblin'

    def test_talk_requires_message(self, dispatcher: ActionDispatcher) -> None:
        """Test blank messages are rejected."""
        response = call(dispatcher, "talk", message="   ")
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS

    def test_intimidate_success(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test a CHA check against the default DC."""
        scripted_rng.push(15)
        response = call(dispatcher, "intimidate", targetId="goblin")
        assert response.result["success"] is True
        assert response.result["description"] == "Brienne manages to intimidate goblin (15 vs DC 15)."
        assert response.result["data"]["ability"] == "charisma"

    def test_check_with_dc_override(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test overriding the check DC."""
        scripted_rng.push(9)
        response = call(dispatcher, "investigate", dc=10, subject="the altar")
        assert response.result["success"] is False
        assert response.result["data"]["margin"] == -1

    def test_social_checks_need_a_target(self, dispatcher: ActionDispatcher) -> None:
        """Test social checks require a target."""
        response = call(dispatcher, "persuade")
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS

    def test_dc_bounds(self, dispatcher: ActionDispatcher) -> None:
        """Test DC overrides must be within 1-30."""
        response = call(dispatcher, "perceive", dc=31)
        assert "dc must be between 1 and 30" in response.error

    @pytest.mark.parametrize("dc", [math.nan, math.inf])
    def test_dc_must_be_finite(self, dispatcher: ActionDispatcher, dc: float) -> None:
        """Test NaN and infinite DC overrides are rejected."""
        response = call(dispatcher, "perceive", dc=dc)
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "dc must be between 1 and 30" in response.error

    def test_custom_check_handler(self, services: ActionServices) -> None:
        """Test configuring an ability-check action."""
        handler = AbilityCheckHandler(
            services,
            name="climb",
            ability=Ability.STR,
            category=FunctionCategory.MOVEMENT,
            description="Climb a wall",
            verb="climb",
        )
        assert handler.spec.name == "climb"
        assert handler.spec.parameter("targetId").required is False  # type: ignore[union-attr]

    def test_help(self, dispatcher: ActionDispatcher) -> None:
        """Test helping an ally grants advantage."""
        response = call(dispatcher, "help", allyId="wizard", helpType="check")
        effect = response.result["effects"][0]
        assert effect["type"] == "advantage"
        assert effect["target"] == "wizard"
        assert effect["value"] == "check"

    def test_help_self(self, dispatcher: ActionDispatcher) -> None:
        """Test a character cannot help themselves."""
        response = call(dispatcher, "help", allyId="fighter")
        assert response.error_kind == ErrorKind.HANDLER_FAILURE

    def test_wait(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test waiting is recorded as a free action."""
        assert call(dispatcher, "wait", reason="ambush").result["success"] is True
        assert populated_services.turns.actions[0].kind == "free"


class TestSystemHandlers:
    """Tests for roll, end_turn and force_turn."""

    def test_roll_with_reason(self, scripted_rng: ScriptedRandom, dispatcher: ActionDispatcher) -> None:
        """Test rolling arbitrary notation."""
        scripted_rng.push(6)
        response = call(dispatcher, "roll", expression="1d6", reason="Luck")
        assert response.result["description"] == "Luck: 1d6: 6 CRITICAL!"

    def test_roll_invalid_expression(self, dispatcher: ActionDispatcher) -> None:
        """Test invalid notation is caught by validation."""
        response = call(dispatcher, "roll", expression="2x6")
        assert response.error_kind == ErrorKind.INVALID_PARAMETERS
        assert "expression is invalid" in response.error

    def test_end_turn(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test ending the acting participant's turn."""
        turns = populated_services.turns
        turns.add_participant(Participant(id="fighter", name="Brienne", initiative=18))
        turns.add_participant(Participant(id="goblin", name="Goblin", initiative=12))

        response = call(dispatcher, "end_turn")
        assert response.result["nextAction"] == "goblin"
        assert turns.current_id == "goblin"

        response = call(dispatcher, "end_turn", actor="goblin")
        assert response.result["data"]["round"] == 2
        assert "Round 2 begins." in response.result["description"]

    def test_end_turn_out_of_turn(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test ending someone else's turn fails."""
        populated_services.turns.add_participant(Participant(id="goblin", name="Goblin"))
        response = call(dispatcher, "end_turn")
        assert response.error_kind == ErrorKind.HANDLER_FAILURE

    def test_force_turn(self, dispatcher: ActionDispatcher, populated_services: ActionServices) -> None:
        """Test the game master override."""
        turns = populated_services.turns
        turns.add_participant(Participant(id="fighter", name="Brienne", initiative=18))
        turns.add_participant(Participant(id="goblin", name="Goblin", initiative=12))

        response = call(dispatcher, "force_turn", participantId="goblin")
        assert response.result["nextAction"] == "goblin"
        assert turns.current_id == "goblin"
        assert call(dispatcher, "force_turn", participantId="dragon").error_kind == ErrorKind.HANDLER_FAILURE


class TestServices:
    """Tests for the service bundle and shared helpers."""

    def test_create_from_settings(self) -> None:
        """Test building services from settings with a seeded generator."""
        settings = Settings.model_validate({"game": {"dice_seed": 5, "defense_dc": 12}})
        store = InMemoryStore()
        services = ActionServices.create(settings, store=store)

        assert services.repository.store is store
        assert services.combat.defense_dc == 12
        assert services.combat.dice is services.dice
        assert services.game.dice_seed == 5
        assert services.dice.roll("1d20").total == ActionServices.create(settings).dice.roll("1d20").total

    def test_create_with_generator(self) -> None:
        """Test an explicit generator wins over the seed."""
        first = ActionServices.create(rng=random.Random(3))
        second = ActionServices.create(rng=random.Random(3))
        assert first.dice.roll("10d10").rolls == second.dice.roll("10d10").rolls

    def test_validate_against_spec(self, services: ActionServices) -> None:
        """Test the shared validator reports every problem."""
        spec = AttackHandler(services).spec
        errors = validate_against_spec(spec, {"weaponId": 3, "disadvantage": 1})
        assert errors == [
            "targetId is required",
            "weaponId must be of type string",
            "disadvantage must be of type boolean",
        ]
