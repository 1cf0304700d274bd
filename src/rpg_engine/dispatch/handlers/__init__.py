"""Action handlers reachable through the dispatcher.

Each handler satisfies the ActionHandler protocol and acts on the
collaborators bundled in ActionServices.
"""

from __future__ import annotations

from rpg_engine.dispatch.handlers.base import (
    ActionHandler,
    ActionServices,
    validate_against_spec,
)
from rpg_engine.dispatch.handlers.combat import AttackHandler, DefendHandler, ParryHandler
from rpg_engine.dispatch.handlers.items import EquipHandler, UnequipHandler, UseItemHandler
from rpg_engine.dispatch.handlers.magic import CancelConcentrationHandler, CastSpellHandler
from rpg_engine.dispatch.handlers.movement import MoveHandler, RunHandler, SneakHandler
from rpg_engine.dispatch.handlers.social import (
    AbilityCheckHandler,
    HelpHandler,
    TalkHandler,
    WaitHandler,
    social_check_handlers,
)
from rpg_engine.dispatch.handlers.system import EndTurnHandler, ForceTurnHandler, RollHandler


def default_handlers(services: ActionServices) -> list[ActionHandler]:
    """Instantiate every built-in handler, in catalog order."""
    return [
        AttackHandler(services),
        DefendHandler(services),
        ParryHandler(services),
        MoveHandler(services),
        RunHandler(services),
        SneakHandler(services),
        CastSpellHandler(services),
        CancelConcentrationHandler(services),
        UseItemHandler(services),
        EquipHandler(services),
        UnequipHandler(services),
        TalkHandler(services),
        *social_check_handlers(services),
        HelpHandler(services),
        WaitHandler(services),
        RollHandler(services),
        EndTurnHandler(services),
        ForceTurnHandler(services),
    ]


__all__ = [
    "ActionHandler",
    "ActionServices",
    "validate_against_spec",
    "default_handlers",
    "AttackHandler",
    "DefendHandler",
    "ParryHandler",
    "MoveHandler",
    "RunHandler",
    "SneakHandler",
    "CastSpellHandler",
    "CancelConcentrationHandler",
    "UseItemHandler",
    "EquipHandler",
    "UnequipHandler",
    "TalkHandler",
    "AbilityCheckHandler",
    "HelpHandler",
    "WaitHandler",
    "RollHandler",
    "EndTurnHandler",
    "ForceTurnHandler",
]
