"""RPG Rules Engine - turn-based tabletop rules resolution.

Initiative order, dice-based checks, combat and spell outcomes, and a
validated, concurrency-bounded protocol for dispatching player and agent
actions.

Example:
    >>> import asyncio
    >>> from rpg_engine import ActionDispatcher, ActionServices, build_default_registry
    >>>
    >>> services = ActionServices.create()
    >>> dispatcher = ActionDispatcher(build_default_registry(services))
    >>> response = asyncio.run(dispatcher.dispatch(
    ...     {"id": "req-1", "method": "roll", "params": {"expression": "2d6+3"}},
    ...     {"sessionId": "s1", "participantId": "hero", "turn": 1, "round": 1},
    ... ))
    >>> response.success
    True

Modules:
    core: Configuration, logging, constants and exceptions.
    models: Pydantic V2 schemas for turns, combat and the dispatch protocol.
    engine: Dice evaluation, turn scheduling and combat resolution.
    storage: Key-value storage contract and typed entity repository.
    dispatch: Handler registry, action handlers and the dispatcher.
"""

from __future__ import annotations

# Core
from rpg_engine.core.config import DispatchConfig, Settings, get_settings
from rpg_engine.core.exceptions import ErrorKind, RpgEngineError
from rpg_engine.core.logging import configure_logging, get_logger

# Dispatch
from rpg_engine.dispatch import (
    ActionDispatcher,
    ActionServices,
    HandlerRegistry,
    build_default_registry,
)

# Engine
from rpg_engine.engine import CombatEngine, DiceRoller, RollType, TurnScheduler

# Models
from rpg_engine.models import (
    ActionContext,
    ActionRequest,
    ActionResponse,
    CombatantStats,
    Participant,
    Spell,
    Weapon,
)

# Storage
from rpg_engine.storage import EntityRepository, InMemoryStore


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "RpgEngineError",
    "ErrorKind",
    "Settings",
    "DispatchConfig",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Engine
    "DiceRoller",
    "RollType",
    "TurnScheduler",
    "CombatEngine",
    # Models
    "Participant",
    "CombatantStats",
    "Weapon",
    "Spell",
    "ActionRequest",
    "ActionResponse",
    "ActionContext",
    # Storage
    "EntityRepository",
    "InMemoryStore",
    # Dispatch
    "ActionDispatcher",
    "ActionServices",
    "HandlerRegistry",
    "build_default_registry",
]
