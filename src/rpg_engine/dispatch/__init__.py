"""Action dispatch protocol.

Exports:
    ActionDispatcher: Validated, concurrency-bounded entry point.
    HandlerRegistry: Name-to-handler mapping, frozen after startup.
    build_default_registry: Registry with every built-in handler.
    ActionHandler: Capability protocol implemented by handlers.
    ActionServices: Collaborators handlers act on.
    EventBus: Per-type and wildcard listeners.
"""

from __future__ import annotations

from rpg_engine.dispatch.dispatcher import ActionDispatcher
from rpg_engine.dispatch.events import EventBus, Listener
from rpg_engine.dispatch.handlers import (
    ActionHandler,
    ActionServices,
    default_handlers,
    validate_against_spec,
)
from rpg_engine.dispatch.registry import HandlerRegistry, build_default_registry


__all__ = [
    "ActionDispatcher",
    "EventBus",
    "Listener",
    "ActionHandler",
    "ActionServices",
    "default_handlers",
    "validate_against_spec",
    "HandlerRegistry",
    "build_default_registry",
]
