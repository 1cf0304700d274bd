"""Handler registry.

The registry maps method names to handlers. It is populated once at
startup and frozen; lookups afterwards need no synchronization.
"""

from __future__ import annotations

from collections.abc import Iterator

from rpg_engine.core.exceptions import ConfigurationError
from rpg_engine.core.logging import get_logger
from rpg_engine.dispatch.handlers import ActionHandler, ActionServices, default_handlers
from rpg_engine.models.enums import FunctionCategory
from rpg_engine.models.protocol import FunctionSpec


logger = get_logger(__name__)


class HandlerRegistry:
    """Name-to-handler mapping, read-only once frozen.

    Example:
        >>> registry = HandlerRegistry()
        >>> registry.register(RollHandler(services))
        >>> registry.freeze()
        >>> "roll" in registry
        True
    """

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, handler: ActionHandler) -> None:
        """Register a handler under its name.

        Raises:
            ConfigurationError: If the registry is frozen, the name is
                taken, or the object is not a handler.
        """
        if self._frozen:
            raise ConfigurationError(
                "Handler registry is frozen",
                details={"handler": getattr(handler, "name", None)},
            )
        if not isinstance(handler, ActionHandler):
            raise ConfigurationError(
                "Object does not implement the handler protocol",
                details={"type": type(handler).__name__},
            )
        if handler.name in self._handlers:
            raise ConfigurationError(f"Handler already registered: {handler.name}")

        self._handlers[handler.name] = handler
        logger.debug("Handler registered", handler=handler.name, unsafe=handler.unsafe)

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        logger.info("Handler registry frozen", handlers=len(self._handlers))

    def get(self, name: str) -> ActionHandler | None:
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return list(self._handlers)

    def catalog(self, *, include_unsafe: bool = True) -> list[FunctionSpec]:
        """Catalog entries of the registered handlers, in registration order."""
        return [
            h.spec for h in self._handlers.values() if include_unsafe or not h.unsafe
        ]

    def by_category(self, category: FunctionCategory) -> list[FunctionSpec]:
        return [h.spec for h in self._handlers.values() if h.spec.category == category]

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[ActionHandler]:
        return iter(self._handlers.values())


def build_default_registry(services: ActionServices) -> HandlerRegistry:
    """Register every built-in handler and freeze the registry."""
    registry = HandlerRegistry()
    for handler in default_handlers(services):
        registry.register(handler)
    registry.freeze()
    return registry


__all__ = ["HandlerRegistry", "build_default_registry"]
