"""Key-value storage contract.

The engine does not own a persistence format. Characters, items and
spells live behind a minimal get/set/list contract; any backend that
satisfies KeyValueStore can be plugged in. InMemoryStore is shipped for
tests and embedding.
"""

from __future__ import annotations

import threading
from copy import deepcopy
from typing import Any, Protocol, runtime_checkable

from rpg_engine.core.logging import get_logger


logger = get_logger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal storage contract consumed by the engine."""

    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...

    def list(self, prefix: str = "") -> list[str]:
        """Return stored keys starting with ``prefix``, in insertion order."""
        ...

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...


class InMemoryStore:
    """Thread-safe in-memory KeyValueStore.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.

    Example:
        >>> store = InMemoryStore()
        >>> store.set("combatant:hero", {"name": "Aria"})
        >>> store.list("combatant:")
        ['combatant:hero']
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(key)
        return deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = deepcopy(value)
        logger.debug("Stored value", key=key)

    def list(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


__all__ = ["KeyValueStore", "InMemoryStore"]
