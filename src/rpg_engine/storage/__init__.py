"""Storage layer: key-value contract and typed entity repository."""

from rpg_engine.storage.repository import EntityRepository
from rpg_engine.storage.store import InMemoryStore, KeyValueStore


__all__ = ["EntityRepository", "InMemoryStore", "KeyValueStore"]
