"""Typed access to stored game entities.

EntityRepository maps combatants, weapons, spells and consumables onto a
KeyValueStore using ``<kind>:<id>`` keys and JSON-compatible values.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from rpg_engine.core.exceptions import StorageError
from rpg_engine.core.logging import get_logger
from rpg_engine.models.combat import CombatantStats, Consumable, Spell, Weapon
from rpg_engine.storage.store import InMemoryStore, KeyValueStore


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

COMBATANT_PREFIX = "combatant:"
WEAPON_PREFIX = "weapon:"
SPELL_PREFIX = "spell:"
CONSUMABLE_PREFIX = "item:"


class EntityRepository:
    """Load and save engine entities through a key-value store.

    Example:
        >>> repo = EntityRepository()
        >>> repo.save_weapon(Weapon(id="dagger", name="Dagger", damage_dice="1d4"))
        >>> repo.get_weapon("dagger").name
        'Dagger'
    """

    def __init__(self, store: KeyValueStore | None = None) -> None:
        """Initialize the repository.

        Args:
            store: Backing store. An empty InMemoryStore if omitted.
        """
        self.store: KeyValueStore = store if store is not None else InMemoryStore()

    def _load(self, prefix: str, entity_id: str, model: type[ModelT]) -> ModelT:
        key = f"{prefix}{entity_id}"
        raw = self.store.get(key)
        if raw is None:
            raise StorageError(f"{model.__name__} not found: {entity_id}", key=key)
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise StorageError(
                f"Stored value is not a valid {model.__name__}",
                key=key,
                details={"errors": exc.error_count()},
            ) from exc

    def _save(self, prefix: str, entity: Any) -> None:
        self.store.set(f"{prefix}{entity.id}", entity.model_dump(mode="json"))

    def _ids(self, prefix: str) -> list[str]:
        return [key.removeprefix(prefix) for key in self.store.list(prefix)]

    # Combatants

    def get_combatant(self, combatant_id: str) -> CombatantStats:
        """Load a combatant.

        Raises:
            StorageError: If the combatant is missing or malformed.
        """
        return self._load(COMBATANT_PREFIX, combatant_id, CombatantStats)

    def save_combatant(self, combatant: CombatantStats) -> None:
        self._save(COMBATANT_PREFIX, combatant)
        logger.debug("Combatant saved", combatant_id=combatant.id, hp=combatant.hp_current)

    def has_combatant(self, combatant_id: str) -> bool:
        return self.store.get(f"{COMBATANT_PREFIX}{combatant_id}") is not None

    def list_combatants(self) -> list[str]:
        return self._ids(COMBATANT_PREFIX)

    # Weapons

    def get_weapon(self, weapon_id: str) -> Weapon:
        return self._load(WEAPON_PREFIX, weapon_id, Weapon)

    def save_weapon(self, weapon: Weapon) -> None:
        self._save(WEAPON_PREFIX, weapon)

    def list_weapons(self) -> list[str]:
        return self._ids(WEAPON_PREFIX)

    # Spells

    def get_spell(self, spell_id: str) -> Spell:
        return self._load(SPELL_PREFIX, spell_id, Spell)

    def save_spell(self, spell: Spell) -> None:
        self._save(SPELL_PREFIX, spell)

    def list_spells(self) -> list[str]:
        return self._ids(SPELL_PREFIX)

    # Consumables

    def get_consumable(self, item_id: str) -> Consumable:
        return self._load(CONSUMABLE_PREFIX, item_id, Consumable)

    def save_consumable(self, item: Consumable) -> None:
        self._save(CONSUMABLE_PREFIX, item)

    def delete_consumable(self, item_id: str) -> bool:
        return self.store.delete(f"{CONSUMABLE_PREFIX}{item_id}")

    def list_consumables(self) -> list[str]:
        return self._ids(CONSUMABLE_PREFIX)


__all__ = [
    "EntityRepository",
    "COMBATANT_PREFIX",
    "WEAPON_PREFIX",
    "SPELL_PREFIX",
    "CONSUMABLE_PREFIX",
]
