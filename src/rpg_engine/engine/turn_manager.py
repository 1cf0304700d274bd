"""Turn and initiative management.

This module provides the round-robin turn scheduler: it keeps the
participant roster, the initiative order, the current round/turn pointer
and an append-only action log.

The scheduler favors availability of the turn loop over strict
validation: operations on unknown participants or an empty order are
no-ops rather than errors.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from rpg_engine.core.exceptions import TurnManagementError
from rpg_engine.core.logging import get_logger
from rpg_engine.models.enums import ActionKind, SchedulerState
from rpg_engine.models.turns import (
    ActionRecord,
    Participant,
    ParticipantStatistics,
    TurnSnapshot,
    TurnStatistics,
)


logger = get_logger(__name__)


class TurnScheduler:
    """Track initiative order and manage turns.

    Participants are kept in insertion order; the initiative order is a
    stable sort of the active participants by initiative, descending, so
    ties go to whoever joined first.

    Example:
        >>> scheduler = TurnScheduler()
        >>> scheduler.add_participant(Participant(id="a", name="Aria", initiative=12))
        >>> scheduler.current_participant.id
        'a'
    """

    def __init__(self) -> None:
        """Initialize an empty scheduler."""
        self._participants: dict[str, Participant] = {}
        self._order: list[str] = []
        self._turn_index: int = 0
        self._round: int = 1
        self._current_id: str | None = None
        self._paused: bool = False
        self._turns_elapsed: int = 0
        self._actions: list[ActionRecord] = []
        logger.debug("TurnScheduler initialized")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_participant(self) -> Participant | None:
        """Get the participant whose turn it is.

        Returns:
            A copy of the current participant, or None if the order is empty.
        """
        if self._current_id is None:
            return None
        participant = self._participants.get(self._current_id)
        return participant.model_copy() if participant else None

    @property
    def current_id(self) -> str | None:
        return self._current_id

    @property
    def participants(self) -> list[Participant]:
        """All participants, in insertion order."""
        return [p.model_copy() for p in self._participants.values()]

    @property
    def active_participants(self) -> list[Participant]:
        return [p.model_copy() for p in self._participants.values() if p.active]

    @property
    def order(self) -> list[str]:
        """Participant IDs in initiative order."""
        return list(self._order)

    @property
    def ordered_participants(self) -> list[Participant]:
        """Participants in initiative order."""
        return [self._participants[pid].model_copy() for pid in self._order]

    @property
    def round_number(self) -> int:
        return self._round

    @property
    def turn_index(self) -> int:
        return self._turn_index

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def turns_elapsed(self) -> int:
        return self._turns_elapsed

    @property
    def actions(self) -> list[ActionRecord]:
        """The action log, oldest first."""
        return list(self._actions)

    @property
    def state(self) -> SchedulerState:
        """Current scheduler state."""
        if self._current_id is None:
            return SchedulerState.EMPTY
        if self._paused:
            return SchedulerState.PAUSED
        return SchedulerState.ACTIVE

    def get_participant(self, participant_id: str) -> Participant | None:
        participant = self._participants.get(participant_id)
        return participant.model_copy() if participant else None

    def is_turn_of(self, participant_id: str) -> bool:
        """Check whether it is currently the given participant's turn."""
        return self._current_id is not None and self._current_id == participant_id

    def next_participant(self) -> Participant | None:
        """Peek at who would act after the current participant.

        Returns:
            The next participant in order (wrapping to the top of the
            order), or None if the order is empty.
        """
        if not self._order:
            return None
        next_index = (self._turn_index + 1) % len(self._order)
        return self._participants[self._order[next_index]].model_copy()

    def all_acted(self) -> bool:
        """Whether every active participant has acted this round.

        Vacuously true when nobody is active.
        """
        return all(p.has_acted for p in self._participants.values() if p.active)

    def actions_this_round(self) -> list[ActionRecord]:
        return [a for a in self._actions if a.round_number == self._round]

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def add_participant(self, participant: Participant) -> None:
        """Insert or replace a participant by ID.

        The participant is marked active and as not having acted, then the
        initiative order is recomputed. If nobody was current, the top of
        the order becomes current.

        Args:
            participant: The participant to add.
        """
        self._participants[participant.id] = participant.model_copy(
            update={"active": True, "has_acted": False}
        )
        self._reorder()

        logger.info(
            "Participant added",
            participant_id=participant.id,
            name=participant.name,
            initiative=participant.initiative,
        )

    def remove_participant(self, participant_id: str) -> bool:
        """Remove a participant from the roster and the order.

        If the participant was current, the turn immediately passes to the
        next participant in sequence (starting a new round when the
        removed participant was last in the order).

        Args:
            participant_id: ID of the participant to remove.

        Returns:
            True if a participant was removed, False for an unknown ID.
        """
        if participant_id not in self._participants:
            return False

        del self._participants[participant_id]
        self._reorder()

        logger.info(
            "Participant removed",
            participant_id=participant_id,
            current=self._current_id,
        )
        return True

    def update_participant(self, participant_id: str, **changes: Any) -> Participant | None:
        """Update fields of a participant.

        Changing ``initiative`` or ``active`` re-sorts the order; the turn
        pointer stays on the current participant. Deactivating the current
        participant passes the turn on as if it had been removed.

        Args:
            participant_id: ID of the participant to update.
            **changes: Field values to set.

        Returns:
            A copy of the updated participant, or None for an unknown ID.
        """
        participant = self._participants.get(participant_id)
        if participant is None:
            return None

        changes = {k: v for k, v in changes.items() if k in Participant.model_fields and k != "id"}
        updated = Participant.model_validate({**participant.model_dump(), **changes})
        self._participants[participant_id] = updated

        if "initiative" in changes or "active" in changes:
            self._reorder()

        logger.debug("Participant updated", participant_id=participant_id, changes=changes)
        return updated.model_copy()

    def advance_turn(self) -> Participant | None:
        """Advance to the next turn.

        The outgoing participant is marked as having acted. When the index
        moves past the end of the order a new round starts: the round
        increments, every "has acted" flag is cleared and the top of the
        order becomes current.

        Pause is advisory: advancing while paused still works.

        Returns:
            The new current participant, or None if the order is empty.
        """
        if not self._order:
            return None

        if self._current_id is not None and self._current_id in self._participants:
            self._participants[self._current_id].has_acted = True

        self._move_to(self._turn_index + 1)
        self._turns_elapsed += 1

        logger.info(
            "Turn advanced",
            participant_id=self._current_id,
            round=self._round,
            turn_index=self._turn_index,
        )
        return self.current_participant

    def force_turn(self, participant_id: str) -> bool:
        """Hand the turn directly to a participant.

        Nobody is marked as having acted.

        Args:
            participant_id: An active participant present in the order.

        Returns:
            True if the turn moved, False if the ID is not in the order.
        """
        if participant_id not in self._order:
            return False

        self._turn_index = self._order.index(participant_id)
        self._current_id = participant_id

        logger.info("Turn forced", participant_id=participant_id, round=self._round)
        return True

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def toggle_pause(self) -> bool:
        """Flip the advisory pause flag.

        Returns:
            The new value of the flag.
        """
        self._paused = not self._paused
        logger.info("Pause toggled", paused=self._paused)
        return self._paused

    def record_action(
        self,
        participant_id: str,
        kind: ActionKind | str,
        description: str = "",
        *,
        timestamp: datetime | None = None,
    ) -> ActionRecord:
        """Append an action to the log.

        The record is stamped with the current turn index and round.
        Recording is never rejected.

        Args:
            participant_id: Acting participant.
            kind: Kind of action.
            description: Free-text description.
            timestamp: Optional explicit timestamp.

        Returns:
            The appended record.
        """
        data: dict[str, Any] = {
            "participant_id": participant_id,
            "kind": kind,
            "description": description,
            "turn_index": self._turn_index,
            "round_number": self._round,
        }
        if timestamp is not None:
            data["timestamp"] = timestamp

        record = ActionRecord.model_validate(data)
        self._actions.append(record)

        logger.debug(
            "Action recorded",
            participant_id=participant_id,
            kind=record.kind,
            round=self._round,
        )
        return record

    def clear_history(self) -> None:
        self._actions.clear()

    def reset(self) -> None:
        """Return to round 1 with an empty log.

        Participant definitions are kept; "has acted" flags are cleared
        and the order is re-derived with its top participant current.
        """
        self._round = 1
        self._turn_index = 0
        self._current_id = None
        self._paused = False
        self._turns_elapsed = 0
        self._actions.clear()
        for participant in self._participants.values():
            participant.has_acted = False
        self._reorder()

        logger.info("Turn scheduler reset", participants=len(self._participants))

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def statistics(self) -> TurnStatistics:
        """Aggregate statistics over the roster and the action log."""
        by_participant = Counter(a.participant_id for a in self._actions)
        by_round = Counter(a.round_number for a in self._actions)
        return TurnStatistics(
            round_number=self._round,
            total_participants=len(self._participants),
            active_participants=len(self._order),
            total_actions=len(self._actions),
            turns_elapsed=self._turns_elapsed,
            actions_by_participant=dict(by_participant),
            actions_by_round=dict(sorted(by_round.items())),
        )

    def participant_statistics(self, participant_id: str) -> ParticipantStatistics | None:
        """Statistics for a single participant, or None for an unknown ID."""
        participant = self._participants.get(participant_id)
        if participant is None:
            return None

        records = [a for a in self._actions if a.participant_id == participant_id]
        return ParticipantStatistics(
            participant_id=participant_id,
            name=participant.name,
            total_actions=len(records),
            has_acted=participant.has_acted,
            active=participant.active,
            actions_by_kind=dict(Counter(r.kind for r in records)),
            last_action=records[-1] if records else None,
        )

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def export_state(self) -> TurnSnapshot:
        """Export the complete scheduler state."""
        return TurnSnapshot(
            participants=self.participants,
            order=list(self._order),
            turn_index=self._turn_index,
            round_number=self._round,
            current_id=self._current_id,
            paused=self._paused,
            turns_elapsed=self._turns_elapsed,
            actions=list(self._actions),
        )

    @classmethod
    def from_state(cls, state: TurnSnapshot | dict[str, Any]) -> TurnScheduler:
        """Rebuild a scheduler from exported state.

        Args:
            state: A TurnSnapshot or its ``model_dump`` (either mode).

        Returns:
            A scheduler with identical order, pointer, flags and log.

        Raises:
            TurnManagementError: If the state is malformed or inconsistent.
        """
        try:
            snapshot = TurnSnapshot.model_validate(state)
        except ValidationError as exc:
            raise TurnManagementError(
                "Invalid turn state",
                details={"errors": exc.error_count()},
            ) from exc

        known = {p.id for p in snapshot.participants}
        unknown = [pid for pid in snapshot.order if pid not in known]
        if unknown:
            raise TurnManagementError(
                "Turn order references unknown participants",
                details={"unknown": unknown},
            )
        if snapshot.order:
            in_bounds = snapshot.turn_index < len(snapshot.order)
            if not in_bounds or snapshot.order[snapshot.turn_index] != snapshot.current_id:
                raise TurnManagementError(
                    "Turn index does not point at the current participant",
                    details={"turn_index": snapshot.turn_index},
                )
        elif snapshot.current_id is not None:
            raise TurnManagementError("Empty order cannot have a current participant")

        scheduler = cls()
        scheduler._participants = {p.id: p.model_copy() for p in snapshot.participants}
        scheduler._order = list(snapshot.order)
        scheduler._turn_index = snapshot.turn_index
        scheduler._round = snapshot.round_number
        scheduler._current_id = snapshot.current_id
        scheduler._paused = snapshot.paused
        scheduler._turns_elapsed = snapshot.turns_elapsed
        scheduler._actions = list(snapshot.actions)

        logger.info(
            "Turn state restored",
            participants=len(scheduler._participants),
            round=scheduler._round,
        )
        return scheduler

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _reorder(self) -> None:
        """Recompute the order and resync the pointer to the current participant."""
        previous_index = self._turn_index
        active = [p for p in self._participants.values() if p.active]
        active.sort(key=lambda p: p.initiative, reverse=True)
        self._order = [p.id for p in active]

        if not self._order:
            self._current_id = None
            self._turn_index = 0
        elif self._current_id in self._order:
            self._turn_index = self._order.index(self._current_id)
        elif self._current_id is None:
            self._current_id = self._order[0]
            self._turn_index = 0
        else:
            # Current participant left the order: whoever slid into its slot goes next.
            self._move_to(previous_index)

    def _move_to(self, index: int) -> None:
        if index >= len(self._order):
            self._start_new_round()
            index = 0
        self._turn_index = index
        self._current_id = self._order[index]

    def _start_new_round(self) -> None:
        self._round += 1
        for participant in self._participants.values():
            participant.has_acted = False
        logger.info("New round started", round=self._round)


__all__ = ["TurnScheduler"]
