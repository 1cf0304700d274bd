"""Pydantic V2 schemas for turn scheduling.

This module defines the participant roster entries, the append-only
action log records and the exported scheduler state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field

from rpg_engine.models.enums import ActionKind


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


class Participant(BaseModel):
    """A participant in the initiative order.

    Attributes:
        id: Unique participant identifier.
        name: Display name.
        is_agent: Whether an automated agent controls this participant.
        initiative: Initiative score (higher acts first).
        has_acted: Whether the participant has acted this round.
        active: Whether the participant takes part in the order.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str = Field(min_length=1, description="Unique participant ID")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    is_agent: bool = Field(default=False, description="Controlled by an agent")
    initiative: int = Field(default=0, description="Initiative score")
    has_acted: bool = Field(default=False, description="Acted this round")
    active: bool = Field(default=True, description="Included in the order")


class ActionRecord(BaseModel):
    """An entry in the scheduler's action log.

    Records are stamped with the turn index and round in effect when
    they were recorded and are never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_id, description="Unique record ID")
    participant_id: str = Field(description="Acting participant")
    kind: ActionKind = Field(description="Kind of action")
    description: str = Field(default="", description="Free-text description")
    timestamp: datetime = Field(default_factory=_utc_now, description="When recorded")
    turn_index: int = Field(ge=0, description="Turn index when recorded")
    round_number: int = Field(ge=1, description="Round when recorded")


class TurnSnapshot(BaseModel):
    """Complete scheduler state for persistence round-trips.

    Attributes:
        participants: Roster in insertion order.
        order: Participant IDs in initiative order.
        turn_index: Position of the current participant in ``order``.
        round_number: Current round (starts at 1).
        current_id: ID of the current participant, if any.
        paused: Advisory pause flag.
        turns_elapsed: Number of turn advances since the last reset.
        actions: The action log.
    """

    model_config = ConfigDict(extra="forbid")

    participants: list[Participant] = Field(default_factory=list)
    order: list[str] = Field(default_factory=list)
    turn_index: int = Field(default=0, ge=0)
    round_number: int = Field(default=1, ge=1)
    current_id: str | None = None
    paused: bool = False
    turns_elapsed: int = Field(default=0, ge=0)
    actions: list[ActionRecord] = Field(default_factory=list)


class TurnStatistics(BaseModel):
    """Aggregate statistics over the scheduler's log."""

    model_config = ConfigDict(frozen=True)

    round_number: int
    total_participants: int
    active_participants: int
    total_actions: int
    turns_elapsed: int
    actions_by_participant: dict[str, int] = Field(default_factory=dict)
    actions_by_round: dict[int, int] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def average_actions_per_round(self) -> float:
        """Mean number of recorded actions per round that saw any action."""
        if not self.actions_by_round:
            return 0.0
        return self.total_actions / len(self.actions_by_round)


class ParticipantStatistics(BaseModel):
    """Statistics for a single participant."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    name: str
    total_actions: int
    has_acted: bool
    active: bool
    actions_by_kind: dict[ActionKind, int] = Field(default_factory=dict)
    last_action: ActionRecord | None = None


__all__ = [
    "Participant",
    "ActionRecord",
    "TurnSnapshot",
    "TurnStatistics",
    "ParticipantStatistics",
]
