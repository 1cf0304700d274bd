"""Pydantic V2 schemas for the action dispatch protocol.

These are the wire-facing records exchanged with callers: requests,
responses, the action context, handler results, the function catalog,
events and metrics. They serialize with camelCase aliases and accept
either spelling on input.

Example:
    >>> request = ActionRequest.model_validate(
    ...     {"id": "req-1", "method": "attack", "params": {"targetId": "goblin"}}
    ... )
    >>> request.to_wire()["method"]
    'attack'
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rpg_engine.core.config import DispatchConfig
from rpg_engine.core.exceptions import ErrorKind
from rpg_engine.models.enums import (
    DispatcherState,
    EventType,
    FunctionCategory,
    ParameterType,
)


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(UTC)


class WireModel(BaseModel):
    """Base for records serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using camelCase names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Requests & Responses
# =============================================================================


class ActionRequest(WireModel):
    """A request to run a named action.

    Attributes:
        id: Unique request identifier.
        method: Name of the handler to invoke.
        params: Handler parameters.
        timestamp: Submission time.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    method: str = Field(min_length=1)
    params: dict[str, Any]
    timestamp: datetime = Field(default_factory=_utc_now)


class ActionResponse(WireModel):
    """The outcome of a dispatched request.

    Exactly one of ``result`` and ``error`` is set.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    success: bool
    result: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @classmethod
    def ok(cls, request_id: str, result: Any) -> ActionResponse:
        return cls(id=request_id, success=True, result=result)

    @classmethod
    def failed(cls, request_id: str, error: str, kind: ErrorKind) -> ActionResponse:
        return cls(id=request_id, success=False, error=error, error_kind=kind)


class ActionContext(WireModel):
    """Session context accompanying a request.

    The four core fields are optional at the model level so that the
    dispatcher can report exactly which one is missing. Additional
    fields are kept for handlers that declare them.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    session_id: str | None = None
    participant_id: str | None = None
    turn: int | None = None
    round: int | None = None
    environment: dict[str, Any] | None = None
    participants: list[str] | None = None
    available_equipment: list[str] | None = None
    available_items: list[str] | None = None
    character_status: dict[str, Any] | None = None

    def has_field(self, name: str) -> bool:
        """Whether a context field is present (not None)."""
        if name in type(self).model_fields:
            return getattr(self, name) is not None
        return (self.model_extra or {}).get(name) is not None


# =============================================================================
# Handler Results
# =============================================================================


class RollSummary(WireModel):
    """Compact description of a dice roll made by a handler."""

    model_config = ConfigDict(frozen=True)

    expression: str
    rolls: list[int]
    modifier: int = 0
    total: int
    critical: bool = False


class ActionEffect(WireModel):
    """A state change caused by an action."""

    model_config = ConfigDict(frozen=True)

    type: str
    target: str | None = None
    value: Any = None
    duration: int | None = None
    description: str = ""


class ActionResult(WireModel):
    """The payload a handler returns on success.

    ``success`` reports the in-game outcome (a missed attack is still a
    successfully dispatched action).
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    description: str
    effects: list[ActionEffect] = Field(default_factory=list)
    roll: RollSummary | None = None
    next_action: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Result of a handler's parameter validation."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=not errors, errors=errors)


# =============================================================================
# Function Catalog
# =============================================================================


class FunctionParameter(WireModel):
    """A parameter accepted by a dispatchable function."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    description: str
    required: bool = False
    enum: list[str] | None = None
    default: Any = None


class FunctionSpec(WireModel):
    """Catalog entry describing a dispatchable function."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    category: FunctionCategory
    parameters: list[FunctionParameter] = Field(default_factory=list)
    requires_target: bool | None = None
    requires_item: bool | None = None

    def parameter(self, name: str) -> FunctionParameter | None:
        return next((p for p in self.parameters if p.name == name), None)


# =============================================================================
# Events & Metrics
# =============================================================================


class ActionEvent(WireModel):
    """A notification delivered to dispatcher listeners."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    type: EventType
    source: str
    timestamp: datetime = Field(default_factory=_utc_now)
    data: dict[str, Any] = Field(default_factory=dict)


class DispatchMetrics(WireModel):
    """Running dispatcher metrics.

    Attributes:
        total_requests: Completed requests (successful + failed).
        successful_requests: Requests whose handler completed.
        failed_requests: Requests that ended in an error response.
        average_response_time: Running mean latency of successful requests, in ms.
        functions_used: Successful invocations per method.
        last_activity: Time of the most recent completion.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    functions_used: dict[str, int] = Field(default_factory=dict)
    last_activity: datetime | None = None


class DispatcherStats(WireModel):
    """Detailed dispatcher introspection."""

    model_config = ConfigDict(frozen=True)

    state: DispatcherState
    metrics: DispatchMetrics
    active_requests: list[str]
    registered_functions: list[str]
    listener_count: int
    config: DispatchConfig


__all__ = [
    "WireModel",
    "ActionRequest",
    "ActionResponse",
    "ActionContext",
    "RollSummary",
    "ActionEffect",
    "ActionResult",
    "ValidationResult",
    "FunctionParameter",
    "FunctionSpec",
    "ActionEvent",
    "DispatchMetrics",
    "DispatcherStats",
]
