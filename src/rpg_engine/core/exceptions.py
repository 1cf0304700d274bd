"""Custom exception hierarchy for the RPG rules engine.

This module defines the exception hierarchy shared by every component of
the engine. All exceptions inherit from RpgEngineError, enabling unified
error handling at the dispatch boundary while preserving domain-specific
context.

The dispatch errors carry a stable ``kind`` (see ErrorKind) so that the
dispatcher can report *why* a request failed without leaking exception
types to callers.

Example:
    >>> from rpg_engine.core.exceptions import DiceRollError
    >>> raise DiceRollError("Invalid dice notation", expression="2x6")
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Stable identifiers for the failure modes surfaced in responses."""

    MALFORMED_REQUEST = "malformed_request"
    UNKNOWN_METHOD = "unknown_method"
    INVALID_PARAMETERS = "invalid_parameters"
    MISSING_CONTEXT = "missing_context"
    CONCURRENCY_EXCEEDED = "concurrency_exceeded"
    TIMEOUT = "timeout"
    HANDLER_FAILURE = "handler_failure"
    RESTRICTED_METHOD = "restricted_method"
    DISPATCHER_DISABLED = "dispatcher_disabled"


class RpgEngineError(Exception):
    """Base exception for all RPG engine errors.

    All custom exceptions in this package inherit from this class,
    enabling unified error handling at the dispatch boundary.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception.

        Returns:
            String representation suitable for debugging.
        """
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(RpgEngineError):
    """Base exception for all game engine errors.

    Raised when there are issues with dice evaluation, combat
    resolution, or turn processing.
    """


class DiceRollError(GameEngineError):
    """Raised when dice notation is malformed or out of bounds.

    The dice engine fails fast: a bad expression is a programming error
    in the caller, not a runtime condition to recover from.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class CombatError(GameEngineError):
    """Raised when combat resolution cannot proceed.

    This includes unknown combatants, illegal targets, or spells cast
    below their base level.
    """

    def __init__(
        self,
        message: str,
        *,
        combatant_id: str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class TurnManagementError(GameEngineError):
    """Raised when a persisted turn state cannot be restored."""


# =============================================================================
# Dispatch Domain Exceptions
# =============================================================================


class DispatchError(RpgEngineError):
    """Base exception for action dispatch failures.

    Every subclass is recovered at the dispatch boundary and turned into
    a failed ActionResponse; none of them reach the caller as raw faults.

    Attributes:
        kind: Stable error identifier reported in the response.
    """

    kind: ErrorKind = ErrorKind.HANDLER_FAILURE

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        method: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dispatch error with request context.

        Args:
            message: Human-readable error description.
            request_id: Identifier of the failing request.
            method: Method name of the failing request.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if request_id:
            combined_details["request_id"] = request_id
        if method:
            combined_details["method"] = method
        self.request_id = request_id
        self.method = method
        super().__init__(message, details=combined_details)


class MalformedRequestError(DispatchError):
    """Raised when a request lacks an id, a method, or a parameter map."""

    kind = ErrorKind.MALFORMED_REQUEST


class UnknownMethodError(DispatchError):
    """Raised when no handler is registered for the requested method."""

    kind = ErrorKind.UNKNOWN_METHOD


class InvalidParametersError(DispatchError):
    """Raised when a handler validator reports one or more errors.

    All reported errors are kept, not just the first one.
    """

    kind = ErrorKind.INVALID_PARAMETERS

    def __init__(
        self,
        errors: list[str],
        *,
        request_id: str | None = None,
        method: str | None = None,
    ) -> None:
        """Initialize with the full list of validation errors.

        Args:
            errors: Every error reported by the validator.
            request_id: Identifier of the failing request.
            method: Method name of the failing request.
        """
        self.errors = list(errors)
        super().__init__(
            f"Invalid parameters: {', '.join(self.errors)}",
            request_id=request_id,
            method=method,
        )


class MissingContextError(DispatchError):
    """Raised when a required context field is absent."""

    kind = ErrorKind.MISSING_CONTEXT

    def __init__(
        self,
        field_name: str,
        *,
        request_id: str | None = None,
        method: str | None = None,
    ) -> None:
        """Initialize with the name of the missing field.

        Args:
            field_name: Context field that was not provided.
            request_id: Identifier of the failing request.
            method: Method name of the failing request.
        """
        self.field_name = field_name
        super().__init__(
            f"Required context field not found: {field_name}",
            request_id=request_id,
            method=method,
        )


class ConcurrencyExceededError(DispatchError):
    """Raised when the in-flight ceiling has been reached."""

    kind = ErrorKind.CONCURRENCY_EXCEEDED


class ActionTimeoutError(DispatchError):
    """Raised when a handler does not settle within the configured window."""

    kind = ErrorKind.TIMEOUT


class HandlerFailureError(DispatchError):
    """Raised when a handler fails for domain reasons."""

    kind = ErrorKind.HANDLER_FAILURE


class RestrictedMethodError(DispatchError):
    """Raised when an unsafe handler is invoked while unsafe functions are off."""

    kind = ErrorKind.RESTRICTED_METHOD


class DispatcherDisabledError(DispatchError):
    """Raised when a request arrives while the dispatcher is disabled."""

    kind = ErrorKind.DISPATCHER_DISABLED


# =============================================================================
# Configuration & Storage Exceptions
# =============================================================================


class ConfigurationError(RpgEngineError):
    """Raised when engine configuration is invalid.

    This includes missing required settings, invalid values, or
    incompatible configuration combinations.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class StorageError(RpgEngineError):
    """Raised when a stored record is missing or has the wrong type."""

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error with key context.

        Args:
            message: Human-readable error description.
            key: The storage key involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if key:
            combined_details["key"] = key
        super().__init__(message, details=combined_details)


__all__ = [
    "ErrorKind",
    # Base exception
    "RpgEngineError",
    # Game engine exceptions
    "GameEngineError",
    "DiceRollError",
    "CombatError",
    "TurnManagementError",
    # Dispatch exceptions
    "DispatchError",
    "MalformedRequestError",
    "UnknownMethodError",
    "InvalidParametersError",
    "MissingContextError",
    "ConcurrencyExceededError",
    "ActionTimeoutError",
    "HandlerFailureError",
    "RestrictedMethodError",
    "DispatcherDisabledError",
    # Configuration & storage exceptions
    "ConfigurationError",
    "StorageError",
]
