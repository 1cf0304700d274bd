"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        RpgEngineError: Base exception for all engine errors.
        DispatchError: Base for failures recovered at the dispatch boundary.
        ErrorKind: Stable identifiers of the dispatch failure modes.

    Configuration:
        Settings: Main engine settings class.
        DispatchConfig: Immutable dispatcher configuration snapshot.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up engine logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
        log_context: Bind logging context for a block.
"""

from __future__ import annotations

from rpg_engine.core.config import (
    DispatchConfig,
    DispatchSettings,
    GameSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from rpg_engine.core.exceptions import (
    ActionTimeoutError,
    CombatError,
    ConcurrencyExceededError,
    ConfigurationError,
    DiceRollError,
    DispatchError,
    DispatcherDisabledError,
    ErrorKind,
    GameEngineError,
    HandlerFailureError,
    InvalidParametersError,
    MalformedRequestError,
    MissingContextError,
    RestrictedMethodError,
    RpgEngineError,
    StorageError,
    TurnManagementError,
    UnknownMethodError,
)
from rpg_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "RpgEngineError",
    "ErrorKind",
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
    # Configuration
    "Settings",
    "DispatchSettings",
    "GameSettings",
    "DispatchConfig",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
