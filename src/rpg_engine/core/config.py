"""Configuration management for the RPG rules engine.

This module provides centralized configuration management using
pydantic-settings, supporting environment variables, .env files, and
runtime configuration overrides.

The dispatcher does not read settings directly: it receives an immutable
DispatchConfig snapshot at construction and replaces it wholesale on
reconfiguration.

Example:
    >>> from rpg_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.dispatch.max_concurrent_actions
    3

Environment Variables:
    RPG_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    RPG_ENGINE_DISPATCH_TIMEOUT_MS: Per-action timeout in milliseconds
    RPG_ENGINE_DISPATCH_MAX_CONCURRENT_ACTIONS: Admission ceiling
    RPG_ENGINE_GAME_DICE_SEED: Seed for reproducible dice
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpg_engine.core.exceptions import ConfigurationError


class DispatchSettings(BaseSettings):
    """Configuration for the action dispatch protocol.

    Attributes:
        enable_logging: Toggle the dispatcher's diagnostic output.
        validate_params: Run handler validators before dispatch.
        allow_unsafe_functions: Allow handlers flagged as unsafe.
        timeout_ms: Per-action timeout in milliseconds.
        max_concurrent_actions: Maximum number of in-flight requests.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_ENGINE_DISPATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enable_logging: bool = Field(default=True, description="Emit diagnostic logs")
    validate_params: bool = Field(default=True, description="Run handler validators")
    allow_unsafe_functions: bool = Field(
        default=False,
        description="Allow restricted handlers",
    )
    timeout_ms: int = Field(
        default=30_000,
        gt=0,
        le=600_000,
        description="Per-action timeout in milliseconds",
    )
    max_concurrent_actions: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Admission ceiling for in-flight requests",
    )


class GameSettings(BaseSettings):
    """Configuration for rules resolution.

    Attributes:
        dice_seed: Optional seed for reproducible dice.
        base_speed: Movement budget per turn, in meters.
        defense_dc: Difficulty class for dodge and parry checks.
        check_dc: Difficulty class for social and utility checks.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_ENGINE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    dice_seed: int | None = Field(default=None, description="Seed for reproducible dice")
    base_speed: float = Field(default=9.0, gt=0, description="Meters per turn")
    defense_dc: int = Field(default=15, ge=1, le=30, description="Dodge/parry DC")
    check_dc: int = Field(default=15, ge=1, le=30, description="Social/utility DC")


class Settings(BaseSettings):
    """Main engine settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Engine logging level.
        json_logs: Render logs as JSON.
        dispatch: Action dispatch settings.
        game: Rules resolution settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="RPG_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="RPG Rules Engine", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)
    game: GameSettings = Field(default_factory=GameSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


class DispatchConfig(BaseModel):
    """Immutable configuration snapshot held by the dispatcher.

    Accepts both snake_case and the camelCase wire names
    (``timeoutMs``, ``maxConcurrentActions``...).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    enable_logging: bool = True
    validate_params: bool = True
    allow_unsafe_functions: bool = False
    timeout_ms: int = Field(default=30_000, gt=0)
    max_concurrent_actions: int = Field(default=3, ge=1)

    @property
    def timeout_seconds(self) -> float:
        """Timeout expressed in seconds for asyncio."""
        return self.timeout_ms / 1000

    @classmethod
    def from_settings(cls, settings: DispatchSettings) -> DispatchConfig:
        """Build a snapshot from environment-driven settings."""
        return cls(**settings.model_dump())

    def merged(self, **changes: Any) -> DispatchConfig:
        """Return a new snapshot with ``changes`` applied.

        Args:
            **changes: Options to override, in either naming style.

        Returns:
            A new, validated DispatchConfig.

        Raises:
            ConfigurationError: If the resulting configuration is invalid.
        """
        data = self.model_dump()
        for key, value in changes.items():
            field_name = _FIELD_BY_ALIAS.get(key, key)
            data[field_name] = value
        try:
            return DispatchConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid dispatch configuration: {exc}",
                details={"changes": changes},
            ) from exc


_FIELD_BY_ALIAS = {to_camel(name): name for name in DispatchConfig.model_fields}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the engine settings singleton.

    Returns a cached Settings instance so configuration is only loaded
    once per process.

    Returns:
        The engine Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load engine settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Primarily useful for testing or when environment variables have
    changed at runtime.
    """
    get_settings.cache_clear()


__all__ = [
    "DispatchSettings",
    "GameSettings",
    "Settings",
    "DispatchConfig",
    "get_settings",
    "clear_settings_cache",
]
