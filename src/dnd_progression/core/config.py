"""Configuration management for the progression engine.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides.

Example:
    >>> from dnd_progression.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.rules.ability_score_cap
    20

Environment Variables:
    DND_PROGRESSION_APP_NAME: Name tagged on every log event
    DND_PROGRESSION_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DND_PROGRESSION_JSON_LOGS: Emit JSON log lines instead of console output
    DND_PROGRESSION_LOG_FILE: Optional file that also receives JSON log lines
    DND_PROGRESSION_RULES_STRICT_CLASS_LOOKUP: Raise on unknown class identifiers
    DND_PROGRESSION_RULES_FULL_HEAL_ON_LEVEL_UP: Default for the full-heal option
    DND_PROGRESSION_DATABASE_PATH: Path to the SQLite database file
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_progression.core.constants import MAX_ABILITY_SCORE, PC_ABILITY_SCORE_CAP
from dnd_progression.core.exceptions import ConfigurationError


class RulesSettings(BaseSettings):
    """Configuration for rule evaluation.

    Attributes:
        ability_score_cap: Highest score an ASI may produce.
        strict_class_lookup: Raise UnknownClass instead of falling back.
        full_heal_on_level_up: Default for the confirm-time full heal option.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_PROGRESSION_RULES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ability_score_cap: int = Field(
        default=PC_ABILITY_SCORE_CAP,
        ge=1,
        le=MAX_ABILITY_SCORE,
        description="Maximum score reachable through ability score improvements",
    )
    strict_class_lookup: bool = Field(
        default=False,
        description="Raise on unknown class identifiers instead of using the baseline profile",
    )
    full_heal_on_level_up: bool = Field(
        default=False,
        description="Restore HP to the new maximum when a level-up is confirmed",
    )


class StorageSettings(BaseSettings):
    """Configuration for the SQLite character store.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_PROGRESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dnd_progression.db"),
        description="Path to SQLite database",
    )

    @field_validator("database_path", mode="after")
    @classmethod
    def ensure_parent_exists(cls, value: Path) -> Path:
        """Create the database's parent directory if necessary.

        Args:
            value: The database path.

        Returns:
            The validated path.
        """
        value.parent.mkdir(parents=True, exist_ok=True)
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Name stamped on every log event as ``app``.
        log_level: Application logging level.
        json_logs: Render logs as JSON.
        log_file: Optional file receiving JSON log lines.
        rules: Rule evaluation settings.
        storage: Persistence settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_PROGRESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="dnd_progression",
        description="Application name tagged on log events",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )
    log_file: Path | None = Field(
        default=None,
        description="Also write JSON log lines to this file",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "RulesSettings",
    "StorageSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
