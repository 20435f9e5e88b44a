"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndProgressionError: Base exception for all engine errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Choice validation errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        log_context: Bind context to log entries within a block.
"""

from __future__ import annotations

from dnd_progression.core.config import (
    RulesSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dnd_progression.core.exceptions import (
    CharacterNotFoundError,
    CommitConflict,
    ConfigurationError,
    DiceRollError,
    DndProgressionError,
    InvalidProgressionError,
    PoolExhausted,
    ProgressionError,
    ProgressionStateError,
    ResourceError,
    RulesError,
    StorageError,
    UnknownClass,
    UnknownPoolError,
    ValidationError,
)
from dnd_progression.core.logging import (
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "DndProgressionError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Rules exceptions
    "RulesError",
    "UnknownClass",
    # Progression exceptions
    "ProgressionError",
    "InvalidProgressionError",
    "DiceRollError",
    "ProgressionStateError",
    # Resource exceptions
    "ResourceError",
    "PoolExhausted",
    "UnknownPoolError",
    # Storage exceptions
    "StorageError",
    "CharacterNotFoundError",
    "CommitConflict",
    # Configuration
    "Settings",
    "RulesSettings",
    "StorageSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
