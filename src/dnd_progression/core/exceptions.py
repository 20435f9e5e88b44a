"""Custom exception hierarchy for the D&D 5E progression engine.

All exceptions inherit from DndProgressionError, enabling unified error
handling at the application boundary while preserving domain-specific
context in the ``details`` mapping.

Validation and resource-ledger failures are normally carried as values
(see ``ValidationResult`` and ``LedgerResult``); the classes below give
those values a stable type and are raised where a failure must stop the
caller (state machine misuse, stale commits, strict class lookup).

Example:
    >>> from dnd_progression.core.exceptions import PoolExhausted
    >>> raise PoolExhausted("No uses left", pool_id="rage")
"""

from __future__ import annotations

from typing import Any


class DndProgressionError(Exception):
    """Base exception for all progression engine errors.

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
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DndProgressionError):
    """Raised when application configuration is invalid."""

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


class ValidationError(DndProgressionError):
    """Raised when a player choice breaks a cardinality or cap rule.

    Recoverable: the choice is re-presented together with the specific
    rule that was violated.
    """

    def __init__(
        self,
        message: str,
        *,
        rule: str | None = None,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with rule and field context.

        Args:
            message: Human-readable error description.
            rule: Code of the violated rule.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if rule:
            combined_details["rule"] = rule
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Rules Domain Exceptions
# =============================================================================


class RulesError(DndProgressionError):
    """Base exception for rule table lookups."""


class UnknownClass(RulesError):
    """Signals that a class identifier is not in the rule registry.

    In the default (lenient) mode this is only logged as a warning and the
    baseline non-caster profile is used. With strict class lookup enabled
    it is raised.
    """

    def __init__(
        self,
        message: str,
        *,
        class_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unknown class error.

        Args:
            message: Human-readable error description.
            class_name: The unrecognized class identifier.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if class_name is not None:
            combined_details["class_name"] = class_name
        super().__init__(message, details=combined_details)


# =============================================================================
# Progression Domain Exceptions
# =============================================================================


class ProgressionError(DndProgressionError):
    """Base exception for level-up computation and workflow errors."""


class InvalidProgressionError(ProgressionError):
    """Raised when a level-up request cannot be computed.

    For example a target level that is not exactly one above the current
    level, or a character already at the level cap.
    """

    def __init__(
        self,
        message: str,
        *,
        current_level: int | None = None,
        target_level: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid progression error with level context.

        Args:
            message: Human-readable error description.
            current_level: The character's current level.
            target_level: The requested target level.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_level is not None:
            combined_details["current_level"] = current_level
        if target_level is not None:
            combined_details["target_level"] = target_level
        super().__init__(message, details=combined_details)


class DiceRollError(ProgressionError):
    """Raised when a hit die roll cannot be performed."""

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
            expression: The dice expression that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class ProgressionStateError(ProgressionError):
    """Raised when the level-up state machine is driven out of order."""

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize state error with state context.

        Args:
            message: Human-readable error description.
            current_state: The state the machine is in.
            expected_states: States in which the call would be allowed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


# =============================================================================
# Resource Domain Exceptions
# =============================================================================


class ResourceError(DndProgressionError):
    """Base exception for limited-use resource pool errors."""

    def __init__(
        self,
        message: str,
        *,
        pool_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize resource error with pool context.

        Args:
            message: Human-readable error description.
            pool_id: Identifier of the pool involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if pool_id:
            combined_details["pool_id"] = pool_id
        super().__init__(message, details=combined_details)


class PoolExhausted(ResourceError):
    """A spend was attempted on a pool without enough remaining uses."""


class UnknownPoolError(ResourceError):
    """The requested pool does not exist on the character."""


# =============================================================================
# Storage Domain Exceptions
# =============================================================================


class StorageError(DndProgressionError):
    """Base exception for the persistence collaborator."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize storage error with character context.

        Args:
            message: Human-readable error description.
            character_id: Identifier of the character involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        super().__init__(message, details=combined_details)


class CharacterNotFoundError(StorageError):
    """No character is stored under the requested id."""


class CommitConflict(StorageError):
    """Persistence rejected a delta computed against a stale snapshot.

    The caller must reload the character and recompute the delta; the
    rejected delta must never be merged blindly.
    """

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        expected_version: int | None = None,
        actual_version: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize commit conflict with version context.

        Args:
            message: Human-readable error description.
            character_id: Identifier of the character involved.
            expected_version: Version the delta was computed against.
            actual_version: Version currently stored.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expected_version is not None:
            combined_details["expected_version"] = expected_version
        if actual_version is not None:
            combined_details["actual_version"] = actual_version
        super().__init__(message, character_id=character_id, details=combined_details)


__all__ = [
    "DndProgressionError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
    # Rules
    "RulesError",
    "UnknownClass",
    # Progression
    "ProgressionError",
    "InvalidProgressionError",
    "DiceRollError",
    "ProgressionStateError",
    # Resources
    "ResourceError",
    "PoolExhausted",
    "UnknownPoolError",
    # Storage
    "StorageError",
    "CharacterNotFoundError",
    "CommitConflict",
]
