"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestDndProgressionError:
    """Tests for the base DndProgressionError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = DndProgressionError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = DndProgressionError(
            "Test error",
            details={"key": "value", "count": 42},
        )
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        exc = DndProgressionError("Test", details={"x": 1})
        repr_str = repr(exc)
        assert "DndProgressionError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestValidationErrors:
    """Tests for choice validation and configuration errors."""

    def test_validation_error_context(self) -> None:
        """Test ValidationError records the broken rule."""
        exc = ValidationError(
            "Score over cap",
            rule="asi_score_cap",
            field_name="ability_score_improvement_4",
            invalid_value=21,
        )
        assert exc.details["rule"] == "asi_score_cap"
        assert exc.details["field_name"] == "ability_score_improvement_4"
        assert exc.details["invalid_value"] == 21

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad value", config_key="ability_score_cap")
        assert exc.details["config_key"] == "ability_score_cap"


class TestRulesExceptions:
    """Tests for rule lookup exceptions."""

    def test_unknown_class(self) -> None:
        """Test UnknownClass carries the identifier."""
        exc = UnknownClass("Unknown class", class_name="artificer")
        assert exc.details["class_name"] == "artificer"
        assert isinstance(exc, RulesError)


class TestProgressionExceptions:
    """Tests for progression exceptions."""

    def test_invalid_progression_levels(self) -> None:
        """Test InvalidProgressionError with levels."""
        exc = InvalidProgressionError("Skip", current_level=3, target_level=5)
        assert exc.details["current_level"] == 3
        assert exc.details["target_level"] == 5

    def test_dice_roll_error(self) -> None:
        """Test DiceRollError with expression."""
        exc = DiceRollError("Invalid", expression="1dX")
        assert exc.details["expression"] == "1dX"
        assert isinstance(exc, ProgressionError)

    def test_state_error(self) -> None:
        """Test ProgressionStateError names the states."""
        exc = ProgressionStateError(
            "Wrong step",
            current_state="collecting_hp",
            expected_states=["confirming"],
        )
        assert exc.details["current_state"] == "collecting_hp"
        assert exc.details["expected_states"] == ["confirming"]


class TestResourceAndStorageExceptions:
    """Tests for ledger and persistence exceptions."""

    def test_pool_errors(self) -> None:
        """Test pool errors carry the pool id."""
        for cls in (PoolExhausted, UnknownPoolError):
            exc = cls("No uses", pool_id="rage")
            assert exc.details["pool_id"] == "rage"
            assert isinstance(exc, ResourceError)

    def test_commit_conflict_versions(self) -> None:
        """Test CommitConflict records both versions."""
        exc = CommitConflict(
            "Stale",
            character_id="hero",
            expected_version=1,
            actual_version=2,
        )
        assert exc.details["character_id"] == "hero"
        assert exc.details["expected_version"] == 1
        assert exc.details["actual_version"] == 2
        assert isinstance(exc, StorageError)

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConfigurationError,
            ValidationError,
            UnknownClass,
            InvalidProgressionError,
            ProgressionStateError,
            PoolExhausted,
            CharacterNotFoundError,
            CommitConflict,
        ],
    )
    def test_inheritance(self, exc_class: type[DndProgressionError]) -> None:
        """Test every error derives from the base exception."""
        exc = exc_class("Error")
        assert isinstance(exc, DndProgressionError)
        assert isinstance(exc, Exception)
