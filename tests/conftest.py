"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the progression engine test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from dnd_progression.models.character import CharacterSnapshot


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset the settings cache and keep the default database in tmp_path."""
    from dnd_progression.core.config import clear_settings_cache

    monkeypatch.setenv("DND_PROGRESSION_DATABASE_PATH", str(tmp_path / "data" / "test.db"))
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_PROGRESSION_LOG_LEVEL": "DEBUG",
        "DND_PROGRESSION_RULES_STRICT_CLASS_LOOKUP": "true",
        "DND_PROGRESSION_RULES_FULL_HEAL_ON_LEVEL_UP": "true",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_abilities() -> dict[str, int]:
    """Provide sample character ability scores.

    Returns:
        Dictionary of ability scores.
    """
    return {
        "strength": 16,
        "dexterity": 14,
        "constitution": 14,
        "intelligence": 10,
        "wisdom": 12,
        "charisma": 8,
    }


@pytest.fixture
def make_character(sample_abilities: dict[str, int]) -> Callable[..., CharacterSnapshot]:
    """Factory for character snapshots.

    Keyword arguments override the defaults of a level 1 fighter.
    """
    from dnd_progression.models.character import CharacterSnapshot

    def factory(**overrides: Any) -> CharacterSnapshot:
        data: dict[str, Any] = {
            "id": "hero",
            "name": "Test Hero",
            "class_name": "fighter",
            "level": 1,
            "abilities": dict(sample_abilities),
            "max_hp": 12,
        }
        data.update(overrides)
        return CharacterSnapshot.model_validate(data)

    return factory


@pytest.fixture
def fighter(make_character: Callable[..., CharacterSnapshot]) -> CharacterSnapshot:
    """A level 1 fighter with no resources yet."""
    return make_character()


@pytest.fixture
def paladin(make_character: Callable[..., CharacterSnapshot]) -> CharacterSnapshot:
    """A level 4 paladin with a full Lay on Hands pool."""
    from dnd_progression.models.character import ResourcePool
    from dnd_progression.models.enums import RechargePolicy

    return make_character(
        id="paladin",
        name="Test Paladin",
        class_name="paladin",
        level=4,
        subclass="devotion",
        abilities={"strength": 16, "constitution": 14, "charisma": 16},
        max_hp=36,
        resources=[
            ResourcePool(
                id="lay_on_hands",
                name="Lay on Hands",
                max=20,
                current=20,
                recharge=RechargePolicy.LONG_REST,
                owning_class="paladin",
            ),
        ],
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def rules() -> Any:
    """Rule tables in lenient mode."""
    from dnd_progression.rules.registry import RuleTables

    return RuleTables(strict=False)


@pytest.fixture
def validator() -> Any:
    """Choice validator with the standard cap of 20."""
    from dnd_progression.engine.validator import ChoiceValidator

    return ChoiceValidator(ability_score_cap=20)


@pytest.fixture
def calculator(rules: Any, validator: Any) -> Any:
    """Progression calculator over the default rules."""
    from dnd_progression.engine.calculator import ProgressionCalculator

    return ProgressionCalculator(rules, validator)


@pytest.fixture
def dice_roller() -> Any:
    """Provide a seeded DiceRoller for deterministic tests."""
    from dnd_progression.engine.dice import DiceRoller

    return DiceRoller(seed=42)


@pytest.fixture
def repository(fighter: CharacterSnapshot, paladin: CharacterSnapshot) -> Any:
    """In-memory repository holding the fighter and the paladin."""
    from dnd_progression.storage.repository import InMemoryCharacterRepository

    return InMemoryCharacterRepository([fighter, paladin])
