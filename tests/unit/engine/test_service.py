"""Tests for the progression service facade."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from dnd_progression.core.exceptions import (
    CharacterNotFoundError,
    CommitConflict,
    PoolExhausted,
    StorageError,
    UnknownClass,
    ValidationError,
)
from dnd_progression.engine.service import ProgressionService
from dnd_progression.models.character import CharacterSnapshot
from dnd_progression.models.enums import HPMethod, ProgressionStep, RestKind
from dnd_progression.storage.repository import InMemoryCharacterRepository


class FailingSaveRepository(InMemoryCharacterRepository):
    """Repository whose resource writes always fail."""

    def save_resources(self, character_id: str, pools: object, current_hp: int) -> CharacterSnapshot:
        raise StorageError("disk full", character_id=character_id)


@pytest.fixture
def service(repository: InMemoryCharacterRepository, dice_roller) -> ProgressionService:
    """Service over the in-memory repository."""
    return ProgressionService(repository, roller=dice_roller)


def _level_up(machine) -> None:
    machine.submit_hp_choice(HPMethod.AVERAGE)
    machine.advance()
    machine.advance()
    assert machine.step == ProgressionStep.CONFIRMING
    machine.confirm()


class TestStartProgression:
    """Tests for starting level-ups."""

    def test_start_by_id(self, service: ProgressionService) -> None:
        """Test the snapshot is loaded from the repository."""
        machine = service.start_progression("paladin")

        assert machine.snapshot.level == 4
        assert machine.plan.to_level == 5
        assert machine.validator is service.validator

    def test_unknown_id(self, service: ProgressionService) -> None:
        """Test unknown characters raise CharacterNotFoundError."""
        with pytest.raises(CharacterNotFoundError):
            service.start_progression("nobody")

    def test_strict_lookup_from_settings(self, mock_env_vars: dict[str, str], make_character) -> None:
        """Test strict settings make unknown classes fail."""
        service = ProgressionService(InMemoryCharacterRepository([make_character(class_name="artificer")]))

        with pytest.raises(UnknownClass):
            service.start_progression("hero")

    def test_full_heal_from_settings(self, mock_env_vars: dict[str, str], make_character) -> None:
        """Test the configured full heal is used by machines."""
        service = ProgressionService(InMemoryCharacterRepository([make_character(current_hp=2)]))
        assert service.start_progression("hero").full_heal is True


class TestResources:
    """Tests for persisted resource operations."""

    def test_spend_persists(self, service: ProgressionService, repository: InMemoryCharacterRepository) -> None:
        """Test a successful spend is written through."""
        result = service.spend("paladin", "lay_on_hands", 5)

        assert result.ok
        stored = repository.load_character("paladin")
        assert stored.resources["lay_on_hands"].current == 15
        assert stored.version == 1

    def test_failed_spend_not_persisted(self, service: ProgressionService, repository: InMemoryCharacterRepository) -> None:
        """Test an exhausted spend writes nothing."""
        service.spend("paladin", "lay_on_hands", 20)

        result = service.spend("paladin", "lay_on_hands")

        assert isinstance(result.error, PoolExhausted)
        assert repository.load_character("paladin").version == 1

    def test_long_rest_restores(self, service: ProgressionService, repository: InMemoryCharacterRepository) -> None:
        """Test a long rest refills pools and HP in storage."""
        service.spend("paladin", "lay_on_hands", 12)

        result = service.rest("paladin", RestKind.LONG)

        assert result.restored == ("lay_on_hands",)
        assert repository.load_character("paladin").resources["lay_on_hands"].current == 20

    def test_rest_kind_parsed_case_insensitively(
        self, service: ProgressionService, repository: InMemoryCharacterRepository
    ) -> None:
        """Test a capitalized rest kind rests, and an unknown one is a ValidationError."""
        service.spend("paladin", "lay_on_hands", 5)

        assert service.rest("paladin", "Long").kind == RestKind.LONG
        assert repository.load_character("paladin").resources["lay_on_hands"].current == 20

        version = repository.load_character("paladin").version
        with pytest.raises(ValidationError):
            service.rest("paladin", "nap")
        assert repository.load_character("paladin").version == version

    def test_recover(self, service: ProgressionService) -> None:
        """Test recover goes through the shared ledger."""
        service.spend("paladin", "lay_on_hands", 4)
        assert service.recover("paladin", "lay_on_hands", 2).pool.current == 18
        assert service.ledger("paladin").get("lay_on_hands").current == 18

    def test_failed_save_drops_ledger(self, paladin: CharacterSnapshot) -> None:
        """Test the ledger is reloaded after a write failure."""
        service = ProgressionService(FailingSaveRepository([paladin]))

        with pytest.raises(StorageError):
            service.spend("paladin", "lay_on_hands")

        assert service.ledger("paladin").get("lay_on_hands").current == 20

    def test_concurrent_spends(self, service: ProgressionService, repository: InMemoryCharacterRepository) -> None:
        """Test only one of many concurrent spends gets the last use."""
        service.spend("paladin", "lay_on_hands", 19)
        barrier = threading.Barrier(6)

        def attempt(_: int) -> bool:
            barrier.wait()
            return service.spend("paladin", "lay_on_hands").ok

        with ThreadPoolExecutor(max_workers=6) as executor:
            results = list(executor.map(attempt, range(6)))

        assert results.count(True) == 1
        assert repository.load_character("paladin").resources["lay_on_hands"].current == 0


class TestLevelUpAndResources:
    """Tests for level-ups interleaved with resource use."""

    def test_commit_refreshes_ledger(self, service: ProgressionService) -> None:
        """Test the ledger serves the new pools after a level-up."""
        service.spend("paladin", "lay_on_hands", 5)
        _level_up(service.start_progression("paladin"))

        pool = service.ledger("paladin").get("lay_on_hands")

        assert (pool.current, pool.max) == (20, 25)

    def test_spend_during_wizard_conflicts(self, service: ProgressionService, repository: InMemoryCharacterRepository) -> None:
        """Test a spend after the snapshot was loaded invalidates the level-up."""
        machine = service.start_progression("paladin")
        service.spend("paladin", "lay_on_hands", 5)

        with pytest.raises(CommitConflict):
            _level_up(machine)

        _level_up(service.start_progression("paladin"))
        stored = repository.load_character("paladin")
        assert stored.level == 5
        assert stored.resources["lay_on_hands"].current == 20
