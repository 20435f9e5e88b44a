"""Tests for SQLite character persistence."""

from __future__ import annotations

from pathlib import Path

import pytest

from dnd_progression.core.exceptions import CharacterNotFoundError, CommitConflict, StorageError
from dnd_progression.engine.calculator import ProgressionCalculator
from dnd_progression.models.character import CharacterSnapshot
from dnd_progression.models.delta import HPChoice, ProgressionChoices
from dnd_progression.storage.database import SQLiteCharacterRepository
from dnd_progression.storage.repository import CharacterRepository


@pytest.fixture
def database(tmp_path: Path) -> SQLiteCharacterRepository:
    """A fresh database file per test."""
    return SQLiteCharacterRepository(tmp_path / "characters.db")


class TestSchema:
    """Tests for database setup."""

    def test_default_path_from_settings(self, tmp_path: Path) -> None:
        """Test the configured path is used and its directory created."""
        repository = SQLiteCharacterRepository()

        assert repository.db_path == tmp_path / "data" / "test.db"
        assert repository.db_path.exists()

    def test_satisfies_protocol(self, database: SQLiteCharacterRepository) -> None:
        """Test the SQLite repository implements the contract."""
        assert isinstance(database, CharacterRepository)

    def test_reopen_keeps_data(self, tmp_path: Path, paladin: CharacterSnapshot) -> None:
        """Test data survives a new repository on the same file."""
        SQLiteCharacterRepository(tmp_path / "shared.db").add_character(paladin)

        loaded = SQLiteCharacterRepository(tmp_path / "shared.db").load_character("paladin")

        assert loaded == paladin


class TestCharacterOperations:
    """Tests for storing and loading characters."""

    def test_round_trip_preserves_pools(self, database: SQLiteCharacterRepository, paladin: CharacterSnapshot) -> None:
        """Test pools and subclass come back unchanged."""
        database.add_character(paladin)

        loaded = database.load_character("paladin")

        assert loaded.resources == paladin.resources
        assert loaded.subclass == "devotion"

    def test_load_missing(self, database: SQLiteCharacterRepository) -> None:
        """Test loading an unknown id."""
        with pytest.raises(CharacterNotFoundError):
            database.load_character("ghost")

    def test_duplicate_add(self, database: SQLiteCharacterRepository, fighter: CharacterSnapshot) -> None:
        """Test ids are unique."""
        database.add_character(fighter)
        with pytest.raises(StorageError):
            database.add_character(fighter)

    def test_list_and_delete(
        self,
        database: SQLiteCharacterRepository,
        fighter: CharacterSnapshot,
        paladin: CharacterSnapshot,
    ) -> None:
        """Test listing and deleting rows."""
        database.add_character(fighter)
        database.add_character(paladin)

        records = database.list_characters()
        assert {r.id for r in records} == {"hero", "paladin"}
        assert {r.class_name for r in records} == {"fighter", "paladin"}

        assert database.delete_character("hero")
        assert not database.delete_character("hero")
        assert [r.id for r in database.list_characters()] == ["paladin"]


class TestVersioning:
    """Tests for optimistic concurrency."""

    def test_commit_and_conflict(
        self,
        database: SQLiteCharacterRepository,
        calculator: ProgressionCalculator,
        paladin: CharacterSnapshot,
    ) -> None:
        """Test the first commit wins and a second with the same base conflicts."""
        database.add_character(paladin)
        delta = calculator.calculate(paladin, 5, ProgressionChoices(hp=HPChoice.average()))

        updated = database.commit_delta("paladin", delta)
        assert updated.level == 5
        assert database.list_characters()[0].version == 1

        with pytest.raises(CommitConflict):
            database.commit_delta("paladin", delta)
        assert database.load_character("paladin").resources["lay_on_hands"].max == 25

    def test_resources_then_stale_commit(
        self,
        database: SQLiteCharacterRepository,
        calculator: ProgressionCalculator,
        paladin: CharacterSnapshot,
    ) -> None:
        """Test a resource write invalidates a delta computed before it."""
        database.add_character(paladin)
        delta = calculator.calculate(paladin, 5, ProgressionChoices(hp=HPChoice.average()))

        spent = database.save_resources("paladin", [paladin.resources["lay_on_hands"].with_current(4)], 36)
        assert spent.version == 1

        with pytest.raises(CommitConflict):
            database.commit_delta("paladin", delta)

        stored = database.load_character("paladin")
        assert stored.level == 4
        assert stored.resources["lay_on_hands"].current == 4
