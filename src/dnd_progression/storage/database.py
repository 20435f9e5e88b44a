"""SQLite persistence for character snapshots.

Each character is one row: a few indexed columns and the full snapshot as
JSON. The ``version`` column drives optimistic concurrency; a level-up is
written with ``UPDATE ... WHERE version = ?`` so a stale delta never lands.

Storage location: ``Settings.storage.database_path``
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from dnd_progression.core.config import get_settings
from dnd_progression.core.exceptions import CharacterNotFoundError, CommitConflict, StorageError
from dnd_progression.core.logging import get_logger
from dnd_progression.models.character import CharacterSnapshot, ResourcePool
from dnd_progression.models.delta import CharacterDelta
from dnd_progression.storage.repository import check_version, with_resources


logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class CharacterRecord:
    """A stored character row.

    Attributes:
        id: Character identifier.
        name: Display name.
        class_name: Class identifier.
        level: Character level.
        version: Snapshot version.
        data: Serialized CharacterSnapshot.
        updated_at: When the row was last written.
    """

    id: str
    name: str
    class_name: str
    level: int
    version: int
    data: str
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> CharacterRecord:
        """Create from database row."""
        return cls(
            id=row[0],
            name=row[1],
            class_name=row[2],
            level=row[3],
            version=row[4],
            data=row[5],
            updated_at=datetime.fromisoformat(row[6]),
        )

    def to_snapshot(self) -> CharacterSnapshot:
        return CharacterSnapshot.model_validate_json(self.data)


# =============================================================================
# Repository
# =============================================================================


class SQLiteCharacterRepository:
    """SQLite-backed ``CharacterRepository``."""

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the database file. If None, uses the configured
                storage path.
        """
        if db_path is None:
            self.db_path = get_settings().storage.database_path
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    class_name TEXT NOT NULL,
                    level INTEGER NOT NULL,
                    version INTEGER NOT NULL,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_characters_updated
                ON characters(updated_at DESC)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    def _fetch(self, conn: sqlite3.Connection, character_id: str) -> CharacterRecord:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id, name, class_name, level, version, data, updated_at
            FROM characters WHERE id = ?
        """, (character_id,))
        row = cursor.fetchone()
        if row is None:
            raise CharacterNotFoundError(
                f"Character '{character_id}' not found",
                character_id=character_id,
            )
        return CharacterRecord.from_row(tuple(row))

    def _write(self, conn: sqlite3.Connection, snapshot: CharacterSnapshot, expected_version: int) -> None:
        cursor = conn.cursor()
        cursor.execute("""
            UPDATE characters
            SET name = ?, class_name = ?, level = ?, version = ?, data = ?, updated_at = ?
            WHERE id = ? AND version = ?
        """, (
            snapshot.name,
            snapshot.class_name,
            snapshot.level,
            snapshot.version,
            snapshot.model_dump_json(),
            datetime.now().isoformat(),
            snapshot.id,
            expected_version,
        ))
        if cursor.rowcount == 0:
            raise CommitConflict(
                "Character changed while writing; reload and recompute",
                character_id=snapshot.id,
                expected_version=expected_version,
            )

    # =========================================================================
    # Character Operations
    # =========================================================================

    def load_character(self, character_id: str) -> CharacterSnapshot:
        """Load the current snapshot.

        Raises:
            CharacterNotFoundError: If no such character is stored.
        """
        with self._get_connection() as conn:
            return self._fetch(conn, character_id).to_snapshot()

    def add_character(self, snapshot: CharacterSnapshot) -> CharacterSnapshot:
        """Store a new character.

        Raises:
            StorageError: If the id is already taken.
        """
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO characters (id, name, class_name, level, version, data, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    snapshot.id,
                    snapshot.name,
                    snapshot.class_name,
                    snapshot.level,
                    snapshot.version,
                    snapshot.model_dump_json(),
                    datetime.now().isoformat(),
                ))
        except sqlite3.IntegrityError as exc:
            raise StorageError(
                f"Character '{snapshot.id}' already exists",
                character_id=snapshot.id,
            ) from exc

        logger.info("Character added", character_id=snapshot.id, level=snapshot.level)
        return snapshot

    def commit_delta(self, character_id: str, delta: CharacterDelta) -> CharacterSnapshot:
        """Apply a level-up in one transaction.

        Raises:
            CharacterNotFoundError: If no such character is stored.
            CommitConflict: If the stored version is not the delta's base.
            InvalidProgressionError: If the delta still has pending choices.
        """
        with self._get_connection() as conn:
            stored = self._fetch(conn, character_id).to_snapshot()
            check_version(character_id, delta, stored)
            updated = delta.apply_to(stored)
            self._write(conn, updated, stored.version)

        logger.info(
            "Level-up committed",
            character_id=character_id,
            level=updated.level,
            version=updated.version,
        )
        return updated

    def save_resources(
        self,
        character_id: str,
        pools: Mapping[str, ResourcePool] | Iterable[ResourcePool],
        current_hp: int,
    ) -> CharacterSnapshot:
        """Persist live pool state and HP; bumps the version."""
        with self._get_connection() as conn:
            stored = self._fetch(conn, character_id).to_snapshot()
            updated = with_resources(stored, pools, current_hp)
            self._write(conn, updated, stored.version)

        logger.debug("Resources saved", character_id=character_id, version=updated.version)
        return updated

    def list_characters(self) -> list[CharacterRecord]:
        """All stored characters, most recently updated first."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, class_name, level, version, data, updated_at
                FROM characters ORDER BY updated_at DESC
            """)
            return [CharacterRecord.from_row(tuple(row)) for row in cursor.fetchall()]

    def delete_character(self, character_id: str) -> bool:
        """Delete a character.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM characters WHERE id = ?", (character_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Character deleted", character_id=character_id)
        return deleted


__all__ = [
    "CharacterRecord",
    "SQLiteCharacterRepository",
]
