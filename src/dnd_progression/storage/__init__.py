"""Storage module for character persistence.

Provides:
- The CharacterRepository protocol the engine commits through
- An in-memory repository for tests and embedding
- SQLite-based storage with optimistic version checks
"""

from dnd_progression.storage.database import CharacterRecord, SQLiteCharacterRepository
from dnd_progression.storage.repository import CharacterRepository, InMemoryCharacterRepository

__all__ = [
    "CharacterRepository",
    "InMemoryCharacterRepository",
    "SQLiteCharacterRepository",
    "CharacterRecord",
]
