"""Persistence collaborator contract and an in-memory implementation."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from dnd_progression.core.exceptions import (
    CharacterNotFoundError,
    CommitConflict,
    StorageError,
)
from dnd_progression.core.logging import get_logger
from dnd_progression.models.character import CharacterSnapshot, ResourcePool
from dnd_progression.models.delta import CharacterDelta


logger = get_logger(__name__)


@runtime_checkable
class CharacterRepository(Protocol):
    """Loads characters and commits level-ups atomically.

    Every write bumps the snapshot version. ``commit_delta`` applies a delta
    only when the stored version equals ``delta.base_version``; otherwise it
    raises ``CommitConflict`` and writes nothing.
    """

    def load_character(self, character_id: str) -> CharacterSnapshot:
        ...

    def add_character(self, snapshot: CharacterSnapshot) -> CharacterSnapshot:
        ...

    def commit_delta(self, character_id: str, delta: CharacterDelta) -> CharacterSnapshot:
        ...

    def save_resources(
        self,
        character_id: str,
        pools: Mapping[str, ResourcePool] | Iterable[ResourcePool],
        current_hp: int,
    ) -> CharacterSnapshot:
        ...


def _pool_dict(pools: Mapping[str, ResourcePool] | Iterable[ResourcePool]) -> dict[str, ResourcePool]:
    if isinstance(pools, Mapping):
        return dict(pools)
    return {pool.id: pool for pool in pools}


def with_resources(
    snapshot: CharacterSnapshot,
    pools: Mapping[str, ResourcePool] | Iterable[ResourcePool],
    current_hp: int,
) -> CharacterSnapshot:
    """Snapshot carrying new pool state and HP, one version later."""
    return CharacterSnapshot.model_validate(
        {
            **snapshot.model_dump(),
            "resources": {pool_id: pool.model_dump() for pool_id, pool in _pool_dict(pools).items()},
            "current_hp": current_hp,
            "version": snapshot.version + 1,
        }
    )


def check_version(character_id: str, delta: CharacterDelta, stored: CharacterSnapshot) -> None:
    """Raise CommitConflict if the delta was computed from another version."""
    if stored.version != delta.base_version:
        raise CommitConflict(
            "Character changed since the level-up was computed; reload and recompute",
            character_id=character_id,
            expected_version=delta.base_version,
            actual_version=stored.version,
        )


class InMemoryCharacterRepository:
    """Dict-backed repository guarded by a single lock.

    Example:
        >>> repo = InMemoryCharacterRepository([snapshot])
        >>> repo.load_character(snapshot.id).version
        0
    """

    def __init__(self, characters: Iterable[CharacterSnapshot] = ()) -> None:
        self._characters: dict[str, CharacterSnapshot] = {c.id: c for c in characters}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._characters)

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._characters

    def _get(self, character_id: str) -> CharacterSnapshot:
        try:
            return self._characters[character_id]
        except KeyError:
            raise CharacterNotFoundError(
                f"Character '{character_id}' not found",
                character_id=character_id,
            ) from None

    def load_character(self, character_id: str) -> CharacterSnapshot:
        with self._lock:
            return self._get(character_id)

    def add_character(self, snapshot: CharacterSnapshot) -> CharacterSnapshot:
        with self._lock:
            if snapshot.id in self._characters:
                raise StorageError(
                    f"Character '{snapshot.id}' already exists",
                    character_id=snapshot.id,
                )
            self._characters[snapshot.id] = snapshot
        logger.info("Character added", character_id=snapshot.id, level=snapshot.level)
        return snapshot

    def commit_delta(self, character_id: str, delta: CharacterDelta) -> CharacterSnapshot:
        with self._lock:
            stored = self._get(character_id)
            check_version(character_id, delta, stored)
            updated = delta.apply_to(stored)
            self._characters[character_id] = updated
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
        with self._lock:
            updated = with_resources(self._get(character_id), pools, current_hp)
            self._characters[character_id] = updated
        logger.debug("Resources saved", character_id=character_id, version=updated.version)
        return updated


__all__ = [
    "CharacterRepository",
    "InMemoryCharacterRepository",
    "check_version",
    "with_resources",
]
