"""dnd_progression - D&D 5E character progression engine.

Levels characters up one level at a time and tracks their limited-use
resources between level-ups.

- Rule tables own the numbers (hit dice, slots, features, resource uses)
- The calculator turns a snapshot and player choices into a delta
- The validator reports broken choice rules as values
- The state machine walks the player through the choices and commits once
- The ledger spends and restores resource pools under a per-character lock

Example:
    >>> from dnd_progression import ProgressionService, InMemoryCharacterRepository
    >>>
    >>> repo = InMemoryCharacterRepository([hero])
    >>> service = ProgressionService(repo)
    >>>
    >>> machine = service.start_progression(hero.id)
    >>> machine.submit_hp_choice("average")
    >>> machine.advance()
    >>> machine.advance()
    >>> delta = machine.confirm()
    >>>
    >>> service.spend(hero.id, "second_wind")
    >>> service.rest(hero.id, "short")

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 snapshots, features and deltas.
    rules: Per-class rule tables and the RuleTables facade.
    engine: Calculator, validator, ledger, state machine and service.
    storage: Repository protocol, in-memory and SQLite repositories.
"""

from __future__ import annotations

# Core
from dnd_progression.core.config import Settings, get_settings
from dnd_progression.core.exceptions import DndProgressionError
from dnd_progression.core.logging import configure_logging, get_logger

# Models
from dnd_progression.models import (
    Ability,
    AbilityScoreSet,
    ASIChoice,
    CharacterDelta,
    CharacterSnapshot,
    HPChoice,
    HPMethod,
    KnownSpell,
    ProgressionChoices,
    ResourcePool,
    RestKind,
)

# Rules
from dnd_progression.rules import RuleTables

# Engine
from dnd_progression.engine import (
    ChoiceValidator,
    ProgressionCalculator,
    ProgressionService,
    ProgressionStateMachine,
    ResourceLedger,
)

# Storage
from dnd_progression.storage import (
    CharacterRepository,
    InMemoryCharacterRepository,
    SQLiteCharacterRepository,
)


__version__ = "0.1.0"
__all__ = [
    "__version__",
    # Core
    "DndProgressionError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Ability",
    "AbilityScoreSet",
    "ASIChoice",
    "CharacterDelta",
    "CharacterSnapshot",
    "HPChoice",
    "HPMethod",
    "KnownSpell",
    "ProgressionChoices",
    "ResourcePool",
    "RestKind",
    # Rules
    "RuleTables",
    # Engine
    "ChoiceValidator",
    "ProgressionCalculator",
    "ProgressionService",
    "ProgressionStateMachine",
    "ResourceLedger",
    # Storage
    "CharacterRepository",
    "InMemoryCharacterRepository",
    "SQLiteCharacterRepository",
]
