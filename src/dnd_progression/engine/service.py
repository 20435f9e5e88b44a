"""Orchestration facade over the progression engine.

``ProgressionService`` is what a UI or API layer talks to. It loads
characters from a repository, starts level-up state machines whose commit
goes back to the same repository, and exposes the resource surface
(spend, recover, rest) with one shared ledger per character.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TypeVar

from dnd_progression.core.config import Settings, get_settings
from dnd_progression.core.logging import get_logger, log_context
from dnd_progression.engine.calculator import ProgressionCalculator
from dnd_progression.engine.dice import DiceRoller
from dnd_progression.engine.ledger import LedgerResult, ResourceLedger, RestResult, parse_rest_kind
from dnd_progression.engine.state_machine import ProgressionStateMachine
from dnd_progression.engine.validator import ChoiceValidator
from dnd_progression.models.character import CharacterSnapshot
from dnd_progression.models.delta import CharacterDelta
from dnd_progression.models.enums import RestKind
from dnd_progression.rules.registry import RuleTables
from dnd_progression.storage.repository import CharacterRepository


logger = get_logger(__name__)

T = TypeVar("T", LedgerResult, RestResult)


class ProgressionService:
    """Entry point for level-ups and resource tracking.

    Example:
        >>> service = ProgressionService(InMemoryCharacterRepository([hero]))
        >>> machine = service.start_progression(hero.id)
        >>> service.spend(hero.id, "second_wind").ok
        True
    """

    def __init__(
        self,
        repository: CharacterRepository,
        *,
        rules: RuleTables | None = None,
        calculator: ProgressionCalculator | None = None,
        validator: ChoiceValidator | None = None,
        settings: Settings | None = None,
        roller: DiceRoller | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Persistence collaborator.
            rules: Rule tables; built from settings if omitted.
            calculator: Progression calculator.
            validator: Choice validator; the ASI cap comes from settings.
            settings: Application settings; defaults to ``get_settings()``.
            roller: Dice roller for rolled hit points.
        """
        self.settings = settings or get_settings()
        self.repository = repository
        self.rules = rules or RuleTables(strict=self.settings.rules.strict_class_lookup)
        self.validator = validator or ChoiceValidator(ability_score_cap=self.settings.rules.ability_score_cap)
        self.calculator = calculator or ProgressionCalculator(self.rules, self.validator)
        self.roller = roller or DiceRoller()
        self._ledgers: dict[str, ResourceLedger] = {}
        self._ledgers_lock = threading.Lock()

    # =========================================================================
    # Progression
    # =========================================================================

    def start_progression(
        self,
        character: CharacterSnapshot | str,
        *,
        target_level: int | None = None,
        full_heal: bool | None = None,
    ) -> ProgressionStateMachine:
        """Start a level-up for a character or character id.

        Raises:
            CharacterNotFoundError: If the id is unknown.
            InvalidProgressionError: If the character cannot level up.
        """
        snapshot = character if isinstance(character, CharacterSnapshot) else self.repository.load_character(character)
        if full_heal is None:
            full_heal = self.settings.rules.full_heal_on_level_up
        return ProgressionStateMachine(
            snapshot,
            commit=self._commit,
            calculator=self.calculator,
            validator=self.validator,
            target_level=target_level,
            full_heal=full_heal,
            roller=self.roller,
        )

    def _commit(self, character_id: str, delta: CharacterDelta) -> CharacterSnapshot:
        # Resource writes for this character wait until the new snapshot is stored.
        with self.ledger(character_id).lock:
            result = self.repository.commit_delta(character_id, delta)
            self._drop_ledger(character_id)
        logger.debug("Ledger invalidated after level-up", character_id=character_id, version=result.version)
        return result

    def _drop_ledger(self, character_id: str) -> None:
        with self._ledgers_lock:
            self._ledgers.pop(character_id, None)

    # =========================================================================
    # Resources
    # =========================================================================

    def _cached_ledger(self, character_id: str) -> ResourceLedger | None:
        with self._ledgers_lock:
            return self._ledgers.get(character_id)

    def ledger(self, character_id: str) -> ResourceLedger:
        """The shared ledger for a character, loaded on first use."""
        with self._ledgers_lock:
            ledger = self._ledgers.get(character_id)
            if ledger is None:
                ledger = ResourceLedger.from_snapshot(self.repository.load_character(character_id))
                self._ledgers[character_id] = ledger
            return ledger

    def _run(self, character_id: str, operation: Callable[[ResourceLedger], T]) -> T:
        """Run a ledger operation and persist the outcome under the ledger lock."""
        with log_context(character_id=character_id):
            while True:
                ledger = self.ledger(character_id)
                with ledger.lock:
                    if self._cached_ledger(character_id) is not ledger:
                        # Replaced by a level-up commit; retry on the fresh ledger.
                        continue
                    before = ledger.revision
                    result = operation(ledger)
                    if ledger.revision != before:
                        try:
                            self.repository.save_resources(character_id, ledger.pools, ledger.current_hp)
                        except Exception:
                            # Unpersisted state must not be served again.
                            self._drop_ledger(character_id)
                            raise
                    return result

    def spend(self, character_id: str, pool_id: str, amount: int = 1) -> LedgerResult:
        return self._run(character_id, lambda ledger: ledger.spend(pool_id, amount))

    def recover(self, character_id: str, pool_id: str, amount: int = 1) -> LedgerResult:
        return self._run(character_id, lambda ledger: ledger.recover(pool_id, amount))

    def rest(self, character_id: str, kind: RestKind | str) -> RestResult:
        """Take a rest; ``kind`` is matched case-insensitively.

        Raises:
            ValidationError: If ``kind`` is not a short or long rest.
        """
        rest_kind = parse_rest_kind(kind)
        return self._run(character_id, lambda ledger: ledger.rest(rest_kind))


__all__ = ["ProgressionService"]
