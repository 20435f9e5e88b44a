"""Live resource pool state for one character.

The ledger owns a character's pools and hit points between level-ups.
Every operation runs under one re-entrant lock per character, so two
concurrent spends against a pool with one use left cannot both succeed.
Failures are returned as ``LedgerResult`` values; the state is left
unchanged whenever an operation fails.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from dnd_progression.core.exceptions import (
    PoolExhausted,
    ResourceError,
    UnknownPoolError,
    ValidationError,
)
from dnd_progression.core.logging import get_logger
from dnd_progression.models.character import CharacterSnapshot, ResourcePool
from dnd_progression.models.enums import RechargePolicy, RestKind


logger = get_logger(__name__)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of a spend or recover.

    Attributes:
        pool_id: Pool the operation targeted.
        pool: Pool state after the operation (unchanged on failure).
        error: Why the operation failed, None on success.
        revision: Ledger revision after the operation.
    """

    pool_id: str
    pool: ResourcePool | None
    error: ResourceError | ValidationError | None = None
    revision: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> ResourcePool:
        """Return the pool, raising the carried error on failure.

        Raises:
            ResourceError: If the operation failed on the pool or carries
                no pool state.
            ValidationError: If the amount was invalid.
        """
        if self.error is not None:
            raise self.error
        if self.pool is None:
            raise UnknownPoolError(f"No pool state for '{self.pool_id}'", pool_id=self.pool_id)
        return self.pool


@dataclass(frozen=True)
class RestResult:
    """Outcome of a rest.

    Attributes:
        kind: Short or long rest.
        restored: Ids of pools that were refilled.
        hp_restored: Hit points regained.
        revision: Ledger revision after the rest.
    """

    kind: RestKind
    restored: tuple[str, ...] = ()
    hp_restored: int = 0
    revision: int = 0


def parse_rest_kind(kind: RestKind | str) -> RestKind:
    """Resolve ``"Long"``, ``" short "`` or a ``RestKind`` member.

    Raises:
        ValidationError: If ``kind`` names neither rest.
    """
    if isinstance(kind, RestKind):
        return kind
    try:
        return RestKind(str(kind).strip().lower())
    except ValueError as exc:
        raise ValidationError(
            f"Unknown rest kind '{kind}', expected one of: {', '.join(k.value for k in RestKind)}",
            rule="rest_kind",
            field_name="kind",
            invalid_value=kind,
        ) from exc


# =============================================================================
# Ledger
# =============================================================================


class ResourceLedger:
    """Spend, recover and rest operations over one character's pools.

    Example:
        >>> ledger = ResourceLedger.from_snapshot(snapshot)
        >>> ledger.spend("rage").ok
        True
        >>> ledger.rest(RestKind.LONG).restored
        ('rage',)
    """

    def __init__(
        self,
        character_id: str,
        pools: Iterable[ResourcePool] | Mapping[str, ResourcePool] = (),
        *,
        max_hp: int,
        current_hp: int | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            character_id: Character whose pools are tracked.
            pools: Initial pools, as a list or keyed by id.
            max_hp: Hit point maximum.
            current_hp: Current hit points; defaults to max_hp.
        """
        self.character_id = character_id
        if isinstance(pools, Mapping):
            pools = pools.values()
        self._pools: dict[str, ResourcePool] = {pool.id: pool for pool in pools}
        self._max_hp = max_hp
        self._current_hp = max_hp if current_hp is None else current_hp
        self._revision = 0
        self._lock = threading.RLock()

    @classmethod
    def from_snapshot(cls, snapshot: CharacterSnapshot) -> ResourceLedger:
        """Create a ledger holding a snapshot's pools and HP."""
        return cls(
            snapshot.id,
            snapshot.resources,
            max_hp=snapshot.max_hp,
            current_hp=snapshot.hp,
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def lock(self) -> threading.RLock:
        """The per-character lock; hold it to persist a consistent state."""
        return self._lock

    @property
    def revision(self) -> int:
        """Incremented by every successful mutation."""
        return self._revision

    @property
    def max_hp(self) -> int:
        return self._max_hp

    @property
    def current_hp(self) -> int:
        with self._lock:
            return self._current_hp

    @property
    def pools(self) -> dict[str, ResourcePool]:
        """Copy of the current pools keyed by id."""
        with self._lock:
            return dict(self._pools)

    def get(self, pool_id: str) -> ResourcePool | None:
        with self._lock:
            return self._pools.get(pool_id)

    # =========================================================================
    # Operations
    # =========================================================================

    def _invalid_amount(self, pool_id: str, amount: int) -> LedgerResult | None:
        if amount >= 1:
            return None
        return LedgerResult(
            pool_id=pool_id,
            pool=self._pools.get(pool_id),
            error=ValidationError(
                "Amount must be at least 1",
                rule="positive_amount",
                field_name="amount",
                invalid_value=amount,
            ),
            revision=self._revision,
        )

    def _unknown(self, pool_id: str) -> LedgerResult:
        return LedgerResult(
            pool_id=pool_id,
            pool=None,
            error=UnknownPoolError(
                f"Character has no resource pool '{pool_id}'",
                pool_id=pool_id,
                details={"character_id": self.character_id},
            ),
            revision=self._revision,
        )

    def spend(self, pool_id: str, amount: int = 1) -> LedgerResult:
        """Use ``amount`` uses of a pool.

        Passive pools always succeed and are not changed.

        Returns:
            Success with the updated pool, or a failure carrying
            PoolExhausted, UnknownPoolError or ValidationError.
        """
        with self._lock:
            invalid = self._invalid_amount(pool_id, amount)
            if invalid is not None:
                return invalid
            pool = self._pools.get(pool_id)
            if pool is None:
                return self._unknown(pool_id)
            if pool.is_passive:
                return LedgerResult(pool_id=pool_id, pool=pool, revision=self._revision)
            if pool.current < amount:
                logger.info(
                    "Pool exhausted",
                    character_id=self.character_id,
                    pool_id=pool_id,
                    current=pool.current,
                    requested=amount,
                )
                return LedgerResult(
                    pool_id=pool_id,
                    pool=pool,
                    error=PoolExhausted(
                        f"{pool.name} has {pool.current} use(s) left, {amount} requested",
                        pool_id=pool_id,
                        details={"current": pool.current, "requested": amount},
                    ),
                    revision=self._revision,
                )

            updated = pool.with_current(pool.current - amount)
            self._pools[pool_id] = updated
            self._revision += 1
            logger.info(
                "Pool spent",
                character_id=self.character_id,
                pool_id=pool_id,
                current=updated.current,
                max=updated.max,
            )
            return LedgerResult(pool_id=pool_id, pool=updated, revision=self._revision)

    def recover(self, pool_id: str, amount: int = 1) -> LedgerResult:
        """Restore ``amount`` uses of a pool, clamped to its max."""
        with self._lock:
            invalid = self._invalid_amount(pool_id, amount)
            if invalid is not None:
                return invalid
            pool = self._pools.get(pool_id)
            if pool is None:
                return self._unknown(pool_id)
            if pool.is_passive or pool.is_full:
                return LedgerResult(pool_id=pool_id, pool=pool, revision=self._revision)

            updated = pool.with_current(pool.current + amount)
            self._pools[pool_id] = updated
            self._revision += 1
            logger.info(
                "Pool recovered",
                character_id=self.character_id,
                pool_id=pool_id,
                current=updated.current,
                max=updated.max,
            )
            return LedgerResult(pool_id=pool_id, pool=updated, revision=self._revision)

    def rest(self, kind: RestKind | str) -> RestResult:
        """Take a short or long rest.

        Short-rest pools refill on either rest, long-rest pools only on a
        long rest. A long rest also restores HP to max. Passive pools are
        untouched.

        Raises:
            ValidationError: If ``kind`` is not a short or long rest.
        """
        kind = parse_rest_kind(kind)
        recharging = {RechargePolicy.SHORT_REST}
        if kind == RestKind.LONG:
            recharging.add(RechargePolicy.LONG_REST)

        with self._lock:
            restored = []
            for pool_id, pool in self._pools.items():
                if pool.is_passive or pool.recharge not in recharging or pool.is_full:
                    continue
                self._pools[pool_id] = pool.refilled()
                restored.append(pool_id)

            hp_restored = 0
            if kind == RestKind.LONG:
                hp_restored = self._max_hp - self._current_hp
                self._current_hp = self._max_hp

            if restored or hp_restored:
                self._revision += 1
            logger.info(
                "Rest taken",
                character_id=self.character_id,
                kind=kind.value,
                restored=restored,
                hp_restored=hp_restored,
            )
            return RestResult(
                kind=kind,
                restored=tuple(restored),
                hp_restored=hp_restored,
                revision=self._revision,
            )


__all__ = [
    "LedgerResult",
    "RestResult",
    "ResourceLedger",
    "parse_rest_kind",
]
