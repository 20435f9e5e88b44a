"""Character snapshot models.

A ``CharacterSnapshot`` is the immutable view of a character that one
progression event works from. It is loaded once, never edited in place,
and replaced as a whole when a ``CharacterDelta`` is applied.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from dnd_progression.core.constants import MAX_ABILITY_SCORE, MIN_ABILITY_SCORE
from dnd_progression.models.enums import Ability, RechargePolicy


# =============================================================================
# Type Definitions
# =============================================================================


AbilityScore = Annotated[
    int, Field(ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, description="D&D ability score (1-30)")
]
Level = Annotated[int, Field(ge=1, le=20, description="Character level (1-20)")]
SpellLevel = Annotated[int, Field(ge=0, le=9, description="Spell level (0 = cantrip)")]


def to_identifier(value: str) -> str:
    """Normalize a player-facing name to an option id: ``"Eldritch Knight"`` -> ``"eldritch_knight"``."""
    return "_".join(str(value).strip().lower().split())


class SnapshotModel(BaseModel):
    """Base class for immutable progression data."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )


# =============================================================================
# Ability Scores
# =============================================================================


class AbilityScoreSet(SnapshotModel):
    """The six ability scores of a character.

    Accepts either full names or three-letter keys on input:

        >>> AbilityScoreSet(str=16, dex=14)
        AbilityScoreSet(strength=16, dexterity=14, ...)
    """

    strength: AbilityScore = Field(default=10, description="Physical power")
    dexterity: AbilityScore = Field(default=10, description="Agility and reflexes")
    constitution: AbilityScore = Field(default=10, description="Health and stamina")
    intelligence: AbilityScore = Field(default=10, description="Reasoning and memory")
    wisdom: AbilityScore = Field(default=10, description="Perception and insight")
    charisma: AbilityScore = Field(default=10, description="Force of personality")

    @model_validator(mode="before")
    @classmethod
    def expand_short_keys(cls, data: Any) -> Any:
        """Map 'str', 'DEX' and similar keys onto field names."""
        if not isinstance(data, Mapping):
            return data
        expanded: dict[str, Any] = {}
        for key, value in data.items():
            try:
                expanded[Ability.parse(key).value] = value
            except ValueError:
                expanded[str(key)] = value
        return expanded

    @staticmethod
    def calc_modifier(score: int) -> int:
        """Calculate ability modifier from score."""
        return (score - 10) // 2

    def score(self, ability: Ability | str) -> int:
        """Get the score for an ability."""
        return getattr(self, Ability.parse(ability).value)

    def modifier(self, ability: Ability | str) -> int:
        """Get the modifier for an ability."""
        return self.calc_modifier(self.score(ability))

    def with_increases(self, increases: Mapping[Ability | str, int]) -> Self:
        """Return a copy with the given bonuses added.

        Args:
            increases: Bonus per ability.

        Returns:
            New score set; the receiver is unchanged.
        """
        updated = self.as_dict()
        for ability, bonus in increases.items():
            key = Ability.parse(ability)
            updated[key] = updated[key] + bonus
        return type(self).model_validate({a.value: s for a, s in updated.items()})

    def as_dict(self) -> dict[Ability, int]:
        """Get all scores keyed by Ability."""
        return {ability: getattr(self, ability.value) for ability in Ability}


# =============================================================================
# Resources & Spells
# =============================================================================


class ResourcePool(SnapshotModel):
    """A limited-use class resource such as Rage or Ki.

    A pool with ``max == 0`` or the passive recharge policy carries no
    counter: it is always available and rests do not touch it.
    """

    id: str = Field(min_length=1, description="Stable pool identifier")
    name: str = Field(description="Display name")
    max: int = Field(ge=0, description="Maximum uses (0 = passive)")
    current: int = Field(ge=0, description="Uses remaining")
    recharge: RechargePolicy = Field(description="When uses are restored")
    owning_class: str = Field(default="", description="Class that grants the pool")
    description: str = Field(default="", description="What the resource does")

    @model_validator(mode="after")
    def check_bounds(self) -> Self:
        """Ensure current never exceeds max."""
        if self.current > self.max:
            raise ValueError(f"Pool '{self.id}' current ({self.current}) exceeds max ({self.max})")
        return self

    @computed_field(description="True when the pool has no counter")
    @property
    def is_passive(self) -> bool:
        return self.recharge == RechargePolicy.PASSIVE or self.max == 0

    @property
    def is_full(self) -> bool:
        """Check if the pool is at its maximum."""
        return self.current == self.max

    @property
    def uses_display(self) -> str:
        """Get display string for uses."""
        if self.is_passive:
            return "Unlimited"
        return f"{self.current}/{self.max}"

    def with_current(self, current: int) -> Self:
        """Return a copy with ``current`` clamped into [0, max]."""
        return self.model_copy(update={"current": min(max(current, 0), self.max)})

    def refilled(self) -> Self:
        """Return a copy restored to its maximum."""
        return self.model_copy(update={"current": self.max})


class KnownSpell(SnapshotModel):
    """A spell the character knows or has in their spellbook."""

    spell_id: str = Field(min_length=1, description="Spell identifier")
    level: SpellLevel = Field(description="Spell level, 0 for cantrips")

    @field_validator("spell_id", mode="before")
    @classmethod
    def normalize_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return to_identifier(value)
        return value

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0


# =============================================================================
# Character Snapshot
# =============================================================================


class CharacterSnapshot(SnapshotModel):
    """Immutable state of a character at the start of a progression event.

    Attributes:
        id: Stable character identifier.
        name: Character name.
        level: Character level (1-20).
        class_name: Class identifier as stored; normalized on rule lookup.
        subclass: Chosen subclass identifier, if any.
        fighting_style: Chosen fighting style identifier, if any.
        pact_boon: Chosen warlock pact boon identifier, if any.
        invocations: Known eldritch invocation identifiers.
        abilities: The six ability scores.
        max_hp: Hit point maximum.
        current_hp: Current hit points.
        features: Ids of class features acquired so far.
        resources: Limited-use pools keyed by pool id.
        known_spells: Known spells and cantrips.
        version: Persistence version used to reject stale deltas.
    """

    id: str = Field(min_length=1)
    name: str = Field(default="")
    level: Level = 1
    class_name: str = Field(min_length=1)
    subclass: str | None = None
    fighting_style: str | None = None
    pact_boon: str | None = None
    invocations: list[str] = Field(default_factory=list)
    abilities: AbilityScoreSet = Field(default_factory=AbilityScoreSet)
    max_hp: int = Field(ge=1)
    current_hp: int | None = Field(default=None, ge=0)
    features: list[str] = Field(default_factory=list)
    resources: dict[str, ResourcePool] = Field(default_factory=dict)
    known_spells: list[KnownSpell] = Field(default_factory=list)
    version: int = Field(default=0, ge=0)

    @field_validator("subclass", "fighting_style", "pact_boon", mode="before")
    @classmethod
    def normalize_choice(cls, value: Any) -> Any:
        if isinstance(value, str):
            return to_identifier(value)
        return value

    @field_validator("invocations", mode="before")
    @classmethod
    def normalize_invocations(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return [to_identifier(v) if isinstance(v, str) else v for v in value]
        return value

    @field_validator("resources", mode="before")
    @classmethod
    def index_pools(cls, value: Any) -> Any:
        """Accept a list of pools and key it by pool id."""
        if isinstance(value, list | tuple):
            indexed: dict[str, Any] = {}
            for pool in value:
                pool_id = pool.id if isinstance(pool, ResourcePool) else pool["id"]
                indexed[pool_id] = pool
            return indexed
        return value

    @model_validator(mode="before")
    @classmethod
    def default_current_hp(cls, data: Any) -> Any:
        """Start at full HP when no current HP is given."""
        if isinstance(data, Mapping) and data.get("current_hp") is None and "max_hp" in data:
            return {**data, "current_hp": data["max_hp"]}
        return data

    @model_validator(mode="after")
    def check_hp(self) -> Self:
        """Keep current HP within max."""
        if self.current_hp is not None and self.current_hp > self.max_hp:
            raise ValueError(f"current_hp ({self.current_hp}) exceeds max_hp ({self.max_hp})")
        return self

    @property
    def hp(self) -> int:
        """Current hit points (never None once validated)."""
        return self.max_hp if self.current_hp is None else self.current_hp

    @property
    def spell_ids(self) -> set[str]:
        """Identifiers of every known spell and cantrip."""
        return {spell.spell_id for spell in self.known_spells}

    def pool(self, pool_id: str) -> ResourcePool | None:
        """Get a resource pool by id."""
        return self.resources.get(pool_id)


__all__ = [
    "AbilityScore",
    "Level",
    "SpellLevel",
    "to_identifier",
    "SnapshotModel",
    "AbilityScoreSet",
    "ResourcePool",
    "KnownSpell",
    "CharacterSnapshot",
]
