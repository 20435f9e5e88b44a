"""Player choices and the atomic change a level-up produces.

``ProgressionChoices`` collects what the player picked during the level-up
workflow. ``CharacterDelta`` is the single unit handed to persistence; it
is either applied whole through ``apply_to`` or not at all.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import Field, computed_field, field_validator, model_validator

from dnd_progression.core.exceptions import InvalidProgressionError
from dnd_progression.models.character import (
    AbilityScoreSet,
    CharacterSnapshot,
    KnownSpell,
    Level,
    ResourcePool,
    SnapshotModel,
)
from dnd_progression.models.enums import Ability, HPMethod


# =============================================================================
# Choices
# =============================================================================


class HPChoice(SnapshotModel):
    """How the hit point gain is determined: fixed average or a die roll."""

    method: HPMethod = HPMethod.AVERAGE
    roll: int | None = Field(default=None, ge=1, description="Hit die result for the roll method")

    @model_validator(mode="after")
    def check_roll(self) -> Self:
        if self.method == HPMethod.ROLL and self.roll is None:
            raise ValueError("The roll method needs a roll value")
        if self.method == HPMethod.AVERAGE and self.roll is not None:
            raise ValueError("The average method takes no roll value")
        return self

    @classmethod
    def average(cls) -> Self:
        return cls(method=HPMethod.AVERAGE)

    @classmethod
    def rolled(cls, roll: int) -> Self:
        return cls(method=HPMethod.ROLL, roll=roll)


class ASIChoice(SnapshotModel):
    """One part of an ability score improvement: an ability and its bonus."""

    ability: Ability
    bonus: int = Field(description="Bonus applied to the ability (1 or 2)")

    @field_validator("ability", mode="before")
    @classmethod
    def parse_ability(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Ability.parse(value)
        return value


class ProgressionChoices(SnapshotModel):
    """Everything the player has selected for one level-up.

    Attributes:
        hp: Hit point method (and roll).
        selections: Feature id -> selected option ids, for subclass,
            fighting style, pact boon and invocation features.
        asi: Ability score improvement parts.
        spells: New spells and cantrips picked this level.
    """

    hp: HPChoice | None = None
    selections: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    asi: tuple[ASIChoice, ...] = ()
    spells: tuple[KnownSpell, ...] = ()

    @field_validator("selections", mode="before")
    @classmethod
    def wrap_single_selection(cls, value: Any) -> Any:
        """Allow ``{"fighting_style": "defense"}`` as shorthand."""
        if isinstance(value, dict):
            return {k: (v,) if isinstance(v, str) else v for k, v in value.items()}
        return value

    @property
    def asi_increases(self) -> dict[Ability, int]:
        """Total bonus per ability across the ASI parts."""
        totals: dict[Ability, int] = {}
        for part in self.asi:
            totals[part.ability] = totals.get(part.ability, 0) + part.bonus
        return totals


# =============================================================================
# Delta
# =============================================================================


class SlotChange(SnapshotModel):
    """Change of the slot count at one spell level."""

    spell_level: int = Field(ge=1, le=9)
    previous: int = Field(ge=0)
    current: int = Field(ge=0)

    @computed_field(description="Slot newly unlocked or increased at this level")
    @property
    def is_new(self) -> bool:
        return self.current > self.previous

    @property
    def difference(self) -> int:
        return self.current - self.previous


class CharacterDelta(SnapshotModel):
    """The complete, atomic result of one level-up.

    Attributes:
        character_id: Character the delta belongs to.
        base_version: Snapshot version the delta was computed from.
        from_level: Level before the event.
        to_level: Level after the event.
        hit_die: Hit die of the class.
        hp_gain: Hit points gained (at least 1).
        max_hp: Hit point maximum after the event.
        current_hp: Current hit points after the event.
        proficiency_bonus: Proficiency bonus at the new level.
        features_gained: Ids of features acquired, automatic and chosen.
        subclass: Subclass chosen this event, if any.
        fighting_style: Fighting style chosen this event, if any.
        pact_boon: Pact boon chosen this event, if any.
        new_invocations: Invocations learned this event.
        ability_increases: ASI bonus per ability.
        abilities: Ability scores after the event.
        spell_slots: Slot table at the new level (spell level -> count).
        slot_changes: Spell levels whose count changed.
        new_spells: Spells and cantrips learned this event.
        resources: Full merged resource pools after the event.
        prepared_spell_limit: Spells a prepared caster may prepare; derived, never persisted.
        pending: Choice ids still unresolved; a delta with pending entries cannot be applied.
    """

    character_id: str
    base_version: int = Field(ge=0)
    from_level: Level
    to_level: Level
    hit_die: int
    hp_gain: int = Field(ge=1)
    max_hp: int = Field(ge=1)
    current_hp: int = Field(ge=0)
    proficiency_bonus: int = Field(ge=2, le=6)
    features_gained: tuple[str, ...] = ()
    subclass: str | None = None
    fighting_style: str | None = None
    pact_boon: str | None = None
    new_invocations: tuple[str, ...] = ()
    ability_increases: dict[Ability, int] = Field(default_factory=dict)
    abilities: AbilityScoreSet
    spell_slots: dict[int, int] = Field(default_factory=dict)
    slot_changes: tuple[SlotChange, ...] = ()
    new_spells: tuple[KnownSpell, ...] = ()
    resources: dict[str, ResourcePool] = Field(default_factory=dict)
    prepared_spell_limit: int | None = None
    pending: tuple[str, ...] = ()

    @computed_field(description="True when every choice has been resolved")
    @property
    def is_complete(self) -> bool:
        return not self.pending

    @property
    def new_slot_levels(self) -> list[int]:
        """Spell levels flagged new in this delta."""
        return [change.spell_level for change in self.slot_changes if change.is_new]

    def apply_to(self, snapshot: CharacterSnapshot) -> CharacterSnapshot:
        """Produce the snapshot that results from this delta.

        Pure: the given snapshot is not modified. The returned snapshot's
        version is one above ``base_version``.

        Args:
            snapshot: The snapshot the delta was computed from.

        Returns:
            The advanced snapshot.

        Raises:
            InvalidProgressionError: If the delta is incomplete or does not
                belong to this snapshot.
        """
        if not self.is_complete:
            raise InvalidProgressionError(
                "Cannot apply a delta with unresolved choices",
                details={"pending": list(self.pending)},
            )
        if snapshot.id != self.character_id or snapshot.level != self.from_level:
            raise InvalidProgressionError(
                "Delta does not match the snapshot it is applied to",
                current_level=snapshot.level,
                target_level=self.to_level,
                details={"character_id": snapshot.id, "delta_character_id": self.character_id},
            )

        return snapshot.model_copy(
            update={
                "level": self.to_level,
                "max_hp": self.max_hp,
                "current_hp": self.current_hp,
                "abilities": self.abilities,
                "subclass": self.subclass or snapshot.subclass,
                "fighting_style": self.fighting_style or snapshot.fighting_style,
                "pact_boon": self.pact_boon or snapshot.pact_boon,
                "invocations": [*snapshot.invocations, *self.new_invocations],
                "features": [*snapshot.features, *self.features_gained],
                "resources": dict(self.resources),
                "known_spells": [*snapshot.known_spells, *self.new_spells],
                "version": self.base_version + 1,
            }
        )


__all__ = [
    "HPChoice",
    "ASIChoice",
    "ProgressionChoices",
    "SlotChange",
    "CharacterDelta",
]
