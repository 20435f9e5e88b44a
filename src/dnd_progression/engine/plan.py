"""The choice-independent part of a level-up."""

from __future__ import annotations

from dataclasses import dataclass, field

from dnd_progression.models.delta import SlotChange
from dnd_progression.models.enums import Ability, CasterKind, CharacterClass, ChoiceType
from dnd_progression.models.feature import ClassFeature


@dataclass(frozen=True)
class ProgressionPlan:
    """What a level-up offers before the player has chosen anything.

    Only the subclass can change a plan (an Eldritch Knight or Arcane
    Trickster gains spellcasting), so the plan is recomputed once a
    subclass is selected.

    Attributes:
        character_id: Character being advanced.
        base_version: Snapshot version the plan was computed from.
        class_name: Class identifier as stored on the snapshot.
        character_class: Normalized class, None for the fallback profile.
        subclass: Subclass the tables were read with.
        from_level: Current level.
        to_level: Target level.
        hit_die: Hit die size.
        average_hp: Fixed HP value for the average method.
        con_modifier: Constitution modifier before any ASI.
        proficiency_bonus: Proficiency bonus at the target level.
        xp_threshold: XP required for the target level.
        features: Every feature unlocking at the target level.
        spell_slots_before: Slot table at the current level.
        spell_slots_after: Slot table at the target level.
        slot_changes: Spell levels whose count changes.
        caster_kind: How the class gains leveled spells.
        spellcasting_ability: Ability used for spellcasting.
        new_spell_picks: Leveled spells that must be picked.
        new_cantrip_picks: Cantrips that must be picked.
        max_spell_level: Highest spell level castable at the target level.
        prepared_spell_limit: Prepared spell count before any ASI.
    """

    character_id: str
    base_version: int
    class_name: str
    character_class: CharacterClass | None
    subclass: str | None
    from_level: int
    to_level: int
    hit_die: int
    average_hp: int
    con_modifier: int
    proficiency_bonus: int
    xp_threshold: int
    features: tuple[ClassFeature, ...] = ()
    spell_slots_before: dict[int, int] = field(default_factory=dict)
    spell_slots_after: dict[int, int] = field(default_factory=dict)
    slot_changes: tuple[SlotChange, ...] = ()
    caster_kind: CasterKind = CasterKind.NONE
    spellcasting_ability: Ability | None = None
    new_spell_picks: int = 0
    new_cantrip_picks: int = 0
    max_spell_level: int = 0
    prepared_spell_limit: int | None = None

    @property
    def automatic_features(self) -> list[ClassFeature]:
        return [f for f in self.features if not f.requires_choice]

    @property
    def choice_features(self) -> list[ClassFeature]:
        """Features needing a selection, ASI included."""
        return [f for f in self.features if f.requires_choice]

    @property
    def selection_features(self) -> list[ClassFeature]:
        """Subclass, fighting style, pact boon and invocation features."""
        return [f for f in self.choice_features if f.choice_type != ChoiceType.ASI]

    @property
    def asi_feature(self) -> ClassFeature | None:
        for feature in self.features:
            if feature.choice_type == ChoiceType.ASI:
                return feature
        return None

    @property
    def is_asi_level(self) -> bool:
        return self.asi_feature is not None

    @property
    def subclass_feature(self) -> ClassFeature | None:
        for feature in self.features:
            if feature.choice_type == ChoiceType.SUBCLASS:
                return feature
        return None

    @property
    def requires_feature_choices(self) -> bool:
        return bool(self.choice_features)

    @property
    def requires_spell_choices(self) -> bool:
        return self.new_spell_picks > 0 or self.new_cantrip_picks > 0

    @property
    def new_slot_levels(self) -> list[int]:
        return [change.spell_level for change in self.slot_changes if change.is_new]


__all__ = ["ProgressionPlan"]
