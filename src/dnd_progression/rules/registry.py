"""Per-class rule registry and the RuleTables lookup facade.

Every class is one ``ClassRules`` entry: hit die, feature schedule, ASI
levels, slot progression, caster kind and spell tables. ``RuleTables``
normalizes free-form class identifiers onto the registry and answers the
lookups the calculator and validator need.

Unrecognized classes fall back to a baseline non-caster profile (d8 hit
die, no features, no slots, no pools). The fallback is reported with an
``UnknownClass`` warning through the logger; with strict class lookup
enabled the ``UnknownClass`` error is raised instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from dnd_progression.core.config import get_settings
from dnd_progression.core.constants import FALLBACK_HIT_DIE, MAX_LEVEL, MIN_LEVEL
from dnd_progression.core.exceptions import UnknownClass
from dnd_progression.core.logging import get_logger
from dnd_progression.models.character import AbilityScoreSet, ResourcePool, to_identifier
from dnd_progression.models.enums import (
    Ability,
    CasterKind,
    CharacterClass,
    ChoiceType,
    SlotProgression,
)
from dnd_progression.models.feature import ClassFeature
from dnd_progression.rules import features as feat
from dnd_progression.rules.resources import build_pool
from dnd_progression.rules.tables import (
    ARCANE_TRICKSTER_CANTRIPS,
    CANTRIPS_KNOWN,
    CLASS_HIT_DIE,
    ELDRITCH_KNIGHT_CANTRIPS,
    FIGHTER_ASI_LEVELS,
    FULL_CASTER_SLOTS,
    HALF_CASTER_SLOTS,
    ROGUE_ASI_LEVELS,
    SPELLCASTING_ABILITY,
    SPELLS_KNOWN,
    STANDARD_ASI_LEVELS,
    THIRD_CASTER_SLOTS,
    THIRD_CASTER_SPELLS_KNOWN,
    XP_THRESHOLDS,
    get_proficiency_bonus,
    pact_slot_table,
    threshold_lookup,
)

logger = get_logger(__name__)


# Italian class names used by existing character sheets
CLASS_ALIASES: dict[str, CharacterClass] = {
    "guerriero": CharacterClass.FIGHTER,
    "ladro": CharacterClass.ROGUE,
    "bardo": CharacterClass.BARD,
    "mago": CharacterClass.WIZARD,
    "paladino": CharacterClass.PALADIN,
    "stregone": CharacterClass.SORCERER,
    "chierico": CharacterClass.CLERIC,
    "druido": CharacterClass.DRUID,
    "barbaro": CharacterClass.BARBARIAN,
    "monaco": CharacterClass.MONK,
}


def normalize_class(class_name: str | CharacterClass) -> CharacterClass | None:
    """Resolve a class identifier to a registry key.

    Case and surrounding whitespace are ignored and known aliases are
    mapped.

    Returns:
        The class, or None if the identifier is not recognized.
    """
    if isinstance(class_name, CharacterClass):
        return class_name
    key = str(class_name).strip().lower()
    if key in CLASS_ALIASES:
        return CLASS_ALIASES[key]
    try:
        return CharacterClass(key)
    except ValueError:
        return None


# =============================================================================
# Class Rules
# =============================================================================


@dataclass(frozen=True)
class SubclassCasting:
    """Spellcasting a subclass adds to an otherwise non-casting class."""

    slot_progression: SlotProgression
    spellcasting_ability: Ability
    cantrips_known: Mapping[int, int]
    spells_known: Mapping[int, int]


@dataclass(frozen=True)
class ClassRules:
    """Strategy entry holding every rule table of one class.

    Attributes:
        character_class: Registry key, None for the fallback profile.
        hit_die: Hit die size.
        schedule: Level -> ordered features, ASI features included.
        asi_levels: Levels granting an ability score improvement.
        slot_progression: Which slot table the class follows.
        caster_kind: How the class gains leveled spells.
        spellcasting_ability: Ability used for spellcasting.
        cantrips_known: Sparse level -> cantrips known table.
        spells_known: Level -> spells known, for known casters.
        half_level_preparation: Prepared spell count uses half the level.
        subclass_casting: Subclasses that grant spellcasting.
    """

    character_class: CharacterClass | None
    hit_die: int
    schedule: Mapping[int, tuple[ClassFeature, ...]] = field(default_factory=dict)
    asi_levels: frozenset[int] = frozenset()
    slot_progression: SlotProgression = SlotProgression.NONE
    caster_kind: CasterKind = CasterKind.NONE
    spellcasting_ability: Ability | None = None
    cantrips_known: Mapping[int, int] = field(default_factory=dict)
    spells_known: Mapping[int, int] = field(default_factory=dict)
    half_level_preparation: bool = False
    subclass_casting: Mapping[str, SubclassCasting] = field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return self.character_class is None

    @property
    def display_name(self) -> str:
        if self.character_class is None:
            return "Unknown"
        return self.character_class.display_name

    def features_at(self, level: int) -> tuple[ClassFeature, ...]:
        return tuple(self.schedule.get(level, ()))

    def all_features(self) -> list[ClassFeature]:
        """Every feature of levels 1-20, in level order."""
        return [f for level in range(MIN_LEVEL, MAX_LEVEL + 1) for f in self.features_at(level)]

    def _casting(self, subclass: str | None) -> SubclassCasting | None:
        if subclass is None:
            return None
        return self.subclass_casting.get(to_identifier(subclass))

    def slot_progression_for(self, subclass: str | None = None) -> SlotProgression:
        casting = self._casting(subclass)
        return casting.slot_progression if casting else self.slot_progression

    def caster_kind_for(self, subclass: str | None = None) -> CasterKind:
        return CasterKind.KNOWN if self._casting(subclass) else self.caster_kind

    def spellcasting_ability_for(self, subclass: str | None = None) -> Ability | None:
        casting = self._casting(subclass)
        return casting.spellcasting_ability if casting else self.spellcasting_ability

    def slot_table(self, level: int, subclass: str | None = None) -> dict[int, int]:
        progression = self.slot_progression_for(subclass)
        if progression == SlotProgression.FULL:
            return dict(FULL_CASTER_SLOTS.get(level, {}))
        if progression == SlotProgression.HALF:
            return dict(HALF_CASTER_SLOTS.get(level, {}))
        if progression == SlotProgression.THIRD:
            return dict(THIRD_CASTER_SLOTS.get(level, {}))
        if progression == SlotProgression.PACT:
            return pact_slot_table(level)
        return {}

    def cantrips_at(self, level: int, subclass: str | None = None) -> int:
        casting = self._casting(subclass)
        table = casting.cantrips_known if casting else self.cantrips_known
        return threshold_lookup(table, level)

    def spells_known_at(self, level: int, subclass: str | None = None) -> int:
        casting = self._casting(subclass)
        if casting:
            return casting.spells_known.get(level, 0)
        return self.spells_known.get(level, 0)


def _with_asi(
    schedule: Mapping[int, tuple[ClassFeature, ...]],
    asi_levels: frozenset[int],
) -> dict[int, tuple[ClassFeature, ...]]:
    """Append one ASI choice feature at each ASI level."""
    merged = {level: tuple(features) for level, features in schedule.items()}
    for level in sorted(asi_levels):
        asi = ClassFeature(
            id=f"ability_score_improvement_{level}",
            name="Ability Score Improvement",
            level=level,
            description="Increase one ability score by 2, or two ability scores by 1",
            choice_type=ChoiceType.ASI,
            choice_count=1,
        )
        merged[level] = (*merged.get(level, ()), asi)
    return merged


def _class_rules(
    character_class: CharacterClass,
    schedule: Mapping[int, tuple[ClassFeature, ...]],
    *,
    asi_levels: frozenset[int] = STANDARD_ASI_LEVELS,
    slot_progression: SlotProgression = SlotProgression.NONE,
    caster_kind: CasterKind = CasterKind.NONE,
    half_level_preparation: bool = False,
    subclass_casting: Mapping[str, SubclassCasting] | None = None,
) -> ClassRules:
    return ClassRules(
        character_class=character_class,
        hit_die=CLASS_HIT_DIE[character_class],
        schedule=_with_asi(schedule, asi_levels),
        asi_levels=asi_levels,
        slot_progression=slot_progression,
        caster_kind=caster_kind,
        spellcasting_ability=SPELLCASTING_ABILITY.get(character_class),
        cantrips_known=CANTRIPS_KNOWN.get(character_class, {}),
        spells_known=SPELLS_KNOWN.get(character_class, {}),
        half_level_preparation=half_level_preparation,
        subclass_casting=subclass_casting or {},
    )


ELDRITCH_KNIGHT = SubclassCasting(
    slot_progression=SlotProgression.THIRD,
    spellcasting_ability=Ability.INT,
    cantrips_known=ELDRITCH_KNIGHT_CANTRIPS,
    spells_known=THIRD_CASTER_SPELLS_KNOWN,
)

ARCANE_TRICKSTER = SubclassCasting(
    slot_progression=SlotProgression.THIRD,
    spellcasting_ability=Ability.INT,
    cantrips_known=ARCANE_TRICKSTER_CANTRIPS,
    spells_known=THIRD_CASTER_SPELLS_KNOWN,
)


def build_default_registry() -> dict[CharacterClass, ClassRules]:
    """Build the registry of the twelve Player's Handbook classes."""
    entries = [
        _class_rules(CharacterClass.BARBARIAN, feat.BARBARIAN_FEATURES),
        _class_rules(
            CharacterClass.BARD,
            feat.BARD_FEATURES,
            slot_progression=SlotProgression.FULL,
            caster_kind=CasterKind.KNOWN,
        ),
        _class_rules(
            CharacterClass.CLERIC,
            feat.CLERIC_FEATURES,
            slot_progression=SlotProgression.FULL,
            caster_kind=CasterKind.PREPARED,
        ),
        _class_rules(
            CharacterClass.DRUID,
            feat.DRUID_FEATURES,
            slot_progression=SlotProgression.FULL,
            caster_kind=CasterKind.PREPARED,
        ),
        _class_rules(
            CharacterClass.FIGHTER,
            feat.FIGHTER_FEATURES,
            asi_levels=FIGHTER_ASI_LEVELS,
            subclass_casting={"eldritch_knight": ELDRITCH_KNIGHT},
        ),
        _class_rules(CharacterClass.MONK, feat.MONK_FEATURES),
        _class_rules(
            CharacterClass.PALADIN,
            feat.PALADIN_FEATURES,
            slot_progression=SlotProgression.HALF,
            caster_kind=CasterKind.PREPARED,
            half_level_preparation=True,
        ),
        _class_rules(
            CharacterClass.RANGER,
            feat.RANGER_FEATURES,
            slot_progression=SlotProgression.HALF,
            caster_kind=CasterKind.KNOWN,
        ),
        _class_rules(
            CharacterClass.ROGUE,
            feat.ROGUE_FEATURES,
            asi_levels=ROGUE_ASI_LEVELS,
            subclass_casting={"arcane_trickster": ARCANE_TRICKSTER},
        ),
        _class_rules(
            CharacterClass.SORCERER,
            feat.SORCERER_FEATURES,
            slot_progression=SlotProgression.FULL,
            caster_kind=CasterKind.KNOWN,
        ),
        _class_rules(
            CharacterClass.WARLOCK,
            feat.WARLOCK_FEATURES,
            slot_progression=SlotProgression.PACT,
            caster_kind=CasterKind.KNOWN,
        ),
        _class_rules(
            CharacterClass.WIZARD,
            feat.WIZARD_FEATURES,
            slot_progression=SlotProgression.FULL,
            caster_kind=CasterKind.SPELLBOOK,
        ),
    ]
    return {rules.character_class: rules for rules in entries if rules.character_class}


FALLBACK_RULES = ClassRules(character_class=None, hit_die=FALLBACK_HIT_DIE)
"""Baseline non-caster profile used for unrecognized classes."""


# =============================================================================
# RuleTables Facade
# =============================================================================


class RuleTables:
    """Static per-class lookups used by the calculator and validator.

    Args:
        registry: Class rules by class; defaults to the twelve PHB classes.
        strict: Raise UnknownClass for unrecognized classes instead of
            using the fallback profile. Defaults to the
            ``rules.strict_class_lookup`` setting.

    Example:
        >>> rules = RuleTables()
        >>> rules.get_hit_die("Paladin")
        10
        >>> rules.get_spell_slot_table("warlock", 2)
        {1: 2}
    """

    def __init__(
        self,
        registry: Mapping[CharacterClass, ClassRules] | None = None,
        *,
        strict: bool | None = None,
    ) -> None:
        self._registry = dict(registry) if registry is not None else build_default_registry()
        self.strict = get_settings().rules.strict_class_lookup if strict is None else strict
        self._warned: set[str] = set()

    @property
    def classes(self) -> list[CharacterClass]:
        """Classes present in the registry."""
        return list(self._registry)

    def class_rules(self, class_name: str | CharacterClass) -> ClassRules:
        """Get the rules entry for a class identifier.

        Raises:
            UnknownClass: In strict mode, when the class is not registered.
        """
        character_class = normalize_class(class_name)
        if character_class is not None and character_class in self._registry:
            return self._registry[character_class]

        if self.strict:
            raise UnknownClass(
                f"Unknown character class: {class_name!r}",
                class_name=str(class_name),
            )
        key = str(class_name)
        if key not in self._warned:
            self._warned.add(key)
            logger.warning(
                "Unknown class, using fallback profile",
                class_name=key,
                hit_die=FALLBACK_RULES.hit_die,
                error_type=UnknownClass.__name__,
            )
        return FALLBACK_RULES

    def is_known_class(self, class_name: str | CharacterClass) -> bool:
        character_class = normalize_class(class_name)
        return character_class is not None and character_class in self._registry

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_hit_die(self, class_name: str | CharacterClass) -> int:
        """Get hit die size for a class."""
        return self.class_rules(class_name).hit_die

    def get_features_at_level(self, class_name: str | CharacterClass, level: int) -> list[ClassFeature]:
        """Get the ordered features a class unlocks at a level."""
        return list(self.class_rules(class_name).features_at(level))

    def get_spell_slot_table(
        self,
        class_name: str | CharacterClass,
        level: int,
        subclass: str | None = None,
    ) -> dict[int, int] | None:
        """Get the slot table (spell level -> count) at a level.

        Warlocks report their pact slots. Fighter and Rogue report the
        third-caster table once the Eldritch Knight or Arcane Trickster
        subclass is chosen.

        Returns:
            The slot table, or None when the class has no slots at that level.
        """
        table = self.class_rules(class_name).slot_table(level, subclass)
        return table or None

    def get_resource_template(
        self,
        class_name: str | CharacterClass,
        level: int,
        ability_scores: AbilityScoreSet,
    ) -> list[ResourcePool]:
        """Get the full resource pools a character of this level should have.

        Pools are listed in the order their features unlock and start full.
        """
        class_rules = self.class_rules(class_name)
        pools: dict[str, ResourcePool] = {}
        for unlock_level in range(MIN_LEVEL, min(level, MAX_LEVEL) + 1):
            for feature in class_rules.features_at(unlock_level):
                if feature.grants is None:
                    continue
                pools[feature.grants.pool_id] = build_pool(
                    feature.grants,
                    owning_class=class_rules.display_name,
                    level=level,
                    abilities=ability_scores,
                )
        return list(pools.values())

    def is_asi_level(self, class_name: str | CharacterClass, level: int) -> bool:
        return level in self.class_rules(class_name).asi_levels

    def get_caster_kind(self, class_name: str | CharacterClass, subclass: str | None = None) -> CasterKind:
        return self.class_rules(class_name).caster_kind_for(subclass)

    def get_spellcasting_ability(
        self,
        class_name: str | CharacterClass,
        subclass: str | None = None,
    ) -> Ability | None:
        return self.class_rules(class_name).spellcasting_ability_for(subclass)

    def get_cantrips_known(self, class_name: str | CharacterClass, level: int, subclass: str | None = None) -> int:
        return self.class_rules(class_name).cantrips_at(level, subclass)

    def get_spells_known(self, class_name: str | CharacterClass, level: int, subclass: str | None = None) -> int:
        return self.class_rules(class_name).spells_known_at(level, subclass)

    @staticmethod
    def get_proficiency_bonus(level: int) -> int:
        return get_proficiency_bonus(level)

    @staticmethod
    def get_xp_threshold(level: int) -> int:
        """XP required to reach a level."""
        return XP_THRESHOLDS[level]


__all__ = [
    "CLASS_ALIASES",
    "normalize_class",
    "SubclassCasting",
    "ClassRules",
    "ELDRITCH_KNIGHT",
    "ARCANE_TRICKSTER",
    "build_default_registry",
    "FALLBACK_RULES",
    "RuleTables",
]
