"""Enumeration types for the progression engine.

These enums give the rule tables, the calculator and the state machine a
shared, type-safe vocabulary for abilities, classes, choice kinds,
recharge policies and workflow steps.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores.

    Values are the full lowercase names, matching the field names of
    ``AbilityScoreSet``.
    """

    STR = "strength"
    DEX = "dexterity"
    CON = "constitution"
    INT = "intelligence"
    WIS = "wisdom"
    CHA = "charisma"

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation.

        Returns:
            Three-letter abbreviation (e.g., 'STR').
        """
        return self.name

    @classmethod
    def parse(cls, value: str | Ability) -> Ability:
        """Resolve an ability from its full name or three-letter key.

        Args:
            value: 'strength', 'str', 'STR' or an Ability.

        Returns:
            The matching Ability.

        Raises:
            ValueError: If the value names no ability.
        """
        if isinstance(value, Ability):
            return value
        key = str(value).strip().lower()
        for ability in cls:
            if key in (ability.value, ability.name.lower()):
                return ability
        raise ValueError(f"Unknown ability: {value!r}")


class CharacterClass(StrEnum):
    """The twelve classes of the Player's Handbook."""

    BARBARIAN = "barbarian"
    BARD = "bard"
    CLERIC = "cleric"
    DRUID = "druid"
    FIGHTER = "fighter"
    MONK = "monk"
    PALADIN = "paladin"
    RANGER = "ranger"
    ROGUE = "rogue"
    SORCERER = "sorcerer"
    WARLOCK = "warlock"
    WIZARD = "wizard"

    @property
    def display_name(self) -> str:
        """Get the capitalized class name.

        Returns:
            Display name (e.g., 'Paladin').
        """
        return self.value.capitalize()


class ChoiceType(StrEnum):
    """Kind of player decision a class feature requires."""

    FIGHTING_STYLE = "fighting_style"
    SUBCLASS = "subclass"
    INVOCATION = "invocation"
    PACT_BOON = "pact_boon"
    ASI = "asi"
    NONE = "none"


class RechargePolicy(StrEnum):
    """When a resource pool's uses are restored."""

    SHORT_REST = "short_rest"
    """Restored by a short or a long rest."""

    LONG_REST = "long_rest"
    """Restored only by a long rest."""

    PASSIVE = "passive"
    """No counter; always available and untouched by rests."""


class RestKind(StrEnum):
    """D&D 5E recovery periods."""

    SHORT = "short"
    LONG = "long"


class HPMethod(StrEnum):
    """How the hit point gain of a level-up is determined."""

    AVERAGE = "average"
    ROLL = "roll"


class SlotProgression(StrEnum):
    """Which spell-slot table a class (or subclass) follows."""

    NONE = "none"
    FULL = "full"
    HALF = "half"
    THIRD = "third"
    PACT = "pact"


class CasterKind(StrEnum):
    """How a class gains access to leveled spells."""

    NONE = "none"
    KNOWN = "known"
    """Fixed spells-known table; exact picks required each level."""

    SPELLBOOK = "spellbook"
    """Wizard: copies a fixed number of spells per level, prepares from the book."""

    PREPARED = "prepared"
    """Prepares a derived number of spells from the full class list."""


class ProgressionStep(StrEnum):
    """States of the level-up workflow, in order."""

    COLLECTING_HP = "collecting_hp"
    COLLECTING_FEATURE_CHOICES = "collecting_feature_choices"
    COLLECTING_SPELL_CHOICES = "collecting_spell_choices"
    CONFIRMING = "confirming"
    APPLIED = "applied"


class ViolationCode(StrEnum):
    """Named rules a player choice can violate."""

    MISSING_SELECTION = "missing_selection"
    TOO_MANY_SELECTIONS = "too_many_selections"
    OPTION_NOT_ALLOWED = "option_not_allowed"
    UNEXPECTED_CHOICE = "unexpected_choice"
    INVOCATION_COUNT = "invocation_count"
    INVOCATION_ALREADY_KNOWN = "invocation_already_known"
    DUPLICATE_SELECTION = "duplicate_selection"
    ASI_NOT_AVAILABLE = "asi_not_available"
    ASI_TOTAL = "asi_total"
    ASI_BONUS_RANGE = "asi_bonus_range"
    ASI_DUPLICATE_ABILITY = "asi_duplicate_ability"
    ASI_SCORE_CAP = "asi_score_cap"
    SPELL_COUNT = "spell_count"
    CANTRIP_COUNT = "cantrip_count"
    SPELL_ALREADY_KNOWN = "spell_already_known"
    SPELL_LEVEL_TOO_HIGH = "spell_level_too_high"
    HP_ROLL_OUT_OF_RANGE = "hp_roll_out_of_range"
    HP_NOT_SELECTED = "hp_not_selected"


__all__ = [
    "Ability",
    "CharacterClass",
    "ChoiceType",
    "RechargePolicy",
    "RestKind",
    "HPMethod",
    "SlotProgression",
    "CasterKind",
    "ProgressionStep",
    "ViolationCode",
]
