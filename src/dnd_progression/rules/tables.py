"""D&D 5E numeric progression tables.

Static data for XP, proficiency, hit dice, spell slots, cantrips and
spells known. All values follow the Player's Handbook.
"""

from __future__ import annotations

from collections.abc import Mapping

from dnd_progression.models.enums import Ability, CharacterClass


# =============================================================================
# XP Thresholds (PHB p.15)
# =============================================================================

XP_THRESHOLDS: dict[int, int] = {
    1: 0,
    2: 300,
    3: 900,
    4: 2700,
    5: 6500,
    6: 14000,
    7: 23000,
    8: 34000,
    9: 48000,
    10: 64000,
    11: 85000,
    12: 100000,
    13: 120000,
    14: 140000,
    15: 165000,
    16: 195000,
    17: 225000,
    18: 265000,
    19: 305000,
    20: 355000,
}


# =============================================================================
# Proficiency Bonus by Level (PHB p.15)
# =============================================================================


def get_proficiency_bonus(level: int) -> int:
    """Get proficiency bonus for a given level."""
    if level <= 4:
        return 2
    if level <= 8:
        return 3
    if level <= 12:
        return 4
    if level <= 16:
        return 5
    return 6


# =============================================================================
# Hit Dice
# =============================================================================

CLASS_HIT_DIE: dict[CharacterClass, int] = {
    CharacterClass.BARBARIAN: 12,
    CharacterClass.FIGHTER: 10,
    CharacterClass.PALADIN: 10,
    CharacterClass.RANGER: 10,
    CharacterClass.BARD: 8,
    CharacterClass.CLERIC: 8,
    CharacterClass.DRUID: 8,
    CharacterClass.MONK: 8,
    CharacterClass.ROGUE: 8,
    CharacterClass.WARLOCK: 8,
    CharacterClass.SORCERER: 6,
    CharacterClass.WIZARD: 6,
}


def average_hit_die(hit_die: int) -> int:
    """Fixed hit point value taken instead of rolling: ceil(die / 2) + 1.

    Examples:
        d6 -> 4, d8 -> 5, d10 -> 6, d12 -> 7.
    """
    return -(-hit_die // 2) + 1


# =============================================================================
# Spell Slots
# =============================================================================

# Full casters: Bard, Cleric, Druid, Sorcerer, Wizard
FULL_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1:  {1: 2},
    2:  {1: 3},
    3:  {1: 4, 2: 2},
    4:  {1: 4, 2: 3},
    5:  {1: 4, 2: 3, 3: 2},
    6:  {1: 4, 2: 3, 3: 3},
    7:  {1: 4, 2: 3, 3: 3, 4: 1},
    8:  {1: 4, 2: 3, 3: 3, 4: 2},
    9:  {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    10: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    11: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    12: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    13: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    16: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 1, 7: 1, 8: 1, 9: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 1, 8: 1, 9: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 2, 8: 1, 9: 1},
}

# Half casters: Paladin, Ranger (start at level 2)
HALF_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1:  {},
    2:  {1: 2},
    3:  {1: 3},
    4:  {1: 3},
    5:  {1: 4, 2: 2},
    6:  {1: 4, 2: 2},
    7:  {1: 4, 2: 3},
    8:  {1: 4, 2: 3},
    9:  {1: 4, 2: 3, 3: 2},
    10: {1: 4, 2: 3, 3: 2},
    11: {1: 4, 2: 3, 3: 3},
    12: {1: 4, 2: 3, 3: 3},
    13: {1: 4, 2: 3, 3: 3, 4: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 2},
    16: {1: 4, 2: 3, 3: 3, 4: 2},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
}

# Third casters: Eldritch Knight, Arcane Trickster (start at level 3)
THIRD_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1:  {},
    2:  {},
    3:  {1: 2},
    4:  {1: 3},
    5:  {1: 3},
    6:  {1: 3},
    7:  {1: 4, 2: 2},
    8:  {1: 4, 2: 2},
    9:  {1: 4, 2: 2},
    10: {1: 4, 2: 3},
    11: {1: 4, 2: 3},
    12: {1: 4, 2: 3},
    13: {1: 4, 2: 3, 3: 2},
    14: {1: 4, 2: 3, 3: 2},
    15: {1: 4, 2: 3, 3: 2},
    16: {1: 4, 2: 3, 3: 3},
    17: {1: 4, 2: 3, 3: 3},
    18: {1: 4, 2: 3, 3: 3},
    19: {1: 4, 2: 3, 3: 3, 4: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 1},
}

# Warlock pact magic
WARLOCK_PACT_SLOTS: dict[int, tuple[int, int]] = {
    # level: (num_slots, slot_level)
    1:  (1, 1),
    2:  (2, 1),
    3:  (2, 2),
    4:  (2, 2),
    5:  (2, 3),
    6:  (2, 3),
    7:  (2, 4),
    8:  (2, 4),
    9:  (2, 5),
    10: (2, 5),
    11: (3, 5),
    12: (3, 5),
    13: (3, 5),
    14: (3, 5),
    15: (3, 5),
    16: (3, 5),
    17: (4, 5),
    18: (4, 5),
    19: (4, 5),
    20: (4, 5),
}


def pact_slot_table(level: int) -> dict[int, int]:
    """Warlock pact slots as a spell level -> count table."""
    if level not in WARLOCK_PACT_SLOTS:
        return {}
    count, slot_level = WARLOCK_PACT_SLOTS[level]
    return {slot_level: count}


# =============================================================================
# ASI Levels (Ability Score Improvements)
# =============================================================================

STANDARD_ASI_LEVELS = frozenset({4, 8, 12, 16, 19})

FIGHTER_ASI_LEVELS = STANDARD_ASI_LEVELS | {6, 14}

ROGUE_ASI_LEVELS = STANDARD_ASI_LEVELS | {10}


# =============================================================================
# Cantrips & Spells Known
# =============================================================================

CANTRIPS_KNOWN: dict[CharacterClass, dict[int, int]] = {
    CharacterClass.BARD: {1: 2, 4: 3, 10: 4},
    CharacterClass.CLERIC: {1: 3, 4: 4, 10: 5},
    CharacterClass.DRUID: {1: 2, 4: 3, 10: 4},
    CharacterClass.SORCERER: {1: 4, 4: 5, 10: 6},
    CharacterClass.WARLOCK: {1: 2, 4: 3, 10: 4},
    CharacterClass.WIZARD: {1: 3, 4: 4, 10: 5},
}

SPELLS_KNOWN: dict[CharacterClass, dict[int, int]] = {
    CharacterClass.BARD: {
        1: 4, 2: 5, 3: 6, 4: 7, 5: 8, 6: 9, 7: 10, 8: 11,
        9: 12, 10: 14, 11: 15, 12: 15, 13: 16, 14: 18,
        15: 19, 16: 19, 17: 20, 18: 22, 19: 22, 20: 22,
    },
    CharacterClass.RANGER: {
        1: 0, 2: 2, 3: 3, 4: 3, 5: 4, 6: 4, 7: 5, 8: 5,
        9: 6, 10: 6, 11: 7, 12: 7, 13: 8, 14: 8,
        15: 9, 16: 9, 17: 10, 18: 10, 19: 11, 20: 11,
    },
    CharacterClass.SORCERER: {
        1: 2, 2: 3, 3: 4, 4: 5, 5: 6, 6: 7, 7: 8, 8: 9,
        9: 10, 10: 11, 11: 12, 12: 12, 13: 13, 14: 13,
        15: 14, 16: 14, 17: 15, 18: 15, 19: 15, 20: 15,
    },
    CharacterClass.WARLOCK: {
        1: 2, 2: 3, 3: 4, 4: 5, 5: 6, 6: 7, 7: 8, 8: 9,
        9: 10, 10: 10, 11: 11, 12: 11, 13: 12, 14: 12,
        15: 13, 16: 13, 17: 14, 18: 14, 19: 15, 20: 15,
    },
}

# Eldritch Knight and Arcane Trickster share one spells-known progression
THIRD_CASTER_SPELLS_KNOWN: dict[int, int] = {
    1: 0, 2: 0, 3: 3, 4: 4, 5: 4, 6: 4, 7: 5, 8: 6,
    9: 6, 10: 7, 11: 8, 12: 8, 13: 9, 14: 10,
    15: 10, 16: 11, 17: 11, 18: 11, 19: 12, 20: 13,
}

ELDRITCH_KNIGHT_CANTRIPS: dict[int, int] = {3: 2, 10: 3}

ARCANE_TRICKSTER_CANTRIPS: dict[int, int] = {3: 3, 10: 4}


def threshold_lookup(progression: Mapping[int, int], level: int) -> int:
    """Value of a sparse level -> value table at a level.

    The entry with the highest threshold not above ``level`` wins; 0 when
    the level is below every threshold.
    """
    value = 0
    for threshold, amount in sorted(progression.items()):
        if level >= threshold:
            value = amount
    return value


# =============================================================================
# Spellcasting Ability by Class
# =============================================================================

SPELLCASTING_ABILITY: dict[CharacterClass, Ability] = {
    CharacterClass.BARD: Ability.CHA,
    CharacterClass.CLERIC: Ability.WIS,
    CharacterClass.DRUID: Ability.WIS,
    CharacterClass.PALADIN: Ability.CHA,
    CharacterClass.RANGER: Ability.WIS,
    CharacterClass.SORCERER: Ability.CHA,
    CharacterClass.WARLOCK: Ability.CHA,
    CharacterClass.WIZARD: Ability.INT,
}


__all__ = [
    "XP_THRESHOLDS",
    "get_proficiency_bonus",
    "CLASS_HIT_DIE",
    "average_hit_die",
    "FULL_CASTER_SLOTS",
    "HALF_CASTER_SLOTS",
    "THIRD_CASTER_SLOTS",
    "WARLOCK_PACT_SLOTS",
    "pact_slot_table",
    "STANDARD_ASI_LEVELS",
    "FIGHTER_ASI_LEVELS",
    "ROGUE_ASI_LEVELS",
    "CANTRIPS_KNOWN",
    "SPELLS_KNOWN",
    "THIRD_CASTER_SPELLS_KNOWN",
    "ELDRITCH_KNIGHT_CANTRIPS",
    "ARCANE_TRICKSTER_CANTRIPS",
    "threshold_lookup",
    "SPELLCASTING_ABILITY",
]
