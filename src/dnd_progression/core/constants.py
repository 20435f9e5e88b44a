"""Rules constants shared across the progression engine.

D&D 5E limits that are not class-specific live here; per-class tables are
in ``dnd_progression.rules``.
"""

from __future__ import annotations

# =============================================================================
# Ability Scores
# =============================================================================

PC_ABILITY_SCORE_CAP = 20
"""Maximum ability score reachable through ability score improvements (RAW)."""

MAX_ABILITY_SCORE = 30
"""Absolute maximum ability score a snapshot may store."""

MIN_ABILITY_SCORE = 1
"""Minimum ability score (1 is barely functioning)."""

ASI_POINTS_PER_EVENT = 2
"""Total bonus granted by one ability score improvement."""

# =============================================================================
# Levels
# =============================================================================

MIN_LEVEL = 1
"""First character level."""

MAX_LEVEL = 20
"""Level cap for player characters."""

MIN_HP_GAIN = 1
"""A level-up never grants fewer hit points than this."""

# =============================================================================
# Spellcasting
# =============================================================================

MAX_SPELL_LEVEL = 9
"""Highest spell level with slots."""

WIZARD_STARTING_SPELLBOOK = 6
"""Spells in a level 1 wizard's spellbook."""

WIZARD_SPELLS_PER_LEVEL = 2
"""Spells a wizard copies into the spellbook on each level-up."""

# =============================================================================
# Fallback Profile
# =============================================================================

FALLBACK_HIT_DIE = 8
"""Hit die used for class identifiers the registry does not recognize."""


__all__ = [
    "PC_ABILITY_SCORE_CAP",
    "MAX_ABILITY_SCORE",
    "MIN_ABILITY_SCORE",
    "ASI_POINTS_PER_EVENT",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "MIN_HP_GAIN",
    "MAX_SPELL_LEVEL",
    "WIZARD_STARTING_SPELLBOOK",
    "WIZARD_SPELLS_PER_LEVEL",
    "FALLBACK_HIT_DIE",
]
