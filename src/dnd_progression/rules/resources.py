"""Limited-use resource grants and their max formulas.

Each grant is attached to the class feature that unlocks it. Its ``uses``
spec is evaluated at the character's level (and ability scores) to build
the ``ResourcePool`` a character of that level should have.
"""

from __future__ import annotations

from dnd_progression.models.character import AbilityScoreSet, ResourcePool
from dnd_progression.models.enums import Ability, RechargePolicy
from dnd_progression.models.feature import ResourceGrant, UsesSpec
from dnd_progression.rules.tables import get_proficiency_bonus, threshold_lookup


UNLIMITED = -1
"""Sentinel in a uses table: the resource stops being counted."""


# =============================================================================
# Grants by Class
# =============================================================================

# Barbarian
RAGE = ResourceGrant(
    pool_id="rage",
    name="Rage",
    uses={1: 2, 3: 3, 6: 4, 12: 5, 17: 6, 20: UNLIMITED},
    recharge=RechargePolicy.LONG_REST,
    description="Enter a rage for extra damage and resistance",
)

# Bard
BARDIC_INSPIRATION = ResourceGrant(
    pool_id="bardic_inspiration",
    name="Bardic Inspiration",
    uses="charisma_mod",
    recharge=RechargePolicy.LONG_REST,
    short_rest_from_level=5,
    description="Grant an ally an inspiration die",
)

# Cleric
CLERIC_CHANNEL_DIVINITY = ResourceGrant(
    pool_id="channel_divinity",
    name="Channel Divinity",
    uses={2: 1, 6: 2, 18: 3},
    recharge=RechargePolicy.SHORT_REST,
    description="Channel divine energy for special effects",
)

# Druid
WILD_SHAPE = ResourceGrant(
    pool_id="wild_shape",
    name="Wild Shape",
    uses={2: 2, 20: UNLIMITED},
    recharge=RechargePolicy.SHORT_REST,
    description="Transform into a beast",
)

# Fighter
SECOND_WIND = ResourceGrant(
    pool_id="second_wind",
    name="Second Wind",
    uses=1,
    recharge=RechargePolicy.SHORT_REST,
    description="Recover 1d10 + level HP as a bonus action",
)
ACTION_SURGE = ResourceGrant(
    pool_id="action_surge",
    name="Action Surge",
    uses={2: 1, 17: 2},
    recharge=RechargePolicy.SHORT_REST,
    description="Take an additional action",
)
INDOMITABLE = ResourceGrant(
    pool_id="indomitable",
    name="Indomitable",
    uses={9: 1, 13: 2, 17: 3},
    recharge=RechargePolicy.LONG_REST,
    description="Reroll a failed saving throw",
)

# Monk
KI = ResourceGrant(
    pool_id="ki_points",
    name="Ki Points",
    uses="level",
    recharge=RechargePolicy.SHORT_REST,
    description="Fuel special monk abilities",
)

# Paladin
DIVINE_SENSE = ResourceGrant(
    pool_id="divine_sense",
    name="Divine Sense",
    uses="charisma_mod_plus_1",
    recharge=RechargePolicy.LONG_REST,
    description="Detect celestials, fiends, and undead",
)
LAY_ON_HANDS = ResourceGrant(
    pool_id="lay_on_hands",
    name="Lay on Hands",
    uses="level_x5",
    recharge=RechargePolicy.LONG_REST,
    description="Heal with a pool of HP equal to level x 5",
)
PALADIN_CHANNEL_DIVINITY = ResourceGrant(
    pool_id="channel_divinity",
    name="Channel Divinity",
    uses=1,
    recharge=RechargePolicy.SHORT_REST,
    description="Channel divine energy through your oath",
)
CLEANSING_TOUCH = ResourceGrant(
    pool_id="cleansing_touch",
    name="Cleansing Touch",
    uses="charisma_mod",
    recharge=RechargePolicy.LONG_REST,
    description="End one spell on yourself or a willing creature",
)

# Rogue
STROKE_OF_LUCK = ResourceGrant(
    pool_id="stroke_of_luck",
    name="Stroke of Luck",
    uses=1,
    recharge=RechargePolicy.SHORT_REST,
    description="Turn a miss into a hit, or treat a check as 20",
)

# Sorcerer
SORCERY_POINTS = ResourceGrant(
    pool_id="sorcery_points",
    name="Sorcery Points",
    uses="level",
    recharge=RechargePolicy.LONG_REST,
    description="Create spell slots or fuel metamagic",
)

# Warlock
PACT_SLOTS = ResourceGrant(
    pool_id="pact_slots",
    name="Pact Slots",
    uses={1: 1, 2: 2, 11: 3, 17: 4},
    recharge=RechargePolicy.SHORT_REST,
    description="Pact magic spell slots",
)


def mystic_arcanum(spell_level: int) -> ResourceGrant:
    """Grant for the Mystic Arcanum of one spell level (6-9)."""
    ordinal = {6: "6th", 7: "7th", 8: "8th", 9: "9th"}[spell_level]
    return ResourceGrant(
        pool_id=f"mystic_arcanum_{spell_level}",
        name=f"Mystic Arcanum ({ordinal} level)",
        uses=1,
        recharge=RechargePolicy.LONG_REST,
        description=f"Cast your chosen {ordinal}-level spell once without a slot",
    )


# Wizard
ARCANE_RECOVERY = ResourceGrant(
    pool_id="arcane_recovery",
    name="Arcane Recovery",
    uses=1,
    recharge=RechargePolicy.LONG_REST,
    description="Recover spell slots during a short rest",
)


# =============================================================================
# Formula Evaluation
# =============================================================================


def evaluate_uses(uses: UsesSpec, level: int, abilities: AbilityScoreSet) -> int:
    """Evaluate a max formula.

    Args:
        uses: The grant's uses spec.
        level: Class level.
        abilities: Ability scores to read modifiers from.

    Returns:
        Maximum uses, or ``UNLIMITED``.

    Raises:
        ValueError: If a named formula is unknown.
    """
    if isinstance(uses, int):
        return uses
    if isinstance(uses, dict):
        return threshold_lookup(uses, level)

    cha_mod = abilities.modifier(Ability.CHA)
    if uses == "level":
        return level
    if uses == "level_x5":
        return level * 5
    if uses == "proficiency_bonus":
        return get_proficiency_bonus(level)
    if uses == "charisma_mod":
        return max(1, cha_mod)
    if uses == "charisma_mod_plus_1":
        return max(1, cha_mod + 1)
    raise ValueError(f"Unknown uses formula: {uses!r}")


def recharge_at(grant: ResourceGrant, level: int) -> RechargePolicy:
    """Recharge policy of a grant at a level."""
    if grant.short_rest_from_level is not None and level >= grant.short_rest_from_level:
        return RechargePolicy.SHORT_REST
    return grant.recharge


def build_pool(
    grant: ResourceGrant,
    *,
    owning_class: str,
    level: int,
    abilities: AbilityScoreSet,
) -> ResourcePool:
    """Build the full pool a grant yields at a level.

    Unlimited resources become passive pools with no counter.
    """
    uses = evaluate_uses(grant.uses, level, abilities)
    if uses == UNLIMITED:
        return ResourcePool(
            id=grant.pool_id,
            name=grant.name,
            max=0,
            current=0,
            recharge=RechargePolicy.PASSIVE,
            owning_class=owning_class,
            description=grant.description,
        )
    return ResourcePool(
        id=grant.pool_id,
        name=grant.name,
        max=uses,
        current=uses,
        recharge=recharge_at(grant, level),
        owning_class=owning_class,
        description=grant.description,
    )


__all__ = [
    "UNLIMITED",
    "RAGE",
    "BARDIC_INSPIRATION",
    "CLERIC_CHANNEL_DIVINITY",
    "WILD_SHAPE",
    "SECOND_WIND",
    "ACTION_SURGE",
    "INDOMITABLE",
    "KI",
    "DIVINE_SENSE",
    "LAY_ON_HANDS",
    "PALADIN_CHANNEL_DIVINITY",
    "CLEANSING_TOUCH",
    "STROKE_OF_LUCK",
    "SORCERY_POINTS",
    "PACT_SLOTS",
    "mystic_arcanum",
    "ARCANE_RECOVERY",
    "evaluate_uses",
    "recharge_at",
    "build_pool",
]
