"""Class feature schedules for levels 1-20.

Each class maps a level to the ordered features unlocked there. Feature ids
are unique across a class's whole schedule: features that recur (subclass
features, scaling dice) carry the level or die in their id.

Ability score improvements are not listed here; the registry adds one
``ability_score_improvement_<level>`` choice feature per ASI level.
"""

from __future__ import annotations

from collections.abc import Iterable

from dnd_progression.models.enums import ChoiceType
from dnd_progression.models.feature import ClassFeature, ResourceGrant
from dnd_progression.rules import resources as res


# =============================================================================
# Choice Options
# =============================================================================

FIGHTING_STYLES: tuple[str, ...] = (
    "archery",
    "defense",
    "dueling",
    "great_weapon",
    "protection",
    "two_weapon",
)
RANGER_FIGHTING_STYLES: tuple[str, ...] = ("archery", "defense", "dueling", "two_weapon")
PALADIN_FIGHTING_STYLES: tuple[str, ...] = ("defense", "dueling", "great_weapon", "protection")

PACT_BOONS: tuple[str, ...] = ("pact_chain", "pact_blade", "pact_tome")

ELDRITCH_INVOCATIONS: tuple[str, ...] = (
    "agonizing_blast",
    "armor_of_shadows",
    "beast_speech",
    "beguiling_influence",
    "devils_sight",
    "eldritch_sight",
    "eyes_of_the_rune_keeper",
    "fiendish_vigor",
    "gaze_of_two_minds",
    "mask_of_many_faces",
    "misty_visions",
    "repelling_blast",
    "thief_of_five_fates",
    "voice_of_the_chain_master",
)

PRIMAL_PATHS = ("berserker", "totem_warrior")
BARD_COLLEGES = ("lore", "valor")
DIVINE_DOMAINS = ("knowledge", "life", "light", "nature", "tempest", "trickery", "war")
DRUID_CIRCLES = ("land", "moon")
MARTIAL_ARCHETYPES = ("champion", "battle_master", "eldritch_knight")
MONASTIC_TRADITIONS = ("open_hand", "shadow", "four_elements")
SACRED_OATHS = ("devotion", "ancients", "vengeance")
RANGER_ARCHETYPES = ("hunter", "beast_master")
ROGUISH_ARCHETYPES = ("thief", "assassin", "arcane_trickster")
SORCEROUS_ORIGINS = ("draconic_bloodline", "wild_magic")
OTHERWORLDLY_PATRONS = ("archfey", "fiend", "great_old_one")
ARCANE_TRADITIONS = (
    "abjuration",
    "conjuration",
    "divination",
    "enchantment",
    "evocation",
    "illusion",
    "necromancy",
    "transmutation",
)


# =============================================================================
# Builders
# =============================================================================


def _f(
    level: int,
    feature_id: str,
    name: str,
    description: str = "",
    *,
    grants: ResourceGrant | None = None,
) -> ClassFeature:
    return ClassFeature(id=feature_id, name=name, level=level, description=description, grants=grants)


def _choice(
    level: int,
    feature_id: str,
    name: str,
    choice_type: ChoiceType,
    options: Iterable[str],
    description: str = "",
    *,
    count: int = 1,
) -> ClassFeature:
    return ClassFeature(
        id=feature_id,
        name=name,
        level=level,
        description=description,
        choice_type=choice_type,
        options=tuple(options),
        choice_count=count,
    )


def _subclass_features(prefix: str, name: str, levels: Iterable[int]) -> list[ClassFeature]:
    return [_f(level, f"{prefix}_{level}", name) for level in levels]


def _invocations(levels: Iterable[int]) -> list[ClassFeature]:
    """Two invocations at the first level that grants them, one afterwards."""
    features = []
    for index, level in enumerate(levels):
        features.append(
            _choice(
                level,
                f"eldritch_invocations_{level}",
                "Eldritch Invocations",
                ChoiceType.INVOCATION,
                ELDRITCH_INVOCATIONS,
                "Learn fragments of forbidden knowledge",
                count=2 if index == 0 else 1,
            )
        )
    return features


def _schedule(*groups: Iterable[ClassFeature]) -> dict[int, tuple[ClassFeature, ...]]:
    by_level: dict[int, list[ClassFeature]] = {level: [] for level in range(1, 21)}
    for group in groups:
        for feature in group:
            by_level[feature.level].append(feature)
    return {level: tuple(features) for level, features in by_level.items()}


# =============================================================================
# Schedules
# =============================================================================

BARBARIAN_FEATURES = _schedule(
    [
        _f(1, "rage", "Rage", "Bonus damage and resistance while raging", grants=res.RAGE),
        _f(1, "unarmored_defense", "Unarmored Defense", "AC 10 + DEX + CON without armor"),
        _f(2, "reckless_attack", "Reckless Attack"),
        _f(2, "danger_sense", "Danger Sense"),
        _choice(3, "primal_path", "Primal Path", ChoiceType.SUBCLASS, PRIMAL_PATHS),
        _f(5, "extra_attack", "Extra Attack"),
        _f(5, "fast_movement", "Fast Movement"),
        _f(7, "feral_instinct", "Feral Instinct"),
        _f(9, "brutal_critical_1", "Brutal Critical (1 die)"),
        _f(11, "relentless_rage", "Relentless Rage"),
        _f(13, "brutal_critical_2", "Brutal Critical (2 dice)"),
        _f(15, "persistent_rage", "Persistent Rage"),
        _f(17, "brutal_critical_3", "Brutal Critical (3 dice)"),
        _f(18, "indomitable_might", "Indomitable Might"),
        _f(20, "primal_champion", "Primal Champion", "STR and CON increase by 4, max 24"),
        _f(20, "unlimited_rage", "Rage (Unlimited)"),
    ],
    _subclass_features("path_feature", "Path Feature", (6, 10, 14)),
)

BARD_FEATURES = _schedule(
    [
        _f(1, "spellcasting", "Spellcasting"),
        _f(1, "bardic_inspiration", "Bardic Inspiration (d6)", grants=res.BARDIC_INSPIRATION),
        _f(2, "jack_of_all_trades", "Jack of All Trades"),
        _f(2, "song_of_rest_d6", "Song of Rest (d6)"),
        _choice(3, "bard_college", "Bard College", ChoiceType.SUBCLASS, BARD_COLLEGES),
        _f(3, "expertise", "Expertise"),
        _f(5, "bardic_inspiration_d8", "Bardic Inspiration (d8)"),
        _f(5, "font_of_inspiration", "Font of Inspiration", "Bardic Inspiration recharges on a short rest"),
        _f(6, "countercharm", "Countercharm"),
        _f(9, "song_of_rest_d8", "Song of Rest (d8)"),
        _f(10, "bardic_inspiration_d10", "Bardic Inspiration (d10)"),
        _f(10, "expertise_10", "Expertise"),
        _f(13, "song_of_rest_d10", "Song of Rest (d10)"),
        _f(15, "bardic_inspiration_d12", "Bardic Inspiration (d12)"),
        _f(17, "song_of_rest_d12", "Song of Rest (d12)"),
        _f(20, "superior_inspiration", "Superior Inspiration"),
    ],
    _subclass_features("college_feature", "College Feature", (6, 14)),
    _subclass_features("magical_secrets", "Magical Secrets", (10, 14, 18)),
)

CLERIC_FEATURES = _schedule(
    [
        _f(1, "spellcasting", "Spellcasting"),
        _choice(1, "divine_domain", "Divine Domain", ChoiceType.SUBCLASS, DIVINE_DOMAINS),
        _f(2, "channel_divinity", "Channel Divinity (1/rest)", grants=res.CLERIC_CHANNEL_DIVINITY),
        _f(5, "destroy_undead_cr_1_2", "Destroy Undead (CR 1/2)"),
        _f(6, "channel_divinity_2", "Channel Divinity (2/rest)"),
        _f(8, "destroy_undead_cr_1", "Destroy Undead (CR 1)"),
        _f(10, "divine_intervention", "Divine Intervention"),
        _f(11, "destroy_undead_cr_2", "Destroy Undead (CR 2)"),
        _f(14, "destroy_undead_cr_3", "Destroy Undead (CR 3)"),
        _f(17, "destroy_undead_cr_4", "Destroy Undead (CR 4)"),
        _f(18, "channel_divinity_3", "Channel Divinity (3/rest)"),
        _f(20, "divine_intervention_improvement", "Divine Intervention Improvement"),
    ],
    _subclass_features("domain_feature", "Domain Feature", (2, 6, 8, 17)),
)

DRUID_FEATURES = _schedule(
    [
        _f(1, "druidic", "Druidic"),
        _f(1, "spellcasting", "Spellcasting"),
        _f(2, "wild_shape", "Wild Shape", grants=res.WILD_SHAPE),
        _choice(2, "druid_circle", "Druid Circle", ChoiceType.SUBCLASS, DRUID_CIRCLES),
        _f(4, "wild_shape_improvement_4", "Wild Shape Improvement"),
        _f(8, "wild_shape_improvement_8", "Wild Shape Improvement"),
        _f(18, "timeless_body", "Timeless Body"),
        _f(18, "beast_spells", "Beast Spells"),
        _f(20, "archdruid", "Archdruid", "Use Wild Shape an unlimited number of times"),
    ],
    _subclass_features("circle_feature", "Circle Feature", (6, 10, 14)),
)

FIGHTER_FEATURES = _schedule(
    [
        _choice(1, "fighting_style", "Fighting Style", ChoiceType.FIGHTING_STYLE, FIGHTING_STYLES),
        _f(1, "second_wind", "Second Wind", grants=res.SECOND_WIND),
        _f(2, "action_surge", "Action Surge (1 use)", grants=res.ACTION_SURGE),
        _choice(3, "martial_archetype", "Martial Archetype", ChoiceType.SUBCLASS, MARTIAL_ARCHETYPES),
        _f(5, "extra_attack", "Extra Attack"),
        _f(9, "indomitable", "Indomitable (1 use)", grants=res.INDOMITABLE),
        _f(11, "extra_attack_2", "Extra Attack (2)"),
        _f(13, "indomitable_2", "Indomitable (2 uses)"),
        _f(17, "action_surge_2", "Action Surge (2 uses)"),
        _f(17, "indomitable_3", "Indomitable (3 uses)"),
        _f(20, "extra_attack_3", "Extra Attack (3)"),
    ],
    _subclass_features("archetype_feature", "Archetype Feature", (7, 10, 15, 18)),
)

MONK_FEATURES = _schedule(
    [
        _f(1, "unarmored_defense", "Unarmored Defense", "AC 10 + DEX + WIS without armor"),
        _f(1, "martial_arts_d4", "Martial Arts (d4)"),
        _f(2, "ki", "Ki", grants=res.KI),
        _f(2, "unarmored_movement_10", "Unarmored Movement (+10 ft)"),
        _choice(3, "monastic_tradition", "Monastic Tradition", ChoiceType.SUBCLASS, MONASTIC_TRADITIONS),
        _f(3, "deflect_missiles", "Deflect Missiles"),
        _f(4, "slow_fall", "Slow Fall"),
        _f(5, "extra_attack", "Extra Attack"),
        _f(5, "stunning_strike", "Stunning Strike"),
        _f(5, "martial_arts_d6", "Martial Arts (d6)"),
        _f(6, "ki_empowered_strikes", "Ki-Empowered Strikes"),
        _f(6, "unarmored_movement_15", "Unarmored Movement (+15 ft)"),
        _f(7, "evasion", "Evasion"),
        _f(7, "stillness_of_mind", "Stillness of Mind"),
        _f(9, "unarmored_movement_improvement", "Unarmored Movement Improvement"),
        _f(10, "purity_of_body", "Purity of Body"),
        _f(10, "unarmored_movement_20", "Unarmored Movement (+20 ft)"),
        _f(11, "martial_arts_d8", "Martial Arts (d8)"),
        _f(13, "tongue_of_the_sun_and_moon", "Tongue of the Sun and Moon"),
        _f(14, "diamond_soul", "Diamond Soul"),
        _f(14, "unarmored_movement_25", "Unarmored Movement (+25 ft)"),
        _f(15, "timeless_body", "Timeless Body"),
        _f(17, "martial_arts_d10", "Martial Arts (d10)"),
        _f(18, "empty_body", "Empty Body"),
        _f(18, "unarmored_movement_30", "Unarmored Movement (+30 ft)"),
        _f(20, "perfect_self", "Perfect Self"),
    ],
    _subclass_features("tradition_feature", "Tradition Feature", (6, 11, 17)),
)

PALADIN_FEATURES = _schedule(
    [
        _f(1, "divine_sense", "Divine Sense", grants=res.DIVINE_SENSE),
        _f(1, "lay_on_hands", "Lay on Hands", grants=res.LAY_ON_HANDS),
        _choice(2, "fighting_style", "Fighting Style", ChoiceType.FIGHTING_STYLE, PALADIN_FIGHTING_STYLES),
        _f(2, "spellcasting", "Spellcasting"),
        _f(2, "divine_smite", "Divine Smite"),
        _f(3, "divine_health", "Divine Health"),
        _choice(3, "sacred_oath", "Sacred Oath", ChoiceType.SUBCLASS, SACRED_OATHS),
        _f(3, "channel_divinity", "Channel Divinity", grants=res.PALADIN_CHANNEL_DIVINITY),
        _f(5, "extra_attack", "Extra Attack"),
        _f(6, "aura_of_protection", "Aura of Protection"),
        _f(10, "aura_of_courage", "Aura of Courage"),
        _f(11, "improved_divine_smite", "Improved Divine Smite"),
        _f(14, "cleansing_touch", "Cleansing Touch", grants=res.CLEANSING_TOUCH),
        _f(18, "aura_improvements", "Aura Improvements"),
    ],
    _subclass_features("oath_feature", "Oath Feature", (7, 15, 20)),
)

RANGER_FEATURES = _schedule(
    [
        _f(1, "favored_enemy", "Favored Enemy"),
        _f(1, "natural_explorer", "Natural Explorer"),
        _choice(2, "fighting_style", "Fighting Style", ChoiceType.FIGHTING_STYLE, RANGER_FIGHTING_STYLES),
        _f(2, "spellcasting", "Spellcasting"),
        _choice(3, "ranger_archetype", "Ranger Archetype", ChoiceType.SUBCLASS, RANGER_ARCHETYPES),
        _f(3, "primeval_awareness", "Primeval Awareness"),
        _f(5, "extra_attack", "Extra Attack"),
        _f(6, "favored_enemy_improvement_6", "Favored Enemy Improvement"),
        _f(6, "natural_explorer_improvement_6", "Natural Explorer Improvement"),
        _f(8, "lands_stride", "Land's Stride"),
        _f(10, "natural_explorer_improvement_10", "Natural Explorer Improvement"),
        _f(10, "hide_in_plain_sight", "Hide in Plain Sight"),
        _f(14, "favored_enemy_improvement_14", "Favored Enemy Improvement"),
        _f(14, "vanish", "Vanish"),
        _f(18, "feral_senses", "Feral Senses"),
        _f(20, "foe_slayer", "Foe Slayer"),
    ],
    _subclass_features("archetype_feature", "Archetype Feature", (7, 11, 15)),
)

ROGUE_FEATURES = _schedule(
    [
        _f(1, "expertise", "Expertise"),
        _f(1, "sneak_attack_1d6", "Sneak Attack (1d6)"),
        _f(1, "thieves_cant", "Thieves' Cant"),
        _f(2, "cunning_action", "Cunning Action"),
        _choice(3, "roguish_archetype", "Roguish Archetype", ChoiceType.SUBCLASS, ROGUISH_ARCHETYPES),
        _f(3, "sneak_attack_2d6", "Sneak Attack (2d6)"),
        _f(5, "uncanny_dodge", "Uncanny Dodge"),
        _f(5, "sneak_attack_3d6", "Sneak Attack (3d6)"),
        _f(6, "expertise_6", "Expertise"),
        _f(7, "evasion", "Evasion"),
        _f(7, "sneak_attack_4d6", "Sneak Attack (4d6)"),
        _f(9, "sneak_attack_5d6", "Sneak Attack (5d6)"),
        _f(11, "reliable_talent", "Reliable Talent"),
        _f(11, "sneak_attack_6d6", "Sneak Attack (6d6)"),
        _f(13, "sneak_attack_7d6", "Sneak Attack (7d6)"),
        _f(14, "blindsense", "Blindsense"),
        _f(15, "slippery_mind", "Slippery Mind"),
        _f(15, "sneak_attack_8d6", "Sneak Attack (8d6)"),
        _f(17, "sneak_attack_9d6", "Sneak Attack (9d6)"),
        _f(18, "elusive", "Elusive"),
        _f(19, "sneak_attack_10d6", "Sneak Attack (10d6)"),
        _f(20, "stroke_of_luck", "Stroke of Luck", grants=res.STROKE_OF_LUCK),
    ],
    _subclass_features("archetype_feature", "Archetype Feature", (9, 13, 17)),
)

SORCERER_FEATURES = _schedule(
    [
        _f(1, "spellcasting", "Spellcasting"),
        _choice(1, "sorcerous_origin", "Sorcerous Origin", ChoiceType.SUBCLASS, SORCEROUS_ORIGINS),
        _f(2, "font_of_magic", "Font of Magic", grants=res.SORCERY_POINTS),
        _f(3, "metamagic", "Metamagic (2 options)"),
        _f(10, "metamagic_3", "Metamagic (3 options)"),
        _f(17, "metamagic_4", "Metamagic (4 options)"),
        _f(20, "sorcerous_restoration", "Sorcerous Restoration"),
    ],
    _subclass_features("origin_feature", "Origin Feature", (6, 14, 18)),
)

WARLOCK_FEATURES = _schedule(
    [
        _choice(1, "otherworldly_patron", "Otherworldly Patron", ChoiceType.SUBCLASS, OTHERWORLDLY_PATRONS),
        _f(1, "pact_magic", "Pact Magic", grants=res.PACT_SLOTS),
        _choice(3, "pact_boon", "Pact Boon", ChoiceType.PACT_BOON, PACT_BOONS, "Your patron bestows a gift"),
        _f(11, "mystic_arcanum_6", "Mystic Arcanum (6th level)", grants=res.mystic_arcanum(6)),
        _f(13, "mystic_arcanum_7", "Mystic Arcanum (7th level)", grants=res.mystic_arcanum(7)),
        _f(15, "mystic_arcanum_8", "Mystic Arcanum (8th level)", grants=res.mystic_arcanum(8)),
        _f(17, "mystic_arcanum_9", "Mystic Arcanum (9th level)", grants=res.mystic_arcanum(9)),
        _f(20, "eldritch_master", "Eldritch Master"),
    ],
    _invocations((2, 5, 7, 9, 12, 15, 18)),
    _subclass_features("patron_feature", "Patron Feature", (6, 10, 14)),
)

WIZARD_FEATURES = _schedule(
    [
        _f(1, "spellcasting", "Spellcasting"),
        _f(1, "arcane_recovery", "Arcane Recovery", grants=res.ARCANE_RECOVERY),
        _choice(2, "arcane_tradition", "Arcane Tradition", ChoiceType.SUBCLASS, ARCANE_TRADITIONS),
        _f(18, "spell_mastery", "Spell Mastery"),
        _f(20, "signature_spells", "Signature Spells"),
    ],
    _subclass_features("tradition_feature", "Tradition Feature", (6, 10, 14)),
)


__all__ = [
    "FIGHTING_STYLES",
    "RANGER_FIGHTING_STYLES",
    "PALADIN_FIGHTING_STYLES",
    "PACT_BOONS",
    "ELDRITCH_INVOCATIONS",
    "PRIMAL_PATHS",
    "BARD_COLLEGES",
    "DIVINE_DOMAINS",
    "DRUID_CIRCLES",
    "MARTIAL_ARCHETYPES",
    "MONASTIC_TRADITIONS",
    "SACRED_OATHS",
    "RANGER_ARCHETYPES",
    "ROGUISH_ARCHETYPES",
    "SORCEROUS_ORIGINS",
    "OTHERWORLDLY_PATRONS",
    "ARCANE_TRADITIONS",
    "BARBARIAN_FEATURES",
    "BARD_FEATURES",
    "CLERIC_FEATURES",
    "DRUID_FEATURES",
    "FIGHTER_FEATURES",
    "MONK_FEATURES",
    "PALADIN_FEATURES",
    "RANGER_FEATURES",
    "ROGUE_FEATURES",
    "SORCERER_FEATURES",
    "WARLOCK_FEATURES",
    "WIZARD_FEATURES",
]
