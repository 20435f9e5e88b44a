"""Tests for the class registry and RuleTables lookups."""

from __future__ import annotations

from collections import Counter

import pytest
from structlog.testing import capture_logs

from dnd_progression.core.exceptions import UnknownClass
from dnd_progression.models.character import AbilityScoreSet
from dnd_progression.models.enums import Ability, CasterKind, CharacterClass, ChoiceType, RechargePolicy
from dnd_progression.rules.registry import FALLBACK_RULES, RuleTables, normalize_class


class TestNormalizeClass:
    """Tests for class identifier normalization."""

    @pytest.mark.parametrize("value", ["Paladin", " paladin ", "PALADIN", "paladino", CharacterClass.PALADIN])
    def test_variants(self, value: str) -> None:
        """Test case, whitespace and aliases resolve."""
        assert normalize_class(value) == CharacterClass.PALADIN

    def test_unknown(self) -> None:
        """Test unknown identifiers give None."""
        assert normalize_class("artificer") is None


class TestFeatureSchedules:
    """Tests for per-class feature schedules."""

    @pytest.mark.parametrize("character_class", list(CharacterClass))
    def test_feature_ids_unique_across_levels(self, rules: RuleTables, character_class: CharacterClass) -> None:
        """Test no feature id repeats across levels 1-20."""
        ids = [
            feature.id
            for level in range(1, 21)
            for feature in rules.get_features_at_level(character_class, level)
        ]
        duplicates = [fid for fid, count in Counter(ids).items() if count > 1]
        assert duplicates == []

    @pytest.mark.parametrize("character_class", list(CharacterClass))
    def test_features_belong_to_their_level(self, rules: RuleTables, character_class: CharacterClass) -> None:
        """Test every feature reports the level it is listed at."""
        for level in range(1, 21):
            for feature in rules.get_features_at_level(character_class, level):
                assert feature.level == level

    @pytest.mark.parametrize("character_class", list(CharacterClass))
    def test_exactly_one_subclass_choice(self, rules: RuleTables, character_class: CharacterClass) -> None:
        """Test each class picks its subclass exactly once."""
        subclass_features = [
            feature
            for level in range(1, 21)
            for feature in rules.get_features_at_level(character_class, level)
            if feature.choice_type == ChoiceType.SUBCLASS
        ]
        assert len(subclass_features) == 1
        assert subclass_features[0].options

    @pytest.mark.parametrize(
        ("character_class", "levels"),
        [
            (CharacterClass.FIGHTER, {4, 6, 8, 12, 14, 16, 19}),
            (CharacterClass.ROGUE, {4, 8, 10, 12, 16, 19}),
            (CharacterClass.WIZARD, {4, 8, 12, 16, 19}),
        ],
    )
    def test_asi_levels(self, rules: RuleTables, character_class: CharacterClass, levels: set[int]) -> None:
        """Test ASI features appear exactly at the class's ASI levels."""
        asi_levels = {
            level
            for level in range(1, 21)
            for feature in rules.get_features_at_level(character_class, level)
            if feature.choice_type == ChoiceType.ASI
        }
        assert asi_levels == levels
        assert all(rules.is_asi_level(character_class, level) for level in levels)

    def test_warlock_invocations(self, rules: RuleTables) -> None:
        """Test warlocks pick two invocations first, then one."""
        level_2 = [f for f in rules.get_features_at_level("warlock", 2) if f.choice_type == ChoiceType.INVOCATION]
        level_5 = [f for f in rules.get_features_at_level("warlock", 5) if f.choice_type == ChoiceType.INVOCATION]

        assert level_2[0].choice_count == 2
        assert level_5[0].choice_count == 1


class TestHitDiceAndTables:
    """Tests for hit dice, proficiency and slot lookups."""

    @pytest.mark.parametrize(
        ("class_name", "hit_die"),
        [("barbarian", 12), ("fighter", 10), ("paladin", 10), ("ranger", 10), ("bard", 8),
         ("cleric", 8), ("druid", 8), ("monk", 8), ("rogue", 8), ("warlock", 8),
         ("sorcerer", 6), ("wizard", 6)],
    )
    def test_hit_die(self, rules: RuleTables, class_name: str, hit_die: int) -> None:
        """Test hit die sizes."""
        assert rules.get_hit_die(class_name) == hit_die

    @pytest.mark.parametrize(("level", "bonus"), [(1, 2), (4, 2), (5, 3), (9, 4), (13, 5), (17, 6), (20, 6)])
    def test_proficiency_bonus(self, level: int, bonus: int) -> None:
        """Test proficiency bonus by level."""
        assert RuleTables.get_proficiency_bonus(level) == bonus

    def test_full_caster_slots(self, rules: RuleTables) -> None:
        """Test a full caster's slot table."""
        assert rules.get_spell_slot_table("wizard", 1) == {1: 2}
        assert rules.get_spell_slot_table("wizard", 5) == {1: 4, 2: 3, 3: 2}

    def test_non_caster_has_no_slots(self, rules: RuleTables) -> None:
        """Test classes without slots return None."""
        assert rules.get_spell_slot_table("barbarian", 10) is None
        assert rules.get_spell_slot_table("paladin", 1) is None

    def test_warlock_pact_slots(self, rules: RuleTables) -> None:
        """Test warlock slots come from pact magic."""
        assert rules.get_spell_slot_table("warlock", 1) == {1: 1}
        assert rules.get_spell_slot_table("warlock", 2) == {1: 2}
        assert rules.get_spell_slot_table("warlock", 5) == {3: 2}

    def test_eldritch_knight_gains_third_caster_slots(self, rules: RuleTables) -> None:
        """Test the subclass turns on third-caster slots and spells."""
        assert rules.get_spell_slot_table("fighter", 3) is None
        assert rules.get_spell_slot_table("fighter", 3, "eldritch_knight") == {1: 2}
        assert rules.get_caster_kind("fighter", "eldritch_knight") == CasterKind.KNOWN
        assert rules.get_spellcasting_ability("fighter", "eldritch_knight") == Ability.INT
        assert rules.get_cantrips_known("fighter", 3, "eldritch_knight") == 2
        assert rules.get_spells_known("fighter", 3, "eldritch_knight") == 3

    def test_subclass_display_name_resolves(self, rules: RuleTables) -> None:
        """Test a subclass written as a display name finds its casting table."""
        assert rules.get_spell_slot_table("fighter", 3, "Eldritch Knight") == {1: 2}
        assert rules.get_caster_kind("fighter", " Eldritch Knight ") == CasterKind.KNOWN
        assert rules.get_cantrips_known("rogue", 3, "Arcane Trickster") == 3

    def test_xp_threshold(self, rules: RuleTables) -> None:
        """Test XP thresholds."""
        assert rules.get_xp_threshold(2) == 300
        assert rules.get_xp_threshold(20) == 355000


class TestResourceTemplates:
    """Tests for per-class resource templates."""

    def test_paladin_lay_on_hands_scales(self, rules: RuleTables) -> None:
        """Test Lay on Hands is five times the paladin level."""
        abilities = AbilityScoreSet(charisma=16)
        pools_4 = {p.id: p for p in rules.get_resource_template("paladin", 4, abilities)}
        pools_5 = {p.id: p for p in rules.get_resource_template("paladin", 5, abilities)}

        assert pools_4["lay_on_hands"].max == 20
        assert pools_5["lay_on_hands"].max == 25
        assert pools_5["divine_sense"].max == 4
        assert pools_5["lay_on_hands"].is_full

    def test_barbarian_rage_unlimited_at_20(self, rules: RuleTables) -> None:
        """Test rage becomes passive at level 20."""
        pools = {p.id: p for p in rules.get_resource_template("barbarian", 20, AbilityScoreSet())}
        assert pools["rage"].is_passive
        assert pools["rage"].recharge == RechargePolicy.PASSIVE

    def test_bardic_inspiration_short_rest_from_5(self, rules: RuleTables) -> None:
        """Test Font of Inspiration changes the recharge policy."""
        abilities = AbilityScoreSet(charisma=18)
        level_4 = {p.id: p for p in rules.get_resource_template("bard", 4, abilities)}
        level_5 = {p.id: p for p in rules.get_resource_template("bard", 5, abilities)}

        assert level_4["bardic_inspiration"].recharge == RechargePolicy.LONG_REST
        assert level_5["bardic_inspiration"].recharge == RechargePolicy.SHORT_REST
        assert level_5["bardic_inspiration"].max == 4

    def test_warlock_mystic_arcanum(self, rules: RuleTables) -> None:
        """Test each arcanum is its own long-rest pool."""
        pools = {p.id: p for p in rules.get_resource_template("warlock", 17, AbilityScoreSet())}
        assert {"mystic_arcanum_6", "mystic_arcanum_7", "mystic_arcanum_8", "mystic_arcanum_9"} <= set(pools)
        assert pools["pact_slots"].max == 4
        assert pools["pact_slots"].recharge == RechargePolicy.SHORT_REST


class TestUnknownClass:
    """Tests for the fallback profile and strict lookup."""

    def test_fallback_profile(self, rules: RuleTables) -> None:
        """Test unknown classes get a d8 non-caster profile."""
        assert rules.class_rules("artificer") is FALLBACK_RULES
        assert rules.get_hit_die("artificer") == 8
        assert rules.get_features_at_level("artificer", 3) == []
        assert rules.get_spell_slot_table("artificer", 5) is None
        assert rules.get_resource_template("artificer", 5, AbilityScoreSet()) == []
        assert not rules.is_known_class("artificer")

    def test_fallback_warns_once(self) -> None:
        """Test the fallback is reported once per identifier."""
        rules = RuleTables(strict=False)

        with capture_logs() as logs:
            rules.get_hit_die("artificer")
            rules.get_hit_die("artificer")

        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert len(warnings) == 1
        assert warnings[0]["error_type"] == "UnknownClass"
        assert warnings[0]["class_name"] == "artificer"

    def test_strict_mode_raises(self) -> None:
        """Test strict lookup raises UnknownClass."""
        rules = RuleTables(strict=True)
        with pytest.raises(UnknownClass):
            rules.get_hit_die("artificer")

    def test_strict_default_from_settings(self, mock_env_vars: dict[str, str]) -> None:
        """Test strictness defaults to the configured setting."""
        assert RuleTables().strict is True
