"""Tests for resource grant evaluation and numeric tables."""

from __future__ import annotations

import pytest

from dnd_progression.models.character import AbilityScoreSet
from dnd_progression.models.enums import RechargePolicy
from dnd_progression.rules import resources as res
from dnd_progression.rules.tables import (
    XP_THRESHOLDS,
    average_hit_die,
    threshold_lookup,
)


class TestTables:
    """Tests for the numeric helper functions."""

    @pytest.mark.parametrize(("hit_die", "average"), [(6, 4), (8, 5), (10, 6), (12, 7)])
    def test_average_hit_die(self, hit_die: int, average: int) -> None:
        """Test the fixed average is half the die plus one."""
        assert average_hit_die(hit_die) == average

    def test_threshold_lookup(self) -> None:
        """Test sparse tables pick the highest reached threshold."""
        table = {2: 1, 6: 2, 18: 3}
        assert threshold_lookup(table, 1) == 0
        assert threshold_lookup(table, 5) == 1
        assert threshold_lookup(table, 6) == 2
        assert threshold_lookup(table, 20) == 3

    def test_xp_thresholds_cover_every_level(self) -> None:
        """Test each level needs strictly more XP than the one before."""
        assert sorted(XP_THRESHOLDS) == list(range(1, 21))
        values = [XP_THRESHOLDS[level] for level in range(1, 21)]
        assert values[0] == 0
        assert all(low < high for low, high in zip(values, values[1:]))


class TestEvaluateUses:
    """Tests for max formulas."""

    def test_fixed_and_table(self) -> None:
        """Test integer and level-table specs."""
        abilities = AbilityScoreSet()
        assert res.evaluate_uses(3, 7, abilities) == 3
        assert res.evaluate_uses(res.RAGE.uses, 6, abilities) == 4
        assert res.evaluate_uses(res.RAGE.uses, 20, abilities) == res.UNLIMITED

    def test_named_formulas(self) -> None:
        """Test the named formulas."""
        abilities = AbilityScoreSet(charisma=14)
        assert res.evaluate_uses("level", 7, abilities) == 7
        assert res.evaluate_uses("level_x5", 5, abilities) == 25
        assert res.evaluate_uses("charisma_mod", 1, abilities) == 2
        assert res.evaluate_uses("charisma_mod_plus_1", 1, abilities) == 3
        assert res.evaluate_uses("proficiency_bonus", 9, abilities) == 4

    def test_charisma_formulas_floor_at_one(self) -> None:
        """Test a negative modifier still grants one use."""
        abilities = AbilityScoreSet(charisma=6)
        assert res.evaluate_uses("charisma_mod", 1, abilities) == 1
        assert res.evaluate_uses("charisma_mod_plus_1", 1, abilities) == 1

    def test_unknown_formula(self) -> None:
        """Test unknown formulas raise ValueError."""
        with pytest.raises(ValueError):
            res.evaluate_uses("wisdom_mod", 1, AbilityScoreSet())


class TestBuildPool:
    """Tests for pool construction."""

    def test_pool_starts_full(self) -> None:
        """Test new pools are full and owned by the class."""
        pool = res.build_pool(res.KI, owning_class="Monk", level=5, abilities=AbilityScoreSet())
        assert pool.id == "ki_points"
        assert pool.max == pool.current == 5
        assert pool.owning_class == "Monk"
        assert pool.recharge == RechargePolicy.SHORT_REST

    def test_unlimited_becomes_passive(self) -> None:
        """Test unlimited grants carry no counter."""
        pool = res.build_pool(res.WILD_SHAPE, owning_class="Druid", level=20, abilities=AbilityScoreSet())
        assert pool.is_passive
        assert pool.max == 0
