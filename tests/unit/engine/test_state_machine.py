"""Tests for the level-up state machine."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from dnd_progression.core.exceptions import CommitConflict, ProgressionStateError, ValidationError
from dnd_progression.engine.calculator import ProgressionCalculator
from dnd_progression.engine.dice import DiceRoller
from dnd_progression.engine.state_machine import STEPS, ProgressionStateMachine
from dnd_progression.models.character import CharacterSnapshot, KnownSpell
from dnd_progression.models.delta import ProgressionChoices
from dnd_progression.models.enums import HPMethod, ProgressionStep, ViolationCode
from dnd_progression.storage.repository import InMemoryCharacterRepository


Step = ProgressionStep


@pytest.fixture
def start(calculator: ProgressionCalculator, repository: InMemoryCharacterRepository, dice_roller: DiceRoller):
    """Factory starting a machine that commits into the test repository."""

    def factory(snapshot: CharacterSnapshot, **kwargs) -> ProgressionStateMachine:
        if snapshot.id not in repository:
            repository.add_character(snapshot)
        kwargs.setdefault("full_heal", False)
        return ProgressionStateMachine(
            snapshot,
            commit=repository.commit_delta,
            calculator=calculator,
            roller=dice_roller,
            **kwargs,
        )

    return factory


class TestStepDeclarations:
    """Tests for the declared step list."""

    def test_order_and_predicates(self) -> None:
        """Test steps are declared in wizard order with their predicates."""
        assert [(s.step, s.predicate) for s in STEPS] == [
            (Step.COLLECTING_HP, "hp_selected"),
            (Step.COLLECTING_FEATURE_CHOICES, "feature_choices_valid"),
            (Step.COLLECTING_SPELL_CHOICES, "spell_count_matches"),
            (Step.CONFIRMING, "confirmed"),
        ]

    def test_spell_step_skipped_without_spells(self, start, fighter: CharacterSnapshot) -> None:
        """Test a level with no spell picks hides the spell step."""
        machine = start(fighter)
        assert machine.applicable_steps() == [
            Step.COLLECTING_HP,
            Step.COLLECTING_FEATURE_CHOICES,
            Step.CONFIRMING,
        ]


class TestNavigation:
    """Tests for advance and back."""

    def test_blocked_without_hp(self, start, fighter: CharacterSnapshot) -> None:
        """Test advance names the unmet predicate."""
        machine = start(fighter)

        result = machine.advance()

        assert not result
        assert result.unmet == "hp_selected"
        assert result.validation.codes == [ViolationCode.HP_NOT_SELECTED]
        assert machine.step == Step.COLLECTING_HP

    def test_back_at_first_step(self, start, fighter: CharacterSnapshot) -> None:
        """Test there is nothing before the HP step."""
        result = start(fighter).back()
        assert result.unmet == "has_previous_step"

    def test_back_keeps_choices(self, start, fighter: CharacterSnapshot) -> None:
        """Test going back does not clear earlier choices."""
        machine = start(fighter)
        machine.submit_hp_choice(HPMethod.ROLL, 9)
        machine.advance()

        result = machine.back()

        assert result.ok
        assert result.to_step == Step.COLLECTING_HP
        assert machine.choices.hp.roll == 9

    def test_advance_from_confirming_needs_confirm(self, start, fighter: CharacterSnapshot) -> None:
        """Test CONFIRMING is only left through confirm."""
        machine = start(fighter)
        machine.submit_hp_choice("average")
        machine.advance()
        machine.advance()
        assert machine.step == Step.CONFIRMING

        result = machine.advance()

        assert result.unmet == "confirmed"
        assert machine.step == Step.CONFIRMING

    def test_advance_past_last_applicable_step_raises(
        self, start, fighter: CharacterSnapshot, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test advancing with no following step is a state error, not a silent move."""
        machine = start(fighter)
        machine.submit_hp_choice(HPMethod.AVERAGE)
        monkeypatch.setattr(machine, "applicable_steps", lambda: [Step.COLLECTING_HP])

        with pytest.raises(ProgressionStateError) as exc_info:
            machine.advance()

        assert exc_info.value.details["current_state"] == Step.COLLECTING_HP.value
        assert machine.step == Step.COLLECTING_HP

    def test_submit_in_wrong_step(self, start, fighter: CharacterSnapshot) -> None:
        """Test choices are only accepted in their own step."""
        machine = start(fighter)
        with pytest.raises(ProgressionStateError):
            machine.submit_feature_choices({})
        with pytest.raises(ProgressionStateError):
            machine.submit_spell_choices([])
        with pytest.raises(ProgressionStateError):
            machine.confirm()


class TestChoices:
    """Tests for choice submission."""

    def test_roll_without_value_uses_roller(self, start, fighter: CharacterSnapshot) -> None:
        """Test the roll method rolls the class hit die."""
        machine = start(fighter)

        assert machine.submit_hp_choice(HPMethod.ROLL).ok
        assert 1 <= machine.choices.hp.roll <= 10

    def test_hp_method_any_case(self, start, fighter: CharacterSnapshot) -> None:
        """Test the HP method is matched case-insensitively and unknown ones are rejected."""
        machine = start(fighter)

        assert machine.submit_hp_choice("Average").ok
        assert machine.choices.hp.method == HPMethod.AVERAGE
        with pytest.raises(ValidationError) as exc_info:
            machine.submit_hp_choice("max")
        assert exc_info.value.details["rule"] == "hp_method"

    def test_out_of_range_roll(self, start, fighter: CharacterSnapshot) -> None:
        """Test a roll above the hit die is reported."""
        result = start(fighter).submit_hp_choice(HPMethod.ROLL, 11)
        assert result.codes == [ViolationCode.HP_ROLL_OUT_OF_RANGE]

    def test_invalid_asi_blocks_feature_step(self, start, make_character) -> None:
        """Test a bad ASI keeps the machine on the feature step."""
        machine = start(make_character(level=3, subclass="champion", abilities={"strength": 19}, max_hp=30))
        machine.submit_hp_choice(HPMethod.AVERAGE)
        machine.advance()

        validation = machine.submit_feature_choices(asi=[{"ability": "str", "bonus": 2}])
        result = machine.advance()

        assert validation.codes == [ViolationCode.ASI_SCORE_CAP]
        assert result.unmet == "feature_choices_valid"
        assert result.violations[0].feature_id == "ability_score_improvement_4"

    def test_subclass_choice_replans(self, start, make_character) -> None:
        """Test Eldritch Knight adds the spell step and Champion removes it again."""
        machine = start(make_character(level=2, max_hp=20))
        machine.submit_hp_choice(HPMethod.AVERAGE)
        machine.advance()

        machine.submit_feature_choices({"martial_archetype": "eldritch_knight"})
        assert Step.COLLECTING_SPELL_CHOICES in machine.applicable_steps()
        assert machine.advance().to_step == Step.COLLECTING_SPELL_CHOICES

        machine.submit_spell_choices(
            [
                {"spell_id": "shield", "level": 1},
                {"spell_id": "magic_missile", "level": 1},
                {"spell_id": "sleep", "level": 1},
                {"spell_id": "fire_bolt", "level": 0},
                {"spell_id": "light", "level": 0},
            ]
        )
        machine.back()
        machine.submit_feature_choices({"martial_archetype": "champion"})

        assert machine.choices.spells == ()
        assert Step.COLLECTING_SPELL_CHOICES not in machine.applicable_steps()
        assert machine.advance().to_step == Step.CONFIRMING


class TestConfirm:
    """Tests for committing the level-up."""

    def _to_confirming(self, machine: ProgressionStateMachine) -> None:
        machine.submit_hp_choice(HPMethod.AVERAGE)
        assert machine.advance().ok
        assert machine.advance().ok

    def test_confirm_commits_once(self, start, paladin: CharacterSnapshot, repository) -> None:
        """Test confirm stores the delta and ends in APPLIED."""
        machine = start(paladin)
        self._to_confirming(machine)

        delta = machine.confirm()

        assert machine.is_applied
        assert machine.delta is delta
        stored = repository.load_character("paladin")
        assert stored.level == 5
        assert stored.version == paladin.version + 1
        assert stored.resources["lay_on_hands"].max == 25
        assert machine.result == stored
        assert machine.preview() is delta

    def test_applied_is_terminal(self, start, fighter: CharacterSnapshot) -> None:
        """Test no navigation is possible after commit."""
        machine = start(fighter)
        self._to_confirming(machine)
        machine.confirm()

        with pytest.raises(ProgressionStateError):
            machine.advance()
        with pytest.raises(ProgressionStateError):
            machine.back()
        with pytest.raises(ProgressionStateError):
            machine.confirm()

    def test_conflict_keeps_confirming(self, start, fighter: CharacterSnapshot, repository) -> None:
        """Test a stale snapshot is rejected and nothing is applied."""
        machine = start(fighter)
        self._to_confirming(machine)
        repository.save_resources(fighter.id, {}, fighter.hp)

        with pytest.raises(CommitConflict) as exc_info:
            machine.confirm()

        assert exc_info.value.details["expected_version"] == 0
        assert machine.step == Step.CONFIRMING
        assert machine.delta is None
        assert repository.load_character(fighter.id).level == 1

    def test_confirm_revalidates(self, fighter: CharacterSnapshot, calculator: ProgressionCalculator) -> None:
        """Test choices are validated again before the commit."""
        commit = MagicMock()
        machine = ProgressionStateMachine(fighter, commit=commit, calculator=calculator)
        self._to_confirming(machine)
        machine.choices = ProgressionChoices()

        with pytest.raises(ValidationError):
            machine.confirm()
        commit.assert_not_called()

    def test_full_heal_from_settings(
        self,
        mock_env_vars: dict[str, str],
        make_character,
        calculator: ProgressionCalculator,
    ) -> None:
        """Test the configured full heal applies on confirm."""
        wounded = make_character(current_hp=3)
        commit = MagicMock(side_effect=lambda character_id, delta: delta.apply_to(wounded))
        machine = ProgressionStateMachine(wounded, commit=commit, calculator=calculator)
        self._to_confirming(machine)

        delta = machine.confirm()

        assert delta.current_hp == delta.max_hp
        commit.assert_called_once()

    def test_warlock_full_flow(self, start, make_character, repository) -> None:
        """Test a level with invocations and spell picks."""
        machine = start(make_character(id="lock", class_name="warlock", subclass="fiend", max_hp=9))
        machine.submit_hp_choice(HPMethod.AVERAGE)
        machine.advance()
        machine.submit_feature_choices({"eldritch_invocations_2": ["agonizing_blast", "devils_sight"]})
        assert machine.advance().to_step == Step.COLLECTING_SPELL_CHOICES

        assert machine.advance().unmet == "spell_count_matches"
        machine.submit_spell_choices([KnownSpell(spell_id="hex", level=1)])
        assert machine.advance().to_step == Step.CONFIRMING

        delta = machine.confirm()

        assert delta.spell_slots == {1: 2}
        stored = repository.load_character("lock")
        assert stored.invocations == ["agonizing_blast", "devils_sight"]
        assert stored.spell_ids == {"hex"}

    def test_pact_boon_blocks_until_chosen(self, start, make_character, repository) -> None:
        """Test warlock level 3 cannot leave the feature step without a pact boon."""
        machine = start(
            make_character(
                id="lock",
                class_name="warlock",
                subclass="fiend",
                level=2,
                max_hp=17,
                invocations=["agonizing_blast", "devils_sight"],
            )
        )
        machine.submit_hp_choice(HPMethod.AVERAGE)
        machine.advance()

        blocked = machine.advance()
        assert blocked.unmet == "feature_choices_valid"
        assert ViolationCode.MISSING_SELECTION in blocked.validation.codes

        rejected = machine.submit_feature_choices({"pact_boon": "pact_of_doom"})
        assert ViolationCode.OPTION_NOT_ALLOWED in rejected.codes

        assert machine.submit_feature_choices({"pact_boon": "pact_blade"}).ok
        assert machine.advance().to_step == Step.COLLECTING_SPELL_CHOICES
        machine.submit_spell_choices([{"spell_id": "misty_step", "level": 2}])
        machine.advance()
        delta = machine.confirm()

        assert delta.pact_boon == "pact_blade"
        assert repository.load_character("lock").pact_boon == "pact_blade"
