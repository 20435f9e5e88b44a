"""The level-up wizard as a state machine.

A progression event walks through a fixed list of steps. Each step is
declared once with the test that decides whether it applies to the current
plan and the predicate that must hold before the machine moves past it.
Navigation skips steps that do not apply, so the spell step disappears for
a level that grants no new spells without any special casing.

Example:
    >>> machine = ProgressionStateMachine(snapshot, commit=repository.commit_delta)
    >>> machine.submit_hp_choice(HPMethod.AVERAGE)
    >>> machine.advance().ok
    True
    >>> machine.submit_feature_choices({"martial_archetype": "champion"})
    >>> machine.advance()
    >>> delta = machine.confirm()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from dnd_progression.core.config import get_settings
from dnd_progression.core.exceptions import ProgressionStateError, ValidationError
from dnd_progression.core.logging import get_logger
from dnd_progression.engine.calculator import ProgressionCalculator
from dnd_progression.engine.dice import DiceRoller
from dnd_progression.engine.plan import ProgressionPlan
from dnd_progression.engine.validator import ChoiceValidator, ChoiceViolation, ValidationResult
from dnd_progression.models.character import CharacterSnapshot, KnownSpell
from dnd_progression.models.delta import (
    ASIChoice,
    CharacterDelta,
    HPChoice,
    ProgressionChoices,
)
from dnd_progression.models.enums import HPMethod, ProgressionStep


logger = get_logger(__name__)

CommitFn = Callable[[str, CharacterDelta], CharacterSnapshot]
"""Persists a delta as one unit and returns the new authoritative snapshot."""


# =============================================================================
# Step Declarations
# =============================================================================


@dataclass(frozen=True)
class StepSpec:
    """One step of the wizard.

    Attributes:
        step: The state this entry describes.
        predicate: Name of the condition that must hold to leave the step.
        is_applicable: Whether the step is shown for a plan.
        is_valid: Checks the predicate against the machine's choices.
    """

    step: ProgressionStep
    predicate: str
    is_applicable: Callable[[ProgressionPlan], bool]
    is_valid: Callable[[ProgressionStateMachine], ValidationResult]


def _always(plan: ProgressionPlan) -> bool:
    return True


def _hp_selected(machine: ProgressionStateMachine) -> ValidationResult:
    return machine.validator.validate_hp(machine.plan, machine.choices.hp)


def _feature_choices_valid(machine: ProgressionStateMachine) -> ValidationResult:
    return machine.validator.validate_feature_choices(machine.plan, machine.snapshot, machine.choices)


def _spell_count_matches(machine: ProgressionStateMachine) -> ValidationResult:
    return machine.validator.validate_spells(machine.plan, machine.snapshot, machine.choices.spells)


def _awaiting_confirmation(machine: ProgressionStateMachine) -> ValidationResult:
    return ValidationResult.success()


STEPS: tuple[StepSpec, ...] = (
    StepSpec(ProgressionStep.COLLECTING_HP, "hp_selected", _always, _hp_selected),
    StepSpec(
        ProgressionStep.COLLECTING_FEATURE_CHOICES,
        "feature_choices_valid",
        _always,
        _feature_choices_valid,
    ),
    StepSpec(
        ProgressionStep.COLLECTING_SPELL_CHOICES,
        "spell_count_matches",
        lambda plan: plan.requires_spell_choices,
        _spell_count_matches,
    ),
    StepSpec(ProgressionStep.CONFIRMING, "confirmed", _always, _awaiting_confirmation),
)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``advance`` or ``back``.

    Attributes:
        from_step: State before the call.
        to_step: State after the call (equal to from_step on failure).
        unmet: Name of the predicate that blocked the move.
        validation: Violations behind the unmet predicate.
    """

    from_step: ProgressionStep
    to_step: ProgressionStep
    unmet: str | None = None
    validation: ValidationResult = ValidationResult()

    @property
    def ok(self) -> bool:
        return self.unmet is None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def violations(self) -> tuple[ChoiceViolation, ...]:
        return self.validation.violations


# =============================================================================
# State Machine
# =============================================================================


class ProgressionStateMachine:
    """Drives one level-up from HP choice to committed delta.

    All context is explicit: the snapshot, the collaborators and the commit
    function are passed in, and the machine holds no shared state. One
    machine serves one progression event; ``APPLIED`` is terminal.
    """

    def __init__(
        self,
        snapshot: CharacterSnapshot,
        *,
        commit: CommitFn,
        calculator: ProgressionCalculator | None = None,
        validator: ChoiceValidator | None = None,
        target_level: int | None = None,
        full_heal: bool | None = None,
        roller: DiceRoller | None = None,
    ) -> None:
        """Initialize the machine and compute the initial plan.

        Args:
            snapshot: Character to advance.
            commit: Persists the final delta.
            calculator: Progression calculator; one is built if omitted.
            validator: Choice validator; defaults to the calculator's.
            target_level: Level to reach; defaults to one above current.
            full_heal: Restore HP fully on confirm; defaults to settings.
            roller: Dice roller for the roll HP method.

        Raises:
            InvalidProgressionError: If the character cannot level up.
        """
        self.calculator = calculator or ProgressionCalculator(validator=validator)
        self.validator = validator or self.calculator.validator
        self.snapshot = snapshot
        self._commit = commit
        self._roller = roller or DiceRoller()
        if full_heal is None:
            full_heal = get_settings().rules.full_heal_on_level_up
        self.full_heal = full_heal

        self.plan = self.calculator.plan(snapshot, target_level)
        self.target_level = self.plan.to_level
        self.choices = ProgressionChoices()
        self._step = ProgressionStep.COLLECTING_HP
        self._delta: CharacterDelta | None = None
        self._result: CharacterSnapshot | None = None

        logger.info(
            "Progression started",
            character_id=snapshot.id,
            from_level=self.plan.from_level,
            to_level=self.plan.to_level,
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def step(self) -> ProgressionStep:
        return self._step

    @property
    def is_applied(self) -> bool:
        return self._step == ProgressionStep.APPLIED

    @property
    def delta(self) -> CharacterDelta | None:
        """The committed delta, once applied."""
        return self._delta

    @property
    def result(self) -> CharacterSnapshot | None:
        """The snapshot returned by the commit, once applied."""
        return self._result

    def applicable_steps(self) -> list[ProgressionStep]:
        """Steps shown for the current plan, in order."""
        return [spec.step for spec in STEPS if spec.is_applicable(self.plan)]

    def _spec(self, step: ProgressionStep) -> StepSpec:
        for spec in STEPS:
            if spec.step == step:
                return spec
        raise ProgressionStateError(
            f"No step declared for {step.value}",
            current_state=step.value,
        )

    def _require(self, *steps: ProgressionStep) -> None:
        if self._step not in steps:
            raise ProgressionStateError(
                f"Not allowed while {self._step.value}",
                current_state=self._step.value,
                expected_states=[s.value for s in steps],
            )

    def _neighbour(self, direction: int) -> ProgressionStep | None:
        steps = self.applicable_steps()
        index = steps.index(self._step) + direction
        if 0 <= index < len(steps):
            return steps[index]
        return None

    # =========================================================================
    # Navigation
    # =========================================================================

    def validate_current(self) -> ValidationResult:
        """Evaluate the current step's predicate."""
        if self.is_applied:
            return ValidationResult.success()
        return self._spec(self._step).is_valid(self)

    def advance(self) -> TransitionResult:
        """Move to the next applicable step if the current one is valid.

        Leaving ``CONFIRMING`` happens only through ``confirm``.

        Raises:
            ProgressionStateError: If the machine is already applied or no
                applicable step follows the current one.
        """
        if self.is_applied:
            raise ProgressionStateError(
                "Progression already applied",
                current_state=self._step.value,
            )
        current = self._step
        if current == ProgressionStep.CONFIRMING:
            return TransitionResult(current, current, unmet="confirmed")

        spec = self._spec(current)
        validation = spec.is_valid(self)
        if not validation.ok:
            logger.debug(
                "Transition blocked",
                character_id=self.snapshot.id,
                step=current.value,
                unmet=spec.predicate,
                codes=[c.value for c in validation.codes],
            )
            return TransitionResult(current, current, unmet=spec.predicate, validation=validation)

        target = self._neighbour(1)
        if target is None:
            raise ProgressionStateError(
                "No step after the current one",
                current_state=current.value,
                expected_states=[ProgressionStep.CONFIRMING.value],
            )
        self._step = target
        logger.debug("Transition", character_id=self.snapshot.id, from_step=current.value, to_step=target.value)
        return TransitionResult(current, target)

    def back(self) -> TransitionResult:
        """Move to the previous applicable step. Choices are kept.

        Raises:
            ProgressionStateError: If the machine is already applied.
        """
        if self.is_applied:
            raise ProgressionStateError(
                "Progression already applied",
                current_state=self._step.value,
            )
        current = self._step
        target = self._neighbour(-1)
        if target is None:
            return TransitionResult(current, current, unmet="has_previous_step")
        self._step = target
        return TransitionResult(current, target)

    # =========================================================================
    # Choices
    # =========================================================================

    def _update_choices(self, **changes: Any) -> None:
        data = self.choices.model_dump()
        data.update(changes)
        self.choices = ProgressionChoices.model_validate(data)

    def submit_hp_choice(self, method: HPMethod | str, roll: int | None = None) -> ValidationResult:
        """Select the HP method; a missing roll is rolled on the hit die.

        Returns:
            The HP validation result.

        Raises:
            ProgressionStateError: Outside ``COLLECTING_HP``.
            ValidationError: If ``method`` is neither average nor roll.
        """
        self._require(ProgressionStep.COLLECTING_HP)
        try:
            method = HPMethod(str(method).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"Unknown HP method '{method}'",
                rule="hp_method",
                field_name="method",
                invalid_value=method,
            ) from exc
        if method == HPMethod.ROLL:
            if roll is None:
                roll = self._roller.roll_hit_die(self.plan.hit_die)
            choice = HPChoice.rolled(roll)
        else:
            choice = HPChoice.average()
        self.choices = self.choices.model_copy(update={"hp": choice})
        return self.validator.validate_hp(self.plan, choice)

    def submit_feature_choices(
        self,
        selections: Mapping[str, str | Sequence[str]] | None = None,
        asi: Sequence[ASIChoice | Mapping[str, Any]] = (),
    ) -> ValidationResult:
        """Select subclass, fighting style, pact boon, invocations and the ASI.

        Replaces any earlier feature choices. A subclass change re-plans the
        level; spell picks are dropped when the required counts change.

        Raises:
            ProgressionStateError: Outside ``COLLECTING_FEATURE_CHOICES``.
        """
        self._require(ProgressionStep.COLLECTING_FEATURE_CHOICES)
        self._update_choices(selections=dict(selections or {}), asi=list(asi))

        subclass = None
        feature = self.plan.subclass_feature
        if feature is not None:
            picks = self.choices.selections.get(feature.id, ())
            if self.validator.validate_selection(feature, picks, self.snapshot).ok:
                subclass = picks[0]
        plan = self.calculator.plan(self.snapshot, self.target_level, subclass=subclass)
        if (plan.new_spell_picks, plan.new_cantrip_picks) != (
            self.plan.new_spell_picks,
            self.plan.new_cantrip_picks,
        ):
            self.choices = self.choices.model_copy(update={"spells": ()})
        self.plan = plan

        return self.validator.validate_feature_choices(self.plan, self.snapshot, self.choices)

    def submit_spell_choices(self, spells: Sequence[KnownSpell | Mapping[str, Any]]) -> ValidationResult:
        """Select new spells and cantrips; replaces earlier picks.

        Raises:
            ProgressionStateError: Outside ``COLLECTING_SPELL_CHOICES``.
        """
        self._require(ProgressionStep.COLLECTING_SPELL_CHOICES)
        self._update_choices(spells=list(spells))
        return self.validator.validate_spells(self.plan, self.snapshot, self.choices.spells)

    # =========================================================================
    # Completion
    # =========================================================================

    def preview(self) -> CharacterDelta:
        """Delta for the choices so far; unresolved choices are pending."""
        if self._delta is not None:
            return self._delta
        return self.calculator.calculate(
            self.snapshot,
            self.target_level,
            self.choices,
            full_heal=self.full_heal,
        )

    def confirm(self, full_heal: bool | None = None) -> CharacterDelta:
        """Compute the final delta and commit it as one unit.

        Args:
            full_heal: Override the full-heal setting for this commit.

        Returns:
            The committed delta.

        Raises:
            ProgressionStateError: Outside ``CONFIRMING``.
            ValidationError: If a choice no longer validates.
            CommitConflict: If the snapshot changed since it was loaded;
                the machine stays in ``CONFIRMING``.
        """
        self._require(ProgressionStep.CONFIRMING)
        self.validator.validate(self.plan, self.snapshot, self.choices).raise_for_violations()
        heal = self.full_heal if full_heal is None else full_heal

        delta = self.calculator.calculate(self.snapshot, self.target_level, self.choices, full_heal=heal)
        result = self._commit(self.snapshot.id, delta)

        self._delta = delta
        self._result = result
        self._step = ProgressionStep.APPLIED
        logger.info(
            "Progression applied",
            character_id=self.snapshot.id,
            level=delta.to_level,
            hp_gain=delta.hp_gain,
            features=list(delta.features_gained),
            version=result.version,
        )
        return delta


__all__ = [
    "CommitFn",
    "STEPS",
    "StepSpec",
    "TransitionResult",
    "ProgressionStateMachine",
]
