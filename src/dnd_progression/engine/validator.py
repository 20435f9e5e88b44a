"""Validation of player choices made during a level-up.

The validator is pure: it reads a plan, a snapshot and the choices, and
returns a ``ValidationResult``. It never raises for a bad choice and never
touches persisted state, so it can run on every interaction.

Example:
    >>> validator = ChoiceValidator()
    >>> result = validator.validate_asi(
    ...     [ASIChoice(ability="str", bonus=2)],
    ...     AbilityScoreSet(strength=19),
    ... )
    >>> result.ok
    False
    >>> result.violations[0].code
    <ViolationCode.ASI_SCORE_CAP: 'asi_score_cap'>
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from dnd_progression.core.config import get_settings
from dnd_progression.core.constants import ASI_POINTS_PER_EVENT
from dnd_progression.core.exceptions import ValidationError
from dnd_progression.engine.plan import ProgressionPlan
from dnd_progression.models.character import AbilityScoreSet, CharacterSnapshot, KnownSpell, to_identifier
from dnd_progression.models.delta import ASIChoice, HPChoice, ProgressionChoices
from dnd_progression.models.enums import Ability, ChoiceType, HPMethod, ViolationCode
from dnd_progression.models.feature import ClassFeature


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class ChoiceViolation:
    """A specific, named rule a choice breaks.

    Attributes:
        code: The violated rule.
        message: Human-readable explanation.
        feature_id: Feature the choice belongs to, if any.
        abilities: Abilities involved, for ASI violations.
    """

    code: ViolationCode
    message: str
    feature_id: str | None = None
    abilities: tuple[Ability, ...] = ()

    def to_error(self) -> ValidationError:
        """Convert to the ValidationError carrying the same context."""
        details = {"abilities": [a.value for a in self.abilities]} if self.abilities else None
        return ValidationError(
            self.message,
            rule=self.code.value,
            field_name=self.feature_id,
            details=details,
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one or more choices."""

    violations: tuple[ChoiceViolation, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.ok

    @property
    def codes(self) -> list[ViolationCode]:
        return [v.code for v in self.violations]

    @classmethod
    def success(cls) -> ValidationResult:
        return cls()

    @classmethod
    def failure(cls, *violations: ChoiceViolation) -> ValidationResult:
        return cls(violations=tuple(violations))

    def merge(self, *others: ValidationResult) -> ValidationResult:
        combined = list(self.violations)
        for other in others:
            combined.extend(other.violations)
        return ValidationResult(violations=tuple(combined))

    def raise_for_violations(self) -> None:
        """Raise the first violation as a ValidationError.

        Raises:
            ValidationError: If any violation is present.
        """
        if self.violations:
            raise self.violations[0].to_error()


def _normalize(selected: Iterable[str]) -> tuple[str, ...]:
    return tuple(to_identifier(s) for s in selected)


def _duplicates(values: Iterable[str]) -> list[str]:
    return sorted(value for value, count in Counter(values).items() if count > 1)


# =============================================================================
# Validator
# =============================================================================


class ChoiceValidator:
    """Checks level-up choices against the rules of the plan.

    Args:
        ability_score_cap: Highest score an ASI may produce. Defaults to the
            ``rules.ability_score_cap`` setting.
    """

    def __init__(self, *, ability_score_cap: int | None = None) -> None:
        self.ability_score_cap = (
            get_settings().rules.ability_score_cap if ability_score_cap is None else ability_score_cap
        )

    # =========================================================================
    # Hit Points
    # =========================================================================

    def validate_hp(self, plan: ProgressionPlan, hp: HPChoice | None) -> ValidationResult:
        """A method must be chosen and a roll must fit the hit die."""
        if hp is None:
            return ValidationResult.failure(
                ChoiceViolation(ViolationCode.HP_NOT_SELECTED, "Choose to roll or take the average")
            )
        if hp.method == HPMethod.ROLL and hp.roll is not None and not 1 <= hp.roll <= plan.hit_die:
            return ValidationResult.failure(
                ChoiceViolation(
                    ViolationCode.HP_ROLL_OUT_OF_RANGE,
                    f"A d{plan.hit_die} roll must be between 1 and {plan.hit_die}, got {hp.roll}",
                )
            )
        return ValidationResult.success()

    # =========================================================================
    # Feature Selections
    # =========================================================================

    def validate_selection(
        self,
        feature: ClassFeature,
        selected: Sequence[str],
        snapshot: CharacterSnapshot | None = None,
    ) -> ValidationResult:
        """Validate the options picked for one subclass, fighting style, pact boon or invocation feature."""
        picks = _normalize(selected)

        if feature.choice_type in (ChoiceType.SUBCLASS, ChoiceType.FIGHTING_STYLE, ChoiceType.PACT_BOON):
            label = feature.choice_type.value.replace("_", " ")
            if not picks:
                return ValidationResult.failure(
                    ChoiceViolation(ViolationCode.MISSING_SELECTION, f"Choose a {label}", feature.id)
                )
            if len(picks) > 1:
                return ValidationResult.failure(
                    ChoiceViolation(
                        ViolationCode.TOO_MANY_SELECTIONS,
                        f"Choose exactly one {label}, got {len(picks)}",
                        feature.id,
                    )
                )
            if picks[0] not in feature.options:
                return ValidationResult.failure(
                    ChoiceViolation(
                        ViolationCode.OPTION_NOT_ALLOWED,
                        f"'{picks[0]}' is not an allowed {label} for {feature.name}",
                        feature.id,
                    )
                )
            return ValidationResult.success()

        if feature.choice_type == ChoiceType.INVOCATION:
            return self._validate_invocations(feature, picks, snapshot)

        if picks:
            return ValidationResult.failure(
                ChoiceViolation(
                    ViolationCode.UNEXPECTED_CHOICE,
                    f"{feature.name} does not take a selection",
                    feature.id,
                )
            )
        return ValidationResult.success()

    def _validate_invocations(
        self,
        feature: ClassFeature,
        picks: tuple[str, ...],
        snapshot: CharacterSnapshot | None,
    ) -> ValidationResult:
        violations: list[ChoiceViolation] = []
        if len(picks) != feature.choice_count:
            violations.append(
                ChoiceViolation(
                    ViolationCode.INVOCATION_COUNT,
                    f"Choose exactly {feature.choice_count} new invocation(s), got {len(picks)}",
                    feature.id,
                )
            )
        duplicates = _duplicates(picks)
        if duplicates:
            violations.append(
                ChoiceViolation(
                    ViolationCode.DUPLICATE_SELECTION,
                    f"Invocations picked more than once: {', '.join(duplicates)}",
                    feature.id,
                )
            )
        known = set(_normalize(snapshot.invocations)) if snapshot else set()
        already_known = sorted(set(picks) & known)
        if already_known:
            violations.append(
                ChoiceViolation(
                    ViolationCode.INVOCATION_ALREADY_KNOWN,
                    f"Invocations already known: {', '.join(already_known)}",
                    feature.id,
                )
            )
        not_allowed = sorted(set(picks) - set(feature.options))
        if not_allowed:
            violations.append(
                ChoiceViolation(
                    ViolationCode.OPTION_NOT_ALLOWED,
                    f"Not an eldritch invocation: {', '.join(not_allowed)}",
                    feature.id,
                )
            )
        return ValidationResult(violations=tuple(violations))

    # =========================================================================
    # Ability Score Improvements
    # =========================================================================

    def validate_asi(
        self,
        parts: Sequence[ASIChoice],
        abilities: AbilityScoreSet,
        *,
        available: bool = True,
        feature_id: str | None = None,
    ) -> ValidationResult:
        """Validate an ASI distribution.

        The bonuses must total 2, as one ability at +2 or two distinct
        abilities at +1, and no resulting score may exceed the cap.

        Args:
            parts: The ability/bonus pairs.
            abilities: Scores before the improvement.
            available: Whether the level grants an ASI at all.
            feature_id: ASI feature id reported in violations.
        """
        if not available:
            if parts:
                return ValidationResult.failure(
                    ChoiceViolation(
                        ViolationCode.ASI_NOT_AVAILABLE,
                        "This level does not grant an ability score improvement",
                        feature_id,
                    )
                )
            return ValidationResult.success()

        if not parts:
            return ValidationResult.failure(
                ChoiceViolation(
                    ViolationCode.MISSING_SELECTION,
                    "Distribute 2 ability score points",
                    feature_id,
                )
            )

        violations: list[ChoiceViolation] = []
        bad_bonus = tuple(p.ability for p in parts if p.bonus not in (1, 2))
        if bad_bonus:
            violations.append(
                ChoiceViolation(
                    ViolationCode.ASI_BONUS_RANGE,
                    "Each ability score bonus must be +1 or +2",
                    feature_id,
                    bad_bonus,
                )
            )

        repeated = [Ability(a) for a in _duplicates(p.ability.value for p in parts)]
        if repeated:
            violations.append(
                ChoiceViolation(
                    ViolationCode.ASI_DUPLICATE_ABILITY,
                    f"Two +1 bonuses must go to distinct abilities: {', '.join(a.value for a in repeated)}",
                    feature_id,
                    tuple(repeated),
                )
            )

        total = sum(p.bonus for p in parts)
        if total != ASI_POINTS_PER_EVENT:
            violations.append(
                ChoiceViolation(
                    ViolationCode.ASI_TOTAL,
                    f"Ability score bonuses must total {ASI_POINTS_PER_EVENT}, got {total}",
                    feature_id,
                )
            )

        if violations:
            return ValidationResult(violations=tuple(violations))

        over_cap = [p for p in parts if abilities.score(p.ability) + p.bonus > self.ability_score_cap]
        if over_cap:
            names = ", ".join(
                f"{p.ability.value} ({abilities.score(p.ability)} -> {abilities.score(p.ability) + p.bonus})"
                for p in over_cap
            )
            return ValidationResult.failure(
                ChoiceViolation(
                    ViolationCode.ASI_SCORE_CAP,
                    f"Ability scores cannot exceed {self.ability_score_cap}: {names}",
                    feature_id,
                    tuple(p.ability for p in over_cap),
                )
            )
        return ValidationResult.success()

    # =========================================================================
    # Spells
    # =========================================================================

    def validate_spells(
        self,
        plan: ProgressionPlan,
        snapshot: CharacterSnapshot,
        spells: Sequence[KnownSpell],
    ) -> ValidationResult:
        """Picks must match the required counts exactly and be new."""
        leveled = [s for s in spells if not s.is_cantrip]
        cantrips = [s for s in spells if s.is_cantrip]
        violations: list[ChoiceViolation] = []

        if len(leveled) != plan.new_spell_picks:
            violations.append(
                ChoiceViolation(
                    ViolationCode.SPELL_COUNT,
                    f"Choose exactly {plan.new_spell_picks} new spell(s), got {len(leveled)}",
                )
            )
        if len(cantrips) != plan.new_cantrip_picks:
            violations.append(
                ChoiceViolation(
                    ViolationCode.CANTRIP_COUNT,
                    f"Choose exactly {plan.new_cantrip_picks} new cantrip(s), got {len(cantrips)}",
                )
            )

        duplicates = _duplicates(s.spell_id for s in spells)
        if duplicates:
            violations.append(
                ChoiceViolation(
                    ViolationCode.DUPLICATE_SELECTION,
                    f"Spells picked more than once: {', '.join(duplicates)}",
                )
            )
        already_known = sorted({s.spell_id for s in spells} & snapshot.spell_ids)
        if already_known:
            violations.append(
                ChoiceViolation(
                    ViolationCode.SPELL_ALREADY_KNOWN,
                    f"Spells already known: {', '.join(already_known)}",
                )
            )
        too_high = sorted({s.spell_id for s in leveled if s.level > plan.max_spell_level})
        if too_high:
            violations.append(
                ChoiceViolation(
                    ViolationCode.SPELL_LEVEL_TOO_HIGH,
                    f"Spells above level {plan.max_spell_level}: {', '.join(too_high)}",
                )
            )
        return ValidationResult(violations=tuple(violations))

    # =========================================================================
    # Aggregates
    # =========================================================================

    def validate_feature_choices(
        self,
        plan: ProgressionPlan,
        snapshot: CharacterSnapshot,
        choices: ProgressionChoices,
    ) -> ValidationResult:
        """Validate every pending choice feature of the plan, ASI included."""
        result = ValidationResult.success()
        expected_ids = {f.id for f in plan.selection_features}

        for feature in plan.selection_features:
            result = result.merge(
                self.validate_selection(feature, choices.selections.get(feature.id, ()), snapshot)
            )

        for feature_id in sorted(set(choices.selections) - expected_ids):
            result = result.merge(
                ValidationResult.failure(
                    ChoiceViolation(
                        ViolationCode.UNEXPECTED_CHOICE,
                        f"No pending feature '{feature_id}' at level {plan.to_level}",
                        feature_id,
                    )
                )
            )

        asi_feature = plan.asi_feature
        return result.merge(
            self.validate_asi(
                choices.asi,
                snapshot.abilities,
                available=asi_feature is not None,
                feature_id=asi_feature.id if asi_feature else None,
            )
        )

    def validate(
        self,
        plan: ProgressionPlan,
        snapshot: CharacterSnapshot,
        choices: ProgressionChoices,
    ) -> ValidationResult:
        """Validate all choices of a level-up."""
        return self.validate_hp(plan, choices.hp).merge(
            self.validate_feature_choices(plan, snapshot, choices),
            self.validate_spells(plan, snapshot, choices.spells),
        )


__all__ = [
    "ChoiceViolation",
    "ValidationResult",
    "ChoiceValidator",
]
