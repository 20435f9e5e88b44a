"""Level-up computation.

``ProgressionCalculator`` turns a snapshot, a target level and the
player's choices into a ``CharacterDelta``. It is pure: nothing is
mutated, and the same inputs always give the same delta, so a proposal can
be recomputed freely after a re-fetch.

Example:
    >>> calculator = ProgressionCalculator()
    >>> plan = calculator.plan(snapshot)
    >>> delta = calculator.calculate(
    ...     snapshot,
    ...     plan.to_level,
    ...     ProgressionChoices(hp=HPChoice.average()),
    ... )
    >>> delta.is_complete  # True unless the level needs feature or spell picks
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from dnd_progression.core.constants import (
    MAX_LEVEL,
    MIN_HP_GAIN,
    WIZARD_SPELLS_PER_LEVEL,
)
from dnd_progression.core.exceptions import InvalidProgressionError
from dnd_progression.core.logging import get_logger
from dnd_progression.engine.plan import ProgressionPlan
from dnd_progression.engine.validator import ChoiceValidator
from dnd_progression.models.character import AbilityScoreSet, CharacterSnapshot, ResourcePool, to_identifier
from dnd_progression.models.delta import CharacterDelta, HPChoice, ProgressionChoices, SlotChange
from dnd_progression.models.enums import Ability, CasterKind, ChoiceType, HPMethod
from dnd_progression.rules.registry import ClassRules, RuleTables
from dnd_progression.rules.tables import average_hit_die


logger = get_logger(__name__)

SPELL_CHOICES = "spell_choices"
"""Pending marker for unresolved spell and cantrip picks."""

HP_CHOICE = "hp_choice"
"""Pending marker for a missing or invalid hit point choice."""


# =============================================================================
# Pure Helpers
# =============================================================================


def hp_gain(hit_die: int, con_modifier: int, choice: HPChoice) -> int:
    """Hit points gained on a level-up.

    The die part is the roll or the fixed average ceil(die / 2) + 1. The
    total is floored at 1 however negative the CON modifier.
    """
    die_part = choice.roll if choice.method == HPMethod.ROLL and choice.roll else average_hit_die(hit_die)
    return max(MIN_HP_GAIN, die_part + con_modifier)


def diff_slot_tables(before: Mapping[int, int], after: Mapping[int, int]) -> tuple[SlotChange, ...]:
    """Per spell level changes between two slot tables.

    Only spell levels whose count changed are listed. A change is new when
    the level was locked and is now available, or its count grew.
    """
    changes = []
    for spell_level in sorted(set(before) | set(after)):
        previous = before.get(spell_level, 0)
        current = after.get(spell_level, 0)
        if previous != current:
            changes.append(SlotChange(spell_level=spell_level, previous=previous, current=current))
    return tuple(changes)


def rebuild_resources(
    existing: Mapping[str, ResourcePool],
    template: Iterable[ResourcePool],
) -> dict[str, ResourcePool]:
    """Merge the pools of the new level into the existing ones.

    - Pools the character already has keep their ``current``.
    - When a pool's max changes, ``current`` moves by the same amount,
      clamped to [0, new max].
    - Pools granted for the first time start full.
    - Pools the template does not know about are kept untouched.
    """
    merged = dict(existing)
    for pool in template:
        old = existing.get(pool.id)
        if old is None:
            merged[pool.id] = pool.refilled()
            continue
        if pool.is_passive:
            merged[pool.id] = pool.model_copy(update={"current": 0})
            continue
        if old.is_passive:
            rescaled = pool.max
        else:
            rescaled = old.current + (pool.max - old.max)
        merged[pool.id] = pool.with_current(rescaled)
    return merged


def prepared_spell_limit(
    class_rules: ClassRules,
    level: int,
    abilities: AbilityScoreSet,
    subclass: str | None = None,
) -> int | None:
    """Spells a prepared caster may prepare: max(1, ability modifier + level).

    Paladins use half their level. Derived fresh on every event and never
    persisted. Returns None for classes that do not prepare spells.
    """
    kind = class_rules.caster_kind_for(subclass)
    ability = class_rules.spellcasting_ability_for(subclass)
    if kind not in (CasterKind.PREPARED, CasterKind.SPELLBOOK) or ability is None:
        return None
    caster_level = level // 2 if class_rules.half_level_preparation else level
    return max(1, abilities.modifier(ability) + caster_level)


# =============================================================================
# Calculator
# =============================================================================


class ProgressionCalculator:
    """Computes level-up plans and deltas from the rule tables.

    Args:
        rules: Rule tables; defaults to the PHB registry.
        validator: Choice validator used to decide which choices resolve.
    """

    def __init__(
        self,
        rules: RuleTables | None = None,
        validator: ChoiceValidator | None = None,
    ) -> None:
        self.rules = rules or RuleTables()
        self.validator = validator or ChoiceValidator()

    def _check_target(self, snapshot: CharacterSnapshot, target_level: int | None) -> int:
        target = snapshot.level + 1 if target_level is None else target_level
        if snapshot.level >= MAX_LEVEL:
            raise InvalidProgressionError(
                f"Character is already at level {MAX_LEVEL}",
                current_level=snapshot.level,
                target_level=target,
            )
        if target != snapshot.level + 1:
            raise InvalidProgressionError(
                "A level-up advances exactly one level",
                current_level=snapshot.level,
                target_level=target,
            )
        return target

    def plan(
        self,
        snapshot: CharacterSnapshot,
        target_level: int | None = None,
        *,
        subclass: str | None = None,
    ) -> ProgressionPlan:
        """Compute the choice-independent part of a level-up.

        Args:
            snapshot: Character before the level-up.
            target_level: Level to reach; defaults to one above the current.
            subclass: Subclass selected this event, overriding the snapshot's.

        Returns:
            The plan.

        Raises:
            InvalidProgressionError: If the target is not exactly one level
                up or the character is at the cap.
        """
        target = self._check_target(snapshot, target_level)
        class_rules = self.rules.class_rules(snapshot.class_name)
        old_subclass = snapshot.subclass
        new_subclass = (subclass or snapshot.subclass or None)
        if new_subclass:
            new_subclass = to_identifier(new_subclass)

        slots_before = class_rules.slot_table(snapshot.level, old_subclass)
        slots_after = class_rules.slot_table(target, new_subclass)
        caster_kind = class_rules.caster_kind_for(new_subclass)

        new_spells = 0
        if caster_kind == CasterKind.KNOWN:
            new_spells = max(
                0,
                class_rules.spells_known_at(target, new_subclass)
                - class_rules.spells_known_at(snapshot.level, old_subclass),
            )
        elif caster_kind == CasterKind.SPELLBOOK:
            new_spells = WIZARD_SPELLS_PER_LEVEL
        new_cantrips = max(
            0,
            class_rules.cantrips_at(target, new_subclass) - class_rules.cantrips_at(snapshot.level, old_subclass),
        )

        return ProgressionPlan(
            character_id=snapshot.id,
            base_version=snapshot.version,
            class_name=snapshot.class_name,
            character_class=class_rules.character_class,
            subclass=new_subclass,
            from_level=snapshot.level,
            to_level=target,
            hit_die=class_rules.hit_die,
            average_hp=average_hit_die(class_rules.hit_die),
            con_modifier=snapshot.abilities.modifier(Ability.CON),
            proficiency_bonus=self.rules.get_proficiency_bonus(target),
            xp_threshold=self.rules.get_xp_threshold(target),
            features=class_rules.features_at(target),
            spell_slots_before=slots_before,
            spell_slots_after=slots_after,
            slot_changes=diff_slot_tables(slots_before, slots_after),
            caster_kind=caster_kind,
            spellcasting_ability=class_rules.spellcasting_ability_for(new_subclass),
            new_spell_picks=new_spells,
            new_cantrip_picks=new_cantrips,
            max_spell_level=max((lvl for lvl, count in slots_after.items() if count > 0), default=0),
            prepared_spell_limit=prepared_spell_limit(class_rules, target, snapshot.abilities, new_subclass),
        )

    def calculate(
        self,
        snapshot: CharacterSnapshot,
        target_level: int | None,
        choices: ProgressionChoices,
        *,
        full_heal: bool = False,
    ) -> CharacterDelta:
        """Compute the delta of a level-up.

        Automatic features always apply. A choice feature applies only when
        its selection validates; otherwise its id is listed in ``pending``.
        The same holds for the HP choice and spell picks.

        Args:
            snapshot: Character before the level-up.
            target_level: Level to reach; None means one above the current.
            choices: Player choices so far.
            full_heal: Restore current HP to the new maximum.

        Returns:
            The proposed delta.

        Raises:
            InvalidProgressionError: If the target level is invalid.
        """
        subclass_feature = self.plan(snapshot, target_level).subclass_feature
        chosen_subclass = None
        if subclass_feature is not None:
            picks = choices.selections.get(subclass_feature.id, ())
            if self.validator.validate_selection(subclass_feature, picks, snapshot).ok:
                chosen_subclass = to_identifier(picks[0])
        plan = self.plan(snapshot, target_level, subclass=chosen_subclass)
        class_rules = self.rules.class_rules(snapshot.class_name)

        pending: list[str] = []
        gained = [f.id for f in plan.automatic_features]
        fighting_style = None
        pact_boon = None
        new_invocations: tuple[str, ...] = ()

        for feature in plan.selection_features:
            picks = tuple(to_identifier(s) for s in choices.selections.get(feature.id, ()))
            if not self.validator.validate_selection(feature, picks, snapshot).ok:
                pending.append(feature.id)
                continue
            gained.append(feature.id)
            if feature.choice_type == ChoiceType.FIGHTING_STYLE:
                fighting_style = picks[0]
            elif feature.choice_type == ChoiceType.PACT_BOON:
                pact_boon = picks[0]
            elif feature.choice_type == ChoiceType.INVOCATION:
                new_invocations = new_invocations + picks

        increases: dict[Ability, int] = {}
        asi_feature = plan.asi_feature
        asi_result = self.validator.validate_asi(
            choices.asi,
            snapshot.abilities,
            available=asi_feature is not None,
            feature_id=asi_feature.id if asi_feature else None,
        )
        if asi_feature is not None:
            if asi_result.ok:
                gained.append(asi_feature.id)
                increases = choices.asi_increases
            else:
                pending.append(asi_feature.id)
        abilities = snapshot.abilities.with_increases(increases) if increases else snapshot.abilities

        hp_choice = choices.hp
        if hp_choice is None or not self.validator.validate_hp(plan, hp_choice).ok:
            pending.append(HP_CHOICE)
            hp_choice = HPChoice.average()
        gain = hp_gain(plan.hit_die, plan.con_modifier, hp_choice)
        max_hp = snapshot.max_hp + gain
        current_hp = max_hp if full_heal else min(max_hp, snapshot.hp + gain)

        new_spells = choices.spells
        if not self.validator.validate_spells(plan, snapshot, new_spells).ok:
            pending.append(SPELL_CHOICES)
            new_spells = ()

        template = self.rules.get_resource_template(snapshot.class_name, plan.to_level, abilities)
        resources = rebuild_resources(snapshot.resources, template)

        delta = CharacterDelta(
            character_id=snapshot.id,
            base_version=snapshot.version,
            from_level=plan.from_level,
            to_level=plan.to_level,
            hit_die=plan.hit_die,
            hp_gain=gain,
            max_hp=max_hp,
            current_hp=current_hp,
            proficiency_bonus=plan.proficiency_bonus,
            features_gained=tuple(gained),
            subclass=chosen_subclass,
            fighting_style=fighting_style,
            pact_boon=pact_boon,
            new_invocations=new_invocations,
            ability_increases=increases,
            abilities=abilities,
            spell_slots=plan.spell_slots_after,
            slot_changes=plan.slot_changes,
            new_spells=tuple(new_spells),
            resources=resources,
            prepared_spell_limit=prepared_spell_limit(class_rules, plan.to_level, abilities, plan.subclass),
            pending=tuple(pending),
        )
        logger.debug(
            "Level-up calculated",
            character_id=snapshot.id,
            to_level=plan.to_level,
            hp_gain=gain,
            pending=list(pending),
        )
        return delta


__all__ = [
    "SPELL_CHOICES",
    "HP_CHOICE",
    "hp_gain",
    "diff_slot_tables",
    "rebuild_resources",
    "prepared_spell_limit",
    "ProgressionCalculator",
]
