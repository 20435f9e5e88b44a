"""Progression engine: calculation, validation, resources and the wizard.

Exports:
    ProgressionCalculator: Computes level-up plans and deltas.
    ChoiceValidator: Validates player choices, returning results as values.
    ResourceLedger: Live pool state with per-character locking.
    ProgressionStateMachine: Step-by-step level-up workflow.
    ProgressionService: Facade tying the engine to a repository.
"""

from __future__ import annotations

from dnd_progression.engine.calculator import (
    HP_CHOICE,
    SPELL_CHOICES,
    ProgressionCalculator,
    diff_slot_tables,
    hp_gain,
    prepared_spell_limit,
    rebuild_resources,
)
from dnd_progression.engine.dice import DiceExpression, DiceRoller
from dnd_progression.engine.ledger import LedgerResult, ResourceLedger, RestResult
from dnd_progression.engine.plan import ProgressionPlan
from dnd_progression.engine.service import ProgressionService
from dnd_progression.engine.state_machine import (
    STEPS,
    ProgressionStateMachine,
    StepSpec,
    TransitionResult,
)
from dnd_progression.engine.validator import (
    ChoiceValidator,
    ChoiceViolation,
    ValidationResult,
)


__all__ = [
    # Calculation
    "ProgressionCalculator",
    "ProgressionPlan",
    "HP_CHOICE",
    "SPELL_CHOICES",
    "hp_gain",
    "diff_slot_tables",
    "rebuild_resources",
    "prepared_spell_limit",
    # Validation
    "ChoiceValidator",
    "ChoiceViolation",
    "ValidationResult",
    # Resources
    "ResourceLedger",
    "LedgerResult",
    "RestResult",
    # Workflow
    "ProgressionStateMachine",
    "StepSpec",
    "STEPS",
    "TransitionResult",
    "ProgressionService",
    # Dice
    "DiceRoller",
    "DiceExpression",
]
