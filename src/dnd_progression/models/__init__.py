"""Pydantic V2 models for character progression.

Exports:
    Enums: Ability, CharacterClass, ChoiceType, RechargePolicy, RestKind,
        HPMethod, SlotProgression, CasterKind, ProgressionStep, ViolationCode.
    Snapshot: AbilityScoreSet, ResourcePool, KnownSpell, CharacterSnapshot.
    Features: ClassFeature, ResourceGrant.
    Delta: HPChoice, ASIChoice, ProgressionChoices, SlotChange, CharacterDelta.
"""

from __future__ import annotations

from dnd_progression.models.character import (
    AbilityScoreSet,
    CharacterSnapshot,
    KnownSpell,
    ResourcePool,
)
from dnd_progression.models.delta import (
    ASIChoice,
    CharacterDelta,
    HPChoice,
    ProgressionChoices,
    SlotChange,
)
from dnd_progression.models.enums import (
    Ability,
    CasterKind,
    CharacterClass,
    ChoiceType,
    HPMethod,
    ProgressionStep,
    RechargePolicy,
    RestKind,
    SlotProgression,
    ViolationCode,
)
from dnd_progression.models.feature import ClassFeature, ResourceGrant


__all__ = [
    # Enums
    "Ability",
    "CharacterClass",
    "ChoiceType",
    "RechargePolicy",
    "RestKind",
    "HPMethod",
    "SlotProgression",
    "CasterKind",
    "ProgressionStep",
    "ViolationCode",
    # Snapshot
    "AbilityScoreSet",
    "ResourcePool",
    "KnownSpell",
    "CharacterSnapshot",
    # Features
    "ClassFeature",
    "ResourceGrant",
    # Delta
    "HPChoice",
    "ASIChoice",
    "ProgressionChoices",
    "SlotChange",
    "CharacterDelta",
]
