"""Class feature and resource grant models."""

from __future__ import annotations

from typing import Self

from pydantic import Field, computed_field, model_validator

from dnd_progression.models.character import Level, SnapshotModel
from dnd_progression.models.enums import ChoiceType, RechargePolicy


UsesSpec = int | dict[int, int] | str
"""How a pool's maximum is derived.

- ``int``: fixed number of uses.
- ``dict``: level threshold -> uses; the highest threshold not above the
  character level wins. A value of -1 means unlimited (passive).
- ``str``: a named formula (``level``, ``level_x5``, ``charisma_mod``,
  ``charisma_mod_plus_1``, ``proficiency_bonus``).
"""


class ResourceGrant(SnapshotModel):
    """Describes the resource pool a feature grants."""

    pool_id: str = Field(min_length=1)
    name: str
    uses: UsesSpec = Field(description="Max formula")
    recharge: RechargePolicy = RechargePolicy.LONG_REST
    short_rest_from_level: int | None = Field(
        default=None,
        ge=1,
        le=20,
        description="Level from which the pool recharges on a short rest instead",
    )
    description: str = ""


class ClassFeature(SnapshotModel):
    """A feature unlocked at a class level.

    Attributes:
        id: Identifier unique across levels 1-20 of its class.
        name: Display name.
        level: Class level that unlocks the feature.
        description: Rules summary.
        choice_type: Kind of decision the feature requires.
        options: Allowed selections for subclass, fighting style, pact boon and invocation choices.
        choice_count: Number of selections required.
        grants: Resource pool the feature grants, if any.
    """

    id: str = Field(min_length=1)
    name: str
    level: Level
    description: str = ""
    choice_type: ChoiceType = ChoiceType.NONE
    options: tuple[str, ...] = ()
    choice_count: int = Field(default=0, ge=0)
    grants: ResourceGrant | None = None

    @model_validator(mode="after")
    def check_choice(self) -> Self:
        """Choice features need a pick count; automatic ones take none."""
        if self.choice_type == ChoiceType.NONE and self.choice_count:
            raise ValueError(f"Feature '{self.id}' has a choice count but no choice type")
        if self.choice_type != ChoiceType.NONE and self.choice_count < 1:
            raise ValueError(f"Feature '{self.id}' requires a choice but has no choice count")
        return self

    @computed_field(description="True when the player must pick something")
    @property
    def requires_choice(self) -> bool:
        return self.choice_type != ChoiceType.NONE


__all__ = [
    "UsesSpec",
    "ResourceGrant",
    "ClassFeature",
]
