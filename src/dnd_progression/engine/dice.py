"""Hit point rolls for the roll HP method.

Rolls go through the ``d20`` library. A seed makes a roller replay the
same sequence, which the tests and any replayable session rely on.
"""

from __future__ import annotations

import random
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import d20

from dnd_progression.core.exceptions import DiceRollError
from dnd_progression.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DiceExpression:
    """Outcome of one rolled expression.

    Attributes:
        expression: Expression as given, e.g. ``"1d10+2"``.
        total: Final result.
        dice: Faces of the dice that counted (dropped dice excluded).
        modifier: ``total`` minus the counted dice.
    """

    expression: str
    total: int
    dice: tuple[int, ...]
    modifier: int


def _kept_faces(node: Any) -> Iterator[int]:
    """Walk a d20 expression tree yielding faces of non-dropped dice."""
    if isinstance(node, d20.Dice):
        yield from (die.number for die in node.values if die.kept)
        return
    for child in getattr(node, "children", ()):
        yield from _kept_faces(child)


class DiceRoller:
    """Rolls dice expressions and hit dice.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> gained = roller.roll_hit_die(10)  # 1..10
    """

    def __init__(self, *, seed: int | None = None) -> None:
        # d20 draws from the module-level random generator
        if seed is not None:
            random.seed(seed)
        self.seed = seed

    def roll(self, expression: str) -> DiceExpression:
        """Roll an expression such as ``"1d8"`` or ``"1d10+2"``.

        Raises:
            DiceRollError: If the expression is empty or cannot be parsed.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(f"Invalid dice expression: {exc}", expression=expression) from exc

        faces = tuple(_kept_faces(result.expr))
        logger.debug("Dice rolled", expression=expression, total=result.total, dice=list(faces))
        return DiceExpression(
            expression=expression,
            total=result.total,
            dice=faces,
            modifier=result.total - sum(faces),
        )

    def roll_hit_die(self, hit_die: int) -> int:
        """Roll a single hit die and return its face (1..hit_die)."""
        if hit_die < 1:
            raise DiceRollError("Hit die must have at least one face", expression=f"1d{hit_die}")
        return self.roll(f"1d{hit_die}").total


__all__ = [
    "DiceExpression",
    "DiceRoller",
]
