"""Dice notation evaluation.

This module parses ``[count]d[sides][+/-modifier]`` notation and rolls it
against an injectable random generator, so combat resolution and tests
can run deterministically from a fixed seed.

Example:
    >>> roller = DiceRoller(seed=7)
    >>> result = roller.roll("2d6+3")
    >>> 5 <= result.total <= 15
    True
"""

from __future__ import annotations

import random
import re
import threading
from dataclasses import dataclass, replace
from enum import IntEnum, StrEnum

from rpg_engine.core.constants import (
    MAX_DICE_COUNT,
    MAX_DIE_SIDES,
    MIN_DICE_COUNT,
    MIN_DIE_SIDES,
)
from rpg_engine.core.exceptions import DiceRollError
from rpg_engine.core.logging import get_logger
from rpg_engine.models.combat import ability_modifier
from rpg_engine.models.enums import Ability


logger = get_logger(__name__)

_NOTATION = re.compile(r"^(\d*)d(\d+)([+-]\d+)?$", re.IGNORECASE)


class RollType(StrEnum):
    """Types of dice rolls."""

    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


class Difficulty(IntEnum):
    """Standard difficulty classes."""

    VERY_EASY = 5
    EASY = 10
    MEDIUM = 15
    HARD = 20
    VERY_HARD = 25
    NEARLY_IMPOSSIBLE = 30


@dataclass(frozen=True)
class DiceExpression:
    """A parsed dice expression.

    Attributes:
        notation: The notation as written by the caller.
        count: Number of dice to roll (at least 1).
        sides: Faces per die (at least 2).
        modifier: Flat modifier added to the sum.
    """

    notation: str
    count: int
    sides: int
    modifier: int = 0

    def __str__(self) -> str:
        if self.modifier:
            return f"{self.count}d{self.sides}{self.modifier:+d}"
        return f"{self.count}d{self.sides}"


@dataclass(frozen=True)
class DiceResult:
    """The outcome of rolling an expression.

    Attributes:
        expression: The expression that was rolled.
        rolls: Individual die outcomes, in draw order.
        modifier: Static modifier applied.
        total: Sum of rolls plus modifier.
        critical: Whether any die showed its maximum face.
        roll_type: Normal, advantage or disadvantage.
        components: Both draws when rolled with advantage/disadvantage.
    """

    expression: str
    rolls: tuple[int, ...]
    modifier: int
    total: int
    critical: bool
    roll_type: RollType = RollType.NORMAL
    components: tuple[DiceResult, ...] = ()

    @property
    def natural(self) -> int:
        """The first kept die, before modifiers."""
        return self.rolls[0] if self.rolls else 0

    @property
    def is_fumble(self) -> bool:
        """Whether the first kept die shows a 1."""
        return self.natural == 1


@dataclass(frozen=True)
class CheckResult:
    """A d20 test against a difficulty class."""

    roll: DiceResult
    dc: int
    success: bool

    @property
    def margin(self) -> int:
        return self.roll.total - self.dc


def parse_notation(notation: str) -> DiceExpression:
    """Parse dice notation into a DiceExpression.

    Args:
        notation: Dice notation such as ``d20``, ``2d6+3`` or ``1d8-1``.

    Returns:
        The parsed expression.

    Raises:
        DiceRollError: If the notation does not match the grammar or
            the count/sides bounds are violated.
    """
    if not isinstance(notation, str) or not notation.strip():
        raise DiceRollError("Empty dice expression", expression=str(notation))

    match = _NOTATION.match(notation.strip())
    if match is None:
        raise DiceRollError("Invalid dice notation", expression=notation)

    count = int(match.group(1)) if match.group(1) else 1
    sides = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0

    if not MIN_DICE_COUNT <= count <= MAX_DICE_COUNT:
        raise DiceRollError(
            f"Dice count must be between {MIN_DICE_COUNT} and {MAX_DICE_COUNT}",
            expression=notation,
            details={"count": count},
        )
    if not MIN_DIE_SIDES <= sides <= MAX_DIE_SIDES:
        raise DiceRollError(
            f"Die sides must be between {MIN_DIE_SIDES} and {MAX_DIE_SIDES}",
            expression=notation,
            details={"sides": sides},
        )

    return DiceExpression(notation=notation, count=count, sides=sides, modifier=modifier)


def meets_difficulty(total: int, dc: int) -> bool:
    """Whether a roll total meets or beats a difficulty class."""
    return total >= dc


def format_result(result: DiceResult) -> str:
    """Format a result for display.

    Example:
        >>> format_result(DiceResult("2d6+1", (3, 5), 1, 9, False))
        '2d6+1: 9 (3, 5)'
    """
    text = f"{result.expression}: {result.total}"
    if len(result.rolls) > 1:
        text += f" ({', '.join(str(r) for r in result.rolls)})"
    if result.critical:
        text += " CRITICAL!"
    return text


class DiceRoller:
    """Rolls dice notation against an injectable random generator.

    A single roller may be shared by concurrently running handlers:
    draws are serialized so each one consumes the next value of the
    generator's stream.

    Example:
        >>> roller = DiceRoller(seed=42)
        >>> roller.roll("1d20+5").total >= 6
        True
    """

    def __init__(self, rng: random.Random | None = None, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            rng: Generator to draw from. Takes precedence over ``seed``.
            seed: Seed for a private generator when ``rng`` is not given.
        """
        self._rng = rng if rng is not None else random.Random(seed)
        self._lock = threading.Lock()
        logger.debug("DiceRoller initialized", seed=seed, injected=rng is not None)

    def _draw(self, count: int, sides: int) -> tuple[int, ...]:
        with self._lock:
            return tuple(self._rng.randint(1, sides) for _ in range(count))

    @staticmethod
    def parse(notation: str) -> DiceExpression:
        """Parse notation without rolling it."""
        return parse_notation(notation)

    def roll(self, notation: str) -> DiceResult:
        """Roll dice notation.

        Args:
            notation: Dice notation (e.g., ``1d20+5``, ``2d6``).

        Returns:
            DiceResult with every die, the modifier and the total.

        Raises:
            DiceRollError: If the notation is invalid.
        """
        return self.roll_expression(parse_notation(notation))

    def roll_expression(self, expression: DiceExpression) -> DiceResult:
        """Roll an already parsed expression."""
        rolls = self._draw(expression.count, expression.sides)
        total = sum(rolls) + expression.modifier
        critical = any(r == expression.sides for r in rolls)

        logger.debug(
            "Dice rolled",
            expression=str(expression),
            rolls=rolls,
            total=total,
            critical=critical,
        )

        return DiceResult(
            expression=str(expression),
            rolls=rolls,
            modifier=expression.modifier,
            total=total,
            critical=critical,
        )

    def roll_with_advantage(self, modifier: int = 0, *, dice: str = "1d20") -> DiceResult:
        """Draw twice and keep the higher total.

        The result is critical if either draw shows a maximum face.

        Args:
            modifier: Modifier applied to both draws.
            dice: Base dice of each draw.

        Returns:
            The kept draw, with both draws in ``components``.
        """
        expression = self._with_modifier(dice, modifier)
        first = self.roll_expression(expression)
        second = self.roll_expression(expression)
        kept = first if first.total >= second.total else second
        return replace(
            kept,
            roll_type=RollType.ADVANTAGE,
            critical=first.critical or second.critical,
            components=(first, second),
        )

    def roll_with_disadvantage(self, modifier: int = 0, *, dice: str = "1d20") -> DiceResult:
        """Draw twice and keep the lower total.

        A disadvantaged roll is never critical.

        Args:
            modifier: Modifier applied to both draws.
            dice: Base dice of each draw.

        Returns:
            The kept draw, with both draws in ``components``.
        """
        expression = self._with_modifier(dice, modifier)
        first = self.roll_expression(expression)
        second = self.roll_expression(expression)
        kept = first if first.total <= second.total else second
        return replace(
            kept,
            roll_type=RollType.DISADVANTAGE,
            critical=False,
            components=(first, second),
        )

    def roll_d20(self, modifier: int = 0, *, roll_type: RollType = RollType.NORMAL) -> DiceResult:
        """Roll a d20 test with the given modifier and roll type."""
        if roll_type == RollType.ADVANTAGE:
            return self.roll_with_advantage(modifier)
        if roll_type == RollType.DISADVANTAGE:
            return self.roll_with_disadvantage(modifier)
        return self.roll_expression(self._with_modifier("1d20", modifier))

    def roll_check(
        self,
        modifier: int,
        dc: int,
        *,
        roll_type: RollType = RollType.NORMAL,
    ) -> CheckResult:
        """Roll a d20 test and compare it against a difficulty class.

        Args:
            modifier: Modifier added to the d20.
            dc: Difficulty class to meet or beat.
            roll_type: Normal, advantage or disadvantage.

        Returns:
            CheckResult with the roll and whether it succeeded.
        """
        result = self.roll_d20(modifier, roll_type=roll_type)
        return CheckResult(roll=result, dc=dc, success=meets_difficulty(result.total, dc))

    def roll_ability_score(self) -> int:
        """Roll four d6, drop the lowest, and sum the rest."""
        rolls = sorted(self._draw(4, 6), reverse=True)
        return sum(rolls[:3])

    def generate_ability_scores(self) -> dict[Ability, int]:
        """Roll a full set of ability scores."""
        return {ability: self.roll_ability_score() for ability in Ability}

    @staticmethod
    def _with_modifier(dice: str, modifier: int) -> DiceExpression:
        base = parse_notation(dice)
        return replace(base, modifier=base.modifier + modifier)


# Module-level convenience roller
_default_roller: DiceRoller | None = None


def roll(notation: str) -> DiceResult:
    """Roll notation with a shared, unseeded roller.

    Example:
        >>> 1 <= roll("1d20").total <= 20
        True
    """
    global _default_roller  # noqa: PLW0603
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller.roll(notation)


__all__ = [
    "RollType",
    "Difficulty",
    "DiceExpression",
    "DiceResult",
    "CheckResult",
    "DiceRoller",
    "parse_notation",
    "ability_modifier",
    "meets_difficulty",
    "format_result",
    "roll",
]
