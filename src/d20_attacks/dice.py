"""
Dice expression parsing and evaluation.

The attack engine only talks to dice through the ``DiceEvaluator`` protocol:
``parse`` turns a formula into terms without rolling (used to pull the dice
out of a damage expression for critical hits) and ``evaluate`` rolls it.

``StandardDiceEvaluator`` is the default implementation. Supported notation:

    1d20+5            dice and flat modifiers joined by + or -
    2d20kh, 3d20kh1   keep highest (n defaults to 1)
    2d20kl            keep lowest
    +10[GWM]          bracketed labels on dice or numbers
    d8                count defaults to 1
"""

from __future__ import annotations

import logging
import random
import re
from typing import Literal, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger("d20-attacks.dice")

_MAX_DICE = 1000
_MAX_FACES = 1000

_TERM_RE = re.compile(
    r"""
    \s*(?P<sign>[+-])?\s*
    (?:
        (?P<count>\d*)[dD](?P<faces>\d+)(?P<keep>k[hl]\d*)?
      | (?P<number>\d+)
    )
    \s*(?:\[(?P<label>[^\[\]]*)\])?\s*
    """,
    re.VERBOSE | re.IGNORECASE,
)


class DiceExpressionError(ValueError):
    """Raised when a dice expression cannot be parsed."""


class DieResult(BaseModel):
    """A single rolled die. Dropped dice (by kh/kl) are inactive."""
    result: int
    active: bool = True


class DiceTerm(BaseModel):
    """A pool of identical dice, e.g. ``2d20kh`` or ``2d8[GFB]``."""
    type: Literal["dice"] = "dice"
    sign: int = 1
    number: int
    faces: int
    modifiers: str = ""
    label: str | None = None
    results: list[DieResult] = Field(default_factory=list)

    @property
    def formula(self) -> str:
        """The term as written, without its sign."""
        label = f"[{self.label}]" if self.label else ""
        return f"{self.number}d{self.faces}{self.modifiers}{label}"

    @property
    def keep(self) -> tuple[str, int] | None:
        """("kh"|"kl", n) when the term keeps only part of its pool."""
        if not self.modifiers:
            return None
        mode, count = self.modifiers[:2], self.modifiers[2:]
        return mode, int(count) if count else 1

    @property
    def active_results(self) -> list[int]:
        return [r.result for r in self.results if r.active]

    @property
    def total(self) -> int:
        return self.sign * sum(self.active_results)


class NumericTerm(BaseModel):
    """A flat modifier, e.g. ``+3`` or ``-5[GWM]``."""
    type: Literal["number"] = "number"
    sign: int = 1
    value: int
    label: str | None = None

    @property
    def formula(self) -> str:
        label = f"[{self.label}]" if self.label else ""
        return f"{self.value}{label}"

    @property
    def total(self) -> int:
        return self.sign * self.value


class Roll(BaseModel):
    """A parsed (and possibly evaluated) dice expression."""
    formula: str
    terms: list[DiceTerm | NumericTerm] = Field(default_factory=list)
    evaluated: bool = False

    @property
    def dice(self) -> list[DiceTerm]:
        """Dice terms only, in expression order."""
        return [t for t in self.terms if isinstance(t, DiceTerm)]

    @property
    def total(self) -> int:
        return sum(t.total for t in self.terms)

    @property
    def active_results(self) -> list[int]:
        """Every kept die result across all dice terms."""
        return [r for term in self.dice for r in term.active_results]


class DiceEvaluator(Protocol):
    """Protocol for the dice engine, enabling easy mocking in tests."""

    def parse(self, formula: str) -> Roll:
        """Parse a formula into terms without rolling.

        Raises:
            DiceExpressionError: If the formula is malformed.
        """
        ...

    async def evaluate(self, formula: str) -> Roll:
        """Parse and roll a formula.

        Raises:
            DiceExpressionError: If the formula is malformed.
        """
        ...


def parse_expression(formula: str) -> Roll:
    """Parse a dice formula into an unevaluated ``Roll``.

    Args:
        formula: Dice expression, e.g. "2d20kh+5-5[GWM]".

    Returns:
        Roll with one term per dice pool or flat number.

    Raises:
        DiceExpressionError: If the formula is empty, contains unknown tokens
            or describes an impossible pool.
    """
    if formula is None or not formula.strip():
        raise DiceExpressionError("Dice expression cannot be empty")

    terms: list[DiceTerm | NumericTerm] = []
    pos = 0
    while pos < len(formula):
        m = _TERM_RE.match(formula, pos)
        if not m or m.end() == pos:
            raise DiceExpressionError(
                f"Invalid dice expression {formula!r} at position {pos}"
            )
        if terms and not m.group("sign"):
            raise DiceExpressionError(
                f"Invalid dice expression {formula!r}: missing operator at position {m.start()}"
            )
        terms.append(_build_term(m, formula))
        pos = m.end()

    return Roll(formula=formula, terms=terms)


def _build_term(m: re.Match, formula: str) -> DiceTerm | NumericTerm:
    sign = -1 if m.group("sign") == "-" else 1
    label = m.group("label")

    if m.group("number") is not None:
        return NumericTerm(sign=sign, value=int(m.group("number")), label=label)

    count = int(m.group("count")) if m.group("count") else 1
    faces = int(m.group("faces"))
    keep = (m.group("keep") or "").lower()

    if count < 1 or faces < 1:
        raise DiceExpressionError(f"Invalid dice pool in {formula!r}: {count}d{faces}")
    if count > _MAX_DICE:
        raise DiceExpressionError(f"Too many dice: {count} (max {_MAX_DICE})")
    if faces > _MAX_FACES:
        raise DiceExpressionError(f"Too many faces: {faces} (max {_MAX_FACES})")

    term = DiceTerm(sign=sign, number=count, faces=faces, modifiers=keep, label=label)
    if term.keep is not None:
        kept = term.keep[1]
        if kept < 1 or kept > count:
            raise DiceExpressionError(
                f"Cannot keep {kept} of {count} dice in {formula!r}"
            )
    return term


def _apply_keep(term: DiceTerm) -> None:
    """Mark dice dropped by a kh/kl modifier as inactive. Ties keep the earliest die."""
    if term.keep is None:
        return
    mode, count = term.keep
    order = sorted(
        range(len(term.results)),
        key=lambda i: term.results[i].result,
        reverse=(mode == "kh"),
    )
    kept = set(order[:count])
    for i, die in enumerate(term.results):
        die.active = i in kept


class StandardDiceEvaluator:
    """Default dice engine backed by ``random.Random``.

    Args:
        seed: Optional seed for reproducible rolls.
        rng: Optional pre-built generator (takes precedence over ``seed``).
    """

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)

    def parse(self, formula: str) -> Roll:
        return parse_expression(formula)

    async def evaluate(self, formula: str) -> Roll:
        roll = self.parse(formula)
        for term in roll.dice:
            term.results = [
                DieResult(result=self._rng.randint(1, term.faces))
                for _ in range(term.number)
            ]
            _apply_keep(term)
        roll.evaluated = True
        logger.debug(f"🎲 {formula} -> {roll.active_results} = {roll.total}")
        return roll


__all__ = [
    "DiceEvaluator",
    "DiceExpressionError",
    "DiceTerm",
    "DieResult",
    "NumericTerm",
    "Roll",
    "StandardDiceEvaluator",
    "parse_expression",
]
