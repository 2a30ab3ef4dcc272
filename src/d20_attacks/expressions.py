"""
Builders for the three dice expressions of an attack.

- to-hit: d20 pool chosen by advantage flags + base + applied bonuses + custom
- damage: base dice + base modifier + applied bonuses + custom
- crit: only the dice terms of the damage expression (critical hits double
  dice, never flat modifiers), with per-bonus crit overrides
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .dice import DiceEvaluator
    from .models import ResolutionContext


def to_hit_dice(context: "ResolutionContext") -> str:
    """Pick the d20 pool. Advantage is checked before disadvantage."""
    if context.advantage:
        return "3d20kh" if context.super_advantage else "2d20kh"
    if context.disadvantage:
        return "2d20kl"
    return "1d20"


def build_to_hit_expression(context: "ResolutionContext") -> str:
    """Return the to-hit expression, or "" if the attack does not roll to hit."""
    if not context.roll_to_hit:
        return ""

    expression = to_hit_dice(context) + context.to_hit_bonus
    for bonus in context.applied_bonuses:
        if bonus.to_hit_bonus:
            expression += bonus.to_hit_bonus
    if context.to_hit_bonus_custom:
        expression += context.to_hit_bonus_custom
    return expression


def build_damage_expression(context: "ResolutionContext") -> str:
    """Return the damage expression."""
    expression = context.damage_base + context.damage_bonus
    for bonus in context.applied_bonuses:
        if bonus.damage_bonus:
            expression += bonus.damage_bonus
    if context.damage_bonus_custom:
        expression += context.damage_bonus_custom
    return expression


def dice_terms(formula: str, evaluator: "DiceEvaluator") -> list[str]:
    """Formulas of the dice terms in ``formula``, flat numbers dropped."""
    return [term.formula for term in evaluator.parse(formula).dice]


def dice_only_expression(formula: str, evaluator: "DiceEvaluator") -> str:
    """Join the dice terms of ``formula`` with '+', e.g. "3+2d8" -> "2d8"."""
    return "+".join(dice_terms(formula, evaluator))


def build_crit_expression(context: "ResolutionContext", evaluator: "DiceEvaluator") -> str:
    """Return the extra dice rolled on a critical hit.

    The base damage (including the custom damage modifier) is re-parsed and
    each of its dice terms re-emitted as ``+{term}``. Applied bonuses then add
    their ``crit_bonus_override`` verbatim or, failing that, the dice terms of
    their ``damage_bonus``.

    Raises:
        DiceExpressionError: If any parsed part is malformed.
    """
    base = context.damage_base + context.damage_bonus + (context.damage_bonus_custom or "")
    expression = "".join(f"+{term}" for term in dice_terms(base, evaluator))

    for bonus in context.applied_bonuses:
        if bonus.crit_bonus_override:
            expression += bonus.crit_bonus_override
        elif bonus.damage_bonus:
            expression += "".join(f"+{term}" for term in dice_terms(bonus.damage_bonus, evaluator))
    return expression


__all__ = [
    "build_crit_expression",
    "build_damage_expression",
    "build_to_hit_expression",
    "dice_only_expression",
    "dice_terms",
    "to_hit_dice",
]
