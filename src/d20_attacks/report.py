"""
Markdown rendering of attack results.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .dice import Roll
    from .models import AttackResult


def format_roll(roll: "Roll") -> str:
    """Render a roll as ``🎲 **formula** [dice] = **total**``.

    Dropped dice are struck through.
    """
    dice = [
        str(die.result) if die.active else f"~~{die.result}~~"
        for term in roll.dice
        for die in term.results
    ]
    dice_text = f" [{', '.join(dice)}]" if dice else ""
    return f"🎲 **{roll.formula}**{dice_text} = **{roll.total}**"


def _with_crit(roll: "Roll", crit_roll: "Roll | None") -> str:
    text = format_roll(roll)
    if crit_roll is not None:
        text += f" + {format_roll(crit_roll)} (CRIT) = **{roll.total + crit_roll.total}**"
    return text


def render_markdown(result: "AttackResult") -> str:
    """Render a full attack report."""
    lines = [f"### {result.title}"]

    if result.to_hit_roll is not None:
        crit_marker = " **CRIT!**" if result.is_crit else ""
        lines.append(f"**To Hit:** {format_roll(result.to_hit_roll)}{crit_marker}")

    lines.append(f"**Damage:** {_with_crit(result.damage_roll, result.crit_roll)}")

    if result.other_rolls:
        lines.append("---")
        for other in result.other_rolls:
            lines.append(f"{other.description}: {_with_crit(other.roll, other.crit_roll)}")

    return "\n\n".join(lines)


__all__ = ["format_roll", "render_markdown"]
