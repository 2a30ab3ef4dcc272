"""
Binding of presenter input back onto a resolution attempt.

Missing input is never an error: a presented control without a value is
treated as unchecked/empty, and hidden bonuses (which get no control) keep
their configured default.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from .bonuses import Bonus, BonusKind, flatten, visible_bonuses
from .form import ConfirmationOutcome, FormSubmission
from .models import ResolutionContext

logger = logging.getLogger("d20-attacks.binder")

_CHECKED_VALUES = {"on", "true", "1", "checked", "yes"}


def normalize_custom_modifier(raw: str | None) -> str | None:
    """Prefix a custom modifier with '+' unless it already starts with a sign.

    Empty or missing input returns None.
    """
    if not raw:
        return None
    if raw[0] in ("+", "-"):
        return raw
    return f"+{raw}"


def is_checked(value: Any) -> bool:
    """Interpret a raw checkbox/radio value."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _CHECKED_VALUES


def _bind_bonus(context: ResolutionContext, bonus: Bonus, value: Any) -> None:
    if bonus.kind is BonusKind.NUMBER:
        if value is None or value == "":
            bonus.enabled = False
            return
        bonus.value = value
        bonus.enabled = bool(bonus.value_callback(context, bonus, value))
    elif bonus.kind in (BonusKind.CHECK, BonusKind.RADIO):
        bonus.enabled = is_checked(value)


def _warn_on_radio_conflicts(applied: list[Bonus]) -> None:
    selected: dict[str, list[str]] = defaultdict(list)
    for bonus in applied:
        if bonus.kind is BonusKind.RADIO:
            selected[bonus.group].append(bonus.description)
    for group, descriptions in selected.items():
        if len(descriptions) > 1:
            logger.warning(
                f"Radio group '{group}' has {len(descriptions)} selections: {', '.join(descriptions)}"
            )


def bind_selections(context: ResolutionContext, submission: FormSubmission) -> ResolutionContext:
    """Apply a form submission to a resolution attempt.

    Sets the confirmation flags, binds each bonus of the flattened tree,
    collects the enabled bonuses (in flattened order) and their auxiliary
    rolls, and stores the normalized custom modifiers. Rebinding the same
    context starts from empty applied lists.

    Args:
        context: The attempt to bind; mutated in place.
        submission: Presenter output keyed by bonus id.

    Returns:
        The same context, for chaining.
    """
    context.run = submission.confirmed
    context.advantage = submission.outcome is ConfirmationOutcome.ADVANTAGE
    context.disadvantage = submission.outcome is ConfirmationOutcome.DISADVANTAGE
    context.applied_bonuses = []
    context.other_rolls = []

    presented = {b.id for b in visible_bonuses(context.bonuses)}
    logger.debug(f"Binding {len(submission.values)} input(s) to '{context.title}' ({context.attempt_id})")

    for bonus in flatten(context.bonuses):
        if bonus.id is not None and bonus.id in submission.values:
            _bind_bonus(context, bonus, submission.values[bonus.id])
        elif bonus.id in presented:
            bonus.enabled = False

        if bonus.enabled:
            context.applied_bonuses.append(bonus)
            context.other_rolls.extend(bonus.other_rolls)

    context.to_hit_bonus_custom = normalize_custom_modifier(submission.to_hit_bonus_custom)
    context.damage_bonus_custom = normalize_custom_modifier(submission.damage_bonus_custom)

    _warn_on_radio_conflicts(context.applied_bonuses)
    logger.debug(
        f"Bound attack '{context.title}': applied={[b.description for b in context.applied_bonuses]} "
        f"custom=({context.to_hit_bonus_custom}, {context.damage_bonus_custom})"
    )
    return context


__all__ = [
    "bind_selections",
    "is_checked",
    "normalize_custom_modifier",
]
