"""
Attack resolution pipeline.

Provides the single-call resolution of a bound attempt and the session
that drives one attack from form presentation to report delivery:

    IDLE -> AWAITING_INPUT -> BOUND -> RESOLVED
    AWAITING_INPUT -> CANCELLED  (the user declined the form)

Functions:
    resolve_attack: Roll to-hit, damage, crit and auxiliary rolls for a bound context.
    is_critical_hit: Decide a crit from the kept dice of a to-hit roll.

Classes:
    AttackSession: One user-initiated attack attempt.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol

from .binder import bind_selections
from .bonuses import AuxiliaryRoll
from .dice import DiceEvaluator, Roll
from .expressions import (
    build_crit_expression,
    build_damage_expression,
    build_to_hit_expression,
    dice_only_expression,
)
from .form import AttackForm, FormSubmission, build_attack_form
from .models import Attack, AttackResult, AuxiliaryRollResult, ResolutionContext
from .report import render_markdown

logger = logging.getLogger("d20-attacks.resolver")


# ---------------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------------

class AttackPresenter(Protocol):
    """Shows the attack form and collects the user's choices."""

    async def present(self, form: AttackForm) -> FormSubmission:
        ...


class ReportTransport(Protocol):
    """Delivers a resolved attack to its viewers."""

    async def send(self, result: AttackResult) -> None:
        ...


class ScriptedPresenter:
    """Presenter that answers every form with a fixed submission."""

    def __init__(self, submission: FormSubmission) -> None:
        self.submission = submission
        self.forms: list[AttackForm] = []

    async def present(self, form: AttackForm) -> FormSubmission:
        self.forms.append(form)
        return self.submission


class LoggingTransport:
    """Transport that writes the Markdown report to the package logger."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    async def send(self, result: AttackResult) -> None:
        logging.getLogger("d20-attacks").log(self.level, render_markdown(result))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def is_critical_hit(to_hit_roll: Roll, can_crit: bool, crit_threshold: int) -> bool:
    """True if the attack can crit and a kept die meets the threshold.

    Dice dropped by kh/kl never count.
    """
    return can_crit and any(r >= crit_threshold for r in to_hit_roll.active_results)


async def _resolve_other_roll(
    other: AuxiliaryRoll,
    is_crit: bool,
    evaluator: DiceEvaluator,
) -> AuxiliaryRollResult:
    roll = await evaluator.evaluate(other.roll)
    crit_roll = None
    if is_crit and other.can_crit:
        # Flat modifiers are not doubled for auxiliary rolls either.
        crit_expression = dice_only_expression(other.roll, evaluator)
        if crit_expression:
            crit_roll = await evaluator.evaluate(crit_expression)
    return AuxiliaryRollResult(description=other.description, roll=roll, crit_roll=crit_roll)


async def resolve_attack(context: ResolutionContext, evaluator: DiceEvaluator) -> AttackResult:
    """Resolve a bound attack: to-hit -> damage -> crit -> auxiliary rolls.

    Args:
        context: A context already bound with ``bind_selections``.
        evaluator: Dice engine used to parse and roll every expression.

    Returns:
        The attack result.

    Raises:
        DiceExpressionError: If any composed expression is malformed. No
            partial result is produced.
    """
    to_hit_expression = build_to_hit_expression(context)
    damage_expression = build_damage_expression(context)
    crit_expression = build_crit_expression(context, evaluator)
    logger.debug(
        f"Expressions for '{context.title}': to_hit={to_hit_expression!r} "
        f"damage={damage_expression!r} crit={crit_expression!r}"
    )

    to_hit_roll = None
    is_crit = False
    if context.roll_to_hit and to_hit_expression:
        to_hit_roll = await evaluator.evaluate(to_hit_expression)
        is_crit = is_critical_hit(to_hit_roll, context.can_crit, context.crit_threshold)
        logger.debug(f"To Hit Roll: {to_hit_roll.active_results} = {to_hit_roll.total} (crit={is_crit})")

    damage_roll = await evaluator.evaluate(damage_expression)
    logger.debug(f"Damage Roll: {damage_roll.total}")

    crit_roll = None
    if is_crit and crit_expression:
        crit_roll = await evaluator.evaluate(crit_expression)
        logger.debug(f"Crit Roll: {crit_roll.total}")

    tasks = [
        asyncio.ensure_future(_resolve_other_roll(other, is_crit, evaluator))
        for other in context.other_rolls
    ]
    try:
        other_rolls = await asyncio.gather(*tasks)
    except Exception:
        # a failed roll cancels the rolls still pending
        for task in tasks:
            task.cancel()
        raise

    result = AttackResult(
        title=context.title,
        to_hit_roll=to_hit_roll,
        damage_roll=damage_roll,
        crit_roll=crit_roll,
        is_crit=is_crit,
        other_rolls=list(other_rolls),
    )
    logger.debug(f"Attack Results: {result.title} damage={result.damage_total} crit={result.is_crit}")
    return result


# ---------------------------------------------------------------------------
# Session State Machine
# ---------------------------------------------------------------------------

class ResolutionState(str, Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    BOUND = "bound"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[ResolutionState, set[ResolutionState]] = {
    ResolutionState.IDLE: {ResolutionState.AWAITING_INPUT},
    ResolutionState.AWAITING_INPUT: {ResolutionState.BOUND, ResolutionState.CANCELLED},
    ResolutionState.BOUND: {ResolutionState.RESOLVED},
    ResolutionState.RESOLVED: set(),
    ResolutionState.CANCELLED: set(),
}


class ResolutionStateError(RuntimeError):
    """Raised on an illegal session transition (e.g. running a session twice)."""


class AttackSession:
    """Drive one attack attempt from form to report.

    A session is single-use; spawn a new one (from the same ``Attack``) for
    every attempt.

    Args:
        attack: The attack template.
        presenter: Shows the form and returns the user's choices.
        evaluator: Dice engine.
        transport: Optional delivery of the result; skipped on cancellation.
    """

    def __init__(
        self,
        attack: Attack,
        presenter: AttackPresenter,
        evaluator: DiceEvaluator,
        transport: ReportTransport | None = None,
    ) -> None:
        self.attack = attack
        self.presenter = presenter
        self.evaluator = evaluator
        self.transport = transport
        self.state = ResolutionState.IDLE
        self.context: ResolutionContext | None = None
        self.result: AttackResult | None = None

    def _transition(self, target: ResolutionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise ResolutionStateError(
                f"Cannot move attack '{self.attack.title}' from {self.state.value} to {target.value}"
            )
        logger.debug(f"Attack '{self.attack.title}': {self.state.value} -> {target.value}")
        self.state = target

    async def run(self) -> AttackResult | None:
        """Present, bind, resolve and deliver.

        Returns:
            The result, or None if the user cancelled.

        Raises:
            ResolutionStateError: If the session was already run.
            DiceExpressionError: If an expression cannot be evaluated.
        """
        self._transition(ResolutionState.AWAITING_INPUT)
        self.context = self.attack.new_context()
        form = build_attack_form(self.context)
        submission = await self.presenter.present(form)

        if not submission.confirmed:
            self._transition(ResolutionState.CANCELLED)
            logger.debug(f"Attack '{self.attack.title}' cancelled")
            return None

        bind_selections(self.context, submission)
        self._transition(ResolutionState.BOUND)

        self.result = await resolve_attack(self.context, self.evaluator)
        self._transition(ResolutionState.RESOLVED)

        if self.transport is not None:
            await self.transport.send(self.result)
        return self.result


__all__ = [
    "AttackPresenter",
    "AttackSession",
    "LoggingTransport",
    "ReportTransport",
    "ResolutionState",
    "ResolutionStateError",
    "ScriptedPresenter",
    "is_critical_hit",
    "resolve_attack",
]
