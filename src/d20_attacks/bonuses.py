"""
Situational attack bonuses and the bonus tree.

A bonus is either a leaf modifier (a number input, a checkbox or a radio
button) or a named group of child bonuses. Leaves contribute to-hit and
damage terms, crit overrides and auxiliary rolls; groups only organise
their children for presentation.

Functions:
    flatten: Linearize a bonus tree into its ordered, group-free leaves.
    flatten_as_tree: Childless copies of already-flattened leaves.
    iter_tree: Pre-order walk over every node, groups included.
    visible_bonuses: Flattened leaves that are actually presented to a user.
    assign_ids: Give every node a fresh identifier for one resolution attempt.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterator

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class BonusKind(str, Enum):
    """How a bonus is presented and bound."""
    NUMBER = "number"
    CHECK = "check"
    RADIO = "radio"
    GROUP = "group"


# Called as callback(context, bonus, raw_value) for number bonuses. The
# return value becomes the bonus' enabled state.
ValueCallback = Callable[..., bool]


def require_signed_term(term: str | None) -> str | None:
    """Return ``term`` unchanged if empty or prefixed with + or -, else raise ValueError."""
    if term and term.lstrip()[:1] not in ("+", "-"):
        raise ValueError(f"Modifier {term!r} must start with '+' or '-'")
    return term


class AuxiliaryRoll(BaseModel):
    """An extra roll reported next to the attack (e.g. Booming Blade movement damage).

    Attributes:
        description: Label shown in the report.
        roll: Dice expression to evaluate.
        can_crit: Whether the roll's dice are doubled on a critical hit.
    """
    model_config = ConfigDict(extra="forbid")

    description: str
    roll: str
    can_crit: bool = False


class Bonus(BaseModel):
    """A node of the bonus tree.

    Attributes:
        description: Display label.
        kind: number, check, radio or group. Also accepted as ``type``.
        to_hit_bonus: Term appended to the to-hit expression (e.g. "-5[GWM]").
        damage_bonus: Term appended to the damage expression (e.g. "+10[GWM]").
        crit_bonus_override: Used verbatim in the crit expression instead of the
            dice of ``damage_bonus``.
        value_callback: Required for number bonuses, see ``ValueCallback``.
        other_rolls: Auxiliary rolls added to the result when enabled.
        bonuses: Child bonuses.
        can_crit: Carried from configuration; critical doubling is decided per
            auxiliary roll.
        enabled: Default or bound state.
        hide: Not presented to the user, but still evaluated.
        group: Mutual exclusion key for radio bonuses.
        id: Identifier assigned per resolution attempt.
        value: Last bound number input, possibly replaced by the callback.
    """
    model_config = ConfigDict(extra="forbid")

    description: str
    kind: BonusKind = Field(
        default=BonusKind.CHECK,
        validation_alias=AliasChoices("kind", "type"),
    )
    to_hit_bonus: str | None = None
    damage_bonus: str | None = None
    crit_bonus_override: str | None = None
    value_callback: ValueCallback | None = Field(default=None, exclude=True)
    other_rolls: list[AuxiliaryRoll] = Field(default_factory=list)
    bonuses: list[Bonus] = Field(default_factory=list)
    can_crit: bool = True
    enabled: bool = False
    hide: bool = False
    group: str | None = None
    id: str | None = None
    value: Any = None

    @field_validator("to_hit_bonus", "damage_bonus", "crit_bonus_override")
    @classmethod
    def _require_sign(cls, v: str | None) -> str | None:
        """Appended terms must start with an operator so concatenation stays unambiguous."""
        return require_signed_term(v)

    @model_validator(mode="after")
    def _check_kind(self) -> "Bonus":
        """Reject definitions the binder or expression builder cannot use."""
        if self.kind is BonusKind.GROUP:
            if self.to_hit_bonus or self.damage_bonus or self.crit_bonus_override:
                raise ValueError(
                    f"Group bonus '{self.description}' cannot carry its own modifiers"
                )
        elif self.kind is BonusKind.NUMBER and self.value_callback is None:
            raise ValueError(f"Number bonus '{self.description}' requires a value_callback")
        elif self.kind is BonusKind.RADIO and not self.group:
            raise ValueError(f"Radio bonus '{self.description}' requires a group key")
        return self

    @property
    def is_group(self) -> bool:
        return self.kind is BonusKind.GROUP


def flatten(bonuses: list[Bonus] | None) -> list[Bonus]:
    """Return the non-group nodes of a bonus tree, depth-first.

    Children are emitted before their parent. A non-group node with children
    is emitted after them; group nodes are never emitted. The order matters:
    terms are appended to expressions in this order.

    Args:
        bonuses: Root list of the tree. ``None`` is treated as empty.

    Returns:
        The ordered leaves, each node appearing once.
    """
    flat: list[Bonus] = []
    for bonus in bonuses or []:
        if bonus.bonuses:
            flat.extend(flatten(bonus.bonuses))
        if not bonus.is_group:
            flat.append(bonus)
    return flat


def flatten_as_tree(flat: list[Bonus] | None) -> list[Bonus]:
    """Turn the output of ``flatten`` into a new, childless root list.

    Flattened nodes keep their children attached, so the list is not
    flattened again; ``flatten`` of the result equals ``flat``.
    """
    return [b.model_copy(update={"bonuses": []}, deep=True) for b in flat or []]


def iter_tree(bonuses: list[Bonus] | None) -> Iterator[Bonus]:
    """Yield every node, groups included, parent before children."""
    for bonus in bonuses or []:
        yield bonus
        yield from iter_tree(bonus.bonuses)


def visible_bonuses(bonuses: list[Bonus] | None) -> list[Bonus]:
    """Flattened leaves that get a control, skipping hidden nodes and their subtrees."""
    flat: list[Bonus] = []
    for bonus in bonuses or []:
        if bonus.hide:
            continue
        if bonus.bonuses:
            flat.extend(visible_bonuses(bonus.bonuses))
        if not bonus.is_group:
            flat.append(bonus)
    return flat


def assign_ids(bonuses: list[Bonus] | None, token: str) -> int:
    """Assign ``b{token}{n}`` identifiers to every node of the tree.

    ``token`` should be unique per resolution attempt; ``n`` is a counter
    local to this call.

    Returns:
        The number of identifiers assigned.
    """
    count = 0
    for count, bonus in enumerate(iter_tree(bonuses), start=1):
        bonus.id = f"b{token}{count}"
    return count


__all__ = [
    "AuxiliaryRoll",
    "Bonus",
    "BonusKind",
    "ValueCallback",
    "assign_ids",
    "flatten",
    "flatten_as_tree",
    "iter_tree",
    "require_signed_term",
    "visible_bonuses",
]
