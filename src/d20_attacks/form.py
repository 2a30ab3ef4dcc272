"""
The attack form handed to presenters, and what they hand back.

A presenter renders one control per visible bonus plus the two custom
modifier fields, then returns a ``FormSubmission`` with the confirmation
outcome and the raw values keyed by control id.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from .bonuses import Bonus, BonusKind

if TYPE_CHECKING:
    from .models import ResolutionContext

TO_HIT_CUSTOM_FIELD = "toHitBonusCustom"
DAMAGE_CUSTOM_FIELD = "damageBonusCustom"


class ConfirmationOutcome(str, Enum):
    """Which button closed the form."""
    NORMAL = "normal"
    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"
    CANCELLED = "cancelled"


class FormControl(BaseModel):
    """One input bound to a bonus."""
    id: str
    kind: BonusKind
    label: str
    checked: bool = False
    group: str | None = None


class FormSection(BaseModel):
    """A labelled group of controls (a group bonus)."""
    label: str
    children: list[FormControl | FormSection] = Field(default_factory=list)


class CustomField(BaseModel):
    """Free-text modifier input."""
    id: str
    label: str


class AttackForm(BaseModel):
    """Everything a presenter needs to draw the attack dialog."""
    title: str
    items: list[FormControl | FormSection] = Field(default_factory=list)
    custom_fields: list[CustomField] = Field(
        default_factory=lambda: [
            CustomField(id=TO_HIT_CUSTOM_FIELD, label="Custom To Hit Bonus"),
            CustomField(id=DAMAGE_CUSTOM_FIELD, label="Custom Damage Bonus"),
        ]
    )

    def controls(self) -> list[FormControl]:
        """Leaf controls in display order."""
        return list(_iter_controls(self.items))


class FormSubmission(BaseModel):
    """Raw presenter output.

    Attributes:
        outcome: Confirmation outcome; ``CANCELLED`` stops the attack.
        values: Raw control values keyed by bonus id. Checkboxes and radios
            hold booleans (or "on"/"true"/"1"), number inputs hold the text entered.
        to_hit_bonus_custom: Raw custom to-hit text.
        damage_bonus_custom: Raw custom damage text.
    """
    outcome: ConfirmationOutcome = ConfirmationOutcome.NORMAL
    values: dict[str, Any] = Field(default_factory=dict)
    to_hit_bonus_custom: str | None = None
    damage_bonus_custom: str | None = None

    @property
    def confirmed(self) -> bool:
        return self.outcome is not ConfirmationOutcome.CANCELLED

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, Any],
        outcome: ConfirmationOutcome = ConfirmationOutcome.NORMAL,
    ) -> "FormSubmission":
        """Split a flat id -> value mapping into bonus values and custom fields."""
        values = dict(raw)
        to_hit = values.pop(TO_HIT_CUSTOM_FIELD, None)
        damage = values.pop(DAMAGE_CUSTOM_FIELD, None)
        return cls(
            outcome=outcome,
            values=values,
            to_hit_bonus_custom=None if to_hit is None else str(to_hit),
            damage_bonus_custom=None if damage is None else str(damage),
        )


def _iter_controls(items: list[FormControl | FormSection]):
    for item in items:
        if isinstance(item, FormSection):
            yield from _iter_controls(item.children)
        else:
            yield item


def _form_item(bonus: Bonus) -> FormControl | FormSection:
    if bonus.is_group:
        return FormSection(label=bonus.description, children=_form_items(bonus.bonuses))
    if bonus.id is None:
        raise ValueError(f"Bonus '{bonus.description}' has no id; build forms from a ResolutionContext")
    return FormControl(
        id=bonus.id,
        kind=bonus.kind,
        label=bonus.description,
        checked=bonus.enabled,
        group=bonus.group,
    )


def _form_items(bonuses: list[Bonus]) -> list[FormControl | FormSection]:
    items: list[FormControl | FormSection] = []
    for bonus in bonuses:
        if bonus.hide:
            continue
        if not bonus.is_group and bonus.bonuses:
            items.extend(_form_items(bonus.bonuses))
        items.append(_form_item(bonus))
    return items


def build_attack_form(context: "ResolutionContext") -> AttackForm:
    """Build the form for a resolution attempt.

    Hidden bonuses (and everything below them) get no control. The control
    order matches ``visible_bonuses``.
    """
    return AttackForm(title=context.title, items=_form_items(context.bonuses))


__all__ = [
    "DAMAGE_CUSTOM_FIELD",
    "TO_HIT_CUSTOM_FIELD",
    "AttackForm",
    "ConfirmationOutcome",
    "CustomField",
    "FormControl",
    "FormSection",
    "FormSubmission",
    "build_attack_form",
]
