"""
Pydantic models for attack templates, resolution attempts and their results.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from shortuuid import random

from .bonuses import AuxiliaryRoll, Bonus, assign_ids, flatten, require_signed_term
from .config import DEFAULT_CRIT_THRESHOLD, AttackSettings
from .dice import Roll


class AttackConfigurationError(ValueError):
    """Raised when an attack or bonus definition is malformed."""


class Attack(BaseModel):
    """Template describing how a weapon or ability rolls.

    Attributes:
        title: Title of the attack, used as the report heading.
        roll_to_hit: Whether a to-hit roll is made at all.
        can_crit: Whether the attack can critically hit.
        super_advantage: Roll 3d20 instead of 2d20 with advantage (e.g. Elven Accuracy).
        damage_base: Base damage dice for the weapon (e.g. "1d8").
        to_hit_bonus: Base to-hit modifier (e.g. "+5").
        damage_bonus: Base damage modifier (e.g. "+3").
        crit_threshold: A kept to-hit die at or above this value is a critical hit.
        bonuses: Root list of the bonus tree.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str = Field(min_length=1)
    roll_to_hit: bool = True
    can_crit: bool = True
    super_advantage: bool = False
    damage_base: str
    to_hit_bonus: str = ""
    damage_bonus: str = ""
    crit_threshold: int = Field(default=DEFAULT_CRIT_THRESHOLD, ge=1)
    bonuses: list[Bonus] = Field(default_factory=list)

    @field_validator("damage_base")
    @classmethod
    def _require_damage_base(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("damage_base is required")
        return v

    @field_validator("to_hit_bonus", "damage_bonus", mode="before")
    @classmethod
    def _signed_modifier(cls, v: Any) -> Any:
        if v is None:
            return ""
        return require_signed_term(v) if isinstance(v, str) else v

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | "Attack",
        settings: AttackSettings | None = None,
    ) -> "Attack":
        """Build an attack from a caller-supplied configuration mapping.

        Args:
            config: Attack fields; ``bonuses`` may hold ``Bonus`` instances or
                plain mappings.
            settings: Supplies the default crit threshold when the config has none.

        Returns:
            The validated attack.

        Raises:
            AttackConfigurationError: If the definition is malformed.
        """
        if isinstance(config, Attack):
            return config
        if not isinstance(config, Mapping):
            raise AttackConfigurationError(
                f"Attack configuration must be a mapping, got {type(config).__name__}"
            )

        data = dict(config)
        if data.get("crit_threshold") is None:
            data["crit_threshold"] = (settings or AttackSettings()).default_crit_threshold
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise AttackConfigurationError(f"Invalid attack '{data.get('title')}': {e}") from e

    def all_bonuses(self) -> list[Bonus]:
        """Return the flattened bonus list."""
        return flatten(self.bonuses)

    def new_context(self) -> "ResolutionContext":
        """Spawn a resolution attempt with its own copy of the bonus tree.

        Every node of the copied tree gets an identifier unique to the attempt.
        """
        fields = {
            name: getattr(self, name)
            for name in Attack.model_fields
            if name != "bonuses"
        }
        context = ResolutionContext(**fields, bonuses=deepcopy(self.bonuses))
        assign_ids(context.bonuses, context.attempt_id)
        return context


class ResolutionContext(Attack):
    """A single user-initiated attempt at an attack.

    Attributes:
        attempt_id: Random token identifying the attempt.
        run: Whether the attempt was confirmed (False if cancelled).
        advantage: Roll to hit with advantage.
        disadvantage: Roll to hit with disadvantage.
        to_hit_bonus_custom: Normalized free-text to-hit modifier.
        damage_bonus_custom: Normalized free-text damage modifier.
        applied_bonuses: Enabled bonuses, in flattened order.
        other_rolls: Auxiliary rolls of the applied bonuses.
    """
    model_config = ConfigDict(frozen=False)

    attempt_id: str = Field(default_factory=lambda: random(length=8))
    run: bool = False
    advantage: bool = False
    disadvantage: bool = False
    to_hit_bonus_custom: str | None = None
    damage_bonus_custom: str | None = None
    applied_bonuses: list[Bonus] = Field(default_factory=list)
    other_rolls: list[AuxiliaryRoll] = Field(default_factory=list)


class AuxiliaryRollResult(BaseModel):
    """Outcome of one auxiliary roll, with its crit companion when doubled."""
    model_config = ConfigDict(frozen=True)

    description: str
    roll: Roll
    crit_roll: Roll | None = None

    @property
    def total(self) -> int:
        return self.roll.total + (self.crit_roll.total if self.crit_roll else 0)


class AttackResult(BaseModel):
    """Outcome of a resolved attack, consumed by report renderers."""
    model_config = ConfigDict(frozen=True)

    title: str
    to_hit_roll: Roll | None = None
    damage_roll: Roll
    crit_roll: Roll | None = None
    is_crit: bool = False
    other_rolls: list[AuxiliaryRollResult] = Field(default_factory=list)

    @property
    def damage_total(self) -> int:
        """Damage plus the critical dice, when rolled."""
        return self.damage_roll.total + (self.crit_roll.total if self.crit_roll else 0)


__all__ = [
    "Attack",
    "AttackConfigurationError",
    "AttackResult",
    "AuxiliaryRollResult",
    "ResolutionContext",
]
