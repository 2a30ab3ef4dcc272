"""
Catalog of ready-made bonuses.

Each preset is a factory returning a fresh leaf ``Bonus``; keyword overrides
are shallow-merged on top of the preset defaults. ``create_catalog`` builds
the default ``BonusCatalog``; callers may register their own factories on it.

The catalog also carries named value callbacks for number bonuses, so that
definitions coming from plain data (e.g. the MCP tools) can reference them.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import TYPE_CHECKING, Any, Callable

from .bonuses import Bonus, BonusKind, ValueCallback

if TYPE_CHECKING:
    from .models import ResolutionContext

logger = logging.getLogger("d20-attacks.presets")

BonusFactory = Callable[..., Bonus]


# ---------------------------------------------------------------------------
# Preset Defaults
# ---------------------------------------------------------------------------

PRESET_DEFAULTS: dict[str, dict[str, Any]] = {
    "great_weapon_master": {
        "description": "Great Weapon Master",
        "kind": BonusKind.CHECK,
        "to_hit_bonus": "-5[GWM]",
        "damage_bonus": "+10[GWM]",
    },
    "sharpshooter": {
        "description": "Sharpshooter",
        "kind": BonusKind.CHECK,
        "to_hit_bonus": "-5[Sharpshooter]",
        "damage_bonus": "+10[Sharpshooter]",
    },
    "piercer": {
        # Always on; the crit die and the reroll are reported separately.
        "description": "Piercer",
        "kind": BonusKind.CHECK,
        "to_hit_bonus": "",
        "damage_bonus": "",
        "crit_bonus_override": "+1d6[Piercer Crit]",
        "enabled": True,
        "hide": True,
        "other_rolls": [
            {"description": "Piercer Replacement", "roll": "+1d8", "can_crit": False},
        ],
    },
    "green_flame_blade": {
        "description": "Green Flame Blade",
        "kind": BonusKind.CHECK,
        "to_hit_bonus": "",
        "damage_bonus": "+2d8[GFB]",
        "other_rolls": [
            {"description": "GFB Proximity Damage", "roll": "3+2d8", "can_crit": True},
        ],
    },
    "booming_blade": {
        "description": "Booming Blade",
        "kind": BonusKind.CHECK,
        "to_hit_bonus": "",
        "damage_bonus": "+2d8[Booming Blade]",
        "other_rolls": [
            {"description": "Booming Blade (movement)", "roll": "+3d8", "can_crit": False},
        ],
    },
}


def _preset(name: str) -> BonusFactory:
    def factory(**overrides: Any) -> Bonus:
        data = deepcopy(PRESET_DEFAULTS[name])
        if "type" in overrides:
            overrides["kind"] = overrides.pop("type")
        data.update(overrides)
        return Bonus.model_validate(data)

    factory.__name__ = name
    factory.__doc__ = f"Create a '{PRESET_DEFAULTS[name]['description']}' bonus."
    return factory


great_weapon_master = _preset("great_weapon_master")
sharpshooter = _preset("sharpshooter")
piercer = _preset("piercer")
green_flame_blade = _preset("green_flame_blade")
booming_blade = _preset("booming_blade")


# ---------------------------------------------------------------------------
# Named Value Callbacks
# ---------------------------------------------------------------------------

def _whole_number(bonus: Bonus, value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(
            f"Bonus '{bonus.description}' expects a whole number, got {value!r}"
        ) from None


def nonzero(context: "ResolutionContext", bonus: Bonus, value: Any) -> bool:
    """Enable the bonus when a non-zero number was entered."""
    bonus.value = _whole_number(bonus, value)
    return bonus.value != 0


def flat_damage(context: "ResolutionContext", bonus: Bonus, value: Any) -> bool:
    """Add the entered number as a labelled flat damage term."""
    amount = _whole_number(bonus, value)
    bonus.value = amount
    if amount == 0:
        return False
    bonus.damage_bonus = f"{amount:+d}[{bonus.description}]"
    return True


def extra_damage_dice(faces: int) -> ValueCallback:
    """Callback factory: the entered number is a count of d``faces`` added to damage.

    >>> sneak_attack = Bonus(description="Sneak Attack", kind="number",
    ...                      value_callback=extra_damage_dice(6))
    """
    def callback(context: "ResolutionContext", bonus: Bonus, value: Any) -> bool:
        count = _whole_number(bonus, value)
        bonus.value = count
        if count <= 0:
            return False
        bonus.damage_bonus = f"+{count}d{faces}[{bonus.description}]"
        return True

    callback.__name__ = f"extra_d{faces}"
    return callback


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class BonusCatalog:
    """Named bonus factories and value callbacks."""

    def __init__(
        self,
        presets: dict[str, BonusFactory] | None = None,
        callbacks: dict[str, ValueCallback] | None = None,
    ) -> None:
        self._presets: dict[str, BonusFactory] = dict(presets or {})
        self._callbacks: dict[str, ValueCallback] = dict(callbacks or {})

    def __contains__(self, name: object) -> bool:
        return name in self._presets

    def names(self) -> list[str]:
        return sorted(self._presets)

    def callback_names(self) -> list[str]:
        return sorted(self._callbacks)

    def register(self, name: str, factory: BonusFactory) -> None:
        """Add or replace a preset factory."""
        if name in self._presets:
            logger.warning(f"Replacing bonus preset '{name}'")
        self._presets[name] = factory

    def register_callback(self, name: str, callback: ValueCallback) -> None:
        self._callbacks[name] = callback

    def create(self, name: str, **overrides: Any) -> Bonus:
        """Create a bonus from a preset.

        Raises:
            KeyError: If no preset is registered under ``name``.
        """
        try:
            factory = self._presets[name]
        except KeyError:
            raise KeyError(
                f"Unknown bonus preset '{name}'. Available: {', '.join(self.names())}"
            ) from None
        return factory(**overrides)

    def callback(self, name: str) -> ValueCallback:
        """Look up a named value callback.

        Raises:
            KeyError: If no callback is registered under ``name``.
        """
        try:
            return self._callbacks[name]
        except KeyError:
            raise KeyError(
                f"Unknown value callback '{name}'. Available: {', '.join(self.callback_names())}"
            ) from None


def create_catalog() -> BonusCatalog:
    """Build the default catalog with the built-in presets and callbacks."""
    return BonusCatalog(
        presets={
            "great_weapon_master": great_weapon_master,
            "sharpshooter": sharpshooter,
            "piercer": piercer,
            "green_flame_blade": green_flame_blade,
            "booming_blade": booming_blade,
        },
        callbacks={
            "nonzero": nonzero,
            "flat_damage": flat_damage,
            "extra_d4": extra_damage_dice(4),
            "extra_d6": extra_damage_dice(6),
            "extra_d8": extra_damage_dice(8),
        },
    )


__all__ = [
    "BonusCatalog",
    "PRESET_DEFAULTS",
    "booming_blade",
    "create_catalog",
    "extra_damage_dice",
    "flat_damage",
    "great_weapon_master",
    "green_flame_blade",
    "nonzero",
    "piercer",
    "sharpshooter",
]
