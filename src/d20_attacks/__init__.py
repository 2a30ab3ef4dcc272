"""
d20-attacks - resolve tabletop RPG attacks from a weapon definition and situational bonuses.
"""

from .bonuses import AuxiliaryRoll, Bonus, BonusKind, flatten
from .dice import DiceEvaluator, DiceExpressionError, Roll, StandardDiceEvaluator
from .form import AttackForm, ConfirmationOutcome, FormSubmission, build_attack_form
from .models import Attack, AttackConfigurationError, AttackResult, ResolutionContext
from .presets import BonusCatalog, create_catalog
from .resolver import AttackSession, resolve_attack

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("d20-attacks")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable


def create_attack(config) -> Attack:
    """Build an attack template from a configuration mapping."""
    return Attack.from_config(config)


__all__ = [
    "Attack",
    "AttackConfigurationError",
    "AttackForm",
    "AttackResult",
    "AttackSession",
    "AuxiliaryRoll",
    "Bonus",
    "BonusCatalog",
    "BonusKind",
    "ConfirmationOutcome",
    "DiceEvaluator",
    "DiceExpressionError",
    "FormSubmission",
    "ResolutionContext",
    "Roll",
    "StandardDiceEvaluator",
    "build_attack_form",
    "create_attack",
    "create_catalog",
    "flatten",
    "resolve_attack",
]
