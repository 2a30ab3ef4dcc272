"""
Settings for the attack engine, read from the environment (and a ``.env`` file).
"""

import logging
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("d20-attacks")

DEFAULT_CRIT_THRESHOLD = 20

_ENV_PREFIX = "D20_ATTACKS_"


class AttackSettings(BaseModel):
    """Runtime settings for attack resolution."""

    default_crit_threshold: int = Field(
        default=DEFAULT_CRIT_THRESHOLD,
        ge=1,
        le=20,
        description="Crit threshold used when an attack definition does not set one"
    )
    dice_seed: int | None = Field(
        default=None,
        description="Seed for the default dice evaluator (None for non-reproducible rolls)"
    )
    log_level: str = Field(default="INFO", description="Level for the d20-attacks loggers")
    debug: bool = Field(default=False, description="Trace bindings and rolls (forces DEBUG)")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


def load_settings() -> AttackSettings:
    """Load settings from ``D20_ATTACKS_*`` environment variables.

    A ``.env`` file in the working directory is loaded first when present.
    Unset variables keep their defaults.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    load_dotenv(find_dotenv(usecwd=True))

    env = {
        "default_crit_threshold": os.getenv(f"{_ENV_PREFIX}CRIT_THRESHOLD"),
        "dice_seed": os.getenv(f"{_ENV_PREFIX}DICE_SEED"),
        "log_level": os.getenv(f"{_ENV_PREFIX}LOG_LEVEL"),
        "debug": os.getenv(f"{_ENV_PREFIX}DEBUG"),
    }
    return AttackSettings(**{k: v for k, v in env.items() if v not in (None, "")})


def configure_logging(settings: AttackSettings) -> None:
    """Apply the configured level to the package loggers."""
    logger.setLevel(settings.effective_log_level)
    logger.debug(f"⚙️ Logging at {settings.effective_log_level}")


__all__ = [
    "DEFAULT_CRIT_THRESHOLD",
    "AttackSettings",
    "configure_logging",
    "load_settings",
]
