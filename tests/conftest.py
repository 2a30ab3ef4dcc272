"""
Pytest configuration and fixtures for d20-attacks tests.
"""

import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing d20_attacks
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from d20_attacks.dice import Roll, StandardDiceEvaluator  # noqa: E402


class ScriptedRng:
    """Stands in for random.Random: returns scripted die results in order, then 1s."""

    def __init__(self, results: list[int] | None = None) -> None:
        self.results = list(results or [])

    def randint(self, a: int, b: int) -> int:
        if self.results:
            return self.results.pop(0)
        return a


class RecordingEvaluator(StandardDiceEvaluator):
    """StandardDiceEvaluator with scripted dice that remembers what it rolled."""

    def __init__(self, results: list[int] | None = None) -> None:
        super().__init__(rng=ScriptedRng(results))
        self.formulas: list[str] = []

    async def evaluate(self, formula: str) -> Roll:
        self.formulas.append(formula)
        return await super().evaluate(formula)


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def scripted_dice():
    """Factory: scripted_dice([20, 4, ...]) -> evaluator rolling those results in order."""
    return RecordingEvaluator


@pytest.fixture
def longsword_config() -> dict:
    """A plain +5/+3 longsword attack with no bonuses."""
    return {
        "title": "Longsword",
        "roll_to_hit": True,
        "can_crit": True,
        "super_advantage": False,
        "damage_base": "1d8",
        "to_hit_bonus": "+5",
        "damage_bonus": "+3",
        "crit_threshold": 20,
        "bonuses": [],
    }
