"""
d20-attacks MCP Server
Exposes attack resolution as FastMCP tools.

Attack definitions are passed as JSON. Bonuses may reference catalog presets
with ``{"preset": "great_weapon_master", ...overrides}`` and number bonuses
reference named callbacks with ``{"callback": "extra_d6"}``. Selections are
keyed by bonus description, since control ids only exist for one attempt.
"""

import json
import logging
from collections.abc import Mapping
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field

from .bonuses import Bonus, flatten
from .config import configure_logging, load_settings
from .dice import StandardDiceEvaluator
from .form import AttackForm, ConfirmationOutcome, FormControl, FormSection, FormSubmission, build_attack_form
from .models import Attack, AttackConfigurationError
from .presets import PRESET_DEFAULTS, BonusCatalog, create_catalog
from .report import render_markdown
from .resolver import AttackSession

logger = logging.getLogger("d20-attacks")

settings = load_settings()
logging.basicConfig(level=settings.effective_log_level)
configure_logging(settings)

catalog = create_catalog()
evaluator = StandardDiceEvaluator(seed=settings.dice_seed)
logger.debug(f"📚 Bonus catalog ready ({len(catalog.names())} presets)")

mcp = FastMCP("d20-attacks")


# ----------------------------------------------------------------------
# Definition Helpers
# ----------------------------------------------------------------------

def build_bonus(raw: Mapping[str, Any], bonus_catalog: BonusCatalog) -> Bonus:
    """Build a bonus (and its children) from plain data.

    Raises:
        KeyError: Unknown preset or callback name.
        pydantic.ValidationError: Malformed bonus fields.
    """
    data = dict(raw)
    preset = data.pop("preset", None)
    callback_name = data.pop("callback", None)
    if data.get("bonuses"):
        data["bonuses"] = [build_bonus(child, bonus_catalog) for child in data["bonuses"]]
    if callback_name:
        data["value_callback"] = bonus_catalog.callback(callback_name)
    if preset:
        return bonus_catalog.create(preset, **data)
    return Bonus.model_validate(data)


def parse_attack_definition(attack_json: str, bonus_catalog: BonusCatalog) -> Attack:
    """Parse a JSON attack definition, resolving presets and callbacks.

    Raises:
        AttackConfigurationError: If the JSON or any part of the definition is invalid.
    """
    try:
        raw = json.loads(attack_json)
    except json.JSONDecodeError as e:
        raise AttackConfigurationError(f"Attack definition is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise AttackConfigurationError("Attack definition must be a JSON object")

    try:
        raw["bonuses"] = [build_bonus(b, bonus_catalog) for b in raw.get("bonuses") or []]
    except (KeyError, TypeError, ValueError) as e:
        raise AttackConfigurationError(f"Invalid bonus in '{raw.get('title')}': {e}") from e
    return Attack.from_config(raw, settings)


class LabelledPresenter:
    """Answers the attack form using selections keyed by control label."""

    def __init__(
        self,
        selections: Mapping[str, Any],
        outcome: ConfirmationOutcome = ConfirmationOutcome.NORMAL,
        to_hit_bonus_custom: str | None = None,
        damage_bonus_custom: str | None = None,
    ) -> None:
        self.selections = dict(selections)
        self.outcome = outcome
        self.to_hit_bonus_custom = to_hit_bonus_custom
        self.damage_bonus_custom = damage_bonus_custom

    async def present(self, form: AttackForm) -> FormSubmission:
        controls = form.controls()
        labels = {c.label for c in controls}
        unknown = sorted(set(self.selections) - labels)
        if unknown:
            logger.warning(f"Ignoring selections for unknown bonuses: {', '.join(unknown)}")
        values = {c.id: self.selections[c.label] for c in controls if c.label in self.selections}
        return FormSubmission(
            outcome=self.outcome,
            values=values,
            to_hit_bonus_custom=self.to_hit_bonus_custom,
            damage_bonus_custom=self.damage_bonus_custom,
        )


def _describe_form_items(items: list[FormControl | FormSection], depth: int = 0) -> list[str]:
    indent = "  " * depth
    lines = []
    for item in items:
        if isinstance(item, FormSection):
            lines.append(f"{indent}- **{item.label}**")
            lines.extend(_describe_form_items(item.children, depth + 1))
        else:
            state = " (on)" if item.checked else ""
            group = f" [{item.group}]" if item.group else ""
            lines.append(f"{indent}- {item.label} ({item.kind.value}{group}){state}")
    return lines


# ----------------------------------------------------------------------
# Tools
# ----------------------------------------------------------------------

@mcp.tool
def list_bonus_presets() -> str:
    """List the bonus presets and value callbacks available to attack definitions."""
    lines = ["**Bonus Presets:**"]
    for name in catalog.names():
        defaults = PRESET_DEFAULTS.get(name, {})
        parts = [
            f"{label} `{defaults[key]}`"
            for key, label in (("to_hit_bonus", "to hit"), ("damage_bonus", "damage"),
                               ("crit_bonus_override", "crit"))
            if defaults.get(key)
        ]
        summary = f" – {', '.join(parts)}" if parts else ""
        lines.append(f"• `{name}`: {defaults.get('description', name)}{summary}")
    lines.append("")
    lines.append("**Value Callbacks:** " + ", ".join(f"`{n}`" for n in catalog.callback_names()))
    return "\n".join(lines)


@mcp.tool
def preview_attack_form(
    attack_json: Annotated[str, Field(description="Attack definition as a JSON object")],
) -> str:
    """Show the bonuses a player would be asked about for an attack."""
    try:
        attack = parse_attack_definition(attack_json, catalog)
    except AttackConfigurationError as e:
        return f"❌ {e}"

    form = build_attack_form(attack.new_context())
    lines = [f"**{form.title}**", ""]
    lines.extend(_describe_form_items(form.items) or ["No selectable bonuses."])
    hidden = [b.description for b in flatten(attack.bonuses) if b.hide]
    if hidden:
        lines.append("")
        lines.append(f"Always evaluated: {', '.join(hidden)}")
    return "\n".join(lines)


@mcp.tool
async def roll_attack(
    attack_json: Annotated[str, Field(description="Attack definition as a JSON object")],
    outcome: Annotated[ConfirmationOutcome, Field(description="normal, advantage, disadvantage or cancelled")] = ConfirmationOutcome.NORMAL,
    selections_json: Annotated[str | None, Field(description="JSON object mapping bonus descriptions to values (true/false, or a number)")] = None,
    custom_to_hit: Annotated[str | None, Field(description="Custom to-hit modifier (e.g. '+2' or '1d4')")] = None,
    custom_damage: Annotated[str | None, Field(description="Custom damage modifier (e.g. '+1d6[Hex]')")] = None,
) -> str:
    """Resolve one attack and return the Markdown report."""
    try:
        attack = parse_attack_definition(attack_json, catalog)
        selections = json.loads(selections_json) if selections_json else {}
    except (AttackConfigurationError, json.JSONDecodeError) as e:
        return f"❌ {e}"
    if not isinstance(selections, dict):
        return "❌ Selections must be a JSON object"

    presenter = LabelledPresenter(selections, outcome, custom_to_hit, custom_damage)
    session = AttackSession(attack, presenter, evaluator)
    try:
        result = await session.run()
    except ValueError as e:
        return f"❌ Could not resolve '{attack.title}': {e}"

    if result is None:
        return f"Attack '{attack.title}' cancelled."
    return render_markdown(result)


logger.debug("✅ All tools successfully registered. d20-attacks server running! 🎲")


def main() -> None:
    """Main entry point for the d20-attacks MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
