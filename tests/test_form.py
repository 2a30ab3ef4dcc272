"""
Tests for attack form construction and raw submissions.
"""

import pytest

from d20_attacks.bonuses import Bonus, BonusKind, visible_bonuses
from d20_attacks.form import (
    DAMAGE_CUSTOM_FIELD,
    TO_HIT_CUSTOM_FIELD,
    ConfirmationOutcome,
    FormControl,
    FormSection,
    FormSubmission,
    build_attack_form,
)
from d20_attacks.models import Attack
from d20_attacks.presets import great_weapon_master, piercer, sharpshooter


@pytest.fixture
def context(longsword_config):
    attack = Attack.from_config({
        **longsword_config,
        "bonuses": [
            great_weapon_master(enabled=True),
            Bonus(
                description="Fighting Style",
                kind=BonusKind.GROUP,
                bonuses=[
                    Bonus(description="Dueling", kind=BonusKind.RADIO, group="style", damage_bonus="+2"),
                    Bonus(description="Archery", kind=BonusKind.RADIO, group="style", to_hit_bonus="+2"),
                ],
            ),
            Bonus(description="Hunter's Mark", damage_bonus="+1d6", bonuses=[sharpshooter()]),
            piercer(),
        ],
    })
    return attack.new_context()


class TestBuildAttackForm:

    def test_title_and_custom_fields(self, context):
        form = build_attack_form(context)
        assert form.title == "Longsword"
        assert [f.id for f in form.custom_fields] == [TO_HIT_CUSTOM_FIELD, DAMAGE_CUSTOM_FIELD]

    def test_groups_become_sections(self, context):
        form = build_attack_form(context)
        section = form.items[1]
        assert isinstance(section, FormSection)
        assert section.label == "Fighting Style"
        assert [c.label for c in section.children] == ["Dueling", "Archery"]
        assert all(c.group == "style" for c in section.children)

    def test_hidden_bonuses_have_no_control(self, context):
        labels = [c.label for c in build_attack_form(context).controls()]
        assert "Piercer" not in labels

    def test_controls_follow_visible_order(self, context):
        controls = build_attack_form(context).controls()
        assert [c.id for c in controls] == [b.id for b in visible_bonuses(context.bonuses)]
        assert [c.label for c in controls] == [
            "Great Weapon Master", "Dueling", "Archery", "Sharpshooter", "Hunter's Mark",
        ]

    def test_controls_carry_defaults(self, context):
        gwm = build_attack_form(context).controls()[0]
        assert isinstance(gwm, FormControl)
        assert gwm.kind is BonusKind.CHECK
        assert gwm.checked is True

    def test_ids_come_from_context(self, context):
        ids = {c.id for c in build_attack_form(context).controls()}
        assert all(i.startswith(f"b{context.attempt_id}") for i in ids)

    def test_template_bonuses_rejected(self, longsword_config):
        attack = Attack.from_config({**longsword_config, "bonuses": [great_weapon_master()]})
        with pytest.raises(ValueError, match="has no id"):
            build_attack_form(attack)


class TestFormSubmission:

    def test_from_raw_splits_custom_fields(self):
        submission = FormSubmission.from_raw(
            {"b1": "on", TO_HIT_CUSTOM_FIELD: "2", DAMAGE_CUSTOM_FIELD: "1d4"},
            ConfirmationOutcome.ADVANTAGE,
        )
        assert submission.values == {"b1": "on"}
        assert submission.to_hit_bonus_custom == "2"
        assert submission.damage_bonus_custom == "1d4"
        assert submission.outcome is ConfirmationOutcome.ADVANTAGE

    def test_from_raw_without_custom_fields(self):
        submission = FormSubmission.from_raw({})
        assert submission.to_hit_bonus_custom is None
        assert submission.damage_bonus_custom is None
        assert submission.confirmed is True

    def test_cancelled(self):
        assert FormSubmission(outcome="cancelled").confirmed is False
