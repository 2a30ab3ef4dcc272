"""
Tests for attack templates, resolution contexts and results.
"""

import pytest
from pydantic import ValidationError

from d20_attacks import create_attack
from d20_attacks.bonuses import Bonus, BonusKind, iter_tree
from d20_attacks.models import Attack, AttackConfigurationError, ResolutionContext
from d20_attacks.presets import great_weapon_master, piercer


@pytest.fixture
def attack(longsword_config):
    return Attack.from_config({
        **longsword_config,
        "bonuses": [
            Bonus(description="Feats", kind=BonusKind.GROUP, bonuses=[great_weapon_master()]),
            piercer(),
        ],
    })


class TestAttackFromConfig:

    def test_defaults(self):
        attack = Attack.from_config({"title": "Dagger", "damage_base": "1d4"})
        assert attack.roll_to_hit is True
        assert attack.can_crit is True
        assert attack.super_advantage is False
        assert attack.to_hit_bonus == ""
        assert attack.damage_bonus == ""
        assert attack.crit_threshold == 20
        assert attack.bonuses == []

    def test_none_modifiers_become_empty(self, longsword_config):
        attack = Attack.from_config({**longsword_config, "to_hit_bonus": None, "damage_bonus": None})
        assert (attack.to_hit_bonus, attack.damage_bonus) == ("", "")

    def test_bonuses_from_mappings(self, longsword_config):
        attack = create_attack({
            **longsword_config,
            "bonuses": [{"description": "Rage", "type": "check", "damage_bonus": "+2"}],
        })
        assert attack.bonuses[0].kind is BonusKind.CHECK

    def test_attack_passes_through(self, attack):
        assert Attack.from_config(attack) is attack

    @pytest.mark.parametrize("config,message", [
        ({"damage_base": "1d8"}, "title"),
        ({"title": "", "damage_base": "1d8"}, "title"),
        ({"title": "Club"}, "damage_base"),
        ({"title": "Club", "damage_base": "  "}, "damage_base is required"),
        ({"title": "Club", "damage_base": "1d4", "damage_bonus": "3"}, "must start with"),
        ({"title": "Club", "damage_base": "1d4", "crit_threshold": 0}, "crit_threshold"),
        ({"title": "Club", "damage_base": "1d4", "bonuses": [{"description": "X", "type": "radio"}]}, "group key"),
    ])
    def test_invalid(self, config, message):
        with pytest.raises(AttackConfigurationError, match=message):
            Attack.from_config(config)

    def test_unknown_keys_rejected(self):
        with pytest.raises(AttackConfigurationError, match="toHitBonus"):
            Attack.from_config({"title": "Club", "damage_base": "1d4", "toHitBonus": "+5"})

    def test_not_a_mapping(self):
        with pytest.raises(AttackConfigurationError, match="must be a mapping"):
            Attack.from_config(["Longsword"])

    def test_template_is_frozen(self, attack):
        with pytest.raises(ValidationError):
            attack.title = "Greatsword"


class TestNewContext:

    def test_copies_fields(self, attack):
        context = attack.new_context()
        assert isinstance(context, ResolutionContext)
        assert context.title == attack.title
        assert context.damage_base == "1d8"
        assert context.run is False
        assert context.applied_bonuses == []

    def test_bonus_tree_is_deep_copied(self, attack):
        context = attack.new_context()
        context.bonuses[0].bonuses[0].enabled = True
        assert attack.bonuses[0].bonuses[0].enabled is False

    def test_every_node_gets_an_id(self, attack):
        context = attack.new_context()
        ids = [b.id for b in iter_tree(context.bonuses)]
        assert ids == [f"b{context.attempt_id}{n}" for n in (1, 2, 3)]

    def test_fresh_ids_per_attempt(self, attack):
        first, second = attack.new_context(), attack.new_context()
        assert first.attempt_id != second.attempt_id
        assert len(first.attempt_id) == 8
        assert first.bonuses[0].id != second.bonuses[0].id

    def test_all_bonuses(self, attack):
        assert [b.description for b in attack.all_bonuses()] == ["Great Weapon Master", "Piercer"]
