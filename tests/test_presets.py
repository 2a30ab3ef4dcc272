"""
Tests for the preset catalog and named value callbacks.
"""

import pytest

from d20_attacks.bonuses import Bonus, BonusKind
from d20_attacks.presets import (
    BonusCatalog,
    booming_blade,
    create_catalog,
    extra_damage_dice,
    flat_damage,
    great_weapon_master,
    green_flame_blade,
    nonzero,
    piercer,
    sharpshooter,
)


class TestPresets:

    def test_great_weapon_master(self):
        gwm = great_weapon_master()
        assert gwm.kind is BonusKind.CHECK
        assert gwm.to_hit_bonus == "-5[GWM]"
        assert gwm.damage_bonus == "+10[GWM]"
        assert gwm.enabled is False

    def test_sharpshooter(self):
        ss = sharpshooter()
        assert ss.to_hit_bonus == "-5[Sharpshooter]"
        assert ss.damage_bonus == "+10[Sharpshooter]"

    def test_piercer_is_hidden_and_on(self):
        p = piercer()
        assert p.hide is True
        assert p.enabled is True
        assert p.crit_bonus_override == "+1d6[Piercer Crit]"
        assert [(r.description, r.roll, r.can_crit) for r in p.other_rolls] == [
            ("Piercer Replacement", "+1d8", False),
        ]

    def test_green_flame_blade(self):
        gfb = green_flame_blade()
        assert gfb.damage_bonus == "+2d8[GFB]"
        assert gfb.other_rolls[0].roll == "3+2d8"
        assert gfb.other_rolls[0].can_crit is True

    def test_booming_blade(self):
        bb = booming_blade()
        assert bb.damage_bonus == "+2d8[Booming Blade]"
        assert bb.other_rolls[0].roll == "+3d8"
        assert bb.other_rolls[0].can_crit is False

    def test_each_call_returns_fresh_instance(self):
        first, second = piercer(), piercer()
        first.other_rolls.clear()
        first.enabled = False
        assert second.enabled is True
        assert len(second.other_rolls) == 1

    def test_overrides(self):
        gwm = great_weapon_master(enabled=True, description="GWM (cleave)")
        assert gwm.enabled is True
        assert gwm.description == "GWM (cleave)"
        assert gwm.damage_bonus == "+10[GWM]"

    def test_type_override_replaces_kind(self):
        gwm = great_weapon_master(type="radio", group="feats")
        assert gwm.kind is BonusKind.RADIO
        assert gwm.group == "feats"

    def test_invalid_override_rejected(self):
        with pytest.raises(ValueError):
            great_weapon_master(damage_bonus="10")


class TestValueCallbacks:

    @pytest.fixture
    def number_bonus(self):
        def make(callback, description="Extra"):
            return Bonus(description=description, kind=BonusKind.NUMBER, value_callback=callback)
        return make

    def test_nonzero(self, number_bonus):
        bonus = number_bonus(nonzero)
        assert nonzero(None, bonus, "3") is True
        assert bonus.value == 3
        assert nonzero(None, bonus, "0") is False

    def test_flat_damage_sets_labelled_term(self, number_bonus):
        bonus = number_bonus(flat_damage, "Hunter's Mark")
        assert flat_damage(None, bonus, "4") is True
        assert bonus.damage_bonus == "+4[Hunter's Mark]"
        assert flat_damage(None, bonus, -2) is True
        assert bonus.damage_bonus == "-2[Hunter's Mark]"

    def test_extra_damage_dice(self, number_bonus):
        sneak = extra_damage_dice(6)
        bonus = number_bonus(sneak, "Sneak Attack")
        assert sneak(None, bonus, " 3 ") is True
        assert bonus.damage_bonus == "+3d6[Sneak Attack]"
        assert sneak(None, bonus, "0") is False
        assert sneak.__name__ == "extra_d6"

    def test_non_integer_input_raises(self, number_bonus):
        bonus = number_bonus(nonzero, "Rage")
        with pytest.raises(ValueError, match="whole number"):
            nonzero(None, bonus, "lots")


class TestBonusCatalog:

    def test_default_names(self):
        catalog = create_catalog()
        assert catalog.names() == [
            "booming_blade",
            "great_weapon_master",
            "green_flame_blade",
            "piercer",
            "sharpshooter",
        ]
        assert catalog.callback_names() == [
            "extra_d4", "extra_d6", "extra_d8", "flat_damage", "nonzero",
        ]
        assert "piercer" in catalog
        assert "vorpal" not in catalog

    def test_create_with_overrides(self):
        bonus = create_catalog().create("sharpshooter", enabled=True)
        assert bonus.enabled is True
        assert bonus.description == "Sharpshooter"

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="Available: booming_blade"):
            create_catalog().create("vorpal")

    def test_unknown_callback(self):
        with pytest.raises(KeyError, match="Unknown value callback"):
            create_catalog().callback("explode")

    def test_register_custom_preset(self):
        catalog = BonusCatalog()
        catalog.register(
            "bless",
            lambda **kw: Bonus(description="Bless", to_hit_bonus="+1d4[Bless]", **kw),
        )
        assert catalog.names() == ["bless"]
        assert catalog.create("bless", enabled=True).enabled is True

    def test_register_replacing_logs_warning(self, caplog):
        catalog = create_catalog()
        with caplog.at_level("WARNING", logger="d20-attacks.presets"):
            catalog.register("piercer", lambda **kw: piercer(hide=False, **kw))
        assert "Replacing bonus preset 'piercer'" in caplog.text
        assert catalog.create("piercer").hide is False

    def test_register_callback(self):
        catalog = BonusCatalog()
        catalog.register_callback("always", lambda c, b, v: True)
        assert catalog.callback("always")(None, None, None) is True
