"""Tests for inbound token parsing."""

import pytest

from pySceneSwitcher.actions import Action, parse_action
from pySceneSwitcher.enums import ActionKind


class TestNamedTokens:

    @pytest.mark.parametrize(
        "token,kind",
        [
            ("next", ActionKind.NEXT),
            ("previous2", ActionKind.PREVIOUS2),
            ("surpriseMe", ActionKind.SURPRISE_ME),
            ("recallConditioned", ActionKind.RECALL_CONDITIONED),
            ("autoRandom", ActionKind.AUTO_RANDOM),
            ("doubleTap", ActionKind.DOUBLE_TAP),
            ("mainAction", ActionKind.MAIN_ACTION),
            ("smartNextPrev", ActionKind.SMART_NEXT_PREV),
            (" reset ", ActionKind.RESET),
        ],
    )
    def test_known(self, token, kind):
        assert parse_action(token) == Action(kind)

    def test_unknown(self):
        assert parse_action("sideways") is None
        assert parse_action("") is None
        assert parse_action("1.5") is None

    def test_placeholder_values_are_not_tokens(self):
        assert parse_action("<scene>") is None


class TestNumericTokens:

    def test_positive_is_scene(self):
        assert parse_action("3") == Action(ActionKind.SCENE, 3)
        assert parse_action("+3") == Action(ActionKind.SCENE, 3)

    def test_zero_is_scene_zero(self):
        assert parse_action("0") == Action(ActionKind.SCENE, 0)

    def test_negative_is_preset(self):
        assert parse_action("-2") == Action(ActionKind.PRESET, 2)

    def test_int_input(self):
        assert parse_action(7) == Action(ActionKind.SCENE, 7)
        assert parse_action(-7) == Action(ActionKind.PRESET, 7)

    def test_str_round_trip(self):
        assert str(parse_action("-4")) == "-4"
        assert str(parse_action("12")) == "12"
        assert str(parse_action("first")) == "first"


class TestTargeted:

    @pytest.mark.parametrize("token", ["first", "last", "default", "2"])
    def test_targeted(self, token):
        assert parse_action(token).is_targeted

    @pytest.mark.parametrize("token", ["next", "tap", "-2", "mainAction"])
    def test_generic(self, token):
        assert not parse_action(token).is_targeted
