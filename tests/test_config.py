"""Tests for SwitcherConfig preference parsing."""

import logging

from pySceneSwitcher.config import SwitcherConfig
from pySceneSwitcher.enums import (
    AutoStopBehavior,
    AutoStopCondition,
    CycleMode,
    DashboardMode,
    StartingScene,
)


class TestDefaults:

    def test_empty_preferences(self):
        cfg = SwitcherConfig.from_preferences({})
        assert cfg == SwitcherConfig()
        assert cfg.scenes_count == 4
        assert cfg.cycle_mode == CycleMode.CIRCULAR
        assert cfg.dashboard_mode == DashboardMode.NEXT
        assert cfg.short_delay_ms == 1000
        assert cfg.multi_tap_delay_ms == 500
        assert cfg.targeted_window_ms == 800
        assert cfg.generic_window_ms == 0
        assert cfg.autostop_condition == AutoStopCondition.ANY_ACTION

    def test_none_preferences(self):
        assert SwitcherConfig.from_preferences(None) == SwitcherConfig()


class TestParsing:

    def test_all_keys(self):
        cfg = SwitcherConfig.from_preferences({
            "scenesCount": 6,
            "cycleMode": "linearReversing",
            "defaultScene": 3,
            "dashboardMode": "autoRandom",
            "autocycleDelayMillis": 250,
            "autocycleLongDelayMinutes": 2,
            "autocycleJitterMinutes": 1,
            "autocycleDelayedStart": True,
            "autocycleSwitchOnce": "true",
            "autocycleMaxLoops": 3,
            "autostopBehavior": "endsOneBefore",
            "autostopCondition": "stopOnly",
            "autocycleStartStops": 1,
            "autocycleStartingScene": "edge",
            "multiTapDelayMillis": 700,
            "sideEffectTargetedMillis": 1000,
            "sideEffectGenericMillis": 200,
        })
        assert cfg.scenes_count == 6
        assert cfg.cycle_mode == CycleMode.LINEAR_REVERSING
        assert cfg.default_scene == 3
        assert cfg.dashboard_mode == DashboardMode.AUTO_RANDOM
        assert cfg.long_delay_minutes == 2
        assert cfg.jitter_seconds == 60
        assert cfg.delayed_start is True
        assert cfg.switch_once is True
        assert cfg.max_loops == 3
        assert cfg.autostop_behavior == AutoStopBehavior.ENDS_ONE_BEFORE
        assert cfg.autostop_condition == AutoStopCondition.STOP_ONLY
        assert cfg.start_equals_stop is True
        assert cfg.starting_scene == StartingScene.EDGE
        assert cfg.generic_window_ms == 200

    def test_out_of_range_is_clamped(self, caplog):
        with caplog.at_level(logging.WARNING):
            cfg = SwitcherConfig.from_preferences({"scenesCount": 5000})
        assert cfg.scenes_count == 1000
        assert "clamped" in caplog.text

    def test_invalid_values_use_defaults(self):
        cfg = SwitcherConfig.from_preferences({
            "scenesCount": "many",
            "cycleMode": "spiral",
            "autocycleDelayedStart": "perhaps",
        })
        assert cfg.scenes_count == 4
        assert cfg.cycle_mode == CycleMode.CIRCULAR
        assert cfg.delayed_start is False

    def test_round_trip_through_preferences(self):
        cfg = SwitcherConfig(scenes_count=9, cycle_mode=CycleMode.LINEAR)
        assert SwitcherConfig.from_preferences(cfg.to_preferences()) == cfg


class TestDerivedValues:

    def test_short_delay(self):
        cfg = SwitcherConfig(short_delay_ms=1500)
        assert cfg.base_delay_seconds() == 1.5

    def test_long_delay_overrides_short(self):
        cfg = SwitcherConfig(short_delay_ms=1500, long_delay_minutes=15)
        assert cfg.base_delay_seconds() == 900.0

    def test_max_switches_circular(self):
        cfg = SwitcherConfig(scenes_count=4, max_loops=2)
        assert cfg.max_switches() == 9
        cfg = SwitcherConfig(
            scenes_count=4,
            max_loops=2,
            autostop_behavior=AutoStopBehavior.ENDS_ONE_BEFORE,
        )
        assert cfg.max_switches() == 8

    def test_reversing_period_is_full_sweep(self):
        cfg = SwitcherConfig(
            scenes_count=4, cycle_mode=CycleMode.LINEAR_REVERSING
        )
        assert cfg.cycle_period() == 6

    def test_reversing_single_scene_period(self):
        cfg = SwitcherConfig(
            scenes_count=1, cycle_mode=CycleMode.LINEAR_REVERSING, max_loops=3
        )
        assert cfg.cycle_period() == 1
        assert cfg.max_switches() == 4
