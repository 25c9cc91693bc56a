"""Tests for the auto-cycle scheduler."""

import pytest

from pySceneSwitcher.autocycle import BACKUP_FIELD, Backup
from pySceneSwitcher.persistence import FieldStore

from conftest import EPOCH

LINEAR_4 = {
    "scenesCount": 4,
    "cycleMode": "linear",
    "autocycleStartingScene": "initial",
}


# ---------------------------------------------------------------------------
# Sequential cycles
# ---------------------------------------------------------------------------


class TestSequential:

    def test_linear_runs_to_the_end(self, make_switcher, loop, recorder):
        sw = make_switcher(LINEAR_4)
        sw.dispatch("autoForwards")
        assert recorder.scenes == [1]
        assert recorder.statuses == ["started"]
        loop.run_until_idle()
        assert recorder.scenes == [1, 2, 3, 4]
        assert recorder.statuses == ["started", "stopped"]
        assert not sw.scheduler.is_running

    def test_one_second_between_switches(self, make_switcher, loop):
        sw = make_switcher(LINEAR_4)
        sw.dispatch("autoForwards")
        assert loop.next_delay() == pytest.approx(1.0)
        assert sw.scheduler.pending_run.target_scene == 2

    def test_linear_backwards(self, make_switcher, loop, recorder):
        sw = make_switcher({**LINEAR_4, "autocycleStartingScene": "final"})
        sw.dispatch("autoBackwards")
        loop.run_until_idle()
        assert recorder.scenes == [4, 3, 2, 1]

    def test_circular_two_loops_ends_on_start_scene(
        self, make_switcher, loop, recorder
    ):
        sw = make_switcher({
            "scenesCount": 4,
            "autocycleMaxLoops": 2,
            "autocycleStartingScene": "initial",
        })
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        # Eight switches are the transitions after the start scene.
        assert recorder.scenes == [1, 2, 3, 4, 1, 2, 3, 4, 1]
        assert sw.current_scene == 1

    def test_circular_ends_one_before(self, make_switcher, loop, recorder):
        sw = make_switcher({
            "scenesCount": 4,
            "autocycleMaxLoops": 2,
            "autocycleStartingScene": "initial",
            "autostopBehavior": "endsOneBefore",
        })
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        assert recorder.scenes == [1, 2, 3, 4, 1, 2, 3, 4]

    def test_reversing_bounces(self, make_switcher, loop, recorder):
        sw = make_switcher({
            "scenesCount": 3,
            "cycleMode": "linearReversing",
            "autocycleStartingScene": "initial",
        })
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        assert recorder.scenes == [1, 2, 3, 2, 1]

    def test_reversing_single_scene_stops_after_loops(
        self, make_switcher, loop, recorder
    ):
        sw = make_switcher({
            "scenesCount": 1,
            "cycleMode": "linearReversing",
            "autocycleMaxLoops": 3,
        })
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        assert recorder.scenes == [1, 1, 1, 1]
        assert recorder.statuses == ["started", "stopped"]


class TestStartingScene:

    @pytest.mark.parametrize(
        "policy,token,expected",
        [
            ("step", "autoForwards", 3),
            ("step", "autoBackwards", 1),
            ("current", "autoForwards", 2),
            ("initial", "autoBackwards", 1),
            ("final", "autoForwards", 5),
            ("edge", "autoForwards", 1),
            ("edge", "autoBackwards", 5),
            ("oneOrTwo", "autoForwards", 1),
            ("oneOrTwo", "autoBackwards", 2),
        ],
    )
    def test_first_target(self, make_switcher, recorder, policy, token, expected):
        sw = make_switcher({
            "scenesCount": 5,
            "defaultScene": 2,
            "autocycleStartingScene": policy,
        })
        sw.dispatch(token)
        assert recorder.scenes == [expected]


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class TestOptions:

    def test_delayed_start(self, make_switcher, loop, recorder):
        sw = make_switcher({**LINEAR_4, "autocycleDelayedStart": True})
        sw.dispatch("autoForwards")
        assert recorder.scenes == []
        assert recorder.statuses == ["started"]
        assert sw.scheduler.is_running
        loop.advance(1.0)
        assert recorder.scenes == [1]
        loop.run_until_idle()
        assert recorder.scenes == [1, 2, 3, 4]
        assert recorder.statuses == ["started", "stopped"]

    def test_switch_once(self, make_switcher, loop, recorder):
        sw = make_switcher({**LINEAR_4, "autocycleSwitchOnce": True})
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        assert recorder.scenes == [1]
        assert recorder.statuses == ["stopped"]

    def test_switch_once_with_delayed_start(self, make_switcher, loop, recorder):
        sw = make_switcher({
            **LINEAR_4,
            "autocycleSwitchOnce": True,
            "autocycleDelayedStart": True,
        })
        sw.dispatch("autoForwards")
        assert recorder.scenes == []
        loop.run_until_idle()
        assert recorder.scenes == [1]
        assert recorder.statuses == ["started", "stopped"]

    def test_long_delay_overrides_short(self, make_switcher, loop):
        sw = make_switcher({**LINEAR_4, "autocycleLongDelayMinutes": 15})
        sw.dispatch("autoForwards")
        assert loop.next_delay() == pytest.approx(900.0)

    def test_jitter_within_bounds(self, make_switcher, loop):
        sw = make_switcher({
            "scenesCount": 4,
            "autocycleDelayMillis": 1000,
            "autocycleJitterMinutes": 1,
        })
        sw.dispatch("autoForwards")
        assert 1.0 <= loop.next_delay() <= 61.0

    def test_jitter_recomputed_every_tick(self, make_switcher, loop):
        sw = make_switcher({
            "scenesCount": 4,
            "autocycleDelayMillis": 1000,
            "autocycleJitterMinutes": 1,
            "autocycleMaxLoops": 3,
        })
        sw.dispatch("autoForwards")
        delays = [loop.next_delay()]
        for _ in range(5):
            loop.advance(delays[-1])
            delays.append(loop.next_delay())
        assert all(1.0 <= d <= 61.0 for d in delays)
        assert len(set(delays)) > 1

    def test_random_never_repeats(self, make_switcher, loop, recorder):
        sw = make_switcher({"scenesCount": 4, "autocycleMaxLoops": 3})
        sw.dispatch("autoRandom")
        loop.run_until_idle()
        scenes = recorder.scenes
        assert len(scenes) == 13
        assert scenes[0] != 1
        assert all(1 <= s <= 4 for s in scenes)
        assert all(a != b for a, b in zip(scenes, scenes[1:]))


# ---------------------------------------------------------------------------
# Start / stop
# ---------------------------------------------------------------------------


class TestStartStop:

    def test_stop_emits_once(self, make_switcher, recorder):
        sw = make_switcher(LINEAR_4)
        sw.dispatch("autoForwards")
        assert sw.scheduler.stop() is True
        assert sw.scheduler.stop() is False
        assert recorder.statuses == ["started", "stopped"]

    def test_stop_when_idle_is_silent(self, make_switcher, recorder):
        sw = make_switcher(LINEAR_4)
        assert sw.scheduler.stop() is False
        assert recorder.statuses == []

    def test_restart_supersedes(self, make_switcher, loop, recorder):
        sw = make_switcher({**LINEAR_4, "autocycleStartingScene": "step"})
        sw.scheduler.start(1)
        loop.advance(1.0)
        sw.scheduler.start(-1)
        # Starting again does not report the superseded run as stopped.
        assert recorder.statuses == ["started", "started"]
        loop.run_until_idle()
        assert recorder.scenes == [2, 3, 2, 1]

    def test_without_loop_nothing_keeps_running(self, recorder):
        from pySceneSwitcher.switcher import SceneSwitcher

        sw = SceneSwitcher("no-loop", preferences=LINEAR_4, on_event=recorder)
        sw.initialize()
        recorder.clear()
        sw.dispatch("autoForwards")
        assert recorder.scenes == [1]
        assert recorder.statuses == ["stopped"]
        assert not sw.scheduler.is_running


# ---------------------------------------------------------------------------
# Backup / restore
# ---------------------------------------------------------------------------


class TestBackupFormat:

    def test_format(self):
        backup = Backup(1, 1760000000, 900, 1, 4, 2)
        assert backup.format() == "1 1760000000 900 1 4 2"
        assert Backup.parse(backup.format()) == backup

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "1 2 3 4 5",
            "1 2 3 4 5 6 7",
            "1 2 x 1 1 1",
            "1 2 3.5 1 1 1",
            "1 2 3 7 1 1",
            "1 2 3 1 -2 1",
            "1 2 -3 1 1 1",
        ],
    )
    def test_malformed(self, text):
        assert Backup.parse(text) is None

    def test_remaining(self):
        backup = Backup(1, 1000, 90, 1, 1, 1)
        assert backup.remaining(1070) == 20
        assert backup.remaining(1090) == 0
        assert backup.remaining(1091) is None
        assert backup.remaining(999) is None


class TestBackupLifecycle:

    def test_backup_written_for_long_delay(self, make_switcher):
        sw = make_switcher({**LINEAR_4, "autocycleLongDelayMinutes": 1})
        sw.dispatch("autoForwards")
        assert sw.store.get(BACKUP_FIELD) == f"1 {int(EPOCH)} 60 1 1 2"
        assert BACKUP_FIELD in sw.store.snapshot()

    def test_no_backup_for_short_delay(self, make_switcher):
        sw = make_switcher(LINEAR_4)
        sw.dispatch("autoForwards")
        assert BACKUP_FIELD not in sw.store

    def test_backup_cleared_on_stop(self, make_switcher):
        sw = make_switcher({**LINEAR_4, "autocycleLongDelayMinutes": 1})
        sw.dispatch("autoForwards")
        sw.dispatch("autoStop")
        assert BACKUP_FIELD not in sw.store

    def test_backup_cleared_when_finished(self, make_switcher, loop):
        sw = make_switcher({**LINEAR_4, "autocycleLongDelayMinutes": 1})
        sw.dispatch("autoForwards")
        loop.run_until_idle()
        assert BACKUP_FIELD not in sw.store


class TestRestore:

    def _store(self, backup, scene=2):
        return FieldStore(
            "test-switcher",
            persisted={"scene.current": scene, BACKUP_FIELD: backup},
        )

    def test_resumes_with_remaining_delay(self, make_switcher, loop, recorder):
        store = self._store(f"1 {int(EPOCH) - 70} 90 1 1 3")
        sw = make_switcher(
            LINEAR_4,
            store=store,
            initialize=False,
        )
        sw.initialize()
        assert recorder.statuses == ["started"]
        assert sw.scheduler.is_running
        assert loop.next_delay() == pytest.approx(20.0)
        run = sw.scheduler.pending_run
        assert (run.direction, run.switch_count, run.target_scene) == (1, 1, 3)

        loop.advance(20.0)
        assert recorder.scenes == [3]

    def test_expired_backup(self, make_switcher, recorder):
        store = self._store(f"1 {int(EPOCH) - 120} 90 1 1 3")
        sw = make_switcher(LINEAR_4, store=store, initialize=False)
        sw.initialize()
        assert recorder.statuses == ["stopped"]
        assert recorder.scenes == []
        assert not sw.scheduler.is_running
        assert BACKUP_FIELD not in store

    def test_backup_from_the_future(self, make_switcher, recorder):
        store = self._store(f"1 {int(EPOCH) + 30} 90 1 1 3")
        sw = make_switcher(LINEAR_4, store=store, initialize=False)
        sw.initialize()
        assert recorder.statuses == ["stopped"]
        assert not sw.scheduler.is_running

    def test_malformed_backup(self, make_switcher, recorder):
        store = self._store("1 2 three")
        sw = make_switcher(LINEAR_4, store=store, initialize=False)
        sw.initialize()
        assert recorder.statuses == ["stopped"]
        assert BACKUP_FIELD not in store

    def test_initial_scene_event(self, make_switcher, recorder):
        store = self._store(f"1 {int(EPOCH) - 120} 90 1 1 3", scene=4)
        sw = make_switcher(LINEAR_4, store=store, initialize=False)
        sw.initialize()
        assert recorder.events[0].value == 0
        assert sw.current_scene == 4
