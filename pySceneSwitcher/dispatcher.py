"""Inbound action dispatch.

:class:`ActionDispatcher` is the entry point for everything a button or
routine sends to a switcher.  For each raw token it:

1. records whether an auto-cycle is running,
2. stops that cycle when the autostop condition says so,
3. runs the :class:`~pySceneSwitcher.side_effects.SideEffectFilter`,
4. resolves the virtual ``mainAction`` according to the dashboard
   mode (using the running state recorded in step 1),
5. executes the resolved action.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from pySceneSwitcher.actions import (
    AUTOCYCLE_DIRECTIONS,
    RELATIVE_STEPS,
    TAP_COUNTS,
    Action,
    parse_action,
)
from pySceneSwitcher.autocycle import AutoCycleScheduler
from pySceneSwitcher.config import SwitcherConfig
from pySceneSwitcher.enums import ActionKind, AutoStopCondition, DashboardMode
from pySceneSwitcher.multitap import MultiTapAggregator
from pySceneSwitcher.scene_state import SceneState
from pySceneSwitcher.side_effects import SideEffectFilter, Verdict

logger = logging.getLogger(__name__)

#: Dashboard modes that map to one fixed action.
_DASHBOARD_ACTIONS = {
    DashboardMode.NEXT: ActionKind.NEXT,
    DashboardMode.SURPRISE_ME: ActionKind.SURPRISE_ME,
    DashboardMode.DEFAULT: ActionKind.DEFAULT,
    DashboardMode.REACTIVATE: ActionKind.REACTIVATE,
    DashboardMode.TAP: ActionKind.TAP,
}


class ActionDispatcher:
    """Resolves and executes inbound actions for one switcher.

    Parameters
    ----------
    entity_id:
        The owning switcher.
    state:
        Scene state.
    scheduler:
        Auto-cycle scheduler.
    aggregator:
        Multi-tap aggregator.
    side_effects:
        Side-effect filter.
    get_config:
        Returns the switcher's current configuration.
    clock:
        Wall-clock source in epoch seconds.
    """

    def __init__(
        self,
        entity_id: str,
        state: SceneState,
        scheduler: AutoCycleScheduler,
        aggregator: MultiTapAggregator,
        side_effects: SideEffectFilter,
        get_config: Callable[[], SwitcherConfig],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entity_id = entity_id
        self._state = state
        self._scheduler = scheduler
        self._aggregator = aggregator
        self._side_effects = side_effects
        self._get_config = get_config
        self._clock = clock

    # ---- public API --------------------------------------------------

    def dispatch(self, token: Union[str, int, Action]) -> Optional[Action]:
        """Handle one inbound token.

        Returns the action that was executed, or ``None`` when nothing
        ran (unrecognized token, suppressed side effect, out-of-range
        scene or disabled dashboard action).
        """
        action = parse_action(token)
        if action is None:
            logger.warning(
                "Switcher[%s]: ignoring unrecognized action %r",
                self._entity_id,
                token,
            )
            return None

        cfg = self._get_config()
        was_running = self._scheduler.is_running
        if was_running and (
            cfg.autostop_condition == AutoStopCondition.ANY_ACTION
            or action.kind == ActionKind.AUTO_STOP
        ):
            self._scheduler.stop()

        verdict = self._side_effects.check(
            action, self._clock(), self._state.last_activation_time
        )
        if verdict == Verdict.RESET_WINDOW:
            logger.debug(
                "Switcher[%s]: scene %s out of range — window reset",
                self._entity_id,
                action.value,
            )
            self._state.reset_activation_window()
            return None
        if verdict == Verdict.SUPPRESS:
            logger.debug(
                "Switcher[%s]: %s suppressed as side effect",
                self._entity_id,
                action,
            )
            return None

        if action.kind == ActionKind.MAIN_ACTION:
            action = self.resolve_dashboard(was_running)
            if action is None:
                return None
        if action.kind == ActionKind.SMART_NEXT_PREV:
            action = self._smart_next_prev()

        logger.debug("Switcher[%s]: executing %s", self._entity_id, action)
        self._execute(action, was_running)
        return action

    def resolve_dashboard(self, was_running: bool) -> Optional[Action]:
        """Translate ``mainAction`` according to the dashboard mode."""
        cfg = self._get_config()
        mode = cfg.dashboard_mode

        if mode == DashboardMode.DISABLED:
            return None
        if mode in _DASHBOARD_ACTIONS:
            return Action(_DASHBOARD_ACTIONS[mode])
        if mode == DashboardMode.NEXT_LOOP:
            if self._state.current >= cfg.scenes_count:
                return Action(ActionKind.FIRST)
            return Action(ActionKind.NEXT)
        if mode == DashboardMode.SMART_NEXT_PREV:
            return self._smart_next_prev()
        if mode == DashboardMode.AUTO_SEQUENTIAL:
            return Action(
                ActionKind.AUTO_STOP if was_running else ActionKind.AUTO_FORWARDS
            )
        if mode == DashboardMode.AUTO_RANDOM:
            return Action(
                ActionKind.AUTO_STOP if was_running else ActionKind.AUTO_RANDOM
            )
        return None

    # ---- execution ---------------------------------------------------

    def _execute(self, action: Action, was_running: bool) -> None:
        cfg = self._get_config()
        kind = action.kind
        state = self._state

        if kind in RELATIVE_STEPS:
            state.set_current(state.current + RELATIVE_STEPS[kind])
        elif kind == ActionKind.FIRST:
            state.set_current(1)
        elif kind == ActionKind.LAST:
            state.set_current(cfg.scenes_count)
        elif kind == ActionKind.DEFAULT:
            state.set_current(cfg.default_scene)
        elif kind == ActionKind.SURPRISE_ME:
            state.set_current(self._scheduler.random_scene(state.current))
        elif kind == ActionKind.REACTIVATE:
            state.reactivate()
        elif kind == ActionKind.RECALL:
            self._recall(conditioned=False)
        elif kind == ActionKind.RECALL_CONDITIONED:
            self._recall(conditioned=True)
        elif kind == ActionKind.RESET:
            preset = state.preset
            if preset is not None:
                state.set_current(preset, activate=False)
        elif kind in AUTOCYCLE_DIRECTIONS:
            if cfg.start_equals_stop and was_running:
                self._scheduler.stop()
            else:
                self._scheduler.start(AUTOCYCLE_DIRECTIONS[kind])
        elif kind == ActionKind.AUTO_STOP:
            self._scheduler.stop()
        elif kind in TAP_COUNTS:
            self._aggregator.handle(TAP_COUNTS[kind], cfg.multi_tap_delay_ms)
        elif kind == ActionKind.SCENE:
            state.set_current(action.value)
        elif kind == ActionKind.PRESET:
            state.set_preset(action.value)
        else:
            logger.warning(
                "Switcher[%s]: no handler for %s", self._entity_id, action
            )

    def _recall(self, conditioned: bool) -> None:
        preset = self._state.preset
        if preset is None:
            logger.debug("Switcher[%s]: no preset to recall", self._entity_id)
            return
        if conditioned and preset != self._state.previous_preset:
            logger.debug(
                "Switcher[%s]: preset changed (%s → %d) — not recalled",
                self._entity_id,
                self._state.previous_preset,
                preset,
            )
            return
        self._state.set_current(preset)

    def _smart_next_prev(self) -> Action:
        """Next or previous, reversing at each end of the range."""
        count = self._get_config().scenes_count
        current = self._state.current
        direction = self._state.smart_direction
        if count > 1:
            if direction > 0 and current >= count:
                direction = -1
            elif direction < 0 and current <= 1:
                direction = 1
            self._state.smart_direction = direction
        return Action(ActionKind.NEXT if direction > 0 else ActionKind.PREVIOUS)

    def __repr__(self) -> str:
        return f"ActionDispatcher(entity_id={self._entity_id!r})"
