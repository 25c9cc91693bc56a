"""The virtual scene switcher device.

A :class:`SceneSwitcher` wires one switcher's configuration, field
store, timer slots and engine components together:

* :class:`~pySceneSwitcher.scene_state.SceneState`
* :class:`~pySceneSwitcher.side_effects.SideEffectFilter`
* :class:`~pySceneSwitcher.autocycle.AutoCycleScheduler`
* :class:`~pySceneSwitcher.multitap.MultiTapAggregator`
* :class:`~pySceneSwitcher.dispatcher.ActionDispatcher`

Outbound events are delivered to the *on_event* callback, which may
return a coroutine (scheduled with ``asyncio.ensure_future``).  Errors
raised by the callback are logged and never reach the engine.

Lifecycle
~~~~~~~~~

* :meth:`SceneSwitcher.initialize`: seed the current scene, emit the
  initial ``0`` scene event and resume a persisted auto-cycle.
* :meth:`SceneSwitcher.update_preferences`: apply changed preferences.
* :meth:`SceneSwitcher.shutdown`: cancel timers but keep the auto-cycle
  backup so that the next start resumes it.
* :meth:`SceneSwitcher.remove`: stop everything and drop the backup.

Usage::

    switcher = SceneSwitcher(
        "living-room",
        preferences={"scenesCount": 5, "cycleMode": "linear"},
        on_event=print,
    )
    switcher.initialize()
    switcher.dispatch("next")
    switcher.dispatch("-3")        # preset scene 3
    switcher.dispatch("recall")    # activate scene 3
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Callable, Mapping, Optional, Union

from pySceneSwitcher.actions import Action
from pySceneSwitcher.autocycle import AutoCycleScheduler
from pySceneSwitcher.config import SwitcherConfig
from pySceneSwitcher.dispatcher import ActionDispatcher
from pySceneSwitcher.events import EventCallback, SwitcherEvent
from pySceneSwitcher.multitap import MultiTapAggregator
from pySceneSwitcher.persistence import FieldStore
from pySceneSwitcher.scene_state import SceneState
from pySceneSwitcher.side_effects import SideEffectFilter
from pySceneSwitcher.timers import EntityTimers, ScheduledTask, TimerKind

logger = logging.getLogger(__name__)


class SceneSwitcher:
    """One virtual scene switcher.

    Parameters
    ----------
    entity_id:
        Unique identifier of the switcher.
    preferences:
        Preferences mapping (see
        :meth:`~pySceneSwitcher.config.SwitcherConfig.from_preferences`).
    store:
        Field store.  A private, non-persistent store is created when
        omitted.
    on_event:
        Event sink for :class:`~pySceneSwitcher.events.SceneEvent` and
        :class:`~pySceneSwitcher.events.AutoCycleStatusEvent`.
    clock:
        Wall-clock source in epoch seconds.
    rng:
        Random source for random scenes and jitter.
    loop:
        Loop-like object for timers; defaults to the running loop.
    """

    def __init__(
        self,
        entity_id: str,
        *,
        preferences: Optional[Mapping[str, Any]] = None,
        store: Optional[FieldStore] = None,
        on_event: Optional[EventCallback] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        loop: Optional[Any] = None,
    ) -> None:
        self._entity_id = entity_id
        self._config = SwitcherConfig.from_preferences(preferences)
        self._store = store if store is not None else FieldStore(entity_id)
        self._on_event = on_event
        rng = rng or random.Random()

        self._timers = EntityTimers(entity_id, self._handle_task, loop=loop)
        self._state = SceneState(
            entity_id,
            self._store,
            self._get_config,
            self._emit,
            clock=clock,
        )
        self._side_effects = SideEffectFilter(self._get_config)
        self._scheduler = AutoCycleScheduler(
            entity_id,
            self._state,
            self._timers,
            self._store,
            self._get_config,
            self._emit,
            clock=clock,
            rng=rng,
        )
        self._aggregator = MultiTapAggregator(
            entity_id, self._state, self._timers, self._get_config
        )
        self._dispatcher = ActionDispatcher(
            entity_id,
            self._state,
            self._scheduler,
            self._aggregator,
            self._side_effects,
            self._get_config,
            clock=clock,
        )

    # ---- properties --------------------------------------------------

    @property
    def entity_id(self) -> str:
        return self._entity_id

    @property
    def config(self) -> SwitcherConfig:
        return self._config

    @property
    def store(self) -> FieldStore:
        return self._store

    @property
    def state(self) -> SceneState:
        return self._state

    @property
    def scheduler(self) -> AutoCycleScheduler:
        return self._scheduler

    @property
    def aggregator(self) -> MultiTapAggregator:
        return self._aggregator

    @property
    def dispatcher(self) -> ActionDispatcher:
        return self._dispatcher

    @property
    def current_scene(self) -> int:
        return self._state.current

    # ---- lifecycle ---------------------------------------------------

    def initialize(self) -> None:
        """Prepare the switcher after creation or a restart."""
        scene = self._state.seed()
        logger.info(
            "Switcher[%s]: initialized at scene %d (%d scenes, %s)",
            self._entity_id,
            scene,
            self._config.scenes_count,
            self._config.cycle_mode.value,
        )
        self._state.emit_initial()
        self._scheduler.restore()

    def update_preferences(self, preferences: Mapping[str, Any]) -> None:
        """Replace the configuration with new preferences.

        A running auto-cycle keeps going and picks up the new values on
        its next tick.
        """
        self._config = SwitcherConfig.from_preferences(preferences)
        logger.info(
            "Switcher[%s]: preferences updated (%d scenes, %s)",
            self._entity_id,
            self._config.scenes_count,
            self._config.cycle_mode.value,
        )

    def shutdown(self) -> None:
        """Cancel all timers, keeping the auto-cycle backup."""
        self._timers.cancel_all()
        self._aggregator.cancel()

    def remove(self) -> None:
        """Stop all activity and discard the auto-cycle backup."""
        self._scheduler.stop()
        self._aggregator.cancel()
        self._timers.cancel_all()

    # ---- actions -----------------------------------------------------

    def dispatch(self, token: Union[str, int, Action]) -> Optional[Action]:
        """Handle an inbound action token (see :class:`ActionDispatcher`)."""
        return self._dispatcher.dispatch(token)

    # ---- internals ---------------------------------------------------

    def _get_config(self) -> SwitcherConfig:
        return self._config

    def _handle_task(self, task: ScheduledTask) -> None:
        if task.kind == TimerKind.AUTOCYCLE:
            self._scheduler.tick(task.payload)
        elif task.kind == TimerKind.MULTITAP:
            self._aggregator.finalize()

    def _emit(self, event: SwitcherEvent) -> None:
        if self._on_event is None:
            return
        try:
            result = self._on_event(event)
            if asyncio.iscoroutine(result):
                asyncio.ensure_future(result)
        except Exception:
            logger.exception(
                "Switcher[%s]: event callback error for %r",
                self._entity_id,
                event,
            )

    def __repr__(self) -> str:
        return (
            f"SceneSwitcher(entity_id={self._entity_id!r}, "
            f"scene={self._state.current}, "
            f"scenes={self._config.scenes_count})"
        )
