"""Multi-tap emulation.

Buttons that only report single or double presses can still select any
scene: a burst of taps is counted and, once the button stays idle for
the multi-tap window, scene *N* is activated for *N* accumulated taps.
Reaching ``scenesCount`` taps finalizes immediately, and the activated
scene never exceeds ``scenesCount``.

::

    tap ──► count += 1 ──► count >= scenesCount? ── yes ──► activate
                                  │ no
                                  ▼
                    (re)arm idle timer ── expires ──► activate(count)
"""

from __future__ import annotations

import logging
from typing import Callable

from pySceneSwitcher.config import DEFAULT_MULTI_TAP_DELAY_MS, SwitcherConfig
from pySceneSwitcher.scene_state import SceneState
from pySceneSwitcher.timers import EntityTimers, TimerKind

logger = logging.getLogger(__name__)


class MultiTapAggregator:
    """Turns a burst of taps into one scene activation.

    Parameters
    ----------
    entity_id:
        The owning switcher.
    state:
        Scene state used for the activation.
    timers:
        The switcher's timer slots.  The owner routes fired
        ``MULTITAP`` tasks to :meth:`finalize`.
    get_config:
        Returns the switcher's current configuration.
    """

    def __init__(
        self,
        entity_id: str,
        state: SceneState,
        timers: EntityTimers,
        get_config: Callable[[], SwitcherConfig],
    ) -> None:
        self._entity_id = entity_id
        self._state = state
        self._timers = timers
        self._get_config = get_config
        self._tap_count: int = 0

    @property
    def tap_count(self) -> int:
        """Taps accumulated in the current burst."""
        return self._tap_count

    @property
    def is_pending(self) -> bool:
        return self._timers.is_pending(TimerKind.MULTITAP)

    def handle(
        self, taps: int, window_ms: int = DEFAULT_MULTI_TAP_DELAY_MS
    ) -> None:
        """Register *taps* and (re)arm the idle window of *window_ms*."""
        self._timers.cancel(TimerKind.MULTITAP)
        self._tap_count += taps
        count = self._get_config().scenes_count
        logger.debug(
            "MultiTap[%s]: %d tap(s), burst at %d",
            self._entity_id,
            taps,
            self._tap_count,
        )
        if self._tap_count >= count:
            self.finalize()
            return
        if self._timers.schedule(TimerKind.MULTITAP, window_ms / 1000.0) is None:
            # No loop to wait on: close the burst right away.
            self.finalize()

    def finalize(self) -> None:
        """Close the burst and activate the accumulated scene."""
        self._timers.cancel(TimerKind.MULTITAP)
        taps = self._tap_count
        self._tap_count = 0
        if taps <= 0:
            return
        scene = min(taps, self._get_config().scenes_count)
        logger.debug(
            "MultiTap[%s]: %d tap(s) → scene %d", self._entity_id, taps, scene
        )
        self._state.set_current(scene)

    def cancel(self) -> None:
        """Drop a pending burst without activating anything."""
        self._timers.cancel(TimerKind.MULTITAP)
        self._tap_count = 0

    def __repr__(self) -> str:
        return (
            f"MultiTapAggregator(entity_id={self._entity_id!r}, "
            f"tap_count={self._tap_count})"
        )
