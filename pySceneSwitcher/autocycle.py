"""Automatic scene cycling.

An :class:`AutoCycleScheduler` steps a switcher through its scenes on a
timer: forwards, backwards or randomly.  It owns the ``AUTOCYCLE`` slot
of the switcher's :class:`~pySceneSwitcher.timers.EntityTimers`, so at
most one cycle runs per switcher and starting a new one supersedes the
old one.

State machine
-------------

::

    STOPPED ── start(direction) ──► tick ──► RUNNING ──┐
       ▲                             │         │       │ delay expires
       │        stop condition met   │         ◄── tick┘
       └─────────────────────────────┴── stop() ───────

Each tick activates the run's target scene (except the deferred first
tick of a *delayed start*), computes the next target and evaluates the
stop conditions, in order:

a. *switch once* is configured and this was the first real switch,
b. the mode is ``linear`` and the next step would leave the range,
c. the switch count reached ``max_loops * period + offset``.

Reversing cycles flip their direction at each end instead of stopping.

Restart safety
--------------

While a run with a delay of at least
:data:`~pySceneSwitcher.config.BACKUP_MIN_DELAY_SECONDS` is pending, a
:class:`Backup` record is persisted.  :meth:`AutoCycleScheduler.restore`
reschedules the pending tick after a restart for the remaining part of
the delay, or reports the cycle as stopped when the record is missing,
malformed or already expired.  Expired ticks are never caught up.
"""

from __future__ import annotations

import logging
import random
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pySceneSwitcher.config import BACKUP_MIN_DELAY_SECONDS, SwitcherConfig
from pySceneSwitcher.enums import AutoCycleStatus, CycleMode, StartingScene
from pySceneSwitcher.events import AutoCycleStatusEvent, SwitcherEvent
from pySceneSwitcher.normalizer import out_of_bounds
from pySceneSwitcher.persistence import FieldStore
from pySceneSwitcher.scene_state import SceneState
from pySceneSwitcher.timers import EntityTimers, TimerKind

logger = logging.getLogger(__name__)

BACKUP_FIELD = "autocycle.backup"
BACKUP_VERSION = 1

_INT_TOKEN = re.compile(r"^[+-]?\d+$")


# ---------------------------------------------------------------------------
# Run state and backup record
# ---------------------------------------------------------------------------


@dataclass
class AutoCycleRun:
    """State carried from one tick to the next.

    Attributes
    ----------
    direction:
        ``1`` forwards, ``-1`` backwards, ``0`` random.
    switch_count:
        Real switches performed so far; ``-1`` marks the deferred first
        tick of a delayed start.
    target_scene:
        Scene activated by the next tick.
    delay_seconds:
        Delay that precedes the next tick.
    """

    direction: int
    switch_count: int
    target_scene: int
    delay_seconds: float = 0.0


@dataclass(frozen=True)
class Backup:
    """Durable record of a pending long auto-cycle tick.

    Serialized as six whitespace-separated decimal integers::

        version startEpochSeconds delaySeconds direction switchCount targetScene
    """

    version: int
    start_epoch: int
    delay_seconds: int
    direction: int
    switch_count: int
    target_scene: int

    def format(self) -> str:
        return " ".join(
            str(v)
            for v in (
                self.version,
                self.start_epoch,
                self.delay_seconds,
                self.direction,
                self.switch_count,
                self.target_scene,
            )
        )

    @classmethod
    def parse(cls, text: object) -> Optional[Backup]:
        """Parse a serialized backup.  Returns ``None`` if invalid."""
        if text is None:
            return None
        tokens = str(text).split()
        if len(tokens) != 6:
            return None
        if not all(_INT_TOKEN.match(tok) for tok in tokens):
            return None
        backup = cls(*(int(tok) for tok in tokens))
        if backup.direction not in (-1, 0, 1):
            return None
        if backup.switch_count < -1 or backup.delay_seconds < 0:
            return None
        return backup

    def remaining(self, now: float) -> Optional[float]:
        """Seconds left until the pending tick, ``None`` if expired.

        A negative elapsed time (clock moved backwards) also counts as
        expired.
        """
        elapsed = now - self.start_epoch
        if elapsed < 0:
            return None
        remaining = self.delay_seconds - elapsed
        if remaining < 0:
            return None
        return remaining


# ---------------------------------------------------------------------------
# AutoCycleScheduler
# ---------------------------------------------------------------------------


class AutoCycleScheduler:
    """Timer-driven scene cycling for one switcher.

    Parameters
    ----------
    entity_id:
        The owning switcher.
    state:
        Scene state used for activations.
    timers:
        The switcher's timer slots.  The owner routes fired
        ``AUTOCYCLE`` tasks to :meth:`tick`.
    store:
        Field store receiving the :class:`Backup`.
    get_config:
        Returns the switcher's current configuration.
    emit:
        Event sink for status events.
    clock:
        Wall-clock source in epoch seconds.
    rng:
        Random source for random cycles and jitter.
    """

    def __init__(
        self,
        entity_id: str,
        state: SceneState,
        timers: EntityTimers,
        store: FieldStore,
        get_config: Callable[[], SwitcherConfig],
        emit: Callable[[SwitcherEvent], None],
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._entity_id = entity_id
        self._state = state
        self._timers = timers
        self._store = store
        self._get_config = get_config
        self._emit = emit
        self._clock = clock
        self._rng = rng or random.Random()

    # ---- public API --------------------------------------------------

    @property
    def is_running(self) -> bool:
        """``True`` while a tick is pending."""
        return self._timers.is_pending(TimerKind.AUTOCYCLE)

    @property
    def pending_run(self) -> Optional[AutoCycleRun]:
        """The run state waiting for the next tick, if any."""
        task = self._timers.pending_task(TimerKind.AUTOCYCLE)
        return None if task is None else task.payload

    def start(self, direction: int) -> None:
        """Start a new cycle, superseding any running one.

        Parameters
        ----------
        direction:
            ``1`` forwards, ``-1`` backwards, ``0`` random.
        """
        self._cancel()
        cfg = self._get_config()
        direction = max(-1, min(1, int(direction)))

        run = AutoCycleRun(
            direction=direction,
            switch_count=-1 if cfg.delayed_start else 0,
            target_scene=self._first_target(direction, cfg),
        )
        logger.info(
            "AutoCycle[%s]: start direction=%d target=%d%s",
            self._entity_id,
            direction,
            run.target_scene,
            " (delayed)" if cfg.delayed_start else "",
        )
        self.tick(run)
        if self.is_running:
            self._emit_status(AutoCycleStatus.STARTED)

    def stop(self) -> bool:
        """Stop the running cycle (idempotent).

        The ``stopped`` status is only emitted when a tick was actually
        pending.  Returns whether one was.
        """
        was_running = self._cancel()
        if was_running:
            logger.info("AutoCycle[%s]: stopped", self._entity_id)
            self._emit_status(AutoCycleStatus.STOPPED)
        return was_running

    def tick(self, run: AutoCycleRun) -> None:
        """Perform one step of *run* and schedule the next one."""
        cfg = self._get_config()
        count = cfg.scenes_count
        direction = run.direction
        reached_end = False

        if run.switch_count < 0:
            # Delayed start: wait one interval before the first switch.
            updated = 0
            next_target = run.target_scene
        else:
            scene = self._state.set_current(run.target_scene)
            updated = run.switch_count + 1
            if (
                cfg.cycle_mode == CycleMode.LINEAR_REVERSING
                and direction != 0
                and out_of_bounds(scene + direction, count)
            ):
                direction = -direction
            if direction == 0:
                next_target = self.random_scene(scene)
            else:
                next_target = scene + direction
            reached_end = (
                cfg.cycle_mode == CycleMode.LINEAR
                and direction != 0
                and out_of_bounds(next_target, count)
            )

        stop_reason = None
        if cfg.switch_once and updated == 1:
            stop_reason = "switch once"
        elif reached_end:
            stop_reason = "reached end"
        elif updated >= cfg.max_switches():
            stop_reason = "max switches"

        if stop_reason is not None:
            logger.info(
                "AutoCycle[%s]: finished after %d switches (%s)",
                self._entity_id,
                updated,
                stop_reason,
            )
            self._cancel()
            self._emit_status(AutoCycleStatus.STOPPED)
            return

        delay = self._next_delay(cfg)
        next_run = AutoCycleRun(
            direction=direction,
            switch_count=updated,
            target_scene=self._state.normalize(next_target),
            delay_seconds=delay,
        )
        task = self._timers.schedule(TimerKind.AUTOCYCLE, delay, next_run)
        if task is None:
            logger.warning(
                "AutoCycle[%s]: cannot schedule next tick — stopping",
                self._entity_id,
            )
            self._clear_backup()
            self._emit_status(AutoCycleStatus.STOPPED)
            return

        if delay >= BACKUP_MIN_DELAY_SECONDS:
            self._write_backup(next_run)
        else:
            self._clear_backup()

        logger.debug(
            "AutoCycle[%s]: switch %d, next scene %d in %.3f s",
            self._entity_id,
            updated,
            next_run.target_scene,
            delay,
        )

    def restore(self) -> bool:
        """Resume a cycle from its persisted :class:`Backup`.

        Returns ``True`` if a tick was rescheduled.  In every other case
        the backup is discarded and ``stopped`` is emitted.
        """
        self._timers.cancel(TimerKind.AUTOCYCLE)
        raw = self._store.get(BACKUP_FIELD)
        backup = Backup.parse(raw)
        if backup is None:
            if raw is not None:
                logger.warning(
                    "AutoCycle[%s]: discarding malformed backup %r",
                    self._entity_id,
                    raw,
                )
            self._clear_backup()
            self._emit_status(AutoCycleStatus.STOPPED)
            return False

        remaining = backup.remaining(self._clock())
        if remaining is None:
            logger.info(
                "AutoCycle[%s]: backup expired — not resuming",
                self._entity_id,
            )
            self._clear_backup()
            self._emit_status(AutoCycleStatus.STOPPED)
            return False

        run = AutoCycleRun(
            direction=backup.direction,
            switch_count=backup.switch_count,
            target_scene=backup.target_scene,
            delay_seconds=backup.delay_seconds,
        )
        if self._timers.schedule(TimerKind.AUTOCYCLE, remaining, run) is None:
            self._emit_status(AutoCycleStatus.STOPPED)
            return False

        logger.info(
            "AutoCycle[%s]: resumed, next scene %d in %.1f s",
            self._entity_id,
            run.target_scene,
            remaining,
        )
        self._emit_status(AutoCycleStatus.STARTED)
        return True

    def random_scene(self, exclude: int) -> int:
        """Uniformly random scene different from *exclude*.

        With a single scene there is no alternative and ``1`` is
        returned.
        """
        count = self._get_config().scenes_count
        if count <= 1:
            return 1
        pick = self._rng.randint(1, count - 1)
        return pick + 1 if pick >= exclude else pick

    # ---- internals ---------------------------------------------------

    def _first_target(self, direction: int, cfg: SwitcherConfig) -> int:
        current = self._state.current
        if direction == 0:
            return self.random_scene(current)

        policy = cfg.starting_scene
        if policy == StartingScene.CURRENT:
            return current
        if policy == StartingScene.INITIAL:
            return 1
        if policy == StartingScene.FINAL:
            return cfg.scenes_count
        if policy == StartingScene.EDGE:
            return cfg.scenes_count if direction < 0 else 1
        if policy == StartingScene.ONE_OR_TWO:
            return 1 if direction > 0 else 2
        return current + direction

    def _next_delay(self, cfg: SwitcherConfig) -> float:
        delay = cfg.base_delay_seconds()
        if cfg.jitter_seconds > 0:
            delay += self._rng.randint(0, cfg.jitter_seconds)
        return delay

    def _cancel(self) -> bool:
        was_running = self._timers.cancel(TimerKind.AUTOCYCLE)
        self._clear_backup()
        return was_running

    def _write_backup(self, run: AutoCycleRun) -> None:
        backup = Backup(
            version=BACKUP_VERSION,
            start_epoch=int(self._clock()),
            delay_seconds=int(round(run.delay_seconds)),
            direction=run.direction,
            switch_count=run.switch_count,
            target_scene=run.target_scene,
        )
        self._store.set(BACKUP_FIELD, backup.format(), persist=True)

    def _clear_backup(self) -> None:
        if BACKUP_FIELD in self._store:
            self._store.delete(BACKUP_FIELD)

    def _emit_status(self, status: AutoCycleStatus) -> None:
        self._emit(AutoCycleStatusEvent(self._entity_id, status))

    def __repr__(self) -> str:
        return (
            f"AutoCycleScheduler(entity_id={self._entity_id!r}, "
            f"running={self.is_running})"
        )
