"""Entity-scoped cancellable timers.

Each switcher owns one :class:`EntityTimers` instance with one slot per
:class:`TimerKind`.  Scheduling into an occupied slot cancels the
previous timer first, so at most one auto-cycle timer and one multi-tap
timer are ever outstanding per switcher.

Scheduled work is described by a :class:`ScheduledTask`: plain data
naming the switcher, the slot and a payload (the run state).  When a
timer fires, the task is handed to the single ``handler`` given at
construction, which routes it by kind.

Timers are armed with ``loop.call_later`` on the running asyncio loop.
Without a running loop nothing is scheduled (logged at debug level),
which keeps synchronous callers such as unit tests of pure logic safe.
A specific loop-like object may be passed instead; it only needs a
``call_later(delay, callback, *args)`` method returning a handle with
``cancel()``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TimerKind(enum.Enum):
    """Timer slots of a switcher."""

    AUTOCYCLE = "autocycle"
    MULTITAP = "multitap"


@dataclass(frozen=True)
class ScheduledTask:
    """A unit of deferred work for one switcher."""

    entity_id: str
    kind: TimerKind
    delay: float
    payload: Any = None


class EntityTimers:
    """One-timer-per-slot scheduler for a single switcher.

    Parameters
    ----------
    entity_id:
        The owning switcher.
    handler:
        Called with the :class:`ScheduledTask` when a timer fires.
        Exceptions are logged and do not propagate into the loop.
    loop:
        Optional loop-like object.  Defaults to the running asyncio
        loop at scheduling time.
    """

    def __init__(
        self,
        entity_id: str,
        handler: Callable[[ScheduledTask], Any],
        *,
        loop: Optional[Any] = None,
    ) -> None:
        self._entity_id = entity_id
        self._handler = handler
        self._loop = loop
        self._handles: Dict[TimerKind, Any] = {}
        self._tasks: Dict[TimerKind, ScheduledTask] = {}

    # ---- public API --------------------------------------------------

    def schedule(
        self, kind: TimerKind, delay: float, payload: Any = None
    ) -> Optional[ScheduledTask]:
        """Arm the *kind* slot to fire after *delay* seconds.

        Any timer already pending in that slot is cancelled.  Returns
        the scheduled task, or ``None`` when no loop is available.
        """
        self.cancel(kind)
        loop = self._resolve_loop()
        if loop is None:
            logger.debug(
                "EntityTimers[%s]: no running loop — %s timer not armed",
                self._entity_id,
                kind.value,
            )
            return None

        task = ScheduledTask(
            entity_id=self._entity_id,
            kind=kind,
            delay=max(0.0, float(delay)),
            payload=payload,
        )
        self._handles[kind] = loop.call_later(task.delay, self._fire, task)
        self._tasks[kind] = task
        return task

    def cancel(self, kind: TimerKind) -> bool:
        """Cancel the *kind* timer.  Returns ``True`` if one was pending."""
        self._tasks.pop(kind, None)
        handle = self._handles.pop(kind, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for kind in list(self._handles):
            self.cancel(kind)

    def is_pending(self, kind: TimerKind) -> bool:
        return kind in self._handles

    def pending_task(self, kind: TimerKind) -> Optional[ScheduledTask]:
        """The task waiting in the *kind* slot, if any."""
        return self._tasks.get(kind)

    # ---- internals ---------------------------------------------------

    def _resolve_loop(self) -> Optional[Any]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _fire(self, task: ScheduledTask) -> None:
        # A newer task may have replaced this one after the handle
        # was already queued by the loop.
        if self._tasks.get(task.kind) is not task:
            return
        self._handles.pop(task.kind, None)
        self._tasks.pop(task.kind, None)
        try:
            self._handler(task)
        except Exception:
            logger.exception(
                "EntityTimers[%s]: %s handler failed",
                self._entity_id,
                task.kind.value,
            )

    def __repr__(self) -> str:
        pending = ", ".join(k.value for k in self._handles)
        return f"EntityTimers(entity_id={self._entity_id!r}, pending=[{pending}])"
