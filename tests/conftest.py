"""Shared fixtures: a manually advanced loop and an event recorder."""

from __future__ import annotations

import random
from typing import Any, Callable, Dict, List, Optional

import pytest

from pySceneSwitcher.events import AutoCycleStatusEvent, SceneEvent
from pySceneSwitcher.persistence import FieldStore
from pySceneSwitcher.switcher import SceneSwitcher

#: Wall-clock time (epoch seconds) at which every ManualLoop starts.
EPOCH: float = 1_760_000_000.0


# ---------------------------------------------------------------------------
# ManualLoop: deterministic stand-in for loop.call_later
# ---------------------------------------------------------------------------


class _Handle:
    def __init__(self, when: float, callback: Callable, args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualLoop:
    """Loop-like object whose time only moves on :meth:`advance`."""

    def __init__(self, start: float = EPOCH) -> None:
        self.now = start
        self._handles: List[_Handle] = []

    def clock(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable, *args: Any) -> _Handle:
        handle = _Handle(self.now + delay, callback, args)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[_Handle]:
        return [h for h in self._handles if not h.cancelled]

    def next_delay(self) -> Optional[float]:
        """Seconds until the earliest pending callback."""
        pending = self.pending
        if not pending:
            return None
        return min(h.when for h in pending) - self.now

    def advance(self, seconds: float) -> None:
        """Move time forward, running due callbacks in order."""
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback(*handle.args)
        self.now = target

    def run_until_idle(self, limit: int = 10_000) -> None:
        """Run pending callbacks until none are left."""
        for _ in range(limit):
            delay = self.next_delay()
            if delay is None:
                return
            self.advance(delay)
        raise AssertionError("loop did not go idle")


# ---------------------------------------------------------------------------
# EventRecorder
# ---------------------------------------------------------------------------


class EventRecorder:
    """Event sink collecting everything a switcher emits."""

    def __init__(self) -> None:
        self.events: List[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()

    @property
    def scenes(self) -> List[int]:
        """Values of scene events that represent real activations."""
        return [
            e.value
            for e in self.events
            if isinstance(e, SceneEvent) and e.state_change
        ]

    @property
    def statuses(self) -> List[str]:
        return [
            e.status.value
            for e in self.events
            if isinstance(e, AutoCycleStatusEvent)
        ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def make_switcher(loop, recorder):
    """Factory for switchers driven by the manual loop."""

    def _make(
        prefs: Optional[Dict[str, Any]] = None,
        *,
        store: Optional[FieldStore] = None,
        seed: int = 1234,
        initialize: bool = True,
    ) -> SceneSwitcher:
        switcher = SceneSwitcher(
            "test-switcher",
            preferences=prefs,
            store=store,
            on_event=recorder,
            clock=loop.clock,
            rng=random.Random(seed),
            loop=loop,
        )
        if initialize:
            switcher.initialize()
            recorder.clear()
        return switcher

    return _make
