"""Outbound events emitted by a scene switcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from pySceneSwitcher.enums import AutoCycleStatus


@dataclass(frozen=True)
class SceneEvent:
    """The active scene value.

    ``value`` is ``0`` exactly once, at initialization, to signal that
    no real activation happened yet.  ``state_change`` is ``False`` for
    that event so that user routines are not triggered.
    """

    entity_id: str
    value: int
    state_change: bool = True


@dataclass(frozen=True)
class AutoCycleStatusEvent:
    """Auto-cycle status change (``started`` / ``stopped``)."""

    entity_id: str
    status: AutoCycleStatus


SwitcherEvent = Union[SceneEvent, AutoCycleStatusEvent]

#: Signature of the event sink.  May return a coroutine.
EventCallback = Callable[[SwitcherEvent], Any]
