"""Side-effect suppression.

Routines that mirror the switcher's state back into it (e.g. "when a
light turns on, set scene 2") would otherwise cause feedback loops.
:class:`SideEffectFilter` ignores actions that arrive too soon after
the last activation.  Two independent windows apply:

* **targeted** (default 800 ms): actions naming a destination scene:
  ``first``, ``last``, ``default`` and positive numeric tokens.
* **generic** (default 0 ms, disabled): every other action.

Preset tokens (negative numbers) never activate anything and always
pass.  A numeric token outside ``[1, scenesCount]`` is ignored too, but
it additionally resets the window, which lets a routine deliberately
clear the suppression by sending an out-of-range value such as ``0``.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional

from pySceneSwitcher.actions import Action
from pySceneSwitcher.config import SwitcherConfig
from pySceneSwitcher.enums import ActionKind
from pySceneSwitcher.normalizer import out_of_bounds

logger = logging.getLogger(__name__)


class Verdict(enum.Enum):
    """Outcome of :meth:`SideEffectFilter.check`."""

    PASS = "pass"
    SUPPRESS = "suppress"
    #: Out-of-range scene: ignore the action and reset the window.
    RESET_WINDOW = "reset_window"


class SideEffectFilter:
    """Decide whether an inbound action is a side effect to suppress."""

    def __init__(self, get_config: Callable[[], SwitcherConfig]) -> None:
        self._get_config = get_config

    def window_seconds(self, action: Action) -> float:
        """The suppression window applicable to *action*, in seconds."""
        cfg = self._get_config()
        millis = (
            cfg.targeted_window_ms if action.is_targeted else cfg.generic_window_ms
        )
        return millis / 1000.0

    def check(
        self,
        action: Action,
        now: float,
        last_activation: Optional[float],
    ) -> Verdict:
        """Classify *action* received at *now* (epoch seconds)."""
        if action.kind == ActionKind.PRESET:
            return Verdict.PASS

        if action.kind == ActionKind.SCENE and out_of_bounds(
            action.value, self._get_config().scenes_count
        ):
            return Verdict.RESET_WINDOW

        window = self.window_seconds(action)
        if window <= 0 or last_activation is None:
            return Verdict.PASS

        elapsed = now - last_activation
        if 0 <= elapsed <= window:
            logger.debug(
                "Suppressing %s: %.3f s after last activation (window %.3f s)",
                action,
                elapsed,
                window,
            )
            return Verdict.SUPPRESS
        return Verdict.PASS
