"""Per-switcher configuration.

A :class:`SwitcherConfig` is built from the preferences mapping of one
virtual device (the camelCase keys used by the host platform).  Every
preference has a hard-coded default; absence is never an error:

* missing keys take the default,
* values that cannot be interpreted take the default (logged),
* numbers outside their documented range are clamped (logged).

Usage::

    from pySceneSwitcher.config import SwitcherConfig

    cfg = SwitcherConfig.from_preferences({
        "scenesCount": 6,
        "cycleMode": "linearReversing",
        "autocycleLongDelayMinutes": 15,
    })
    cfg.base_delay_seconds()  # -> 900.0 (before jitter)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from pySceneSwitcher.enums import (
    AutoStopBehavior,
    AutoStopCondition,
    CycleMode,
    DashboardMode,
    StartingScene,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Defaults and ranges
# ---------------------------------------------------------------------------

DEFAULT_SCENES_COUNT: int = 4
DEFAULT_SHORT_DELAY_MS: int = 1000
DEFAULT_MULTI_TAP_DELAY_MS: int = 500
DEFAULT_TARGETED_WINDOW_MS: int = 800
DEFAULT_GENERIC_WINDOW_MS: int = 0

#: Auto-cycles with a delay of at least this many seconds are backed up
#: so that they survive a restart.
BACKUP_MIN_DELAY_SECONDS: int = 60


@dataclass(frozen=True)
class _IntPref:
    """Metadata for an integer preference."""

    key: str
    default: int
    minimum: int
    maximum: int


_INT_PREFS: Dict[str, _IntPref] = {
    "scenes_count": _IntPref("scenesCount", DEFAULT_SCENES_COUNT, 1, 1000),
    "default_scene": _IntPref("defaultScene", 1, 1, 1000),
    "short_delay_ms": _IntPref(
        "autocycleDelayMillis", DEFAULT_SHORT_DELAY_MS, 100, 3_600_000
    ),
    "long_delay_minutes": _IntPref("autocycleLongDelayMinutes", 0, 0, 1440),
    "jitter_minutes": _IntPref("autocycleJitterMinutes", 0, 0, 1440),
    "max_loops": _IntPref("autocycleMaxLoops", 1, 1, 10000),
    "multi_tap_delay_ms": _IntPref(
        "multiTapDelayMillis", DEFAULT_MULTI_TAP_DELAY_MS, 50, 10000
    ),
    "targeted_window_ms": _IntPref(
        "sideEffectTargetedMillis", DEFAULT_TARGETED_WINDOW_MS, 0, 60000
    ),
    "generic_window_ms": _IntPref(
        "sideEffectGenericMillis", DEFAULT_GENERIC_WINDOW_MS, 0, 60000
    ),
}

_BOOL_PREFS: Dict[str, Tuple[str, bool]] = {
    "delayed_start": ("autocycleDelayedStart", False),
    "switch_once": ("autocycleSwitchOnce", False),
    "start_equals_stop": ("autocycleStartStops", False),
}

_ENUM_PREFS: Dict[str, Tuple[str, Type[Enum], Enum]] = {
    "cycle_mode": ("cycleMode", CycleMode, CycleMode.CIRCULAR),
    "dashboard_mode": ("dashboardMode", DashboardMode, DashboardMode.NEXT),
    "autostop_behavior": (
        "autostopBehavior",
        AutoStopBehavior,
        AutoStopBehavior.ENDS_ON_START_SCENE,
    ),
    "autostop_condition": (
        "autostopCondition",
        AutoStopCondition,
        AutoStopCondition.ANY_ACTION,
    ),
    "starting_scene": (
        "autocycleStartingScene",
        StartingScene,
        StartingScene.STEP,
    ),
}


# ---------------------------------------------------------------------------
# SwitcherConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SwitcherConfig:
    """Read-only configuration of one scene switcher.

    Attributes
    ----------
    scenes_count:
        Number of scenes in use (``1..1000``).
    cycle_mode:
        Topology applied when a request leaves the scene range.
    default_scene:
        Scene activated by the ``default`` action and used to seed the
        current scene of a fresh device.
    dashboard_mode:
        Behaviour of the virtual ``mainAction``.
    short_delay_ms:
        Auto-cycle delay between switches, in milliseconds.
    long_delay_minutes:
        When non-zero, overrides *short_delay_ms* entirely.
    jitter_minutes:
        Upper bound of a random extra delay added on every tick.
    delayed_start:
        Defer the first activation behind one delay interval.
    switch_once:
        Stop the auto-cycle after its first real switch.
    max_loops:
        Number of full periods before a bounded auto-cycle stops.
    autostop_behavior:
        Whether the last switch lands on the start scene or one before.
    autostop_condition:
        Which inbound actions interrupt a running auto-cycle.
    start_equals_stop:
        An auto-cycle start action received while a cycle is running
        only stops it instead of restarting it.
    starting_scene:
        First scene of a sequential auto-cycle.
    multi_tap_delay_ms:
        Idle window that closes a multi-tap burst.
    targeted_window_ms / generic_window_ms:
        Side-effect suppression windows (``0`` disables).
    """

    scenes_count: int = DEFAULT_SCENES_COUNT
    cycle_mode: CycleMode = CycleMode.CIRCULAR
    default_scene: int = 1
    dashboard_mode: DashboardMode = DashboardMode.NEXT
    short_delay_ms: int = DEFAULT_SHORT_DELAY_MS
    long_delay_minutes: int = 0
    jitter_minutes: int = 0
    delayed_start: bool = False
    switch_once: bool = False
    max_loops: int = 1
    autostop_behavior: AutoStopBehavior = AutoStopBehavior.ENDS_ON_START_SCENE
    autostop_condition: AutoStopCondition = AutoStopCondition.ANY_ACTION
    start_equals_stop: bool = False
    starting_scene: StartingScene = StartingScene.STEP
    multi_tap_delay_ms: int = DEFAULT_MULTI_TAP_DELAY_MS
    targeted_window_ms: int = DEFAULT_TARGETED_WINDOW_MS
    generic_window_ms: int = DEFAULT_GENERIC_WINDOW_MS

    # ---- derived values ----------------------------------------------

    def base_delay_seconds(self) -> float:
        """Auto-cycle delay before jitter, in seconds."""
        if self.long_delay_minutes > 0:
            return float(self.long_delay_minutes * 60)
        return self.short_delay_ms / 1000.0

    @property
    def jitter_seconds(self) -> int:
        return self.jitter_minutes * 60

    def cycle_period(self) -> int:
        """Switches in one full auto-cycle loop.

        A reversing cycle needs a back-and-forth sweep.  A single-scene
        reversing switcher never reaches a bound, so its period is 1 and
        only *max_loops* ends it.
        """
        if self.cycle_mode == CycleMode.LINEAR_REVERSING:
            return max(1, 2 * (self.scenes_count - 1))
        return self.scenes_count

    def max_switches(self) -> int:
        offset = (
            0
            if self.autostop_behavior == AutoStopBehavior.ENDS_ONE_BEFORE
            else 1
        )
        return self.max_loops * self.cycle_period() + offset

    # ---- (de)serialisation -------------------------------------------

    def to_preferences(self) -> Dict[str, Any]:
        """Return the configuration as a camelCase preferences dict."""
        prefs: Dict[str, Any] = {}
        for attr, pref in _INT_PREFS.items():
            prefs[pref.key] = getattr(self, attr)
        for attr, (key, _default) in _BOOL_PREFS.items():
            prefs[key] = getattr(self, attr)
        for attr, (key, _cls, _default) in _ENUM_PREFS.items():
            prefs[key] = getattr(self, attr).value
        return prefs

    @classmethod
    def from_preferences(
        cls, prefs: Optional[Mapping[str, Any]] = None
    ) -> SwitcherConfig:
        """Build a configuration from a preferences mapping.

        Parameters
        ----------
        prefs:
            Mapping of camelCase preference names to raw values.
            ``None`` or an empty mapping yields the defaults.
        """
        prefs = prefs or {}
        kwargs: Dict[str, Any] = {}

        for attr, pref in _INT_PREFS.items():
            kwargs[attr] = _coerce_int(prefs.get(pref.key), pref)

        for attr, (key, default) in _BOOL_PREFS.items():
            raw = prefs.get(key)
            kwargs[attr] = default if raw is None else _coerce_bool(raw, key, default)

        for attr, (key, enum_cls, default) in _ENUM_PREFS.items():
            raw = prefs.get(key)
            if raw is None:
                kwargs[attr] = default
                continue
            try:
                kwargs[attr] = enum_cls(raw)
            except ValueError:
                logger.warning(
                    "Invalid value %r for preference %s — using %s",
                    raw,
                    key,
                    default.value,
                )
                kwargs[attr] = default

        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _coerce_int(raw: Any, pref: _IntPref) -> int:
    if raw is None:
        return pref.default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Invalid value %r for preference %s — using %d",
            raw,
            pref.key,
            pref.default,
        )
        return pref.default
    clamped = max(pref.minimum, min(pref.maximum, value))
    if clamped != value:
        logger.warning(
            "Preference %s=%d outside [%d, %d] — clamped to %d",
            pref.key,
            value,
            pref.minimum,
            pref.maximum,
            clamped,
        )
    return clamped


def _coerce_bool(raw: Any, key: str, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    elif isinstance(raw, int):
        return raw != 0
    logger.warning(
        "Invalid value %r for preference %s — using %s", raw, key, default
    )
    return default
