"""Scene switcher enumerations.

All enums carry the preference / token strings used by the host
platform as their values, so that ``CycleMode("linear")`` and
``CycleMode.LINEAR.value`` round-trip with the stored preferences.
"""

from enum import Enum, IntEnum, unique


# ---------------------------------------------------------------------------
#  Preference enums
# ---------------------------------------------------------------------------


@unique
class CycleMode(str, Enum):
    """Topology used when a scene request leaves ``[1, scenesCount]``."""

    #: Wrap around: stepping past either end re-enters from the other.
    CIRCULAR = "circular"
    #: Clamp: stay at the end, auto-cycles halt there.
    LINEAR = "linear"
    #: Clamp for manual steps, auto-cycles bounce back at each end.
    LINEAR_REVERSING = "linearReversing"


@unique
class DashboardMode(str, Enum):
    """Behaviour of the virtual ``mainAction`` (dashboard button)."""

    NEXT = "next"
    NEXT_LOOP = "nextLoop"
    SMART_NEXT_PREV = "smartNextPrev"
    AUTO_SEQUENTIAL = "autoSequential"
    AUTO_RANDOM = "autoRandom"
    SURPRISE_ME = "surpriseMe"
    DEFAULT = "default"
    REACTIVATE = "reactivate"
    TAP = "tap"
    DISABLED = "disabled"


@unique
class StartingScene(str, Enum):
    """First scene activated when a sequential auto-cycle starts."""

    #: Next scene when going forwards, previous when going backwards.
    STEP = "step"
    #: Re-activate the current scene.
    CURRENT = "current"
    #: Always scene 1.
    INITIAL = "initial"
    #: Always the last scene.
    FINAL = "final"
    #: Last scene when going backwards, scene 1 when going forwards.
    EDGE = "edge"
    #: Scene 1 when going forwards, scene 2 when going backwards.
    ONE_OR_TWO = "oneOrTwo"


@unique
class AutoStopBehavior(str, Enum):
    """Where a bounded auto-cycle ends relative to its start scene."""

    ENDS_ON_START_SCENE = "endsOnStartScene"
    ENDS_ONE_BEFORE = "endsOneBefore"


@unique
class AutoStopCondition(str, Enum):
    """Which inbound actions interrupt a running auto-cycle."""

    ANY_ACTION = "anyAction"
    STOP_ONLY = "stopOnly"


# ---------------------------------------------------------------------------
#  Runtime enums
# ---------------------------------------------------------------------------


@unique
class AutoCycleStatus(str, Enum):
    """Value of the outbound auto-cycle status event."""

    STARTED = "started"
    STOPPED = "stopped"


@unique
class Direction(IntEnum):
    """Auto-cycle stepping direction."""

    BACKWARD = -1
    RANDOM = 0
    FORWARD = 1


@unique
class ActionKind(Enum):
    """Closed set of inbound actions.

    Named members carry their token string.  ``SCENE`` and ``PRESET``
    are the numeric fallbacks (positive and negative integers) and
    have no fixed token.
    """

    NEXT = "next"
    PREVIOUS = "previous"
    NEXT2 = "next2"
    PREVIOUS2 = "previous2"
    FIRST = "first"
    LAST = "last"
    DEFAULT = "default"
    SURPRISE_ME = "surpriseMe"
    REACTIVATE = "reactivate"
    RECALL = "recall"
    RECALL_CONDITIONED = "recallConditioned"
    RESET = "reset"
    AUTO_FORWARDS = "autoForwards"
    AUTO_BACKWARDS = "autoBackwards"
    AUTO_RANDOM = "autoRandom"
    AUTO_STOP = "autoStop"
    TAP = "tap"
    DOUBLE_TAP = "doubleTap"
    MAIN_ACTION = "mainAction"
    SMART_NEXT_PREV = "smartNextPrev"
    SCENE = "<scene>"
    PRESET = "<preset>"
