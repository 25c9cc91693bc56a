"""pySceneSwitcher - virtual scene switcher devices for smart buttons."""

__version__ = "0.1.0"

from pySceneSwitcher.enums import (  # noqa: F401 – re-export for convenience
    ActionKind,
    AutoCycleStatus,
    AutoStopBehavior,
    AutoStopCondition,
    CycleMode,
    DashboardMode,
    Direction,
    StartingScene,
)

from pySceneSwitcher.config import (  # noqa: F401
    BACKUP_MIN_DELAY_SECONDS,
    SwitcherConfig,
)

from pySceneSwitcher.normalizer import normalize, out_of_bounds  # noqa: F401

from pySceneSwitcher.events import (  # noqa: F401
    AutoCycleStatusEvent,
    EventCallback,
    SceneEvent,
)

from pySceneSwitcher.persistence import FieldStore, StateStore  # noqa: F401

from pySceneSwitcher.timers import (  # noqa: F401
    EntityTimers,
    ScheduledTask,
    TimerKind,
)

from pySceneSwitcher.actions import Action, parse_action  # noqa: F401

from pySceneSwitcher.scene_state import SceneState  # noqa: F401

from pySceneSwitcher.side_effects import SideEffectFilter, Verdict  # noqa: F401

from pySceneSwitcher.autocycle import (  # noqa: F401
    AutoCycleRun,
    AutoCycleScheduler,
    Backup,
)

from pySceneSwitcher.multitap import MultiTapAggregator  # noqa: F401

from pySceneSwitcher.dispatcher import ActionDispatcher  # noqa: F401

from pySceneSwitcher.switcher import SceneSwitcher  # noqa: F401

from pySceneSwitcher.switcher_host import (  # noqa: F401
    AUTO_SAVE_DELAY,
    SwitcherHost,
)
