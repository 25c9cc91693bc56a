"""Per-switcher scene state.

:class:`SceneState` keeps the *current* scene, the independent *preset*
scene (stored without activating it, for a later ``recall``), the
preset snapshot used by ``recallConditioned``, the direction flag of
the smart next/previous dashboard mode and the wall-clock time of the
last activation.

All values live in the switcher's
:class:`~pySceneSwitcher.persistence.FieldStore`.  The current scene,
the preset fields and the smart direction are persisted; the last
activation time is volatile.

Activating a scene means: normalize it, store it as current, stamp the
activation time and emit a :class:`~pySceneSwitcher.events.SceneEvent`.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pySceneSwitcher.config import SwitcherConfig
from pySceneSwitcher.events import SceneEvent, SwitcherEvent
from pySceneSwitcher.normalizer import normalize
from pySceneSwitcher.persistence import FieldStore

logger = logging.getLogger(__name__)

CURRENT_SCENE_FIELD = "scene.current"
PRESET_SCENE_FIELD = "scene.preset"
PREVIOUS_PRESET_FIELD = "scene.previousPreset"
LAST_ACTIVATION_FIELD = "scene.lastActivation"
SMART_DIRECTION_FIELD = "dashboard.smartDirection"

#: Activation time written when the side-effect window is reset.
ACTIVATION_WINDOW_SENTINEL: float = 0.0


class SceneState:
    """Current / preset scene of one switcher.

    Parameters
    ----------
    entity_id:
        The owning switcher.
    store:
        Field store holding the state.
    get_config:
        Returns the switcher's current configuration.
    emit:
        Event sink for scene events.
    clock:
        Wall-clock source in epoch seconds.
    """

    def __init__(
        self,
        entity_id: str,
        store: FieldStore,
        get_config: Callable[[], SwitcherConfig],
        emit: Callable[[SwitcherEvent], None],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entity_id = entity_id
        self._store = store
        self._get_config = get_config
        self._emit = emit
        self._clock = clock

    # ---- helpers -----------------------------------------------------

    def normalize(self, scene: int) -> int:
        cfg = self._get_config()
        return normalize(scene, cfg.cycle_mode, cfg.scenes_count)

    # ---- current scene -----------------------------------------------

    @property
    def current(self) -> int:
        """The current scene, always within ``[1, scenesCount]``."""
        stored = self._store.get(CURRENT_SCENE_FIELD)
        if stored is None:
            stored = self._get_config().default_scene
        return self.normalize(int(stored))

    def seed(self) -> int:
        """Initialize the current scene for a freshly set up switcher.

        Uses the last known scene when one is stored, otherwise the
        configured default scene.  Nothing is activated.
        """
        scene = self.current
        self._store.set(CURRENT_SCENE_FIELD, scene, persist=True)
        logger.debug("SceneState[%s]: seeded scene %d", self._entity_id, scene)
        return scene

    def set_current(self, scene: int, activate: bool = True) -> int:
        """Store *scene* (normalized) as current.

        When *activate* is ``True`` the activation time is stamped and a
        scene event is emitted.  Returns the stored scene.
        """
        target = self.normalize(scene)
        self._store.set(CURRENT_SCENE_FIELD, target, persist=True)
        if activate:
            self._activate(target)
        return target

    def reactivate(self) -> int:
        """Emit the current scene again without changing it."""
        scene = self.current
        self._activate(scene)
        return scene

    def emit_initial(self) -> None:
        """Emit scene ``0`` to signal that nothing was activated yet."""
        self._emit(SceneEvent(self._entity_id, 0, state_change=False))

    def _activate(self, scene: int) -> None:
        self._store.set(LAST_ACTIVATION_FIELD, self._clock())
        logger.debug("SceneState[%s]: activate scene %d", self._entity_id, scene)
        self._emit(SceneEvent(self._entity_id, scene, state_change=True))

    # ---- activation time ---------------------------------------------

    @property
    def last_activation_time(self) -> Optional[float]:
        return self._store.get(LAST_ACTIVATION_FIELD)

    def reset_activation_window(self) -> None:
        """Move the last activation to the epoch so no window applies."""
        self._store.set(LAST_ACTIVATION_FIELD, ACTIVATION_WINDOW_SENTINEL)

    # ---- preset ------------------------------------------------------

    @property
    def preset(self) -> Optional[int]:
        value = self._store.get(PRESET_SCENE_FIELD)
        return None if value is None else int(value)

    @property
    def previous_preset(self) -> Optional[int]:
        """The preset that was replaced by the latest :meth:`set_preset`."""
        value = self._store.get(PREVIOUS_PRESET_FIELD)
        return None if value is None else int(value)

    def set_preset(self, scene: int) -> int:
        """Store *scene* as the preset without activating anything."""
        target = self.normalize(scene)
        self._store.set(PREVIOUS_PRESET_FIELD, self.preset, persist=True)
        self._store.set(PRESET_SCENE_FIELD, target, persist=True)
        logger.debug("SceneState[%s]: preset scene %d", self._entity_id, target)
        return target

    # ---- smart next / previous ---------------------------------------

    @property
    def smart_direction(self) -> int:
        """Direction of the smart next/previous action (+1 or -1)."""
        return -1 if self._store.get(SMART_DIRECTION_FIELD) == -1 else 1

    @smart_direction.setter
    def smart_direction(self, value: int) -> None:
        self._store.set(
            SMART_DIRECTION_FIELD, -1 if value < 0 else 1, persist=True
        )

    def __repr__(self) -> str:
        return (
            f"SceneState(entity_id={self._entity_id!r}, "
            f"current={self.current}, preset={self.preset})"
        )
