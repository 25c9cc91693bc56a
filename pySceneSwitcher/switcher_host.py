"""Registry and persistence for the switchers of one process.

A :class:`SwitcherHost` owns every :class:`~pySceneSwitcher.switcher.SceneSwitcher`
of the running process, keyed by entity id, and persists their
persisted fields to a single YAML state file::

    switcherHost:
      switchers:
        living-room:
          fields:
            scene.current: 3
            scene.preset: 2
            autocycle.backup: 1 1760000000 900 1 4 2

Changes to persisted fields trigger a debounced auto-save after
:data:`AUTO_SAVE_DELAY` seconds, so bursts of activations are
coalesced into one write.  Call :meth:`SwitcherHost.flush` (or
:meth:`SwitcherHost.shutdown`) before exiting to write pending changes.

Fields restored from the state file are handed to a switcher when it
is added again under the same entity id, which is what lets an
auto-cycle backup survive a restart.

Usage::

    host = SwitcherHost(state_path="/var/lib/switcher/state.yaml")
    switcher = host.add_switcher("living-room", {"scenesCount": 5})
    host.dispatch("living-room", "autoForwards")
    ...
    host.shutdown()
"""

from __future__ import annotations

import logging
import random
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pySceneSwitcher.actions import Action
from pySceneSwitcher.events import EventCallback
from pySceneSwitcher.persistence import FieldStore, StateStore, StateTree
from pySceneSwitcher.switcher import SceneSwitcher

logger = logging.getLogger(__name__)

#: Debounce delay (seconds) between a persisted change and the save.
AUTO_SAVE_DELAY: float = 1.0


class SwitcherHost:
    """Owns the switchers of a process and their persisted state.

    Parameters
    ----------
    state_path:
        Path of the YAML state file.  When given, persisted fields are
        restored on construction and saved automatically.  When
        omitted, persistence is disabled.
    on_event:
        Default event sink for switchers added without their own.
    clock:
        Wall-clock source handed to every switcher.
    loop:
        Loop-like object handed to every switcher's timers.
    """

    def __init__(
        self,
        *,
        state_path: Optional[Union[str, Path]] = None,
        on_event: Optional[EventCallback] = None,
        clock: Callable[[], float] = time.time,
        loop: Optional[Any] = None,
    ) -> None:
        self._store: Optional[StateStore] = (
            StateStore(state_path) if state_path else None
        )
        self._on_event = on_event
        self._clock = clock
        self._loop = loop
        self._switchers: Dict[str, SceneSwitcher] = {}
        self._restored_fields: Dict[str, Dict[str, Any]] = {}
        self._save_timer: Optional[threading.Timer] = None
        self._save_lock = threading.Lock()

        restored = self._store.load() if self._store else None
        if restored:
            self._restored_fields = _extract_fields(restored)
            logger.info(
                "Restored state for %d switcher(s)", len(self._restored_fields)
            )
        self._auto_save_enabled: bool = self._store is not None

    # ---- registry ----------------------------------------------------

    @property
    def count(self) -> int:
        """Number of registered switchers."""
        return len(self._switchers)

    @property
    def switchers(self) -> List[SceneSwitcher]:
        return list(self._switchers.values())

    def __len__(self) -> int:
        return len(self._switchers)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._switchers

    def add_switcher(
        self,
        entity_id: str,
        preferences: Optional[Mapping[str, Any]] = None,
        *,
        on_event: Optional[EventCallback] = None,
        rng: Optional[random.Random] = None,
        initialize: bool = True,
    ) -> SceneSwitcher:
        """Create, register and (by default) initialize a switcher.

        Raises
        ------
        ValueError
            If a switcher with *entity_id* is already registered.
        """
        if entity_id in self._switchers:
            raise ValueError(f"Switcher {entity_id!r} already exists")

        # Restored fields move to the switcher in one step, so a
        # concurrent auto-save sees them in exactly one place.
        with self._save_lock:
            fields = FieldStore(
                entity_id,
                persisted=self._restored_fields.pop(entity_id, None),
                on_persist=self._on_fields_changed,
            )
            switcher = SceneSwitcher(
                entity_id,
                preferences=preferences,
                store=fields,
                on_event=on_event or self._on_event,
                clock=self._clock,
                rng=rng,
                loop=self._loop,
            )
            self._switchers[entity_id] = switcher
        logger.info("Added switcher %s (%d total)", entity_id, self.count)
        if initialize:
            switcher.initialize()
        return switcher

    def get_switcher(self, entity_id: str) -> SceneSwitcher:
        """Return the switcher registered as *entity_id*.

        Raises
        ------
        KeyError
            If no such switcher exists.
        """
        return self._switchers[entity_id]

    def remove_switcher(self, entity_id: str) -> bool:
        """Stop and unregister a switcher, dropping its persisted state.

        Returns ``False`` if no such switcher was registered.
        """
        switcher = self._switchers.pop(entity_id, None)
        if switcher is None:
            return False
        switcher.remove()
        logger.info("Removed switcher %s (%d left)", entity_id, self.count)
        self._on_fields_changed()
        return True

    def dispatch(
        self, entity_id: str, token: Union[str, int, Action]
    ) -> Optional[Action]:
        """Dispatch *token* to the switcher registered as *entity_id*."""
        return self.get_switcher(entity_id).dispatch(token)

    # ---- persistence -------------------------------------------------

    def get_property_tree(self) -> StateTree:
        """Return the persisted fields of all switchers as a tree."""
        switchers: Dict[str, Any] = {
            entity_id: {"fields": dict(fields)}
            for entity_id, fields in list(self._restored_fields.items())
        }
        for entity_id, switcher in list(self._switchers.items()):
            switchers[entity_id] = {"fields": switcher.store.snapshot()}
        return {"switcherHost": {"switchers": switchers}}

    def save(self) -> None:
        """Write the state file now.

        Does nothing without a ``state_path``.  Cancels a pending
        auto-save, which this save supersedes.

        Raises
        ------
        OSError
            If the state file cannot be written.
        """
        self._cancel_auto_save()
        if self._store is None:
            logger.debug("No state_path configured — skipping save.")
            return
        with self._save_lock:
            self._store.save(self.get_property_tree())

    def flush(self) -> None:
        """Save immediately if an auto-save is pending."""
        if self._save_timer is not None:
            self.save()

    def shutdown(self) -> None:
        """Cancel all switcher timers and write pending changes.

        Auto-cycle backups are kept so that the next start resumes
        long-running cycles.
        """
        for switcher in self._switchers.values():
            switcher.shutdown()
        self.flush()

    # ---- auto-save internals ----------------------------------------

    def _on_fields_changed(self) -> None:
        if self._auto_save_enabled:
            self._schedule_auto_save()

    def _schedule_auto_save(self) -> None:
        if self._save_timer is not None:
            self._save_timer.cancel()
        timer = threading.Timer(AUTO_SAVE_DELAY, self._do_auto_save)
        timer.daemon = True
        timer.start()
        self._save_timer = timer

    def _cancel_auto_save(self) -> None:
        timer = self._save_timer
        if timer is not None:
            timer.cancel()
            self._save_timer = None

    def _do_auto_save(self) -> None:
        self._save_timer = None
        if self._store is None:
            return
        logger.debug("Auto-saving switcher state.")
        try:
            with self._save_lock:
                self._store.save(self.get_property_tree())
        except OSError as exc:
            logger.warning("Auto-save failed: %s", exc)

    def __repr__(self) -> str:
        path = str(self._store.path) if self._store else None
        return f"SwitcherHost(switchers={self.count}, state_path={path!r})"


def _extract_fields(tree: StateTree) -> Dict[str, Dict[str, Any]]:
    """Pull ``{entity_id: fields}`` out of a loaded state tree."""
    host = tree.get("switcherHost")
    if not isinstance(host, dict):
        return {}
    switchers = host.get("switchers")
    if not isinstance(switchers, dict):
        return {}
    result: Dict[str, Dict[str, Any]] = {}
    for entity_id, node in switchers.items():
        if isinstance(node, dict) and isinstance(node.get("fields"), dict):
            result[str(entity_id)] = dict(node["fields"])
    return result
