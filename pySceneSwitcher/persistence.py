"""Field persistence for scene switchers.

Two layers:

* :class:`StateStore`: writes the persisted fields of every switcher
  to one human-readable YAML file.  Writes go through a temporary file
  that is ``os.replace``-d onto the target, and the previous file is
  kept as ``<file>.bak``.  Loading falls back to the backup when the
  primary file is missing or corrupt, and returns ``None`` when neither
  is usable so that callers start fresh.

* :class:`FieldStore`: the per-switcher key-value primitive the engine
  talks to: ``get(key)`` and ``set(key, value, persist=False)``.
  Volatile fields live in memory only.  Persisted fields are also
  handed to an ``on_persist`` callback (normally the owning
  :class:`~pySceneSwitcher.switcher_host.SwitcherHost`, which debounces
  a save).  Setting ``None`` deletes a field.

Usage::

    from pySceneSwitcher.persistence import FieldStore, StateStore

    state = StateStore("/var/lib/switcher/state.yaml")
    fields = FieldStore("switcher-1", on_persist=lambda: state.save(...))

    fields.set("scene.preset", 3, persist=True)
    fields.get("scene.preset")  # -> 3
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

#: Nested mapping written to / read from the YAML state file.
StateTree = Dict[str, Any]

_BACKUP_SUFFIX = ".bak"
_TMP_SUFFIX = ".tmp"


# ---------------------------------------------------------------------------
# StateStore: YAML file with backup / recovery
# ---------------------------------------------------------------------------


class StateStore:
    """YAML state file with atomic writes and a ``.bak`` fallback.

    Parameters
    ----------
    path:
        Path to the primary YAML file.  Parent directories are created
        on the first :meth:`save`.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._backup_path = self._path.with_suffix(
            self._path.suffix + _BACKUP_SUFFIX
        )
        self._tmp_path = self._path.with_suffix(
            self._path.suffix + _TMP_SUFFIX
        )

    @property
    def path(self) -> Path:
        """The primary YAML file path."""
        return self._path

    @property
    def backup_path(self) -> Path:
        """The backup file path (``<path>.bak``)."""
        return self._backup_path

    def save(self, tree: StateTree) -> None:
        """Write *tree* to the state file, keeping the old one as backup.

        Raises
        ------
        OSError
            If the temporary file cannot be written or moved into place.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        if self._path.is_file():
            try:
                shutil.copy2(str(self._path), str(self._backup_path))
            except OSError:
                logger.warning(
                    "Failed to back up %s — continuing anyway.", self._path
                )

        try:
            with open(self._tmp_path, "w", encoding="utf-8") as fh:
                yaml.safe_dump(
                    tree,
                    fh,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )
            os.replace(str(self._tmp_path), str(self._path))
        except OSError:
            logger.error("Failed to write state file %s", self._path)
            raise

        logger.info("Saved switcher state to %s", self._path)

    def load(self) -> Optional[StateTree]:
        """Load the state tree (primary file first, then the backup).

        Returns ``None`` if neither file could be loaded.
        """
        tree = self._try_load(self._path)
        if tree is not None:
            return tree

        tree = self._try_load(self._backup_path)
        if tree is not None:
            logger.warning(
                "State file %s not usable — recovered from %s",
                self._path,
                self._backup_path,
            )
            try:
                shutil.copy2(str(self._backup_path), str(self._path))
            except OSError:
                logger.warning("Could not restore primary from backup.")
            return tree

        logger.info("No persisted switcher state found — starting fresh.")
        return None

    def delete(self) -> None:
        """Remove the state file, its backup and any stale temp file."""
        for p in (self._path, self._backup_path, self._tmp_path):
            try:
                p.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove %s", p)

    @staticmethod
    def _try_load(path: Path) -> Optional[StateTree]:
        if not path.is_file():
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load %s: %s", path, exc)
            return None

        if not isinstance(data, dict):
            logger.warning(
                "Expected a mapping at top level in %s, got %s",
                path,
                type(data).__name__,
            )
            return None
        return data

    def __repr__(self) -> str:
        return f"StateStore({str(self._path)!r})"


# ---------------------------------------------------------------------------
# FieldStore: per-switcher key-value primitive
# ---------------------------------------------------------------------------


class FieldStore:
    """Key-value fields of one switcher, volatile or persisted.

    Parameters
    ----------
    entity_id:
        Identifier of the owning switcher (used in log messages).
    persisted:
        Initial persisted fields, e.g. restored from a
        :class:`StateStore`.
    on_persist:
        Called (without arguments) after every change to a persisted
        field.  Exceptions are logged and swallowed.
    """

    def __init__(
        self,
        entity_id: str,
        persisted: Optional[Dict[str, Any]] = None,
        on_persist: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._entity_id = entity_id
        self._volatile: Dict[str, Any] = {}
        self._persisted: Dict[str, Any] = dict(persisted or {})
        self._on_persist = on_persist
        # Snapshots are taken from the auto-save thread.
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value of *key*, or *default* when absent."""
        if key in self._volatile:
            return self._volatile[key]
        with self._lock:
            return self._persisted.get(key, default)

    def set(self, key: str, value: Any, persist: bool = False) -> None:
        """Store *value* under *key*.

        A field lives in exactly one of the two maps: writing it with a
        different *persist* flag moves it.  ``None`` deletes the field.
        """
        self._volatile.pop(key, None)
        with self._lock:
            was_persisted = self._persisted.pop(key, None) is not None
            if value is not None and persist:
                self._persisted[key] = value
        if value is not None and not persist:
            self._volatile[key] = value

        if persist or was_persisted:
            logger.debug(
                "FieldStore[%s]: %s = %r (persisted)",
                self._entity_id,
                key,
                value,
            )
            self._notify_persist()

    def delete(self, key: str) -> None:
        """Remove *key* from both maps (no-op when absent)."""
        self.set(key, None)

    def snapshot(self) -> Dict[str, Any]:
        """Return a copy of the persisted fields."""
        with self._lock:
            return dict(self._persisted)

    def _notify_persist(self) -> None:
        if self._on_persist is None:
            return
        try:
            self._on_persist()
        except Exception:
            logger.exception(
                "FieldStore[%s]: persist callback failed", self._entity_id
            )

    def __contains__(self, key: str) -> bool:
        if key in self._volatile:
            return True
        with self._lock:
            return key in self._persisted

    def __repr__(self) -> str:
        return (
            f"FieldStore(entity_id={self._entity_id!r}, "
            f"persisted={sorted(self._persisted)!r})"
        )
